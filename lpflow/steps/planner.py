"""Transaction step planner.

Turns resolved permissions into an ordered plan: outstanding ERC20
approvals first (canonical token order), then the Permit2 batch signature
when one is needed and not already cached, then exactly one Execute step.
"""

from __future__ import annotations

import time
from enum import Enum

import structlog

from lpflow.errors import PlanningError
from lpflow.models.deposit import DepositMode
from lpflow.permissions.permit2 import CachedPermitSignature
from lpflow.permissions.resolver import (
    PermissionSet,
    StandardPermissions,
    ZapPermissions,
    requires_approval,
)
from lpflow.steps.types import (
    ApproveToken,
    ApproveZapInputs,
    Execute,
    ExecuteKind,
    Plan,
    SignPermission,
    TransactionStep,
)

logger = structlog.get_logger()


def plan_steps(
    requirements: PermissionSet,
    mode: DepositMode,
    *,
    execute_kind: ExecuteKind | None = None,
    cached_signature: CachedPermitSignature | None = None,
    now: int | None = None,
) -> Plan:
    """Build the ordered plan for a deposit.

    Requirements should come from fresh on-chain reads: approvals that are
    already satisfied are left out, so re-planning an interrupted flow never
    resubmits them.

    Args:
        requirements: Output of the permission resolver
        mode: Deposit mode; must match the requirements' variant
        execute_kind: Final step kind (defaults to create_position for
            standard deposits and zap_deposit for zaps)
        cached_signature: Previously signed batch that may stand in for a
            new signature
        now: Current unix time (defaults to the wall clock)

    Returns:
        Plan ending in a single Execute step

    Raises:
        PlanningError: If the mode and requirements disagree
    """
    steps: list[TransactionStep] = []
    pending = requires_approval(requirements)

    if isinstance(requirements, StandardPermissions):
        if mode != DepositMode.STANDARD:
            raise PlanningError(f"Standard permissions cannot plan a {mode.value} deposit")
        if execute_kind == ExecuteKind.ZAP_DEPOSIT:
            raise PlanningError("A standard deposit cannot execute a zap")

        steps.extend(ApproveToken(token=r.token, spender=r.spender) for r in pending)

        permit = None
        if requirements.needs_batch_signature:
            amounts = {
                r.token: r.required_amount
                for r in requirements.requirements
                if r.needs_batch_signature
            }
            permit = SignPermission(nonces=requirements.signature_tokens, amounts=amounts)
            now = int(time.time()) if now is None else now
            if cached_signature is not None and cached_signature.covers(amounts, now):
                logger.debug("plan_reuses_cached_signature", tokens=len(amounts))
            else:
                steps.append(permit)

        steps.append(
            Execute(execute_kind=execute_kind or ExecuteKind.CREATE_POSITION, permit=permit)
        )

    elif isinstance(requirements, ZapPermissions):
        if mode != DepositMode.ZAP:
            raise PlanningError(f"Zap permissions cannot plan a {mode.value} deposit")
        if execute_kind not in (None, ExecuteKind.ZAP_DEPOSIT):
            raise PlanningError(f"A zap cannot execute {execute_kind.value}")

        if pending:
            approvals = tuple(ApproveToken(token=r.token, spender=r.spender) for r in pending)
            steps.append(ApproveZapInputs(approvals=approvals))

        steps.append(Execute(execute_kind=ExecuteKind.ZAP_DEPOSIT))

    else:
        raise PlanningError(f"Unknown permission set: {type(requirements).__name__}")

    plan = Plan(mode=mode, steps=tuple(steps))
    logger.debug("steps_planned", mode=mode.value, steps=plan.step_ids)
    return plan


class PlannerState(str, Enum):
    IDLE = "idle"
    PLANNED = "planned"
    CONSUMED = "consumed"


class StepPlanner:
    """Stateful wrapper around `plan_steps`: Idle -> Planned -> Consumed.

    Re-planning while Planned replaces the pending plan. Once the executor
    has consumed a plan the planner must be reset before planning again.
    """

    def __init__(self) -> None:
        self.state = PlannerState.IDLE
        self._plan: Plan | None = None

    @property
    def plan(self) -> Plan | None:
        return self._plan

    def build(self, requirements: PermissionSet, mode: DepositMode, **kwargs) -> Plan:
        """Plan a deposit and move to Planned.

        Raises:
            PlanningError: If the current plan was already consumed
        """
        if self.state == PlannerState.CONSUMED:
            raise PlanningError("Plan already consumed; reset before planning again")
        self._plan = plan_steps(requirements, mode, **kwargs)
        self.state = PlannerState.PLANNED
        return self._plan

    def consume(self) -> Plan:
        """Hand the plan to the executor and move to Consumed.

        Raises:
            PlanningError: If there is no pending plan
        """
        if self.state != PlannerState.PLANNED or self._plan is None:
            raise PlanningError(f"No plan to consume (state: {self.state.value})")
        self.state = PlannerState.CONSUMED
        return self._plan

    def reset(self) -> None:
        self.state = PlannerState.IDLE
        self._plan = None


__all__ = ["plan_steps", "StepPlanner", "PlannerState"]
