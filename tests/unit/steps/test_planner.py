"""Tests for the transaction step planner."""

import pytest

from lpflow.errors import PlanningError
from lpflow.models.deposit import DepositMode
from lpflow.models.types import UINT160_MAX, UINT256_MAX
from lpflow.permissions.permit2 import CachedPermitSignature, build_permit_batch
from lpflow.permissions.resolver import (
    PermissionRequirement,
    StandardPermissions,
    TokenAllowance,
    ZapPermissions,
    resolve_permissions_for_amounts,
)
from lpflow.steps.planner import PlannerState, StepPlanner, plan_steps
from lpflow.steps.types import (
    ApproveToken,
    ApproveZapInputs,
    Execute,
    ExecuteKind,
    Plan,
    SignPermission,
)
from tests.helpers import DAI, NOW, USDC, ZAP_ROUTER

FUTURE = NOW + 86_400


def standard(*requirements: PermissionRequirement) -> StandardPermissions:
    return StandardPermissions(frozenset(requirements))


def requirement(token: str, approve: bool, sign: bool = False, amount: int = 100):
    return PermissionRequirement(
        token=token,
        required_amount=amount,
        spender="0x000000000022d473030f116ddee9f6b43ac78ba3",
        needs_allowance_approval=approve,
        needs_batch_signature=sign,
    )


class TestStandardPlans:
    """Ordering of standard deposit plans."""

    def test_full_plan_order(self):
        """Approvals in canonical order, then the signature, then execute."""
        plan = plan_steps(
            standard(requirement(USDC, True, True), requirement(DAI, True, True)),
            DepositMode.STANDARD,
            now=NOW,
        )
        assert plan.step_ids == [
            f"approve:{DAI}",
            f"approve:{USDC}",
            "sign_permission",
            "execute:create_position",
        ]
        assert isinstance(plan.steps[2], SignPermission)
        assert plan.steps[2].amounts == {DAI: 100, USDC: 100}
        assert plan.approval_tokens == [DAI, USDC]

    def test_approvals_use_unlimited_amount(self):
        plan = plan_steps(standard(requirement(DAI, True)), DepositMode.STANDARD)
        step = plan.steps[0]
        assert isinstance(step, ApproveToken)
        assert step.amount == UINT256_MAX

    def test_satisfied_approval_omitted(self, config):
        """Token A approved for exactly the required amount, token B not at all."""
        permissions = resolve_permissions_for_amounts(
            DepositMode.STANDARD,
            {DAI: 1000, USDC: 2000},
            [
                TokenAllowance(DAI, 1000, UINT160_MAX, FUTURE),
                TokenAllowance(USDC, 0, UINT160_MAX, FUTURE),
            ],
            now=NOW,
            config=config,
        )
        plan = plan_steps(permissions, DepositMode.STANDARD, now=NOW)

        approvals = [s for s in plan.steps if isinstance(s, ApproveToken)]
        assert [a.token for a in approvals] == [USDC]
        assert plan.step_ids == [f"approve:{USDC}", "execute:create_position"]

    def test_nothing_outstanding_is_execute_only(self):
        plan = plan_steps(standard(requirement(DAI, False)), DepositMode.STANDARD)
        assert plan.step_ids == ["execute:create_position"]

    def test_increase_position(self):
        plan = plan_steps(
            standard(), DepositMode.STANDARD, execute_kind=ExecuteKind.INCREASE_POSITION
        )
        assert plan.steps == (Execute(execute_kind=ExecuteKind.INCREASE_POSITION),)

    def test_cached_signature_skips_signing(self, config):
        batch = build_permit_batch([(DAI, 0)], now=NOW, config=config)
        cached = CachedPermitSignature(batch=batch, signature="0x" + "11" * 65)
        permissions = standard(requirement(DAI, False, True))

        plan = plan_steps(permissions, DepositMode.STANDARD, cached_signature=cached, now=NOW)
        assert plan.step_ids == ["execute:create_position"]

        expired = plan_steps(
            permissions,
            DepositMode.STANDARD,
            cached_signature=cached,
            now=batch.sig_deadline,
        )
        assert "sign_permission" in expired.step_ids

    def test_execute_keeps_permit_when_signing_skipped(self, config):
        batch = build_permit_batch([(DAI, 0)], now=NOW, config=config)
        cached = CachedPermitSignature(batch=batch, signature="0x" + "11" * 65)
        plan = plan_steps(
            standard(requirement(DAI, False, True)),
            DepositMode.STANDARD,
            cached_signature=cached,
            now=NOW,
        )

        assert plan.execute_step.permit == SignPermission(nonces={DAI: 0}, amounts={DAI: 100})
        resign = plan.with_sign_step()
        assert resign.step_ids == ["sign_permission", "execute:create_position"]
        assert resign.steps[0] == plan.execute_step.permit
        assert resign.with_sign_step() == resign

    def test_no_permit_needed_leaves_plan_unchanged(self):
        plan = plan_steps(standard(requirement(DAI, True)), DepositMode.STANDARD)
        assert plan.execute_step.permit is None
        assert plan.with_sign_step() == plan

    def test_cached_signature_for_other_tokens_is_not_reused(self, config):
        batch = build_permit_batch([(USDC, 0)], now=NOW, config=config)
        cached = CachedPermitSignature(batch=batch, signature="0x" + "11" * 65)
        plan = plan_steps(
            standard(requirement(DAI, False, True)),
            DepositMode.STANDARD,
            cached_signature=cached,
            now=NOW,
        )
        assert "sign_permission" in plan.step_ids

    def test_zap_execute_rejected(self):
        with pytest.raises(PlanningError):
            plan_steps(standard(), DepositMode.STANDARD, execute_kind=ExecuteKind.ZAP_DEPOSIT)

    def test_mode_mismatch_rejected(self):
        with pytest.raises(PlanningError):
            plan_steps(standard(), DepositMode.ZAP)
        with pytest.raises(PlanningError):
            plan_steps(ZapPermissions(), DepositMode.STANDARD)


class TestZapPlans:
    """Zap plans collapse approvals into one logical step."""

    def zap_requirement(self, token: str, approve: bool) -> PermissionRequirement:
        return PermissionRequirement(
            token=token,
            required_amount=100,
            spender=ZAP_ROUTER,
            needs_allowance_approval=approve,
        )

    def test_single_approving_inputs_step(self):
        permissions = ZapPermissions(
            frozenset({self.zap_requirement(USDC, True), self.zap_requirement(DAI, True)})
        )
        plan = plan_steps(permissions, DepositMode.ZAP)

        assert plan.step_ids == ["approve_zap_inputs", "execute:zap_deposit"]
        step = plan.steps[0]
        assert isinstance(step, ApproveZapInputs)
        assert [a.token for a in step.approvals] == [DAI, USDC]
        assert all(a.spender == ZAP_ROUTER for a in step.approvals)
        assert plan.approval_tokens == [DAI, USDC]

    def test_satisfied_inputs_omitted(self):
        permissions = ZapPermissions(
            frozenset({self.zap_requirement(DAI, False), self.zap_requirement(USDC, True)})
        )
        step = plan_steps(permissions, DepositMode.ZAP).steps[0]
        assert [a.token for a in step.approvals] == [USDC]

    def test_all_satisfied(self):
        permissions = ZapPermissions(frozenset({self.zap_requirement(DAI, False)}))
        assert plan_steps(permissions, DepositMode.ZAP).step_ids == ["execute:zap_deposit"]

    def test_non_zap_execute_rejected(self):
        with pytest.raises(PlanningError):
            plan_steps(
                ZapPermissions(), DepositMode.ZAP, execute_kind=ExecuteKind.CREATE_POSITION
            )


class TestPlanSerialization:
    def test_plan_survives_json(self):
        """Stored flows load their plan back with the same step variants."""
        plan = plan_steps(
            standard(requirement(DAI, True, True), requirement(USDC, False, True)),
            DepositMode.STANDARD,
            now=NOW,
        )
        loaded = Plan.model_validate_json(plan.model_dump_json())
        assert loaded == plan
        assert [type(s) for s in loaded.steps] == [ApproveToken, SignPermission, Execute]
        assert loaded.index_of("sign_permission") == 1


class TestStepPlanner:
    """Idle -> Planned -> Consumed."""

    def test_lifecycle(self):
        planner = StepPlanner()
        assert planner.state == PlannerState.IDLE
        assert planner.plan is None

        plan = planner.build(standard(requirement(DAI, True)), DepositMode.STANDARD)
        assert planner.state == PlannerState.PLANNED

        # Re-planning while Planned replaces the plan
        replanned = planner.build(standard(), DepositMode.STANDARD)
        assert planner.plan == replanned != plan

        assert planner.consume() == replanned
        assert planner.state == PlannerState.CONSUMED

        with pytest.raises(PlanningError):
            planner.build(standard(), DepositMode.STANDARD)
        with pytest.raises(PlanningError):
            planner.consume()

        planner.reset()
        assert planner.state == PlannerState.IDLE
        planner.build(standard(), DepositMode.STANDARD)

    def test_consume_without_plan(self):
        with pytest.raises(PlanningError):
            StepPlanner().consume()
