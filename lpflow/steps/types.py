"""Transaction step and plan models.

Steps are frozen pydantic models tagged by `kind`, so a plan serialises into
stored flow state and loads back unchanged.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from lpflow.models.deposit import DepositMode
from lpflow.models.types import UINT256_MAX


class ExecuteKind(str, Enum):
    """What the final step submits."""

    CREATE_POSITION = "create_position"
    INCREASE_POSITION = "increase_position"
    ZAP_DEPOSIT = "zap_deposit"


class ApproveToken(BaseModel):
    """ERC20 `approve(spender, amount)` for one token."""

    kind: Literal["approve_token"] = "approve_token"
    token: str
    spender: str
    amount: int = UINT256_MAX

    model_config = {"frozen": True}

    @property
    def step_id(self) -> str:
        return f"approve:{self.token}"


class ApproveZapInputs(BaseModel):
    """One logical step approving every zap input; each approval is its own transaction."""

    kind: Literal["approve_zap_inputs"] = "approve_zap_inputs"
    approvals: tuple[ApproveToken, ...]

    model_config = {"frozen": True}

    @property
    def step_id(self) -> str:
        return "approve_zap_inputs"


class SignPermission(BaseModel):
    """Off-chain Permit2 batch signature.

    Attributes:
        nonces: Token address -> current Permit2 nonce for every token the
            batch covers
        amounts: Token address -> raw amount the deposit needs
    """

    kind: Literal["sign_permission"] = "sign_permission"
    nonces: dict[str, int]
    amounts: dict[str, int]

    model_config = {"frozen": True}

    @property
    def step_id(self) -> str:
        return "sign_permission"


class Execute(BaseModel):
    """The final transaction; never followed by another step.

    Attributes:
        execute_kind: What the transaction submits
        permit: Signature the transaction depends on, kept even when a cached
            signature let the plan skip the signing step
    """

    kind: Literal["execute"] = "execute"
    execute_kind: ExecuteKind
    permit: SignPermission | None = None

    model_config = {"frozen": True}

    @property
    def step_id(self) -> str:
        return f"execute:{self.execute_kind.value}"


TransactionStep = Annotated[
    ApproveToken | ApproveZapInputs | SignPermission | Execute,
    Field(discriminator="kind"),
]


class Plan(BaseModel):
    """Ordered steps of one flow, always ending in a single Execute."""

    mode: DepositMode
    steps: tuple[TransactionStep, ...]

    model_config = {"frozen": True}

    @property
    def step_ids(self) -> list[str]:
        return [step.step_id for step in self.steps]

    @property
    def approval_tokens(self) -> list[str]:
        """Tokens approved by the plan, in execution order."""
        tokens = []
        for step in self.steps:
            if isinstance(step, ApproveToken):
                tokens.append(step.token)
            elif isinstance(step, ApproveZapInputs):
                tokens.extend(a.token for a in step.approvals)
        return tokens

    def index_of(self, step_id: str) -> int:
        return self.step_ids.index(step_id)

    @property
    def execute_step(self) -> Execute | None:
        if self.steps and isinstance(self.steps[-1], Execute):
            return self.steps[-1]
        return None

    def with_sign_step(self) -> Plan:
        """This plan with the Execute step's permit signed right before it.

        Returns the plan unchanged if it already signs or needs no permit.
        """
        execute = self.execute_step
        if execute is None or execute.permit is None:
            return self
        if any(isinstance(step, SignPermission) for step in self.steps):
            return self
        return Plan(mode=self.mode, steps=(*self.steps[:-1], execute.permit, execute))


__all__ = [
    "ExecuteKind",
    "ApproveToken",
    "ApproveZapInputs",
    "SignPermission",
    "Execute",
    "TransactionStep",
    "Plan",
]
