"""Request and response bodies of the HTTP API.

Field names are camelCase on the wire; uint values travel as decimal
strings.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from lpflow.models.deposit import DepositMode, InputSide
from lpflow.models.pool import PoolSnapshot, PriceRegime
from lpflow.models.token import Token
from lpflow.models.types import Address, Uint256
from lpflow.steps.types import ExecuteKind


class TokenSchema(BaseModel):
    address: Address
    decimals: int = Field(ge=0, le=255)
    symbol: str | None = None

    def to_token(self) -> Token:
        return Token(self.address, self.decimals, self.symbol)


class PoolSnapshotSchema(BaseModel):
    """Pool state; tokens must be given in sorted (currency0, currency1) order."""

    pool_id: str = Field(alias="poolId")
    token0: TokenSchema
    token1: TokenSchema
    current_tick: int = Field(alias="currentTick")
    sqrt_price_x96: Uint256 = Field(alias="sqrtPriceX96")
    liquidity: Uint256 = "0"
    tick_spacing: int = Field(alias="tickSpacing", gt=0)

    model_config = {"populate_by_name": True}

    def to_snapshot(self) -> PoolSnapshot:
        """Raises ValueError if the state is not a valid pool snapshot."""
        return PoolSnapshot(
            pool_id=self.pool_id,
            token0=self.token0.to_token(),
            token1=self.token1.to_token(),
            current_tick=self.current_tick,
            sqrt_price_x96=int(self.sqrt_price_x96),
            liquidity=int(self.liquidity),
            tick_spacing=self.tick_spacing,
        )


class CalculateRequest(BaseModel):
    pool: PoolSnapshotSchema
    tick_lower: int = Field(alias="tickLower")
    tick_upper: int = Field(alias="tickUpper")
    input_side: InputSide = Field(alias="inputSide", description="Side in sorted token order")
    input_amount: Decimal = Field(alias="inputAmount", description="Human amount")
    mode: DepositMode = DepositMode.STANDARD
    swap_rate: Decimal = Field(default=Decimal(1), alias="swapRate", gt=0)

    model_config = {"populate_by_name": True}


class CalculateResponse(BaseModel):
    amount0: Uint256
    amount1: Uint256
    liquidity: Uint256
    amount0_formatted: str = Field(alias="amount0Formatted")
    amount1_formatted: str = Field(alias="amount1Formatted")
    regime: PriceRegime
    swap_amount: Uint256 | None = Field(default=None, alias="swapAmount")
    swap_output: Uint256 | None = Field(default=None, alias="swapOutput")

    model_config = {"populate_by_name": True}


class TokenAmountSchema(BaseModel):
    token: Address
    amount: Uint256


class AllowanceSchema(BaseModel):
    token: Address
    erc20_allowance: Uint256 = Field(alias="erc20Allowance")
    permit_amount: Uint256 = Field(default="0", alias="permitAmount")
    permit_expiration: int = Field(default=0, alias="permitExpiration", ge=0)
    permit_nonce: int = Field(default=0, alias="permitNonce", ge=0)

    model_config = {"populate_by_name": True}


class RequirementSchema(BaseModel):
    token: Address
    required_amount: Uint256 = Field(alias="requiredAmount")
    spender: Address
    needs_allowance_approval: bool = Field(alias="needsAllowanceApproval")
    needs_batch_signature: bool = Field(default=False, alias="needsBatchSignature")
    permit_nonce: int = Field(default=0, alias="permitNonce", ge=0)

    model_config = {"populate_by_name": True}


class CheckApprovalsRequest(BaseModel):
    mode: DepositMode = DepositMode.STANDARD
    amounts: list[TokenAmountSchema]
    allowances: list[AllowanceSchema] = Field(default_factory=list)
    now: int | None = Field(default=None, description="Unix time; defaults to server time")


class CheckApprovalsResponse(BaseModel):
    mode: DepositMode
    requirements: list[RequirementSchema]
    needs_batch_signature: bool = Field(alias="needsBatchSignature")
    typed_data: dict[str, Any] | None = Field(
        default=None,
        alias="typedData",
        description="EIP-712 PermitBatch payload when a signature is needed",
    )

    model_config = {"populate_by_name": True}


class PlanRequest(BaseModel):
    mode: DepositMode = DepositMode.STANDARD
    requirements: list[RequirementSchema]
    execute_kind: ExecuteKind | None = Field(default=None, alias="executeKind")

    model_config = {"populate_by_name": True}


class PlanStepSchema(BaseModel):
    step_id: str = Field(alias="stepId")
    kind: str
    detail: dict[str, Any]

    model_config = {"populate_by_name": True}


class PlanResponse(BaseModel):
    mode: DepositMode
    steps: list[PlanStepSchema]


__all__ = [
    "TokenSchema",
    "PoolSnapshotSchema",
    "CalculateRequest",
    "CalculateResponse",
    "TokenAmountSchema",
    "AllowanceSchema",
    "RequirementSchema",
    "CheckApprovalsRequest",
    "CheckApprovalsResponse",
    "PlanRequest",
    "PlanStepSchema",
    "PlanResponse",
]
