"""Collaborators the pipeline consumes but does not implement.

Each is a Protocol so tests can swap in the mocks from `lpflow.chain.mocks`
and production code can use the web3/httpx adapters in `lpflow.chain`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel

from lpflow.models.deposit import DepositMode
from lpflow.models.pool import PoolSnapshot, TickRange
from lpflow.permissions.permit2 import PermitBatch
from lpflow.steps.types import ExecuteKind


@dataclass(frozen=True)
class TransactionRequest:
    """An unsigned transaction: target, calldata and native value."""

    to: str
    data: str
    value: int = 0


class ReceiptStatus(str, Enum):
    SUCCESS = "success"
    REVERTED = "reverted"


@dataclass(frozen=True)
class Receipt:
    """Outcome of a mined transaction."""

    tx_hash: str
    status: ReceiptStatus
    revert_reason: str | None = None


class DepositRequest(BaseModel):
    """Validated deposit parameters handed to the transaction builder.

    Amounts are raw units in the pool's sorted order. `amount0` and `amount1`
    are the calculated amounts; `amount0_max` and `amount1_max` add slippage.
    """

    account: str
    chain_id: int
    pool_id: str
    token0: str
    token1: str
    tick_lower: int
    tick_upper: int
    liquidity: int
    amount0: int
    amount1: int
    amount0_max: int
    amount1_max: int
    mode: DepositMode = DepositMode.STANDARD
    token_id: int | None = None
    input_token: str | None = None
    input_amount: int | None = None
    swap_amount: int | None = None

    model_config = {"populate_by_name": True}

    @property
    def tick_range(self) -> TickRange:
        return TickRange(self.tick_lower, self.tick_upper)

    def required_amounts(self) -> dict[str, int]:
        """Token address -> raw amount the deposit pulls from the account."""
        if self.mode == DepositMode.ZAP and self.input_token is not None:
            other, other_amount = (
                (self.token1, self.amount1)
                if self.input_token.lower() == self.token0.lower()
                else (self.token0, self.amount0)
            )
            required = {self.input_token.lower(): self.input_amount or 0}
            if other_amount > 0:
                required[other.lower()] = other_amount
            return required
        return {
            token.lower(): amount
            for token, amount in ((self.token0, self.amount0), (self.token1, self.amount1))
            if amount > 0
        }


class ExecuteCall(BaseModel):
    """Everything the builder needs to produce the final transaction."""

    kind: ExecuteKind
    deposit: DepositRequest
    permit_batch: PermitBatch | None = None
    signature: str | None = None


class PoolDataSource(Protocol):
    """Source of the latest pool state."""

    async def get_snapshot(self, pool_id: str) -> PoolSnapshot:
        """Return the most recent snapshot for `pool_id`."""
        ...


class WalletSigner(Protocol):
    """The connected wallet. Any method may raise when the user rejects."""

    @property
    def address(self) -> str:
        ...

    async def send_transaction(self, request: TransactionRequest) -> str:
        """Submit a transaction and return its hash."""
        ...

    async def sign_typed_data(self, payload: dict[str, Any]) -> str:
        """Sign an EIP-712 payload and return the signature."""
        ...

    async def wait_for_receipt(self, tx_hash: str) -> Receipt:
        """Wait until `tx_hash` is mined."""
        ...


class AllowanceReader(Protocol):
    """Reads allowance state from the chain."""

    async def get_erc20_allowance(self, owner: str, token: str, spender: str) -> int:
        ...

    async def get_permit2_allowance(
        self, owner: str, token: str, spender: str
    ) -> tuple[int, int, int]:
        """Return (amount, expiration, nonce) of a Permit2 allowance."""
        ...


class TransactionBuilder(Protocol):
    """Produces calldata for the steps of a flow."""

    async def build_approve(self, token: str, spender: str, amount: int) -> TransactionRequest:
        ...

    async def build_execute(self, call: ExecuteCall) -> TransactionRequest:
        ...


__all__ = [
    "TransactionRequest",
    "ReceiptStatus",
    "Receipt",
    "DepositRequest",
    "ExecuteCall",
    "PoolDataSource",
    "WalletSigner",
    "AllowanceReader",
    "TransactionBuilder",
]
