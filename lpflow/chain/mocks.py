"""In-memory collaborators for tests and dry runs.

Configure them with expected results and inspect `calls` for assertions.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from lpflow.interfaces import ExecuteCall, Receipt, ReceiptStatus, TransactionRequest
from lpflow.models.pool import PoolSnapshot
from lpflow.models.types import normalize_address

from .encoding import build_approve_transaction


class MockPoolDataSource:
    """Serves snapshots from a dict; replace entries to simulate price moves."""

    def __init__(self, snapshots: dict[str, PoolSnapshot] | None = None):
        self.snapshots = snapshots or {}
        self.calls: list[str] = []

    def set(self, snapshot: PoolSnapshot) -> None:
        self.snapshots[snapshot.pool_id] = snapshot

    async def get_snapshot(self, pool_id: str) -> PoolSnapshot:
        self.calls.append(pool_id)
        if pool_id not in self.snapshots:
            raise KeyError(f"Unknown pool: {pool_id}")
        return self.snapshots[pool_id]


class MockAllowanceReader:
    """Allowance state keyed by (token, spender) and by token for Permit2."""

    def __init__(
        self,
        erc20: dict[tuple[str, str], int] | None = None,
        permit2: dict[str, tuple[int, int, int]] | None = None,
    ):
        """Initialize mock reader.

        Args:
            erc20: (token, spender) -> ERC20 allowance; missing entries read as 0
            permit2: token -> (amount, expiration, nonce); missing entries read as zeros
        """
        self.erc20 = {
            (normalize_address(t), normalize_address(s)): v for (t, s), v in (erc20 or {}).items()
        }
        self.permit2 = {normalize_address(t): v for t, v in (permit2 or {}).items()}
        self.calls: list[tuple[str, str, str, str]] = []  # (method, owner, token, spender)

    def set_erc20(self, token: str, spender: str, amount: int) -> None:
        self.erc20[(normalize_address(token), normalize_address(spender))] = amount

    def set_permit2(self, token: str, amount: int, expiration: int, nonce: int = 0) -> None:
        self.permit2[normalize_address(token)] = (amount, expiration, nonce)

    async def get_erc20_allowance(self, owner: str, token: str, spender: str) -> int:
        self.calls.append(("erc20", owner, token, spender))
        return self.erc20.get((normalize_address(token), normalize_address(spender)), 0)

    async def get_permit2_allowance(
        self, owner: str, token: str, spender: str
    ) -> tuple[int, int, int]:
        self.calls.append(("permit2", owner, token, spender))
        return self.permit2.get(normalize_address(token), (0, 0, 0))


class MockWalletSigner:
    """Wallet that hands out sequential hashes and a fixed signature.

    Queue failures with `fail_next`, hold a call open with `gate`, and
    observe submitted transactions through `on_send`.
    """

    def __init__(
        self,
        address: str = "0x" + "ab" * 20,
        signature: str = "0x" + "11" * 65,
        on_send: Callable[[TransactionRequest], None] | None = None,
        gate: asyncio.Event | None = None,
    ):
        self._address = normalize_address(address)
        self.signature = signature
        self.on_send = on_send
        self.gate = gate
        self.failures: dict[str, list[BaseException]] = {}
        self.reverts: set[str] = set()
        self.calls: list[tuple[str, Any]] = []
        self._nonce = 0

    @property
    def address(self) -> str:
        return self._address

    def fail_next(self, method: str, error: BaseException) -> None:
        """Raise `error` from the next call to `method`."""
        self.failures.setdefault(method, []).append(error)

    def revert_next_send(self) -> None:
        """Make the receipt of the next submitted transaction report a revert."""
        self.reverts.add(f"0x{self._nonce + 1:064x}")

    def _maybe_fail(self, method: str) -> None:
        pending = self.failures.get(method)
        if pending:
            raise pending.pop(0)

    async def send_transaction(self, request: TransactionRequest) -> str:
        self.calls.append(("send_transaction", request))
        if self.gate is not None:
            await self.gate.wait()
        self._maybe_fail("send_transaction")
        self._nonce += 1
        if self.on_send is not None:
            self.on_send(request)
        return f"0x{self._nonce:064x}"

    async def sign_typed_data(self, payload: dict[str, Any]) -> str:
        self.calls.append(("sign_typed_data", payload))
        if self.gate is not None:
            await self.gate.wait()
        self._maybe_fail("sign_typed_data")
        return self.signature

    async def wait_for_receipt(self, tx_hash: str) -> Receipt:
        self.calls.append(("wait_for_receipt", tx_hash))
        self._maybe_fail("wait_for_receipt")
        if tx_hash in self.reverts:
            return Receipt(tx_hash, ReceiptStatus.REVERTED, "execution reverted")
        return Receipt(tx_hash, ReceiptStatus.SUCCESS)


class MockTransactionBuilder:
    """Encodes approvals for real and returns a placeholder execute call."""

    def __init__(self, execute_target: str = "0x" + "cd" * 20):
        self.execute_target = normalize_address(execute_target)
        self.calls: list[tuple[str, Any]] = []

    async def build_approve(self, token: str, spender: str, amount: int) -> TransactionRequest:
        self.calls.append(("build_approve", (token, spender, amount)))
        return build_approve_transaction(token, spender, amount)

    async def build_execute(self, call: ExecuteCall) -> TransactionRequest:
        self.calls.append(("build_execute", call))
        return TransactionRequest(to=self.execute_target, data="0x", value=0)


__all__ = [
    "MockPoolDataSource",
    "MockAllowanceReader",
    "MockWalletSigner",
    "MockTransactionBuilder",
]
