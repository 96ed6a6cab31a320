"""Explicit execution context shared by executors.

Everything that would otherwise be module-level state lives here: the
single-flight registry, queued close requests, per-flow status and the
permit signature cache. Independent contexts never interfere, so each
session (or browser tab) gets its own.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum

from lpflow.errors import ExecutorBusy
from lpflow.executor.store import FlowKey
from lpflow.permissions.permit2 import CachedPermitSignature


class ExecutorState(str, Enum):
    IDLE = "idle"
    LOCKED = "locked"
    ERROR_REPORTED = "error_reported"
    COMPLETED = "completed"


@dataclass(frozen=True)
class ExecutorStatus:
    state: ExecutorState
    step_index: int | None = None


IDLE = ExecutorStatus(ExecutorState.IDLE)


class ExecutionContext:
    """Shared mutable state of the executors of one session."""

    def __init__(self) -> None:
        self._in_flight: set[FlowKey] = set()
        self._close_requested: set[FlowKey] = set()
        self._status: dict[FlowKey, ExecutorStatus] = {}
        self._signatures: dict[FlowKey, CachedPermitSignature] = {}

    # Single flight

    def acquire(self, key: FlowKey) -> None:
        """Claim `key` for one execution.

        Check and claim happen without yielding to the event loop.

        Raises:
            ExecutorBusy: If the flow is already executing
        """
        if key in self._in_flight:
            raise ExecutorBusy(f"Flow {key.as_string()} is already executing")
        self._in_flight.add(key)

    def release(self, key: FlowKey) -> None:
        self._in_flight.discard(key)

    def is_locked(self, key: FlowKey) -> bool:
        return key in self._in_flight

    # Close requests

    def request_close(self, key: FlowKey) -> None:
        """Stop auto-advancing `key` once its in-flight step finishes."""
        self._close_requested.add(key)

    def close_requested(self, key: FlowKey) -> bool:
        return key in self._close_requested

    def clear_close(self, key: FlowKey) -> None:
        self._close_requested.discard(key)

    # Status

    def status(self, key: FlowKey) -> ExecutorStatus:
        return self._status.get(key, IDLE)

    def set_status(self, key: FlowKey, state: ExecutorState, step_index: int | None = None) -> None:
        self._status[key] = ExecutorStatus(state, step_index)

    # Signature cache

    def cache_signature(self, key: FlowKey, signature: CachedPermitSignature) -> None:
        self._signatures[key] = signature

    def cached_signature(
        self, key: FlowKey, now: int | None = None
    ) -> CachedPermitSignature | None:
        """Cached signature for `key`, dropping it once past its deadline."""
        signature = self._signatures.get(key)
        if signature is None:
            return None
        now = int(time.time()) if now is None else now
        if signature.is_expired(now):
            del self._signatures[key]
            return None
        return signature

    def drop_signature(self, key: FlowKey) -> None:
        self._signatures.pop(key, None)


__all__ = ["ExecutionContext", "ExecutorState", "ExecutorStatus"]
