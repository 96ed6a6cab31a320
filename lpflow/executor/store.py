"""Durable flow state.

A flow is stored under a composite key (account, chain, token pair, tick
range) so a reloaded client can rediscover and resume it. Records are
deleted on completion or abandonment and ignored once older than the TTL.
"""

from __future__ import annotations

import hashlib
import os
import tempfile
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import BaseModel, Field, field_validator

from lpflow.constants import DEFAULT_FLOW_TTL_SECONDS
from lpflow.interfaces import DepositRequest
from lpflow.models.types import normalize_address
from lpflow.permissions.permit2 import CachedPermitSignature
from lpflow.steps.types import Plan, TransactionStep

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class FlowKey(BaseModel):
    """Identity of a flow across reloads."""

    account: str
    chain_id: int
    token0: str
    token1: str
    tick_lower: int
    tick_upper: int

    model_config = {"frozen": True}

    @field_validator("account", "token0", "token1")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return normalize_address(value)

    @classmethod
    def for_request(cls, request: DepositRequest) -> FlowKey:
        return cls(
            account=request.account,
            chain_id=request.chain_id,
            token0=request.token0,
            token1=request.token1,
            tick_lower=request.tick_lower,
            tick_upper=request.tick_upper,
        )

    def as_string(self) -> str:
        return (
            f"flow_{self.account}_{self.chain_id}_{self.token0}_{self.token1}"
            f"_{self.tick_lower}_{self.tick_upper}"
        )


class FlowState(BaseModel):
    """Progress of one flow.

    Attributes:
        flow_id: Random id assigned when the flow is first stored
        key: Composite key the flow is stored under
        plan: Steps of the flow
        request: Deposit parameters the flow executes
        completed_steps: Ids of steps (and zap sub-approvals) already done
        tx_hashes: Step id -> transaction hashes it produced
        cached_signature: Permit signature obtained by this flow
        created_at: When the flow was first stored
        failure_reason: Message of the last surfaced failure
    """

    flow_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    key: FlowKey
    plan: Plan
    request: DepositRequest
    completed_steps: set[str] = Field(default_factory=set)
    tx_hashes: dict[str, list[str]] = Field(default_factory=dict)
    cached_signature: CachedPermitSignature | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    failure_reason: str | None = None

    def next_step(self) -> tuple[int, TransactionStep] | None:
        """First step not yet completed, with its index."""
        for index, step in enumerate(self.plan.steps):
            if step.step_id not in self.completed_steps:
                return index, step
        return None

    @property
    def is_complete(self) -> bool:
        return self.next_step() is None

    def mark_completed(self, step_id: str, tx_hashes: list[str] | None = None) -> None:
        self.completed_steps.add(step_id)
        if tx_hashes:
            self.tx_hashes.setdefault(step_id, []).extend(tx_hashes)
        self.failure_reason = None
        self.updated_at = utc_now()

    def is_expired(self, ttl_seconds: int, now: datetime | None = None) -> bool:
        now = now or utc_now()
        return now - self.created_at > timedelta(seconds=ttl_seconds)


class FlowStore(Protocol):
    """Persistence for in-progress flows."""

    def find(self, key: FlowKey) -> FlowState | None:
        ...

    def save(self, state: FlowState) -> None:
        ...

    def delete(self, key: FlowKey) -> None:
        ...


class InMemoryFlowStore:
    """FlowStore for a single process; records are copied in and out."""

    def __init__(self, ttl_seconds: int = DEFAULT_FLOW_TTL_SECONDS, clock: Clock = utc_now):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._states: dict[FlowKey, FlowState] = {}

    def find(self, key: FlowKey) -> FlowState | None:
        state = self._states.get(key)
        if state is None:
            return None
        if state.is_expired(self.ttl_seconds, self.clock()):
            logger.debug("flow_expired", flow_id=state.flow_id)
            del self._states[key]
            return None
        return state.model_copy(deep=True)

    def save(self, state: FlowState) -> None:
        self._states[state.key] = state.model_copy(deep=True)

    def delete(self, key: FlowKey) -> None:
        self._states.pop(key, None)


class JsonFileFlowStore:
    """FlowStore keeping one JSON document per flow key in a directory."""

    def __init__(
        self,
        directory: str | Path,
        ttl_seconds: int = DEFAULT_FLOW_TTL_SECONDS,
        clock: Clock = utc_now,
    ):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def path_for(self, key: FlowKey) -> Path:
        digest = hashlib.sha256(key.as_string().encode()).hexdigest()[:32]
        return self.directory / f"flow_{digest}.json"

    def find(self, key: FlowKey) -> FlowState | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            state = FlowState.model_validate_json(path.read_text())
        except ValueError as e:
            logger.warning("flow_state_unreadable", path=str(path), error=str(e))
            path.unlink(missing_ok=True)
            return None
        if state.is_expired(self.ttl_seconds, self.clock()):
            logger.debug("flow_expired", flow_id=state.flow_id)
            path.unlink(missing_ok=True)
            return None
        return state

    def save(self, state: FlowState) -> None:
        path = self.path_for(state.key)
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=".flow_", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(state.model_dump_json())
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def delete(self, key: FlowKey) -> None:
        self.path_for(key).unlink(missing_ok=True)


__all__ = [
    "FlowKey",
    "FlowState",
    "FlowStore",
    "InMemoryFlowStore",
    "JsonFileFlowStore",
    "utc_now",
]
