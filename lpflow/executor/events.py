"""Events streamed by the step executor."""

from __future__ import annotations

from dataclasses import dataclass, field

from lpflow.errors import LpflowError
from lpflow.executor.classify import ErrorCategory, RecoveryAffordance


@dataclass(frozen=True)
class StepStarted:
    flow_id: str
    step_id: str
    index: int
    total: int


@dataclass(frozen=True)
class StepSucceeded:
    """A step finished. `tx_hash` is None for signatures and reused permits."""

    flow_id: str
    step_id: str
    tx_hash: str | None = None
    tx_hashes: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class StepFailed:
    """A step failed with a user-visible error.

    Attributes:
        reason: Underlying error message
        category: Failure category
        affordance: Recovery the caller should offer
        user_message: Short explanation for the user
        error: Typed pipeline error
    """

    flow_id: str
    step_id: str
    reason: str
    category: ErrorCategory
    affordance: RecoveryAffordance
    user_message: str
    error: LpflowError


@dataclass(frozen=True)
class FlowCompleted:
    flow_id: str
    tx_hash: str | None = None


StepEvent = StepStarted | StepSucceeded | StepFailed | FlowCompleted


__all__ = ["StepStarted", "StepSucceeded", "StepFailed", "FlowCompleted", "StepEvent"]
