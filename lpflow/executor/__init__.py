"""Resumable, single-flight execution of planned steps."""

from lpflow.executor.classify import (
    ClassifiedError,
    ErrorCategory,
    RecoveryAffordance,
    categorize_error,
    classify_error,
    extract_error_message,
    is_user_rejection,
)
from lpflow.executor.context import ExecutionContext, ExecutorState, ExecutorStatus
from lpflow.executor.events import (
    FlowCompleted,
    StepEvent,
    StepFailed,
    StepStarted,
    StepSucceeded,
)
from lpflow.executor.executor import StepExecutor
from lpflow.executor.store import (
    FlowKey,
    FlowState,
    FlowStore,
    InMemoryFlowStore,
    JsonFileFlowStore,
)

__all__ = [
    "StepExecutor",
    "ExecutionContext",
    "ExecutorState",
    "ExecutorStatus",
    "StepEvent",
    "StepStarted",
    "StepSucceeded",
    "StepFailed",
    "FlowCompleted",
    "FlowKey",
    "FlowState",
    "FlowStore",
    "InMemoryFlowStore",
    "JsonFileFlowStore",
    "ErrorCategory",
    "RecoveryAffordance",
    "ClassifiedError",
    "categorize_error",
    "classify_error",
    "extract_error_message",
    "is_user_rejection",
]
