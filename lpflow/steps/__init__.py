"""Transaction steps and the step planner."""

from lpflow.steps.planner import PlannerState, StepPlanner, plan_steps
from lpflow.steps.types import (
    ApproveToken,
    ApproveZapInputs,
    Execute,
    ExecuteKind,
    Plan,
    SignPermission,
    TransactionStep,
)

__all__ = [
    "ExecuteKind",
    "ApproveToken",
    "ApproveZapInputs",
    "SignPermission",
    "Execute",
    "TransactionStep",
    "Plan",
    "plan_steps",
    "StepPlanner",
    "PlannerState",
]
