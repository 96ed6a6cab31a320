"""lpflow - concentrated liquidity position transaction pipeline."""

from lpflow.calculator import compute_dependent_amount, compute_two_sided_deposit
from lpflow.permissions.resolver import resolve_required_permissions
from lpflow.pipeline import LiquidityPipeline, build_deposit_request, fetch_allowances
from lpflow.steps.planner import plan_steps

__version__ = "0.1.0"
__all__ = [
    "LiquidityPipeline",
    "compute_dependent_amount",
    "compute_two_sided_deposit",
    "resolve_required_permissions",
    "plan_steps",
    "build_deposit_request",
    "fetch_allowances",
    "__version__",
]
