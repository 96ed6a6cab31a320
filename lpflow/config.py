"""Pipeline configuration."""

import os
from dataclasses import dataclass, field

from lpflow.constants import (
    DEFAULT_FLOW_TTL_SECONDS,
    DEFAULT_SLIPPAGE_BPS,
    NATIVE_ADDRESS,
    PERMIT2_ADDRESS,
    PERMIT_EXPIRATION_DURATION_SECONDS,
    PERMIT_SIG_DEADLINE_DURATION_SECONDS,
)


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class PipelineConfig:
    """Centralized configuration for planning and executing deposit flows.

    Attributes:
        chain_id: Chain the flows run on (part of the flow key and permit domain)
        permit2_address: Spender of ERC20 approvals in standard mode
        zap_router_address: Spender of ERC20 approvals in zap mode
        position_manager_address: Spender named in Permit2 batch signatures
        permit_expiration_seconds: Lifetime of a signed Permit2 allowance
        permit_sig_deadline_seconds: Lifetime of the signature itself
        slippage_bps: Tolerance applied to amounts sent with the execute step
        max_tick_drift: Maximum tick movement tolerated between planning and
            executing before the snapshot is considered stale
        flow_ttl_seconds: Stored flows older than this are not resumed
        auto_advance: Run approval/signature steps back-to-back without a
            separate call per step
        flow_store_dir: Directory for durable flow state (None = in memory)
    """

    chain_id: int = 1
    permit2_address: str = PERMIT2_ADDRESS
    zap_router_address: str = NATIVE_ADDRESS
    position_manager_address: str = NATIVE_ADDRESS
    permit_expiration_seconds: int = PERMIT_EXPIRATION_DURATION_SECONDS
    permit_sig_deadline_seconds: int = PERMIT_SIG_DEADLINE_DURATION_SECONDS
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    max_tick_drift: int = 100
    flow_ttl_seconds: int = DEFAULT_FLOW_TTL_SECONDS
    auto_advance: bool = True
    flow_store_dir: str | None = field(default=None)

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Build a config from LPFLOW_* environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            chain_id=int(os.environ.get("LPFLOW_CHAIN_ID", defaults.chain_id)),
            permit2_address=os.environ.get("LPFLOW_PERMIT2_ADDRESS", defaults.permit2_address),
            zap_router_address=os.environ.get(
                "LPFLOW_ZAP_ROUTER_ADDRESS", defaults.zap_router_address
            ),
            position_manager_address=os.environ.get(
                "LPFLOW_POSITION_MANAGER_ADDRESS", defaults.position_manager_address
            ),
            permit_expiration_seconds=int(
                os.environ.get(
                    "LPFLOW_PERMIT_EXPIRATION_SECONDS", defaults.permit_expiration_seconds
                )
            ),
            permit_sig_deadline_seconds=int(
                os.environ.get(
                    "LPFLOW_PERMIT_SIG_DEADLINE_SECONDS", defaults.permit_sig_deadline_seconds
                )
            ),
            slippage_bps=int(os.environ.get("LPFLOW_SLIPPAGE_BPS", defaults.slippage_bps)),
            max_tick_drift=int(os.environ.get("LPFLOW_MAX_TICK_DRIFT", defaults.max_tick_drift)),
            flow_ttl_seconds=int(
                os.environ.get("LPFLOW_FLOW_TTL_SECONDS", defaults.flow_ttl_seconds)
            ),
            auto_advance=_env_bool("LPFLOW_AUTO_ADVANCE", defaults.auto_advance),
            flow_store_dir=os.environ.get("LPFLOW_FLOW_STORE_DIR") or None,
        )


# Default configuration instance
DEFAULT_CONFIG = PipelineConfig()
