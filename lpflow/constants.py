"""Protocol constants for the liquidity position pipeline.

Centralizes well-known addresses and protocol parameters.
"""

from lpflow.models.types import is_valid_address


def _validate_address(name: str, address: str) -> str:
    """Validate and return a contract address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


# Sentinel used for the chain's native currency in pool keys
NATIVE_ADDRESS = _validate_address("native", "0x0000000000000000000000000000000000000000")

# Canonical Permit2 deployment (same address on every chain)
PERMIT2_ADDRESS = _validate_address("Permit2", "0x000000000022d473030f116ddee9f6b43ac78ba3")
PERMIT2_DOMAIN_NAME = "Permit2"

# Permit durations
PERMIT_EXPIRATION_DURATION_SECONDS = 30 * 24 * 60 * 60  # 30 days
PERMIT_SIG_DEADLINE_DURATION_SECONDS = 30 * 60  # 30 minutes

# Basis-point denominator for slippage
BPS_DENOMINATOR = 10_000

# Default slippage tolerance applied to execute amounts (0.5%)
DEFAULT_SLIPPAGE_BPS = 50

# Stored flows older than this are ignored on rediscovery (1 day)
DEFAULT_FLOW_TTL_SECONDS = 24 * 60 * 60
