"""Domain models for the liquidity position pipeline."""

from lpflow.models.deposit import (
    CalculatedDeposit,
    DepositIntent,
    DepositMode,
    InputSide,
    format_units,
    parse_units,
)
from lpflow.models.pool import PoolSnapshot, PriceRegime, TickRange, is_full_range
from lpflow.models.token import Token, sort_tokens
from lpflow.models.types import Address, Uint256

__all__ = [
    # Types
    "Address",
    "Uint256",
    # Tokens and pools
    "Token",
    "sort_tokens",
    "PoolSnapshot",
    "PriceRegime",
    "TickRange",
    "is_full_range",
    # Deposits
    "InputSide",
    "DepositMode",
    "DepositIntent",
    "CalculatedDeposit",
    "parse_units",
    "format_units",
]
