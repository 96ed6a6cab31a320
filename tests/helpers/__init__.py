"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Token addresses, accounts and a pinned clock value
- factories: Snapshot, intent, request and config factory functions
"""

from tests.helpers.constants import (
    ACCOUNT,
    DAI,
    NATIVE,
    NOW,
    POOL_ID,
    POSITION_MANAGER,
    TOKEN_DECIMALS,
    USDC,
    WETH,
    ZAP_ROUTER,
)
from tests.helpers.factories import (
    FakeClock,
    collect,
    make_config,
    make_intent,
    make_request,
    make_snapshot,
    make_token,
    run_events,
)

__all__ = [
    # Constants
    "DAI",
    "USDC",
    "WETH",
    "NATIVE",
    "TOKEN_DECIMALS",
    "ACCOUNT",
    "POSITION_MANAGER",
    "ZAP_ROUTER",
    "POOL_ID",
    "NOW",
    # Factories
    "make_token",
    "make_snapshot",
    "make_intent",
    "make_config",
    "make_request",
    "FakeClock",
    "collect",
    "run_events",
]
