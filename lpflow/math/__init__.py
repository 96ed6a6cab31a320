"""Mathematical utilities for concentrated liquidity positions.

This package provides the numeric core of the pipeline:
- tick_math: exact TickMath and tick-spacing helpers
- price: decimal-aware tick <-> price conversion
- liquidity_math: liquidity <-> amount conversion
"""

from lpflow.math.liquidity_math import (
    get_amount0_for_liquidity,
    get_amount1_for_liquidity,
    get_amounts_for_liquidity,
    get_liquidity_for_amount0,
    get_liquidity_for_amount1,
    get_liquidity_for_amounts,
)
from lpflow.math.price import (
    INFINITY_SYMBOL,
    Price,
    convert_price_to_valid_tick,
    format_tick_price,
    price_to_tick,
    sqrt_price_x96_to_price,
    tick_to_price,
)
from lpflow.math.tick_math import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    Q96,
    Q192,
    get_addable_tokens,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
    get_tick_bounds,
    is_position_in_range,
    is_tick_at_limit,
    nearest_usable_tick,
)

__all__ = [
    "Q96",
    "Q192",
    "MIN_TICK",
    "MAX_TICK",
    "MIN_SQRT_RATIO",
    "MAX_SQRT_RATIO",
    "get_sqrt_ratio_at_tick",
    "get_tick_at_sqrt_ratio",
    "nearest_usable_tick",
    "get_tick_bounds",
    "is_tick_at_limit",
    "is_position_in_range",
    "get_addable_tokens",
    "Price",
    "INFINITY_SYMBOL",
    "tick_to_price",
    "price_to_tick",
    "sqrt_price_x96_to_price",
    "format_tick_price",
    "convert_price_to_valid_tick",
    "get_liquidity_for_amount0",
    "get_liquidity_for_amount1",
    "get_liquidity_for_amounts",
    "get_amount0_for_liquidity",
    "get_amount1_for_liquidity",
    "get_amounts_for_liquidity",
]
