"""Exact integer TickMath for concentrated liquidity pools.

Ticks index a logarithmic price grid where price = 1.0001^tick. Prices are
carried as sqrt(price) * 2^96 ("sqrtPriceX96"), computed here with the same
bit-constant multiplication the pool contracts use, so every value matches
on-chain state exactly.
"""

from __future__ import annotations

import math

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
]

# Fixed-point scale of sqrtPriceX96
Q96 = 2**96
Q192 = 2**192

MIN_TICK = -887272
MAX_TICK = 887272

# sqrt ratios at MIN_TICK and MAX_TICK
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# Q128 multipliers for each bit of |tick|: 1 / sqrt(1.0001)^(2^i)
_TICK_RATIOS = (
    0xFFFCB933BD6FAD37AA2D162D1A594001,
    0xFFF97272373D413259A46990580E213A,
    0xFFF2E50F5F656932EF12357CF3C7FDCC,
    0xFFE5CACA7E10E4E61C3624EAA0941CD0,
    0xFFCB9843D60F6159C9DB58835C926644,
    0xFF973B41FA98C081472E6896DFB254C0,
    0xFF2EA16466C96A3843EC78B326B52861,
    0xFE5DEE046A99A2A811C461F1969C3053,
    0xFCBE86C7900A88AEDCFFC83B479AA3A4,
    0xF987A7253AC413176F2B074CF7815E54,
    0xF3392B0822B70005940C7A398E4B70F3,
    0xE7159475A2C29B7443B29C7FA6E889D9,
    0xD097F3BDFD2022B8845AD8F792AA5825,
    0xA9F746462D870FDF8A65DC1F90E061E5,
    0x70D869A156D2A1B890BB3DF62BAF32F7,
    0x31BE135F97D08FD981231505542FCFA6,
    0x9AA508B5B7A84E1C677DE54F3E99BC9,
    0x5D6AF8DEDB81196699C329225EE604,
    0x2216E584F5FA1EA926041BEDFE98,
    0x48A170391F7DC42444E8FA2,
)

_LOG_BASE = math.log(1.0001)


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """Calculate sqrt(1.0001^tick) * 2^96, rounded up.

    Args:
        tick: Tick index in [MIN_TICK, MAX_TICK]

    Returns:
        sqrtPriceX96 as an integer

    Raises:
        ValueError: If tick is outside the representable range
    """
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError(f"Tick {tick} out of bounds [{MIN_TICK}, {MAX_TICK}]")

    abs_tick = -tick if tick < 0 else tick

    ratio = _TICK_RATIOS[0] if abs_tick & 0x1 else 1 << 128
    for i in range(1, len(_TICK_RATIOS)):
        if abs_tick & (1 << i):
            ratio = (ratio * _TICK_RATIOS[i]) >> 128

    if tick > 0:
        ratio = ((1 << 256) - 1) // ratio

    # Q128.128 -> Q64.96, rounding up so get_tick_at_sqrt_ratio stays consistent
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """Return the greatest tick whose sqrt ratio is <= sqrt_price_x96.

    Uses a floating-point log estimate and then corrects it with exact
    integer comparisons, so the result is always exact.

    Raises:
        ValueError: If sqrt_price_x96 is outside [MIN_SQRT_RATIO, MAX_SQRT_RATIO)
    """
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise ValueError(f"sqrtPriceX96 {sqrt_price_x96} out of bounds")

    # price = (sqrt / 2^96)^2 -> tick ~= 2 * log(sqrt / 2^96) / log(1.0001)
    log_sqrt = math.log(sqrt_price_x96) - 96 * math.log(2)
    tick = math.floor(2 * log_sqrt / _LOG_BASE)
    tick = max(MIN_TICK, min(MAX_TICK - 1, tick))

    while tick > MIN_TICK and get_sqrt_ratio_at_tick(tick) > sqrt_price_x96:
        tick -= 1
    while tick < MAX_TICK - 1 and get_sqrt_ratio_at_tick(tick + 1) <= sqrt_price_x96:
        tick += 1
    return tick


def nearest_usable_tick(tick: int, tick_spacing: int) -> int:
    """Round a tick to the nearest multiple of tick_spacing.

    Ties round toward positive infinity (e.g. 5 -> 10 and -5 -> 0 for
    spacing 10). A result beyond the tick bounds is pulled one spacing back
    inside, so the returned tick is always usable.

    Raises:
        ValueError: If tick_spacing is not positive or tick is out of bounds
    """
    if tick_spacing <= 0:
        raise ValueError(f"Tick spacing must be positive: {tick_spacing}")
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError(f"Tick {tick} out of bounds [{MIN_TICK}, {MAX_TICK}]")

    rounded = (2 * tick + tick_spacing) // (2 * tick_spacing) * tick_spacing
    if rounded < MIN_TICK:
        return rounded + tick_spacing
    if rounded > MAX_TICK:
        return rounded - tick_spacing
    return rounded


def get_tick_bounds(tick_spacing: int) -> tuple[int, int]:
    """Minimum and maximum usable ticks for a tick spacing (the full range)."""
    return (
        nearest_usable_tick(MIN_TICK, tick_spacing),
        nearest_usable_tick(MAX_TICK, tick_spacing),
    )


def is_tick_at_limit(tick: int, tick_spacing: int) -> tuple[bool, bool]:
    """Return (is_at_min, is_at_max) for a tick under the given spacing."""
    min_tick, max_tick = get_tick_bounds(tick_spacing)
    return tick <= min_tick, tick >= max_tick


def is_position_in_range(current_tick: int, tick_lower: int, tick_upper: int) -> bool:
    """A position is active when tick_lower <= current_tick < tick_upper."""
    return tick_lower <= current_tick < tick_upper


def get_addable_tokens(current_tick: int, tick_lower: int, tick_upper: int) -> tuple[bool, bool]:
    """Return (can_add_token0, can_add_token1) for a range at the current tick.

    - Price below the range: the position is entirely token0
    - Price at or above the upper tick: the position is entirely token1
    - Otherwise both tokens are needed
    """
    if current_tick < tick_lower:
        return True, False
    if current_tick >= tick_upper:
        return False, True
    return True, True
