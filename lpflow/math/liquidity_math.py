"""Liquidity <-> token amount conversion in Q64.96 fixed point.

All inputs and outputs are integers: sqrt prices in sqrtPriceX96 form and
amounts in raw token units. Rounding direction is explicit on every
amount computation; liquidity derived from amounts always rounds down.
"""

from __future__ import annotations

from .tick_math import Q96

__all__ = [
    "get_liquidity_for_amount0",
    "get_liquidity_for_amount1",
    "get_liquidity_for_amounts",
    "get_amount0_for_liquidity",
    "get_amount1_for_liquidity",
    "get_amounts_for_liquidity",
]


def _sorted(sqrt_a_x96: int, sqrt_b_x96: int) -> tuple[int, int]:
    if sqrt_a_x96 > sqrt_b_x96:
        sqrt_a_x96, sqrt_b_x96 = sqrt_b_x96, sqrt_a_x96
    if sqrt_a_x96 <= 0:
        raise ValueError(f"sqrt price must be positive: {sqrt_a_x96}")
    if sqrt_a_x96 == sqrt_b_x96:
        raise ValueError("sqrt price bounds must differ")
    return sqrt_a_x96, sqrt_b_x96


def _div_round_up(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def get_liquidity_for_amount0(sqrt_a_x96: int, sqrt_b_x96: int, amount0: int) -> int:
    """Liquidity supported by amount0 between two sqrt prices.

    L = amount0 * sqrtA * sqrtB / (sqrtB - sqrtA)
    """
    sqrt_a_x96, sqrt_b_x96 = _sorted(sqrt_a_x96, sqrt_b_x96)
    numerator = amount0 * sqrt_a_x96 * sqrt_b_x96
    denominator = Q96 * (sqrt_b_x96 - sqrt_a_x96)
    return numerator // denominator


def get_liquidity_for_amount1(sqrt_a_x96: int, sqrt_b_x96: int, amount1: int) -> int:
    """Liquidity supported by amount1 between two sqrt prices.

    L = amount1 / (sqrtB - sqrtA)
    """
    sqrt_a_x96, sqrt_b_x96 = _sorted(sqrt_a_x96, sqrt_b_x96)
    return amount1 * Q96 // (sqrt_b_x96 - sqrt_a_x96)


def get_liquidity_for_amounts(
    sqrt_price_x96: int,
    sqrt_a_x96: int,
    sqrt_b_x96: int,
    amount0: int,
    amount1: int,
) -> int:
    """Maximum liquidity for the given amounts at the current price.

    Below the range only amount0 counts, above it only amount1; in range the
    binding side (the smaller liquidity) wins.
    """
    sqrt_a_x96, sqrt_b_x96 = _sorted(sqrt_a_x96, sqrt_b_x96)

    if sqrt_price_x96 <= sqrt_a_x96:
        return get_liquidity_for_amount0(sqrt_a_x96, sqrt_b_x96, amount0)
    if sqrt_price_x96 >= sqrt_b_x96:
        return get_liquidity_for_amount1(sqrt_a_x96, sqrt_b_x96, amount1)

    liquidity0 = get_liquidity_for_amount0(sqrt_price_x96, sqrt_b_x96, amount0)
    liquidity1 = get_liquidity_for_amount1(sqrt_a_x96, sqrt_price_x96, amount1)
    return min(liquidity0, liquidity1)


def get_amount0_for_liquidity(
    sqrt_a_x96: int, sqrt_b_x96: int, liquidity: int, round_up: bool = False
) -> int:
    """Token0 amount backing `liquidity` between two sqrt prices.

    amount0 = L * (sqrtB - sqrtA) / (sqrtA * sqrtB)
    """
    sqrt_a_x96, sqrt_b_x96 = _sorted(sqrt_a_x96, sqrt_b_x96)
    numerator = liquidity * Q96 * (sqrt_b_x96 - sqrt_a_x96)
    if round_up:
        return _div_round_up(_div_round_up(numerator, sqrt_b_x96), sqrt_a_x96)
    return numerator // sqrt_b_x96 // sqrt_a_x96


def get_amount1_for_liquidity(
    sqrt_a_x96: int, sqrt_b_x96: int, liquidity: int, round_up: bool = False
) -> int:
    """Token1 amount backing `liquidity` between two sqrt prices.

    amount1 = L * (sqrtB - sqrtA)
    """
    sqrt_a_x96, sqrt_b_x96 = _sorted(sqrt_a_x96, sqrt_b_x96)
    numerator = liquidity * (sqrt_b_x96 - sqrt_a_x96)
    if round_up:
        return _div_round_up(numerator, Q96)
    return numerator // Q96


def get_amounts_for_liquidity(
    sqrt_price_x96: int,
    sqrt_a_x96: int,
    sqrt_b_x96: int,
    liquidity: int,
    round_up: bool = False,
) -> tuple[int, int]:
    """(amount0, amount1) backing `liquidity` at the current price."""
    sqrt_a_x96, sqrt_b_x96 = _sorted(sqrt_a_x96, sqrt_b_x96)

    if sqrt_price_x96 <= sqrt_a_x96:
        return get_amount0_for_liquidity(sqrt_a_x96, sqrt_b_x96, liquidity, round_up), 0
    if sqrt_price_x96 >= sqrt_b_x96:
        return 0, get_amount1_for_liquidity(sqrt_a_x96, sqrt_b_x96, liquidity, round_up)

    return (
        get_amount0_for_liquidity(sqrt_price_x96, sqrt_b_x96, liquidity, round_up),
        get_amount1_for_liquidity(sqrt_a_x96, sqrt_price_x96, liquidity, round_up),
    )
