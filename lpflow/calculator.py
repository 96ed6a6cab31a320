"""Liquidity amount calculator.

Derives the complementary token amount and the resulting liquidity for a
price range from a single user-entered amount. Every function here is a
pure function of its arguments and safe to call on each keystroke.

Amounts are always returned in the pool's sorted token order; a caller that
displays the pair the other way round maps back with
`CalculatedDeposit.for_pair`.
"""

from __future__ import annotations

import structlog

from lpflow.errors import InsufficientAmount, StaleSnapshot
from lpflow.math.liquidity_math import (
    get_amount0_for_liquidity,
    get_amount1_for_liquidity,
    get_liquidity_for_amount0,
    get_liquidity_for_amount1,
    get_liquidity_for_amounts,
)
from lpflow.math.tick_math import get_sqrt_ratio_at_tick
from lpflow.models.deposit import CalculatedDeposit, DepositIntent, parse_units
from lpflow.models.pool import PoolSnapshot, PriceRegime, TickRange

logger = structlog.get_logger()


def range_sqrt_ratios(snapshot: PoolSnapshot, tick_range: TickRange) -> tuple[int, int]:
    """Validate a range against the pool and return its sqrt ratio bounds.

    Raises:
        InvalidRange: If the range is unordered, out of bounds or misaligned
    """
    tick_range.validate(snapshot.tick_spacing)
    return get_sqrt_ratio_at_tick(tick_range.lower), get_sqrt_ratio_at_tick(tick_range.upper)


def checked_sqrt_price(snapshot: PoolSnapshot, sqrt_lower: int, sqrt_upper: int) -> int:
    """Current sqrt price of an in-range snapshot.

    Raises:
        StaleSnapshot: If the price is missing or disagrees with the tick
    """
    sqrt_price = snapshot.sqrt_price_x96
    if sqrt_price == 0:
        raise StaleSnapshot(f"Pool {snapshot.pool_id} has no price")
    if not sqrt_lower <= sqrt_price < sqrt_upper:
        raise StaleSnapshot(
            f"Pool {snapshot.pool_id} sqrt price {sqrt_price} is outside the range "
            f"its tick {snapshot.current_tick} falls in"
        )
    return sqrt_price


def compute_dependent_amount(intent: DepositIntent, snapshot: PoolSnapshot) -> CalculatedDeposit:
    """Compute both deposit amounts and the liquidity from one typed amount.

    Below the range only token0 is deposited and above it only token1; an
    amount typed for the other side there yields an empty deposit. In range
    the typed amount is kept exactly and the complementary amount is the
    minimum needed for the same liquidity, rounded up.

    Args:
        intent: The user's range, input side and amount
        snapshot: Latest pool state

    Returns:
        CalculatedDeposit in sorted token order

    Raises:
        InvalidRange: If the range is invalid for the pool's tick spacing
        InsufficientAmount: If the amount is negative or yields zero liquidity
        StaleSnapshot: If the snapshot has no usable price
    """
    sqrt_lower, sqrt_upper = range_sqrt_ratios(snapshot, intent.range)
    if snapshot.sqrt_price_x96 == 0:
        raise StaleSnapshot(f"Pool {snapshot.pool_id} has no price")

    side = intent.sorted_input_index(snapshot)
    token = snapshot.tokens[side]
    try:
        raw_amount = parse_units(intent.input_amount, token.decimals)
    except ValueError as err:
        raise InsufficientAmount(str(err)) from err

    regime = snapshot.regime(intent.range)

    if regime == PriceRegime.BELOW:
        if side == 1:
            return CalculatedDeposit.empty(snapshot)
        liquidity = get_liquidity_for_amount0(sqrt_lower, sqrt_upper, raw_amount)
        amount0, amount1 = raw_amount, 0
    elif regime == PriceRegime.ABOVE:
        if side == 0:
            return CalculatedDeposit.empty(snapshot)
        liquidity = get_liquidity_for_amount1(sqrt_lower, sqrt_upper, raw_amount)
        amount0, amount1 = 0, raw_amount
    else:
        sqrt_price = checked_sqrt_price(snapshot, sqrt_lower, sqrt_upper)
        if sqrt_price == sqrt_lower:
            # Exactly on the lower tick the position holds no token1 yet
            if side == 1:
                return CalculatedDeposit.empty(snapshot)
            liquidity = get_liquidity_for_amount0(sqrt_lower, sqrt_upper, raw_amount)
            amount0, amount1 = raw_amount, 0
        elif side == 0:
            liquidity = get_liquidity_for_amount0(sqrt_price, sqrt_upper, raw_amount)
            amount0 = raw_amount
            amount1 = get_amount1_for_liquidity(sqrt_lower, sqrt_price, liquidity, round_up=True)
        else:
            liquidity = get_liquidity_for_amount1(sqrt_lower, sqrt_price, raw_amount)
            amount0 = get_amount0_for_liquidity(sqrt_price, sqrt_upper, liquidity, round_up=True)
            amount1 = raw_amount

    if liquidity == 0:
        logger.debug(
            "deposit_zero_liquidity",
            pool=snapshot.pool_id,
            regime=regime.value,
            input_side=side,
            raw_amount=raw_amount,
        )
        raise InsufficientAmount(f"Amount {intent.input_amount} of {token} yields zero liquidity")

    return CalculatedDeposit(snapshot.token0, snapshot.token1, amount0, amount1, liquidity)


def compute_two_sided_deposit(
    snapshot: PoolSnapshot,
    tick_range: TickRange,
    amount0: int,
    amount1: int,
) -> CalculatedDeposit:
    """Exact two-sided deposit from raw amounts for both tokens.

    The binding side is the one implying more liquidity. Its amount is kept
    and the complementary amount is raised to the minimum needed to match;
    neither amount is ever lowered below what was requested. Out of range
    only the meaningful side is kept and the other is zeroed.

    Raises:
        InvalidRange: If the range is invalid for the pool's tick spacing
        InsufficientAmount: If an amount is negative or both sides yield zero liquidity
        StaleSnapshot: If the snapshot has no usable price
    """
    if amount0 < 0 or amount1 < 0:
        raise InsufficientAmount(f"Amounts cannot be negative: ({amount0}, {amount1})")

    sqrt_lower, sqrt_upper = range_sqrt_ratios(snapshot, tick_range)
    if snapshot.sqrt_price_x96 == 0:
        raise StaleSnapshot(f"Pool {snapshot.pool_id} has no price")

    regime = snapshot.regime(tick_range)
    sqrt_price = None
    if regime == PriceRegime.IN_RANGE:
        sqrt_price = checked_sqrt_price(snapshot, sqrt_lower, sqrt_upper)

    if regime == PriceRegime.BELOW or sqrt_price == sqrt_lower:
        amount1 = 0
        liquidity = get_liquidity_for_amount0(sqrt_lower, sqrt_upper, amount0)
    elif regime == PriceRegime.ABOVE:
        amount0 = 0
        liquidity = get_liquidity_for_amount1(sqrt_lower, sqrt_upper, amount1)
    else:
        liquidity0 = get_liquidity_for_amount0(sqrt_price, sqrt_upper, amount0)
        liquidity1 = get_liquidity_for_amount1(sqrt_lower, sqrt_price, amount1)
        target = max(liquidity0, liquidity1)
        if target > 0:
            amount0 = max(
                amount0, get_amount0_for_liquidity(sqrt_price, sqrt_upper, target, round_up=True)
            )
            amount1 = max(
                amount1, get_amount1_for_liquidity(sqrt_lower, sqrt_price, target, round_up=True)
            )
        liquidity = get_liquidity_for_amounts(sqrt_price, sqrt_lower, sqrt_upper, amount0, amount1)

    if liquidity == 0:
        raise InsufficientAmount(f"Amounts ({amount0}, {amount1}) yield zero liquidity")

    return CalculatedDeposit(snapshot.token0, snapshot.token1, amount0, amount1, liquidity)


__all__ = [
    "compute_dependent_amount",
    "compute_two_sided_deposit",
    "range_sqrt_ratios",
    "checked_sqrt_price",
]
