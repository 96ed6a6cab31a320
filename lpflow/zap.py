"""Single-token ("zap") deposit split.

A zap deposits one token: part of it is swapped for the other token so the
remainder and the swap output match the ratio the range requires. The swap
amount comes from a closed form, ignoring price impact, and is shaved by a
small haircut so a slightly worse execution price still leaves enough of
the input token.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction

from lpflow.calculator import checked_sqrt_price, range_sqrt_ratios
from lpflow.constants import BPS_DENOMINATOR
from lpflow.errors import InsufficientAmount, StaleSnapshot
from lpflow.math.liquidity_math import get_amounts_for_liquidity, get_liquidity_for_amounts
from lpflow.math.tick_math import Q192
from lpflow.models.deposit import InputSide
from lpflow.models.pool import PoolSnapshot, PriceRegime, TickRange
from lpflow.models.token import Token

# Swap amount reduction guarding against price movement before execution (0.1%)
DEFAULT_HAIRCUT_BPS = 10

# Upper bound on the expected output/input rate of the swap leg
MAX_SWAP_RATE = Fraction(11, 10)


@dataclass(frozen=True)
class ZapSplit:
    """How a single-token input is split between swapping and depositing.

    All amounts are raw units; `deposit_amount0/1` and `leftover0/1` are in
    the pool's sorted order.
    """

    token0: Token
    token1: Token
    input_side: InputSide
    input_amount: int
    swap_amount: int
    swap_output: int
    deposit_amount0: int
    deposit_amount1: int
    liquidity: int
    leftover0: int
    leftover1: int

    @property
    def input_token(self) -> Token:
        return self.token0 if self.input_side == InputSide.TOKEN0 else self.token1

    def required_amounts(self) -> dict[str, int]:
        """Token address -> raw amount the zap router pulls from the user.

        The whole input is pulled (swap leg plus deposit); the other token
        only for its deposit share.
        """
        required = {self.input_token.address: self.input_amount}
        if self.input_side == InputSide.TOKEN0 and self.deposit_amount1 > 0:
            required[self.token1.address] = self.deposit_amount1
        elif self.input_side == InputSide.TOKEN1 and self.deposit_amount0 > 0:
            required[self.token0.address] = self.deposit_amount0
        return required


def _deposit_ratio(sqrt_price: int, sqrt_lower: int, sqrt_upper: int) -> Fraction:
    """Raw token1 needed per raw token0 for an in-range deposit."""
    return Fraction(
        (sqrt_price - sqrt_lower) * sqrt_price * sqrt_upper,
        (sqrt_upper - sqrt_price) * Q192,
    )


def optimal_swap_amount(
    input_side: InputSide,
    input_amount: int,
    deposit_ratio: Fraction,
    spot_price: Fraction,
    swap_rate: Fraction = Fraction(1),
) -> int:
    """Amount of the input token to swap for a balanced deposit.

    With S swapped out of A, the remainder A - S and the swap output
    S * price * rate must stand in the deposit ratio, which gives
    S = A * ratio / (price * rate + ratio) for a token0 input and
    S = A * price / (price + ratio * rate) for a token1 input.

    Args:
        input_side: Sorted side of the input token
        input_amount: Raw input amount
        deposit_ratio: Raw token1 per raw token0 the range requires
        spot_price: Raw token1 per raw token0 at the pool price
        swap_rate: Expected output/input rate of the swap leg (1 = no loss)

    Returns:
        Raw amount to swap, before any haircut
    """
    if input_amount <= 0:
        return 0
    if spot_price <= 0:
        raise ValueError(f"Invalid spot price: {spot_price}")
    if deposit_ratio < 0:
        raise ValueError(f"Invalid deposit ratio: {deposit_ratio}")
    if input_side == InputSide.TOKEN0:
        swap = input_amount * deposit_ratio / (spot_price * swap_rate + deposit_ratio)
    else:
        swap = input_amount * spot_price / (spot_price + deposit_ratio * swap_rate)
    return int(swap)


def compute_zap_split(
    snapshot: PoolSnapshot,
    tick_range: TickRange,
    input_side: InputSide,
    amount: int,
    swap_rate: Decimal | Fraction | str | int = 1,
    haircut_bps: int = DEFAULT_HAIRCUT_BPS,
) -> ZapSplit:
    """Split a single-token input into a swap leg and a two-sided deposit.

    Out of range the whole input is either kept (it is already the only
    token the range takes) or swapped entirely.

    Args:
        snapshot: Latest pool state
        tick_range: Position range
        input_side: Sorted side of the input token
        amount: Raw input amount
        swap_rate: Expected output/input rate of the swap leg
        haircut_bps: Reduction applied to the computed swap amount

    Returns:
        ZapSplit with the swap amount and the expected deposit

    Raises:
        InvalidRange: If the range is invalid for the pool's tick spacing
        InsufficientAmount: If the amount is not positive or yields no liquidity
        StaleSnapshot: If the snapshot has no usable price
        ValueError: If swap_rate or haircut_bps is out of bounds
    """
    if amount <= 0:
        raise InsufficientAmount(f"Zap amount must be positive: {amount}")
    rate = Fraction(str(swap_rate)) if isinstance(swap_rate, Decimal) else Fraction(swap_rate)
    if not 0 < rate <= MAX_SWAP_RATE:
        raise ValueError(f"Invalid swap rate: {swap_rate}")
    if not 0 <= haircut_bps < BPS_DENOMINATOR:
        raise ValueError(f"Invalid haircut: {haircut_bps} bps")

    sqrt_lower, sqrt_upper = range_sqrt_ratios(snapshot, tick_range)
    sqrt_price = snapshot.sqrt_price_x96
    regime = snapshot.regime(tick_range)
    if regime == PriceRegime.IN_RANGE:
        sqrt_price = checked_sqrt_price(snapshot, sqrt_lower, sqrt_upper)
    elif sqrt_price == 0:
        raise StaleSnapshot(f"Pool {snapshot.pool_id} has no price")
    spot_price = Fraction(sqrt_price * sqrt_price, Q192)

    if regime == PriceRegime.BELOW:
        swap = 0 if input_side == InputSide.TOKEN0 else amount
    elif regime == PriceRegime.ABOVE:
        swap = amount if input_side == InputSide.TOKEN0 else 0
    else:
        ratio = _deposit_ratio(sqrt_price, sqrt_lower, sqrt_upper)
        swap = optimal_swap_amount(input_side, amount, ratio, spot_price, rate)
        swap -= swap * haircut_bps // BPS_DENOMINATOR
    swap = max(0, min(swap, amount))

    if input_side == InputSide.TOKEN0:
        swap_output = int(swap * spot_price * rate)
        available0, available1 = amount - swap, swap_output
    else:
        swap_output = int(swap / spot_price * rate)
        available0, available1 = swap_output, amount - swap

    liquidity = get_liquidity_for_amounts(
        sqrt_price, sqrt_lower, sqrt_upper, available0, available1
    )
    if liquidity == 0:
        raise InsufficientAmount(f"Zap of {amount} yields zero liquidity")
    used0, used1 = get_amounts_for_liquidity(
        sqrt_price, sqrt_lower, sqrt_upper, liquidity, round_up=True
    )

    return ZapSplit(
        token0=snapshot.token0,
        token1=snapshot.token1,
        input_side=input_side,
        input_amount=amount,
        swap_amount=swap,
        swap_output=swap_output,
        deposit_amount0=min(used0, available0),
        deposit_amount1=min(used1, available1),
        liquidity=liquidity,
        leftover0=max(available0 - used0, 0),
        leftover1=max(available1 - used1, 0),
    )


__all__ = ["ZapSplit", "compute_zap_split", "optimal_swap_amount", "DEFAULT_HAIRCUT_BPS"]
