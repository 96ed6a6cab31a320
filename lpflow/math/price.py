"""Decimal-aware conversion between ticks and human-readable prices.

A pool's sqrtPriceX96 encodes token1 raw units per token0 raw unit. A price
shown to a user additionally depends on the decimals of both tokens and on
which token is the base, so `Price` always carries both decimals and its
orientation instead of being a bare number.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from fractions import Fraction
from math import isqrt

from .tick_math import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    Q192,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
    get_tick_bounds,
    is_tick_at_limit,
    nearest_usable_tick,
)

__all__ = [
    "Price",
    "tick_to_price",
    "price_to_tick",
    "sqrt_price_x96_to_price",
    "format_tick_price",
    "convert_price_to_valid_tick",
    "INFINITY_SYMBOL",
]

INFINITY_SYMBOL = "∞"

_INFINITY_INPUTS = {INFINITY_SYMBOL, "infinity", "infinite"}
_SEPARATORS = re.compile(r"[\s,]")


@dataclass(frozen=True)
class Price:
    """Exact price of one base token in quote tokens.

    Attributes:
        raw: Quote raw units per one raw base unit (exact rational)
        base_decimals: Decimals of the base token
        quote_decimals: Decimals of the quote token
        inverted: True when base is the pool's token1 (price shown as token0 per token1)
    """

    raw: Fraction
    base_decimals: int
    quote_decimals: int
    inverted: bool = False

    @property
    def value(self) -> Fraction:
        """Quote tokens per whole base token, adjusted for decimals."""
        return self.raw * Fraction(10**self.base_decimals, 10**self.quote_decimals)

    def invert(self) -> Price:
        """The same price expressed the other way round."""
        if self.raw == 0:
            raise ZeroDivisionError("Cannot invert a zero price")
        return Price(
            raw=1 / self.raw,
            base_decimals=self.quote_decimals,
            quote_decimals=self.base_decimals,
            inverted=not self.inverted,
        )

    def quote(self, raw_base_amount: int) -> int:
        """Convert a raw base amount to raw quote units, rounding down."""
        return int(raw_base_amount * self.raw)

    def to_decimal(self, precision: int = 40) -> Decimal:
        """Human value as a Decimal with the given number of significant digits."""
        value = self.value
        with localcontext() as ctx:
            ctx.prec = precision
            ctx.rounding = ROUND_HALF_UP
            return Decimal(value.numerator) / Decimal(value.denominator)

    def to_significant(self, significant_digits: int = 8) -> str:
        """Human value rounded to significant digits, without exponent notation."""
        if significant_digits < 1:
            raise ValueError(f"significant_digits must be >= 1: {significant_digits}")
        rounded = self.to_decimal(significant_digits).normalize()
        return format(rounded, "f")

    def __str__(self) -> str:
        return self.to_significant()


def sqrt_price_x96_to_price(
    sqrt_price_x96: int, decimals0: int, decimals1: int, inverted: bool = False
) -> Price:
    """Price of token0 in token1 (or the inverse) from a pool's sqrtPriceX96."""
    if sqrt_price_x96 <= 0:
        raise ValueError(f"sqrtPriceX96 must be positive: {sqrt_price_x96}")
    price = Price(
        raw=Fraction(sqrt_price_x96 * sqrt_price_x96, Q192),
        base_decimals=decimals0,
        quote_decimals=decimals1,
    )
    return price.invert() if inverted else price


def tick_to_price(tick: int, decimals0: int, decimals1: int, inverted: bool = False) -> Price:
    """Price at a tick: 1.0001^tick rescaled by 10^(decimals0 - decimals1).

    The ratio is built from the exact Q64.96 sqrt ratio squared (a Q192
    fraction), so no precision is lost for any decimal combination.

    Args:
        tick: Tick index
        decimals0: Decimals of the pool's token0
        decimals1: Decimals of the pool's token1
        inverted: Express the price as token0 per token1 instead

    Returns:
        Price of token0 in token1 (or its inverse)
    """
    return sqrt_price_x96_to_price(get_sqrt_ratio_at_tick(tick), decimals0, decimals1, inverted)


def _to_fraction(value: Decimal | str | int | Fraction) -> Fraction:
    if isinstance(value, Fraction):
        return value
    try:
        dec = Decimal(value) if not isinstance(value, Decimal) else value
    except InvalidOperation as err:
        raise ValueError(f"Price is not a number: {value!r}") from err
    if not dec.is_finite():
        raise ValueError(f"Price must be finite: {value!r}")
    return Fraction(dec)


def price_to_tick(
    price: Price | Decimal | str | int | Fraction,
    decimals0: int,
    decimals1: int,
) -> int:
    """Greatest tick whose price is <= the given price.

    The estimate comes from log(price) / log(1.0001) and is corrected with
    exact integer comparisons, so price_to_tick(tick_to_price(t)) == t.
    Results are clamped to [MIN_TICK, MAX_TICK]; callers must still snap
    the result with nearest_usable_tick.

    Args:
        price: A Price (any orientation) or a human token1-per-token0 value
        decimals0: Decimals of the pool's token0
        decimals1: Decimals of the pool's token1

    Raises:
        ValueError: If the price is not a positive finite number
    """
    if isinstance(price, Price):
        if price.inverted:
            price = price.invert()
        raw = price.raw
    else:
        raw = _to_fraction(price) * Fraction(10**decimals1, 10**decimals0)

    if raw <= 0:
        raise ValueError(f"Price must be positive: {price}")

    sqrt_price_x96 = isqrt(raw.numerator * Q192 // raw.denominator)
    if sqrt_price_x96 < MIN_SQRT_RATIO:
        return MIN_TICK
    if sqrt_price_x96 >= MAX_SQRT_RATIO:
        return MAX_TICK
    return get_tick_at_sqrt_ratio(sqrt_price_x96)


def format_tick_price(
    tick: int,
    decimals0: int,
    decimals1: int,
    tick_spacing: int,
    inverted: bool = False,
    significant_digits: int = 8,
) -> str:
    """Display string for the price at a range bound.

    Ticks at the usable minimum/maximum render as "0" and "∞" (swapped when
    the price is inverted) instead of a meaningless finite number.
    """
    at_min, at_max = is_tick_at_limit(tick, tick_spacing)
    if at_min:
        return INFINITY_SYMBOL if inverted else "0"
    if at_max:
        return "0" if inverted else INFINITY_SYMBOL
    return tick_to_price(tick, decimals0, decimals1, inverted).to_significant(significant_digits)


def convert_price_to_valid_tick(
    text: str | None,
    is_max_price: bool,
    decimals0: int,
    decimals1: int,
    tick_spacing: int,
    inverted: bool = False,
) -> int | None:
    """Convert a user-typed range bound into a usable tick.

    Handles infinity input ("∞", "infinity", "infinite"), whitespace and
    thousands separators, price inversion, tick-spacing alignment and
    clamping to the usable bounds.

    Args:
        text: Raw input text
        is_max_price: Whether the text is the upper bound of the displayed range
        decimals0: Decimals of the pool's token0
        decimals1: Decimals of the pool's token1
        tick_spacing: Pool tick spacing
        inverted: Whether the displayed price is token0 per token1

    Returns:
        Usable tick, or None if the input is empty, non-numeric or non-positive
    """
    normalized = _SEPARATORS.sub("", text or "")
    if not normalized:
        return None

    min_tick, max_tick = get_tick_bounds(tick_spacing)

    if normalized.lower() in _INFINITY_INPUTS:
        # An inverted display runs opposite to the tick axis
        return max_tick if is_max_price != inverted else min_tick

    try:
        value = Decimal(normalized)
    except InvalidOperation:
        return None
    if not value.is_finite() or value <= 0:
        return None

    human = Fraction(value)
    if inverted:
        human = 1 / human

    tick = nearest_usable_tick(price_to_tick(human, decimals0, decimals1), tick_spacing)
    return max(min_tick, min(max_tick, tick))
