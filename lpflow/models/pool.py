"""Pool snapshot and tick range models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from lpflow.errors import InvalidRange
from lpflow.math.tick_math import MAX_TICK, MIN_TICK, get_tick_bounds
from lpflow.models.token import Token
from lpflow.models.types import check_uint, normalize_address


class PriceRegime(str, Enum):
    """Where the pool price sits relative to a position's range."""

    BELOW = "below"  # only token0 is deposited
    IN_RANGE = "in_range"
    ABOVE = "above"  # only token1 is deposited


@dataclass(frozen=True)
class TickRange:
    """Half-open tick interval [lower, upper) of a position."""

    lower: int
    upper: int

    @classmethod
    def full_range(cls, tick_spacing: int) -> TickRange:
        """The widest range usable with `tick_spacing`."""
        lower, upper = get_tick_bounds(tick_spacing)
        return cls(lower, upper)

    def validate(self, tick_spacing: int) -> None:
        """Check ordering, bounds and alignment to `tick_spacing`.

        Raises:
            InvalidRange: If lower >= upper, a tick is out of bounds, or a tick
                is not a multiple of the spacing
        """
        if tick_spacing <= 0:
            raise InvalidRange(f"Tick spacing must be positive: {tick_spacing}")
        if self.lower >= self.upper:
            raise InvalidRange(f"Lower tick {self.lower} must be below upper tick {self.upper}")
        if self.lower < MIN_TICK or self.upper > MAX_TICK:
            raise InvalidRange(
                f"Range [{self.lower}, {self.upper}] outside [{MIN_TICK}, {MAX_TICK}]"
            )
        if self.lower % tick_spacing or self.upper % tick_spacing:
            raise InvalidRange(
                f"Range [{self.lower}, {self.upper}] not aligned to spacing {tick_spacing}"
            )

    def is_full_range(self, tick_spacing: int) -> bool:
        return (self.lower, self.upper) == get_tick_bounds(tick_spacing)

    def regime(self, current_tick: int) -> PriceRegime:
        """Classify `current_tick` against this range.

        A current tick equal to `upper` is above the range: the position is
        entirely token1 there.
        """
        if current_tick < self.lower:
            return PriceRegime.BELOW
        if current_tick >= self.upper:
            return PriceRegime.ABOVE
        return PriceRegime.IN_RANGE


def is_full_range(tick_range: TickRange, tick_spacing: int) -> bool:
    """True if `tick_range` spans every usable tick for `tick_spacing`."""
    return tick_range.is_full_range(tick_spacing)


@dataclass(frozen=True)
class PoolSnapshot:
    """Immutable view of a pool's state at one fetch.

    Tokens are always held in sorted order (token0 sorts before token1).
    """

    pool_id: str
    token0: Token
    token1: Token
    current_tick: int
    sqrt_price_x96: int
    liquidity: int
    tick_spacing: int

    def __post_init__(self) -> None:
        if not self.token0.sorts_before(self.token1):
            raise ValueError(
                f"Pool tokens must be sorted: {self.token0.address} >= {self.token1.address}"
            )
        if not MIN_TICK <= self.current_tick <= MAX_TICK:
            raise ValueError(f"Current tick out of bounds: {self.current_tick}")
        if self.tick_spacing <= 0:
            raise ValueError(f"Tick spacing must be positive: {self.tick_spacing}")
        check_uint(self.sqrt_price_x96, 160, "sqrt_price_x96")
        check_uint(self.liquidity, 128, "liquidity")

    @property
    def tokens(self) -> tuple[Token, Token]:
        return self.token0, self.token1

    def index_of(self, token: Token | str) -> int:
        """Sorted index (0 or 1) of a token in this pool.

        Raises:
            ValueError: If the token is not part of the pool
        """
        address = normalize_address(token.address if isinstance(token, Token) else token)
        if address == self.token0.address:
            return 0
        if address == self.token1.address:
            return 1
        raise ValueError(f"Token {address} not in pool {self.pool_id}")

    def regime(self, tick_range: TickRange) -> PriceRegime:
        return tick_range.regime(self.current_tick)


__all__ = ["PriceRegime", "TickRange", "PoolSnapshot", "is_full_range"]
