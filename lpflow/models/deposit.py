"""Deposit intent and calculated deposit models."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from enum import Enum

from lpflow.models.pool import PoolSnapshot, TickRange
from lpflow.models.token import Token

# Enough significant digits for any uint256 amount
_UNIT_PRECISION = 80


class InputSide(str, Enum):
    """Which token of the intent's pair the user typed an amount for."""

    TOKEN0 = "token0"
    TOKEN1 = "token1"

    @property
    def index(self) -> int:
        return 0 if self is InputSide.TOKEN0 else 1

    @property
    def other(self) -> InputSide:
        return InputSide.TOKEN1 if self is InputSide.TOKEN0 else InputSide.TOKEN0


class DepositMode(str, Enum):
    """Standard two-token deposit, or single-token zap."""

    STANDARD = "standard"
    ZAP = "zap"


def parse_units(amount: Decimal | str | int, decimals: int) -> int:
    """Convert a human amount to raw token units, truncating toward zero.

    Args:
        amount: Human-readable amount (e.g. Decimal("1.5"))
        decimals: Token decimals

    Returns:
        Raw integer amount

    Raises:
        ValueError: If the amount is not a finite non-negative number
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except InvalidOperation as err:
        raise ValueError(f"Invalid amount: {amount!r}") from err
    if not value.is_finite():
        raise ValueError(f"Amount must be finite: {amount!r}")
    if value < 0:
        raise ValueError(f"Amount cannot be negative: {amount!r}")
    with localcontext() as ctx:
        ctx.prec = _UNIT_PRECISION
        return int(value.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))


def format_units(raw_amount: int, decimals: int) -> Decimal:
    """Convert raw token units to an exact human Decimal."""
    with localcontext() as ctx:
        ctx.prec = _UNIT_PRECISION
        return Decimal(raw_amount).scaleb(-decimals)


@dataclass
class DepositIntent:
    """What the user asked for: a range and one typed amount.

    Attributes:
        range: Position range (must be aligned to the pool's tick spacing)
        input_side: Side of `pair` (or of the pool's sorted pair when `pair`
            is None) the amount was entered for
        input_amount: Human amount as typed
        mode: Standard deposit or zap
        pair: Tokens in the order the caller displays them; None means the
            pool's sorted order
    """

    range: TickRange
    input_side: InputSide
    input_amount: Decimal
    mode: DepositMode = DepositMode.STANDARD
    pair: tuple[Token, Token] | None = None

    def input_token(self, snapshot: PoolSnapshot) -> Token:
        tokens = self.pair if self.pair is not None else snapshot.tokens
        return tokens[self.input_side.index]

    def sorted_input_index(self, snapshot: PoolSnapshot) -> int:
        """Index of the input token in the pool's sorted order.

        Raises:
            ValueError: If `pair` names a token the pool does not hold
        """
        if self.pair is not None:
            for token in self.pair:
                snapshot.index_of(token)
        return snapshot.index_of(self.input_token(snapshot))


@dataclass(frozen=True)
class CalculatedDeposit:
    """Derived deposit amounts in the pool's sorted token order."""

    token0: Token
    token1: Token
    amount0: int
    amount1: int
    liquidity: int

    @classmethod
    def empty(cls, snapshot: PoolSnapshot) -> CalculatedDeposit:
        return cls(snapshot.token0, snapshot.token1, 0, 0, 0)

    @property
    def is_empty(self) -> bool:
        """True when nothing would be deposited."""
        return self.liquidity == 0 and self.amount0 == 0 and self.amount1 == 0

    @property
    def amounts(self) -> tuple[int, int]:
        return self.amount0, self.amount1

    def amount_of(self, token: Token | str) -> int:
        address = token.address if isinstance(token, Token) else token.lower()
        if address == self.token0.address:
            return self.amount0
        if address == self.token1.address:
            return self.amount1
        raise ValueError(f"Token {address} not in deposit")

    def required_amounts(self) -> dict[str, int]:
        """Token address -> raw amount needed, skipping zero amounts."""
        required = {}
        if self.amount0 > 0:
            required[self.token0.address] = self.amount0
        if self.amount1 > 0:
            required[self.token1.address] = self.amount1
        return required

    def for_pair(self, pair: tuple[Token, Token]) -> tuple[int, int]:
        """Amounts reordered to match a display pair."""
        return self.amount_of(pair[0]), self.amount_of(pair[1])

    def with_slippage(self, slippage_bps: int) -> tuple[int, int]:
        """Maximum amounts to send with the execute request.

        Each amount is scaled by (10000 + bps) / 10000, rounded up.
        """
        from lpflow.constants import BPS_DENOMINATOR

        if slippage_bps < 0:
            raise ValueError(f"Slippage cannot be negative: {slippage_bps}")
        scale = BPS_DENOMINATOR + slippage_bps
        return (
            -(-self.amount0 * scale // BPS_DENOMINATOR),
            -(-self.amount1 * scale // BPS_DENOMINATOR),
        )

    def formatted(self) -> tuple[Decimal, Decimal]:
        """Human amounts (token0, token1)."""
        return (
            format_units(self.amount0, self.token0.decimals),
            format_units(self.amount1, self.token1.decimals),
        )


__all__ = [
    "InputSide",
    "DepositMode",
    "DepositIntent",
    "CalculatedDeposit",
    "parse_units",
    "format_units",
]
