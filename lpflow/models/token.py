"""Token reference used by pool snapshots and deposit intents."""

from __future__ import annotations

from dataclasses import dataclass

from lpflow.models.types import address_sorts_before, is_valid_address, normalize_address


@dataclass(frozen=True)
class Token:
    """An ERC20 token (or the chain's native currency) taking part in a pool.

    The address is stored lowercase. The zero address stands for the native
    currency, which never needs an allowance.
    """

    address: str
    decimals: int
    symbol: str | None = None

    def __post_init__(self) -> None:
        address = normalize_address(self.address)
        if not is_valid_address(address):
            raise ValueError(f"Invalid token address: {self.address}")
        if not 0 <= self.decimals <= 255:
            raise ValueError(f"Token decimals out of range: {self.decimals}")
        object.__setattr__(self, "address", address)

    @property
    def is_native(self) -> bool:
        """True for the native currency sentinel (zero address)."""
        return int(self.address, 16) == 0

    def sorts_before(self, other: Token) -> bool:
        """True if this token is currency0 in a pool with `other`."""
        return address_sorts_before(self.address, other.address)

    def __str__(self) -> str:
        return self.symbol or self.address


def sort_tokens(token_a: Token, token_b: Token) -> tuple[Token, Token]:
    """Return the pair in the protocol's canonical (currency0, currency1) order."""
    if token_a.sorts_before(token_b):
        return token_a, token_b
    return token_b, token_a


__all__ = ["Token", "sort_tokens"]
