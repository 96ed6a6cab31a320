"""Permit2 batch permit payloads and cached signatures.

A PermitBatch grants the position manager a Permit2 allowance for every
token of a deposit with a single EIP-712 signature. Signed batches are
cached so a resumed flow does not ask the user to sign the same permit
twice.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, Field

from lpflow.config import DEFAULT_CONFIG, PipelineConfig
from lpflow.constants import PERMIT2_DOMAIN_NAME
from lpflow.models.types import UINT160_MAX, check_uint, normalize_address

# EIP-712 struct definitions for Permit2's PermitBatch
PERMIT_BATCH_TYPES: dict[str, list[dict[str, str]]] = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "PermitBatch": [
        {"name": "details", "type": "PermitDetails[]"},
        {"name": "spender", "type": "address"},
        {"name": "sigDeadline", "type": "uint256"},
    ],
    "PermitDetails": [
        {"name": "token", "type": "address"},
        {"name": "amount", "type": "uint160"},
        {"name": "expiration", "type": "uint48"},
        {"name": "nonce", "type": "uint48"},
    ],
}


class PermitDetails(BaseModel):
    """Allowance granted for one token."""

    token: str
    amount: int
    expiration: int
    nonce: int

    model_config = {"frozen": True}


class PermitBatch(BaseModel):
    """Values of a PermitBatch message."""

    details: tuple[PermitDetails, ...]
    spender: str
    sig_deadline: int = Field(alias="sigDeadline")

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def tokens(self) -> frozenset[str]:
        return frozenset(d.token for d in self.details)

    @property
    def expiration(self) -> int:
        """Earliest allowance expiration across the batch."""
        return min(d.expiration for d in self.details)


def build_permit_batch(
    tokens: Iterable[tuple[str, int]],
    *,
    now: int | None = None,
    config: PipelineConfig = DEFAULT_CONFIG,
    amount: int = UINT160_MAX,
) -> PermitBatch:
    """Build the PermitBatch values for tokens that need a Permit2 allowance.

    Args:
        tokens: (token address, current Permit2 nonce) pairs
        now: Current unix time (defaults to the wall clock)
        config: Supplies the spender and the permit/signature lifetimes
        amount: Allowance granted per token (unlimited by default)

    Returns:
        PermitBatch with details in sorted token order

    Raises:
        ValueError: If no tokens are given or a value overflows its field
    """
    now = int(time.time()) if now is None else now
    expiration = check_uint(now + config.permit_expiration_seconds, 48, "expiration")
    check_uint(amount, 160, "amount")

    details = []
    for token, nonce in sorted(
        ((normalize_address(t), n) for t, n in tokens), key=lambda item: int(item[0], 16)
    ):
        details.append(
            PermitDetails(
                token=token,
                amount=amount,
                expiration=expiration,
                nonce=check_uint(nonce, 48, "nonce"),
            )
        )
    if not details:
        raise ValueError("PermitBatch needs at least one token")

    return PermitBatch(
        details=tuple(details),
        spender=normalize_address(config.position_manager_address),
        sig_deadline=now + config.permit_sig_deadline_seconds,
    )


def build_permit_batch_typed_data(
    batch: PermitBatch, config: PipelineConfig = DEFAULT_CONFIG
) -> dict[str, Any]:
    """Full EIP-712 payload for `eth_signTypedData_v4`.

    Returns:
        Dict with types, primaryType, domain and message
    """
    return {
        "types": PERMIT_BATCH_TYPES,
        "primaryType": "PermitBatch",
        "domain": {
            "name": PERMIT2_DOMAIN_NAME,
            "chainId": config.chain_id,
            "verifyingContract": config.permit2_address,
        },
        "message": {
            "details": [d.model_dump() for d in batch.details],
            "spender": batch.spender,
            "sigDeadline": batch.sig_deadline,
        },
    }


class CachedPermitSignature(BaseModel):
    """A signed PermitBatch kept for reuse within its signature deadline."""

    batch: PermitBatch
    signature: str

    model_config = {"frozen": True}

    def is_expired(self, now: int | None = None) -> bool:
        now = int(time.time()) if now is None else now
        return self.batch.sig_deadline <= now

    def covers(self, required: Mapping[str, int], now: int | None = None) -> bool:
        """True if this signature can stand in for a new one.

        The signed batch must name exactly the tokens in `required`, grant
        at least the required amount for each, and be neither past its
        signature deadline nor past its allowance expiration.
        """
        now = int(time.time()) if now is None else now
        if self.is_expired(now) or self.batch.expiration <= now:
            return False
        wanted = {normalize_address(token): amount for token, amount in required.items()}
        if self.batch.tokens != frozenset(wanted):
            return False
        return all(d.amount >= wanted[d.token] for d in self.batch.details)


__all__ = [
    "PERMIT_BATCH_TYPES",
    "PermitDetails",
    "PermitBatch",
    "CachedPermitSignature",
    "build_permit_batch",
    "build_permit_batch_typed_data",
]
