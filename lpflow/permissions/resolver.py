"""Permission state resolver.

Classifies which ERC20 approvals and which Permit2 batch signature are still
outstanding for a deposit. The result is a set; ordering the work is the
planner's job.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from lpflow.config import DEFAULT_CONFIG, PipelineConfig
from lpflow.constants import NATIVE_ADDRESS
from lpflow.models.deposit import CalculatedDeposit, DepositIntent, DepositMode
from lpflow.models.types import UINT160_MAX, normalize_address

if TYPE_CHECKING:
    from lpflow.zap import ZapSplit

logger = structlog.get_logger()


@dataclass(frozen=True)
class TokenAllowance:
    """On-chain allowance state of one token for the connected account.

    Attributes:
        token: Token address
        erc20_allowance: ERC20 allowance to the mode's spender (Permit2 or zap router)
        permit_amount: Permit2 allowance to the position manager (0 = none)
        permit_expiration: Unix time the Permit2 allowance expires
        permit_nonce: Current Permit2 nonce, needed to sign a new permit
    """

    token: str
    erc20_allowance: int
    permit_amount: int = 0
    permit_expiration: int = 0
    permit_nonce: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "token", normalize_address(self.token))


@dataclass(frozen=True)
class PermissionRequirement:
    """Outstanding permissions for one token of a deposit."""

    token: str
    required_amount: int
    spender: str
    needs_allowance_approval: bool
    needs_batch_signature: bool = False
    permit_nonce: int = 0

    @property
    def is_satisfied(self) -> bool:
        return not (self.needs_allowance_approval or self.needs_batch_signature)


@dataclass(frozen=True)
class StandardPermissions:
    """Requirements of a standard deposit (ERC20 -> Permit2 -> position manager)."""

    requirements: frozenset[PermissionRequirement] = field(default_factory=frozenset)

    mode = DepositMode.STANDARD

    @property
    def needs_batch_signature(self) -> bool:
        return any(r.needs_batch_signature for r in self.requirements)

    @property
    def signature_tokens(self) -> dict[str, int]:
        """Token -> Permit2 nonce for every token the batch signature must cover."""
        return {r.token: r.permit_nonce for r in self.requirements if r.needs_batch_signature}


@dataclass(frozen=True)
class ZapPermissions:
    """Requirements of a zap deposit (ERC20 -> zap router, no signatures)."""

    requirements: frozenset[PermissionRequirement] = field(default_factory=frozenset)

    mode = DepositMode.ZAP

    @property
    def needs_batch_signature(self) -> bool:
        return False

    @property
    def signature_tokens(self) -> dict[str, int]:
        return {}


PermissionSet = StandardPermissions | ZapPermissions


def requires_approval(requirements: PermissionSet) -> list[PermissionRequirement]:
    """Requirements with a pending ERC20 approval, in canonical token order."""
    pending = [r for r in requirements.requirements if r.needs_allowance_approval]
    return sorted(pending, key=lambda r: int(r.token, 16))


def permit_needs_signature(allowance: TokenAllowance, required_amount: int, now: int) -> bool:
    """True if the Permit2 allowance is absent, too small or expired."""
    if allowance.permit_amount == 0:
        return True
    if allowance.permit_amount < required_amount and allowance.permit_amount < UINT160_MAX:
        return True
    return allowance.permit_expiration <= now


def resolve_permissions_for_amounts(
    mode: DepositMode,
    required: Mapping[str, int],
    allowances: Mapping[str, TokenAllowance] | Iterable[TokenAllowance],
    *,
    now: int | None = None,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> PermissionSet:
    """Resolve permissions from raw required amounts.

    Tokens with a zero amount and the native currency are skipped. A token
    with no allowance entry is treated as having no allowance at all.

    Args:
        mode: Standard or zap deposit
        required: Token address -> raw amount the deposit pulls
        allowances: Allowance state per token (mapping or iterable)
        now: Current unix time (defaults to the wall clock)
        config: Supplies the spender addresses

    Returns:
        StandardPermissions or ZapPermissions
    """
    now = int(time.time()) if now is None else now
    if isinstance(allowances, Mapping):
        by_token = {normalize_address(k): v for k, v in allowances.items()}
    else:
        by_token = {a.token: a for a in allowances}

    spender = normalize_address(
        config.zap_router_address if mode == DepositMode.ZAP else config.permit2_address
    )

    requirements = set()
    for raw_token, amount in required.items():
        token = normalize_address(raw_token)
        if amount <= 0 or token == NATIVE_ADDRESS:
            continue
        allowance = by_token.get(token, TokenAllowance(token=token, erc20_allowance=0))
        needs_approval = allowance.erc20_allowance < amount
        needs_signature = mode == DepositMode.STANDARD and permit_needs_signature(
            allowance, amount, now
        )
        requirements.add(
            PermissionRequirement(
                token=token,
                required_amount=amount,
                spender=spender,
                needs_allowance_approval=needs_approval,
                needs_batch_signature=needs_signature,
                permit_nonce=allowance.permit_nonce,
            )
        )

    logger.debug(
        "permissions_resolved",
        mode=mode.value,
        approvals=sum(1 for r in requirements if r.needs_allowance_approval),
        signatures=sum(1 for r in requirements if r.needs_batch_signature),
    )

    if mode == DepositMode.ZAP:
        return ZapPermissions(frozenset(requirements))
    return StandardPermissions(frozenset(requirements))


def resolve_required_permissions(
    intent: DepositIntent,
    calculated: CalculatedDeposit | ZapSplit,
    allowances: Mapping[str, TokenAllowance] | Iterable[TokenAllowance],
    *,
    now: int | None = None,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> PermissionSet:
    """Resolve outstanding permissions for a calculated deposit.

    Args:
        intent: The deposit intent (decides standard vs zap)
        calculated: Deposit amounts, or the zap split for zap mode
        allowances: Allowance state per token
        now: Current unix time (defaults to the wall clock)
        config: Supplies the spender addresses

    Returns:
        StandardPermissions or ZapPermissions
    """
    return resolve_permissions_for_amounts(
        intent.mode, calculated.required_amounts(), allowances, now=now, config=config
    )


__all__ = [
    "TokenAllowance",
    "PermissionRequirement",
    "StandardPermissions",
    "ZapPermissions",
    "PermissionSet",
    "requires_approval",
    "permit_needs_signature",
    "resolve_permissions_for_amounts",
    "resolve_required_permissions",
]
