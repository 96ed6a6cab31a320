"""Failure classification at the executor boundary.

Wallets, RPC nodes and calldata services fail with whatever exception type
their client library uses. This module reduces them to the pipeline's error
taxonomy by message phrasing and EIP-1193 error codes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from lpflow.errors import (
    LpflowError,
    PermissionExpired,
    StaleSnapshot,
    TransactionReverted,
    UnknownExecutionError,
    UserRejected,
)

UNKNOWN_ERROR_MESSAGE = "Unknown error"

# EIP-1193 "User Rejected Request"
USER_REJECTED_CODE = 4001

USER_REJECTION_PHRASES = (
    "user rejected",
    "user denied",
    "user cancelled",
    "user canceled",
    "rejected by user",
    "denied by user",
    "metamask tx signature: user denied",
)

PERMISSION_EXPIRED_PHRASES = (
    "signature expired",
    "signatureexpired",
    "invalid signature",
    "invalidsignature",
    "signature invalid",
    "invalidnonce",
    "allowanceexpired",
)

NETWORK_PHRASES = (
    "network",
    "rpc",
    "timeout",
    "timed out",
    "fetch",
    "connection",
    "socket",
    "enotfound",
    "econnrefused",
)

INSUFFICIENT_FUNDS_PHRASES = (
    "insufficient funds",
    "insufficient balance",
    "exceeds balance",
    "not enough",
)

SLIPPAGE_PHRASES = (
    "slippage",
    "price changed",
    "price moved",
    "too little received",
    "too much requested",
    "price impact",
)

REVERT_PHRASES = (
    "revert",
    "execution reverted",
    "call exception",
)


class ErrorCategory(str, Enum):
    USER_REJECTION = "user_rejection"
    PERMISSION_EXPIRED = "permission_expired"
    REVERTED = "reverted"
    STALE_SNAPSHOT = "stale_snapshot"
    NETWORK = "network"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    SLIPPAGE = "slippage"
    UNKNOWN = "unknown"


class RecoveryAffordance(str, Enum):
    """What the UI should offer after a failure."""

    NONE = "none"  # user cancelled; nothing to surface
    RESIGN = "resign"  # sign the permit again, keep the rest of the flow
    RETRY = "retry"  # retry the failed step
    REVALIDATE = "revalidate"  # recalculate against the latest pool state


CATEGORY_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.USER_REJECTION: "Transaction was rejected in your wallet",
    ErrorCategory.PERMISSION_EXPIRED: "Your permit signature expired. Sign again to continue",
    ErrorCategory.REVERTED: "Transaction would fail on-chain. Please check your inputs",
    ErrorCategory.STALE_SNAPSHOT: (
        "Pool price moved since the deposit was calculated. Review the amounts and try again"
    ),
    ErrorCategory.NETWORK: "Network error. Please check your connection and try again",
    ErrorCategory.INSUFFICIENT_FUNDS: "Insufficient funds for this transaction",
    ErrorCategory.SLIPPAGE: "Price changed during transaction. Try increasing slippage tolerance",
    ErrorCategory.UNKNOWN: "An unexpected error occurred",
}

CATEGORY_AFFORDANCES: dict[ErrorCategory, RecoveryAffordance] = {
    ErrorCategory.USER_REJECTION: RecoveryAffordance.NONE,
    ErrorCategory.PERMISSION_EXPIRED: RecoveryAffordance.RESIGN,
    ErrorCategory.STALE_SNAPSHOT: RecoveryAffordance.REVALIDATE,
    ErrorCategory.REVERTED: RecoveryAffordance.RETRY,
    ErrorCategory.NETWORK: RecoveryAffordance.RETRY,
    ErrorCategory.INSUFFICIENT_FUNDS: RecoveryAffordance.RETRY,
    ErrorCategory.SLIPPAGE: RecoveryAffordance.RETRY,
    ErrorCategory.UNKNOWN: RecoveryAffordance.RETRY,
}


def _payload(error: Any) -> dict[str, Any] | None:
    """The JSON-RPC error dict some clients pass as the only exception arg."""
    if isinstance(error, dict):
        return error
    if isinstance(error, BaseException) and error.args and isinstance(error.args[0], dict):
        return error.args[0]
    return None


def extract_error_message(error: Any) -> str:
    """Best human-readable message for an error of any shape.

    Prefers a JSON-RPC payload's message, then the message of the exception
    that caused this one, then the exception's own text.
    """
    if error is None:
        return UNKNOWN_ERROR_MESSAGE
    if isinstance(error, str):
        return error or UNKNOWN_ERROR_MESSAGE

    payload = _payload(error)
    if payload is not None:
        for key in ("shortMessage", "message", "reason"):
            if isinstance(payload.get(key), str):
                return payload[key]
        return str(payload)

    if isinstance(error, TransactionReverted):
        return error.reason

    if isinstance(error, BaseException):
        cause = error.__cause__
        if cause is not None:
            cause_message = extract_error_message(cause)
            if cause_message != UNKNOWN_ERROR_MESSAGE:
                return cause_message
        return str(error) or type(error).__name__

    return str(error) or UNKNOWN_ERROR_MESSAGE


def error_code(error: Any) -> int | None:
    """EIP-1193 / JSON-RPC error code, if the error carries one."""
    payload = _payload(error)
    if payload is not None and isinstance(payload.get("code"), int):
        return payload["code"]
    code = getattr(error, "code", None)
    return code if isinstance(code, int) else None


def _mentions(message: str, phrases: tuple[str, ...]) -> bool:
    return any(phrase in message for phrase in phrases)


def is_user_rejection(error: Any) -> bool:
    """True if the user rejected the request in their wallet."""
    if isinstance(error, UserRejected):
        return True
    if error_code(error) == USER_REJECTED_CODE:
        return True
    return _mentions(extract_error_message(error).lower(), USER_REJECTION_PHRASES)


def categorize_error(error: Any) -> ErrorCategory:
    """Map an arbitrary error to an ErrorCategory."""
    if is_user_rejection(error):
        return ErrorCategory.USER_REJECTION
    if isinstance(error, PermissionExpired):
        return ErrorCategory.PERMISSION_EXPIRED
    if isinstance(error, StaleSnapshot):
        return ErrorCategory.STALE_SNAPSHOT

    message = extract_error_message(error).lower()
    if _mentions(message, PERMISSION_EXPIRED_PHRASES):
        return ErrorCategory.PERMISSION_EXPIRED
    if isinstance(error, TransactionReverted):
        return ErrorCategory.REVERTED
    if _mentions(message, NETWORK_PHRASES):
        return ErrorCategory.NETWORK
    if _mentions(message, INSUFFICIENT_FUNDS_PHRASES):
        return ErrorCategory.INSUFFICIENT_FUNDS
    if _mentions(message, SLIPPAGE_PHRASES):
        return ErrorCategory.SLIPPAGE
    if _mentions(message, REVERT_PHRASES):
        return ErrorCategory.REVERTED
    return ErrorCategory.UNKNOWN


@dataclass(frozen=True)
class ClassifiedError:
    """An error reduced to the pipeline taxonomy.

    Attributes:
        category: Failure category
        affordance: Recovery the caller should offer
        message: Underlying error message
        user_message: Short explanation for the user
        error: Typed pipeline error equivalent to the original
    """

    category: ErrorCategory
    affordance: RecoveryAffordance
    message: str
    user_message: str
    error: LpflowError


def classify_error(error: Any) -> ClassifiedError:
    """Classify a collaborator failure and convert it to a pipeline error."""
    category = categorize_error(error)
    message = extract_error_message(error)

    typed: LpflowError
    if category == ErrorCategory.USER_REJECTION:
        typed = error if isinstance(error, UserRejected) else UserRejected(message)
    elif category == ErrorCategory.PERMISSION_EXPIRED:
        typed = error if isinstance(error, PermissionExpired) else PermissionExpired(message)
    elif category == ErrorCategory.REVERTED:
        typed = error if isinstance(error, TransactionReverted) else TransactionReverted(message)
    elif isinstance(error, LpflowError):
        typed = error
    else:
        typed = UnknownExecutionError(message)

    return ClassifiedError(
        category=category,
        affordance=CATEGORY_AFFORDANCES[category],
        message=message,
        user_message=CATEGORY_MESSAGES[category],
        error=typed,
    )


__all__ = [
    "ErrorCategory",
    "RecoveryAffordance",
    "ClassifiedError",
    "CATEGORY_MESSAGES",
    "CATEGORY_AFFORDANCES",
    "extract_error_message",
    "error_code",
    "is_user_rejection",
    "categorize_error",
    "classify_error",
]
