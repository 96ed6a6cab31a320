"""ERC20 calldata encoding."""

from __future__ import annotations

from lpflow.interfaces import TransactionRequest
from lpflow.models.types import check_uint, normalize_address

# approve(address,uint256)
ERC20_APPROVE_SELECTOR = bytes.fromhex("095ea7b3")

# Minimal ERC20 ABI for allowance reads
ERC20_ABI = [
    {
        "name": "allowance",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

# Permit2 allowance(owner, token, spender) -> (amount, expiration, nonce)
PERMIT2_ABI = [
    {
        "name": "allowance",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "token", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "outputs": [
            {"name": "amount", "type": "uint160"},
            {"name": "expiration", "type": "uint48"},
            {"name": "nonce", "type": "uint48"},
        ],
    },
]


def encode_erc20_approve(spender: str, amount: int) -> str:
    """Encode ERC20.approve(spender, amount).

    Args:
        spender: Address allowed to pull tokens
        amount: Allowance (uint256)

    Returns:
        Calldata as 0x-prefixed hex
    """
    from eth_abi import encode  # type: ignore[attr-defined]

    spender_bytes = bytes.fromhex(normalize_address(spender, validate=True)[2:])
    encoded_params = encode(
        ["address", "uint256"], [spender_bytes, check_uint(amount, 256, "amount")]
    )
    return "0x" + (ERC20_APPROVE_SELECTOR + encoded_params).hex()


def build_approve_transaction(token: str, spender: str, amount: int) -> TransactionRequest:
    """Approve transaction sent to the token contract itself."""
    return TransactionRequest(
        to=normalize_address(token, validate=True),
        data=encode_erc20_approve(spender, amount),
    )


__all__ = [
    "ERC20_APPROVE_SELECTOR",
    "ERC20_ABI",
    "PERMIT2_ABI",
    "encode_erc20_approve",
    "build_approve_transaction",
]
