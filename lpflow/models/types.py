"""Integer widths and address helpers shared by the models and the API.

Raw token amounts travel as Python ints internally and as decimal strings on
the wire (`Uint256`), so values above 2^53 survive JSON clients.
"""

import re
from typing import Annotated, Any

from pydantic import BeforeValidator, Field

# Permit2 caps allowances at uint160; ERC20 approvals use the full word
UINT160_MAX = 2**160 - 1
UINT256_MAX = 2**256 - 1

_ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")


def check_uint(value: int, bits: int, name: str = "value") -> int:
    """Check that an integer fits in an unsigned integer of the given width.

    Raises:
        ValueError: If value is negative or does not fit in `bits` bits
    """
    if value < 0:
        raise ValueError(f"{name} cannot be negative: {value}")
    if value >= 1 << bits:
        raise ValueError(f"{name} overflows uint{bits}: {value}")
    return value


def validate_uint256(value: Any) -> str:
    """Canonical decimal string for a wire amount given as int or decimal string.

    Raises:
        ValueError: For bools, non-integers and values outside uint256
    """
    if isinstance(value, bool) or not isinstance(value, int | str):
        raise ValueError(f"Uint256 must be string or int, got {type(value).__name__}")
    try:
        int_value = int(value)
    except ValueError as err:
        raise ValueError(f"Uint256 must be a decimal integer string: '{value}'") from err
    return str(check_uint(int_value, 256, "Uint256"))


Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

Uint256 = Annotated[
    str,
    BeforeValidator(validate_uint256),
    Field(description="256-bit unsigned integer as decimal string"),
]


def is_valid_address(address: Any) -> bool:
    return isinstance(address, str) and _ADDRESS_RE.fullmatch(address) is not None


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Lowercase an address and make sure it carries the 0x prefix.

    Raises:
        ValueError: If validate=True and the result is not a 20-byte address
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr
    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")
    return addr


def address_sorts_before(a: str, b: str) -> bool:
    """True if address `a` sorts before `b` in the protocol's currency ordering.

    Pools order their currencies by the numeric value of the address, so the
    comparison is done on the raw 20 bytes rather than on the checksummed text.
    """
    a_bytes = bytes.fromhex(normalize_address(a)[2:])
    b_bytes = bytes.fromhex(normalize_address(b)[2:])
    if a_bytes == b_bytes:
        raise ValueError(f"Cannot sort identical addresses: {a}")
    return a_bytes < b_bytes
