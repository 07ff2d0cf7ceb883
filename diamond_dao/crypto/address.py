"""
Diamond DAO Address Module

Signer, facet and init-target identities are 20-byte account addresses in
EIP-55 checksum form. Two spellings of the same address (case, prefix) are
the same identity.
"""

from typing import Any

from eth_utils import is_address, is_checksum_address, to_checksum_address

from ..constants import NULL_ADDRESS
from ..exceptions import InvalidAddressError


# Address prefix
ADDRESS_PREFIX = "0x"


def is_valid_address(address: Any) -> bool:
    """
    Check whether *address* is a well-formed 20-byte hex address.

    Mixed-case input must carry a valid EIP-55 checksum; all-lower and
    all-upper spellings are accepted as-is.
    """
    if not isinstance(address, str):
        return False
    if not address.startswith(ADDRESS_PREFIX):
        return False
    if not is_address(address):
        return False
    body = address[len(ADDRESS_PREFIX):]
    if body.islower() or body.isupper():
        return True
    return is_checksum_address(address)


def normalize_address(address: Any) -> str:
    """
    Convert an address to its canonical checksum form.

    Args:
        address: Hex address with 0x prefix

    Returns:
        EIP-55 checksum address

    Raises:
        InvalidAddressError: If the address is malformed
    """
    if not is_valid_address(address):
        raise InvalidAddressError(f"Invalid address: {address!r}")
    return to_checksum_address(address)


def is_null_address(address: Any) -> bool:
    """True for the all-zero address in any spelling."""
    if not is_valid_address(address):
        return False
    return address.lower() == NULL_ADDRESS


def short_address(address: str) -> str:
    """Abbreviate an address for CLI tables and log lines."""
    if len(address) <= 20:
        return address
    return f"{address[:10]}...{address[-8:]}"
