"""
Diamond DAO Crypto Module

Address handling for signer, facet and initializer identities.
"""

from .address import (
    is_null_address,
    is_valid_address,
    normalize_address,
    short_address,
)

__all__ = [
    "is_null_address",
    "is_valid_address",
    "normalize_address",
    "short_address",
]
