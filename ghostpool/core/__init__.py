"""
Ghost Pool Core Types and Serialization
"""

from ghostpool.core.types import (
    Pubkey,
    RequestKind,
    EncryptedCredential,
    PoolState,
    DerivedAddresses,
)

__all__ = [
    "Pubkey",
    "RequestKind",
    "EncryptedCredential",
    "PoolState",
    "DerivedAddresses",
]
