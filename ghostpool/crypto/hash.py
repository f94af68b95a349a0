"""
Ghost Pool Hash Functions

SHA-256 based digests shared with the on-ledger program and the
confidential-computation network. Every function here must stay
bit-for-bit stable: a deposit and a later withdrawal only agree if both
sides hash identically.
"""

from __future__ import annotations
import hashlib
from typing import Union

from ghostpool.constants import DISCRIMINATOR_SIZE, LITTLE_ENDIAN

SECRET_HASH_BYTES = 16


def sha256(data: Union[bytes, bytearray, memoryview]) -> bytes:
    """SHA-256 digest as raw bytes."""
    return hashlib.sha256(data).digest()


def hash_secret(secret: str) -> int:
    """
    Hash a user secret to the u128 stored by the network.

    SHA-256 over the UTF-8 encoding, first 16 bytes, read as an unsigned
    little-endian integer.

    Args:
        secret: User secret (password)

    Returns:
        128-bit unsigned integer
    """
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return int.from_bytes(digest[:SECRET_HASH_BYTES], LITTLE_ENDIAN)


def comp_def_offset(circuit_name: str) -> int:
    """
    Circuit identifier: first 4 bytes of SHA-256(name) as little-endian u32.

    Doubles as a seed component of the circuit-definition address.
    """
    digest = hashlib.sha256(circuit_name.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], LITTLE_ENDIAN)


def instruction_discriminator(name: str) -> bytes:
    """Anchor instruction tag: sha256("global:<name>")[:8]."""
    return hashlib.sha256(f"global:{name}".encode("utf-8")).digest()[:DISCRIMINATOR_SIZE]


def account_discriminator(name: str) -> bytes:
    """Anchor account tag: sha256("account:<Name>")[:8]."""
    return hashlib.sha256(f"account:{name}".encode("utf-8")).digest()[:DISCRIMINATOR_SIZE]
