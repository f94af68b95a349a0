"""
Ghost Pool Program-Derived Addresses

Deterministic, key-less account addresses:

    address = SHA-256(seed_0 || ... || seed_n || bump || owner || "ProgramDerivedAddress")

The bump is searched downward from 255 until the digest is NOT a valid
Ed25519 point, so no private key can ever sign for the address.
"""

from __future__ import annotations
import hashlib
from functools import lru_cache
from typing import Sequence, Tuple

from ghostpool.constants import (
    LITTLE_ENDIAN,
    MAX_SEEDS,
    MAX_SEED_LENGTH,
    PDA_MARKER,
    PUBKEY_SIZE,
)
from ghostpool.core.types import Pubkey
from ghostpool.errors import InvalidSeedError, InternalError

# Ed25519 field prime and curve constant d = -121665 / 121666
ED25519_P = 2**255 - 19
ED25519_D = (-121665 * pow(121666, -1, ED25519_P)) % ED25519_P


def is_on_curve(point: bytes) -> bool:
    """
    True if the 32 bytes decompress to an Ed25519 point.

    Follows compressed Edwards-Y decompression: the sign bit is ignored, y is
    reduced mod p, and the point exists iff (y^2 - 1) / (d*y^2 + 1) is a
    square in the field.
    """
    if len(point) != PUBKEY_SIZE:
        return False
    p = ED25519_P
    y = (int.from_bytes(point, LITTLE_ENDIAN) & ((1 << 255) - 1)) % p
    y2 = y * y % p
    u = (y2 - 1) % p
    v = (ED25519_D * y2 + 1) % p
    if u == 0:
        return True
    # Euler's criterion on u/v
    ratio = u * pow(v, p - 2, p) % p
    return pow(ratio, (p - 1) // 2, p) == 1


def _check_seeds(seeds: Sequence[bytes], limit: int) -> None:
    if len(seeds) > limit:
        raise InvalidSeedError(f"at most {limit} seeds allowed, got {len(seeds)}")
    for i, seed in enumerate(seeds):
        if not isinstance(seed, (bytes, bytearray)):
            raise InvalidSeedError(f"seed {i} must be bytes, got {type(seed).__name__}")
        if len(seed) > MAX_SEED_LENGTH:
            raise InvalidSeedError(f"seed {i} is {len(seed)} bytes, max {MAX_SEED_LENGTH}")


def _hash_address(seeds: Sequence[bytes], owner: bytes) -> bytes:
    hasher = hashlib.sha256()
    for seed in seeds:
        hasher.update(seed)
    hasher.update(owner)
    hasher.update(PDA_MARKER)
    return hasher.digest()


def create_program_address(seeds: Sequence[bytes], owner: Pubkey) -> Pubkey:
    """
    Address for an explicit seed list (bump included).

    Raises:
        InvalidSeedError: Bad seeds, or the digest lands on the curve
    """
    _check_seeds(seeds, MAX_SEEDS)
    digest = _hash_address(seeds, owner.data)
    if is_on_curve(digest):
        raise InvalidSeedError("seeds produce an on-curve address")
    return Pubkey(digest)


@lru_cache(maxsize=1024)
def _find_cached(seeds: Tuple[bytes, ...], owner: bytes) -> Tuple[bytes, int]:
    for bump in range(255, -1, -1):
        digest = _hash_address(seeds + (bytes([bump]),), owner)
        if not is_on_curve(digest):
            return digest, bump
    raise InternalError("No off-curve bump found", {"seeds": [s.hex() for s in seeds]})


def find_program_address(seeds: Sequence[bytes], owner: Pubkey) -> Tuple[Pubkey, int]:
    """
    Canonical derived address and its bump.

    Pure and memoized; safe to call from concurrent tasks.

    Args:
        seeds: Ordered seed byte strings (bump excluded)
        owner: Owning program identity

    Returns:
        (address, bump)
    """
    _check_seeds(seeds, MAX_SEEDS - 1)
    digest, bump = _find_cached(tuple(bytes(s) for s in seeds), owner.data)
    return Pubkey(digest), bump
