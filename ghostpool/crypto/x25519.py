"""
Ghost Pool X25519 Key Exchange

Ephemeral Diffie-Hellman with the network's published X25519 key.
Private keys returned here must not outlive the call that uses them.
"""

from __future__ import annotations
import secrets
from typing import Tuple

try:
    import nacl.bindings
    import nacl.exceptions
except ImportError:
    raise ImportError("PyNaCl required: pip install PyNaCl")

from ghostpool.constants import X25519_KEY_SIZE
from ghostpool.errors import CryptoError, ErrorCode


def generate_keypair() -> Tuple[bytes, bytes]:
    """
    Generate an ephemeral X25519 keypair.

    Returns:
        (private_key, public_key), 32 bytes each
    """
    private_key = secrets.token_bytes(X25519_KEY_SIZE)
    return private_key, public_key_from_private(private_key)


def public_key_from_private(private_key: bytes) -> bytes:
    if len(private_key) != X25519_KEY_SIZE:
        raise CryptoError(
            f"X25519 private key must be {X25519_KEY_SIZE} bytes",
            ErrorCode.KEY_EXCHANGE_FAILED,
        )
    return nacl.bindings.crypto_scalarmult_base(private_key)


def shared_secret(private_key: bytes, peer_public_key: bytes) -> bytes:
    """
    Raw X25519 shared secret (RFC 7748 u-coordinate, 32 bytes).

    Raises:
        CryptoError: On malformed keys or a low-order peer key
    """
    if len(private_key) != X25519_KEY_SIZE or len(peer_public_key) != X25519_KEY_SIZE:
        raise CryptoError(
            f"X25519 keys must be {X25519_KEY_SIZE} bytes",
            ErrorCode.KEY_EXCHANGE_FAILED,
        )
    try:
        return nacl.bindings.crypto_scalarmult(private_key, peer_public_key)
    except nacl.exceptions.RuntimeError as exc:
        raise CryptoError(
            "X25519 key agreement produced a degenerate secret",
            ErrorCode.KEY_EXCHANGE_FAILED,
        ) from exc
