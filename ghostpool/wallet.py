"""
Ghost Pool Wallet Signers

A signer exposes its public key and signs transaction message bytes.
KeypairSigner holds an Ed25519 key locally; other signers (hardware, remote
wallets) implement the same interface and raise SignerRejectedError when the
user declines.
"""

from __future__ import annotations
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

try:
    import nacl.signing
    import nacl.exceptions
except ImportError:
    raise ImportError("PyNaCl required: pip install PyNaCl")

from ghostpool.constants import SIGNATURE_SIZE
from ghostpool.core.types import Pubkey
from ghostpool.errors import SignerRejectedError, ValidationError, Stage

logger = logging.getLogger(__name__)


class WalletSigner(ABC):
    """Produces signatures over supplied transaction bytes."""

    @property
    @abstractmethod
    def public_key(self) -> Pubkey:
        ...

    @abstractmethod
    async def sign(self, message: bytes) -> bytes:
        """
        Sign message bytes.

        Returns:
            64-byte Ed25519 signature

        Raises:
            SignerRejectedError: If the signer declines
        """


class KeypairSigner(WalletSigner):
    """In-process Ed25519 keypair."""

    def __init__(self, seed: bytes):
        if len(seed) != 32:
            raise ValidationError("keypair", "seed must be 32 bytes", Stage.SUBMIT)
        self._key = nacl.signing.SigningKey(seed)
        self._public = Pubkey(bytes(self._key.verify_key))

    @classmethod
    def generate(cls) -> KeypairSigner:
        return cls(bytes(nacl.signing.SigningKey.generate()))

    @classmethod
    def from_keyfile(cls, path: str) -> KeypairSigner:
        """
        Load a JSON keyfile: array of 64 ints (seed || public key).

        Raises:
            ValidationError: Malformed file, or public half does not match
        """
        try:
            values = json.loads(Path(path).read_text())
            raw = bytes(values)
        except (OSError, ValueError, TypeError) as exc:
            raise ValidationError("keyfile", f"cannot read {path}: {exc}", Stage.SUBMIT) from exc
        if len(raw) != 64:
            raise ValidationError("keyfile", f"expected 64 bytes, got {len(raw)}", Stage.SUBMIT)
        signer = cls(raw[:32])
        if signer.public_key.data != raw[32:]:
            raise ValidationError("keyfile", "public key does not match secret", Stage.SUBMIT)
        logger.info(f"Loaded signer {signer.public_key} from {path}")
        return signer

    def to_keyfile(self, path: str) -> None:
        raw = bytes(self._key) + self._public.data
        Path(path).write_text(json.dumps(list(raw)))

    @property
    def public_key(self) -> Pubkey:
        return self._public

    async def sign(self, message: bytes) -> bytes:
        try:
            signature = self._key.sign(message).signature
        except nacl.exceptions.CryptoError as exc:
            raise SignerRejectedError(f"Local signing failed: {exc}") from exc
        if len(signature) != SIGNATURE_SIZE:
            raise SignerRejectedError(f"Local signer produced a {len(signature)}-byte signature")
        return signature


def verify_signature(public_key: Pubkey, message: bytes, signature: bytes) -> bool:
    """Check an Ed25519 signature."""
    try:
        nacl.signing.VerifyKey(public_key.data).verify(message, signature)
        return True
    except nacl.exceptions.BadSignatureError:
        return False
