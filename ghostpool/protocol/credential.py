"""
Ghost Pool Credential Cipher

Turns a user secret into the encrypted credential carried by a deposit or
withdrawal request:

    1. hash_secret(secret)              -> u128
    2. fresh ephemeral X25519 key pair  -> shared secret with the network key
    3. fresh 128-bit nonce
    4. Rescue-CTR encryption of the u128 -> one 32-byte ciphertext block

The client only ever encrypts. Equality of a withdrawal credential with the
stored deposit credential is checked inside the network.
"""

from __future__ import annotations
import logging
import secrets
from typing import Optional

from ghostpool.constants import CIPHERTEXT_BLOCK_SIZE, LITTLE_ENDIAN, NONCE_SIZE, U128_MAX
from ghostpool.core.types import EncryptedCredential
from ghostpool.crypto import hash as hashing
from ghostpool.crypto import x25519
from ghostpool.crypto.rescue import RescueCipher, RescueParameters, get_parameters
from ghostpool.errors import CryptoError, ValidationError, Stage

logger = logging.getLogger(__name__)


class CredentialCipher:
    """
    Password-authenticated encryption of secret hashes.

    Requires initialize_cipher() to have run; construction fails with
    CryptoError otherwise.
    """

    def __init__(self, params: Optional[RescueParameters] = None):
        self.params = params or get_parameters()

    @staticmethod
    def hash_secret(secret: str) -> int:
        """u128 hash of a user secret. See ghostpool.crypto.hash.hash_secret."""
        if not isinstance(secret, str):
            raise ValidationError("secret", "must be a string", Stage.ENCRYPT)
        return hashing.hash_secret(secret)

    @staticmethod
    def validate_secret(secret: str) -> str:
        """Requests refuse empty secrets; hashing itself accepts any string."""
        if not isinstance(secret, str) or not secret:
            raise ValidationError("secret", "must be a non-empty string", Stage.ENCRYPT)
        return secret

    @staticmethod
    def derive_shared_secret(ephemeral_private: bytes, counterparty_public: bytes) -> bytes:
        """X25519 key agreement with the network's public key."""
        return x25519.shared_secret(ephemeral_private, counterparty_public)

    @staticmethod
    def generate_nonce() -> int:
        """Fresh 128-bit nonce from the system CSPRNG."""
        return int.from_bytes(secrets.token_bytes(NONCE_SIZE), LITTLE_ENDIAN)

    def encrypt_value(self, shared_secret: bytes, nonce: int, plaintext: int) -> bytes:
        """
        Encrypt one 128-bit value.

        Args:
            shared_secret: 32-byte X25519 shared secret
            nonce: 128-bit nonce
            plaintext: 128-bit value

        Returns:
            32-byte ciphertext block
        """
        if not 0 <= plaintext <= U128_MAX:
            raise ValidationError("plaintext", "must fit in 128 bits", Stage.ENCRYPT)
        if not 0 <= nonce <= U128_MAX:
            raise ValidationError("nonce", "must fit in 128 bits", Stage.ENCRYPT)
        cipher = RescueCipher(shared_secret, self.params)
        block = cipher.encrypt([plaintext], nonce)[0]
        if len(block) != CIPHERTEXT_BLOCK_SIZE:
            raise CryptoError(f"Cipher produced a {len(block)}-byte block")
        return block

    def encrypt_credential(self, secret: str, mxe_public_key: bytes) -> EncryptedCredential:
        """
        Full credential for one request attempt.

        Every call draws a new ephemeral key and nonce, so two credentials for
        the same secret are unlinkable.
        """
        secret_hash = self.hash_secret(self.validate_secret(secret))
        private_key, public_key = x25519.generate_keypair()
        shared = self.derive_shared_secret(private_key, mxe_public_key)
        nonce = self.generate_nonce()
        ciphertext = self.encrypt_value(shared, nonce, secret_hash)
        del private_key, shared, secret_hash

        logger.debug(f"Credential encrypted (ephemeral key {public_key.hex()[:16]}...)")
        return EncryptedCredential(
            ephemeral_public_key=public_key,
            ciphertext=ciphertext,
            nonce=nonce,
        )
