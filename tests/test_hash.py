"""
Tests for secret hashing, circuit offsets and discriminators.
"""

import random

import pytest
from Crypto.Hash import SHA256

from ghostpool.constants import (
    KNOWN_CIRCUIT_OFFSETS,
    KNOWN_INSTRUCTION_DISCRIMINATORS,
    POOL_ACCOUNT_DISCRIMINATOR,
    POOL_ACCOUNT_NAME,
)
from ghostpool.crypto.hash import (
    account_discriminator,
    comp_def_offset,
    hash_secret,
    instruction_discriminator,
)
from ghostpool.errors import ValidationError
from ghostpool.protocol.credential import CredentialCipher


def reference_hash(secret: str) -> int:
    """Independent path: pycryptodome digest, manual little-endian fold."""
    digest = SHA256.new(secret.encode("utf-8")).digest()
    return sum(byte << (8 * i) for i, byte in enumerate(digest[:16]))


class TestHashSecret:
    """Tests for the u128 secret hash."""

    def test_golden_value(self):
        """password123 hashes to the fixed u128 shared with the network."""
        assert hash_secret("password123") == 0xA408BCEC895B24891E77FEBA78B792EF

    def test_fits_u128(self):
        """Result always fits in 128 bits."""
        assert 0 <= hash_secret("x" * 1000) < 2**128

    def test_matches_independent_implementation(self):
        """Agrees with a second SHA-256 implementation over varied inputs."""
        rng = random.Random(1337)
        alphabet = "abcXYZ019 !éß中文\U0001f512"
        samples = ["a", "password123", "Гриша"]
        samples += [
            "".join(rng.choice(alphabet) for _ in range(rng.randint(1, 64)))
            for _ in range(200)
        ]
        for secret in samples:
            assert hash_secret(secret) == reference_hash(secret), secret

    def test_utf8_not_latin1(self):
        """Non-ASCII secrets are hashed as UTF-8."""
        assert hash_secret("é") == reference_hash("é")
        assert hash_secret("é") != int.from_bytes(
            SHA256.new(b"\xe9").digest()[:16], "little"
        )

    def test_empty_secret_hashes(self):
        """The empty string hashes like any other secret."""
        expected = 0x24B96F99C8F4FB9A141CFC9842C4B0E3
        assert hash_secret("") == expected
        assert CredentialCipher.hash_secret("") == expected
        assert reference_hash("") == expected

    @pytest.mark.parametrize("secret", [None, b"bytes", 42])
    def test_cipher_rejects_non_text(self, secret):
        """CredentialCipher.hash_secret refuses non-text secrets."""
        with pytest.raises(ValidationError) as exc_info:
            CredentialCipher.hash_secret(secret)
        assert exc_info.value.field == "secret"

    @pytest.mark.parametrize("secret", ["", None])
    def test_requests_refuse_empty_secret(self, secret):
        """Requests require a non-empty secret."""
        with pytest.raises(ValidationError) as exc_info:
            CredentialCipher.validate_secret(secret)
        assert exc_info.value.field == "secret"


class TestCircuitOffsets:
    """Tests for comp_def_offset."""

    def test_registry_matches_hash(self):
        """Every shipped circuit offset equals sha256(name)[:4] LE."""
        for name, offset in KNOWN_CIRCUIT_OFFSETS.items():
            assert comp_def_offset(name) == offset, name

    def test_offsets_distinct(self):
        """No two circuits share an offset."""
        assert len(set(KNOWN_CIRCUIT_OFFSETS.values())) == len(KNOWN_CIRCUIT_OFFSETS)

    def test_u32_range(self):
        """Offsets are 32-bit."""
        assert 0 <= comp_def_offset("anything") < 2**32


class TestDiscriminators:
    """Tests for instruction and account tags."""

    def test_known_instruction_tags(self):
        """Pinned tags equal sha256("global:<name>")[:8]."""
        for name, tag in KNOWN_INSTRUCTION_DISCRIMINATORS.items():
            assert instruction_discriminator(name) == tag

    def test_initialize_pool_tag(self):
        """initialize_pool tag."""
        assert instruction_discriminator("initialize_pool") == bytes.fromhex("5fb40aac54aee828")

    def test_pool_account_tag(self):
        """Pool record tag is the account hash."""
        assert account_discriminator(POOL_ACCOUNT_NAME) == POOL_ACCOUNT_DISCRIMINATOR
        assert POOL_ACCOUNT_DISCRIMINATOR.hex() == "43822f6219c909f6"
