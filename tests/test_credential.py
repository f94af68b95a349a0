"""
Tests for the Rescue cipher and credential encryption.
"""

import itertools

import pytest

from ghostpool.crypto import rescue, x25519
from ghostpool.crypto.rescue import (
    FIELD_PRIME,
    SBOX_ALPHA,
    RescueCipher,
    RescueParameters,
    initialize_cipher,
    rescue_permutation,
    rescue_prime_hash,
)
from ghostpool.errors import CryptoError, ErrorCode, ValidationError
from ghostpool.protocol.credential import CredentialCipher


def byte_distance(a: bytes, b: bytes) -> int:
    """Number of differing byte positions."""
    return sum(x != y for x, y in zip(a, b))


class TestRescueParameters:
    """Tests for parameter generation."""

    def test_shape(self, rescue_params):
        """Constants cover every round of both instances."""
        p = rescue_params
        assert p.prime == FIELD_PRIME
        assert p.alpha == SBOX_ALPHA
        assert (p.cipher.width, p.hash.width, p.capacity, p.rate) == (5, 12, 5, 7)
        assert p.cipher.rounds == 10
        assert p.hash.rounds == 8
        for desc in (p.cipher, p.hash):
            assert len(desc.round_constants) == 2 * desc.rounds + 1
            assert all(len(row) == desc.width for row in desc.round_constants)
            assert all(0 <= c < p.prime for row in desc.round_constants for c in row)

    def test_cauchy_mds(self, rescue_params):
        """MDS entry (i, j) is 1 / (i + j) counting from one."""
        mds = rescue_params.cipher.mds
        assert mds[0][0] * 2 % FIELD_PRIME == 1
        assert mds[4][2] * 8 % FIELD_PRIME == 1

    def test_cipher_constants(self, rescue_params):
        """Cipher constants match the network's SHAKE256 affine schedule."""
        constants = rescue_params.cipher.round_constants
        assert constants[0][0] == 0x62ADD6B50E0508492FCBC9EB58BE61D1CE623038D8903AA90EC24D00A2BDF8B4
        assert constants[20][0] == 0x499AC951E6032B643EB7F23AB8E748B8B0115CBCC9A3431A7DD3070A0C4E25E4

    def test_hash_constants(self, rescue_params):
        """Hash constants start with a zero vector, then the Rescue-XLIX stream."""
        constants = rescue_params.hash.round_constants
        assert constants[0] == (0,) * 12
        assert constants[1][0] == 0x519D2325B8C32A2E75F2F4EFE3100C1D1290D52F08A5C6146ED4480EB19086AD

    def test_inverse_sbox(self, rescue_params):
        """alpha_inv undoes the S-box."""
        p = rescue_params
        for x in (2, 12345, FIELD_PRIME - 2):
            assert pow(pow(x, p.alpha, p.prime), p.alpha_inv, p.prime) == x

    def test_deterministic(self, rescue_params):
        """Regeneration yields identical constants."""
        assert RescueParameters.generate() == rescue_params

    def test_non_permutation_alpha_rejected(self):
        """An exponent sharing a factor with p-1 is refused."""
        with pytest.raises(CryptoError):
            RescueParameters.generate(alpha=2)

    def test_initialize_failure_keeps_previous(self, rescue_params):
        """A failed re-initialization leaves the working parameters in place."""
        with pytest.raises(CryptoError):
            initialize_cipher(alpha=3)
        assert rescue.get_parameters() == rescue_params


class TestRescuePrimitives:
    """Tests for the permutation, sponge and block cipher."""

    def test_permutation_mixes(self, rescue_params):
        """A one-element change affects every output element."""
        a = rescue_permutation(rescue_params.cipher, [1, 2, 3, 4, 5])
        b = rescue_permutation(rescue_params.cipher, [1, 2, 3, 4, 6])
        assert all(x != y for x, y in zip(a, b))

    def test_permutation_width(self, rescue_params):
        """States of the wrong width are refused."""
        with pytest.raises(CryptoError):
            rescue_permutation(rescue_params.hash, [1, 2, 3])

    def test_hash_digest(self, rescue_params):
        """Rescue-Prime digest of (1, 2, 3) is fixed."""
        digest = rescue_prime_hash(rescue_params, [1, 2, 3])
        assert len(digest) == 5
        assert digest[0] == 0x51568E9F382855C5339678064DC3CBCD19B0C3894F130A6848E4BA2BFAAF5C4F
        assert digest[4] == 0x630E27DDED2C7357F5DBD435B962489ECD6F8C92E9A06A52A6C18F75BD463DE

    def test_hash_padding_distinguishes_length(self, rescue_params):
        """Trailing zero changes the digest."""
        assert rescue_prime_hash(rescue_params, [1]) != rescue_prime_hash(rescue_params, [1, 0])

    def test_key_derivation(self, rescue_params):
        """The cipher key is H(1, shared secret, 5)."""
        shared = bytes(range(32))
        key = RescueCipher.derive_key(shared, rescue_params)
        assert key == rescue_prime_hash(rescue_params, [1, int.from_bytes(shared, "little"), 5])
        assert key[0] == 0x7D97AA7AD0542A51F8A0F294962FB08F9F1EE5E5F829BB258421E21F0DFFF1
        assert RescueCipher(shared, rescue_params).key == key

    def test_known_ciphertext(self, rescue_params):
        """Counter-mode output for a fixed key, nonce and plaintext."""
        cipher = RescueCipher(bytes(range(32)), rescue_params)
        blocks = cipher.encrypt([0xA408BCEC895B24891E77FEBA78B792EF, 42], 7)
        assert blocks[0].hex() == "e1e5e56412686abd9a32d209a974e09e257a0fd8ed3aa3a4cd088c853c0f947c"
        assert int.from_bytes(blocks[1], "little") == (
            0x46C946F03873F4CC280D20B7A6A724CC90012C330FC8A2DFB1F56D5D195DB07B
        )

    def test_known_keystream(self, rescue_params):
        """Zero secret, zero nonce: first keystream element is fixed."""
        stream = RescueCipher(bytes(32), rescue_params).keystream(0, 1)
        assert stream == [0x691A55F2B1E1225C3A932E6914DA68EAC9D5D623A5E5A60B8F12D49AAA05EF87]

    def test_keystream_counter(self, rescue_params):
        """Keystream blocks differ per counter and per nonce."""
        cipher = RescueCipher(bytes(range(32)), rescue_params)
        stream = cipher.keystream(nonce=1, length=10)
        assert len(stream) == 10
        assert len(set(stream)) == 10
        assert cipher.keystream(nonce=2, length=10) != stream

    def test_plaintext_outside_field(self, rescue_params):
        """Elements >= p are rejected."""
        cipher = RescueCipher(bytes(32), rescue_params)
        with pytest.raises(CryptoError):
            cipher.encrypt([FIELD_PRIME], 1)

    def test_short_shared_secret(self, rescue_params):
        """Shared secret must be 32 bytes."""
        with pytest.raises(CryptoError):
            RescueCipher(bytes(16), rescue_params)

    def test_uninitialized_cipher_fails(self, monkeypatch):
        """Use before initialize_cipher() raises CIPHER_UNAVAILABLE."""
        monkeypatch.setattr(rescue, "_PARAMETERS", None)
        with pytest.raises(CryptoError) as exc_info:
            CredentialCipher()
        assert exc_info.value.code == ErrorCode.CIPHER_UNAVAILABLE
        with pytest.raises(CryptoError):
            RescueCipher(bytes(32))


class TestKeyExchange:
    """Tests for X25519."""

    def test_shared_secret_agrees(self):
        """Both sides derive the same secret."""
        a_priv, a_pub = x25519.generate_keypair()
        b_priv, b_pub = x25519.generate_keypair()
        assert (
            CredentialCipher.derive_shared_secret(a_priv, b_pub)
            == CredentialCipher.derive_shared_secret(b_priv, a_pub)
        )

    def test_low_order_key_rejected(self):
        """An all-zero peer key yields KEY_EXCHANGE_FAILED."""
        private_key, _ = x25519.generate_keypair()
        with pytest.raises(CryptoError) as exc_info:
            x25519.shared_secret(private_key, bytes(32))
        assert exc_info.value.code == ErrorCode.KEY_EXCHANGE_FAILED

    def test_bad_key_length(self):
        """Keys must be 32 bytes."""
        with pytest.raises(CryptoError):
            x25519.shared_secret(bytes(32), bytes(31))


class TestCredentialCipher:
    """Tests for CredentialCipher."""

    def test_encrypt_value_deterministic(self, cipher):
        """Same shared secret, nonce and plaintext give the same block."""
        shared = bytes(range(32))
        first = cipher.encrypt_value(shared, 99, 12345)
        assert len(first) == 32
        assert cipher.encrypt_value(shared, 99, 12345) == first
        assert int.from_bytes(first, "little") < FIELD_PRIME

    def test_encrypt_value_golden(self, cipher):
        """The password123 hash under a fixed secret and nonce gives a fixed block."""
        block = cipher.encrypt_value(bytes(range(32)), 7, CredentialCipher.hash_secret("password123"))
        assert block.hex() == "e1e5e56412686abd9a32d209a974e09e257a0fd8ed3aa3a4cd088c853c0f947c"

    def test_nonce_divergence(self, cipher):
        """Distinct nonces give unrelated ciphertexts for one plaintext."""
        shared = bytes([3] * 32)
        blocks = [cipher.encrypt_value(shared, nonce, 42) for nonce in range(12)]
        assert len(set(blocks)) == len(blocks)
        for a, b in itertools.combinations(blocks, 2):
            assert byte_distance(a, b) > 24

    def test_plaintext_range(self, cipher):
        """Plaintext and nonce must fit in 128 bits."""
        with pytest.raises(ValidationError):
            cipher.encrypt_value(bytes(32), 1, 2**128)
        with pytest.raises(ValidationError):
            cipher.encrypt_value(bytes(32), -1, 5)

    def test_generate_nonce_range(self):
        """Nonces are 128-bit and not repeated."""
        nonces = {CredentialCipher.generate_nonce() for _ in range(64)}
        assert len(nonces) == 64
        assert all(0 <= n < 2**128 for n in nonces)

    def test_credential_unlinkable(self, cipher, mxe_keypair):
        """Same secret twice: fresh key, fresh nonce, unrelated ciphertext."""
        _, mxe_public = mxe_keypair
        first = cipher.encrypt_credential("password123", mxe_public)
        second = cipher.encrypt_credential("password123", mxe_public)
        assert first.ephemeral_public_key != second.ephemeral_public_key
        assert first.nonce != second.nonce
        assert byte_distance(first.ciphertext, second.ciphertext) > 24

    def test_credential_decryptable_by_network(self, cipher, mxe_keypair, rescue_params):
        """The network side recovers the secret hash with its private key."""
        mxe_private, mxe_public = mxe_keypair
        credential = cipher.encrypt_credential("password123", mxe_public)
        shared = x25519.shared_secret(mxe_private, credential.ephemeral_public_key)
        keystream = RescueCipher(shared, rescue_params).keystream(credential.nonce, 1)[0]
        recovered = (int.from_bytes(credential.ciphertext, "little") - keystream) % FIELD_PRIME
        assert recovered == CredentialCipher.hash_secret("password123")

    def test_empty_secret_rejected(self, cipher, mxe_keypair):
        """Empty secrets fail before any key is generated."""
        with pytest.raises(ValidationError):
            cipher.encrypt_credential("", mxe_keypair[1])
