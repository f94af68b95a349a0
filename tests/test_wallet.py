"""
Tests for wallet signers.
"""

import json

import pytest

from ghostpool.errors import SignerRejectedError, ValidationError
from ghostpool.wallet import KeypairSigner, verify_signature


class TestKeypairSigner:
    """Tests for KeypairSigner."""

    @pytest.mark.asyncio
    async def test_sign_verifies(self, signer):
        """Signatures are 64 bytes and verify under the public key."""
        signature = await signer.sign(b"message")
        assert len(signature) == 64
        assert verify_signature(signer.public_key, b"message", signature)
        assert not verify_signature(signer.public_key, b"other", signature)

    @pytest.mark.asyncio
    async def test_malformed_signature_rejected(self, signer, monkeypatch):
        """A signature of the wrong length is a signer failure, not a crash."""

        class Signed:
            signature = bytes(63)

        class ShortKey:
            def sign(self, message):
                return Signed()

        monkeypatch.setattr(signer, "_key", ShortKey())
        with pytest.raises(SignerRejectedError):
            await signer.sign(b"message")

    def test_deterministic_from_seed(self):
        """The same seed gives the same key."""
        assert KeypairSigner(bytes(32)).public_key == KeypairSigner(bytes(32)).public_key

    def test_seed_length(self):
        """Seeds are 32 bytes."""
        with pytest.raises(ValidationError):
            KeypairSigner(bytes(31))

    def test_keyfile_round_trip(self, tmp_path, signer):
        """to_keyfile output loads back to the same key."""
        path = str(tmp_path / "id.json")
        signer.to_keyfile(path)
        assert len(json.loads((tmp_path / "id.json").read_text())) == 64
        assert KeypairSigner.from_keyfile(path).public_key == signer.public_key

    def test_keyfile_mismatched_public_half(self, tmp_path, signer):
        """A keyfile whose public half is wrong is refused."""
        path = tmp_path / "id.json"
        signer.to_keyfile(str(path))
        values = json.loads(path.read_text())
        values[-1] ^= 1
        path.write_text(json.dumps(values))
        with pytest.raises(ValidationError):
            KeypairSigner.from_keyfile(str(path))

    def test_keyfile_unreadable(self, tmp_path):
        """Missing or malformed files are validation errors."""
        with pytest.raises(ValidationError):
            KeypairSigner.from_keyfile(str(tmp_path / "missing.json"))
        bad = tmp_path / "bad.json"
        bad.write_text("[1, 2, 3]")
        with pytest.raises(ValidationError):
            KeypairSigner.from_keyfile(str(bad))

    def test_generated_keys_differ(self):
        """generate() draws fresh keys."""
        assert KeypairSigner.generate().public_key != KeypairSigner.generate().public_key
