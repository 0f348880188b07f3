"""Tests for SecretCipher: round trip, wrong key, malformed input."""

import pytest

from authsome.common.crypto import SecretCipher, derive_fernet_key
from authsome.common.exceptions import DecryptionError


class TestSecretCipher:
    def test_round_trip(self):
        cipher = SecretCipher("k1")
        token = cipher.encrypt("hunter2")
        assert token != "hunter2"
        assert cipher.decrypt(token) == "hunter2"

    def test_unicode_round_trip(self):
        cipher = SecretCipher("k1")
        assert cipher.decrypt(cipher.encrypt("pässwörd ✓")) == "pässwörd ✓"

    def test_ciphertext_is_randomized(self):
        cipher = SecretCipher("k1")
        assert cipher.encrypt("same") != cipher.encrypt("same")

    def test_wrong_key_fails(self):
        token = SecretCipher("k1").encrypt("hunter2")
        with pytest.raises(DecryptionError) as exc_info:
            SecretCipher("k2").decrypt(token)
        assert exc_info.value.code == "DECRYPTION_ERROR"

    def test_malformed_ciphertext_fails(self):
        with pytest.raises(DecryptionError):
            SecretCipher("k1").decrypt("not-a-fernet-token")

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            SecretCipher("")

    def test_key_derivation_is_stable(self):
        assert derive_fernet_key("abc") == derive_fernet_key("abc")
        assert derive_fernet_key("abc") != derive_fernet_key("abd")
