"""Symmetric encryption for short secrets held at rest.

Used to stash a signup password for the lifetime of its one-time code. The
Fernet key is derived from the configured secret with PBKDF2 so any string
can serve as ``AUTHSOME_ENCRYPTION_KEY``.
"""

import base64
import logging

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from authsome.common.exceptions import DecryptionError

logger = logging.getLogger(__name__)

_KDF_SALT = b"authsome-secret-cipher"
_KDF_ITERATIONS = 100_000


def derive_fernet_key(secret: str) -> bytes:
    """Derive a url-safe base64 Fernet key from an arbitrary secret string."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=_KDF_SALT,
        iterations=_KDF_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))


class SecretCipher:
    """Encrypt and decrypt short text secrets."""

    def __init__(self, key: str):
        if not key:
            raise ValueError("Encryption key must not be empty")
        self._fernet = Fernet(derive_fernet_key(key))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except (InvalidToken, UnicodeError, AttributeError) as exc:
            logger.warning("Decryption failed: %s", type(exc).__name__)
            raise DecryptionError() from exc
