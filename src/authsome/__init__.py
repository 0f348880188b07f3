"""Authsome: tenant identity and session lifecycle engine."""

from authsome.client import AuthsomeClient
from authsome.common.crypto import SecretCipher
from authsome.common.exceptions import AuthsomeError

__all__ = [
    "AuthsomeClient",
    "AuthsomeError",
    "SecretCipher",
]
__version__ = "0.1.0"
