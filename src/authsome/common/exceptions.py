"""Authsome exception hierarchy.

Every business-rule failure has its own class with a stable ``code`` and the
HTTP status the transport layer maps it to. Infrastructure failures surface as
``InternalError`` and are never reported as one of the business conditions.
"""


class AuthsomeError(Exception):
    """Base exception for all Authsome errors."""

    status_code: int = 400

    def __init__(self, message: str = "", code: str = "AUTHSOME_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


# ── Signup ──

class UnsupportedIdentityTypeError(AuthsomeError):
    """Raised when an identity type is not enabled for self-service signup."""

    def __init__(self, message: str = "Unsupported identity type for signup"):
        super().__init__(message, code="UNSUPPORTED_IDENTITY_TYPE")


class IdentityAlreadyRegisteredError(AuthsomeError):
    """Raised when another tenant already owns the (type, value) identity."""

    status_code = 409

    def __init__(self, message: str = "Identity already in use"):
        super().__init__(message, code="IDENTITY_ALREADY_REGISTERED")


class UsernameTakenError(AuthsomeError):
    """Raised when another tenant already owns the username."""

    status_code = 409

    def __init__(self, message: str = "Username already in use"):
        super().__init__(message, code="USERNAME_TAKEN")


class InvalidTokenError(AuthsomeError):
    """Raised when a signup token is unknown, expired or already consumed."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message, code="INVALID_TOKEN")


class InvalidOtpError(AuthsomeError):
    """Raised when the submitted one-time code does not match."""

    def __init__(self, message: str = "Invalid otp"):
        super().__init__(message, code="INVALID_OTP")


class InvalidContextError(AuthsomeError):
    """Raised when an OTP record belongs to a different use-case."""

    def __init__(self, message: str = "Invalid context"):
        super().__init__(message, code="INVALID_CONTEXT")


class CorruptMetadataError(AuthsomeError):
    """Raised when an OTP record is missing required signup metadata."""

    def __init__(self, message: str = "Invalid metadata"):
        super().__init__(message, code="CORRUPT_METADATA")


class DecryptionError(AuthsomeError):
    """Raised when ciphertext is malformed or was produced under another key."""

    def __init__(self, message: str = "Failed to decrypt data"):
        super().__init__(message, code="DECRYPTION_ERROR")


# ── Authentication & sessions ──

class UserNotFoundError(AuthsomeError):
    """Raised when no tenant owns the given identity."""

    status_code = 404

    def __init__(self, message: str = "User not found with identity"):
        super().__init__(message, code="USER_NOT_FOUND")


class InvalidCredentialsError(AuthsomeError):
    """Raised when a password does not match the stored hash."""

    status_code = 401

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class InvalidRefreshTokenError(AuthsomeError):
    """Raised when a refresh token is unknown, expired or already rotated."""

    status_code = 401

    def __init__(self, message: str = "Invalid refresh token"):
        super().__init__(message, code="INVALID_REFRESH_TOKEN")


class SessionLimitExceededError(AuthsomeError):
    """Raised when a tenant already holds the maximum number of live sessions."""

    status_code = 429

    def __init__(self, message: str = "Max simultaneous sessions reached"):
        super().__init__(message, code="SESSION_LIMIT_EXCEEDED")


class InvalidAccessTokenError(AuthsomeError):
    """Raised when an access token has a bad signature or format."""

    status_code = 401

    def __init__(self, message: str = "Invalid access token"):
        super().__init__(message, code="INVALID_ACCESS_TOKEN")


class ApiKeyNotFoundError(AuthsomeError):
    """Raised when an API key does not exist for the tenant."""

    status_code = 404

    def __init__(self, message: str = "API key not found"):
        super().__init__(message, code="API_KEY_NOT_FOUND")


# ── Infrastructure ──

class InternalError(AuthsomeError):
    """Raised when the store or another collaborator fails unexpectedly."""

    status_code = 500

    def __init__(self, message: str = "Internal error"):
        super().__init__(message, code="INTERNAL_ERROR")
