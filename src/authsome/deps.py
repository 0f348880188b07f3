"""Dependency injection singletons for Authsome."""

from authsome.auth.service import AuthService
from authsome.auth.signup import SignupService
from authsome.common.config import get_settings
from authsome.common.crypto import SecretCipher
from authsome.common.database import DatabaseManager
from authsome.common.locks import KeyedLocks
from authsome.notifications.service import Notifier
from authsome.otp.service import OtpService
from authsome.sessions.service import SessionService
from authsome.tenants.service import TenantService
from authsome.tokens.service import AccessTokenService

_db: DatabaseManager | None = None
_locks: KeyedLocks | None = None
_cipher: SecretCipher | None = None
_tenants: TenantService | None = None
_sessions: SessionService | None = None
_otp: OtpService | None = None
_notifier: Notifier | None = None
_tokens: AccessTokenService | None = None
_signup: SignupService | None = None
_auth: AuthService | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_locks() -> KeyedLocks:
    global _locks
    if _locks is None:
        _locks = KeyedLocks()
    return _locks


def get_cipher() -> SecretCipher:
    global _cipher
    if _cipher is None:
        _cipher = SecretCipher(get_settings().encryption_key)
    return _cipher


def get_tenant_service() -> TenantService:
    global _tenants
    if _tenants is None:
        _tenants = TenantService()
    return _tenants


def get_session_service() -> SessionService:
    global _sessions
    if _sessions is None:
        _sessions = SessionService(get_settings())
    return _sessions


def get_otp_service() -> OtpService:
    global _otp
    if _otp is None:
        _otp = OtpService()
    return _otp


def get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        settings = get_settings()
        _notifier = Notifier(
            provider=settings.email_provider,
            api_key=settings.email_api_key,
            from_email=settings.email_from,
            from_name=settings.email_from_name,
            log_body=settings.environment == "development",
        )
    return _notifier


def get_token_service() -> AccessTokenService:
    global _tokens
    if _tokens is None:
        _tokens = AccessTokenService(get_settings())
    return _tokens


def get_signup_service() -> SignupService:
    global _signup
    if _signup is None:
        _signup = SignupService(
            get_db(),
            get_settings(),
            tenants=get_tenant_service(),
            otp=get_otp_service(),
            notifier=get_notifier(),
            cipher=get_cipher(),
            locks=get_locks(),
        )
    return _signup


def get_auth_service() -> AuthService:
    global _auth
    if _auth is None:
        _auth = AuthService(
            get_db(),
            get_settings(),
            tenants=get_tenant_service(),
            sessions=get_session_service(),
            tokens=get_token_service(),
            locks=get_locks(),
        )
    return _auth


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _locks, _cipher, _tenants, _sessions, _otp, _notifier, _tokens, _signup, _auth
    _db = None
    _locks = None
    _cipher = None
    _tenants = None
    _sessions = None
    _otp = None
    _notifier = None
    _tokens = None
    _signup = None
    _auth = None
