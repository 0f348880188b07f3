"""OTP-gated tenant signup.

A signup moves through ``STARTED -> CONSUMED`` (verified, tenant created) or
``STARTED -> EXPIRED`` (code lifetime elapsed). The pending signup lives only
as an OTP record; no tenant row exists until the code is verified, so
unverified signups never hold a username or identity.
"""

import logging
import secrets

from pydantic import ValidationError

from authsome.auth.schemas import SignupMetadata
from authsome.common.config import AuthsomeSettings
from authsome.common.crypto import SecretCipher
from authsome.common.database import DatabaseManager
from authsome.common.exceptions import (
    CorruptMetadataError,
    IdentityAlreadyRegisteredError,
    InvalidContextError,
    InvalidOtpError,
    InvalidTokenError,
    UnsupportedIdentityTypeError,
    UsernameTakenError,
)
from authsome.common.locks import KeyedLocks, signup_key
from authsome.common.logging import token_hint
from authsome.notifications.service import ChannelType, Notifier
from authsome.otp.service import OtpService, OtpType
from authsome.tenants.models import IdentityType, TenantModel
from authsome.tenants.service import TenantService

logger = logging.getLogger(__name__)

SIGNUP_CONTEXT = "AUTHSOME_TENANT_SIGNUP"

_CHANNEL_FOR_IDENTITY = {
    IdentityType.EMAIL: ChannelType.EMAIL,
}


def coerce_identity_type(value) -> IdentityType:
    if isinstance(value, IdentityType):
        return value
    try:
        return IdentityType(str(value).upper())
    except ValueError as exc:
        raise UnsupportedIdentityTypeError(f"Unknown identity type: {value!r}") from exc


class SignupService:
    """Starts and completes tenant signups."""

    def __init__(
        self,
        db: DatabaseManager,
        settings: AuthsomeSettings,
        tenants: TenantService,
        otp: OtpService,
        notifier: Notifier,
        cipher: SecretCipher,
        locks: KeyedLocks,
    ):
        self.db = db
        self.settings = settings
        self.tenants = tenants
        self.otp = otp
        self.notifier = notifier
        self.cipher = cipher
        self.locks = locks

    async def start_signup(
        self,
        identity_type: IdentityType | str,
        identity: str,
        username: str,
        password: str,
    ) -> str:
        """Validate the request, store a pending signup and send its code.

        Returns the signup token that must accompany the code on completion.
        """
        identity_type = coerce_identity_type(identity_type)
        logger.info(
            "Start tenant signup for identity_type=%s identity=%s username=%s",
            identity_type.value, identity, username,
        )
        channel = _CHANNEL_FOR_IDENTITY.get(identity_type)
        if identity_type.value not in self.settings.signup_identity_types or channel is None:
            raise UnsupportedIdentityTypeError()

        async with self.db.unit_of_work() as session:
            if await self.tenants.get_by_identity(session, identity_type, identity) is not None:
                raise IdentityAlreadyRegisteredError()
            if await self.tenants.get_by_username(session, username) is not None:
                raise UsernameTakenError()

            metadata = SignupMetadata(
                identity=identity,
                identity_type=identity_type,
                username=username,
                encrypted_password=self.cipher.encrypt(password),
            )
            record = await self.otp.generate_and_save(
                session,
                OtpType.NUMERIC,
                length=self.settings.signup_otp_length,
                ttl_seconds=self.settings.signup_otp_ttl,
                context=SIGNUP_CONTEXT,
                metadata=metadata.model_dump(mode="json"),
            )
            signup_token, code = record.id, record.code

        try:
            delivered = await self.notifier.send_notification(
                channel,
                identity,
                "OTP to create authsome account",
                f"Your OTP to create your Authsome account is: {code}",
            )
        except Exception:
            logger.exception("Signup OTP notification raised for %s", identity)
            delivered = False
        if not delivered:
            logger.warning(
                "Signup OTP for token %s was not delivered to %s",
                token_hint(signup_token), identity,
            )

        return signup_token

    async def complete_signup(self, signup_token: str, otp: str) -> TenantModel:
        """Verify the code and create the tenant with its verified identity.

        The pending signup is consumed in the same transaction that creates
        the tenant; a second completion with the same token fails with
        ``InvalidTokenError``.
        """
        logger.debug("complete_signup(%s)", token_hint(signup_token))
        if not otp:
            raise InvalidOtpError("OTP cannot be null or empty")

        async with self.locks.acquire(signup_key(signup_token)):
            async with self.db.unit_of_work() as session:
                record = await self.otp.get_by_id(session, signup_token)
                if record is None:
                    raise InvalidTokenError()
                if not secrets.compare_digest(record.code.encode(), otp.encode()):
                    raise InvalidOtpError()
                if record.context != SIGNUP_CONTEXT:
                    raise InvalidContextError()
                try:
                    metadata = SignupMetadata.model_validate(record.metadata_ or {})
                except ValidationError as exc:
                    logger.error("Pending signup %s has bad metadata", token_hint(signup_token))
                    raise CorruptMetadataError() from exc

                if not await self.otp.consume(session, signup_token, otp):
                    raise InvalidTokenError()

                password = self.cipher.decrypt(metadata.encrypted_password)

                # Another signup may have claimed these while the code was pending.
                if await self.tenants.get_by_username(session, metadata.username) is not None:
                    raise UsernameTakenError()
                if await self.tenants.get_by_identity(
                    session, metadata.identity_type, metadata.identity
                ) is not None:
                    raise IdentityAlreadyRegisteredError()

                tenant = await self.tenants.create_tenant(session, metadata.username, password)
                await self.tenants.add_identity(
                    session, tenant.id, metadata.identity_type, metadata.identity
                )

        logger.info("Tenant %s created for username %s", tenant.id, tenant.username)
        return tenant
