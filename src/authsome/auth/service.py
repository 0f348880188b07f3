"""Password sign-in, refresh-token rotation, revocation and API keys."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from authsome.auth.schemas import (
    ApiKeyCreated,
    IdentityResponse,
    TenantProfile,
    TokenPair,
)
from authsome.auth.signup import coerce_identity_type
from authsome.common.config import AuthsomeSettings
from authsome.common.database import DatabaseManager
from authsome.common.exceptions import (
    ApiKeyNotFoundError,
    InvalidAccessTokenError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    SessionLimitExceededError,
    UserNotFoundError,
)
from authsome.common.locks import KeyedLocks, tenant_key
from authsome.common.logging import token_hint
from authsome.sessions.models import TenantSessionModel
from authsome.sessions.service import SessionService, is_expired
from authsome.tenants.models import IdentityType, TenantApiKeyModel, TenantModel
from authsome.tenants.service import TenantService
from authsome.tokens.service import AccessTokenService

logger = logging.getLogger(__name__)


class AuthService:
    """Credential verification, token issuance and session lifecycle.

    Every session creation (sign-in or rotation) runs under the tenant's lock
    and in one transaction with the session-cap check, so concurrent
    creations for one tenant cannot overshoot ``max_simultaneous_sessions``.
    """

    def __init__(
        self,
        db: DatabaseManager,
        settings: AuthsomeSettings,
        tenants: TenantService,
        sessions: SessionService,
        tokens: AccessTokenService,
        locks: KeyedLocks,
    ):
        self.db = db
        self.settings = settings
        self.tenants = tenants
        self.sessions = sessions
        self.tokens = tokens
        self.locks = locks

    # ── Sign-in ──

    async def sign_in_with_password(
        self,
        identity_type: IdentityType | str,
        identity: str,
        password: str,
    ) -> TokenPair:
        identity_type = coerce_identity_type(identity_type)
        logger.debug("sign_in_with_password(%s, %s)", identity_type.value, identity)

        async with self.db.unit_of_work() as session:
            tenant = await self.tenants.get_by_identity(session, identity_type, identity)
            if tenant is None:
                raise UserNotFoundError()
            if not await self.tenants.verify_credentials(session, tenant.id, password):
                raise InvalidCredentialsError()
            tenant_id = tenant.id

        refresh_token = await self.open_session(tenant_id)
        return TokenPair(
            access_token=self._mint_access_token(tenant_id),
            refresh_token=refresh_token,
        )

    async def open_session(
        self, tenant_id: str, metadata: dict[str, Any] | None = None
    ) -> str:
        """Create a cap-enforced session for the tenant. Returns the refresh token."""
        async with self.locks.acquire(tenant_key(tenant_id)):
            async with self.db.unit_of_work() as session:
                record = await self._create_within_cap(session, tenant_id, metadata)
        return record.id

    async def _create_within_cap(
        self,
        session: AsyncSession,
        tenant_id: str,
        metadata: dict[str, Any] | None,
    ) -> TenantSessionModel:
        # Caller holds the tenant lock.
        await self.sessions.delete_expired_for_tenant(session, tenant_id)
        live = await self.sessions.count_live_for_tenant(session, tenant_id)
        if live >= self.settings.max_simultaneous_sessions:
            logger.info(
                "Tenant %s at session cap (%d/%d)",
                tenant_id, live, self.settings.max_simultaneous_sessions,
            )
            raise SessionLimitExceededError()
        return await self.sessions.create(session, tenant_id, metadata)

    # ── Refresh ──

    async def refresh_token(self, refresh_token: str) -> TokenPair:
        """Rotate a refresh token: the presented one dies, a new one is issued.

        The old session is removed with a conditional delete inside the
        tenant lock; only the caller whose delete hit the row goes on to
        create the replacement. Concurrent callers presenting the same token
        get ``InvalidRefreshTokenError``.
        """
        logger.debug("refresh_token(%s)", token_hint(refresh_token))

        async with self.db.unit_of_work() as session:
            record = await self.sessions.get(session, refresh_token)
            tenant_id = record.tenant_id if record is not None else None
        if tenant_id is None:
            logger.warning("Refresh token %s not found", token_hint(refresh_token))
            raise InvalidRefreshTokenError()

        expired = False
        async with self.locks.acquire(tenant_key(tenant_id)):
            async with self.db.unit_of_work() as session:
                current = await self.sessions.get(session, refresh_token)
                if current is None or not await self.sessions.delete(session, current.id):
                    logger.warning(
                        "Refresh token %s already rotated or revoked",
                        token_hint(refresh_token),
                    )
                    raise InvalidRefreshTokenError()
                if is_expired(current):
                    # The delete above must commit, so raise after the block.
                    expired = True
                else:
                    replacement = await self._create_within_cap(
                        session, tenant_id, current.metadata_
                    )

        if expired:
            logger.info("Refresh token %s expired, cleaned up", token_hint(refresh_token))
            raise InvalidRefreshTokenError()

        return TokenPair(
            access_token=self._mint_access_token(tenant_id),
            refresh_token=replacement.id,
        )

    # ── Revocation ──

    async def revoke_refresh_token(self, refresh_token: str) -> None:
        """Delete the session. Unknown or already revoked tokens are a no-op."""
        logger.info("revoke_refresh_token(%s)", token_hint(refresh_token))
        async with self.db.unit_of_work() as session:
            deleted = await self.sessions.delete(session, refresh_token)
        if not deleted:
            logger.warning("No session found to revoke for %s", token_hint(refresh_token))

    # ── API keys ──

    async def generate_api_key(self, tenant_id: str) -> str:
        created = await self.issue_api_key(tenant_id)
        return created.api_key

    async def issue_api_key(self, tenant_id: str) -> ApiKeyCreated:
        async with self.db.unit_of_work() as session:
            if await self.tenants.get_by_id(session, tenant_id) is None:
                raise UserNotFoundError("Tenant not found")
            record, raw_key = await self.tenants.generate_api_key(session, tenant_id)
            created = ApiKeyCreated(id=record.id, api_key=raw_key, created_at=record.created_at)
        logger.info("API key %s issued for tenant %s", record.key_prefix, tenant_id)
        return created

    async def list_api_keys(self, tenant_id: str) -> list[TenantApiKeyModel]:
        async with self.db.unit_of_work() as session:
            return await self.tenants.list_api_keys(session, tenant_id)

    async def revoke_api_key(self, tenant_id: str, key_id: str) -> None:
        async with self.db.unit_of_work() as session:
            revoked = await self.tenants.revoke_api_key(session, tenant_id, key_id)
        if not revoked:
            raise ApiKeyNotFoundError()
        logger.info("API key %s revoked for tenant %s", key_id, tenant_id)

    # ── Caller resolution ──

    async def resolve_tenant_from_api_key(self, raw_key: str) -> TenantModel | None:
        async with self.db.unit_of_work() as session:
            return await self.tenants.get_by_api_key(session, raw_key)

    async def resolve_tenant_from_access_token(self, token: str) -> TenantModel | None:
        try:
            parsed = self.tokens.parse(token)
        except InvalidAccessTokenError:
            return None
        if parsed.expired or parsed.issuer != self.settings.access_token_issuer:
            logger.debug("Access token for %s is expired or foreign", parsed.subject)
            return None
        async with self.db.unit_of_work() as session:
            return await self.tenants.get_by_id(session, parsed.subject)

    async def get_profile(self, tenant_id: str) -> TenantProfile:
        async with self.db.unit_of_work() as session:
            tenant = await self.tenants.get_by_id(session, tenant_id)
            if tenant is None:
                raise UserNotFoundError("Tenant not found")
            identities = await self.tenants.list_identities(session, tenant_id)
            live = await self.sessions.count_live_for_tenant(session, tenant_id)
            return TenantProfile(
                id=tenant.id,
                username=tenant.username,
                created_at=tenant.created_at,
                identities=[
                    IdentityResponse(identity_type=i.identity_type, identity=i.identity_value)
                    for i in identities
                ],
                active_sessions=live,
            )

    def _mint_access_token(self, tenant_id: str) -> str:
        return self.tokens.mint(
            tenant_id,
            issuer=self.settings.access_token_issuer,
            ttl_seconds=self.settings.access_token_ttl,
        )
