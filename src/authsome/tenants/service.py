"""Tenant directory: accounts, verified identities, credentials and API keys."""

import base64
import hashlib
import logging
import secrets

import bcrypt
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authsome.common.exceptions import IdentityAlreadyRegisteredError, UsernameTakenError
from authsome.tenants.models import (
    IdentityType,
    TenantApiKeyModel,
    TenantIdentityModel,
    TenantModel,
)

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "ask_"


def _hash_api_key(raw_key: str) -> str:
    """SHA-256 hash of a raw API key for storage."""
    return hashlib.sha256(raw_key.encode()).hexdigest()


def _prehash(raw_password: str) -> bytes:
    """SHA-256 then base64, so passwords of any length fit bcrypt's 72-byte limit."""
    return base64.b64encode(hashlib.sha256(raw_password.encode("utf-8")).digest())


def hash_password(raw_password: str) -> str:
    return bcrypt.hashpw(_prehash(raw_password), bcrypt.gensalt()).decode("utf-8")


def check_password(raw_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_prehash(raw_password), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


class TenantService:
    """Tenant directory operations."""

    # ── Lookup ──

    async def get_by_id(
        self, session: AsyncSession, tenant_id: str
    ) -> TenantModel | None:
        return await session.get(TenantModel, tenant_id)

    async def get_by_username(
        self, session: AsyncSession, username: str
    ) -> TenantModel | None:
        result = await session.execute(
            select(TenantModel).where(TenantModel.username == username)
        )
        return result.scalar_one_or_none()

    async def get_by_identity(
        self, session: AsyncSession, identity_type: IdentityType, identity: str
    ) -> TenantModel | None:
        result = await session.execute(
            select(TenantModel)
            .join(TenantIdentityModel, TenantIdentityModel.tenant_id == TenantModel.id)
            .where(
                TenantIdentityModel.identity_type == identity_type,
                TenantIdentityModel.identity_value == identity,
            )
        )
        return result.scalar_one_or_none()

    async def list_identities(
        self, session: AsyncSession, tenant_id: str
    ) -> list[TenantIdentityModel]:
        result = await session.execute(
            select(TenantIdentityModel)
            .where(TenantIdentityModel.tenant_id == tenant_id)
            .order_by(TenantIdentityModel.created_at)
        )
        return list(result.scalars().all())

    # ── Creation ──

    async def create_tenant(
        self, session: AsyncSession, username: str, raw_password: str
    ) -> TenantModel:
        """Create a tenant with a bcrypt password hash."""
        logger.debug("create_tenant(%s, ****)", username)
        tenant = TenantModel(username=username, password_hash=hash_password(raw_password))
        session.add(tenant)
        try:
            await session.flush()
        except IntegrityError as exc:
            raise UsernameTakenError() from exc
        return tenant

    async def add_identity(
        self,
        session: AsyncSession,
        tenant_id: str,
        identity_type: IdentityType,
        identity: str,
    ) -> TenantIdentityModel:
        """Bind a verified identity to a tenant. The (type, value) pair is global."""
        logger.debug("add_identity(%s, %s, %s)", tenant_id, identity_type.value, identity)
        if await self.get_by_identity(session, identity_type, identity) is not None:
            raise IdentityAlreadyRegisteredError()

        record = TenantIdentityModel(
            tenant_id=tenant_id,
            identity_type=identity_type,
            identity_value=identity,
        )
        session.add(record)
        try:
            await session.flush()
        except IntegrityError as exc:
            raise IdentityAlreadyRegisteredError() from exc
        return record

    # ── Credentials ──

    async def verify_credentials(
        self, session: AsyncSession, tenant_id: str, raw_password: str
    ) -> bool:
        tenant = await self.get_by_id(session, tenant_id)
        return tenant is not None and check_password(raw_password, tenant.password_hash)

    # ── API keys ──

    async def generate_api_key(
        self, session: AsyncSession, tenant_id: str
    ) -> tuple[TenantApiKeyModel, str]:
        """Create an API key for the tenant. Returns (model, raw_key).

        Only the SHA-256 of the key is stored; the raw key is shown once.
        """
        raw_key = f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"
        record = TenantApiKeyModel(
            tenant_id=tenant_id,
            key_hash=_hash_api_key(raw_key),
            key_prefix=raw_key[:10],
        )
        session.add(record)
        await session.flush()
        return record, raw_key

    async def get_by_api_key(
        self, session: AsyncSession, raw_key: str
    ) -> TenantModel | None:
        result = await session.execute(
            select(TenantModel)
            .join(TenantApiKeyModel, TenantApiKeyModel.tenant_id == TenantModel.id)
            .where(TenantApiKeyModel.key_hash == _hash_api_key(raw_key))
        )
        return result.scalar_one_or_none()

    async def list_api_keys(
        self, session: AsyncSession, tenant_id: str
    ) -> list[TenantApiKeyModel]:
        result = await session.execute(
            select(TenantApiKeyModel)
            .where(TenantApiKeyModel.tenant_id == tenant_id)
            .order_by(TenantApiKeyModel.created_at)
        )
        return list(result.scalars().all())

    async def revoke_api_key(
        self, session: AsyncSession, tenant_id: str, key_id: str
    ) -> bool:
        """Delete one of the tenant's keys. Keys of other tenants are untouched."""
        result = await session.execute(
            delete(TenantApiKeyModel)
            .where(
                TenantApiKeyModel.id == key_id,
                TenantApiKeyModel.tenant_id == tenant_id,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
