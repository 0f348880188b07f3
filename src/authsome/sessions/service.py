"""Refresh-token session store, scoped per tenant."""

import logging
from datetime import timedelta
from typing import Any

from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from authsome.common.config import AuthsomeSettings
from authsome.common.models import as_utc, utcnow
from authsome.sessions.models import TenantSessionModel

logger = logging.getLogger(__name__)


def is_expired(record: TenantSessionModel) -> bool:
    return as_utc(record.expires_at) <= utcnow()


class SessionService:
    """CRUD over refresh-token sessions.

    Callers that must keep the per-tenant session cap consistent hold the
    tenant lock around ``delete_expired_for_tenant``, ``count_live_for_tenant``
    and ``create`` and commit them as one unit of work.
    """

    def __init__(self, settings: AuthsomeSettings):
        self.settings = settings

    async def create(
        self,
        session: AsyncSession,
        tenant_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> TenantSessionModel:
        now = utcnow()
        record = TenantSessionModel(
            tenant_id=tenant_id,
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(seconds=self.settings.session_ttl_seconds),
            metadata_=metadata,
        )
        session.add(record)
        await session.flush()
        return record

    async def get(
        self, session: AsyncSession, session_id: str
    ) -> TenantSessionModel | None:
        return await session.get(TenantSessionModel, session_id)

    async def delete(self, session: AsyncSession, session_id: str) -> bool:
        """Compare-and-delete by id. True only for the caller that removed the row."""
        result = await session.execute(
            delete(TenantSessionModel)
            .where(TenantSessionModel.id == session_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete_expired_for_tenant(
        self, session: AsyncSession, tenant_id: str
    ) -> int:
        result = await session.execute(
            delete(TenantSessionModel)
            .where(
                and_(
                    TenantSessionModel.tenant_id == tenant_id,
                    TenantSessionModel.expires_at <= utcnow(),
                )
            )
            .execution_options(synchronize_session=False)
        )
        purged = result.rowcount or 0
        if purged:
            logger.debug("Purged %d expired sessions for tenant %s", purged, tenant_id)
        return purged

    async def count_live_for_tenant(
        self, session: AsyncSession, tenant_id: str
    ) -> int:
        result = await session.execute(
            select(func.count(TenantSessionModel.id)).where(
                and_(
                    TenantSessionModel.tenant_id == tenant_id,
                    TenantSessionModel.expires_at > utcnow(),
                )
            )
        )
        return result.scalar_one()

    async def list_for_tenant(
        self, session: AsyncSession, tenant_id: str
    ) -> list[TenantSessionModel]:
        result = await session.execute(
            select(TenantSessionModel)
            .where(TenantSessionModel.tenant_id == tenant_id)
            .order_by(TenantSessionModel.created_at)
        )
        return list(result.scalars().all())

    async def purge_expired(self, session: AsyncSession) -> int:
        """Expiry sweep across all tenants."""
        result = await session.execute(
            delete(TenantSessionModel)
            .where(TenantSessionModel.expires_at <= utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
