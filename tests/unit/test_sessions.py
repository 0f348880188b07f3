"""Tests for the refresh-token session store."""

from datetime import timedelta

import pytest

from authsome.common.config import AuthsomeSettings
from authsome.common.database import DatabaseManager
from authsome.common.models import as_utc, utcnow
from authsome.sessions.models import TenantSessionModel
from authsome.sessions.service import SessionService, is_expired
from authsome.tenants.service import TenantService


def make_settings(**overrides) -> AuthsomeSettings:
    defaults = {"db_url": "sqlite+aiosqlite://"}
    defaults.update(overrides)
    return AuthsomeSettings(**defaults)


@pytest.fixture
async def db():
    manager = DatabaseManager(make_settings())
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def svc():
    return SessionService(make_settings())


@pytest.fixture
async def tenant_id(db):
    async with db.get_session() as session:
        tenant = await TenantService().create_tenant(session, "alice", "pw")
        return tenant.id


def _expired(tenant_id: str, session_id: str) -> TenantSessionModel:
    return TenantSessionModel(
        id=session_id,
        tenant_id=tenant_id,
        expires_at=utcnow() - timedelta(seconds=1),
    )


class TestCreate:
    async def test_thirty_day_expiry(self, db, svc, tenant_id):
        async with db.get_session() as session:
            record = await svc.create(session, tenant_id)
            assert record.expires_at - record.created_at == timedelta(days=30)
            assert record.metadata_ is None

    async def test_custom_ttl(self, db, tenant_id):
        svc = SessionService(make_settings(session_ttl_days=1))
        async with db.get_session() as session:
            record = await svc.create(session, tenant_id, metadata={"device": "cli"})
            assert record.expires_at - record.created_at == timedelta(days=1)

        async with db.get_session() as session:
            found = await svc.get(session, record.id)
            assert found.metadata_ == {"device": "cli"}
            assert not is_expired(found)

    async def test_ids_are_unique(self, db, svc, tenant_id):
        async with db.get_session() as session:
            a = await svc.create(session, tenant_id)
            b = await svc.create(session, tenant_id)
            assert a.id != b.id


class TestDelete:
    async def test_delete_once(self, db, svc, tenant_id):
        async with db.get_session() as session:
            record = await svc.create(session, tenant_id)
        async with db.get_session() as session:
            assert await svc.delete(session, record.id) is True
        async with db.get_session() as session:
            assert await svc.delete(session, record.id) is False
            assert await svc.get(session, record.id) is None


class TestCounting:
    async def test_count_ignores_expired(self, db, svc, tenant_id):
        async with db.get_session() as session:
            await svc.create(session, tenant_id)
            await svc.create(session, tenant_id)
            session.add(_expired(tenant_id, "stale"))

        async with db.get_session() as session:
            assert await svc.count_live_for_tenant(session, tenant_id) == 2
            assert len(await svc.list_for_tenant(session, tenant_id)) == 3

    async def test_delete_expired_for_tenant(self, db, svc, tenant_id):
        async with db.get_session() as session:
            other = await TenantService().create_tenant(session, "bob", "pw")
            session.add(_expired(tenant_id, "stale-a"))
            session.add(_expired(other.id, "stale-b"))
            await svc.create(session, tenant_id)
            other_id = other.id

        async with db.get_session() as session:
            assert await svc.delete_expired_for_tenant(session, tenant_id) == 1
        async with db.get_session() as session:
            assert await svc.get(session, "stale-b") is not None
            assert await svc.purge_expired(session) == 1
            assert await svc.count_live_for_tenant(session, other_id) == 0

    async def test_expired_record_reads_back_utc(self, db, svc, tenant_id):
        async with db.get_session() as session:
            session.add(_expired(tenant_id, "stale"))
        async with db.get_session() as session:
            record = await svc.get(session, "stale")
            assert as_utc(record.expires_at).tzinfo is not None
            assert is_expired(record)
