"""Tests for OTP-gated tenant signup."""

import asyncio

import pytest
from sqlalchemy import func, select

from authsome.auth.signup import SIGNUP_CONTEXT, SignupService
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
from authsome.common.locks import KeyedLocks
from authsome.notifications.service import ChannelType
from authsome.otp.models import OtpModel
from authsome.otp.service import OtpService, OtpType
from authsome.tenants.models import IdentityType
from authsome.tenants.service import TenantService, check_password
from tests.conftest import CapturingNotifier


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


def make_service(db, notifier=None, **overrides) -> SignupService:
    return SignupService(
        db,
        make_settings(**overrides),
        tenants=TenantService(),
        otp=OtpService(),
        notifier=notifier or CapturingNotifier(),
        cipher=SecretCipher("signup-test-key"),
        locks=KeyedLocks(),
    )


@pytest.fixture
def notifier():
    return CapturingNotifier()


@pytest.fixture
def svc(db, notifier):
    return make_service(db, notifier)


async def count_otps(db) -> int:
    async with db.get_session() as session:
        result = await session.execute(select(func.count(OtpModel.id)))
        return result.scalar_one()


async def start(svc, email="a@example.com", username="alice", password="pw"):
    return await svc.start_signup(IdentityType.EMAIL, email, username, password)


class TestStartSignup:
    async def test_sends_four_digit_code(self, svc, notifier):
        token = await start(svc)
        assert token
        assert len(notifier.sent) == 1
        msg = notifier.sent[0]
        assert msg["channel"] == ChannelType.EMAIL
        assert msg["destination"] == "a@example.com"
        assert msg["subject"] == "OTP to create authsome account"
        code = notifier.last_code()
        assert len(code) == 4
        assert code.isdigit()

    async def test_password_stored_encrypted(self, db, svc):
        token = await start(svc, password="plain-pw")
        async with db.get_session() as session:
            record = await OtpService().get_by_id(session, token)
            assert record.context == SIGNUP_CONTEXT
            assert record.metadata_["username"] == "alice"
            assert record.metadata_["identity_type"] == "EMAIL"
            assert record.metadata_["encrypted_password"] != "plain-pw"
            assert "plain-pw" not in str(record.metadata_)

    async def test_string_identity_type_accepted(self, svc):
        assert await svc.start_signup("email", "a@example.com", "alice", "pw")

    async def test_unsupported_identity_type(self, db, svc, notifier):
        with pytest.raises(UnsupportedIdentityTypeError):
            await svc.start_signup(IdentityType.USERNAME, "alice", "alice", "pw")
        with pytest.raises(UnsupportedIdentityTypeError):
            await svc.start_signup("PHONE", "+15550100", "alice", "pw")
        assert notifier.sent == []
        assert await count_otps(db) == 0

    async def test_identity_taken_sends_nothing(self, db, svc, notifier):
        token = await start(svc)
        await svc.complete_signup(token, notifier.last_code())
        notifier.sent.clear()

        with pytest.raises(IdentityAlreadyRegisteredError):
            await start(svc, username="someone-else")
        assert notifier.sent == []
        assert await count_otps(db) == 0

    async def test_username_taken_sends_nothing(self, db, svc, notifier):
        token = await start(svc)
        await svc.complete_signup(token, notifier.last_code())
        notifier.sent.clear()

        with pytest.raises(UsernameTakenError):
            await start(svc, email="b@example.com")
        assert notifier.sent == []
        assert await count_otps(db) == 0

    async def test_notifier_failure_does_not_fail_signup(self, db):
        svc = make_service(db, CapturingNotifier(fail=True))
        assert await start(svc)

    async def test_undelivered_still_returns_token(self, db):
        svc = make_service(db, CapturingNotifier(delivered=False))
        assert await start(svc)


class TestCompleteSignup:
    async def test_creates_tenant_with_identity(self, db, svc, notifier):
        token = await start(svc, password="s3cret")
        tenant = await svc.complete_signup(token, notifier.last_code())
        assert tenant.username == "alice"

        tenants = TenantService()
        async with db.get_session() as session:
            found = await tenants.get_by_identity(session, IdentityType.EMAIL, "a@example.com")
            assert found.id == tenant.id
            assert check_password("s3cret", found.password_hash)
            assert await OtpService().get_by_id(session, token) is None

    async def test_long_password(self, db, svc, notifier):
        long_pw = "x" * 100
        token = await svc.start_signup(IdentityType.EMAIL, "long@example.com", "longpw", long_pw)
        tenant = await svc.complete_signup(token, notifier.last_code())

        async with db.get_session() as session:
            assert await TenantService().verify_credentials(session, tenant.id, long_pw)

    async def test_replay_is_invalid_token(self, svc, notifier):
        token = await start(svc)
        code = notifier.last_code()
        await svc.complete_signup(token, code)
        with pytest.raises(InvalidTokenError):
            await svc.complete_signup(token, code)

    async def test_wrong_code_keeps_signup_pending(self, svc, notifier):
        token = await start(svc)
        code = notifier.last_code()
        wrong = "0000" if code != "0000" else "1111"
        with pytest.raises(InvalidOtpError):
            await svc.complete_signup(token, wrong)
        tenant = await svc.complete_signup(token, code)
        assert tenant.username == "alice"

    async def test_empty_code(self, svc):
        token = await start(svc)
        with pytest.raises(InvalidOtpError):
            await svc.complete_signup(token, "")

    async def test_unknown_token(self, svc):
        with pytest.raises(InvalidTokenError):
            await svc.complete_signup("no-such-token", "1234")

    async def test_expired_code(self, db, notifier):
        svc = make_service(db, notifier, signup_otp_ttl=-1)
        token = await start(svc)
        with pytest.raises(InvalidTokenError):
            await svc.complete_signup(token, notifier.last_code())

    async def test_wrong_context(self, db, svc):
        async with db.get_session() as session:
            record = await OtpService().generate_and_save(
                session, OtpType.NUMERIC, length=4, ttl_seconds=300, context="OTHER",
            )
            token, code = record.id, record.code
        with pytest.raises(InvalidContextError):
            await svc.complete_signup(token, code)

    async def test_corrupt_metadata(self, db, svc):
        async with db.get_session() as session:
            record = await OtpService().generate_and_save(
                session, OtpType.NUMERIC, length=4, ttl_seconds=300,
                context=SIGNUP_CONTEXT, metadata={"identity": "a@example.com"},
            )
            token, code = record.id, record.code
        with pytest.raises(CorruptMetadataError):
            await svc.complete_signup(token, code)

    async def test_username_claimed_while_pending(self, svc, notifier):
        first = await start(svc, email="a@example.com")
        first_code = notifier.last_code()
        second = await start(svc, email="b@example.com")
        second_code = notifier.last_code()

        await svc.complete_signup(first, first_code)
        with pytest.raises(UsernameTakenError):
            await svc.complete_signup(second, second_code)

    async def test_concurrent_completion_creates_one_tenant(self, tmp_path, notifier):
        manager = DatabaseManager(make_settings(db_url=f"sqlite+aiosqlite:///{tmp_path}/signup.db"))
        await manager.init()
        await manager.create_all()
        try:
            svc = make_service(manager, notifier)
            token = await start(svc)
            code = notifier.last_code()
            results = await asyncio.gather(
                *(svc.complete_signup(token, code) for _ in range(5)),
                return_exceptions=True,
            )
        finally:
            await manager.close()

        created = [r for r in results if not isinstance(r, Exception)]
        failed = [r for r in results if isinstance(r, Exception)]
        assert len(created) == 1
        assert all(isinstance(e, InvalidTokenError) for e in failed)
