"""Shared test fixtures for Authsome."""

import os
import pytest
from httpx import ASGITransport, AsyncClient

from authsome.notifications.service import Notifier


SECRET_KEY = "test-secret-key-for-unit-tests"
ENCRYPTION_KEY = "test-encryption-key-for-unit-tests"
API_PREFIX = "/api/v1/authsome-service"


class CapturingNotifier(Notifier):
    """Notifier that records messages instead of sending them."""

    def __init__(self, delivered: bool = True, fail: bool = False):
        super().__init__()
        self.delivered = delivered
        self.fail = fail
        self.sent: list[dict] = []

    async def send_notification(self, channel, destination, subject, body):
        if self.fail:
            raise RuntimeError("provider down")
        self.sent.append({
            "channel": channel,
            "destination": destination,
            "subject": subject,
            "body": body,
        })
        return self.delivered

    def last_code(self) -> str:
        return self.sent[-1]["body"].rsplit(": ", 1)[-1]


@pytest.fixture
def notifier():
    return CapturingNotifier()


@pytest.fixture
def app(notifier):
    """Create a test app with in-memory DB."""
    os.environ["AUTHSOME_DB_URL"] = "sqlite+aiosqlite://"
    os.environ["AUTHSOME_SECRET_KEY"] = SECRET_KEY
    os.environ["AUTHSOME_ENCRYPTION_KEY"] = ENCRYPTION_KEY

    # Clear caches and singletons so new env vars take effect
    from authsome.common.config import get_settings
    get_settings.cache_clear()

    from authsome import deps
    deps.reset_singletons()
    deps._notifier = notifier

    from authsome.app import create_app
    return create_app()


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from authsome.deps import get_db
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()


async def register_tenant(client, notifier, email="alice@example.com", username="alice", password="s3cret"):
    """Run the signup flow over HTTP. Returns the new tenant id."""
    resp = await client.post(f"{API_PREFIX}/signup", json={
        "identity_type": "EMAIL",
        "identity": email,
        "username": username,
        "password": password,
    })
    assert resp.status_code == 201, resp.text
    token = resp.json()["data"]
    resp = await client.put(
        f"{API_PREFIX}/signup/{notifier.last_code()}",
        headers={"Signup-Token": token},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["tenant_id"]


@pytest.fixture
async def tenant_id(client, notifier):
    return await register_tenant(client, notifier)


@pytest.fixture
async def token_pair(client, tenant_id):
    resp = await client.post(f"{API_PREFIX}/sign-in/password", json={
        "identity_type": "EMAIL",
        "identity": "alice@example.com",
        "password": "s3cret",
    })
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


@pytest.fixture
def bearer_headers(token_pair):
    return {"Authorization": f"Bearer {token_pair['access_token']}"}
