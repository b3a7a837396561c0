"""Shared test fixtures for Keygate."""

from __future__ import annotations

import time
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from keygate.auth.signatures import canonical_json
from keygate.client import sign_payload
from keygate.config import Settings
from keygate.db.database import open_key_store
from keygate.main import create_app
from keygate.services.key_issuer import SqliteKeyIssuer

SECRET = "test-secret-key-for-public-api"
GENERATE_PATH = "/api/generate-key"


def make_settings(**overrides) -> Settings:
    values = {
        "public_api_enabled": True,
        "public_api_secret": SECRET,
        "public_api_allowed_ips": "",
        "rate_limit_per_minute": 1000,
        "feishu_webhook_url": "https://open.feishu.cn/open-apis/bot/v2/hook/default",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def signed_headers(body, secret: str = SECRET, timestamp: str | None = None) -> dict:
    timestamp = timestamp or str(int(time.time() * 1000))
    return {
        "Content-Type": "application/json",
        "X-Timestamp": timestamp,
        "X-Signature": sign_payload(body, timestamp, secret),
    }


# ---------------------------------------------------------------------------
# Key store fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db():
    """In-memory SQLite key store with migrations applied."""
    conn = await open_key_store(":memory:")
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def issuer(db):
    return SqliteKeyIssuer(key_prefix="cr_", db=db)


@pytest.fixture
def notifier():
    mock = AsyncMock()
    mock.send_notification = AsyncMock(return_value=None)
    return mock


# ---------------------------------------------------------------------------
# App / client fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    return make_settings()


@pytest_asyncio.fixture
async def app(settings, issuer, notifier):
    return create_app(settings, issuer=issuer, notifier=notifier)


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP client; requests arrive from 127.0.0.1."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def post_signed(client):
    """POST a body signed with the shared secret (headers may be overridden)."""

    async def _post(body, path: str = GENERATE_PATH, headers: dict | None = None):
        headers = {**signed_headers(body), **(headers or {})}
        return await client.post(path, content=canonical_json(body).encode(), headers=headers)

    return _post
