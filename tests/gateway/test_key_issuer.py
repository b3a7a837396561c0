"""Tests for the SQLite-backed key issuer."""

from __future__ import annotations

from datetime import datetime, timezone

import bcrypt
import pytest

from keygate.auth.api_keys import generate_api_key
from keygate.db.database import open_key_store, run_migrations
from keygate.models.api_key import KeyIssueOptions
from keygate.services.key_issuer import KeyIssuer, SqliteKeyIssuer


async def _row(db, key_id: str) -> dict:
    async with db.execute("SELECT * FROM api_keys WHERE id = ?", (key_id,)) as cursor:
        return dict(await cursor.fetchone())


def test_generate_api_key_format():
    full_key, key_hash, prefix = generate_api_key("cr_")
    assert full_key.startswith("cr_")
    assert len(full_key) == 3 + 64
    assert prefix == full_key[:8]
    assert key_hash != full_key
    assert bcrypt.checkpw(full_key.encode(), key_hash.encode())
    assert not bcrypt.checkpw((full_key + "x").encode(), key_hash.encode())


def test_satisfies_protocol():
    assert isinstance(SqliteKeyIssuer(), KeyIssuer)


@pytest.mark.asyncio
async def test_issue_stores_hash_only(issuer, db):
    expires = datetime(2026, 4, 1, 12, 0, tzinfo=timezone.utc)
    issued = await issuer.generate_api_key(
        KeyIssueOptions(name="Test", description="d", token_limit=50000, daily_cost_limit=2.5, expires_at=expires)
    )

    assert issued.api_key.startswith("cr_")
    assert issued.status == "active"
    assert issued.expires_at == expires

    row = await _row(db, issued.id)
    assert row["name"] == "Test"
    assert row["key_prefix"] == issued.api_key[:8]
    assert issued.api_key not in row.values()
    assert bcrypt.checkpw(issued.api_key.encode(), row["key_hash"].encode())
    assert row["token_limit"] == 50000
    assert row["daily_cost_limit"] == 2.5
    assert row["expires_at"] == "2026-04-01T12:00:00.000Z"
    assert row["created_by"] == "public-api"
    assert row["activation_mode"] == "immediate"


@pytest.mark.asyncio
async def test_each_call_mints_distinct_key(issuer):
    first = await issuer.generate_api_key(KeyIssueOptions(name="Same"))
    second = await issuer.generate_api_key(KeyIssueOptions(name="Same"))
    assert first.id != second.id
    assert first.api_key != second.api_key


@pytest.mark.asyncio
async def test_migrations_are_recorded_once(db):
    assert await run_migrations(db) == 1
    async with db.execute("SELECT version, name FROM schema_version") as cursor:
        rows = [tuple(r) for r in await cursor.fetchall()]
    assert rows == [(1, "001_api_keys")]


@pytest.mark.asyncio
async def test_file_store_survives_reopen(tmp_path):
    path = str(tmp_path / "nested" / "keys.db")
    db = await open_key_store(path)
    issued = await SqliteKeyIssuer(db=db).generate_api_key(KeyIssueOptions(name="Persisted"))
    await db.close()

    db = await open_key_store(path)
    try:
        assert (await _row(db, issued.id))["name"] == "Persisted"
        assert await run_migrations(db) == 1
    finally:
        await db.close()
