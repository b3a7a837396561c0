from __future__ import annotations

import uuid

import aiosqlite


async def create_key(
    db: aiosqlite.Connection,
    key_hash: str,
    key_prefix: str,
    name: str,
    created_at: str,
    description: str = "",
    token_limit: float | None = None,
    daily_cost_limit: float | None = None,
    monthly_cost_limit: float | None = None,
    expires_at: str | None = None,
    created_by: str = "public-api",
    activation_mode: str = "immediate",
) -> str:
    key_id = str(uuid.uuid4())
    await db.execute(
        """INSERT INTO api_keys (id, name, description, key_hash, key_prefix, token_limit,
                                 daily_cost_limit, monthly_cost_limit, expires_at, created_at,
                                 created_by, activation_mode)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (key_id, name, description, key_hash, key_prefix, token_limit, daily_cost_limit,
         monthly_cost_limit, expires_at, created_at, created_by, activation_mode),
    )
    await db.commit()
    return key_id
