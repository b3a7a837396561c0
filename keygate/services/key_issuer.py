"""Key issuance: the protocol the controller calls, and the SQLite-backed default."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import aiosqlite

from keygate.auth.api_keys import generate_api_key
from keygate.db.database import get_db
from keygate.db.queries import api_keys as key_queries
from keygate.models.api_key import IssuedKey, KeyIssueOptions
from keygate.utils.dates import iso_utc, utc_now

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyIssuer(Protocol):
    """Mints and stores a new key. Returns None when nothing was minted."""

    async def generate_api_key(self, options: KeyIssueOptions) -> IssuedKey | None: ...


class SqliteKeyIssuer:
    """Stores a bcrypt hash and display prefix; the plaintext leaves only in the result."""

    def __init__(self, key_prefix: str = "cr_", db: aiosqlite.Connection | None = None) -> None:
        self.key_prefix = key_prefix
        self._db = db

    async def generate_api_key(self, options: KeyIssueOptions) -> IssuedKey | None:
        db = self._db or await get_db()
        full_key, key_hash, display_prefix = generate_api_key(self.key_prefix)
        created_at = utc_now()

        key_id = await key_queries.create_key(
            db,
            key_hash,
            display_prefix,
            options.name,
            created_at=iso_utc(created_at),
            description=options.description,
            token_limit=options.token_limit,
            daily_cost_limit=options.daily_cost_limit,
            monthly_cost_limit=options.monthly_cost_limit,
            expires_at=iso_utc(options.expires_at) if options.expires_at else None,
            created_by=options.created_by,
            activation_mode=options.activation_mode,
        )
        logger.info("Stored API key %s (prefix %s)", key_id, display_prefix)

        return IssuedKey(
            api_key=full_key,
            id=key_id,
            name=options.name,
            description=options.description,
            token_limit=options.token_limit,
            daily_cost_limit=options.daily_cost_limit,
            monthly_cost_limit=options.monthly_cost_limit,
            expires_at=options.expires_at,
            created_at=created_at,
            status="active",
        )
