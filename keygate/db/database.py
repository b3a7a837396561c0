"""SQLite key store connection and schema migrations."""

import logging
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
MEMORY = ":memory:"

_db: aiosqlite.Connection | None = None


async def get_db() -> aiosqlite.Connection:
    if _db is None:
        raise RuntimeError("Key store not initialized. Call init_db() first.")
    return _db


async def open_key_store(database_path: str, deployment_mode: str = "container") -> aiosqlite.Connection:
    """Connect, pick a journal mode for the deployment, and bring the schema up to date."""
    if database_path != MEMORY:
        Path(database_path).parent.mkdir(parents=True, exist_ok=True)

    db = await aiosqlite.connect(database_path)
    db.row_factory = aiosqlite.Row

    if database_path == MEMORY:
        pass
    elif deployment_mode == "lambda":
        # EFS lacks mmap support required for WAL
        await db.execute("PRAGMA journal_mode=DELETE")
        await db.execute("PRAGMA busy_timeout=5000")
    else:
        await db.execute("PRAGMA journal_mode=WAL")

    await run_migrations(db)
    return db


async def init_db(database_path: str, deployment_mode: str = "container") -> None:
    global _db
    _db = await open_key_store(database_path, deployment_mode)
    logger.info("Key store ready at %s (mode=%s)", database_path, deployment_mode)


async def close_db() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("Key store connection closed")


async def _schema_version(db: aiosqlite.Connection) -> int:
    try:
        async with db.execute("SELECT MAX(version) FROM schema_version") as cursor:
            row = await cursor.fetchone()
    except aiosqlite.OperationalError:
        return 0
    return row[0] if row and row[0] else 0


async def run_migrations(db: aiosqlite.Connection) -> int:
    """Apply pending ``NNN_name.sql`` files in order, recording each one.

    Returns the schema version after the run.
    """
    version = await _schema_version(db)
    for mf in sorted(MIGRATIONS_DIR.glob("*.sql")):
        number = int(mf.stem.split("_")[0])
        if number <= version:
            continue
        logger.info("Applying key store migration %s", mf.name)
        await db.executescript(mf.read_text())
        await db.execute(
            "INSERT INTO schema_version (version, name) VALUES (?, ?)", (number, mf.stem)
        )
        await db.commit()
        version = number
    return version
