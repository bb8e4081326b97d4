"""SQLite connection management and schema migrations."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List

import aiosqlite
import structlog

from ..exceptions import StorageError

logger = structlog.get_logger()


def _casefold(value):
    # SQLite lower() and LIKE only fold ASCII.
    return value.casefold() if isinstance(value, str) else value


# Each entry is applied once, in order; the index is the schema version.
MIGRATIONS: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS users (
        user_id INTEGER PRIMARY KEY,
        quiz_day INTEGER NOT NULL DEFAULT 0,
        quiz_time INTEGER NOT NULL DEFAULT 20,
        daily_goal INTEGER,
        joined_at TEXT NOT NULL,
        last_active_at TEXT NOT NULL,
        settings_json TEXT NOT NULL DEFAULT '{}'
    );

    CREATE TABLE IF NOT EXISTS entries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        content TEXT NOT NULL,
        category TEXT,
        created_at TEXT NOT NULL,
        difficulty INTEGER,
        confidence INTEGER,
        tags_json TEXT NOT NULL DEFAULT '[]',
        source TEXT NOT NULL DEFAULT 'manual',
        is_ai_generated INTEGER NOT NULL DEFAULT 0
    );

    CREATE INDEX IF NOT EXISTS idx_entries_user_created
        ON entries (user_id, created_at);
    """,
    """
    ALTER TABLE entries ADD COLUMN work TEXT;
    ALTER TABLE entries ADD COLUMN learn TEXT;
    ALTER TABLE entries ADD COLUMN blockers TEXT;
    """,
]


class DatabaseManager:
    """Open connections to the diary database and keep its schema current."""

    def __init__(self, database_url: str) -> None:
        self.database_path = Path(database_url.replace("sqlite:///", "", 1))

    async def initialize(self) -> None:
        """Create the database file if needed and apply pending migrations."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        async with self.get_connection() as conn:
            await conn.execute(
                "CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)"
            )
            cursor = await conn.execute("SELECT MAX(version) FROM schema_version")
            row = await cursor.fetchone()
            current = row[0] if row and row[0] is not None else 0

            for version, script in enumerate(MIGRATIONS, start=1):
                if version <= current:
                    continue
                await conn.executescript(script)
                await conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)", (version,)
                )
                logger.info("Applied database migration", version=version)
            await conn.commit()

        logger.info("Database initialized", path=str(self.database_path))

    @asynccontextmanager
    async def get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection with row access by column name.

        ``aiosqlite.Error`` raised inside the block is re-raised as
        ``StorageError``.
        """
        try:
            conn = await aiosqlite.connect(self.database_path)
        except aiosqlite.Error as exc:
            raise StorageError(f"Cannot open database: {exc}") from exc
        conn.row_factory = aiosqlite.Row
        try:
            await conn.create_function("casefold", 1, _casefold, deterministic=True)
            yield conn
        except aiosqlite.Error as exc:
            logger.error("Database error", error=str(exc))
            raise StorageError(str(exc)) from exc
        finally:
            await conn.close()

    async def close(self) -> None:
        """Connections are per-call; nothing is held open between calls."""
        logger.debug("Database manager closed", path=str(self.database_path))
