"""Vacancy Bot — SQLite Connection Manager.

Async SQLite connection management with aiosqlite: opens the database,
applies pragmas, creates the users / saved_vacancies schema, and closes
the connection on shutdown.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite

from vacancy_bot.utils.logger import get_logger

logger = get_logger(__name__)

# ── Schema Definitions ────────────────────────────────────
SCHEMA_SQL = """
-- ═══ Users Table ═══
-- One row per Telegram user, created on first contact.
CREATE TABLE IF NOT EXISTS users (
    telegram_id     INTEGER PRIMARY KEY,
    first_name      TEXT    DEFAULT '',
    searches_left   INTEGER DEFAULT 100,
    registered_at   DATETIME DEFAULT (datetime('now', 'localtime'))
);

-- ═══ Saved Vacancies Table ═══
-- Vacancies a user liked during review. (user_id, url) is unique so the
-- duplicate check and the insert are a single atomic statement.
CREATE TABLE IF NOT EXISTS saved_vacancies (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id     INTEGER NOT NULL,
    title       TEXT    NOT NULL DEFAULT '',
    url         TEXT    NOT NULL,
    summary     TEXT    DEFAULT '',
    saved_at    DATETIME DEFAULT (datetime('now', 'localtime')),
    FOREIGN KEY (user_id) REFERENCES users(telegram_id) ON DELETE CASCADE
);

-- ═══ Indexes ═══
CREATE UNIQUE INDEX IF NOT EXISTS idx_saved_user_url ON saved_vacancies(user_id, url);
CREATE INDEX IF NOT EXISTS idx_saved_user         ON saved_vacancies(user_id);
"""


class Database:
    """Async SQLite database connection manager.

    Holds one persistent connection with WAL mode and foreign keys on.
    aiosqlite runs every statement on a single worker thread, so
    statements issued from concurrent handlers are serialized.

    Attributes:
        db_path: Resolved absolute path to the SQLite file.
    """

    def __init__(self, db_path: str) -> None:
        """Initialize the database manager.

        Args:
            db_path: Path to the SQLite file; parent directories are
                created on initialize().
        """
        self.db_path = Path(db_path).resolve()
        self._connection: aiosqlite.Connection | None = None
        logger.debug("Database manager initialized with path: %s", self.db_path)

    async def initialize(self) -> None:
        """Open the connection, set pragmas and create the schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info("Connecting to database: %s", self.db_path)
        self._connection = await aiosqlite.connect(str(self.db_path))

        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA foreign_keys=ON")
        self._connection.row_factory = aiosqlite.Row

        await self._connection.executescript(SCHEMA_SQL)
        await self._connection.commit()

        logger.info("Database initialized — users and saved_vacancies ready")

    async def get_connection(self) -> aiosqlite.Connection:
        """Return the active connection, initializing it on first use."""
        if self._connection is None:
            await self.initialize()
        return self._connection

    async def close(self) -> None:
        """Close the connection; safe to call more than once."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("Database connection closed")

    async def __aenter__(self) -> "Database":
        await self.initialize()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
