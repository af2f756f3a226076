"""Vacancy Bot — Database Query Operations.

All async reads and writes against users / saved_vacancies. Every function:
  - Uses parameterized queries (? placeholders, never f-strings for SQL)
  - Gets its connection from the Database instance
  - Commits after writes
  - Returns plain dicts or model instances, never aiosqlite.Row
"""

from __future__ import annotations

from typing import Any, Optional

from vacancy_bot.database.db import Database
from vacancy_bot.database.models import SavedVacancy, User
from vacancy_bot.utils.logger import get_logger

logger = get_logger(__name__)


def _row_to_dict(row: Any) -> dict[str, Any]:
    return dict(row)


# ═══════════════════════════════════════════════════════════
# User Operations
# ═══════════════════════════════════════════════════════════


async def get_user(db: Database, telegram_id: int) -> Optional[User]:
    """Find a user by Telegram id.

    Returns:
        The User (without saved vacancies), or None if unknown.
    """
    conn = await db.get_connection()
    cursor = await conn.execute(
        "SELECT * FROM users WHERE telegram_id = ?",
        (telegram_id,),
    )
    row = await cursor.fetchone()
    logger.debug("get_user(%s) → %s", telegram_id, "found" if row else "not found")
    return User.from_db_row(_row_to_dict(row)) if row else None


async def upsert_user(
    db: Database,
    telegram_id: int,
    first_name: str = "",
    searches_left: int = 100,
) -> bool:
    """Create the user on first contact; existing users are left untouched.

    Args:
        db: Active database instance.
        telegram_id: Telegram user id.
        first_name: Telegram first name.
        searches_left: Initial search allowance for a new user.

    Returns:
        True if a new user row was created.
    """
    conn = await db.get_connection()
    cursor = await conn.execute(
        """
        INSERT OR IGNORE INTO users (telegram_id, first_name, searches_left)
        VALUES (?, ?, ?)
        """,
        (telegram_id, first_name, searches_left),
    )
    await conn.commit()
    created = cursor.rowcount == 1
    if created:
        logger.info("Registered new user %s (%s)", telegram_id, first_name or "?")
    return created


async def decrement_searches(db: Database, telegram_id: int) -> bool:
    """Take one search from the user's allowance if any is left.

    The check and the decrement are one UPDATE, so two concurrent
    searches cannot both spend the last slot.

    Returns:
        True if a search was consumed, False if the allowance is empty
        or the user does not exist.
    """
    conn = await db.get_connection()
    cursor = await conn.execute(
        """
        UPDATE users SET searches_left = searches_left - 1
        WHERE telegram_id = ? AND searches_left > 0
        """,
        (telegram_id,),
    )
    await conn.commit()
    consumed = cursor.rowcount == 1
    logger.debug("decrement_searches(%s) → %s", telegram_id, consumed)
    return consumed


# ═══════════════════════════════════════════════════════════
# Saved Vacancy Operations
# ═══════════════════════════════════════════════════════════


async def push_saved_vacancy(
    db: Database, telegram_id: int, vacancy: SavedVacancy,
) -> bool:
    """Append a vacancy to the user's saved list unless its url is there.

    The user row is created if missing. INSERT OR IGNORE against the
    UNIQUE(user_id, url) index makes check-and-insert atomic.

    Returns:
        True if the vacancy was inserted, False if it was a duplicate.
    """
    conn = await db.get_connection()
    d = vacancy.to_db_dict(telegram_id)
    await conn.execute(
        "INSERT OR IGNORE INTO users (telegram_id) VALUES (?)",
        (telegram_id,),
    )
    cursor = await conn.execute(
        """
        INSERT OR IGNORE INTO saved_vacancies (user_id, title, url, summary)
        VALUES (?, ?, ?, ?)
        """,
        (d["user_id"], d["title"], d["url"], d["summary"]),
    )
    await conn.commit()
    inserted = cursor.rowcount == 1
    logger.debug(
        "push_saved_vacancy(%s, %s) → %s",
        telegram_id, vacancy.url, "inserted" if inserted else "duplicate",
    )
    return inserted


async def get_saved_vacancies(db: Database, telegram_id: int) -> list[SavedVacancy]:
    """Return the user's saved vacancies in insertion order."""
    conn = await db.get_connection()
    cursor = await conn.execute(
        """
        SELECT title, url, summary, saved_at FROM saved_vacancies
        WHERE user_id = ?
        ORDER BY id ASC
        """,
        (telegram_id,),
    )
    rows = await cursor.fetchall()
    return [SavedVacancy.from_db_row(_row_to_dict(r)) for r in rows]


async def clear_saved_vacancies(db: Database, telegram_id: int) -> int:
    """Delete every saved vacancy of the user.

    Returns:
        Number of rows removed.
    """
    conn = await db.get_connection()
    cursor = await conn.execute(
        "DELETE FROM saved_vacancies WHERE user_id = ?",
        (telegram_id,),
    )
    await conn.commit()
    removed = cursor.rowcount
    logger.info("Cleared %d saved vacancies for user %s", removed, telegram_id)
    return removed
