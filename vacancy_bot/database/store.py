"""Vacancy Bot — Saved Vacancy Store.

Persistence boundary used by the chat handlers and the review session.
Wraps the query functions with user-level operations: register on first
contact, spend a search, and append / list / clear saved vacancies.
"""

from __future__ import annotations

from typing import Optional

from vacancy_bot.database import queries
from vacancy_bot.database.db import Database
from vacancy_bot.database.models import AppendResult, Candidate, SavedVacancy, User
from vacancy_bot.utils.logger import get_logger

logger = get_logger(__name__)


class SavedVacancyStore:
    """Per-user saved vacancies on top of the SQLite database.

    append() is idempotent on (user_id, url): repeating it never creates a
    second row and reports inserted=False.

    Attributes:
        db: Active database instance.
        default_searches: Allowance given to newly registered users.
    """

    def __init__(self, db: Database, default_searches: int = 100) -> None:
        self.db = db
        self.default_searches = default_searches

    async def register_user(self, user_id: int, first_name: str = "") -> User:
        """Create the user on first contact and return the stored record."""
        await queries.upsert_user(
            self.db, user_id, first_name, searches_left=self.default_searches,
        )
        user = await queries.get_user(self.db, user_id)
        if user is None:
            raise RuntimeError(f"User {user_id} missing right after upsert")
        return user

    async def get_user(self, user_id: int) -> Optional[User]:
        """Find a user with their saved list, or None if never seen."""
        user = await queries.get_user(self.db, user_id)
        if user is not None:
            user.saved_vacancies = await queries.get_saved_vacancies(self.db, user_id)
        return user

    async def consume_search(self, user_id: int) -> bool:
        """Spend one search from the user's allowance.

        Returns:
            False if the allowance is exhausted.
        """
        await queries.upsert_user(self.db, user_id, searches_left=self.default_searches)
        return await queries.decrement_searches(self.db, user_id)

    async def append(self, user_id: int, candidate: Candidate) -> AppendResult:
        """Save a candidate for the user unless its url is already saved."""
        inserted = await queries.push_saved_vacancy(
            self.db, user_id, SavedVacancy.from_candidate(candidate),
        )
        if inserted:
            logger.info("User %s saved %s", user_id, candidate.url)
        else:
            logger.info("User %s already had %s saved", user_id, candidate.url)
        return AppendResult(inserted=inserted)

    async def list(self, user_id: int) -> list[SavedVacancy]:
        """Saved vacancies of the user in the order they were liked."""
        return await queries.get_saved_vacancies(self.db, user_id)

    async def clear(self, user_id: int) -> int:
        """Empty the user's saved list. Irreversible.

        Returns:
            Number of vacancies removed.
        """
        return await queries.clear_saved_vacancies(self.db, user_id)
