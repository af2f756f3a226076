"""Vacancy Bot — Data Models.

Dataclasses for everything that moves between the pipeline, the review
session and the database: the user's search request, the classifier's
verdict, accepted candidates, and persisted users / saved vacancies.

Persisted models provide:
  - to_db_dict(): dict ready for SQLite parameters
  - from_db_row(row): classmethod rebuilding the model from a row dict
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union


# ═══════════════════════════════════════════════════════════
# Search Models
# ═══════════════════════════════════════════════════════════


@dataclass(frozen=True)
class SearchRequest:
    """One search submitted from the Web App.

    Attributes:
        url: Job-board search URL (work.ua / robota.ua).
        filters: Read-only criteria passed verbatim to the classifier,
            e.g. {"salary_only": True, "remote_only": False}.
    """

    url: str
    filters: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_web_app_data(cls, raw: str) -> "SearchRequest":
        """Parse the JSON payload sent by the Web App.

        Every key except ``url`` becomes a filter.

        Raises:
            ValueError: If the payload is not a JSON object with a string url.
        """
        try:
            data = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as e:
            raise ValueError(f"Web App data is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ValueError("Web App data must be a JSON object")
        url = data.get("url")
        if not isinstance(url, str) or not url.strip():
            raise ValueError("Web App data has no 'url'")

        filters = {k: v for k, v in data.items() if k != "url"}
        return cls(url=url.strip(), filters=MappingProxyType(filters))

    def filters_dict(self) -> dict[str, Any]:
        """Plain-dict copy of the filters for serialization."""
        return dict(self.filters)


SummaryData = Union[str, dict[str, Any], None]


@dataclass(frozen=True)
class Verdict:
    """The classifier's judgment of one listing.

    Attributes:
        valid: Whether the listing passes the user's filters.
        reason: Short explanation (from the AI or the local rule that fired).
        summary: Free text or a structured dict with position/company/
            location/salary/description keys.
    """

    valid: bool
    reason: str = ""
    summary: SummaryData = None

    @classmethod
    def rejected(cls, reason: str) -> "Verdict":
        return cls(valid=False, reason=reason)


@dataclass(frozen=True)
class Candidate:
    """A listing that passed classification and awaits review.

    Attributes:
        title: Page heading of the listing.
        url: Detail page URL; the unique key when saved.
        summary: Display-ready summary text.
    """

    title: str
    url: str
    summary: str


# ═══════════════════════════════════════════════════════════
# Persisted Models
# ═══════════════════════════════════════════════════════════


@dataclass
class SavedVacancy:
    """A candidate the user liked, as stored in saved_vacancies.

    Attributes:
        title: Listing title.
        url: Listing URL, unique per user.
        summary: Display summary at the time of saving.
        saved_at: SQLite timestamp string, filled by the database.
    """

    title: str
    url: str
    summary: str = ""
    saved_at: Optional[str] = None

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "SavedVacancy":
        return cls(title=candidate.title, url=candidate.url, summary=candidate.summary)

    def to_db_dict(self, user_id: int) -> dict[str, Any]:
        """Convert to a dictionary for SQLite insertion.

        Args:
            user_id: Telegram id of the owning user.
        """
        return {
            "user_id": user_id,
            "title": self.title,
            "url": self.url,
            "summary": self.summary,
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "SavedVacancy":
        return cls(
            title=row["title"],
            url=row["url"],
            summary=row.get("summary", "") or "",
            saved_at=row.get("saved_at"),
        )


@dataclass
class User:
    """A bot user keyed by Telegram id.

    Attributes:
        telegram_id: Telegram user id.
        first_name: First name from the Telegram profile.
        searches_left: Remaining searches this user may start.
        registered_at: SQLite timestamp of the first contact.
        saved_vacancies: Saved list in insertion order (filled on demand).
    """

    telegram_id: int
    first_name: str = ""
    searches_left: int = 100
    registered_at: Optional[str] = None
    saved_vacancies: list[SavedVacancy] = field(default_factory=list)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "telegram_id": self.telegram_id,
            "first_name": self.first_name,
            "searches_left": self.searches_left,
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "User":
        return cls(
            telegram_id=int(row["telegram_id"]),
            first_name=row.get("first_name", "") or "",
            searches_left=int(row.get("searches_left", 0)),
            registered_at=row.get("registered_at"),
        )


@dataclass(frozen=True)
class AppendResult:
    """Outcome of SavedVacancyStore.append().

    Attributes:
        inserted: False when the user already had this url saved.
    """

    inserted: bool
