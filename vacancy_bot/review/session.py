"""Vacancy Bot — Review Session.

Swipe-style walk over the candidates of one search: the user sees one
card at a time and either saves it or skips it. The cursor only moves
forward.

SessionRegistry keeps the per-user chat state. A new search replaces the
previous one; results of a run that was replaced are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from vacancy_bot.database.models import AppendResult, Candidate, SearchRequest
from vacancy_bot.utils.logger import get_logger

if TYPE_CHECKING:
    from vacancy_bot.database.store import SavedVacancyStore

logger = get_logger(__name__)


@dataclass
class ReviewSession:
    """Cursor over accepted candidates.

    Attributes:
        candidates: Candidates in pipeline order.
        current_index: Index of the card on screen; never decreases.
        started: True once the first card has been shown.
    """

    candidates: Sequence[Candidate]
    current_index: int = 0
    started: bool = False

    def __post_init__(self) -> None:
        self.candidates = tuple(self.candidates)
        if self.current_index < 0:
            raise ValueError("current_index must be >= 0")

    def __len__(self) -> int:
        return len(self.candidates)

    @property
    def is_exhausted(self) -> bool:
        return self.current_index >= len(self.candidates)

    def current(self) -> Optional[Candidate]:
        """The candidate on screen, or None once exhausted."""
        if self.is_exhausted:
            return None
        return self.candidates[self.current_index]

    def advance(self) -> None:
        """Move to the next candidate (stops at the end)."""
        if not self.is_exhausted:
            self.current_index += 1

    async def accept(
        self, store: "SavedVacancyStore", user_id: int,
    ) -> Optional[AppendResult]:
        """Save the current candidate, then advance.

        If the store raises, the cursor stays put so the user can retry.

        Returns:
            The store's AppendResult, or None if there was nothing to save.
        """
        candidate = self.current()
        if candidate is None:
            return None
        result = await store.append(user_id, candidate)
        self.advance()
        return result

    def reject(self) -> None:
        """Skip the current candidate."""
        self.advance()

    @property
    def position(self) -> tuple[int, int]:
        """(1-based index of the current card, total)."""
        return self.current_index + 1, len(self.candidates)

    @property
    def progress_label(self) -> str:
        done, total = self.position
        return f"[{done}/{total}]"


@dataclass
class ChatSession:
    """Per-user chat state: the last search and its review."""

    user_id: int
    request: SearchRequest
    review: Optional[ReviewSession] = None


class SessionRegistry:
    """In-memory map of Telegram user id → ChatSession."""

    def __init__(self) -> None:
        self._sessions: dict[int, ChatSession] = {}

    def get(self, user_id: int) -> Optional[ChatSession]:
        return self._sessions.get(user_id)

    def begin(self, user_id: int, request: SearchRequest) -> ChatSession:
        """Start a new search, replacing whatever the user had before."""
        if user_id in self._sessions:
            logger.info("User %d started a new search; previous session replaced", user_id)
        session = ChatSession(user_id=user_id, request=request)
        self._sessions[user_id] = session
        return session

    def attach_results(
        self, session: ChatSession, candidates: Sequence[Candidate],
    ) -> Optional[ReviewSession]:
        """Give a finished run's candidates to its session.

        Returns:
            The new ReviewSession, or None if the session has since been
            replaced by a newer search.
        """
        if self._sessions.get(session.user_id) is not session:
            logger.info("Dropping results of a superseded search for user %d", session.user_id)
            return None
        session.review = ReviewSession(candidates=candidates)
        return session.review

    def end(self, user_id: int) -> None:
        self._sessions.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._sessions)
