"""Vacancy Bot — Review Package.

Per-user chat sessions and the swipe review over search results.
"""

from vacancy_bot.review.session import ChatSession, ReviewSession, SessionRegistry

__all__ = ["ChatSession", "ReviewSession", "SessionRegistry"]
