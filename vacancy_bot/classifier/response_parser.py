"""Vacancy Bot — AI Response Parser.

Turns the raw JSON answer of the AI into a Verdict, and collapses the
verdict's summary (plain text or a structured dict) into one display
string. Parsing is defensive: anything that does not look like a
complete verdict becomes a rejection, never an exception.
"""

from __future__ import annotations

import json
from typing import Any

from vacancy_bot.database.models import SummaryData, Verdict
from vacancy_bot.utils.logger import get_logger

logger = get_logger(__name__)

NO_SUMMARY = "Інформація відсутня"

# Structured summary fields in display order, with their labels
_SUMMARY_LABELS = (
    ("position", "🎯"),
    ("company", "🏢"),
    ("location", "📍"),
    ("salary", "💰"),
)


def _to_bool(value: Any) -> bool:
    """Coerce the AI's 'valid' field; only clear yeses count."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return False


def parse_verdict(raw: Any) -> Verdict:
    """Convert the AI's JSON object into a Verdict.

    Both ``valid`` and ``summary`` must be present; otherwise the listing
    is rejected with reason "Incomplete AI response".

    Args:
        raw: Parsed JSON returned by the AI client.

    Returns:
        A Verdict; never raises.
    """
    if not isinstance(raw, dict):
        logger.error("AI response is not an object: %s", type(raw).__name__)
        return Verdict.rejected("Malformed AI response")

    missing = [key for key in ("valid", "summary") if key not in raw]
    if missing:
        logger.warning("AI response missing fields: %s", ", ".join(missing))
        return Verdict.rejected("Incomplete AI response")

    summary = raw.get("summary")
    if not isinstance(summary, (str, dict)) and summary is not None:
        summary = str(summary)

    return Verdict(
        valid=_to_bool(raw.get("valid")),
        reason=str(raw.get("reason") or ""),
        summary=summary,
    )


def format_summary(summary: SummaryData) -> str:
    """Collapse a verdict summary into a single display string.

    - Non-blank string: returned unchanged.
    - Dict with a description: the description.
    - Dict without one: labeled lines for position / company / location /
      salary, or the JSON dump if none of those are set.
    - Anything else: a fixed "no information" text.

    Args:
        summary: The ``summary`` field of a Verdict.

    Returns:
        A non-empty string.
    """
    if isinstance(summary, str):
        return summary if summary.strip() else NO_SUMMARY

    if isinstance(summary, dict):
        description = summary.get("description")
        if description and str(description).strip():
            return str(description)

        parts = [
            f"{label} {summary[key]}"
            for key, label in _SUMMARY_LABELS
            if summary.get(key)
        ]
        if parts:
            return "\n".join(parts)

        try:
            return json.dumps(summary, ensure_ascii=False)
        except (TypeError, ValueError):
            return str(summary)

    return NO_SUMMARY
