"""Vacancy Bot — Operator Alerts.

Sends anomaly reports (no links found, browser crash, AI outage) to the
operator's Telegram chat, optionally with a diagnostic screenshot.

Alerts are best-effort: every failure is logged and swallowed, and the
report is always written to the log first, so alerting can never break
the flow that raised it.
"""

from __future__ import annotations

import asyncio
import html
from pathlib import Path
from typing import Any, Optional, Protocol

from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import BadRequest, NetworkError, RetryAfter, TelegramError, TimedOut

from vacancy_bot.utils.logger import get_logger

logger = get_logger(__name__)

_MAX_ATTEMPTS = 3
_CAPTION_LEN = 1024


class OperatorAlerts(Protocol):
    """Anything that can deliver an operator report."""

    async def report(
        self, context: str, error: Any, photo: Optional[Path] = None,
    ) -> None: ...


def format_admin_alert(context: str, error: Any, max_detail: Optional[int] = None) -> str:
    """HTML text of an operator alert.

    ``max_detail`` cuts the error text before escaping, so an entity
    like ``&amp;`` is never split.
    """
    detail = str(error) or type(error).__name__
    if max_detail is not None and len(detail) > max_detail:
        detail = detail[: max(max_detail - 1, 0)] + "…"
    return (
        "⚠️ <b>Помилка бота:</b>\n\n"
        f"Context: {html.escape(context)}\n"
        f"Error: {html.escape(detail)}"
    )


class AdminNotifier:
    """Telegram operator channel.

    Attributes:
        admin_chat_id: Operator chat; alerts are disabled when empty.
    """

    def __init__(self, bot: Bot, admin_chat_id: str) -> None:
        self._bot = bot
        self.admin_chat_id = admin_chat_id
        self.sent_count = 0

    @property
    def enabled(self) -> bool:
        return bool(self.admin_chat_id)

    async def report(
        self, context: str, error: Any, photo: Optional[Path] = None,
    ) -> None:
        """Log the anomaly and forward it to the operator.

        Args:
            context: What was happening, e.g. "Zero Vacancies Found".
            error: Exception or message describing the failure.
            photo: Optional screenshot to attach.
        """
        logger.error("[ADMIN ALERT] %s: %s", context, error)
        if not self.enabled:
            return

        try:
            if photo is not None and Path(photo).exists():
                if await self._send_photo(context, error, Path(photo)):
                    self.sent_count += 1
                    return
            await self._with_retry(
                self._bot.send_message,
                chat_id=self.admin_chat_id,
                text=format_admin_alert(context, error),
                parse_mode=ParseMode.HTML,
            )
            self.sent_count += 1
        except Exception as e:
            logger.error("Failed to deliver operator alert: %s", e)

    async def _send_photo(self, context: str, error: Any, photo: Path) -> bool:
        """Send the alert as a photo caption; False if Telegram refused it."""
        # Room for the header and the context line inside the caption limit
        budget = _CAPTION_LEN - len(context) - 64
        try:
            await self._with_retry(
                self._bot.send_photo,
                chat_id=self.admin_chat_id,
                photo=photo,
                caption=format_admin_alert(context, error, max_detail=budget),
                parse_mode=ParseMode.HTML,
            )
        except TelegramError as e:
            logger.warning("Photo alert refused, sending text only: %s", e)
            return False
        return True

    async def _with_retry(self, method: Any, **kwargs: Any) -> Any:
        """Call a Bot method, waiting out flood control and transient errors."""
        for attempt in range(_MAX_ATTEMPTS):
            try:
                return await method(**kwargs)
            except RetryAfter as e:
                wait = e.retry_after
                seconds = wait.total_seconds() if hasattr(wait, "total_seconds") else float(wait)
                logger.warning("Telegram rate limited. Waiting %.0f seconds...", seconds)
                await asyncio.sleep(seconds)
            except BadRequest:
                # BadRequest subclasses NetworkError; a bad payload is not retried
                raise
            except (TimedOut, NetworkError) as e:
                logger.warning(
                    "Telegram error (attempt %d/%d): %s", attempt + 1, _MAX_ATTEMPTS, e,
                )
                await asyncio.sleep(2 ** attempt)
        raise TelegramError(f"Gave up after {_MAX_ATTEMPTS} attempts")
