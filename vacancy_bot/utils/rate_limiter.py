"""Vacancy Bot — Async Throttling Helpers.

Two small throttles used by the bot:
  - AsyncRateLimiter: sliding window "N calls per period", used to keep
    the Groq client under its requests-per-minute quota.
  - HostPacer: minimum spacing between navigations to the same host,
    used by the scrape pipeline so job boards are never hit back-to-back.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from urllib.parse import urlparse

from vacancy_bot.utils.logger import get_logger

logger = get_logger(__name__)


class AsyncRateLimiter:
    """Sliding-window limiter for async calls.

    Keeps the monotonic timestamps of recent calls; acquire() sleeps
    until the oldest one leaves the window when the window is full.

    Attributes:
        max_calls: Calls allowed inside one window.
        period: Window length in seconds.
    """

    def __init__(self, max_calls: int, period_seconds: float) -> None:
        if max_calls < 1:
            raise ValueError(f"max_calls must be >= 1, got {max_calls}")
        self.max_calls = max_calls
        self.period = period_seconds
        self._calls: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        cutoff = now - self.period
        while self._calls and self._calls[0] <= cutoff:
            self._calls.popleft()

    @property
    def available_slots(self) -> int:
        """Approximate number of calls that would not wait right now."""
        self._prune(time.monotonic())
        return max(0, self.max_calls - len(self._calls))

    async def acquire(self) -> None:
        """Wait for a free slot and claim it.

        The lock is held while sleeping, so waiters are served in
        arrival order.
        """
        async with self._lock:
            while True:
                now = time.monotonic()
                self._prune(now)
                if len(self._calls) < self.max_calls:
                    self._calls.append(now)
                    return

                wait_time = self._calls[0] + self.period - now
                logger.debug(
                    "Rate limit reached (%d/%d). Waiting %.2fs",
                    len(self._calls), self.max_calls, wait_time,
                )
                await asyncio.sleep(max(wait_time, 0.0))

    def __repr__(self) -> str:
        return f"AsyncRateLimiter(max_calls={self.max_calls}, period={self.period}s)"


class HostPacer:
    """Enforces a minimum interval between requests to one host.

    Hosts are independent: pacing work.ua never delays robota.ua.

    Attributes:
        interval: Minimum seconds between two navigations to a host.
    """

    def __init__(self, interval_seconds: float) -> None:
        self.interval = interval_seconds
        self._last_seen: dict[str, float] = {}

    @staticmethod
    def _host(url: str) -> str:
        return (urlparse(url).hostname or "").lower()

    async def wait(self, url: str) -> float:
        """Sleep until the host of ``url`` may be requested again.

        The first request to a host never waits.

        Args:
            url: The URL about to be navigated to.

        Returns:
            Seconds actually slept.
        """
        host = self._host(url)
        slept = 0.0
        last = self._last_seen.get(host)
        if last is not None:
            remaining = self.interval - (time.monotonic() - last)
            if remaining > 0:
                logger.debug("Pacing %s: sleeping %.2fs", host, remaining)
                await asyncio.sleep(remaining)
                slept = remaining
        self._last_seen[host] = time.monotonic()
        return slept
