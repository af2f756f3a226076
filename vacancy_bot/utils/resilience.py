"""Vacancy Bot — Circuit Breaker.

Protects the bot from hammering an external service that keeps failing
(the Groq API). Each classification that fails is counted; after
``failure_threshold`` consecutive failures the circuit opens and calls are
refused until the cooldown expires, then one probe call is let through.

States:
  CLOSED    → calls flow through
  OPEN      → calls refused with CircuitOpenError
  HALF_OPEN → cooldown elapsed, the next call decides

Usage:
    breaker = CircuitBreaker("groq", failure_threshold=5, cooldown_seconds=300)
    result = await breaker.call(client.generate, prompt)
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable

from vacancy_bot.utils.logger import get_logger

logger = get_logger(__name__)


class CircuitOpenError(Exception):
    """Raised instead of calling the service while the circuit is open."""

    def __init__(self, name: str, remaining_seconds: float) -> None:
        self.name = name
        self.remaining_seconds = remaining_seconds
        super().__init__(
            f"Circuit '{name}' is OPEN, retry in {remaining_seconds:.0f}s"
        )


class CircuitBreaker:
    """Consecutive-failure circuit breaker for async callables.

    Attributes:
        name: Service name used in logs.
        failure_threshold: Consecutive failures that open the circuit.
        cooldown_seconds: How long the circuit stays open.
        ignore: Exception types that pass through without counting as a
            failure (the service answered, the answer was unusable).
    """

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        cooldown_seconds: float = 300.0,
        ignore: tuple[type[Exception], ...] = (),
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self.ignore = ignore

        self._state = self.CLOSED
        self._failures = 0
        self._opened_at = 0.0
        self._trips = 0

    @property
    def state(self) -> str:
        """Current state; an expired OPEN reads as HALF_OPEN."""
        if self._state == self.OPEN and self.remaining_cooldown == 0.0:
            return self.HALF_OPEN
        return self._state

    @property
    def is_open(self) -> bool:
        return self.state == self.OPEN

    @property
    def remaining_cooldown(self) -> float:
        if self._state != self.OPEN:
            return 0.0
        return max(0.0, self.cooldown_seconds - (time.monotonic() - self._opened_at))

    @property
    def total_trips(self) -> int:
        return self._trips

    async def call(
        self,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Run ``func`` through the breaker.

        Raises:
            CircuitOpenError: While the circuit is open.
            Exception: Whatever ``func`` raised, after counting the failure
                unless it is one of ``ignore``.
        """
        if self.is_open:
            raise CircuitOpenError(self.name, self.remaining_cooldown)

        try:
            result = await func(*args, **kwargs)
        except self.ignore:
            self.record_success()
            raise
        except Exception as e:
            self.record_failure(e)
            raise
        self.record_success()
        return result

    def record_success(self) -> None:
        if self._state != self.CLOSED:
            logger.info("Circuit '%s': %s → CLOSED", self.name, self.state)
        self._state = self.CLOSED
        self._failures = 0

    def record_failure(self, error: BaseException) -> None:
        probing = self.state == self.HALF_OPEN
        self._failures += 1

        if probing or self._failures >= self.failure_threshold:
            self._state = self.OPEN
            self._opened_at = time.monotonic()
            self._trips += 1
            logger.warning(
                "Circuit '%s' OPEN (trip #%d, %d failures, cooldown %.0fs): %s",
                self.name, self._trips, self._failures,
                self.cooldown_seconds, str(error)[:200],
            )
        else:
            logger.debug(
                "Circuit '%s': failure %d/%d (%s)",
                self.name, self._failures, self.failure_threshold,
                type(error).__name__,
            )

    def reset(self) -> None:
        """Force the circuit back to CLOSED."""
        self._state = self.CLOSED
        self._failures = 0
        logger.info("Circuit '%s': manually reset", self.name)
