"""Vacancy Bot — Vacancy Classifier.

Judges one vacancy page against the user's filters. Cheap local rules
run first (too little text, anti-bot challenge page); only pages that
pass them cost an AI call. Every failure becomes a rejected Verdict, so
one bad page never stops the pipeline.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional, Protocol

from vacancy_bot.classifier.groq_client import (
    ClassifierError,
    ClassifierResponseError,
    ClassifierTransportError,
    GroqClient,
)
from vacancy_bot.classifier.prompts import build_classification_prompt
from vacancy_bot.classifier.response_parser import parse_verdict
from vacancy_bot.config import ClassifierConfig
from vacancy_bot.database.models import Verdict
from vacancy_bot.utils.logger import get_logger
from vacancy_bot.utils.resilience import CircuitBreaker, CircuitOpenError

if TYPE_CHECKING:
    from vacancy_bot.notifier.admin import OperatorAlerts

logger = get_logger(__name__)

BLOCKED_REASON = "⛔️ Сайт заблокував доступ (Captcha)"
DISABLED_REASON = "AI вимкнено"
UNAVAILABLE_REASON = "AI тимчасово недоступний"
ERROR_REASON = "Помилка аналізу AI"


class VacancyClassifier(Protocol):
    """What the pipeline needs from a classifier."""

    async def classify(self, text: str, filters: Mapping[str, Any]) -> Verdict: ...


class Classifier:
    """AI-backed vacancy classifier with local short-circuit rules.

    Attributes:
        config: Text bounds, challenge markers and breaker settings.
    """

    def __init__(
        self,
        client: GroqClient,
        config: ClassifierConfig,
        alerts: Optional["OperatorAlerts"] = None,
    ) -> None:
        """Initialize the classifier.

        Args:
            client: An entered GroqClient.
            config: ClassifierConfig from the app configuration.
            alerts: Operator channel for transport failures.
        """
        self.config = config
        self._client = client
        self._alerts = alerts
        self._breaker = CircuitBreaker(
            name=client.name,
            failure_threshold=config.failure_threshold,
            cooldown_seconds=config.cooldown_seconds,
            ignore=(ClassifierResponseError,),
        )

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._breaker

    def precheck(self, text: str) -> Optional[Verdict]:
        """Apply the local rules.

        Returns:
            A rejection if the page is too short or is a bot-challenge
            page, otherwise None (the AI should decide).
        """
        if len(text) < self.config.min_text_chars:
            logger.info("Page text too short (%d chars), treating as blocked", len(text))
            return Verdict.rejected(BLOCKED_REASON)

        for marker in self.config.challenge_markers:
            if marker in text:
                logger.info("Challenge marker %r found, treating as blocked", marker)
                return Verdict.rejected(BLOCKED_REASON)
        return None

    async def classify(self, text: str, filters: Mapping[str, Any]) -> Verdict:
        """Judge a vacancy page.

        Args:
            text: Full visible text of the page.
            filters: The user's filter set, passed to the AI unchanged.

        Returns:
            A Verdict; never raises for provider or parsing failures.
        """
        blocked = self.precheck(text)
        if blocked is not None:
            return blocked

        if not self._client.enabled:
            return Verdict.rejected(DISABLED_REASON)

        try:
            prompt = build_classification_prompt(text[: self.config.max_text_chars], filters)
            raw = await self._breaker.call(self._client.generate, prompt)
            verdict = parse_verdict(raw)
        except CircuitOpenError as e:
            logger.warning("Skipping AI call: %s", e)
            return Verdict.rejected(UNAVAILABLE_REASON)
        except ClassifierTransportError as e:
            if self._alerts is not None:
                await self._alerts.report("Classification Error", e)
            return Verdict.rejected(e.reason)
        except ClassifierError as e:
            logger.warning("AI answer unusable: %s", e)
            return Verdict.rejected(e.reason)
        except Exception as e:
            logger.error("Unexpected classification failure: %s", e, exc_info=True)
            if self._alerts is not None:
                await self._alerts.report("Classification Error", e)
            return Verdict.rejected(ERROR_REASON)

        logger.info(
            "Verdict: valid=%s reason=%s", verdict.valid, (verdict.reason or "-")[:80],
        )
        return verdict
