"""Vacancy Bot — Groq AI Client.

Async client for the Groq chat completions API (OpenAI-compatible).
Sends one prompt, asks for a JSON object back, and returns it parsed.

Uses aiohttp for HTTP calls and AsyncRateLimiter for RPM throttling.
Failures raise ClassifierError subclasses so the caller can turn them
into a soft verdict with the right reason.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any, Optional

import aiohttp

from vacancy_bot.config import GroqConfig
from vacancy_bot.utils.logger import get_logger
from vacancy_bot.utils.rate_limiter import AsyncRateLimiter

logger = get_logger(__name__)

_API_URL = "https://api.groq.com/openai/v1/chat/completions"

_SYSTEM_PROMPT = (
    "You are an HR assistant that screens job vacancies. "
    "Always respond with valid JSON only, no markdown."
)


class ClassifierError(Exception):
    """Base class for failures talking to the AI provider.

    Attributes:
        reason: Short user-facing cause used as the verdict reason.
    """

    reason = "AI error"

    def __init__(self, message: str, reason: Optional[str] = None) -> None:
        super().__init__(message)
        if reason is not None:
            self.reason = reason


class ClassifierTransportError(ClassifierError):
    """Network failure, timeout, or non-200 HTTP status."""

    reason = "Network Error"


class ClassifierResponseError(ClassifierError):
    """The provider answered but the content was empty or not JSON."""

    reason = "JSON Error"


def _clean_json_text(text: str) -> str:
    """Strip markdown fences and whitespace around a JSON answer."""
    text = text.strip()
    text = re.sub(r"^```(?:json)?\s*\n?", "", text)
    text = re.sub(r"\n?```\s*$", "", text)
    return text.strip()


def parse_completion(data: Any) -> dict[str, Any]:
    """Extract the JSON object from a chat completions response body.

    Args:
        data: Decoded response body.

    Returns:
        The model's answer parsed as a dict.

    Raises:
        ClassifierResponseError: If there is no content or it is not a
            JSON object.
    """
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise ClassifierResponseError(
            f"Unexpected completion structure: {e}", reason="Пуста відповідь AI",
        ) from e

    if not content or not str(content).strip():
        raise ClassifierResponseError("Completion content is empty", reason="Пуста відповідь AI")

    try:
        result = json.loads(_clean_json_text(str(content)))
    except json.JSONDecodeError as e:
        logger.debug("Groq raw text: %s", str(content)[:500])
        raise ClassifierResponseError(f"Completion is not JSON: {e}") from e

    if not isinstance(result, dict):
        raise ClassifierResponseError(
            f"Completion JSON is {type(result).__name__}, expected object",
        )
    return result


class GroqClient:
    """Async client for the Groq API.

    Use as an async context manager so the aiohttp session is closed.

    Attributes:
        config: GroqConfig with api_key, model, temperature, etc.
        name: Provider name ('groq').
    """

    name = "groq"

    def __init__(self, config: GroqConfig) -> None:
        self.config = config
        self._rate_limiter = AsyncRateLimiter(
            max_calls=config.rpm_limit,
            period_seconds=60.0,
        )
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def enabled(self) -> bool:
        """False when no API key is configured."""
        return bool(self.config.api_key)

    async def __aenter__(self) -> "GroqClient":
        self._session = aiohttp.ClientSession(
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
        )
        logger.debug("Groq client session created")
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
            logger.debug("Groq client session closed")

    async def generate(self, prompt: str) -> dict[str, Any]:
        """Send a prompt and return the model's JSON answer.

        Args:
            prompt: The full user prompt.

        Returns:
            Parsed JSON object from the model.

        Raises:
            ClassifierTransportError: On network errors or non-200 status.
            ClassifierResponseError: On empty or non-JSON content.
        """
        if self._session is None:
            raise ClassifierTransportError(
                "Groq session not created — use async with", reason="AI not ready",
            )

        await self._rate_limiter.acquire()

        body = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "response_format": {"type": "json_object"},
        }

        try:
            async with self._session.post(_API_URL, json=body) as resp:
                if resp.status != 200:
                    error_body = await resp.text()
                    logger.error("Groq HTTP %d: %s", resp.status, error_body[:300])
                    reason = "AI rate limited" if resp.status == 429 else "Network Error"
                    raise ClassifierTransportError(
                        f"Groq returned HTTP {resp.status}", reason=reason,
                    )
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Groq network error: %s", e)
            raise ClassifierTransportError(f"Groq request failed: {e}") from e
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError are both ValueError
            raise ClassifierResponseError(f"Groq body is not JSON: {e}") from e

        result = parse_completion(data)

        usage = data.get("usage") if isinstance(data, dict) else None
        tokens = usage.get("total_tokens") if isinstance(usage, dict) else None
        logger.info("Groq response OK: %s tokens used", tokens or 0)
        return result
