"""Vacancy Bot — Live Pipeline Check.

Runs one search against a real job board without Telegram:
  1. Loads real config
  2. Opens the search page in the browser and extracts links
  3. Classifies each link with Groq (if GROQ_API_KEY is set)
  4. Prints the outcome and every accepted candidate

Run: python scripts/check_pipeline.py "https://www.work.ua/jobs-python/" [--remote] [--salary]
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Placeholders for the Telegram section, unused here
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "test-token")
os.environ.setdefault("WEB_APP_URL", "https://example.invalid")

from vacancy_bot.classifier.classifier import Classifier
from vacancy_bot.classifier.groq_client import GroqClient
from vacancy_bot.config import load_config
from vacancy_bot.scraper.links import is_supported_search_url
from vacancy_bot.scraper.pipeline import ScrapePipeline
from vacancy_bot.utils.logger import get_logger

logger = get_logger(__name__)


class _LogAlerts:
    """Operator channel that only logs."""

    async def report(self, context, error, photo=None) -> None:
        logger.warning("ALERT %s: %s (photo=%s)", context, error, photo)


async def _progress(text: str) -> None:
    logger.info("  » %s", text)


async def check(url: str, filters: dict) -> int:
    config = load_config()

    if not is_supported_search_url(url, config.search.allowed_domains):
        logger.error("Unsupported domain: %s", url)
        return 2

    alerts = _LogAlerts()
    async with GroqClient(config.groq) as groq:
        classifier = Classifier(groq, config.classifier, alerts=alerts)
        pipeline = ScrapePipeline(classifier, config.browser, config.search, alerts=alerts)
        result = await pipeline.run(url, filters, progress=_progress)

    logger.info("═" * 70)
    logger.info("Outcome:   %s", result.outcome.value)
    logger.info("Links:     %d", len(result.links))
    logger.info("Accepted:  %d", len(result.candidates))
    logger.info("Rejected:  %d", result.rejected)
    logger.info("Failed:    %d", len(result.failed_links))
    logger.info("Time:      %.1fs", result.duration_seconds)
    if result.screenshot_path:
        logger.info("Screenshot: %s", result.screenshot_path)
    if result.error:
        logger.info("Error:     %s", result.error)

    for i, candidate in enumerate(result.candidates, 1):
        logger.info("  ── #%d %s", i, candidate.title)
        logger.info("     %s", candidate.url)
        for line in candidate.summary.splitlines():
            logger.info("     %s", line)

    return 0 if result.outcome.value == "completed" else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Run one live search without Telegram")
    parser.add_argument("url", help="work.ua / robota.ua search URL")
    parser.add_argument("--remote", action="store_true", help="remote_only filter")
    parser.add_argument("--salary", action="store_true", help="salary_only filter")
    args = parser.parse_args()

    filters = {"remote_only": args.remote, "salary_only": args.salary}
    sys.exit(asyncio.run(check(args.url, filters)))


if __name__ == "__main__":
    main()
