"""Vacancy Bot — Scrape Pipeline.

Runs one search end to end: open the search page, extract vacancy
links, then visit and classify each link in turn. Accepted listings
become Candidates for the review session.

States: navigating → extracting links → (no links found | iterating)
→ completed, with site unreachable and failed as the error exits. The
browser is released on every path.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional

from vacancy_bot.classifier.classifier import VacancyClassifier
from vacancy_bot.classifier.response_parser import format_summary
from vacancy_bot.config import BrowserConfig, SearchConfig
from vacancy_bot.database.models import Candidate
from vacancy_bot.scraper.fetcher import BrowserFetcher, NavigationError, PageFetcher
from vacancy_bot.scraper.links import collect_hrefs, extract_job_links
from vacancy_bot.utils.logger import get_logger
from vacancy_bot.utils.rate_limiter import HostPacer

if TYPE_CHECKING:
    from vacancy_bot.notifier.admin import OperatorAlerts

logger = get_logger(__name__)

ProgressCallback = Callable[[str], Awaitable[Any]]
FetcherFactory = Callable[[], PageFetcher]

# ── Progress messages shown to the user ──────────────────
PROGRESS_OPENING = "🔎 Заходжу на сайт..."
PROGRESS_WAITING = "⏳ Чекаю список вакансій..."
PROGRESS_FOUND = "🔎 Знайдено {total}. Аналізую..."
PROGRESS_PROCESSED = "⚙️ Опрацьовано {done} з {total}..."


class RunOutcome(str, Enum):
    """How a pipeline run ended."""

    COMPLETED = "completed"
    NO_LINKS_FOUND = "no_links_found"
    SITE_UNREACHABLE = "site_unreachable"
    FAILED = "failed"


@dataclass
class PipelineResult:
    """Everything a run produced.

    Attributes:
        search_url: The search page that was scraped.
        outcome: Terminal state of the run.
        links: Vacancy links found on the search page.
        candidates: Accepted listings, in link order.
        rejected: Number of links the classifier rejected.
        failed_links: Links skipped because loading them failed.
        screenshot_path: Diagnostic capture for the no-links case.
        error: Error text for the failure outcomes.
        duration_seconds: Wall time of the run.
    """

    search_url: str
    outcome: RunOutcome = RunOutcome.COMPLETED
    links: list[str] = field(default_factory=list)
    candidates: list[Candidate] = field(default_factory=list)
    rejected: int = 0
    failed_links: list[str] = field(default_factory=list)
    screenshot_path: Optional[Path] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def processed(self) -> int:
        return len(self.candidates) + self.rejected + len(self.failed_links)


class ScrapePipeline:
    """Search page → links → per-link classification.

    Links are processed sequentially, with per-host pacing between
    navigations. One failing link is logged and skipped; an unexpected
    error aborts the run and alerts the operator.
    """

    def __init__(
        self,
        classifier: VacancyClassifier,
        browser_config: BrowserConfig,
        search_config: SearchConfig,
        alerts: Optional["OperatorAlerts"] = None,
        fetcher_factory: Optional[FetcherFactory] = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            classifier: Judges each vacancy page.
            browser_config: Pacing delay and screenshot location.
            search_config: Link limit and progress frequency.
            alerts: Operator channel for anomalies.
            fetcher_factory: Builds a fresh PageFetcher per run; defaults
                to a Playwright BrowserFetcher.
        """
        self._classifier = classifier
        self._browser_config = browser_config
        self._search_config = search_config
        self._alerts = alerts
        self._fetcher_factory = fetcher_factory or (lambda: BrowserFetcher(browser_config))

    async def run(
        self,
        search_url: str,
        filters: Mapping[str, Any],
        progress: Optional[ProgressCallback] = None,
    ) -> PipelineResult:
        """Scrape and classify one search.

        Args:
            search_url: Job-board search results URL.
            filters: User criteria, passed unchanged to the classifier.
            progress: Optional coroutine receiving coarse status texts.

        Returns:
            PipelineResult; failures are reported through its outcome.
        """
        start_time = time.monotonic()
        result = PipelineResult(search_url=search_url)
        pacer = HostPacer(self._browser_config.link_delay_seconds)

        logger.info("═══ Search Run Starting: %s ═══", search_url)

        try:
            async with self._fetcher_factory() as fetcher:
                await self._run_with(fetcher, pacer, result, filters, progress)
        except Exception as e:
            logger.exception("Search run failed for %s", search_url)
            result.outcome = RunOutcome.FAILED
            result.error = str(e)
            await self._alert("Critical Browser Error", e)
        finally:
            result.duration_seconds = round(time.monotonic() - start_time, 1)

        logger.info(
            "═══ Search Run %s ═══ Links: %d | Accepted: %d | Rejected: %d | Failed: %d | Time: %.1fs",
            result.outcome.value, len(result.links), len(result.candidates),
            result.rejected, len(result.failed_links), result.duration_seconds,
        )
        return result

    async def _run_with(
        self,
        fetcher: PageFetcher,
        pacer: HostPacer,
        result: PipelineResult,
        filters: Mapping[str, Any],
        progress: Optional[ProgressCallback],
    ) -> None:
        # ── Navigating ───────────────────────────────────
        await self._report(progress, PROGRESS_OPENING)
        await pacer.wait(result.search_url)
        try:
            search = await fetcher.open_search(result.search_url)
        except NavigationError as e:
            logger.warning("Search page unreachable: %s", e)
            result.outcome = RunOutcome.SITE_UNREACHABLE
            result.error = str(e)
            return

        # ── Extracting links ─────────────────────────────
        await self._report(progress, PROGRESS_WAITING)
        hrefs = collect_hrefs(search.html, search.url)
        result.links = extract_job_links(hrefs, limit=self._search_config.max_links)
        logger.info("Found %d vacancy links among %d anchors", len(result.links), len(hrefs))

        if not result.links:
            result.outcome = RunOutcome.NO_LINKS_FOUND
            result.screenshot_path = await fetcher.capture(
                Path(self._browser_config.debug_screenshot_path),
            )
            await self._alert(
                "Zero Vacancies Found",
                f"No vacancy links on {result.search_url}",
                photo=result.screenshot_path,
            )
            return

        # ── Iterating ────────────────────────────────────
        total = len(result.links)
        await self._report(progress, PROGRESS_FOUND.format(total=total))

        for i, link in enumerate(result.links, 1):
            logger.info("  [%d/%d] %s", i, total, link)
            try:
                await pacer.wait(link)
                page = await fetcher.fetch(link)
                verdict = await self._classifier.classify(page.body_text, filters)
            except NavigationError as e:
                logger.warning("  Skipping %s: %s", link, e)
                result.failed_links.append(link)
            except Exception as e:
                logger.error("  Error processing %s: %s", link, e)
                result.failed_links.append(link)
            else:
                if verdict.valid:
                    result.candidates.append(Candidate(
                        title=page.title or link,
                        url=link,
                        summary=format_summary(verdict.summary),
                    ))
                    logger.info("  ✅ accepted: %s", page.title or link)
                else:
                    result.rejected += 1
                    logger.info("  ❌ rejected: %s", verdict.reason or "-")

            every = self._search_config.progress_every
            if every > 0 and i % every == 0 and i < total:
                await self._report(progress, PROGRESS_PROCESSED.format(done=i, total=total))

        result.outcome = RunOutcome.COMPLETED

    @staticmethod
    async def _report(progress: Optional[ProgressCallback], text: str) -> None:
        """Send a progress text; a failing callback never stops the run."""
        if progress is None:
            return
        try:
            await progress(text)
        except Exception as e:
            logger.debug("Progress update failed: %s", e)

    async def _alert(
        self, context: str, error: Any, photo: Optional[Path] = None,
    ) -> None:
        if self._alerts is None:
            return
        await self._alerts.report(context, error, photo=photo)
