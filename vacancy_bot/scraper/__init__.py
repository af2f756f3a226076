"""Vacancy Bot — Scraper Package.

Browser-based scraping of work.ua / robota.ua search results.
Components:
  - links: anchor collection and the vacancy link heuristic
  - BrowserFetcher: Playwright page loader behind the PageFetcher protocol
  - ScrapePipeline: search page → links → per-link classification
"""

from vacancy_bot.scraper.links import (
    collect_hrefs,
    extract_job_links,
    is_supported_search_url,
)
from vacancy_bot.scraper.fetcher import (
    BrowserFetcher,
    NavigationError,
    PageContent,
    PageFetcher,
    SearchPage,
)
from vacancy_bot.scraper.pipeline import PipelineResult, RunOutcome, ScrapePipeline

__all__ = [
    "collect_hrefs",
    "extract_job_links",
    "is_supported_search_url",
    "BrowserFetcher",
    "NavigationError",
    "PageContent",
    "PageFetcher",
    "SearchPage",
    "PipelineResult",
    "RunOutcome",
    "ScrapePipeline",
]
