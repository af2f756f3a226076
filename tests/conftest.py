"""Shared fixtures: small configs, a temporary store, and in-memory fakes
for the browser, the classifier and the operator channel."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import pytest

from vacancy_bot.config import (
    BrowserConfig,
    ClassifierConfig,
    GroqConfig,
    SearchConfig,
)
from vacancy_bot.database.db import Database
from vacancy_bot.database.models import Candidate, Verdict
from vacancy_bot.database.store import SavedVacancyStore
from vacancy_bot.scraper.fetcher import NavigationError, PageContent, SearchPage


# ---------------------------------------------------------------------------
# Configs
# ---------------------------------------------------------------------------


@pytest.fixture
def groq_config() -> GroqConfig:
    return GroqConfig(
        api_key="gsk-test",
        model="llama-3.3-70b-versatile",
        max_tokens=1024,
        temperature=0.2,
        rpm_limit=30,
    )


@pytest.fixture
def classifier_config() -> ClassifierConfig:
    return ClassifierConfig(
        min_text_chars=200,
        max_text_chars=4000,
        challenge_markers=("Cloudflare", "Verify you are human"),
        failure_threshold=5,
        cooldown_seconds=300,
    )


@pytest.fixture
def browser_config(tmp_path: Path) -> BrowserConfig:
    return BrowserConfig(
        headless=True,
        user_agent="test-agent",
        viewport_width=1280,
        viewport_height=800,
        search_timeout_ms=45000,
        detail_timeout_ms=20000,
        wait_until="domcontentloaded",
        search_settle_seconds=0,
        detail_settle_seconds=0,
        link_delay_seconds=0,
        debug_screenshot_path=str(tmp_path / "debug_error.png"),
    )


@pytest.fixture
def search_config() -> SearchConfig:
    return SearchConfig(
        allowed_domains=("work.ua", "robota.ua"),
        max_links=10,
        progress_every=2,
        default_searches=100,
    )


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def db(tmp_path: Path):
    database = Database(str(tmp_path / "test.db"))
    await database.initialize()
    yield database
    await database.close()


@pytest.fixture
async def store(db: Database) -> SavedVacancyStore:
    return SavedVacancyStore(db, default_searches=3)


def make_candidate(n: int) -> Candidate:
    return Candidate(
        title=f"Python Developer {n}",
        url=f"https://www.work.ua/jobs/{1000000 + n}/",
        summary=f"Summary {n}",
    )


@pytest.fixture
def candidates() -> list[Candidate]:
    return [make_candidate(i) for i in range(1, 4)]


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


def search_html(*hrefs: str) -> str:
    anchors = "".join(f'<a href="{h}">link</a>' for h in hrefs)
    return f"<html><body><nav><a href='/'>Home</a></nav>{anchors}</body></html>"


class FakeFetcher:
    """PageFetcher backed by dicts; records what was opened."""

    def __init__(
        self,
        search: Optional[str] = None,
        pages: Optional[dict[str, PageContent]] = None,
        search_error: Optional[Exception] = None,
        failing: Optional[dict[str, Exception]] = None,
    ) -> None:
        self.search = search or search_html()
        self.pages = pages or {}
        self.search_error = search_error
        self.failing = failing or {}
        self.fetched: list[str] = []
        self.captured: list[Path] = []
        self.entered = False
        self.closed = False

    async def __aenter__(self) -> "FakeFetcher":
        self.entered = True
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.closed = True

    async def open_search(self, url: str) -> SearchPage:
        if self.search_error is not None:
            raise self.search_error
        return SearchPage(url=url, html=self.search)

    async def fetch(self, url: str) -> PageContent:
        self.fetched.append(url)
        if url in self.failing:
            raise self.failing[url]
        if url not in self.pages:
            raise NavigationError(url, "not found")
        return self.pages[url]

    async def capture(self, path: Path) -> Optional[Path]:
        path = Path(path)
        path.write_bytes(b"\x89PNG fake")
        self.captured.append(path)
        return path


class FakeClassifier:
    """Returns a fixed verdict per page text; records every call."""

    def __init__(self, verdicts: dict[str, Verdict]) -> None:
        self.verdicts = verdicts
        self.calls: list[tuple[str, dict]] = []

    async def classify(self, text: str, filters: Any) -> Verdict:
        self.calls.append((text, dict(filters)))
        return self.verdicts.get(text, Verdict.rejected("unknown page"))


class FakeAlerts:
    """Operator channel that records reports."""

    def __init__(self) -> None:
        self.reports: list[tuple[str, Any, Optional[Path]]] = []

    async def report(self, context: str, error: Any, photo: Optional[Path] = None) -> None:
        self.reports.append((context, error, photo))


@pytest.fixture
def alerts() -> FakeAlerts:
    return FakeAlerts()


class FakeResponse:
    """aiohttp response with a canned status and JSON body."""

    def __init__(self, status: int = 200, body: Any = None, error: Optional[Exception] = None) -> None:
        self.status = status
        self.body = body
        self.error = error

    async def json(self, content_type: Any = None) -> Any:
        if self.error is not None:
            raise self.error
        return self.body

    async def text(self) -> str:
        return str(self.body)


class FakeSession:
    """Stands in for aiohttp.ClientSession; ``post`` is an async context manager."""

    def __init__(self, response: FakeResponse) -> None:
        self.response = response
        self.posted: list[Any] = []

    def post(self, url: str, json: Any = None) -> "FakeSession":
        self.posted.append(json)
        return self

    async def __aenter__(self) -> FakeResponse:
        return self.response

    async def __aexit__(self, *exc: object) -> bool:
        return False
