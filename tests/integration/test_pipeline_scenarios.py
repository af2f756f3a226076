"""End-to-end pipeline runs with an in-memory browser and classifier."""

from __future__ import annotations

import pytest

from vacancy_bot.database.models import SearchRequest, Verdict
from vacancy_bot.review.session import SessionRegistry
from vacancy_bot.scraper.fetcher import NavigationError, PageContent
from vacancy_bot.scraper.pipeline import (
    PROGRESS_OPENING,
    RunOutcome,
    ScrapePipeline,
)

from conftest import FakeAlerts, FakeClassifier, FakeFetcher, search_html

SEARCH_URL = "https://www.work.ua/jobs-python/"
FILTERS = {"salary_only": True}


def _page(n: int) -> PageContent:
    return PageContent(
        url=f"https://www.work.ua/jobs/{5000000 + n}/",
        title=f"Vacancy {n}",
        body_text=f"text of vacancy {n}",
    )


def _pipeline(fetcher, classifier, browser_config, search_config, alerts) -> ScrapePipeline:
    return ScrapePipeline(
        classifier,
        browser_config,
        search_config,
        alerts=alerts,
        fetcher_factory=lambda: fetcher,
    )


@pytest.fixture
def three_pages():
    return {p.url: p for p in (_page(1), _page(2), _page(3))}


class TestScenarios:
    async def test_no_links_found_alerts_once_with_screenshot(
        self, browser_config, search_config, alerts: FakeAlerts,
    ) -> None:
        fetcher = FakeFetcher(search=search_html("/about", "/contacts"))
        classifier = FakeClassifier({})

        result = await _pipeline(fetcher, classifier, browser_config, search_config, alerts).run(
            SEARCH_URL, FILTERS,
        )

        assert result.outcome is RunOutcome.NO_LINKS_FOUND
        assert result.candidates == []
        assert len(alerts.reports) == 1
        context, _, photo = alerts.reports[0]
        assert context == "Zero Vacancies Found"
        assert photo is not None and photo == result.screenshot_path
        assert photo.exists()
        assert classifier.calls == []
        assert fetcher.closed

    async def test_two_of_three_accepted_in_link_order(
        self, browser_config, search_config, alerts, three_pages,
    ) -> None:
        urls = list(three_pages)
        fetcher = FakeFetcher(search=search_html(*urls), pages=three_pages)
        classifier = FakeClassifier({
            "text of vacancy 1": Verdict(valid=True, reason="ok", summary="First"),
            "text of vacancy 2": Verdict(valid=False, reason="office only"),
            "text of vacancy 3": Verdict(valid=True, reason="ok", summary={"position": "Dev", "salary": "3000$"}),
        })

        result = await _pipeline(fetcher, classifier, browser_config, search_config, alerts).run(
            SEARCH_URL, FILTERS,
        )

        assert result.outcome is RunOutcome.COMPLETED
        assert [c.url for c in result.candidates] == [urls[0], urls[2]]
        assert [c.title for c in result.candidates] == ["Vacancy 1", "Vacancy 3"]
        assert result.candidates[1].summary == "🎯 Dev\n💰 3000$"
        assert result.rejected == 1
        assert fetcher.fetched == urls
        assert all(filters == FILTERS for _, filters in classifier.calls)
        assert alerts.reports == []
        assert fetcher.closed

    async def test_accepted_vacancies_reach_review_in_order(
        self, browser_config, search_config, alerts, three_pages, store,
    ) -> None:
        urls = list(three_pages)
        fetcher = FakeFetcher(search=search_html(*urls), pages=three_pages)
        classifier = FakeClassifier({
            "text of vacancy 1": Verdict(valid=True, summary="First"),
            "text of vacancy 3": Verdict(valid=True, summary="Third"),
        })
        registry = SessionRegistry()
        session = registry.begin(7, SearchRequest(url=SEARCH_URL, filters=FILTERS))

        result = await _pipeline(fetcher, classifier, browser_config, search_config, alerts).run(
            session.request.url, session.request.filters,
        )
        review = registry.attach_results(session, result.candidates)

        assert review is not None and len(review) == 2
        assert review.progress_label == "[1/2]"
        assert review.current().url == urls[0]
        await review.accept(store, 7)
        assert review.current().url == urls[2]
        review.reject()
        assert review.is_exhausted
        assert [v.url for v in await store.list(7)] == [urls[0]]

    async def test_search_page_unreachable(self, browser_config, search_config, alerts) -> None:
        fetcher = FakeFetcher(search_error=NavigationError(SEARCH_URL, "timed out"))
        result = await _pipeline(
            fetcher, FakeClassifier({}), browser_config, search_config, alerts,
        ).run(SEARCH_URL, FILTERS)

        assert result.outcome is RunOutcome.SITE_UNREACHABLE
        assert "timed out" in result.error
        assert alerts.reports == []
        assert fetcher.closed

    async def test_failing_link_is_skipped(
        self, browser_config, search_config, alerts, three_pages,
    ) -> None:
        urls = list(three_pages)
        fetcher = FakeFetcher(
            search=search_html(*urls),
            pages=three_pages,
            failing={urls[0]: NavigationError(urls[0], "timeout"), urls[1]: RuntimeError("tab crashed")},
        )
        classifier = FakeClassifier({
            "text of vacancy 3": Verdict(valid=True, summary="ok"),
        })

        result = await _pipeline(fetcher, classifier, browser_config, search_config, alerts).run(
            SEARCH_URL, FILTERS,
        )

        assert result.outcome is RunOutcome.COMPLETED
        assert result.failed_links == urls[:2]
        assert [c.url for c in result.candidates] == [urls[2]]
        assert result.processed == 3

    async def test_unexpected_error_fails_run_and_closes_browser(
        self, browser_config, search_config, alerts,
    ) -> None:
        fetcher = FakeFetcher(search_error=RuntimeError("browser crashed"))
        result = await _pipeline(
            fetcher, FakeClassifier({}), browser_config, search_config, alerts,
        ).run(SEARCH_URL, FILTERS)

        assert result.outcome is RunOutcome.FAILED
        assert result.error == "browser crashed"
        assert [r[0] for r in alerts.reports] == ["Critical Browser Error"]
        assert fetcher.closed

    async def test_link_limit_applies(self, browser_config, search_config, alerts) -> None:
        pages = {p.url: p for p in (_page(n) for n in range(1, 16))}
        fetcher = FakeFetcher(search=search_html(*pages), pages=pages)

        result = await _pipeline(
            fetcher, FakeClassifier({}), browser_config, search_config, alerts,
        ).run(SEARCH_URL, FILTERS)

        assert len(result.links) == 10
        assert fetcher.fetched == list(pages)[:10]
        assert result.rejected == 10


class TestProgress:
    async def test_coarse_progress_messages(
        self, browser_config, search_config, alerts, three_pages,
    ) -> None:
        fetcher = FakeFetcher(search=search_html(*three_pages), pages=three_pages)
        messages: list[str] = []

        async def progress(text: str) -> None:
            messages.append(text)

        await _pipeline(
            fetcher, FakeClassifier({}), browser_config, search_config, alerts,
        ).run(SEARCH_URL, FILTERS, progress=progress)

        assert messages == [
            PROGRESS_OPENING,
            "⏳ Чекаю список вакансій...",
            "🔎 Знайдено 3. Аналізую...",
            "⚙️ Опрацьовано 2 з 3...",
        ]

    async def test_failing_progress_callback_does_not_stop_run(
        self, browser_config, search_config, alerts, three_pages,
    ) -> None:
        fetcher = FakeFetcher(search=search_html(*three_pages), pages=three_pages)

        async def progress(text: str) -> None:
            raise RuntimeError("message to edit not found")

        result = await _pipeline(
            fetcher, FakeClassifier({}), browser_config, search_config, alerts,
        ).run(SEARCH_URL, FILTERS, progress=progress)

        assert result.outcome is RunOutcome.COMPLETED
        assert result.rejected == 3
