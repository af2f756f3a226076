"""Tests for the Telegram handlers with mocked Update/Bot objects."""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram import Message

from vacancy_bot.database.models import AppendResult, SearchRequest, User
from vacancy_bot.notifier.commands import CommandHandler
from vacancy_bot.notifier.formatters import (
    ANSWER_DB_ERROR,
    ANSWER_DUPLICATE,
    ANSWER_SAVED,
    ANSWER_SKIPPED,
    MSG_BAD_DOMAIN,
    MSG_BAD_WEB_APP_DATA,
    MSG_CLEARED,
    MSG_CRITICAL,
    MSG_NO_ACTIVE_REVIEW,
    MSG_NO_SEARCHES_LEFT,
    MSG_NOTHING_PASSED,
    MSG_SEARCH_STARTED,
    MSG_WELCOME,
    REVIEW_FINISHED,
)
from vacancy_bot.review.session import SessionRegistry
from vacancy_bot.scraper.pipeline import PipelineResult, RunOutcome

from conftest import FakeAlerts

USER_ID = 1
CHAT_ID = 100


@pytest.fixture
def app(search_config):
    store = AsyncMock()
    store.consume_search.return_value = True
    store.append.return_value = AppendResult(inserted=True)
    store.register_user.return_value = User(telegram_id=USER_ID, first_name="Olena", searches_left=7)
    return SimpleNamespace(
        config=SimpleNamespace(
            telegram=SimpleNamespace(web_app_url="https://app.example.com"),
            search=search_config,
        ),
        store=store,
        sessions=SessionRegistry(),
        pipeline=SimpleNamespace(run=AsyncMock()),
        alerts=FakeAlerts(),
    )


@pytest.fixture
def handler(app) -> CommandHandler:
    return CommandHandler(app)


@pytest.fixture
def bot() -> MagicMock:
    bot = MagicMock()
    bot.send_message = AsyncMock()
    bot.send_photo = AsyncMock()
    bot.edit_message_text = AsyncMock()
    bot.delete_message = AsyncMock()
    return bot


@pytest.fixture
def context(bot) -> MagicMock:
    return MagicMock(bot=bot)


def _message_update(web_app_data: str = "") -> MagicMock:
    update = MagicMock()
    update.effective_user.id = USER_ID
    update.effective_user.first_name = "Olena"
    update.effective_chat.id = CHAT_ID
    message = update.effective_message
    message.chat_id = CHAT_ID
    message.reply_text = AsyncMock(return_value=MagicMock(message_id=99))
    message.web_app_data.data = web_app_data
    return update


def _callback_update() -> MagicMock:
    update = MagicMock()
    update.effective_user.id = USER_ID
    update.effective_chat.id = CHAT_ID
    update.callback_query.answer = AsyncMock()
    update.callback_query.message = MagicMock(spec=Message)
    return update


async def _drain(handler: CommandHandler) -> None:
    await asyncio.gather(*list(handler._tasks))


class TestWebAppData:
    async def test_starts_search_and_shows_first_card(
        self, handler, app, context, bot, candidates,
    ) -> None:
        app.pipeline.run.return_value = PipelineResult(
            search_url="https://www.work.ua/jobs-python/", candidates=candidates,
        )
        update = _message_update(json.dumps({
            "url": "https://www.work.ua/jobs-python/", "remote_only": True,
        }))

        await handler._on_web_app_data(update, context)
        await _drain(handler)

        update.effective_message.reply_text.assert_awaited_once_with(MSG_SEARCH_STARTED)
        url, filters = app.pipeline.run.await_args.args
        assert url == "https://www.work.ua/jobs-python/"
        assert dict(filters) == {"remote_only": True}
        bot.delete_message.assert_awaited_once_with(chat_id=CHAT_ID, message_id=99)

        texts = [c.kwargs["text"] for c in bot.send_message.await_args_list]
        assert texts[0] == "🎉 Знайдено 3 релевантних вакансій!"
        assert texts[1].startswith("[1/3] <b>Python Developer 1</b>")
        review = app.sessions.get(USER_ID).review
        assert review.started

    async def test_nothing_passed(self, handler, app, context, bot) -> None:
        app.pipeline.run.return_value = PipelineResult(search_url="https://robota.ua/x")
        await handler._on_web_app_data(_message_update('{"url": "https://robota.ua/x"}'), context)
        await _drain(handler)
        bot.send_message.assert_awaited_once_with(chat_id=CHAT_ID, text=MSG_NOTHING_PASSED)
        assert app.sessions.get(USER_ID) is None

    async def test_failed_run_shows_no_partial_cards(self, handler, app, context, bot, candidates) -> None:
        app.pipeline.run.return_value = PipelineResult(
            search_url="https://robota.ua/x",
            outcome=RunOutcome.FAILED,
            candidates=candidates[:1],
            error="browser crashed",
        )
        await handler._on_web_app_data(_message_update('{"url": "https://robota.ua/x"}'), context)
        await _drain(handler)

        bot.send_message.assert_awaited_once_with(chat_id=CHAT_ID, text=MSG_CRITICAL)
        assert app.sessions.get(USER_ID) is None

    async def test_no_links_sends_screenshot(self, handler, app, context, bot, tmp_path) -> None:
        shot = tmp_path / "debug_error.png"
        app.pipeline.run.return_value = PipelineResult(
            search_url="https://robota.ua/x",
            outcome=RunOutcome.NO_LINKS_FOUND,
            screenshot_path=shot,
        )
        await handler._on_web_app_data(_message_update('{"url": "https://robota.ua/x"}'), context)
        await _drain(handler)
        bot.send_photo.assert_awaited_once()
        assert bot.send_photo.await_args.kwargs["photo"] == shot

    async def test_invalid_json(self, handler, app, context) -> None:
        update = _message_update("{broken")
        await handler._on_web_app_data(update, context)
        update.effective_message.reply_text.assert_awaited_once_with(MSG_BAD_WEB_APP_DATA)
        app.pipeline.run.assert_not_called()

    async def test_unsupported_domain(self, handler, app, context) -> None:
        update = _message_update('{"url": "https://djinni.co/jobs/"}')
        await handler._on_web_app_data(update, context)
        update.effective_message.reply_text.assert_awaited_once_with(MSG_BAD_DOMAIN)
        app.store.consume_search.assert_not_called()
        assert app.sessions.get(USER_ID) is None

    async def test_quota_exhausted(self, handler, app, context) -> None:
        app.store.consume_search.return_value = False
        update = _message_update('{"url": "https://www.work.ua/jobs/"}')
        await handler._on_web_app_data(update, context)
        update.effective_message.reply_text.assert_awaited_once_with(MSG_NO_SEARCHES_LEFT)
        assert handler.active_searches == 0

    async def test_superseded_search_results_are_dropped(
        self, handler, app, context, bot, candidates,
    ) -> None:
        app.pipeline.run.return_value = PipelineResult(search_url="https://robota.ua/x", candidates=candidates)
        session = app.sessions.begin(USER_ID, SearchRequest(url="https://robota.ua/x"))
        app.sessions.begin(USER_ID, SearchRequest(url="https://robota.ua/y"))

        await handler.start_search(bot, CHAT_ID, session, 99)

        bot.delete_message.assert_awaited_once()
        bot.send_message.assert_not_called()

    async def test_pipeline_crash_alerts_and_tells_user(self, handler, app, context, bot) -> None:
        app.pipeline.run.side_effect = RuntimeError("boom")
        await handler._on_web_app_data(_message_update('{"url": "https://robota.ua/x"}'), context)
        await _drain(handler)
        assert app.alerts.reports[0][0] == "Search Task Error"
        bot.send_message.assert_awaited_once()

    async def test_shutdown_cancels_running_searches(self, handler, app, context) -> None:
        started = asyncio.Event()

        async def slow_run(*args, **kwargs):
            started.set()
            await asyncio.sleep(3600)

        app.pipeline.run.side_effect = slow_run
        await handler._on_web_app_data(_message_update('{"url": "https://robota.ua/x"}'), context)
        await started.wait()
        task = next(iter(handler._tasks))

        await handler.shutdown()

        assert task.cancelled()
        assert handler.active_searches == 0


class TestReviewCallbacks:
    @pytest.fixture
    def review(self, app, candidates):
        session = app.sessions.begin(USER_ID, SearchRequest(url="https://robota.ua/x"))
        review = app.sessions.attach_results(session, candidates)
        review.started = True
        return review

    async def test_save_answers_and_edits_next_card(self, handler, app, context, review, candidates) -> None:
        update = _callback_update()
        await handler._on_save(update, context)

        app.store.append.assert_awaited_once_with(USER_ID, candidates[0])
        update.callback_query.answer.assert_awaited_once_with(ANSWER_SAVED)
        text = update.callback_query.message.edit_text.await_args.args[0]
        assert text.startswith("[2/3]")

    async def test_save_duplicate(self, handler, app, context, review) -> None:
        app.store.append.return_value = AppendResult(inserted=False)
        update = _callback_update()
        await handler._on_save(update, context)
        update.callback_query.answer.assert_awaited_once_with(ANSWER_DUPLICATE)
        assert review.current_index == 1

    async def test_save_db_error_keeps_card(self, handler, app, context, review) -> None:
        app.store.append.side_effect = RuntimeError("locked")
        update = _callback_update()
        await handler._on_save(update, context)
        update.callback_query.answer.assert_awaited_once_with(ANSWER_DB_ERROR)
        assert review.current_index == 0
        assert app.alerts.reports[0][0] == "Save Error"

    async def test_skip_to_the_end_shows_finished(self, handler, app, context, review) -> None:
        review.current_index = 2
        update = _callback_update()
        await handler._on_skip(update, context)

        update.callback_query.answer.assert_awaited_once_with(ANSWER_SKIPPED)
        call = update.callback_query.message.edit_text.await_args
        assert call.args[0] == REVIEW_FINISHED
        assert call.kwargs["reply_markup"] is None
        assert review.is_exhausted
        assert app.sessions.get(USER_ID) is None

    async def test_saving_last_card_ends_session(self, handler, app, context, review) -> None:
        review.current_index = 2
        await handler._on_save(_callback_update(), context)
        assert review.is_exhausted
        assert app.sessions.get(USER_ID) is None

    async def test_session_survives_while_cards_remain(self, handler, app, context, review) -> None:
        await handler._on_skip(_callback_update(), context)
        assert app.sessions.get(USER_ID).review is review

    async def test_no_active_review(self, handler, context) -> None:
        update = _callback_update()
        await handler._on_skip(update, context)
        update.callback_query.answer.assert_awaited_once_with(MSG_NO_ACTIVE_REVIEW)


class TestMenu:
    async def test_start_registers_user(self, handler, app, context) -> None:
        update = _message_update()
        await handler._cmd_start(update, context)
        app.store.register_user.assert_awaited_once_with(USER_ID, "Olena")
        text = update.effective_message.reply_text.await_args.args[0]
        assert text.startswith(MSG_WELCOME)
        assert text.endswith("🔢 Залишилось пошуків: 7")

    async def test_start_without_database_still_greets(self, handler, app, context) -> None:
        app.store.register_user.side_effect = RuntimeError("locked")
        update = _message_update()
        await handler._cmd_start(update, context)
        assert update.effective_message.reply_text.await_args.args[0] == MSG_WELCOME
        assert app.alerts.reports[0][0] == "Start Error"

    async def test_clear(self, handler, app, context) -> None:
        app.store.clear.return_value = 2
        update = _message_update()
        await handler._cmd_clear(update, context)
        update.effective_message.reply_text.assert_awaited_once_with(MSG_CLEARED)

    async def test_saved_list(self, handler, app, context) -> None:
        app.store.list.return_value = []
        update = _message_update()
        await handler._cmd_saved(update, context)
        assert "порожній" in update.effective_message.reply_text.await_args.args[0]
