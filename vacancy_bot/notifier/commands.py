"""Vacancy Bot — Telegram Handlers.

Chat surface of the bot:
  /start — register the user, show the main menu
  /help, "ℹ️ Допомога" — usage help
  "📂 Збережені вакансії" — saved list
  /clear — empty the saved list
  Web App data — start a search in the background
  skip_next / save_next buttons — drive the swipe review

Uses python-telegram-bot v22+ Application with polling.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Optional

from telegram import Bot, LinkPreviewOptions, Message, Update
from telegram.constants import ParseMode
from telegram.error import BadRequest, TelegramError
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler as TgCmdHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from vacancy_bot.database.models import SearchRequest
from vacancy_bot.notifier.formatters import (
    ANSWER_DB_ERROR,
    ANSWER_DUPLICATE,
    ANSWER_SAVED,
    ANSWER_SKIPPED,
    BTN_HELP,
    BTN_SAVED,
    CB_SAVE,
    CB_SKIP,
    HELP_TEXT,
    MSG_BAD_DOMAIN,
    MSG_BAD_WEB_APP_DATA,
    MSG_CLEARED,
    MSG_CRITICAL,
    MSG_NO_ACTIVE_REVIEW,
    MSG_NO_SEARCHES_LEFT,
    MSG_SEARCH_STARTED,
    MSG_WELCOME,
    format_current_card,
    format_outcome,
    format_saved_list,
    format_searches_left,
    main_menu,
    review_keyboard,
)
from vacancy_bot.review.session import ChatSession, ReviewSession
from vacancy_bot.scraper.links import is_supported_search_url
from vacancy_bot.scraper.pipeline import RunOutcome
from vacancy_bot.utils.logger import get_logger

if TYPE_CHECKING:
    from vacancy_bot.main import VacancyBot

logger = get_logger(__name__)

_NO_PREVIEW = LinkPreviewOptions(is_disabled=True)


class CommandHandler:
    """Telegram handlers for commands, menu buttons and review callbacks.

    Searches run as background tasks so the bot keeps answering while a
    browser works; the tasks are tracked and cancelled on shutdown.

    Attributes:
        app: Reference to the VacancyBot instance.
    """

    def __init__(self, app: "VacancyBot") -> None:
        """Initialize with a reference to the main application.

        Args:
            app: Running VacancyBot instance (config, store, pipeline,
                sessions, alerts).
        """
        self.app = app
        self._tasks: set[asyncio.Task] = set()

    @property
    def active_searches(self) -> int:
        return len(self._tasks)

    def register(self, tg_app: Application) -> None:
        """Register all handlers with the Telegram Application.

        Args:
            tg_app: python-telegram-bot Application instance.
        """
        tg_app.add_handler(TgCmdHandler("start", self._cmd_start))
        tg_app.add_handler(TgCmdHandler("help", self._cmd_help))
        tg_app.add_handler(TgCmdHandler("clear", self._cmd_clear))
        tg_app.add_handler(MessageHandler(filters.Text([BTN_HELP]), self._cmd_help))
        tg_app.add_handler(MessageHandler(filters.Text([BTN_SAVED]), self._cmd_saved))
        tg_app.add_handler(
            MessageHandler(filters.StatusUpdate.WEB_APP_DATA, self._on_web_app_data),
        )
        tg_app.add_handler(CallbackQueryHandler(self._on_save, pattern=f"^{CB_SAVE}$"))
        tg_app.add_handler(CallbackQueryHandler(self._on_skip, pattern=f"^{CB_SKIP}$"))
        logger.info("Registered Telegram handlers")

    # ── Commands and menu ────────────────────────────────

    async def _cmd_start(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Handle /start — register the user and show the menu."""
        user = update.effective_user
        text = MSG_WELCOME
        try:
            profile = await self.app.store.register_user(user.id, user.first_name or "")
            text = f"{MSG_WELCOME}\n\n{format_searches_left(profile.searches_left)}"
        except Exception as e:
            await self.app.alerts.report("Start Error", e)

        await update.effective_message.reply_text(
            text,
            reply_markup=main_menu(self.app.config.telegram.web_app_url),
        )

    async def _cmd_help(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        await update.effective_message.reply_text(HELP_TEXT, parse_mode=ParseMode.HTML)

    async def _cmd_saved(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Handle "📂 Збережені вакансії" — numbered saved list."""
        saved = await self.app.store.list(update.effective_user.id)
        await update.effective_message.reply_text(
            format_saved_list(saved),
            parse_mode=ParseMode.HTML,
            link_preview_options=_NO_PREVIEW,
        )

    async def _cmd_clear(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        removed = await self.app.store.clear(update.effective_user.id)
        logger.info("User %d cleared %d saved vacancies", update.effective_user.id, removed)
        await update.effective_message.reply_text(MSG_CLEARED)

    # ── Search ───────────────────────────────────────────

    async def _on_web_app_data(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Validate the Web App payload and start a search."""
        message = update.effective_message
        user = update.effective_user

        try:
            request = SearchRequest.from_web_app_data(message.web_app_data.data)
        except ValueError as e:
            logger.warning("Bad Web App data from %d: %s", user.id, e)
            await message.reply_text(MSG_BAD_WEB_APP_DATA)
            return

        if not is_supported_search_url(request.url, self.app.config.search.allowed_domains):
            logger.info("Refused unsupported URL from %d: %s", user.id, request.url)
            await message.reply_text(MSG_BAD_DOMAIN)
            return

        if not await self.app.store.consume_search(user.id):
            await message.reply_text(MSG_NO_SEARCHES_LEFT)
            return

        session = self.app.sessions.begin(user.id, request)
        status = await message.reply_text(MSG_SEARCH_STARTED)
        self.start_search(context.bot, message.chat_id, session, status.message_id)

    def start_search(
        self, bot: Bot, chat_id: int, session: ChatSession, status_message_id: int,
    ) -> asyncio.Task:
        """Run the search for ``session`` in a tracked background task."""
        task = asyncio.create_task(
            self._run_search(bot, chat_id, session, status_message_id),
            name=f"search-{session.user_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_search(
        self, bot: Bot, chat_id: int, session: ChatSession, status_message_id: int,
    ) -> None:
        async def progress(text: str) -> None:
            await bot.edit_message_text(
                text=text, chat_id=chat_id, message_id=status_message_id,
            )

        try:
            result = await self.app.pipeline.run(
                session.request.url, session.request.filters, progress=progress,
            )

            try:
                await bot.delete_message(chat_id=chat_id, message_id=status_message_id)
            except TelegramError as e:
                logger.debug("Could not delete status message: %s", e)

            # Partial results of a failed run are not offered for review
            completed = result.outcome is RunOutcome.COMPLETED
            candidates = result.candidates if completed else []
            review = self.app.sessions.attach_results(session, candidates)
            if review is None:
                return

            text = format_outcome(result)
            if result.outcome is RunOutcome.NO_LINKS_FOUND and result.screenshot_path:
                await bot.send_photo(chat_id=chat_id, photo=result.screenshot_path, caption=text)
            else:
                await bot.send_message(chat_id=chat_id, text=text)

            if candidates:
                await self._show_current(bot, chat_id, review)
            else:
                self.app.sessions.end(session.user_id)

        except Exception as e:
            logger.exception("Search task failed for user %d", session.user_id)
            await self.app.alerts.report("Search Task Error", e)
            try:
                await bot.send_message(chat_id=chat_id, text=MSG_CRITICAL)
            except TelegramError as send_error:
                logger.error("Could not notify user %d: %s", session.user_id, send_error)

    # ── Review ───────────────────────────────────────────

    def _active_review(self, user_id: int) -> Optional[ReviewSession]:
        session = self.app.sessions.get(user_id)
        if session is None or session.review is None or session.review.is_exhausted:
            return None
        return session.review

    async def _show_current(
        self,
        bot: Bot,
        chat_id: int,
        review: ReviewSession,
        message: Optional[Message] = None,
    ) -> None:
        """Show the current card: a new message the first time, then edits.

        Once the review is exhausted the card turns into the finished note.
        """
        text = format_current_card(review)
        markup = None if review.is_exhausted else review_keyboard()

        if review.started and isinstance(message, Message):
            try:
                await message.edit_text(
                    text,
                    parse_mode=ParseMode.HTML,
                    reply_markup=markup,
                    link_preview_options=_NO_PREVIEW,
                )
                return
            except BadRequest as e:
                logger.warning("Card edit failed, sending a new message: %s", e)

        review.started = True
        await bot.send_message(
            chat_id=chat_id,
            text=text,
            parse_mode=ParseMode.HTML,
            reply_markup=markup,
            link_preview_options=_NO_PREVIEW,
        )

    async def _on_save(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Handle ❤️ — save the current card and show the next one."""
        query = update.callback_query
        user_id = update.effective_user.id
        review = self._active_review(user_id)
        if review is None:
            await query.answer(MSG_NO_ACTIVE_REVIEW)
            return

        try:
            result = await review.accept(self.app.store, user_id)
        except Exception as e:
            await self.app.alerts.report("Save Error", e)
            await query.answer(ANSWER_DB_ERROR)
            return

        await query.answer(ANSWER_SAVED if result and result.inserted else ANSWER_DUPLICATE)
        await self._show_current(
            context.bot, update.effective_chat.id, review, message=query.message,
        )
        self._finish_if_done(user_id, review)

    async def _on_skip(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Handle 👎 — skip the current card."""
        query = update.callback_query
        review = self._active_review(update.effective_user.id)
        if review is None:
            await query.answer(MSG_NO_ACTIVE_REVIEW)
            return

        review.reject()
        await query.answer(ANSWER_SKIPPED)
        await self._show_current(
            context.bot, update.effective_chat.id, review, message=query.message,
        )
        self._finish_if_done(update.effective_user.id, review)

    def _finish_if_done(self, user_id: int, review: ReviewSession) -> None:
        session = self.app.sessions.get(user_id)
        # A newer search may have replaced the session while we awaited
        if review.is_exhausted and session is not None and session.review is review:
            self.app.sessions.end(user_id)

    # ── Lifecycle ────────────────────────────────────────

    async def shutdown(self) -> None:
        """Cancel in-flight searches and wait for their browsers to close."""
        tasks = list(self._tasks)
        if not tasks:
            return
        logger.info("Cancelling %d running searches", len(tasks))
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
