"""Vacancy Bot — Main Orchestrator.

Ties all components together: config, database, Groq classifier,
scrape pipeline, review sessions, operator alerts and the Telegram
handlers. Runs python-telegram-bot's polling loop; searches execute as
background tasks started by the handlers.

Usage:
    python -m vacancy_bot.main
    python scripts/run.py
"""

from __future__ import annotations

from pathlib import Path

from telegram import Update
from telegram.ext import Application, ContextTypes

from vacancy_bot.classifier.classifier import Classifier
from vacancy_bot.classifier.groq_client import GroqClient
from vacancy_bot.config import AppConfig, load_config
from vacancy_bot.database.db import Database
from vacancy_bot.database.store import SavedVacancyStore
from vacancy_bot.notifier.admin import AdminNotifier
from vacancy_bot.notifier.commands import CommandHandler
from vacancy_bot.review.session import SessionRegistry
from vacancy_bot.scraper.pipeline import ScrapePipeline
from vacancy_bot.utils.logger import get_logger, set_console_level

logger = get_logger(__name__)


class VacancyBot:
    """Main application object.

    Owns every long-lived component and hands itself to the Telegram
    handlers, which reach the store, pipeline and sessions through it.

    Attributes:
        config: Full application configuration.
        db: Database connection, opened in post_init.
        store: Saved vacancies and user records.
        sessions: Per-user chat sessions.
        alerts: Operator channel.
        pipeline: Scrape-and-classify pipeline.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.db = Database(config.database_path)
        self.store = SavedVacancyStore(self.db, default_searches=config.search.default_searches)
        self.sessions = SessionRegistry()
        self.groq = GroqClient(config.groq)

        self.application: Application = (
            Application.builder()
            .token(config.telegram.bot_token)
            .post_init(self._post_init)
            .post_stop(self._post_stop)
            .post_shutdown(self._post_shutdown)
            .build()
        )

        self.alerts = AdminNotifier(self.application.bot, config.telegram.admin_chat_id)
        self.classifier = Classifier(self.groq, config.classifier, alerts=self.alerts)
        self.pipeline = ScrapePipeline(
            self.classifier, config.browser, config.search, alerts=self.alerts,
        )

        self.commands = CommandHandler(self)
        self.commands.register(self.application)
        self.application.add_error_handler(self._on_error)

    async def _post_init(self, application: Application) -> None:
        """Open the database and the Groq session once the bot is up."""
        logger.info("═══ Initializing database ═══")
        await self.db.initialize()
        logger.info("Database ready: %s", self.config.database_path)

        await self.groq.__aenter__()
        if not self.groq.enabled:
            logger.warning("GROQ_API_KEY not set — every listing will be rejected")
        if not self.alerts.enabled:
            logger.warning("ADMIN_ID not set — operator alerts go to the log only")

        me = await application.bot.get_me()
        logger.info("🚀 Bot started as @%s", me.username)

    async def _post_stop(self, application: Application) -> None:
        await self.commands.shutdown()

    async def _post_shutdown(self, application: Application) -> None:
        """Close the Groq session and the database."""
        logger.info("═══ Shutting down ═══")
        await self.groq.__aexit__(None, None, None)
        await self.db.close()
        logger.info("Shutdown complete")

    async def _on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Last-resort handler for exceptions raised inside handlers."""
        logger.error("Unhandled handler error: %s", context.error, exc_info=context.error)
        await self.alerts.report("Handler Error", context.error)

    def run(self) -> None:
        """Start polling; blocks until SIGINT/SIGTERM."""
        self.application.run_polling(allowed_updates=Update.ALL_TYPES)


def main() -> None:
    """Application entry point."""
    Path("data").mkdir(exist_ok=True)
    Path("logs").mkdir(exist_ok=True)

    config = load_config()
    set_console_level(config.log_level)

    VacancyBot(config).run()


if __name__ == "__main__":
    main()
