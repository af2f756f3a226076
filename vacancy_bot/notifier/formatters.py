"""Vacancy Bot — Telegram Message Formatters.

Builds the Ukrainian chat texts and keyboards in HTML parse mode. HTML
only needs &, < and > escaped, which keeps job titles and AI summaries
safe to embed.

All user-facing strings live here so handlers stay free of copy.
"""

from __future__ import annotations

from typing import Sequence

from telegram import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
    WebAppInfo,
)

from vacancy_bot.database.models import Candidate, SavedVacancy
from vacancy_bot.review.session import ReviewSession
from vacancy_bot.scraper.pipeline import PipelineResult, RunOutcome

# ── Menu buttons and callback data ───────────────────────
BTN_SEARCH = "🚀 ПОШУК"
BTN_SAVED = "📂 Збережені вакансії"
BTN_HELP = "ℹ️ Допомога"
BTN_SKIP = "👎 Пропустити"
BTN_LIKE = "❤️ Лайк"

CB_SKIP = "skip_next"
CB_SAVE = "save_next"

# ── Fixed replies ────────────────────────────────────────
MSG_WELCOME = "Привіт! Обирай дію в меню 👇"
MSG_SEARCH_STARTED = "⚙️ Починаю пошук..."
MSG_BAD_DOMAIN = (
    "⛔️ Я вмію працювати тільки з Work.ua та Robota.ua. "
    "Будь ласка, встав правильне посилання."
)
MSG_BAD_WEB_APP_DATA = "Помилка даних WebApp"
MSG_NO_SEARCHES_LEFT = "⛔️ Ліміт пошуків вичерпано."
MSG_SAVED_EMPTY = "📂 Твій список поки що порожній."
MSG_CLEARED = "🗑 Список очищено!"
MSG_SITE_UNREACHABLE = "❌ Помилка доступу до сайту."
MSG_NO_LINKS = "❌ Вакансій не знайдено (див. фото). Можливо капча."
MSG_NO_LINKS_TEXT = "❌ Вакансій не знайдено. Можливо капча."
MSG_NOTHING_PASSED = "😔 Жодна вакансія не пройшла фільтри ШІ."
MSG_CRITICAL = "❌ Сталася критична помилка. Адміністратор повідомлений."
MSG_NO_ACTIVE_REVIEW = "Немає активного перегляду."

# ── Callback query answers ───────────────────────────────
ANSWER_SAVED = "✅ Збережено!"
ANSWER_DUPLICATE = "⚠️ Вже є в списку!"
ANSWER_DB_ERROR = "❌ Помилка бази"
ANSWER_SKIPPED = "🗑 Пропущено"

HELP_TEXT = (
    "<b>🤖 Як користуватися ботом:</b>\n\n"
    "1. Натисни <b>🚀 ПОШУК</b>.\n"
    "2. Встав посилання з Work.ua або Robota.ua.\n"
    "3. Бот проаналізує вакансії та покаже найкращі.\n"
    "4. Тисни ❤️, щоб зберегти у <b>📂 Папку</b>.\n"
    "5. Тисни 👎, щоб пропустити."
)

REVIEW_FINISHED = (
    "🏁 <b>Перегляд завершено!</b>\n"
    "Всі лайкнуті вакансії збережено в меню \"📂 Збережені\"."
)


def _e(text: str) -> str:
    """Escape HTML special characters.

    Only &, <, > need escaping for Telegram HTML parse mode.

    Args:
        text: Raw text to escape.

    Returns:
        HTML-safe text.
    """
    if not text:
        return ""
    return str(text).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _link(text: str, url: str) -> str:
    """Build an HTML link.

    Args:
        text: Display text (will be escaped).
        url: URL (ampersands and quotes escaped).

    Returns:
        HTML anchor tag.
    """
    safe_text = _e(text)
    safe_url = url.replace("&", "&amp;").replace('"', "&quot;")
    return f'<a href="{safe_url}">{safe_text}</a>'


def _bold(text: str) -> str:
    return f"<b>{_e(text)}</b>"


# ═══════════════════════════════════════════════════════════
# Keyboards
# ═══════════════════════════════════════════════════════════


def main_menu(web_app_url: str) -> ReplyKeyboardMarkup:
    """Persistent reply keyboard: search Web App, saved list, help."""
    return ReplyKeyboardMarkup(
        [
            [KeyboardButton(BTN_SEARCH, web_app=WebAppInfo(url=web_app_url))],
            [KeyboardButton(BTN_SAVED)],
            [KeyboardButton(BTN_HELP)],
        ],
        resize_keyboard=True,
    )


def review_keyboard() -> InlineKeyboardMarkup:
    """Skip / like buttons under a vacancy card."""
    return InlineKeyboardMarkup([[
        InlineKeyboardButton(BTN_SKIP, callback_data=CB_SKIP),
        InlineKeyboardButton(BTN_LIKE, callback_data=CB_SAVE),
    ]])


# ═══════════════════════════════════════════════════════════
# Review
# ═══════════════════════════════════════════════════════════


def format_vacancy_card(candidate: Candidate, progress_label: str) -> str:
    """One swipe card.

    Format::

        [2/5] <b>Title</b>

        🤖 summary

        👉 <a href="...">Детальніше на сайті</a>
    """
    return (
        f"{progress_label} {_bold(candidate.title)}\n\n"
        f"🤖 {_e(candidate.summary)}\n\n"
        f"👉 {_link('Детальніше на сайті', candidate.url)}"
    )


def format_current_card(review: ReviewSession) -> str:
    """Card for the review's current candidate, or the finished note."""
    candidate = review.current()
    if candidate is None:
        return REVIEW_FINISHED
    return format_vacancy_card(candidate, review.progress_label)


def format_found(count: int) -> str:
    return f"🎉 Знайдено {count} релевантних вакансій!"


# ═══════════════════════════════════════════════════════════
# Saved list and quota
# ═══════════════════════════════════════════════════════════


def format_saved_list(saved: Sequence[SavedVacancy]) -> str:
    """Numbered list of saved vacancies as links."""
    if not saved:
        return MSG_SAVED_EMPTY

    lines = ["<b>📂 Твої збережені вакансії:</b>", ""]
    for i, vacancy in enumerate(saved, 1):
        lines.append(f"{i}. {_link(vacancy.title or vacancy.url, vacancy.url)}")
    lines.append("")
    lines.append("<i>Щоб очистити список, натисни /clear</i>")
    return "\n".join(lines)


def format_searches_left(searches_left: int) -> str:
    return f"🔢 Залишилось пошуків: {searches_left}"


# ═══════════════════════════════════════════════════════════
# Pipeline outcomes
# ═══════════════════════════════════════════════════════════


def format_outcome(result: PipelineResult) -> str:
    """Short user message for how a search run ended."""
    if result.outcome is RunOutcome.SITE_UNREACHABLE:
        return MSG_SITE_UNREACHABLE
    if result.outcome is RunOutcome.NO_LINKS_FOUND:
        return MSG_NO_LINKS if result.screenshot_path else MSG_NO_LINKS_TEXT
    if result.outcome is RunOutcome.FAILED:
        return MSG_CRITICAL
    if not result.candidates:
        return MSG_NOTHING_PASSED
    return format_found(len(result.candidates))
