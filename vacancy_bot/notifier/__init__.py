"""Vacancy Bot — Notifier Package.

Telegram surface of the bot with Ukrainian HTML messages.
Components:
  - formatters: message texts, vacancy cards, keyboards
  - commands: handlers for commands, menu buttons, Web App data and review buttons
  - admin: best-effort operator alerts
"""

from vacancy_bot.notifier.admin import AdminNotifier, OperatorAlerts, format_admin_alert
from vacancy_bot.notifier.formatters import (
    format_outcome,
    format_saved_list,
    format_vacancy_card,
)
from vacancy_bot.notifier.commands import CommandHandler

__all__ = [
    "AdminNotifier",
    "OperatorAlerts",
    "format_admin_alert",
    "format_outcome",
    "format_saved_list",
    "format_vacancy_card",
    "CommandHandler",
]
