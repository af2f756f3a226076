#!/usr/bin/env python3
"""Vacancy Bot — Application Runner.

Validates the environment and settings.yaml up front, so a missing token
fails here with a readable message instead of deep inside startup, then
launches the bot.

Usage:
    python scripts/run.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

BANNER = r"""
╔══════════════════════════════════════════════════════════╗
║                                                          ║
║              Vacancy Bot v1.0                            ║
║       AI job search for Work.ua and Robota.ua            ║
║                                                          ║
╚══════════════════════════════════════════════════════════╝
"""

PLACEHOLDERS = ("", "your_key_here", "test")


def _mask(value: str) -> str:
    return value[:6] + "..." + value[-4:] if len(value) > 10 else "***"


def _check_settings():
    """Load the full configuration, printing what is usable.

    Returns:
        The AppConfig, or None when the bot cannot start with it.
    """
    from vacancy_bot.config import load_config

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ {e}")
        return None

    ok = True
    token = config.telegram.bot_token
    if token in PLACEHOLDERS:
        print("❌ TELEGRAM_BOT_TOKEN is a placeholder")
        ok = False
    else:
        print(f"✅ bot token = {_mask(token)}")

    if not config.telegram.web_app_url.startswith("https://"):
        print(f"❌ WEB_APP_URL must be https (Telegram requirement): {config.telegram.web_app_url!r}")
        ok = False
    else:
        print(f"✅ web app = {config.telegram.web_app_url}")

    if config.groq.api_key in PLACEHOLDERS:
        print("⚠️  GROQ_API_KEY not set (AI disabled, every listing will be rejected)")
    else:
        print(f"✅ Groq {config.groq.model}, key = {_mask(config.groq.api_key)}")

    if not config.telegram.admin_chat_id:
        print("⚠️  ADMIN_ID not set (operator alerts will only be logged)")
    else:
        print(f"✅ operator alerts → {config.telegram.admin_chat_id}")

    print(f"✅ searching on: {', '.join(config.search.allowed_domains)}")
    print(f"✅ browser: {'headless' if config.browser.headless else 'headed'}, "
          f"{config.search.max_links} links per search")
    return config if ok else None


def preflight_checks() -> bool:
    """Run pre-flight checks before starting the application.

    Checks:
      - .env file exists (optional, the process env also works)
      - settings.yaml loads and every ${VAR} resolves
      - the token and Web App URL are real values
      - directories for the database and the debug screenshot exist

    Returns:
        True if all checks pass, False otherwise.
    """
    os.chdir(str(PROJECT_ROOT))

    if not (PROJECT_ROOT / ".env").exists():
        print("⚠️  .env file not found, using the process environment")
        print("   Copy .env.example to .env to keep your keys in one place.")

    config = _check_settings()
    if config is None:
        return False

    dirs = {
        Path(config.database_path).parent,
        Path(config.browser.debug_screenshot_path).parent,
        PROJECT_ROOT / "logs",
    }
    for d in dirs:
        d.mkdir(parents=True, exist_ok=True)
    print("✅ data/ and logs/ ready")
    return True


def main() -> None:
    """Entry point: run checks then start the application."""
    print(BANNER)

    print("═══ Pre-flight Checks ═══\n")
    if not preflight_checks():
        print("\n❌ Pre-flight checks failed! Fix the issues above and try again.")
        sys.exit(1)

    print("\n✅ All checks passed!\n")
    print("═══ Starting Vacancy Bot ═══\n")

    from vacancy_bot.main import main as app_main
    app_main()


if __name__ == "__main__":
    main()
