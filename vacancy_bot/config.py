"""Vacancy Bot — Configuration Loader.

Loads config/settings.yaml, resolves ${VAR_NAME} and ${VAR_NAME:-default}
placeholders from the environment (.env is loaded first), and exposes the
result as frozen dataclasses.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from vacancy_bot.utils.logger import get_logger

logger = get_logger(__name__)

# ── Path Constants ────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
SETTINGS_PATH = CONFIG_DIR / "settings.yaml"

# ── Environment Variable Pattern ─────────────────────────
# ${NAME} is required, ${NAME:-fallback} may be unset.
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?}")


# ═══════════════════════════════════════════════════════════
# Configuration Dataclasses
# ═══════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TelegramConfig:
    """Bot credentials and the operator channel."""

    bot_token: str
    admin_chat_id: str
    web_app_url: str


@dataclass(frozen=True)
class GroqConfig:
    """Groq chat-completions provider."""

    api_key: str
    model: str
    max_tokens: int
    temperature: float
    rpm_limit: int
    timeout_seconds: int = 30


@dataclass(frozen=True)
class ClassifierConfig:
    """Local rules applied around the AI call."""

    min_text_chars: int
    max_text_chars: int
    challenge_markers: tuple[str, ...]
    failure_threshold: int = 5
    cooldown_seconds: int = 300


@dataclass(frozen=True)
class BrowserConfig:
    """Headless browser identity, timeouts and pacing."""

    headless: bool
    user_agent: str
    viewport_width: int
    viewport_height: int
    search_timeout_ms: int
    detail_timeout_ms: int
    wait_until: str
    search_settle_seconds: float
    detail_settle_seconds: float
    link_delay_seconds: float
    debug_screenshot_path: str


@dataclass(frozen=True)
class SearchConfig:
    """Search request validation and pipeline limits."""

    allowed_domains: tuple[str, ...]
    max_links: int
    progress_every: int
    default_searches: int


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration container."""

    telegram: TelegramConfig
    groq: GroqConfig
    classifier: ClassifierConfig
    browser: BrowserConfig
    search: SearchConfig
    database_path: str
    log_level: str


# ═══════════════════════════════════════════════════════════
# YAML Loading & Environment Variable Resolution
# ═══════════════════════════════════════════════════════════


def _resolve_env_vars(value: Any) -> Any:
    """Recursively replace ${VAR} / ${VAR:-default} placeholders.

    Args:
        value: A string, dict, list, or primitive from parsed YAML.

    Returns:
        The same structure with placeholders substituted.

    Raises:
        ValueError: If a required variable (no default) is not set.
    """
    if isinstance(value, str):
        def _substitute(match: re.Match[str]) -> str:
            var_name, default = match.group(1), match.group(2)
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            raise ValueError(
                f"Environment variable '${{{var_name}}}' is required but not set. "
                f"Add it to your .env file or export it in your shell."
            )

        return ENV_VAR_PATTERN.sub(_substitute, value)
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a UTF-8 YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is empty.
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        raise ValueError(f"Configuration file is empty: {path}")

    logger.debug("Loaded configuration from %s", path)
    return data


def _validate_keys(data: dict[str, Any], required: list[str], section: str) -> None:
    """Raise ValueError naming every required key missing from ``data``."""
    missing = [key for key in required if key not in data]
    if missing:
        raise ValueError(
            f"Missing required configuration keys in '{section}': {', '.join(missing)}"
        )


def _as_bool(value: Any) -> bool:
    # Env placeholders always arrive as strings
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


# ═══════════════════════════════════════════════════════════
# Dataclass Builders
# ═══════════════════════════════════════════════════════════


def _build_telegram_config(data: dict[str, Any]) -> TelegramConfig:
    _validate_keys(data, ["bot_token", "admin_chat_id", "web_app_url"], "telegram")
    return TelegramConfig(
        bot_token=str(data["bot_token"]),
        admin_chat_id=str(data["admin_chat_id"] or "").strip(),
        web_app_url=str(data["web_app_url"]),
    )


def _build_groq_config(data: dict[str, Any]) -> GroqConfig:
    _validate_keys(
        data, ["api_key", "model", "max_tokens", "temperature", "rpm_limit"], "groq",
    )
    return GroqConfig(
        api_key=str(data["api_key"] or "").strip(),
        model=data["model"],
        max_tokens=int(data["max_tokens"]),
        temperature=float(data["temperature"]),
        rpm_limit=int(data["rpm_limit"]),
        timeout_seconds=int(data.get("timeout_seconds", 30)),
    )


def _build_classifier_config(data: dict[str, Any]) -> ClassifierConfig:
    """Build a ClassifierConfig from the 'classifier' section.

    Raises:
        ValueError: If the text bounds are inconsistent.
    """
    _validate_keys(
        data, ["min_text_chars", "max_text_chars", "challenge_markers"], "classifier",
    )
    min_chars = int(data["min_text_chars"])
    max_chars = int(data["max_text_chars"])
    if max_chars <= min_chars:
        raise ValueError(
            f"classifier.max_text_chars ({max_chars}) must be greater than "
            f"min_text_chars ({min_chars})"
        )

    return ClassifierConfig(
        min_text_chars=min_chars,
        max_text_chars=max_chars,
        challenge_markers=tuple(data["challenge_markers"] or ()),
        failure_threshold=int(data.get("failure_threshold", 5)),
        cooldown_seconds=int(data.get("cooldown_seconds", 300)),
    )


def _build_browser_config(data: dict[str, Any]) -> BrowserConfig:
    required_keys = [
        "user_agent", "viewport_width", "viewport_height",
        "search_timeout_ms", "detail_timeout_ms",
        "search_settle_seconds", "link_delay_seconds",
    ]
    _validate_keys(data, required_keys, "browser")

    return BrowserConfig(
        headless=_as_bool(data.get("headless", True)),
        user_agent=data["user_agent"],
        viewport_width=int(data["viewport_width"]),
        viewport_height=int(data["viewport_height"]),
        search_timeout_ms=int(data["search_timeout_ms"]),
        detail_timeout_ms=int(data["detail_timeout_ms"]),
        wait_until=data.get("wait_until", "domcontentloaded"),
        search_settle_seconds=float(data["search_settle_seconds"]),
        detail_settle_seconds=float(data.get("detail_settle_seconds", 1)),
        link_delay_seconds=float(data["link_delay_seconds"]),
        debug_screenshot_path=data.get("debug_screenshot_path", "data/debug_error.png"),
    )


def _build_search_config(data: dict[str, Any]) -> SearchConfig:
    _validate_keys(data, ["allowed_domains", "max_links"], "search")

    domains = tuple(d.strip().lower() for d in data["allowed_domains"] if d.strip())
    if not domains:
        raise ValueError("search.allowed_domains must list at least one domain")

    return SearchConfig(
        allowed_domains=domains,
        max_links=int(data["max_links"]),
        progress_every=max(1, int(data.get("progress_every", 2))),
        default_searches=int(data.get("default_searches", 100)),
    )


# ═══════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════


def load_config(
    settings_path: Path | None = None,
    env_path: Path | None = None,
) -> AppConfig:
    """Load the complete application configuration.

    Args:
        settings_path: Override path to settings.yaml.
        env_path: Override path to the .env file.

    Returns:
        A fully validated AppConfig instance.

    Raises:
        FileNotFoundError: If the settings file is missing.
        ValueError: If required fields are missing or env vars are unset.
    """
    env_file = env_path or (PROJECT_ROOT / ".env")
    load_dotenv(env_file)
    logger.debug("Loaded environment from %s", env_file)

    raw_settings = _load_yaml(settings_path or SETTINGS_PATH)
    settings = _resolve_env_vars(raw_settings)

    _validate_keys(
        settings,
        ["telegram", "groq", "classifier", "browser", "search", "database", "logging"],
        "settings",
    )

    config = AppConfig(
        telegram=_build_telegram_config(settings["telegram"]),
        groq=_build_groq_config(settings["groq"]),
        classifier=_build_classifier_config(settings["classifier"]),
        browser=_build_browser_config(settings["browser"]),
        search=_build_search_config(settings["search"]),
        database_path=settings["database"]["path"],
        log_level=settings["logging"].get("level", "INFO"),
    )

    logger.info("Configuration loaded successfully")
    logger.debug("Database path: %s", config.database_path)
    logger.debug("Groq model: %s (AI %s)", config.groq.model,
                 "enabled" if config.groq.api_key else "disabled")
    logger.debug("Allowed domains: %s", ", ".join(config.search.allowed_domains))

    return config
