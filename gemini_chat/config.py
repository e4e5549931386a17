"""Application configuration management."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

DEFAULT_PERSONALITY = "You are a helpful assistant."


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class GeminiConfig:
    """Configuration for the Gemini backend."""

    provider: str = os.getenv("LLM_PROVIDER", "gemini").lower()
    model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    api_key: Optional[str] = os.getenv("GEMINI_API_KEY")
    base_url: Optional[str] = os.getenv("GEMINI_BASE_URL")
    request_timeout: float = float(os.getenv("GEMINI_TIMEOUT", "120"))


@dataclass(slots=True)
class ConversationConfig:
    """Conversation history options."""

    personality: str = os.getenv("GEMINI_PERSONALITY", DEFAULT_PERSONALITY)
    # 0 resends the whole history on every call.
    max_history_turns: int = int(os.getenv("GEMINI_MAX_HISTORY_TURNS", "0"))
    rollback_on_failure: bool = _env_bool("GEMINI_ROLLBACK_ON_FAILURE")


@dataclass(slots=True)
class LoggingConfig:
    level: str = os.getenv("LOG_LEVEL", "INFO").upper()


@dataclass(slots=True)
class AppConfig:
    """Top-level application configuration."""

    llm: GeminiConfig = field(default_factory=GeminiConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    log: LoggingConfig = field(default_factory=LoggingConfig)


config = AppConfig()


def configure_logging(level: str | None = None) -> None:
    """Install a basic console handler at the configured level."""

    level_name = (level or config.log.level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
