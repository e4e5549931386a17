"""Factory for instantiating LLM clients based on configuration."""
from __future__ import annotations

from typing import Literal

from ..config import GeminiConfig, config
from .base import LLMClient
from .gemini_client import GeminiClient

Provider = Literal["gemini"]


def create_llm_client(settings: GeminiConfig | None = None) -> LLMClient:
    """Create an :class:`LLMClient` based on the current configuration."""

    settings = settings or config.llm
    provider: Provider = settings.provider  # type: ignore[assignment]
    if provider == "gemini":
        return GeminiClient(
            model=settings.model,
            api_key=settings.api_key,
            base_url=settings.base_url,
            request_timeout=settings.request_timeout,
        )
    raise ValueError(f"Unsupported LLM provider: {provider}")
