"""Base interfaces for LLM providers."""
from __future__ import annotations

import abc
from typing import Optional, Sequence

from ..errors import MissingCredentialError
from ..memory.conversation import Turn
from .payload import Candidate


class LLMClient(abc.ABC):
    """Abstract base class for an LLM client."""

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        request_timeout: float = 120.0,
    ) -> None:
        self.model = model
        self.api_key = api_key
        self.request_timeout = request_timeout

    def ensure_credential(self) -> None:
        """Raise :class:`MissingCredentialError` when no API key is configured."""

        if not self.api_key:
            raise MissingCredentialError()

    @abc.abstractmethod
    def complete(self, turns: Sequence[Turn]) -> Candidate:
        """Send the conversation and return the first reply candidate."""
