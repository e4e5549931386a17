"""Error taxonomy and the structured result returned by a prompt call."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class GeminiError(Exception):
    """Base class for failures of a single prompt call."""

    code = "GEMINI_ERROR"


class MissingCredentialError(GeminiError):
    """No API key is configured; nothing was sent."""

    code = "MISSING_CREDENTIAL"

    def __init__(self, message: str = "Gemini API key is not set") -> None:
        super().__init__(message)


class TransportError(GeminiError):
    """The HTTP exchange failed or returned a non-2xx status."""

    code = "TRANSPORT_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class MalformedResponseError(GeminiError):
    """The reply did not carry candidates[0].content.parts[0].text."""

    code = "MALFORMED_RESPONSE"


@dataclass(slots=True)
class PromptResult:
    """Outcome of one prompt: either generated text or the error that stopped it."""

    text: Optional[str] = None
    error: Optional[GeminiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None
