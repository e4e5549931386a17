"""Request and response shaping for the generateContent endpoint."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from ..errors import MalformedResponseError
from ..memory.conversation import Turn


@dataclass(slots=True)
class Candidate:
    """The first candidate of a generateContent reply."""

    text: str
    role: Optional[str] = None
    finish_reason: Optional[str] = None
    avg_logprobs: Optional[float] = None


def build_request_body(turns: Iterable[Turn]) -> dict[str, List[dict[str, Any]]]:
    """Serialize turns in order, one text part per turn."""

    return {
        "contents": [
            {"parts": [{"text": turn.text}], "role": turn.role}
            for turn in turns
        ]
    }


def _first(value: object, label: str) -> dict[str, Any]:
    if not isinstance(value, list) or not value:
        raise MalformedResponseError(f"Response has no {label}")
    entry = value[0]
    if not isinstance(entry, dict):
        raise MalformedResponseError(f"Response {label}[0] is not an object")
    return entry


def parse_candidate(data: object) -> Candidate:
    """Extract ``candidates[0].content.parts[0].text`` from a decoded reply."""

    if not isinstance(data, dict):
        raise MalformedResponseError("Response body is not a JSON object")
    candidate = _first(data.get("candidates"), "candidates")
    content = candidate.get("content")
    if not isinstance(content, dict):
        raise MalformedResponseError("Response candidate has no content")
    part = _first(content.get("parts"), "parts")
    text = part.get("text")
    if not isinstance(text, str):
        raise MalformedResponseError("Response part has no text")

    avg_logprobs = candidate.get("avgLogprobs")
    return Candidate(
        text=text,
        role=content.get("role"),
        finish_reason=candidate.get("finishReason"),
        avg_logprobs=float(avg_logprobs) if isinstance(avg_logprobs, (int, float)) else None,
    )
