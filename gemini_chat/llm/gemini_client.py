"""Google Gemini generateContent client."""
from __future__ import annotations

import json
import logging
import re
from typing import Optional, Sequence

import requests

from ..errors import MalformedResponseError, TransportError
from ..memory.conversation import Turn
from .base import LLMClient
from .payload import Candidate, build_request_body, parse_candidate

_LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1/models"

_KEY_PARAM = re.compile(r"(\bkey=)[^&\s\"]+")


class RedactKeyFilter(logging.Filter):
    """Mask the ``key`` query parameter in logged request lines."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if "key=" in message:
            record.msg = _KEY_PARAM.sub(r"\1***", message)
            record.args = ()
        return True


# urllib3 logs each request URL at DEBUG; logger filters only see records
# created on that exact logger.
_URLLIB3_LOGGER = logging.getLogger("urllib3.connectionpool")
if not any(isinstance(item, RedactKeyFilter) for item in _URLLIB3_LOGGER.filters):
    _URLLIB3_LOGGER.addFilter(RedactKeyFilter())


class GeminiClient(LLMClient):
    """Client for the Gemini REST API."""

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        request_timeout: float = 120.0,
    ) -> None:
        super().__init__(model=model, api_key=api_key, request_timeout=request_timeout)
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{self.model}:generateContent"

    def complete(self, turns: Sequence[Turn]) -> Candidate:
        self.ensure_credential()
        payload = build_request_body(turns)
        _LOGGER.debug("Sending %d turns to %s", len(payload["contents"]), self.endpoint)
        try:
            response = requests.post(
                self.endpoint,
                params={"key": self.api_key},
                headers={"Content-Type": "application/json"},
                data=json.dumps(payload),
                timeout=self.request_timeout,
            )
        except requests.RequestException as exc:
            # Connection errors echo the request URL, key included.
            raise TransportError(str(exc).replace(self.api_key, "***")) from exc

        if not response.ok:
            raise TransportError(
                f"{response.status_code} {response.reason}",
                status=response.status_code,
                body=response.text,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponseError("Response body is not valid JSON") from exc
        return parse_candidate(data)
