"""Conversation session that relays prompts to Gemini."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Tuple

from .config import config
from .errors import (
    GeminiError,
    MalformedResponseError,
    MissingCredentialError,
    PromptResult,
    TransportError,
)
from .llm.base import LLMClient
from .llm.factory import create_llm_client
from .memory.conversation import MODEL_ROLE, USER_ROLE, ConversationStore, Turn

_LOGGER = logging.getLogger(__name__)

ResponseCallback = Callable[[Optional[str]], None]


class GeminiSession:
    """Owns one conversation and serializes the prompts sent against it.

    Every call resends the conversation so far (optionally trimmed to
    ``max_history_turns``) and records the prompt and, on success, the reply.
    A failed call keeps the prompt turn unless ``rollback_on_failure`` is set.
    """

    def __init__(
        self,
        llm: LLMClient | None = None,
        personality: str | None = None,
        *,
        max_history_turns: int | None = None,
        rollback_on_failure: bool | None = None,
    ) -> None:
        settings = config.conversation
        self.llm = llm or create_llm_client()
        self.conversation = ConversationStore(
            personality=personality if personality is not None else settings.personality
        )
        self.max_history_turns = (
            settings.max_history_turns if max_history_turns is None else max_history_turns
        )
        self.rollback_on_failure = (
            settings.rollback_on_failure if rollback_on_failure is None else rollback_on_failure
        )
        self._lock = threading.Lock()
        self._executor_lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None

    @property
    def history(self) -> Tuple[Turn, ...]:
        return self.conversation.snapshot()

    @property
    def personality(self) -> str:
        return self.conversation.personality

    def generate(self, prompt: str, personality_override: str | None = None) -> PromptResult:
        """Send ``prompt`` and return the reply text or the error that prevented it."""

        with self._lock:
            try:
                self.llm.ensure_credential()
            except MissingCredentialError as exc:
                _LOGGER.error("%s; prompt was not sent", exc)
                return PromptResult(error=exc)

            self.conversation.seed(personality_override)
            self.conversation.append(USER_ROLE, prompt)
            turns = self.conversation.window(self.max_history_turns)

            try:
                candidate = self.llm.complete(turns)
            except TransportError as exc:
                _LOGGER.error(
                    "Gemini request failed: %s (status=%s) body=%s",
                    exc,
                    exc.status,
                    exc.body,
                )
                return self._fail(exc)
            except MalformedResponseError as exc:
                _LOGGER.warning("No valid response received from Gemini: %s", exc)
                return self._fail(exc)
            except GeminiError as exc:
                _LOGGER.error("Gemini request failed (%s): %s", exc.code, exc)
                return self._fail(exc)

            self.conversation.append(MODEL_ROLE, candidate.text)
            _LOGGER.info(
                "Gemini replied: finish_reason=%s, history=%d turns",
                candidate.finish_reason,
                len(self.conversation),
            )
            return PromptResult(text=candidate.text)

    def _fail(self, error: GeminiError) -> PromptResult:
        if self.rollback_on_failure and self.conversation.discard_last(USER_ROLE):
            _LOGGER.debug("Rolled back unanswered prompt turn")
        return PromptResult(error=error)

    def send_prompt(
        self,
        prompt: str,
        callback: ResponseCallback | None = None,
        personality_override: str | None = None,
    ) -> Optional[str]:
        """Send ``prompt`` and hand the reply, or ``None`` on any failure, to ``callback``."""

        text = self.generate(prompt, personality_override).text
        if callback is not None:
            callback(text)
        return text

    def submit(self, prompt: str, personality_override: str | None = None) -> Future:
        """Run :meth:`generate` on the session's worker thread."""

        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="gemini-session"
                )
            return self._executor.submit(self.generate, prompt, personality_override)

    def clear_history(self) -> None:
        with self._lock:
            self.conversation.clear()

    def set_personality(self, text: str) -> None:
        with self._lock:
            self.conversation.set_personality(text)

    def close(self) -> None:
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)


def create_session(
    llm: LLMClient | None = None,
    personality: str | None = None,
) -> GeminiSession:
    return GeminiSession(llm=llm, personality=personality)
