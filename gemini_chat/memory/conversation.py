"""In-memory conversation management."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterator, List, Literal, Tuple

from ..config import DEFAULT_PERSONALITY

_LOGGER = logging.getLogger(__name__)

Role = Literal["user", "model"]

USER_ROLE: Role = "user"
MODEL_ROLE: Role = "model"


@dataclass(slots=True)
class Turn:
    """Represents a single message in the conversation."""

    role: Role
    text: str


@dataclass
class ConversationStore:
    """Stores the ordered conversation history sent to the model on every call.

    The first turn, once seeded, carries the personality directive under the
    ``model`` role. Turns are only ever appended; :meth:`clear` is the one way
    to start over.
    """

    personality: str = DEFAULT_PERSONALITY
    turns: List[Turn] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self.snapshot())

    def append(self, role: Role, text: str) -> Turn:
        turn = Turn(role=role, text=text)
        self.turns.append(turn)
        return turn

    def seed(self, personality_override: str | None = None) -> bool:
        """Add the personality turn if the history is empty.

        The override only applies to the seeding call; it does not replace the
        stored default personality.
        """

        if self.turns:
            return False
        text = personality_override if personality_override is not None else self.personality
        self.append(MODEL_ROLE, text)
        _LOGGER.debug("Seeded conversation with personality directive")
        return True

    def set_personality(self, text: str) -> None:
        """Overwrite the first turn in place, or the pending default if empty.

        Turn 0 is rewritten whatever it holds. The default personality is left
        untouched while history exists, so a later :meth:`clear` reseeds with
        the previous default.
        """

        if self.turns:
            self.turns[0].text = text
        else:
            self.personality = text

    def discard_last(self, role: Role) -> bool:
        if self.turns and self.turns[-1].role == role:
            self.turns.pop()
            return True
        return False

    def snapshot(self) -> Tuple[Turn, ...]:
        return tuple(replace(turn) for turn in self.turns)

    def window(self, max_turns: int = 0) -> Tuple[Turn, ...]:
        """Return the turns to send, keeping the personality turn and at most ``max_turns`` more.

        The kept tail always starts on a user turn, so the personality turn is
        never followed by another model turn. A non-positive ``max_turns``
        returns the whole history.
        """

        history = self.snapshot()
        if max_turns <= 0 or len(history) <= max_turns + 1:
            return history
        tail = history[-max_turns:]
        while tail and tail[0].role == MODEL_ROLE:
            tail = tail[1:]
        return (history[0],) + tail

    def clear(self) -> None:
        self.turns.clear()
