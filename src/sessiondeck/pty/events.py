"""Output events emitted by reader pumps."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from sessiondeck.pty.codec import decode


class EventType(enum.Enum):
    OUTPUT = "output"
    EXIT = "exit"


@dataclass(frozen=True)
class SessionEvent:
    """A single event for one session.

    ``data`` is the base64-encoded output chunk for OUTPUT events and None
    for EXIT events.
    """

    type: EventType
    session_id: str
    data: str | None = None

    @classmethod
    def output(cls, session_id: str, encoded_chunk: str) -> SessionEvent:
        return cls(type=EventType.OUTPUT, session_id=session_id, data=encoded_chunk)

    @classmethod
    def exit(cls, session_id: str) -> SessionEvent:
        return cls(type=EventType.EXIT, session_id=session_id)

    @property
    def topic(self) -> str:
        """Event name as seen by the UI, e.g. ``pty-output-<id>``."""
        return f"pty-{self.type.value}-{self.session_id}"

    def decoded(self) -> bytes:
        """Raw bytes of an output chunk (empty for exit events)."""
        if self.data is None:
            return b""
        return decode(self.data)
