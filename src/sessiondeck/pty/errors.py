"""Errors raised by the PTY session manager."""

from __future__ import annotations


class SessionError(Exception):
    """Base class for session manager failures."""


class SessionNotFound(SessionError):
    """Raised when write/resize reference an identifier that is not open."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SpawnFailure(SessionError):
    """The pseudo-terminal could not be allocated or the child not spawned."""


class IoFailure(SessionError):
    """A write, flush or resize against a live channel failed."""


class RegistryUnavailable(SessionError):
    """The session registry lock was poisoned by a failed holder."""
