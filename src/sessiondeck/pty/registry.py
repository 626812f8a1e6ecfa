"""Session registry — the table of open PTY sessions."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sessiondeck.pty.channel import PtyChannel
from sessiondeck.pty.command import RemoteTarget
from sessiondeck.pty.errors import RegistryUnavailable, SessionNotFound
from sessiondeck.pty.pump import ReaderPump

logger = logging.getLogger(__name__)


@dataclass
class SessionEntry:
    """One open session: its channel and the pump draining it."""

    id: str
    channel: PtyChannel
    pump: ReaderPump
    target: RemoteTarget | None = None


class SessionRegistry:
    """Thread-safe map of session id -> :class:`SessionEntry`.

    Every operation takes one exclusive lock, held only long enough to read
    or mutate the table; channel I/O always happens after it is released.
    If anything raises while the lock is held the registry is considered
    poisoned and refuses all later operations with
    :class:`RegistryUnavailable`.
    """

    def __init__(self) -> None:
        self._entries: dict[str, SessionEntry] = {}
        self._lock = threading.Lock()
        self._poisoned = False

    @contextmanager
    def _locked(self) -> Iterator[dict[str, SessionEntry]]:
        with self._lock:
            if self._poisoned:
                raise RegistryUnavailable("Session registry is unavailable")
            try:
                yield self._entries
            except BaseException:
                self._poisoned = True
                logger.error("Session registry poisoned by a failed operation")
                raise

    def insert(self, entry: SessionEntry) -> SessionEntry | None:
        """Store ``entry``, returning whatever it displaced."""
        with self._locked() as entries:
            previous = entries.get(entry.id)
            entries[entry.id] = entry
            return previous

    def get(self, session_id: str) -> SessionEntry:
        """Look up an open session.

        Raises:
            SessionNotFound: No session with this id is open.
        """
        with self._locked() as entries:
            entry = entries.get(session_id)
        if entry is None:
            raise SessionNotFound(session_id)
        return entry

    def remove(self, session_id: str) -> SessionEntry | None:
        """Remove and return a session, or None if it was not open."""
        with self._locked() as entries:
            return entries.pop(session_id, None)

    def discard(self, entry: SessionEntry) -> bool:
        """Remove ``entry`` only if it is still the one registered under its id."""
        with self._locked() as entries:
            if entries.get(entry.id) is entry:
                del entries[entry.id]
                return True
            return False

    def drain(self) -> list[SessionEntry]:
        """Remove and return every entry."""
        with self._locked() as entries:
            drained = list(entries.values())
            entries.clear()
            return drained

    def ids(self) -> list[str]:
        with self._locked() as entries:
            return list(entries.keys())

    def entries(self) -> list[SessionEntry]:
        with self._locked() as entries:
            return list(entries.values())

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    def __contains__(self, session_id: object) -> bool:
        if not isinstance(session_id, str):
            return False
        with self._locked() as entries:
            return session_id in entries

    def __len__(self) -> int:
        with self._locked() as entries:
            return len(entries)
