"""Wire protocol — decouples PTY sessions from the UI surface.

Reader pumps emit output and exit events onto the wire; UI consumers
subscribe and render them. Every event is tagged with its session id and
carries the topic name the host shell routes on.
"""

from __future__ import annotations

import asyncio

from sessiondeck.pty.events import EventType, SessionEvent

__all__ = ["EventType", "SessionEvent", "Wire"]


class Wire:
    """Async message bus: PTY sessions -> UI subscribers.

    Multi-producer, multi-consumer broadcast. ``send`` may be called from
    any thread once a loop is attached; delivery then hops onto that loop.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._subscribers: list[asyncio.Queue[SessionEvent | None]] = []
        self._closed: bool = False
        self._loop = loop

    def attach_loop(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Bind the wire to the loop its subscribers consume on."""
        self._loop = loop or asyncio.get_running_loop()

    def send(self, event: SessionEvent) -> None:
        """Send an event to all subscribers.

        Silently drops events after ``close()`` has been called.
        """
        if self._closed:
            return
        if self._loop is not None and not self._on_loop_thread():
            self._loop.call_soon_threadsafe(self._deliver, event)
        else:
            self._deliver(event)

    def _deliver(self, event: SessionEvent | None) -> None:
        for q in self._subscribers:
            q.put_nowait(event)

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def send_output(self, session_id: str, encoded_chunk: str) -> None:
        self.send(SessionEvent.output(session_id, encoded_chunk))

    def send_exit(self, session_id: str) -> None:
        self.send(SessionEvent.exit(session_id))

    def subscribe(self) -> asyncio.Queue[SessionEvent | None]:
        """Subscribe to events. Returns a queue to read from."""
        q: asyncio.Queue[SessionEvent | None] = asyncio.Queue()
        self._subscribers.append(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        """Unsubscribe from events."""
        if q in self._subscribers:
            self._subscribers.remove(q)

    def close(self) -> None:
        """Signal all subscribers that the wire is closing."""
        self._closed = True
        for q in self._subscribers:
            q.put_nowait(None)

    @property
    def closed(self) -> bool:
        return self._closed
