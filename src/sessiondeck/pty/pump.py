"""Reader pump — drains one PTY channel into encoded output events."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from sessiondeck.pty.channel import PtyChannel
from sessiondeck.pty.codec import encode
from sessiondeck.pty.events import SessionEvent

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192

EventSink = Callable[[SessionEvent], None]


class ReaderPump:
    """One asyncio task per open session, reading until end-of-stream.

    Emits ``output`` events in exactly the order bytes come off the master,
    one event per read of at most ``chunk_size`` bytes, then exactly one
    ``exit`` event. End-of-stream, a read error and cancellation all end the
    stream the same way. The pump never touches the session registry; the
    optional ``on_exit`` hook runs after the exit event has been emitted.
    """

    def __init__(
        self,
        session_id: str,
        channel: PtyChannel,
        sink: EventSink,
        chunk_size: int = CHUNK_SIZE,
        on_exit: Callable[[ReaderPump], None] | None = None,
    ) -> None:
        self.session_id = session_id
        self._channel = channel
        self._sink = sink
        self._chunk_size = chunk_size
        self._on_exit = on_exit
        self._task: asyncio.Task | None = None
        self._exited = False

    def start(self) -> None:
        """Start draining. Must be called from the event loop."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(
            self._run(), name=f"pty-pump-{self.session_id}"
        )

    async def _run(self) -> None:
        try:
            while True:
                try:
                    data = await self._channel.read(self._chunk_size)
                except OSError as e:
                    logger.debug("PTY reader %s failed: %s", self.session_id, e)
                    break

                if not data:
                    break

                self._emit(SessionEvent.output(self.session_id, encode(data)))
        finally:
            self._channel.mark_exited()
            self._finish()

    def _finish(self) -> None:
        if self._exited:
            return
        self._exited = True
        self._emit(SessionEvent.exit(self.session_id))
        logger.info("PTY session %s stream ended", self.session_id)

        if self._on_exit:
            try:
                self._on_exit(self)
            except Exception:
                logger.exception("Error in on_exit hook for session %s", self.session_id)

    def _emit(self, event: SessionEvent) -> None:
        try:
            self._sink(event)
        except Exception as e:
            # Consumer gone; keep draining so the child is not blocked on a full tty
            logger.debug("Dropped %s event for %s: %s", event.type.value, self.session_id, e)

    def cancel(self) -> None:
        """Stop draining. The exit event is still emitted, exactly once."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the drain task to finish, however it ends."""
        if self._task is not None:
            await asyncio.wait({self._task})
        # A task cancelled before its first step never runs its finally block
        if not self._exited:
            self._channel.mark_exited()
            self._finish()

    @property
    def exited(self) -> bool:
        return self._exited

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
