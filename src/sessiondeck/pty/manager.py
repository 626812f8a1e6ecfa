"""Session manager — open, write, resize and close PTY sessions."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from sessiondeck.config import SessionConfig
from sessiondeck.pty.channel import PtyChannel
from sessiondeck.pty.command import RemoteTarget, build_command
from sessiondeck.pty.errors import SessionError
from sessiondeck.pty.events import SessionEvent
from sessiondeck.pty.pump import EventSink, ReaderPump
from sessiondeck.pty.registry import SessionEntry, SessionRegistry

if TYPE_CHECKING:
    from sessiondeck.profiles.store import ProfileStore
    from sessiondeck.session.wire import Wire

logger = logging.getLogger(__name__)

_UINT16_MAX = 65535


class SessionManager:
    """Public surface for embedded terminal sessions.

    Coordinates the command builder, PTY channels, reader pumps and the
    session registry. The registry is injected so callers (and tests) own
    its lifetime; events go to ``sink`` or, if only a wire is given, to
    ``wire.send``.

    Behaviour worth knowing:
    - Opening an id that is already open closes the old session first, so
      its exit event is delivered before any output of the new one.
    - A session whose process exits stays registered until ``close`` unless
      ``config.auto_close_on_exit`` is set.
    """

    def __init__(
        self,
        registry: SessionRegistry | None = None,
        sink: EventSink | None = None,
        config: SessionConfig | None = None,
        wire: Wire | None = None,
        profiles: ProfileStore | None = None,
    ) -> None:
        self._registry = registry if registry is not None else SessionRegistry()
        self._config = config or SessionConfig()
        self._profiles = profiles
        if sink is None and wire is not None:
            sink = wire.send
        self._sink: EventSink = sink or _discard
        self._reaping: set[asyncio.Task] = set()

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    async def open(self, session_id: str, target: RemoteTarget | None = None) -> None:
        """Spawn a session and start streaming its output.

        Raises:
            SpawnFailure: The PTY or the child could not be created. Nothing
                is registered in that case.
            RegistryUnavailable: The registry is poisoned.
        """
        if session_id in self._registry:
            logger.warning("Session %s already open, replacing it", session_id)
            await self.close(session_id)

        spec = build_command(target, shell=self._config.shell, term=self._config.term)
        channel = PtyChannel.spawn(
            spec,
            rows=self._config.initial_rows,
            cols=self._config.initial_cols,
        )

        pump = ReaderPump(
            session_id,
            channel,
            self._sink,
            chunk_size=self._config.chunk_size,
            on_exit=self._on_pump_exit if self._config.auto_close_on_exit else None,
        )
        entry = SessionEntry(id=session_id, channel=channel, pump=pump, target=target)

        try:
            displaced = self._registry.insert(entry)
        except Exception:
            channel.close()
            self._reap_later(channel)
            raise
        if displaced is not None:
            # Raced with another open of the same id
            displaced.pump.cancel()
            displaced.channel.close()
            self._reap_later(displaced.channel)

        pump.start()
        logger.info(
            "Opened session %s (%s)",
            session_id,
            target.destination if target else "local",
        )

    async def open_profile(self, session_id: str, profile_id: str) -> None:
        """Open a remote session for a saved profile.

        Raises:
            ProfileNotFound: Unknown profile id.
            RuntimeError: The manager was built without a profile store.
        """
        if self._profiles is None:
            raise RuntimeError("No profile store configured")
        profile = self._profiles.touch(profile_id)
        await self.open(session_id, profile.to_target())

    async def write(self, session_id: str, data: bytes | str) -> None:
        """Write input to a session.

        Raises:
            SessionNotFound: ``session_id`` is not open.
            IoFailure: The write failed; the session stays open.
        """
        entry = self._registry.get(session_id)
        if isinstance(data, str):
            data = data.encode()
        await entry.channel.write(data)

    def resize(self, session_id: str, rows: int, cols: int) -> None:
        """Change a session's terminal geometry. Emits no event.

        Raises:
            SessionNotFound: ``session_id`` is not open.
            IoFailure: The resize ioctl failed.
            ValueError: rows/cols outside 0..65535.
        """
        for name, value in (("rows", rows), ("cols", cols)):
            if not 0 <= value <= _UINT16_MAX:
                raise ValueError(f"{name} must be between 0 and {_UINT16_MAX}, got {value}")
        entry = self._registry.get(session_id)
        entry.channel.resize(rows, cols)

    async def close(self, session_id: str) -> None:
        """Close a session. Unknown or already closed ids are a no-op.

        Returns once the session's exit event has been emitted and its
        child has been reaped (or has outlived the reap timeout).
        """
        entry = self._registry.remove(session_id)
        if entry is None:
            return
        await self._release(entry)
        logger.info("Closed session %s", session_id)

    async def close_all(self) -> None:
        """Close every session. Called on shutdown."""
        for entry in self._registry.drain():
            await self._release(entry)
        if self._reaping:
            await asyncio.wait(set(self._reaping))
        logger.info("All PTY sessions closed")

    async def _release(self, entry: SessionEntry) -> None:
        entry.pump.cancel()
        entry.channel.close()
        await entry.pump.wait()
        await entry.channel.reap()

    def _on_pump_exit(self, pump: ReaderPump) -> None:
        try:
            entry = self._registry.get(pump.session_id)
        except SessionError:
            return
        if entry.pump is pump and self._registry.discard(entry):
            entry.channel.close()
            logger.info("Session %s removed after exit", pump.session_id)
            self._reap_later(entry.channel)

    def _reap_later(self, channel: PtyChannel) -> None:
        task = asyncio.get_running_loop().create_task(channel.reap())
        self._reaping.add(task)
        task.add_done_callback(self._reaping.discard)

    def list_sessions(self) -> list[dict[str, Any]]:
        """Snapshot of open sessions."""
        return [
            {
                "id": e.id,
                "pid": e.channel.pid,
                "state": e.channel.state.value,
                "destination": e.target.destination if e.target else None,
            }
            for e in self._registry.entries()
        ]

    def __len__(self) -> int:
        return len(self._registry)


def _discard(event: SessionEvent) -> None:
    pass
