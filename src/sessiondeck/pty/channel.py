"""PTY channel — one pseudo-terminal pair plus the child attached to it."""

from __future__ import annotations

import asyncio
import enum
import errno
import fcntl
import logging
import os
import pty
import struct
import subprocess
import termios

from sessiondeck.pty.command import CommandSpec
from sessiondeck.pty.errors import IoFailure, SpawnFailure

logger = logging.getLogger(__name__)

DEFAULT_ROWS = 24
DEFAULT_COLS = 80
REAP_TIMEOUT = 2.0


class ChannelState(enum.Enum):
    """Lifecycle states for a PTY channel."""

    CREATED = "created"
    RUNNING = "running"
    EXITED = "exited"  # Reader saw end-of-stream or a read error
    CLOSED = "closed"  # Released by an explicit close


def _set_winsize(fd: int, rows: int, cols: int) -> None:
    winsize = struct.pack("HHHH", rows, cols, 0, 0)
    fcntl.ioctl(fd, termios.TIOCSWINSZ, winsize)


def _claim_controlling_tty() -> None:
    # Runs in the child after setsid(); stdin is already the slave side.
    fcntl.ioctl(0, termios.TIOCSCTTY, 0)


class PtyChannel:
    """Owns the master side of a PTY and the handle of its child process.

    The slave side is closed in the parent right after spawning; the channel
    only ever reads and writes the master. The master fd is non-blocking and
    all waiting goes through the running event loop's reader/writer
    registrations, so a pending read can be woken by :meth:`close` even if
    the child never produces end-of-stream.
    """

    def __init__(
        self,
        master_fd: int,
        proc: subprocess.Popen | None,
        argv: list[str],
    ) -> None:
        self._master_fd = master_fd
        self._proc = proc
        self._argv = argv
        self._pid = proc.pid if proc is not None else 0
        self._returncode: int | None = None
        self._state = ChannelState.CREATED
        self._loop: asyncio.AbstractEventLoop | None = None
        self._waiters: dict[str, asyncio.Future[None]] = {}

    @classmethod
    def spawn(
        cls,
        spec: CommandSpec,
        rows: int = DEFAULT_ROWS,
        cols: int = DEFAULT_COLS,
    ) -> PtyChannel:
        """Allocate a PTY and start ``spec`` attached to its slave side.

        Raises:
            SpawnFailure: The PTY could not be opened or the child could not
                be started. No file descriptors are left open in that case.
        """
        try:
            master_fd, slave_fd = pty.openpty()
        except OSError as e:
            raise SpawnFailure(f"Failed to open PTY: {e}") from e

        env = {**os.environ, **spec.env}
        try:
            _set_winsize(master_fd, rows, cols)
            proc = subprocess.Popen(
                spec.argv,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                start_new_session=True,
                preexec_fn=_claim_controlling_tty,
                env=env,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            os.close(master_fd)
            raise SpawnFailure(f"Failed to spawn command: {e}") from e
        finally:
            # Parent never touches the slave side
            os.close(slave_fd)

        os.set_blocking(master_fd, False)

        channel = cls(master_fd, proc, spec.argv)
        channel._state = ChannelState.RUNNING
        logger.info(
            "PTY channel started: pid=%d size=%dx%d cmd=%s",
            channel.pid,
            rows,
            cols,
            spec.program,
        )
        return channel

    # -- I/O ---------------------------------------------------------------

    async def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes from the master.

        Returns ``b""`` on end-of-stream, which includes the EIO Linux
        reports once every slave fd is gone, and a closed channel.

        Raises:
            OSError: Any other read failure.
        """
        while True:
            if self._master_fd < 0:
                return b""
            try:
                return os.read(self._master_fd, size)
            except BlockingIOError:
                await asyncio.shield(self._watch("read"))
            except OSError as e:
                if e.errno == errno.EIO:
                    return b""
                raise

    async def write(self, data: bytes) -> None:
        """Write all of ``data`` to the master, waiting while the tty is full.

        Raises:
            IoFailure: The channel is closed or the OS rejected the write.
        """
        view = memoryview(data)
        while view:
            if self._master_fd < 0:
                raise IoFailure("Write failed: channel is closed")
            try:
                written = os.write(self._master_fd, view)
            except BlockingIOError:
                await asyncio.shield(self._watch("write"))
                continue
            except OSError as e:
                raise IoFailure(f"Write failed: {e}") from e
            view = view[written:]

    def resize(self, rows: int, cols: int) -> None:
        """Set the terminal geometry; the kernel signals SIGWINCH to the child.

        Raises:
            IoFailure: The channel is closed or the ioctl failed.
        """
        if self._master_fd < 0:
            raise IoFailure("Resize failed: channel is closed")
        try:
            _set_winsize(self._master_fd, rows, cols)
        except OSError as e:
            raise IoFailure(f"Resize failed: {e}") from e

    def _watch(self, direction: str) -> asyncio.Future[None]:
        """Future resolved once the master is readable/writable (or closed).

        Concurrent waiters in the same direction share one registration.
        """
        waiter = self._waiters.get(direction)
        if waiter is not None and not waiter.done():
            return waiter

        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        self._loop = loop
        self._waiters[direction] = waiter

        def _ready() -> None:
            self._unwatch(direction)

        if direction == "read":
            loop.add_reader(self._master_fd, _ready)
        else:
            loop.add_writer(self._master_fd, _ready)
        return waiter

    def _unwatch(self, direction: str) -> None:
        waiter = self._waiters.pop(direction, None)
        if waiter is None:
            return
        if self._loop is not None and self._master_fd >= 0:
            if direction == "read":
                self._loop.remove_reader(self._master_fd)
            else:
                self._loop.remove_writer(self._master_fd)
        if not waiter.done():
            waiter.set_result(None)

    # -- Lifecycle ---------------------------------------------------------

    def mark_exited(self) -> None:
        """Record end-of-stream. Only a running channel becomes EXITED."""
        if self._state is not ChannelState.RUNNING:
            return
        self._state = ChannelState.EXITED
        logger.info(
            "PTY channel exited: pid=%d code=%s", self._pid, self.returncode
        )

    def close(self) -> None:
        """Release the master fd.

        Does not signal the child. Closing the master hangs up the terminal,
        which is normally what ends it; a child that has not exited yet is
        kept for :meth:`reap`. Idempotent.
        """
        if self._state is ChannelState.CLOSED:
            return

        # Wake anyone parked on the fd before it goes away
        self._unwatch("read")
        self._unwatch("write")

        if self._master_fd >= 0:
            try:
                os.close(self._master_fd)
            except OSError as e:
                logger.debug("Error closing PTY master %d: %s", self._master_fd, e)
            self._master_fd = -1

        if self._proc is not None and self._proc.poll() is not None:
            self._returncode = self._proc.returncode
            self._proc = None
        self._state = ChannelState.CLOSED
        logger.info("PTY channel closed: pid=%d", self._pid)

    async def reap(self, timeout: float = REAP_TIMEOUT) -> int | None:
        """Collect the child after :meth:`close` so it does not linger as a zombie.

        The wait runs in a worker thread. Returns the exit status, or None if
        the child is still alive after ``timeout`` (it ignored the hangup).
        """
        proc = self._proc
        if proc is None:
            return self._returncode
        try:
            code = await asyncio.to_thread(proc.wait, timeout)
        except subprocess.TimeoutExpired:
            logger.warning(
                "PTY child %d still running %.1fs after hangup", self._pid, timeout
            )
            return None
        self._returncode = code
        self._proc = None
        logger.debug("PTY child reaped: pid=%d code=%s", self._pid, code)
        return code

    # -- Accessors ---------------------------------------------------------

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def argv(self) -> list[str]:
        return list(self._argv)

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def alive(self) -> bool:
        return self._state == ChannelState.RUNNING

    @property
    def returncode(self) -> int | None:
        """Exit status if the child has been reaped, else None."""
        if self._proc is None:
            return self._returncode
        return self._proc.poll()
