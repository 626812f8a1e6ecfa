"""PTY session management — embedded pseudo-terminal sessions.

Each session runs a local shell or a remote login inside its own PTY and
streams base64-encoded output chunks, followed by a single exit event, to
whoever consumes the session manager's events.
"""

from sessiondeck.pty.channel import ChannelState, PtyChannel
from sessiondeck.pty.command import CommandSpec, RemoteTarget, build_command
from sessiondeck.pty.errors import (
    IoFailure,
    RegistryUnavailable,
    SessionError,
    SessionNotFound,
    SpawnFailure,
)
from sessiondeck.pty.events import EventType, SessionEvent
from sessiondeck.pty.manager import SessionManager
from sessiondeck.pty.pump import ReaderPump
from sessiondeck.pty.registry import SessionEntry, SessionRegistry

__all__ = [
    "ChannelState",
    "CommandSpec",
    "EventType",
    "IoFailure",
    "PtyChannel",
    "ReaderPump",
    "RegistryUnavailable",
    "RemoteTarget",
    "SessionEntry",
    "SessionError",
    "SessionEvent",
    "SessionManager",
    "SessionNotFound",
    "SessionRegistry",
    "SpawnFailure",
    "build_command",
]
