"""External launcher — terminal windows and editors outside the app.

Everything is started as a detached child with an explicit argument vector;
nothing is routed through ``sh -c``.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from typing import TYPE_CHECKING

from sessiondeck.pty.command import ssh_args

if TYPE_CHECKING:
    from sessiondeck.config import LauncherConfig
    from sessiondeck.profiles.store import ServerProfile

logger = logging.getLogger(__name__)


class LaunchError(Exception):
    """An external program could not be started."""


def _default_opener() -> str:
    return "open" if sys.platform == "darwin" else "xdg-open"


class Launcher:
    """Starts external terminal emulators, editors and file openers."""

    def __init__(
        self,
        terminal: str = "alacritty",
        editor: str = "code",
        opener: str | None = None,
    ) -> None:
        self.terminal = terminal
        self.editor = editor
        self.opener = opener or _default_opener()

    @classmethod
    def from_config(cls, config: LauncherConfig) -> Launcher:
        return cls(terminal=config.terminal, editor=config.editor, opener=config.opener)

    def connect(self, profile: ServerProfile) -> subprocess.Popen:
        """Open a terminal window logged in to ``profile``'s host."""
        target = profile.to_target()
        env: dict[str, str] | None = None
        if target.password:
            env = {**os.environ, "SSHPASS": target.password}
            argv = [self.terminal, "-e", "sshpass", "-e", "ssh", *ssh_args(target)]
        else:
            argv = [self.terminal, "-e", "ssh", *ssh_args(target)]
        return self._spawn(argv, "connection", env=env)

    def open_local_terminal(self) -> subprocess.Popen:
        return self._spawn([self.terminal], "local terminal")

    def open_editor(self, profile: ServerProfile | None = None) -> subprocess.Popen:
        """Start the editor, attached to ``profile``'s host over SSH if given."""
        if profile is None:
            return self._spawn([self.editor], "editor")
        destination = profile.to_target().destination
        return self._spawn(
            [self.editor, "--remote", f"ssh-remote+{destination}", "/"], "editor"
        )

    def open_file(self, path: str) -> subprocess.Popen:
        """Open ``path`` with the desktop's default application."""
        return self._spawn([self.opener, path], "file")

    def open_in_editor(self, path: str) -> subprocess.Popen:
        return self._spawn([self.editor, path], "editor")

    def _spawn(
        self,
        argv: list[str],
        what: str,
        env: dict[str, str] | None = None,
    ) -> subprocess.Popen:
        try:
            proc = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
                env=env,
            )
        except OSError as e:
            raise LaunchError(f"Failed to launch {what}: {e}") from e
        logger.info("Launched %s: pid=%d cmd=%s", what, proc.pid, argv[0])
        return proc
