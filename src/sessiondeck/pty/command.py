"""Command builder — what runs inside a new PTY.

Produces an argument vector (never a shell string) for either the user's
local interactive shell or a remote login through ssh. Password-assisted
login goes through ``sshpass`` and is kept only for hosts that do not accept
key-based authentication.
"""

from __future__ import annotations

import os
import pwd
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

DEFAULT_TERM = "xterm-256color"
DEFAULT_SSH_PORT = 22
FALLBACK_SHELL = "/bin/sh"


class RemoteTarget(BaseModel):
    """Where a remote session should log in to.

    Passed by value at open time; the session manager never persists it.
    """

    host: str
    user: str | None = None
    port: int = Field(default=DEFAULT_SSH_PORT, ge=0, le=65535)
    password: str | None = None

    @property
    def destination(self) -> str:
        """``user@host`` when a user is set, otherwise just the host."""
        if self.user:
            return f"{self.user}@{self.host}"
        return self.host


@dataclass
class CommandSpec:
    """Program, arguments and extra environment for a PTY child."""

    program: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]


def default_shell() -> str:
    """Resolve the user's interactive shell.

    ``$SHELL`` wins, then the passwd database entry, then ``/bin/sh``.
    """
    shell = os.environ.get("SHELL")
    if shell:
        return shell
    try:
        entry_shell = pwd.getpwuid(os.getuid()).pw_shell
    except KeyError:
        entry_shell = ""
    return entry_shell or FALLBACK_SHELL


def ssh_args(target: RemoteTarget) -> list[str]:
    """Arguments for ``ssh``, one token per argument."""
    return [
        "-o",
        "StrictHostKeyChecking=no",
        "-p",
        str(target.port),
        target.destination,
    ]


def build_command(
    target: RemoteTarget | None = None,
    shell: str | None = None,
    term: str = DEFAULT_TERM,
) -> CommandSpec:
    """Build the command for a PTY session.

    Args:
        target: Remote host to log in to, or None for a local shell.
        shell: Override for the local shell program.
        term: Value of ``TERM`` seen by the child.

    Returns:
        The command spec. The host is not validated here; callers reject
        empty hosts before reaching the builder.
    """
    env = {"TERM": term}

    if target is None:
        return CommandSpec(program=shell or default_shell(), env=env)

    if target.password:
        # sshpass -e reads SSHPASS so the password stays out of argv
        env["SSHPASS"] = target.password
        return CommandSpec(
            program="sshpass",
            args=["-e", "ssh", *ssh_args(target)],
            env=env,
        )

    return CommandSpec(program="ssh", args=ssh_args(target), env=env)
