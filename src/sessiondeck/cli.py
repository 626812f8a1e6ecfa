"""CLI entry point for sessiondeck."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import sys
import termios
import tty
import uuid
from pathlib import Path
from types import TracebackType

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from sessiondeck.config import SessiondeckConfig
from sessiondeck.fs.browser import BrowserError, list_directory
from sessiondeck.launcher import LaunchError, Launcher
from sessiondeck.profiles.store import ProfileNotFound, ProfileStore
from sessiondeck.pty.command import RemoteTarget
from sessiondeck.pty.errors import SessionError
from sessiondeck.pty.events import EventType
from sessiondeck.pty.manager import SessionManager
from sessiondeck.session.wire import Wire

app = typer.Typer(
    name="sessiondeck",
    help="Connection profiles and embedded terminal sessions.",
    no_args_is_help=True,
)

console = Console()
logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    verbose: bool = False,
    log_file: Path | None = None,
    stderr: bool = True,
) -> None:
    """Configure root logging and route uncaught exceptions into it.

    Args:
        verbose: DEBUG instead of INFO.
        log_file: Also append to this file (parent dirs are created).
        stderr: Keep the stderr handler. Raw-mode terminal sessions turn it
            off so log lines do not land in the middle of the screen.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = []
    if stderr:
        handlers.append(logging.StreamHandler())
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    if not handlers:
        handlers.append(logging.NullHandler())
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", handlers=handlers, force=True)
    sys.excepthook = _log_uncaught


def _log_uncaught(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    logging.getLogger("sessiondeck").critical(
        "Uncaught exception", exc_info=(exc_type, exc, tb)
    )


def _load(config_file: str | None) -> tuple[SessiondeckConfig, ProfileStore]:
    config = SessiondeckConfig.load(config_file)
    store = ProfileStore(config.profiles_path)
    store.load()
    return config, store


@app.command()
def attach(
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Saved profile id to log in to."
    ),
    host: str | None = typer.Option(None, "--host", help="Ad-hoc remote host."),
    user: str | None = typer.Option(None, "--user", "-u", help="Remote user."),
    port: int = typer.Option(22, "--port", help="Remote SSH port."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Path to config JSON file."
    ),
) -> None:
    """Run an embedded PTY session in this terminal."""
    config, store = _load(config_file)
    setup_logging(verbose, config.log_path, stderr=False)

    if host is not None and not host.strip():
        typer.echo("Error: --host must not be empty", err=True)
        raise typer.Exit(1)

    target: RemoteTarget | None = None
    if host and not profile:
        target = RemoteTarget(host=host, user=user, port=port)

    try:
        asyncio.run(_run_attached(config, store, target, profile))
    except (SessionError, ProfileNotFound) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


async def _run_attached(
    config: SessiondeckConfig,
    store: ProfileStore,
    target: RemoteTarget | None,
    profile_id: str | None = None,
) -> None:
    """Bridge the controlling terminal to one embedded session until it exits."""
    loop = asyncio.get_running_loop()
    wire = Wire()
    wire.attach_loop(loop)
    manager = SessionManager(wire=wire, config=config.session, profiles=store)
    session_id = uuid.uuid4().hex[:8]
    queue = wire.subscribe()

    if profile_id:
        await manager.open_profile(session_id, profile_id)
    else:
        await manager.open(session_id, target)

    stdin_fd = sys.stdin.fileno()
    stdout_fd = sys.stdout.fileno()
    interactive = os.isatty(stdin_fd)
    saved_attrs = termios.tcgetattr(stdin_fd) if interactive else None

    def _sync_size() -> None:
        size = os.get_terminal_size(stdout_fd)
        manager.resize(session_id, size.lines, size.columns)

    pending: asyncio.Queue[bytes] = asyncio.Queue()

    def _on_stdin() -> None:
        data = os.read(stdin_fd, 1024)
        if not data:
            loop.remove_reader(stdin_fd)
            return
        pending.put_nowait(data)

    async def _forward() -> None:
        # Single writer so a partially written chunk finishes before the next
        while True:
            data = await pending.get()
            try:
                await manager.write(session_id, data)
            except SessionError as e:
                logger.warning("Input for session %s dropped: %s", session_id, e)

    writer = loop.create_task(_forward(), name=f"stdin-{session_id}")

    try:
        if interactive:
            tty.setraw(stdin_fd)
            _sync_size()
            loop.add_signal_handler(signal.SIGWINCH, _sync_size)
        loop.add_reader(stdin_fd, _on_stdin)

        while True:
            event = await queue.get()
            if event is None or event.type == EventType.EXIT:
                break
            os.write(stdout_fd, event.decoded())
    finally:
        loop.remove_reader(stdin_fd)
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer
        if interactive:
            loop.remove_signal_handler(signal.SIGWINCH)
            termios.tcsetattr(stdin_fd, termios.TCSADRAIN, saved_attrs)
        await manager.close_all()
        wire.close()


@app.command()
def profiles(
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Path to config JSON file."
    ),
) -> None:
    """List saved connection profiles."""
    _config, store = _load(config_file)

    table = Table(title="Profiles")
    table.add_column("id", style="dim")
    table.add_column("name")
    table.add_column("destination")
    table.add_column("port", justify="right")
    table.add_column("tags")
    table.add_column("last used")
    for p in store.list():
        table.add_row(
            p.id,
            ("* " if p.favorite else "") + p.name,
            p.to_target().destination,
            str(p.port or 22),
            ", ".join(p.tags),
            p.last_used_at.isoformat(timespec="seconds") if p.last_used_at else "",
        )
    console.print(table)


@app.command("add-profile")
def add_profile(
    csv_line: str = typer.Argument(help="name,host,user,password (user/password optional)."),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Path to config JSON file."
    ),
) -> None:
    """Add a profile from a CSV line."""
    _config, store = _load(config_file)
    try:
        profile = store.add_from_csv(csv_line)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Added {profile.name} ({profile.id})")


@app.command()
def connect(
    profile_id: str = typer.Argument(help="Saved profile id."),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Path to config JSON file."
    ),
) -> None:
    """Open a profile in an external terminal window."""
    config, store = _load(config_file)
    setup_logging(log_file=config.log_path)
    launcher = Launcher.from_config(config.launcher)
    try:
        profile = store.get(profile_id)
        launcher.connect(profile)
        store.touch(profile_id)
    except (ProfileNotFound, LaunchError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def local(
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Path to config JSON file."
    ),
) -> None:
    """Open a local shell in an external terminal window."""
    config = SessiondeckConfig.load(config_file)
    try:
        Launcher.from_config(config.launcher).open_local_terminal()
    except LaunchError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def ls(
    path: str | None = typer.Argument(None, help="Directory (default: cwd)."),
) -> None:
    """List a directory, folders first."""
    try:
        entries = list_directory(path)
    except BrowserError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    for entry in entries:
        if entry.is_dir:
            console.print(f"[bold blue]{escape(entry.name)}/[/]")
        else:
            console.print(entry.name, markup=False)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
