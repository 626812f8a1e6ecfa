"""Configuration — Pydantic models for sessiondeck settings."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field


class SessionConfig(BaseModel):
    """Embedded PTY session configuration."""

    shell: str | None = Field(
        default=None,
        description="Local shell for sessions without a remote target ($SHELL if unset)",
    )
    term: str = Field(default="xterm-256color", description="TERM seen by the child")
    initial_rows: int = Field(default=24, ge=1, le=65535)
    initial_cols: int = Field(default=80, ge=1, le=65535)
    chunk_size: int = Field(default=8192, ge=1, description="Max bytes per output event")
    auto_close_on_exit: bool = Field(
        default=False,
        description=(
            "Drop a session's registry entry as soon as its exit event is sent. "
            "When off, the entry (and its fds) stay until an explicit close."
        ),
    )


class LauncherConfig(BaseModel):
    """External terminal / editor programs."""

    terminal: str = Field(default="alacritty")
    editor: str = Field(default="code")
    opener: str | None = Field(
        default=None, description="File opener (platform default if unset)"
    )


class SessiondeckConfig(BaseModel):
    """Top-level sessiondeck configuration."""

    session: SessionConfig = Field(default_factory=SessionConfig)
    launcher: LauncherConfig = Field(default_factory=LauncherConfig)
    data_dir: str = Field(
        default="~/.sessiondeck", description="Directory for profiles and logs"
    )
    profiles_file: str = Field(default="profiles.json")
    log_file: str | None = Field(
        default=None, description="Append logs here in addition to stderr"
    )

    @property
    def profiles_path(self) -> Path:
        return Path(os.path.expanduser(self.data_dir)) / self.profiles_file

    @property
    def log_path(self) -> Path | None:
        if not self.log_file:
            return None
        return Path(os.path.expanduser(self.log_file))

    @classmethod
    def load(cls, config_path: str | None = None) -> SessiondeckConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            SESSIONDECK_SHELL       - Local shell for embedded sessions
            SESSIONDECK_TERMINAL    - External terminal emulator
            SESSIONDECK_EDITOR      - Editor command
            SESSIONDECK_DATA_DIR    - Directory holding profiles.json
            SESSIONDECK_LOG_FILE    - Log file path
            SESSIONDECK_AUTO_CLOSE  - "1"/"true" to drop sessions on exit
        """
        # .env in the working directory wins over stale shell exports
        load_dotenv(find_dotenv(usecwd=True), override=True)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        session = config_data.get("session", {})
        launcher = config_data.get("launcher", {})

        env_shell = os.environ.get("SESSIONDECK_SHELL")
        if env_shell:
            session["shell"] = env_shell

        env_auto_close = os.environ.get("SESSIONDECK_AUTO_CLOSE")
        if env_auto_close:
            session["auto_close_on_exit"] = env_auto_close.lower() in ("1", "true", "yes")

        env_terminal = os.environ.get("SESSIONDECK_TERMINAL")
        if env_terminal:
            launcher["terminal"] = env_terminal

        env_editor = os.environ.get("SESSIONDECK_EDITOR")
        if env_editor:
            launcher["editor"] = env_editor

        env_data_dir = os.environ.get("SESSIONDECK_DATA_DIR")
        if env_data_dir:
            config_data["data_dir"] = env_data_dir

        env_log_file = os.environ.get("SESSIONDECK_LOG_FILE")
        if env_log_file:
            config_data["log_file"] = env_log_file

        if session:
            config_data["session"] = session
        if launcher:
            config_data["launcher"] = launcher

        return cls.model_validate(config_data)
