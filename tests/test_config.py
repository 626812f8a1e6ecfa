"""Tests for sessiondeck.config.SessiondeckConfig."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from sessiondeck.config import SessionConfig, SessiondeckConfig

_ENV_VARS = (
    "SESSIONDECK_SHELL",
    "SESSIONDECK_TERMINAL",
    "SESSIONDECK_EDITOR",
    "SESSIONDECK_DATA_DIR",
    "SESSIONDECK_LOG_FILE",
    "SESSIONDECK_AUTO_CLOSE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    # Keep load_dotenv from picking up a developer's .env
    monkeypatch.chdir(tmp_path)


class TestDefaults:
    def test_session_defaults(self) -> None:
        config = SessionConfig()
        assert config.initial_rows == 24
        assert config.initial_cols == 80
        assert config.chunk_size == 8192
        assert config.term == "xterm-256color"
        assert config.auto_close_on_exit is False
        assert config.shell is None

    def test_load_without_file(self) -> None:
        config = SessiondeckConfig.load()
        assert config.launcher.terminal == "alacritty"
        assert config.profiles_path.name == "profiles.json"
        assert config.log_path is None


class TestLoad:
    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "session": {"shell": "/bin/bash", "initial_rows": 30},
                    "launcher": {"terminal": "kitty"},
                    "data_dir": str(tmp_path / "data"),
                }
            )
        )
        config = SessiondeckConfig.load(str(path))
        assert config.session.shell == "/bin/bash"
        assert config.session.initial_rows == 30
        assert config.launcher.terminal == "kitty"
        assert config.profiles_path == tmp_path / "data" / "profiles.json"

    def test_env_overrides_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"session": {"shell": "/bin/bash"}}))
        monkeypatch.setenv("SESSIONDECK_SHELL", "/bin/zsh")
        monkeypatch.setenv("SESSIONDECK_TERMINAL", "foot")
        monkeypatch.setenv("SESSIONDECK_EDITOR", "nvim")
        monkeypatch.setenv("SESSIONDECK_AUTO_CLOSE", "true")
        monkeypatch.setenv("SESSIONDECK_LOG_FILE", str(tmp_path / "deck.log"))

        config = SessiondeckConfig.load(str(path))
        assert config.session.shell == "/bin/zsh"
        assert config.session.auto_close_on_exit is True
        assert config.launcher.terminal == "foot"
        assert config.launcher.editor == "nvim"
        assert config.log_path == tmp_path / "deck.log"

    def test_missing_file_falls_back_to_defaults(self, tmp_path: Path) -> None:
        config = SessiondeckConfig.load(str(tmp_path / "absent.json"))
        assert config.session.shell is None

    def test_invalid_geometry_rejected(self) -> None:
        with pytest.raises(ValueError):
            SessionConfig(initial_rows=0)
