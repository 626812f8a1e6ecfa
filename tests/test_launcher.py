"""Tests for sessiondeck.launcher (process spawning is mocked)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from sessiondeck.config import LauncherConfig
from sessiondeck.launcher import LaunchError, Launcher
from sessiondeck.profiles.store import ServerProfile


@pytest.fixture
def popen():
    with patch("sessiondeck.launcher.subprocess.Popen") as mock_popen:
        mock_popen.return_value = MagicMock(pid=4242)
        yield mock_popen


class TestConnect:
    def test_key_auth(self, popen: MagicMock) -> None:
        profile = ServerProfile(name="n", host="h", user="u", port=2022)
        Launcher(terminal="alacritty").connect(profile)
        argv = popen.call_args.args[0]
        assert argv == [
            "alacritty", "-e", "ssh",
            "-o", "StrictHostKeyChecking=no", "-p", "2022", "u@h",
        ]
        assert popen.call_args.kwargs["env"] is None
        assert popen.call_args.kwargs["start_new_session"] is True

    def test_password_via_env(self, popen: MagicMock) -> None:
        profile = ServerProfile(name="n", host="h", password="p'w\"d")
        Launcher().connect(profile)
        argv = popen.call_args.args[0]
        assert argv[:5] == ["alacritty", "-e", "sshpass", "-e", "ssh"]
        assert "p'w\"d" not in argv
        assert popen.call_args.kwargs["env"]["SSHPASS"] == "p'w\"d"


class TestOtherLaunches:
    def test_local_terminal(self, popen: MagicMock) -> None:
        Launcher(terminal="kitty").open_local_terminal()
        assert popen.call_args.args[0] == ["kitty"]

    def test_editor_remote(self, popen: MagicMock) -> None:
        profile = ServerProfile(name="n", host="h", user="u")
        Launcher().open_editor(profile)
        assert popen.call_args.args[0] == ["code", "--remote", "ssh-remote+u@h", "/"]

    def test_editor_local(self, popen: MagicMock) -> None:
        Launcher(editor="subl").open_editor()
        assert popen.call_args.args[0] == ["subl"]

    def test_open_file_and_in_editor(self, popen: MagicMock) -> None:
        launcher = Launcher(opener="xdg-open")
        launcher.open_file("/tmp/x.txt")
        assert popen.call_args.args[0] == ["xdg-open", "/tmp/x.txt"]
        launcher.open_in_editor("/tmp/x.txt")
        assert popen.call_args.args[0] == ["code", "/tmp/x.txt"]

    def test_from_config(self) -> None:
        launcher = Launcher.from_config(LauncherConfig(terminal="wezterm", editor="vim"))
        assert launcher.terminal == "wezterm"
        assert launcher.editor == "vim"
        assert launcher.opener in ("open", "xdg-open")


class TestLaunchFailure:
    def test_missing_program(self, popen: MagicMock) -> None:
        popen.side_effect = FileNotFoundError(2, "No such file", "alacritty")
        with pytest.raises(LaunchError, match="Failed to launch local terminal"):
            Launcher().open_local_terminal()
