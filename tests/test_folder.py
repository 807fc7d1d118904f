"""Per-OS folder openers."""

import subprocess

import pytest

from nyx_launcher.core import folder
from nyx_launcher.core.folder import (
    LinuxFolderOpener,
    MacFolderOpener,
    WindowsFolderOpener,
    folder_opener_for,
)


@pytest.mark.parametrize(
    "system, cls",
    [
        ("Windows", WindowsFolderOpener),
        ("Darwin", MacFolderOpener),
        ("Linux", LinuxFolderOpener),
        ("FreeBSD", LinuxFolderOpener),
    ],
)
def test_opener_selected_per_system(system, cls):
    assert isinstance(folder_opener_for(system), cls)


@pytest.mark.parametrize(
    "opener, program",
    [(WindowsFolderOpener(), "explorer"), (MacFolderOpener(), "open"), (LinuxFolderOpener(), "xdg-open")],
)
def test_command_per_platform(opener, program, tmp_path):
    assert opener.command(tmp_path) == [program, str(tmp_path)]


def test_open_spawns_command(monkeypatch, tmp_path):
    calls = []
    monkeypatch.setattr(folder.subprocess, "Popen", lambda cmd, **kw: calls.append(cmd))

    LinuxFolderOpener().open(tmp_path)

    assert calls == [["xdg-open", str(tmp_path.resolve())]]


def test_missing_folder(tmp_path):
    with pytest.raises(FileNotFoundError):
        LinuxFolderOpener().open(tmp_path / "nope")


def test_launch_error_becomes_runtime_error(monkeypatch, tmp_path):
    def boom(cmd, **kw):
        raise FileNotFoundError(2, "No such file or directory", cmd[0])

    monkeypatch.setattr(folder.subprocess, "Popen", boom)

    with pytest.raises(RuntimeError, match="Failed to open folder"):
        MacFolderOpener().open(tmp_path)
