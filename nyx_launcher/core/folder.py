# nyx_launcher/core/folder.py
"""Open a folder in the platform's file manager.

One implementation per OS, picked once by `folder_opener_for()`.
"""

from __future__ import annotations

import abc
import logging
import platform
import subprocess
from pathlib import Path
from typing import List, Optional

log = logging.getLogger(__name__)


class FolderOpener(abc.ABC):
    name: str = "generic"

    @abc.abstractmethod
    def command(self, folder: Path) -> List[str]:
        ...

    def open(self, folder: Path) -> None:
        folder = folder.expanduser().resolve()
        if not folder.is_dir():
            raise FileNotFoundError(f"Server folder not found: {folder}")

        cmd = self.command(folder)
        log.info("Opening %s with %s", folder, cmd[0])
        try:
            subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError as exc:
            raise RuntimeError(f"Failed to open folder: {exc}") from exc


class WindowsFolderOpener(FolderOpener):
    name = "windows"

    def command(self, folder: Path) -> List[str]:
        return ["explorer", str(folder)]


class MacFolderOpener(FolderOpener):
    name = "macos"

    def command(self, folder: Path) -> List[str]:
        return ["open", str(folder)]


class LinuxFolderOpener(FolderOpener):
    name = "linux"

    def command(self, folder: Path) -> List[str]:
        return ["xdg-open", str(folder)]


def folder_opener_for(system: Optional[str] = None) -> FolderOpener:
    system = system or platform.system()
    if system == "Windows":
        return WindowsFolderOpener()
    if system == "Darwin":
        return MacFolderOpener()
    # Linux, BSDs, everything else with a freedesktop session
    return LinuxFolderOpener()
