# nyx_launcher/core/config.py
"""
Nyx Launcher – central configuration helper
===========================================

All modules import *only* from this file when they need:
• application constants (name, version)
• resolved user-specific paths (logs/, config/) and the resource dir
• persisted user settings (window size, supervisor overrides, …)
• the effective supervision policy

This file does *not* perform any network or heavy I/O.  Directory
creation happens lazily (at import time) and should complete in
milliseconds.  Logging is configured only when the desktop entry point
asks for it.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
import platform
import shutil
import sys
from pathlib import Path
from typing import Any, Dict

from nyx_launcher.core.models import SupervisorPolicy

# ──────────────────────────────────────────────
# 1. Application constants
# ──────────────────────────────────────────────
APP_NAME: str = "Nyx Launcher"
APP_ID: str = "nyx-launcher"
LAUNCHER_VERSION: str = "0.1.0"

CONFIG_FILE_NAME = "settings.json"
LOG_FILE_NAME = "launcher.log"


# ──────────────────────────────────────────────
# 2. Directory resolution helpers
# ──────────────────────────────────────────────
def _home_base() -> Path:
    """Return the root folder for all user data (`~/.nyx/` on Unix,
    `%LOCALAPPDATA%\\Nyx\\` on Windows). Can be overridden with
    the env variable `NYX_HOME`."""
    if env := os.getenv("NYX_HOME"):
        return Path(env).expanduser().resolve()

    if platform.system() == "Windows":
        root = Path(os.getenv("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return (root / "Nyx").resolve()

    return (Path.home() / ".nyx").resolve()


def _resource_base() -> Path:
    """Directory holding bundled resources (the embedded server binary).

    `NYX_RESOURCE_DIR` wins; a PyInstaller build unpacks into
    `sys._MEIPASS`; from a source checkout it is the package's
    `resources/` folder.
    """
    if env := os.getenv("NYX_RESOURCE_DIR"):
        return Path(env).expanduser().resolve()
    if getattr(sys, "frozen", False):
        return Path(getattr(sys, "_MEIPASS", Path(sys.executable).parent)).resolve()
    return (Path(__file__).resolve().parent.parent / "resources").resolve()


BASE_DIR: Path = _home_base()
LOG_DIR: Path = BASE_DIR / "logs"
CONFIG_DIR: Path = BASE_DIR / "config"
RESOURCE_DIR: Path = _resource_base()

_ALL_DIRS = (LOG_DIR, CONFIG_DIR)


# ──────────────────────────────────────────────
# 3. Bootstrap – ensure folders exist
# ──────────────────────────────────────────────
def ensure_dirs() -> None:
    """Create any missing directories (no error if they exist)."""
    for d in _ALL_DIRS:
        d.mkdir(parents=True, exist_ok=True)


ensure_dirs()  # create on first import


# ──────────────────────────────────────────────
# 4. User settings (read / write)
# ──────────────────────────────────────────────
_CONFIG_PATH: Path = CONFIG_DIR / CONFIG_FILE_NAME
_DEFAULT_SETTINGS: Dict[str, Any] = {
    "window": {"width": 1024, "height": 640, "fullscreen": False},
    "supervisor": {},
}


def _load_raw() -> Dict[str, Any]:
    if _CONFIG_PATH.exists():
        try:
            with _CONFIG_PATH.open(encoding="utf-8") as fh:
                return json.load(fh)
        except (json.JSONDecodeError, OSError):
            # Backup the corrupted file before resetting
            backup = _CONFIG_PATH.with_suffix(".bak")
            shutil.copy2(_CONFIG_PATH, backup)
    return {}


def read_config() -> Dict[str, Any]:
    """Return merged settings (defaults overridden by user values)."""
    cfg = json.loads(json.dumps(_DEFAULT_SETTINGS))  # deep copy
    cfg.update(_load_raw())
    return cfg


def save_config(new_cfg: Dict[str, Any]) -> None:
    """Persist updated user settings atomically."""
    tmp = _CONFIG_PATH.with_suffix(".tmp")
    with tmp.open("w", encoding="utf-8") as fh:
        json.dump(new_cfg, fh, indent=2)
    tmp.replace(_CONFIG_PATH)


# ──────────────────────────────────────────────
# 5. Supervision policy
# ──────────────────────────────────────────────
def autostart_enabled() -> bool:
    """`NYX_AUTOSTART=0` keeps the launcher from supervising on boot."""
    return os.getenv("NYX_AUTOSTART", "1") != "0"


def supervisor_policy() -> SupervisorPolicy:
    """
    Effective policy: model defaults, then the `supervisor` section of
    settings.json, then environment overrides.
    """
    values: Dict[str, Any] = dict(read_config().get("supervisor") or {})

    if url := os.getenv("NYX_HEALTH_URL"):
        values["health_url"] = url
    if server_dir := os.getenv("NYX_SERVER_DIR"):
        values["server_dir"] = server_dir

    return SupervisorPolicy(**values)


# ──────────────────────────────────────────────
# 6. Logging
# ──────────────────────────────────────────────
_LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    """Console + rotating file (`logs/launcher.log`). Idempotent."""
    root = logging.getLogger("nyx_launcher")
    if root.handlers:
        return

    formatter = logging.Formatter(_LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    file_handler = logging.handlers.RotatingFileHandler(
        LOG_DIR / LOG_FILE_NAME, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    root.setLevel(level)


# ──────────────────────────────────────────────
# Unit-test helpers
# ──────────────────────────────────────────────
def _reset_for_tests(tmp_path: Path) -> None:  # pragma: no cover
    """Internal helper: redirect BASE_DIR during pytest."""
    global BASE_DIR, LOG_DIR, CONFIG_DIR, _CONFIG_PATH, _ALL_DIRS
    BASE_DIR = tmp_path
    LOG_DIR = BASE_DIR / "logs"
    CONFIG_DIR = BASE_DIR / "config"
    _ALL_DIRS = (LOG_DIR, CONFIG_DIR)
    _CONFIG_PATH = CONFIG_DIR / CONFIG_FILE_NAME
    ensure_dirs()
