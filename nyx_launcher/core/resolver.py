# nyx_launcher/core/resolver.py
"""
Nyx Launcher – server candidate discovery
=========================================

Turns an ordered list of location templates into the *first* server
artifact that exists on disk.  Order is a priority policy: the search
stops at the first hit, later entries are never looked at.

Nothing found is a normal outcome (`None`), the supervisor simply moves
on to its next strategy.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path
from typing import Collection, Iterable, Mapping, Optional

from nyx_launcher.core.models import CandidateKind, ServerCandidate

log = logging.getLogger(__name__)


def exe_suffix() -> str:
    """Value of the `{exe}` placeholder."""
    return ".exe" if platform.system() == "Windows" else ""


class CandidateResolver:
    """
    `placeholders` fill `{name}` fields in templates (e.g. `resource_dir`,
    `exe`); `script_suffixes` decide which hits need an interpreter.
    """

    def __init__(
        self,
        script_suffixes: Collection[str],
        placeholders: Optional[Mapping[str, str]] = None,
        base_dir: Optional[Path] = None,
    ) -> None:
        self.script_suffixes = {s.lower() for s in script_suffixes}
        self.placeholders = dict(placeholders or {})
        self.base_dir = base_dir

    def expand(self, template: str) -> Path:
        """Raises KeyError, IndexError or ValueError on a malformed template."""
        path = Path(template.format(**self.placeholders)).expanduser()
        if not path.is_absolute():
            path = (self.base_dir or Path.cwd()) / path
        return path

    def describe(self, template: str) -> str:
        """`template` expanded for messages, or as written if it cannot be."""
        try:
            return str(self.expand(template))
        except (KeyError, IndexError, ValueError, RuntimeError):
            return template

    def kind_of(self, path: Path) -> CandidateKind:
        if path.suffix.lower() in self.script_suffixes:
            return CandidateKind.script
        return CandidateKind.executable

    def resolve(self, locations: Iterable[str]) -> Optional[ServerCandidate]:
        for template in locations:
            try:
                path = self.expand(template)
                found = path.is_file()
            except (KeyError, IndexError, ValueError, RuntimeError) as exc:
                log.warning("Skipping bad location template %r: %r", template, exc)
                continue
            except OSError as exc:
                log.warning("Cannot inspect %s: %s", template, exc)
                continue
            if found:
                log.info("Found server at %s", path)
                return ServerCandidate(path=path.resolve(), kind=self.kind_of(path))
            log.debug("No server at %s", path)
        return None
