# nyx_launcher/core/launcher.py
"""
Nyx Launcher – server process bootstrapper
==========================================

This module is *purely* responsible for turning a resolved
`ServerCandidate` into a command line and spawning it.

Public helpers
--------------
• ProcessLauncher.build_launch_cmd(candidate) -> List[str]
• ProcessLauncher.launch(candidate, cwd, stdio) -> ProcessHandle

Scripts run through the interpreter registered for their suffix, from
inside the script's own folder (servers load config relative to it).
Executables are started directly.  A failed spawn raises `SpawnFailure`
and is never retried here – the supervisor decides what to try next.
"""

from __future__ import annotations

import collections
import logging
import os
import subprocess
import sys
import threading
from pathlib import Path
from typing import IO, Deque, List, Mapping, Optional

from nyx_launcher.core.errors import SpawnFailure
from nyx_launcher.core.models import LifecycleState, ServerCandidate, StdioPolicy

log = logging.getLogger(__name__)

TAIL_LINES = 50


# ──────────────────────────────────────────────
# 1. Process handle
# ──────────────────────────────────────────────
def _drain(stream: IO[bytes], sink: Deque[str], label: str) -> None:
    with stream:
        for raw in iter(stream.readline, b""):
            line = raw.decode(errors="replace").rstrip()
            sink.append(line)
            log.debug("[%s] %s", label, line)


class ProcessHandle:
    """
    Live child process plus the tail of its captured output.

    Captured pipes are drained by daemon threads so a chatty server can
    never block on a full pipe.
    """

    def __init__(self, proc: subprocess.Popen, candidate: ServerCandidate) -> None:
        self.proc = proc
        self.candidate = candidate
        self.stdout_tail: Deque[str] = collections.deque(maxlen=TAIL_LINES)
        self.stderr_tail: Deque[str] = collections.deque(maxlen=TAIL_LINES)
        self._drainers: List[threading.Thread] = []

        for stream, sink, name in (
            (proc.stdout, self.stdout_tail, "stdout"),
            (proc.stderr, self.stderr_tail, "stderr"),
        ):
            if stream is None:
                continue
            t = threading.Thread(
                target=_drain,
                args=(stream, sink, f"pid {proc.pid} {name}"),
                daemon=True,
            )
            t.start()
            self._drainers.append(t)

    @property
    def pid(self) -> int:
        return self.proc.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.proc.poll()

    def lifecycle_state(self) -> LifecycleState:
        try:
            code = self.proc.poll()
        except OSError:
            return LifecycleState.unknown
        return LifecycleState.running if code is None else LifecycleState.exited_early

    def stderr_text(self, wait: float = 0.5) -> str:
        """Captured stderr tail; waits briefly for the drainers to catch up."""
        for t in self._drainers:
            t.join(timeout=wait)
        return "\n".join(self.stderr_tail)

    def terminate(self, timeout: float = 5.0) -> None:
        if self.proc.poll() is not None:
            return
        log.info("Terminating server process %s", self.pid)
        self.proc.terminate()
        try:
            self.proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            log.warning("Server process %s ignored SIGTERM, killing", self.pid)
            self.proc.kill()
            self.proc.wait()


# ──────────────────────────────────────────────
# 2. Launcher
# ──────────────────────────────────────────────
class ProcessLauncher:
    def __init__(
        self,
        interpreters: Mapping[str, str],
        env_overrides: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.interpreters = {k.lower(): v for k, v in interpreters.items()}
        self.env_overrides = dict(env_overrides or {})

    def build_launch_cmd(self, candidate: ServerCandidate) -> List[str]:
        """
        Compose the argument vector for subprocess.Popen().
        """
        if candidate.is_script:
            suffix = candidate.path.suffix.lower()
            try:
                interpreter = self.interpreters[suffix]
            except KeyError:
                raise SpawnFailure(f"No interpreter configured for '{suffix}' scripts") from None
            return [interpreter, str(candidate.path)]
        return [str(candidate.path)]

    def _prepare_env(self) -> dict:
        """
        Start with a clean copy of os.environ; add overrides if needed.
        """
        env = os.environ.copy()
        env.setdefault("NODE_ENV", "production")
        env.update(self.env_overrides)
        return env

    def launch(
        self,
        candidate: ServerCandidate,
        cwd: Optional[Path] = None,
        stdio: StdioPolicy = StdioPolicy.discard,
    ) -> ProcessHandle:
        """
        Spawn the server **non-blocking** and return its handle.

        Raises SpawnFailure (chained to the OSError) when the process
        cannot be created.
        """
        cmd = self.build_launch_cmd(candidate)
        if cwd is None and candidate.is_script:
            cwd = candidate.path.parent

        stream = subprocess.PIPE if stdio == StdioPolicy.capture else subprocess.DEVNULL
        creationflags = subprocess.CREATE_NO_WINDOW if sys.platform == "win32" else 0

        log.info("Starting server as %s: %s", candidate.kind.value, " ".join(cmd))
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(cwd) if cwd else None,
                env=self._prepare_env(),
                stdin=subprocess.DEVNULL,
                stdout=stream,
                stderr=stream,
                creationflags=creationflags,
            )
        except OSError as exc:
            raise SpawnFailure(f"Failed to start server from {candidate.path}: {exc}") from exc

        return ProcessHandle(proc, candidate)
