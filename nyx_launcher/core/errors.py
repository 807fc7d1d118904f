# nyx_launcher/core/errors.py
"""Failure taxonomy of the sidecar supervisor.

Every error carries a message fit to show the user as-is.  Transport
errors of the health probe never appear here: the probe folds them into
`HealthStatus.unhealthy`.
"""

from __future__ import annotations

from typing import Optional


class SupervisorError(Exception):
    """Base class; `str(exc)` is the human-readable reason."""


class CandidateNotFound(SupervisorError):
    pass


class SpawnFailure(SupervisorError):
    """The OS refused to create the process (chained to the OSError)."""


class EarlyExit(SpawnFailure):
    """Process died during its grace period."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr_tail: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr_tail = stderr_tail


class HealthCheckTimeout(SupervisorError):
    pass


class SupervisorBusy(SupervisorError):
    """A supervision attempt is already in flight."""
