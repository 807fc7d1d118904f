# nyx_launcher/core/models.py
"""
Nyx Launcher – shared data models
=================================

Everything the supervisor, the API routers and the UI layer pass around
is defined here as a **typed** value object.  Pydantic gives us
validation of user-supplied policy overrides and JSON serialisation for
the status endpoints.

Keep business logic out of this file – that belongs in the `core/`
modules (resolver, launcher, health, readiness, supervisor).
"""

from __future__ import annotations

import enum
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ──────────────────────────────────────────────
# 1. Candidates
# ──────────────────────────────────────────────
class CandidateKind(str, enum.Enum):
    script = "script"              # run through an interpreter
    executable = "executable"      # run directly


class ServerCandidate(BaseModel):
    """A server artifact that exists on disk."""
    model_config = ConfigDict(frozen=True)

    path: Path
    kind: CandidateKind

    @property
    def is_script(self) -> bool:
        return self.kind == CandidateKind.script


# ──────────────────────────────────────────────
# 2. Processes
# ──────────────────────────────────────────────
class StdioPolicy(str, enum.Enum):
    discard = "discard"
    capture = "capture"


class LifecycleState(str, enum.Enum):
    running = "running"
    exited_early = "exited_early"
    unknown = "unknown"


# ──────────────────────────────────────────────
# 3. Health
# ──────────────────────────────────────────────
class HealthStatus(str, enum.Enum):
    healthy = "healthy"
    unhealthy = "unhealthy"


class Readiness(str, enum.Enum):
    ready = "ready"
    timed_out = "timed_out"


# ──────────────────────────────────────────────
# 4. Supervision
# ──────────────────────────────────────────────
class SupervisorState(str, enum.Enum):
    idle = "idle"
    probing_existing_server = "probing_existing_server"
    launching_embedded = "launching_embedded"
    launching_external = "launching_external"
    waiting_for_readiness = "waiting_for_readiness"
    ready = "ready"
    failed = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SupervisorState.ready, SupervisorState.failed)


class LaunchSource(str, enum.Enum):
    existing = "existing"          # server was already answering
    embedded = "embedded"
    external = "external"


class SupervisionOutcome(BaseModel):
    """Result of one supervision attempt, handed to the host UI."""
    state: SupervisorState
    source: Optional[LaunchSource] = None
    candidate: Optional[ServerCandidate] = None
    pid: Optional[int] = None
    reason: Optional[str] = None   # human-readable, set when failed
    finished_at: datetime = Field(default_factory=datetime.now)

    @property
    def ready(self) -> bool:
        return self.state == SupervisorState.ready


# ──────────────────────────────────────────────
# 5. Policy
# ──────────────────────────────────────────────
# names a location template may use
TEMPLATE_PLACEHOLDERS: Dict[str, str] = {"resource_dir": "", "exe": ""}


class SupervisorPolicy(BaseModel):
    """
    Tunables for discovery, launch and readiness.

    Location templates may contain the placeholders `{resource_dir}` and
    `{exe}` (".exe" on Windows, empty elsewhere).  Relative templates are
    resolved against `base_dir`.
    """
    health_url: str = "http://localhost:3000/health"
    probe_timeout: float = Field(5.0, gt=0)
    readiness_probe_timeout: float = Field(0.8, gt=0)
    max_attempts: int = Field(30, ge=1)
    interval: float = Field(1.0, gt=0)
    grace_period: float = Field(3.0, ge=0)
    startup_delay: float = Field(2.0, ge=0)

    interpreters: Dict[str, str] = Field(
        default_factory=lambda: {".js": "node", ".mjs": "node", ".cjs": "node"}
    )
    external_locations: List[str] = Field(
        default_factory=lambda: [
            "./server/start.js",
            "../server/start.js",
            "./server/dist/nyx-server{exe}",
            "../server/dist/nyx-server{exe}",
            "nyx-server{exe}",
        ]
    )
    embedded_location: str = "{resource_dir}/nyx-server{exe}"
    base_dir: Optional[Path] = None      # None → current working directory
    server_dir: str = "./server"         # opened by "open server folder"

    @field_validator("interpreters")
    def _normalise_suffixes(cls, v: Dict[str, str]) -> Dict[str, str]:  # pylint: disable=no-self-argument
        return {
            (s if s.startswith(".") else f".{s}").lower(): cmd
            for s, cmd in v.items()
        }

    @field_validator("external_locations", "embedded_location", "server_dir")
    def _known_placeholders(cls, v):  # pylint: disable=no-self-argument
        for template in [v] if isinstance(v, str) else v:
            try:
                template.format(**TEMPLATE_PLACEHOLDERS)
            except (KeyError, IndexError, ValueError) as exc:
                raise ValueError(
                    f"bad location template {template!r}; only "
                    f"{{resource_dir}} and {{exe}} may be used ({exc!r})"
                ) from exc
        return v

    @model_validator(mode="after")
    def _probe_shorter_than_interval(self) -> "SupervisorPolicy":
        if self.readiness_probe_timeout >= self.interval:
            raise ValueError("readiness_probe_timeout must be shorter than interval")
        return self

    @property
    def readiness_budget(self) -> float:
        """Upper bound (seconds) on one readiness wait."""
        return self.max_attempts * self.interval
