# nyx_launcher/api/settings.py
"""
Nyx Launcher – user settings API
================================

Persists launcher settings (window preferences and supervisor
overrides) in `~/.nyx/config/settings.json` using the helpers defined in
*nyx_launcher/core/config.py*.

Routes
------
GET  /api/settings
    -> returns current settings (merged with defaults).

POST /api/settings
    -> body: SettingsUpdate
    -> merges with existing data, saves to disk, returns updated object.

Supervisor overrides take effect the next time the launcher starts.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field, ValidationError

from nyx_launcher.core import config
from nyx_launcher.core.models import SupervisorPolicy

router = APIRouter(tags=["settings"])


# ──────────────────────────────────────────────
# Data models
# ──────────────────────────────────────────────
class WindowPref(BaseModel):
    width: int = Field(1024, ge=640, le=3840)
    height: int = Field(640, ge=480, le=2160)
    fullscreen: bool = False


class SupervisorOverrides(BaseModel):
    health_url: Optional[str] = None
    max_attempts: Optional[int] = Field(None, ge=1)
    readiness_probe_timeout: Optional[float] = Field(None, gt=0)
    interval: Optional[float] = Field(None, gt=0)
    grace_period: Optional[float] = Field(None, ge=0)
    interpreters: Optional[Dict[str, str]] = None
    external_locations: Optional[List[str]] = None
    server_dir: Optional[str] = None


class Settings(BaseModel):
    window: WindowPref = WindowPref()
    supervisor: SupervisorOverrides = SupervisorOverrides()


class SettingsUpdate(BaseModel):
    window: Optional[WindowPref] = None
    supervisor: Optional[SupervisorOverrides] = None


# ──────────────────────────────────────────────
# Helper
# ──────────────────────────────────────────────
def _merge(existing: Dict, update: SettingsUpdate) -> Dict:
    data = existing.copy()
    up = update.model_dump(exclude_unset=True)

    for key, val in up.items():
        if isinstance(val, dict) and isinstance(data.get(key), dict):
            data[key].update({k: v for k, v in val.items() if v is not None})
        else:
            data[key] = val
    return data


# ──────────────────────────────────────────────
# Routes
# ──────────────────────────────────────────────
@router.get("/settings", response_model=Settings)
async def get_settings():
    """
    Return the currently effective settings (defaults overwritten by user file).
    """
    return Settings(**config.read_config())


@router.post("/settings", response_model=Settings)
async def save_settings(body: SettingsUpdate):
    """
    Validate & persist changes.  Returns the merged settings object.
    """
    merged = _merge(config.read_config(), body)

    # reject overrides that would not produce a usable policy
    try:
        SupervisorPolicy(**merged.get("supervisor", {}))
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=f"Invalid supervisor settings: {exc.errors()[0]['msg']}",
        ) from exc

    try:
        config.save_config(merged)
    except OSError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save settings: {exc}",
        ) from exc
    return Settings(**merged)
