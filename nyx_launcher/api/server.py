# nyx_launcher/api/server.py
"""
Nyx Launcher – server supervision API
=====================================

Thin HTTP layer over `core.supervisor.Supervisor` for the frontend.

Routes
------
GET  /api/server/health          -> {"healthy": bool}
POST /api/server/start           -> start external server   (409 / 502)
POST /api/server/start-embedded  -> start bundled server    (409 / 502)
POST /api/server/wait            -> {"ready": true}         (504)
POST /api/server/supervise       -> run / join the full fallback chain
GET  /api/server/status          -> state, history, last outcome
POST /api/server/open-folder     -> open the server folder in the file manager
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from nyx_launcher.core.errors import HealthCheckTimeout, SupervisorBusy, SupervisorError
from nyx_launcher.core.folder import FolderOpener
from nyx_launcher.core.models import SupervisionOutcome, SupervisorState
from nyx_launcher.core.supervisor import Supervisor

router = APIRouter(prefix="/server", tags=["server"])


# ──────────────────────────────────────────────
# Dependencies (overridden in tests)
# ──────────────────────────────────────────────
def get_supervisor(request: Request) -> Supervisor:
    return request.app.state.supervisor


def get_folder_opener(request: Request) -> FolderOpener:
    return request.app.state.folder_opener


# ──────────────────────────────────────────────
# Response models
# ──────────────────────────────────────────────
class HealthResponse(BaseModel):
    healthy: bool


class ReadyResponse(BaseModel):
    ready: bool


class SimpleMessage(BaseModel):
    detail: str


class StatusResponse(BaseModel):
    state: SupervisorState
    running: bool
    history: List[SupervisorState]
    outcome: Optional[SupervisionOutcome] = None
    pid: Optional[int] = None


def _http_error(exc: SupervisorError) -> HTTPException:
    if isinstance(exc, SupervisorBusy):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, HealthCheckTimeout):
        code = status.HTTP_504_GATEWAY_TIMEOUT
    else:
        code = status.HTTP_502_BAD_GATEWAY
    return HTTPException(status_code=code, detail=str(exc))


# ──────────────────────────────────────────────
# Routes
# ──────────────────────────────────────────────
@router.get("/health", response_model=HealthResponse)
async def check_health(supervisor: Supervisor = Depends(get_supervisor)):
    return HealthResponse(healthy=await supervisor.check_health())


@router.post("/start", response_model=SimpleMessage)
async def start_external(supervisor: Supervisor = Depends(get_supervisor)):
    try:
        message = await supervisor.start_external()
    except SupervisorError as exc:
        raise _http_error(exc) from exc
    return SimpleMessage(detail=message)


@router.post("/start-embedded", response_model=SimpleMessage)
async def start_embedded(supervisor: Supervisor = Depends(get_supervisor)):
    try:
        await supervisor.start_embedded()
    except SupervisorError as exc:
        raise _http_error(exc) from exc
    return SimpleMessage(detail="Server started")


@router.post("/wait", response_model=ReadyResponse)
async def wait_until_ready(supervisor: Supervisor = Depends(get_supervisor)):
    try:
        return ReadyResponse(ready=await supervisor.wait_until_ready())
    except HealthCheckTimeout as exc:
        raise _http_error(exc) from exc


@router.post("/supervise", response_model=SupervisionOutcome)
async def supervise(supervisor: Supervisor = Depends(get_supervisor)):
    """
    Run the full chain (or join the attempt already running).  A failed
    attempt is a normal answer here: the outcome carries the reason.
    """
    return await supervisor.supervise()


@router.get("/status", response_model=StatusResponse)
async def supervision_status(supervisor: Supervisor = Depends(get_supervisor)):
    return StatusResponse(**supervisor.status())


@router.post("/open-folder", response_model=SimpleMessage)
async def open_server_folder(
    supervisor: Supervisor = Depends(get_supervisor),
    opener: FolderOpener = Depends(get_folder_opener),
):
    folder = supervisor.server_folder()
    try:
        opener.open(folder)
    except FileNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc)) from exc
    return SimpleMessage(detail=f"Opened {folder}")
