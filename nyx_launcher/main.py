# nyx_launcher/main.py
"""
Nyx Launcher – FastAPI entry point
==================================

Run options
-----------
• Development (browser):   python -m nyx_launcher.main
• Desktop window:          python run_launcher_desktop.py

On startup the supervisor begins its first attempt (after a short delay
so the window can paint); on shutdown an unfinished attempt is cancelled.
Set `NYX_AUTOSTART=0` to skip the automatic attempt.
"""

from __future__ import annotations

import contextlib
import importlib
import logging
import threading
import time
from pathlib import Path
from typing import Dict
from urllib.parse import urljoin

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from nyx_launcher.core import config
from nyx_launcher.core.folder import folder_opener_for
from nyx_launcher.core.supervisor import Supervisor

try:
    import webview  # type: ignore
except ModuleNotFoundError:
    webview = None  # run_desktop() will raise

log = logging.getLogger(__name__)

# ────────────────────────────── template setup
BASE_PATH = Path(__file__).resolve().parent
TEMPLATES = Jinja2Templates(directory=str(BASE_PATH / "templates"))


def build_supervisor() -> Supervisor:
    return Supervisor(config.supervisor_policy(), config.RESOURCE_DIR)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    supervisor = build_supervisor()
    app.state.supervisor = supervisor
    app.state.folder_opener = folder_opener_for()

    if config.autostart_enabled():
        supervisor.start(delay=supervisor.policy.startup_delay)
    else:
        log.info("Autostart disabled, waiting for a manual start")
    yield
    await supervisor.shutdown()


app = FastAPI(
    title=config.APP_NAME,
    version=config.LAUNCHER_VERSION,
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

# ────────────────────────────── pages
PAGE_CONTEXT: Dict[str, str] = {
    "app_name": config.APP_NAME,
    "launcher_version": config.LAUNCHER_VERSION,
}


@app.get("/", response_class=HTMLResponse)
async def page_loading(request: Request):
    supervisor = request.app.state.supervisor
    return TEMPLATES.TemplateResponse(
        request,
        "pages/loading.html",
        {
            **PAGE_CONTEXT,
            "server_ui_url": urljoin(supervisor.policy.health_url, "/"),
            "idle": not supervisor.running and supervisor.outcome is None,
        },
    )


# ────────────────────────────── API routers
server = importlib.import_module("nyx_launcher.api.server")
settings = importlib.import_module("nyx_launcher.api.settings")

app.include_router(server.router, prefix="/api")
app.include_router(settings.router, prefix="/api")


# ────────────────────────────── desktop helper
def _run_uvicorn_bg(host: str, port: int) -> None:
    def _target():
        uvicorn.run(app, host=host, port=port, log_level="error")
    threading.Thread(target=_target, daemon=True).start()


def run_desktop(host: str = "127.0.0.1", port: int = 5060) -> None:
    if webview is None:
        raise RuntimeError("pywebview not installed – run:  pip install pywebview")

    config.configure_logging()
    _run_uvicorn_bg(host, port)
    time.sleep(0.8)                               # wait until Uvicorn is ready

    window_pref = config.read_config().get("window", {})

    # ---- Bridge object for pywebview ----
    class Bridge:                                # pylint: disable=too-few-public-methods
        def quit(self):
            window.destroy()

    window = webview.create_window(
        title=config.APP_NAME,
        url=f"http://{host}:{port}/",
        width=window_pref.get("width", 1024),
        height=window_pref.get("height", 640),
        fullscreen=window_pref.get("fullscreen", False),
        js_api=Bridge(),
    )

    webview.start()


if __name__ == "__main__":  # pragma: no cover
    config.configure_logging()
    uvicorn.run(app, host="127.0.0.1", port=5060)
