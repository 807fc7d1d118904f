"""Root pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import os
import socket
import tempfile

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

# Keep user data out of ~/.nyx and never supervise on import
os.environ.setdefault("NYX_HOME", tempfile.mkdtemp(prefix="nyx-tests-"))
os.environ["NYX_AUTOSTART"] = "0"


class HealthEndpoint:
    """Controllable /health handler; tests flip `status` / `delay`."""

    def __init__(self):
        self.status = 200
        self.delay = 0.0
        self.hits = 0
        self.url = ""

    async def handle(self, request: web.Request) -> web.Response:
        self.hits += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return web.Response(status=self.status, text="ok")


@pytest_asyncio.fixture
async def health_endpoint():
    endpoint = HealthEndpoint()
    app = web.Application()
    app.router.add_get("/health", endpoint.handle)

    server = TestServer(app, host="127.0.0.1")
    await server.start_server()
    endpoint.url = str(server.make_url("/health"))
    yield endpoint
    await server.close()


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def free_port() -> int:
    return _free_port()


@pytest.fixture
def refused_url(free_port) -> str:
    """URL on a port nobody listens on."""
    return f"http://127.0.0.1:{free_port}/health"
