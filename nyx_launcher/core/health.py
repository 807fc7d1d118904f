# nyx_launcher/core/health.py
"""Single-shot liveness check of the server's health endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

from nyx_launcher.core.models import HealthStatus

log = logging.getLogger(__name__)


class HealthProbe:
    """
    One GET, bounded by `timeout`.  2xx is healthy; refused connections,
    timeouts, bad URLs and every other status collapse into unhealthy.
    The caller only ever has a yes/no decision to make.
    """

    def __init__(self, session: Optional[aiohttp.ClientSession] = None) -> None:
        self._session = session

    async def probe(self, endpoint: str, timeout: float) -> HealthStatus:
        client_timeout = aiohttp.ClientTimeout(total=timeout)
        try:
            if self._session is not None:
                return await self._get(self._session, endpoint, client_timeout)
            async with aiohttp.ClientSession() as session:
                return await self._get(session, endpoint, client_timeout)
        except asyncio.TimeoutError:
            log.debug("Health check timeout: %s", endpoint)
        except aiohttp.ClientError as exc:
            log.debug("Health check client error: %s - %s", endpoint, exc)
        except (OSError, ValueError) as exc:
            log.debug("Health check failed: %s - %s", endpoint, exc)
        return HealthStatus.unhealthy

    async def _get(
        self,
        session: aiohttp.ClientSession,
        endpoint: str,
        timeout: aiohttp.ClientTimeout,
    ) -> HealthStatus:
        async with session.get(endpoint, timeout=timeout) as resp:
            if 200 <= resp.status < 300:
                return HealthStatus.healthy
            log.debug("Health check HTTP %s: %s", resp.status, endpoint)
            return HealthStatus.unhealthy

    async def is_healthy(self, endpoint: str, timeout: float) -> bool:
        return await self.probe(endpoint, timeout) == HealthStatus.healthy
