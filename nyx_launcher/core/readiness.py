# nyx_launcher/core/readiness.py
"""
Nyx Launcher – readiness polling
================================

Polls the health endpoint on a fixed interval until it answers or the
attempt budget runs out.  Each attempt occupies at most one `interval`
(probe time included), so `max_attempts * interval` bounds the whole
wait.  Returns on the first healthy answer; never polls again after it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from nyx_launcher.core.health import HealthProbe
from nyx_launcher.core.models import HealthStatus, Readiness

log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ReadinessWaiter:
    def __init__(
        self,
        probe: HealthProbe,
        probe_timeout: float,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.probe = probe
        self.probe_timeout = probe_timeout
        self._sleep = sleep

    async def wait_until_ready(self, endpoint: str, max_attempts: int, interval: float) -> Readiness:
        if self.probe_timeout >= interval:
            raise ValueError("probe timeout must be shorter than the polling interval")

        loop = asyncio.get_running_loop()
        for attempt in range(1, max_attempts + 1):
            started = loop.time()
            if await self.probe.probe(endpoint, self.probe_timeout) == HealthStatus.healthy:
                log.info("Server is ready (attempt %d/%d)", attempt, max_attempts)
                return Readiness.ready

            log.debug("Server not ready yet, attempt %d/%d", attempt, max_attempts)
            if attempt < max_attempts:
                await self._sleep(max(0.0, interval - (loop.time() - started)))

        return Readiness.timed_out
