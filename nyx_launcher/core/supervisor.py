# nyx_launcher/core/supervisor.py
"""
Nyx Launcher – sidecar supervisor
=================================

Makes sure the Nyx server answers on its health endpoint before the UI
relies on it.  One supervision attempt walks a strictly sequential
fallback chain:

    probe existing server ──healthy──────────────────────────► READY
          │ unhealthy
          ▼
    launch embedded (bundled resource, output captured,
          │          grace period, early-exit check)
          │ not found / spawn failure / early exit
          ▼
    launch external (first discovered candidate, output discarded)
          │ not found / spawn failure ─────────────────────────► FAILED
          ▼
    wait for readiness ──ready──► READY      ──timed out──► FAILED

The attempt runs as an `asyncio.Task` owned by the supervisor; the host
may await it (`supervise()`), query it (`status()`) or cancel it
(`shutdown()`).  Concurrent start requests join the attempt in flight,
so two requests can never spawn two servers.

Host commands
-------------
• check_health()      -> bool
• start_external()    -> str       (raises SupervisorError)
• start_embedded()    -> None      (raises SupervisorError)
• wait_until_ready()  -> bool      (raises HealthCheckTimeout)
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from nyx_launcher.core.errors import (
    CandidateNotFound,
    EarlyExit,
    HealthCheckTimeout,
    SpawnFailure,
    SupervisorBusy,
    SupervisorError,
)
from nyx_launcher.core.health import HealthProbe
from nyx_launcher.core.launcher import ProcessHandle, ProcessLauncher
from nyx_launcher.core.models import (
    LaunchSource,
    LifecycleState,
    Readiness,
    StdioPolicy,
    SupervisionOutcome,
    SupervisorPolicy,
    SupervisorState,
)
from nyx_launcher.core.readiness import ReadinessWaiter
from nyx_launcher.core.resolver import CandidateResolver, exe_suffix

log = logging.getLogger(__name__)


class Supervisor:
    def __init__(
        self,
        policy: SupervisorPolicy,
        resource_dir: Path,
        *,
        probe: Optional[HealthProbe] = None,
        launcher: Optional[ProcessLauncher] = None,
        resolver: Optional[CandidateResolver] = None,
    ) -> None:
        self.policy = policy
        self.probe = probe or HealthProbe()
        self.launcher = launcher or ProcessLauncher(policy.interpreters)
        self.resolver = resolver or CandidateResolver(
            script_suffixes=policy.interpreters.keys(),
            placeholders={"resource_dir": str(resource_dir), "exe": exe_suffix()},
            base_dir=policy.base_dir,
        )
        self.waiter = ReadinessWaiter(self.probe, policy.readiness_probe_timeout)

        self.state = SupervisorState.idle
        self.history: List[SupervisorState] = [SupervisorState.idle]
        self.outcome: Optional[SupervisionOutcome] = None
        self.handle: Optional[ProcessHandle] = None
        self.source: Optional[LaunchSource] = None
        self._served: Optional[ProcessHandle] = None   # child that reached Ready

        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    # ──────────────────────────────────────────
    # Task ownership
    # ──────────────────────────────────────────
    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, delay: float = 0.0) -> asyncio.Task:
        """Start a supervision attempt, or return the one in flight."""
        if self.running:
            log.debug("Supervision already in flight, joining it")
            return self._task

        self.state = SupervisorState.idle
        self.history = [SupervisorState.idle]
        self._task = asyncio.get_running_loop().create_task(
            self._run(delay), name="nyx-supervisor"
        )
        return self._task

    async def supervise(self) -> SupervisionOutcome:
        # shield: a joiner giving up must not cancel everybody's attempt
        return await asyncio.shield(self.start())

    async def shutdown(self) -> None:
        """Cancel an unfinished attempt and release the child it spawned."""
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "running": self.running,
            "history": list(self.history),
            "outcome": self.outcome,
            "pid": self.handle.pid if self.handle else None,
        }

    # ──────────────────────────────────────────
    # Host commands
    # ──────────────────────────────────────────
    async def check_health(self) -> bool:
        return await self.probe.is_healthy(self.policy.health_url, self.policy.probe_timeout)

    async def start_external(self) -> str:
        async with self._exclusive():
            if self._owns_live_child():
                return f"Server already running (pid {self.handle.pid})"
            self._adopt(self._launch_external(), LaunchSource.external)
            return f"Server started from {self.handle.candidate.path}"

    async def start_embedded(self) -> None:
        async with self._exclusive():
            if self._owns_live_child():
                return
            try:
                self._adopt(await self._launch_embedded(), LaunchSource.embedded)
            except CandidateNotFound as exc:
                log.warning("%s, trying alternative methods...", exc)
                self._adopt(self._launch_external(), LaunchSource.external)

    def server_folder(self) -> Path:
        return self.resolver.expand(self.policy.server_dir)

    async def wait_until_ready(self) -> bool:
        p = self.policy
        log.info("Waiting for server to be ready...")
        if await self.waiter.wait_until_ready(p.health_url, p.max_attempts, p.interval) == Readiness.ready:
            if self.handle is not None:
                self._served = self.handle
            return True
        raise HealthCheckTimeout(f"Server failed to start within {p.readiness_budget:g} seconds")

    # ──────────────────────────────────────────
    # Fallback chain
    # ──────────────────────────────────────────
    async def _run(self, delay: float) -> SupervisionOutcome:
        async with self._lock:
            try:
                if delay:
                    await asyncio.sleep(delay)
                self.outcome = await self._chain()
            except asyncio.CancelledError:
                log.info("Supervision cancelled in state %s", self.state.value)
                self._enter(SupervisorState.failed)
                self.outcome = SupervisionOutcome(
                    state=SupervisorState.failed, reason="Supervision cancelled"
                )
                await self._release_child()
                raise
            except Exception as exc:  # pylint: disable=broad-except
                log.exception("Supervision aborted in state %s", self.state.value)
                await self._release_child()
                self.outcome = self._finish(
                    SupervisorState.failed, reason=f"Unexpected error: {exc}"
                )
        return self.outcome

    async def _chain(self) -> SupervisionOutcome:
        p = self.policy

        self._enter(SupervisorState.probing_existing_server)
        if await self.check_health():
            log.info("Server is already running")
            return self._finish(SupervisorState.ready, LaunchSource.existing)

        if self._owns_live_child():
            # started by a host command and still booting
            log.info("Server process %s already started, not spawning another", self.handle.pid)
        else:
            self._enter(SupervisorState.launching_embedded)
            try:
                self._adopt(await self._launch_embedded(), LaunchSource.embedded)
            except (CandidateNotFound, SpawnFailure) as exc:
                log.warning("Failed to start embedded server: %s", exc)
                self._enter(SupervisorState.launching_external)
                try:
                    self._adopt(self._launch_external(), LaunchSource.external)
                except SupervisorError as last:
                    log.error("All server start methods failed: %s", last)
                    return self._finish(SupervisorState.failed, reason=str(last))

        self._enter(SupervisorState.waiting_for_readiness)
        readiness = await self.waiter.wait_until_ready(p.health_url, p.max_attempts, p.interval)
        if readiness == Readiness.ready:
            return self._finish(SupervisorState.ready, self.source)

        timeout = HealthCheckTimeout(f"Server failed to start within {p.readiness_budget:g} seconds")
        log.error("%s", timeout)
        outcome = self._finish(SupervisorState.failed, self.source, reason=str(timeout))
        await self._release_child()
        return outcome

    async def _launch_embedded(self) -> ProcessHandle:
        p = self.policy
        candidate = self.resolver.resolve([p.embedded_location])
        if candidate is None:
            raise CandidateNotFound(
                f"Server executable not found in resources ({self.resolver.describe(p.embedded_location)})"
            )

        handle = self.launcher.launch(candidate, stdio=StdioPolicy.capture)
        self._adopt(handle, LaunchSource.embedded)
        log.info("Server process %s started, waiting %gs for startup...", handle.pid, p.grace_period)
        await asyncio.sleep(p.grace_period)

        state = handle.lifecycle_state()
        if state == LifecycleState.running:
            log.info("Server started successfully and is running")
            return handle

        self._adopt(None, None)
        if state == LifecycleState.unknown:
            # may still be alive; do not leave it behind
            await self._terminate(handle)
            raise SpawnFailure(f"Error checking server process {handle.pid}")

        stderr = await asyncio.to_thread(handle.stderr_text)
        message = f"Server process exited early with status {handle.returncode}"
        if stderr:
            message += f": {stderr.splitlines()[-1]}"
        raise EarlyExit(message, returncode=handle.returncode, stderr_tail=stderr)

    def _launch_external(self) -> ProcessHandle:
        locations = self.policy.external_locations
        candidate = self.resolver.resolve(locations)
        if candidate is None:
            searched = ", ".join(locations)
            raise CandidateNotFound(f"Could not find server executable (searched: {searched})")
        return self.launcher.launch(candidate, stdio=StdioPolicy.discard)

    # ──────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────
    def _exclusive(self) -> asyncio.Lock:
        if self._lock.locked():
            raise SupervisorBusy("A server start is already in progress")
        return self._lock

    def _adopt(self, handle: Optional[ProcessHandle], source: Optional[LaunchSource]) -> None:
        self.handle = handle
        self.source = source

    def _owns_live_child(self) -> bool:
        return self.handle is not None and self.handle.lifecycle_state() == LifecycleState.running

    async def _release_child(self) -> None:
        """Terminate the current child unless it already reached Ready."""
        if self.handle is None or self.handle is self._served:
            return
        handle = self.handle
        self._adopt(None, None)
        await self._terminate(handle)

    @staticmethod
    async def _terminate(handle: ProcessHandle) -> None:
        # terminate() blocks for up to its kill timeout
        try:
            await asyncio.to_thread(handle.terminate)
        except OSError as exc:
            log.warning("Could not terminate server process %s: %s", handle.pid, exc)

    def _enter(self, state: SupervisorState) -> None:
        log.info("Supervisor: %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _finish(
        self,
        state: SupervisorState,
        source: Optional[LaunchSource] = None,
        reason: Optional[str] = None,
    ) -> SupervisionOutcome:
        self._enter(state)
        spawned = self.handle if source not in (None, LaunchSource.existing) else None
        if state == SupervisorState.ready and spawned is not None:
            self._served = spawned
        return SupervisionOutcome(
            state=state,
            source=source,
            candidate=spawned.candidate if spawned else None,
            pid=spawned.pid if spawned else None,
            reason=reason,
        )
