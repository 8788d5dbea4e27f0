# noqa: D401
"""Self-spawned background processes tracked by PID file."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import psutil

from ..health import wait_for_http, wait_until, watch_grace
from ..liveness import LivenessTracker, pid_alive
from ..logging import get_logger
from ..types import StartOutcome, StopOutcome, UnitDefinition, UnitReport, UnitStatus
from .base import StartFailure, UnitDriver

LOGGER = get_logger(__name__)

# Extra wait after SIGKILL before giving up on a process
KILL_WAIT_SECONDS = 1.0


class SpawnedProcessDriver(UnitDriver):
    """Spawns a detached process, records its PID and signals it on stop."""

    def __init__(
        self,
        definition: UnitDefinition,
        command: Sequence[str],
        cwd: Path,
        tracker: LivenessTracker,
        stop_timeout: float = 2.0,
        kill_children: bool = False,
        env: Optional[Dict[str, str]] = None,
        ready_url: Optional[str] = None,
        ready_timeout: float = 30.0,
    ) -> None:
        """Initialize process driver.

        Args:
            definition: Unit descriptor
            command: Command line to spawn
            cwd: Working directory for the process
            tracker: PID record bookkeeping
            stop_timeout: Seconds to wait after SIGTERM before SIGKILL
            kill_children: Signal descendants before the process itself
            env: Optional environment for the process
            ready_url: Optional HTTP endpoint polled after the grace window
            ready_timeout: Seconds to wait for ``ready_url`` to answer
        """
        super().__init__(definition)
        self.command = list(command)
        self.cwd = cwd
        self.tracker = tracker
        self.stop_timeout = stop_timeout
        self.kill_children = kill_children
        self.env = env
        self.ready_url = ready_url
        self.ready_timeout = ready_timeout

    def start(self) -> StartOutcome:
        """Spawn the process unless its recorded PID is alive.

        Returns:
            StartOutcome.ALREADY_RUNNING or StartOutcome.STARTED

        Raises:
            StartFailure: If the process cannot be spawned, exits within its
                grace window, or never answers on ``ready_url``
        """
        pid = self._live_pid()
        if pid is not None:
            LOGGER.info("Process already running", unit=self.name, pid=pid)
            return StartOutcome.ALREADY_RUNNING

        LOGGER.info("Starting process", unit=self.name, command=" ".join(self.command))
        try:
            with self.open_log_sink() as log_handle:
                process = subprocess.Popen(
                    self.command,
                    cwd=self.cwd,
                    env=self.env,
                    stdin=subprocess.DEVNULL,
                    stdout=log_handle,
                    stderr=subprocess.STDOUT,
                    start_new_session=True,  # Detach from the controlling terminal
                )
        except FileNotFoundError as e:
            raise StartFailure(self.name, f"cannot spawn {self.command[0]}: {e}")
        except PermissionError as e:
            raise StartFailure(self.name, f"permission denied: {e}")

        self.tracker.record(self.name, process.pid)

        def _alive() -> bool:
            # poll() reaps the child so an early exit is not seen as a zombie
            return process.poll() is None and self.tracker.is_alive(self.name)

        if not watch_grace(_alive, self.definition.startup_grace_seconds):
            self.tracker.clear(self.name)
            raise StartFailure(
                self.name,
                f"process exited with code {process.poll()} during startup, "
                f"see {self.definition.log_sink}",
            )

        if self.ready_url and not wait_for_http(self.ready_url, timeout=self.ready_timeout):
            raise StartFailure(self.name, f"no response from {self.ready_url} after {self.ready_timeout:.0f}s")

        LOGGER.info("Process started", unit=self.name, pid=process.pid)
        return StartOutcome.STARTED

    def stop(self) -> StopOutcome:
        """Terminate the process, escalating to SIGKILL.

        When ``kill_children`` is set, every surviving member of the
        spawned process group is signalled before the process itself,
        including descendants re-parented away from the launcher. The
        record is kept when signalling is denied. Never raises.
        """
        pid = self._live_pid()
        if pid is None:
            LOGGER.info("Process not running", unit=self.name)
            return StopOutcome.NOT_RUNNING

        LOGGER.info("Stopping process", unit=self.name, pid=pid)
        try:
            self._terminate(self._collect_targets(pid))
        except psutil.AccessDenied as e:
            LOGGER.warning(
                "Permission denied stopping process, keeping PID record",
                unit=self.name,
                pid=pid,
                error=str(e),
            )
            return StopOutcome.STOPPED

        self.tracker.clear(self.name)
        LOGGER.info("Process stopped", unit=self.name, pid=pid)
        return StopOutcome.STOPPED

    def probe(self) -> UnitStatus:
        return UnitStatus.RUNNING if self._live_pid() is not None else UnitStatus.STOPPED

    def report(self) -> UnitReport:
        pid = self._live_pid()
        detail = None
        if pid is not None and not pid_alive(pid):
            detail = "launcher exited, children still running"
        return UnitReport(
            name=self.definition.name,
            display_name=self.definition.display_name,
            status=UnitStatus.RUNNING if pid is not None else UnitStatus.STOPPED,
            pid=pid,
            detail=detail,
        )

    def _live_pid(self) -> Optional[int]:
        """Return the recorded PID while the unit has a live process.

        A child-aware unit stays live as long as any member of its process
        group survives, even after the recorded launcher has exited.
        """
        if self.kill_children:
            pid = self.tracker.recorded_pid(self.name)
            if pid is not None and not pid_alive(pid) and self._group_members(pid):
                return pid
        return self.tracker.get_pid(self.name)

    def _group_members(self, pgid: int) -> List[psutil.Process]:
        """Return live processes in the group led by ``pgid``."""
        members = []
        for proc in psutil.process_iter():
            if proc.pid == os.getpid():
                continue
            try:
                if os.getpgid(proc.pid) != pgid:
                    continue
            except OSError:
                continue
            if pid_alive(proc.pid):
                members.append(proc)
        return members

    def _collect_targets(self, pid: int) -> List[psutil.Process]:
        """Return the processes to signal, the recorded process last."""
        leader = None
        if pid_alive(pid):
            try:
                leader = psutil.Process(pid)
            except psutil.NoSuchProcess:
                leader = None

        if not self.kill_children:
            return [leader] if leader is not None else []

        targets: Dict[int, psutil.Process] = {}
        if leader is not None:
            try:
                for child in leader.children(recursive=True):
                    targets[child.pid] = child
            except psutil.NoSuchProcess:
                pass
        for member in self._group_members(pid):
            targets.setdefault(member.pid, member)
        targets.pop(pid, None)

        if leader is not None:
            return [*targets.values(), leader]
        return list(targets.values())

    def _terminate(self, targets: List[psutil.Process]) -> None:
        for target in targets:
            try:
                target.terminate()
            except psutil.NoSuchProcess:
                pass
        LOGGER.debug("Sent SIGTERM", unit=self.name, pids=[t.pid for t in targets])

        wait_until(lambda: not _remaining(targets), timeout=self.stop_timeout)
        alive = _remaining(targets)
        if not alive:
            return

        LOGGER.warning(
            "Process did not exit after SIGTERM, sending SIGKILL",
            unit=self.name,
            pids=[t.pid for t in alive],
            timeout=self.stop_timeout,
        )
        for target in alive:
            try:
                target.kill()
            except psutil.NoSuchProcess:
                pass
        wait_until(lambda: not _remaining(alive), timeout=KILL_WAIT_SECONDS)
        survivors = _remaining(alive)
        if survivors:
            LOGGER.error("Processes survived SIGKILL", unit=self.name, pids=[t.pid for t in survivors])


def _remaining(targets: List[psutil.Process]) -> List[psutil.Process]:
    """Filter out processes that have exited or are only zombies."""
    return [t for t in targets if pid_alive(t.pid)]


__all__ = ["SpawnedProcessDriver", "KILL_WAIT_SECONDS"]
