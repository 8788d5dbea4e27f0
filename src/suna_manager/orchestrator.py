# noqa: D401
"""Sequencing of start, stop, restart and status across all units."""

from __future__ import annotations

import time
from contextlib import nullcontext
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, ContextManager, List, Optional, Sequence, Union

from .drivers.base import StartFailure, UnitDriver
from .lock import RunLock
from .logging import get_logger
from .mode import ModeResolver
from .types import (
    OperatingMode,
    StartOutcome,
    StatusReport,
    StopOutcome,
    UnitDefinition,
    UnitReport,
    UnitStatus,
)

LOGGER = get_logger(__name__)


class OrchestratorState(Enum):
    """Lifecycle of a single orchestrator run."""

    IDLE = "idle"
    STARTING = "starting"
    STARTED = "started"
    START_FAILED = "start_failed"
    STOPPING = "stopping"
    STOPPED = "stopped"


class Action(Enum):
    START = "start"
    STOP = "stop"


@dataclass
class UnitResult:
    """Outcome of one driver call within a pass."""

    unit: UnitDefinition
    action: Action
    outcome: Optional[Union[StartOutcome, StopOutcome]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class LifecycleReport:
    """Result of a start or stop pass."""

    action: Action
    mode: OperatingMode
    results: List[UnitResult] = field(default_factory=list)
    failure: Optional[StartFailure] = None

    @property
    def ok(self) -> bool:
        """True unless a start pass was aborted.

        Stop passes are best-effort and always succeed; their per-unit
        errors are listed in ``errors``.
        """
        return self.failure is None

    @property
    def errors(self) -> List[UnitResult]:
        return [result for result in self.results if not result.ok]

    @property
    def failed_unit(self) -> Optional[str]:
        return self.failure.unit if self.failure else None


BeginCallback = Callable[[UnitDefinition, Action], None]
ResultCallback = Callable[[UnitResult], None]


class Orchestrator:
    """Runs lifecycle passes over an ordered set of unit drivers.

    Start passes go in ascending order and stop at the first failure.
    Stop passes go in descending order and always visit every unit.
    """

    def __init__(
        self,
        drivers: Sequence[UnitDriver],
        mode_resolver: ModeResolver,
        pid_dir: Path,
        log_dir: Path,
        restart_cooldown: float = 2.0,
        lock: Optional[RunLock] = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            drivers: One driver per unit
            mode_resolver: Decides whether local-only units participate
            pid_dir: Directory holding PID records
            log_dir: Directory holding unit log sinks
            restart_cooldown: Pause between the stop and start of a restart
            lock: Optional advisory lock held during start and stop passes

        Raises:
            ValueError: If two units share a name or an order
        """
        names = [d.definition.name for d in drivers]
        orders = [d.definition.order for d in drivers]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate unit names: {names}")
        if len(set(orders)) != len(orders):
            raise ValueError(f"Unit orders must be unique: {orders}")

        self.drivers = sorted(drivers, key=lambda d: d.definition.order)
        self.mode_resolver = mode_resolver
        self.pid_dir = pid_dir
        self.log_dir = log_dir
        self.restart_cooldown = restart_cooldown
        self.lock = lock

        self.state = OrchestratorState.IDLE
        self._on_begin: Optional[BeginCallback] = None
        self._on_result: Optional[ResultCallback] = None

    def set_callbacks(
        self,
        on_begin: Optional[BeginCallback] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> None:
        """Set progress callbacks fired around each driver call."""
        self._on_begin = on_begin
        self._on_result = on_result

    def active_drivers(self, mode: OperatingMode) -> List[UnitDriver]:
        """Return drivers taking part in a pass, in ascending order."""
        return [
            d for d in self.drivers if not d.definition.local_only or mode == OperatingMode.LOCAL
        ]

    def start_all(self) -> LifecycleReport:
        """Start every active unit in ascending order, stopping at the first failure."""
        with self._locked():
            return self._start_pass()

    def stop_all(self) -> LifecycleReport:
        """Stop every active unit in descending order, continuing past failures."""
        with self._locked():
            return self._stop_pass()

    def restart_all(self) -> LifecycleReport:
        """Stop everything, pause for the cooldown, then start everything.

        Returns:
            The report of the start pass
        """
        with self._locked():
            self._stop_pass()
            LOGGER.debug("Restart cooldown", seconds=self.restart_cooldown)
            time.sleep(self.restart_cooldown)
            return self._start_pass()

    def status_all(self) -> StatusReport:
        """Probe every active unit. Takes no lock and changes nothing."""
        mode = self.mode_resolver.resolve()
        report = StatusReport(mode=mode)
        for driver in self.active_drivers(mode):
            try:
                unit_report = driver.report()
            except Exception as e:
                LOGGER.warning("Probe failed", unit=driver.name, error=str(e))
                unit_report = UnitReport(
                    name=driver.definition.name,
                    display_name=driver.definition.display_name,
                    status=UnitStatus.UNKNOWN,
                    detail=str(e),
                )
            report.units.append(unit_report)
        return report

    def _locked(self) -> ContextManager:
        if self.lock is None:
            return nullcontext()
        return self.lock

    def _transition(self, state: OrchestratorState) -> None:
        LOGGER.debug("Orchestrator state change", previous=self.state.value, current=state.value)
        self.state = state

    def _begin(self, driver: UnitDriver, action: Action) -> None:
        if self._on_begin:
            self._on_begin(driver.definition, action)

    def _finish(self, report: LifecycleReport, result: UnitResult) -> None:
        report.results.append(result)
        if self._on_result:
            self._on_result(result)

    def _start_pass(self) -> LifecycleReport:
        self._transition(OrchestratorState.STARTING)
        mode = self.mode_resolver.resolve()
        report = LifecycleReport(action=Action.START, mode=mode)
        self.pid_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        LOGGER.info("Starting units", mode=mode.value)
        for driver in self.active_drivers(mode):
            self._begin(driver, Action.START)
            try:
                outcome = driver.start()
            except StartFailure as e:
                failure = e
            except Exception as e:
                LOGGER.error("Unexpected error starting unit", unit=driver.name, exc_info=True)
                failure = StartFailure(driver.name, str(e))
            else:
                self._finish(report, UnitResult(driver.definition, Action.START, outcome=outcome))
                continue

            LOGGER.error("Unit failed to start", unit=failure.unit, reason=failure.reason)
            report.failure = failure
            self._finish(report, UnitResult(driver.definition, Action.START, error=failure.reason))
            self._transition(OrchestratorState.START_FAILED)
            return report

        self._transition(OrchestratorState.STARTED)
        return report

    def _stop_pass(self) -> LifecycleReport:
        self._transition(OrchestratorState.STOPPING)
        mode = self.mode_resolver.resolve()
        report = LifecycleReport(action=Action.STOP, mode=mode)

        LOGGER.info("Stopping units", mode=mode.value)
        for driver in reversed(self.active_drivers(mode)):
            self._begin(driver, Action.STOP)
            try:
                outcome = driver.stop()
            except Exception as e:
                LOGGER.warning("Error stopping unit", unit=driver.name, error=str(e))
                result = UnitResult(driver.definition, Action.STOP, error=str(e))
            else:
                result = UnitResult(driver.definition, Action.STOP, outcome=outcome)
            self._finish(report, result)

        self._transition(OrchestratorState.STOPPED)
        return report


__all__ = [
    "Action",
    "LifecycleReport",
    "Orchestrator",
    "OrchestratorState",
    "UnitResult",
]
