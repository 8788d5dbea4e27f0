"""Type definitions for the Suna service manager.

This module defines the core data structures shared by the drivers,
the orchestrator and the reporting layer: unit descriptors, the enums
describing lifecycle outcomes, and the status report returned by a
status pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class UnitKind(Enum):
    """Lifecycle mechanism used to manage a unit."""

    EXTERNALLY_ORCHESTRATED = "externally_orchestrated"  # docker compose service
    CLI_MANAGED_SIDECAR = "cli_managed_sidecar"  # supabase CLI
    SELF_SPAWNED_PROCESS = "self_spawned_process"  # api, worker, frontend


class UnitStatus(Enum):
    """Result of probing a unit."""

    RUNNING = "running"
    STOPPED = "stopped"
    UNKNOWN = "unknown"


class OperatingMode(Enum):
    """Where the backing store lives."""

    LOCAL = "local"
    REMOTE = "remote"


class StartOutcome(Enum):
    """Successful results of a driver start."""

    STARTED = "started"
    ALREADY_RUNNING = "already_running"


class StopOutcome(Enum):
    """Results of a driver stop."""

    STOPPED = "stopped"
    NOT_RUNNING = "not_running"


@dataclass(frozen=True)
class UnitDefinition:
    """Static descriptor of one managed unit.

    Attributes:
        name: Unique identifier (e.g., "backend", "redis")
        display_name: Human-readable name
        kind: Lifecycle mechanism
        order: Position in the startup sequence, shutdown uses the reverse
        startup_grace_seconds: Wait time after spawn before declaring success
        log_sink: Append-only file receiving the unit's output
        local_only: Only participates when the backing store is local
    """

    name: str
    display_name: str
    kind: UnitKind
    order: int
    log_sink: Path
    startup_grace_seconds: float = 0.0
    local_only: bool = False


@dataclass
class UnitReport:
    """Probe result for a single unit."""

    name: str
    display_name: str
    status: UnitStatus
    pid: Optional[int] = None
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "display_name": self.display_name,
            "status": self.status.value,
            "pid": self.pid,
            "detail": self.detail,
        }


@dataclass
class StatusReport:
    """Aggregated status of every active unit."""

    mode: OperatingMode
    units: List[UnitReport] = field(default_factory=list)

    @property
    def running_count(self) -> int:
        return sum(1 for unit in self.units if unit.status == UnitStatus.RUNNING)

    def get(self, name: str) -> Optional[UnitReport]:
        """Return the report for a unit by name, if present."""
        for unit in self.units:
            if unit.name == name:
                return unit
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "mode": self.mode.value,
            "running": self.running_count,
            "total": len(self.units),
            "units": [unit.to_dict() for unit in self.units],
        }
