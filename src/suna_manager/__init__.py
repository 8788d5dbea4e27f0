# noqa: D401
"""Suna Service Manager - lifecycle control for the local Suna stack."""

from .config import ManagerSettings
from .drivers import (
    ComposeServiceDriver,
    ConfigurationError,
    SpawnedProcessDriver,
    StartFailure,
    SupabaseSidecarDriver,
    UnitDriver,
)
from .liveness import LivenessTracker
from .lock import LockHeldError, RunLock
from .mode import ModeResolver
from .orchestrator import LifecycleReport, Orchestrator, OrchestratorState
from .registry import build_orchestrator, build_units
from .reporting import StatusReporter
from .types import (
    OperatingMode,
    StartOutcome,
    StatusReport,
    StopOutcome,
    UnitDefinition,
    UnitKind,
    UnitReport,
    UnitStatus,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Config
    "ManagerSettings",
    # Drivers
    "ComposeServiceDriver",
    "ConfigurationError",
    "SpawnedProcessDriver",
    "StartFailure",
    "SupabaseSidecarDriver",
    "UnitDriver",
    # State
    "LivenessTracker",
    "LockHeldError",
    "ModeResolver",
    "RunLock",
    # Orchestration
    "LifecycleReport",
    "Orchestrator",
    "OrchestratorState",
    "StatusReporter",
    "build_orchestrator",
    "build_units",
    # Types
    "OperatingMode",
    "StartOutcome",
    "StatusReport",
    "StopOutcome",
    "UnitDefinition",
    "UnitKind",
    "UnitReport",
    "UnitStatus",
]
