"""Unit drivers, one per lifecycle mechanism."""

from .base import (
    CommandResult,
    ConfigurationError,
    DriverError,
    StartFailure,
    UnitDriver,
    run_command,
)
from .docker_driver import ComposeServiceDriver
from .process_driver import SpawnedProcessDriver
from .sidecar_driver import SupabaseSidecarDriver

__all__ = [
    "CommandResult",
    "ComposeServiceDriver",
    "ConfigurationError",
    "DriverError",
    "SpawnedProcessDriver",
    "StartFailure",
    "SupabaseSidecarDriver",
    "UnitDriver",
    "run_command",
]
