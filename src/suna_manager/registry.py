"""Unit registry for the Suna stack.

Defines the managed units, their order and their drivers. The table is
built once per invocation from settings and never mutated afterwards.
"""

from __future__ import annotations

from typing import List

from .config import ManagerSettings
from .drivers import ComposeServiceDriver, SpawnedProcessDriver, SupabaseSidecarDriver, UnitDriver
from .liveness import LivenessTracker
from .lock import RunLock
from .mode import ModeResolver
from .orchestrator import Orchestrator
from .types import UnitDefinition, UnitKind

SUPABASE = "supabase"
REDIS = "redis"
BACKEND = "backend"
WORKER = "worker"
FRONTEND = "frontend"

BACKEND_COMMAND = ["uv", "run", "api.py"]
WORKER_COMMAND = ["uv", "run", "dramatiq", "run_agent_background"]
FRONTEND_COMMAND = ["npm", "run", "dev"]


def build_units(settings: ManagerSettings) -> List[UnitDefinition]:
    """Return unit descriptors in startup order."""
    return [
        UnitDefinition(
            name=SUPABASE,
            display_name="Local Supabase",
            kind=UnitKind.CLI_MANAGED_SIDECAR,
            order=10,
            log_sink=settings.log_sink(SUPABASE),
            local_only=True,
        ),
        UnitDefinition(
            name=REDIS,
            display_name="Redis",
            kind=UnitKind.EXTERNALLY_ORCHESTRATED,
            order=20,
            log_sink=settings.log_sink(REDIS),
            startup_grace_seconds=settings.redis_settle_seconds,
        ),
        UnitDefinition(
            name=BACKEND,
            display_name="Backend API",
            kind=UnitKind.SELF_SPAWNED_PROCESS,
            order=30,
            log_sink=settings.log_sink(BACKEND),
            startup_grace_seconds=settings.backend_startup_delay,
        ),
        UnitDefinition(
            name=WORKER,
            display_name="Background Worker",
            kind=UnitKind.SELF_SPAWNED_PROCESS,
            order=40,
            log_sink=settings.log_sink(WORKER),
            startup_grace_seconds=settings.worker_startup_delay,
        ),
        UnitDefinition(
            name=FRONTEND,
            display_name="Frontend",
            kind=UnitKind.SELF_SPAWNED_PROCESS,
            order=50,
            log_sink=settings.log_sink(FRONTEND),
            startup_grace_seconds=settings.frontend_startup_delay,
        ),
    ]


def build_driver(
    unit: UnitDefinition, settings: ManagerSettings, tracker: LivenessTracker
) -> UnitDriver:
    """Select the driver for a unit from its kind."""
    if unit.kind == UnitKind.CLI_MANAGED_SIDECAR:
        return SupabaseSidecarDriver(unit, project_dir=settings.backend_dir)

    if unit.kind == UnitKind.EXTERNALLY_ORCHESTRATED:
        return ComposeServiceDriver(
            unit,
            project=settings.project_name,
            service=settings.redis_service,
            project_dir=settings.root_dir,
            compose_file=settings.compose_file,
            settle_seconds=unit.startup_grace_seconds,
            ready_timeout=settings.ready_timeout,
        )

    if unit.kind == UnitKind.SELF_SPAWNED_PROCESS:
        commands = {
            BACKEND: (BACKEND_COMMAND, settings.backend_dir),
            WORKER: (WORKER_COMMAND, settings.backend_dir),
            FRONTEND: (FRONTEND_COMMAND, settings.frontend_dir),
        }
        if unit.name not in commands:
            raise ValueError(f"No command registered for unit: {unit.name}")
        command, cwd = commands[unit.name]

        ready_url = None
        if settings.wait_for_ready and unit.name == BACKEND:
            ready_url = settings.backend_url.rstrip("/") + settings.backend_health_path
        elif settings.wait_for_ready and unit.name == FRONTEND:
            ready_url = settings.frontend_url

        return SpawnedProcessDriver(
            unit,
            command=command,
            cwd=cwd,
            tracker=tracker,
            stop_timeout=settings.stop_timeout,
            kill_children=unit.name == FRONTEND,  # npm spawns the dev server as a child
            ready_url=ready_url,
            ready_timeout=settings.ready_timeout,
        )

    raise ValueError(f"Unknown unit kind: {unit.kind}")


def build_drivers(settings: ManagerSettings, tracker: LivenessTracker) -> List[UnitDriver]:
    return [build_driver(unit, settings, tracker) for unit in build_units(settings)]


def build_orchestrator(settings: ManagerSettings, use_lock: bool = True) -> Orchestrator:
    """Wire tracker, mode resolver, drivers and lock for a checkout.

    Args:
        settings: Manager settings
        use_lock: Hold the advisory lock during start and stop passes

    Returns:
        Orchestrator ready to run
    """
    tracker = LivenessTracker(settings.resolved_pid_dir)
    return Orchestrator(
        drivers=build_drivers(settings, tracker),
        mode_resolver=ModeResolver(settings.env_file),
        pid_dir=settings.resolved_pid_dir,
        log_dir=settings.resolved_log_dir,
        restart_cooldown=settings.restart_cooldown,
        lock=RunLock(settings.lock_file) if use_lock else None,
    )


__all__ = [
    "BACKEND",
    "FRONTEND",
    "REDIS",
    "SUPABASE",
    "WORKER",
    "build_driver",
    "build_drivers",
    "build_orchestrator",
    "build_units",
]
