# noqa: D104
"""Pytest fixtures for service manager tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Generator, List, Optional

import psutil
import pytest

from suna_manager.config import ManagerSettings
from suna_manager.drivers.base import StartFailure, UnitDriver
from suna_manager.liveness import LivenessTracker
from suna_manager.mode import ModeResolver
from suna_manager.orchestrator import Orchestrator
from suna_manager.types import (
    StartOutcome,
    StopOutcome,
    UnitDefinition,
    UnitKind,
    UnitStatus,
)

MANAGED_ENV_VARS = [
    "SUNA_ROOT",
    "SUNA_PID_DIR",
    "SUNA_LOG_DIR",
    "SUNA_COMPOSE_FILE",
    "SUNA_COMPOSE_PROJECT",
    "SUNA_STOP_TIMEOUT",
    "SUNA_REDIS_SETTLE",
    "SUNA_RESTART_COOLDOWN",
    "SUNA_READY_TIMEOUT",
    "SUNA_WAIT_FOR_READY",
    "SUNA_LOG_LEVEL",
    "SUNA_LOG_JSON",
    "BACKEND_STARTUP_DELAY",
    "WORKER_STARTUP_DELAY",
    "FRONTEND_STARTUP_DELAY",
]

# Long-running child that stays up until signalled
SLEEPER = [sys.executable, "-c", "import time; time.sleep(60)"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of settings."""
    for name in MANAGED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def suna_root(tmp_path: Path) -> Path:
    """Create a minimal Suna checkout layout."""
    (tmp_path / "backend").mkdir()
    (tmp_path / "frontend").mkdir()
    return tmp_path


@pytest.fixture
def settings(suna_root: Path) -> ManagerSettings:
    """Settings pointed at a temporary checkout with short timings."""
    return ManagerSettings(
        root_dir=suna_root,
        backend_startup_delay=0,
        worker_startup_delay=0,
        frontend_startup_delay=0,
        stop_timeout=0.5,
        redis_settle_seconds=0,
        restart_cooldown=0,
    )


@pytest.fixture
def tracker(tmp_path: Path) -> LivenessTracker:
    return LivenessTracker(tmp_path / "pids")


def write_env(root: Path, supabase_url: Optional[str]) -> Path:
    """Write backend/.env with an optional SUPABASE_URL."""
    env_path = root / "backend" / ".env"
    env_path.parent.mkdir(parents=True, exist_ok=True)
    lines = ["OTHER_SETTING=1\n"]
    if supabase_url is not None:
        lines.append(f"SUPABASE_URL={supabase_url}\n")
    env_path.write_text("".join(lines))
    return env_path


class FakeDriver(UnitDriver):
    """In-memory driver recording every call into a shared journal."""

    def __init__(
        self,
        name: str,
        order: int,
        journal: List[str],
        local_only: bool = False,
        fail_start: bool = False,
        fail_stop: bool = False,
        fail_probe: bool = False,
        start_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            UnitDefinition(
                name=name,
                display_name=name.title(),
                kind=UnitKind.SELF_SPAWNED_PROCESS,
                order=order,
                log_sink=Path("/dev/null"),
                local_only=local_only,
            )
        )
        self.journal = journal
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.fail_probe = fail_probe
        self.start_error = start_error
        self.running = False
        self.spawn_count = 0

    def start(self) -> StartOutcome:
        self.journal.append(f"start:{self.name}")
        if self.start_error is not None:
            raise self.start_error
        if self.fail_start:
            raise StartFailure(self.name, "boom")
        if self.running:
            return StartOutcome.ALREADY_RUNNING
        self.running = True
        self.spawn_count += 1
        return StartOutcome.STARTED

    def stop(self) -> StopOutcome:
        self.journal.append(f"stop:{self.name}")
        if self.fail_stop:
            raise RuntimeError("teardown exploded")
        if not self.running:
            return StopOutcome.NOT_RUNNING
        self.running = False
        return StopOutcome.STOPPED

    def probe(self) -> UnitStatus:
        self.journal.append(f"probe:{self.name}")
        if self.fail_probe:
            raise RuntimeError("probe exploded")
        return UnitStatus.RUNNING if self.running else UnitStatus.STOPPED


@pytest.fixture
def journal() -> List[str]:
    return []


@pytest.fixture
def remote_resolver(suna_root: Path) -> ModeResolver:
    write_env(suna_root, "https://project.supabase.co")
    return ModeResolver(suna_root / "backend" / ".env")


@pytest.fixture
def local_resolver(suna_root: Path) -> ModeResolver:
    write_env(suna_root, "http://127.0.0.1:54321")
    return ModeResolver(suna_root / "backend" / ".env")


def make_orchestrator(
    drivers: List[UnitDriver], resolver: ModeResolver, root: Path, **kwargs: object
) -> Orchestrator:
    return Orchestrator(
        drivers=drivers,
        mode_resolver=resolver,
        pid_dir=root / ".suna_pids",
        log_dir=root / "logs",
        restart_cooldown=0,
        **kwargs,
    )


@pytest.fixture
def spawned_pids() -> Generator[List[int], None, None]:
    """Collect PIDs spawned by a test and kill any left behind."""
    pids: List[int] = []
    yield pids
    for pid in pids:
        try:
            psutil.Process(pid).kill()
        except psutil.Error:
            pass
