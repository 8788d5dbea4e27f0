# noqa: D401
"""Settings for the Suna service manager using Pydantic settings."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PID_DIRNAME = ".suna_pids"
DEFAULT_LOG_DIRNAME = "logs"


class ManagerSettings(BaseSettings):
    """Configuration for one Suna checkout.

    Every path is derived from ``root_dir`` unless overridden, so tests and
    service wrappers can point the manager at an isolated directory.
    Environment variables use the ``SUNA_`` prefix, except for the startup
    delays which keep their historical names.
    """

    model_config = SettingsConfigDict(env_prefix="SUNA_", extra="ignore", populate_by_name=True)

    root_dir: Path = Field(default_factory=Path.cwd, validation_alias="SUNA_ROOT")
    pid_dir: Optional[Path] = None
    log_dir: Optional[Path] = None

    # Docker compose
    compose_file: Optional[Path] = None
    compose_project: Optional[str] = None
    redis_service: str = "redis"

    # Startup grace periods (integer seconds)
    backend_startup_delay: int = Field(default=3, ge=0, validation_alias="BACKEND_STARTUP_DELAY")
    worker_startup_delay: int = Field(default=3, ge=0, validation_alias="WORKER_STARTUP_DELAY")
    frontend_startup_delay: int = Field(default=5, ge=0, validation_alias="FRONTEND_STARTUP_DELAY")

    # Timing
    stop_timeout: float = Field(default=2.0, ge=0)
    redis_settle_seconds: float = Field(default=2.0, ge=0, validation_alias="SUNA_REDIS_SETTLE")
    restart_cooldown: float = Field(default=2.0, ge=0)
    ready_timeout: float = Field(default=30.0, gt=0)
    wait_for_ready: bool = False

    # Endpoints announced after a successful start
    frontend_url: str = "http://localhost:3000"
    backend_url: str = "http://localhost:8000"
    backend_health_path: str = "/api/health"

    # Logging
    log_level: str = "WARNING"
    log_json: bool = False

    @property
    def backend_dir(self) -> Path:
        return self.root_dir / "backend"

    @property
    def frontend_dir(self) -> Path:
        return self.root_dir / "frontend"

    @property
    def env_file(self) -> Path:
        """Backend .env consulted for SUPABASE_URL."""
        return self.backend_dir / ".env"

    @property
    def resolved_pid_dir(self) -> Path:
        return self.pid_dir or self.root_dir / DEFAULT_PID_DIRNAME

    @property
    def resolved_log_dir(self) -> Path:
        return self.log_dir or self.root_dir / DEFAULT_LOG_DIRNAME

    @property
    def lock_file(self) -> Path:
        return self.resolved_pid_dir / "manager.lock"

    @property
    def project_name(self) -> str:
        """Compose project name, normalised the way docker compose does."""
        if self.compose_project:
            return self.compose_project
        name = self.root_dir.resolve().name.lower()
        return re.sub(r"[^a-z0-9_-]", "", name) or "default"

    def log_sink(self, unit: str) -> Path:
        """Return the append-only log file for a unit."""
        return self.resolved_log_dir / f"{unit}.log"


__all__ = ["ManagerSettings"]
