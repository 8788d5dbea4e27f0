# noqa: D401
"""Docker compose managed units."""

from __future__ import annotations

import time
from pathlib import Path
from typing import List, Optional

import docker
from docker.errors import DockerException

from ..health import wait_until
from ..logging import get_logger
from ..types import StartOutcome, StopOutcome, UnitDefinition, UnitStatus
from .base import StartFailure, UnitDriver, run_command

LOGGER = get_logger(__name__)

PROJECT_LABEL = "com.docker.compose.project"
SERVICE_LABEL = "com.docker.compose.service"


class ComposeServiceDriver(UnitDriver):
    """Drives a single docker compose service.

    Running containers are found by their compose project and service
    labels, so unrelated containers that merely share a name fragment are
    never mistaken for this unit.
    """

    def __init__(
        self,
        definition: UnitDefinition,
        project: str,
        service: str,
        project_dir: Path,
        compose_file: Optional[Path] = None,
        settle_seconds: float = 2.0,
        ready_timeout: float = 30.0,
        client: Optional[docker.DockerClient] = None,
    ) -> None:
        """Initialize compose driver.

        Args:
            definition: Unit descriptor
            project: Compose project name
            service: Service name in the compose file
            project_dir: Directory compose commands run from
            compose_file: Optional explicit compose file
            settle_seconds: Minimum wait after ``up`` before declaring success
            ready_timeout: Seconds to wait for the container to show as running
            client: Docker client (created from the environment on first use)
        """
        super().__init__(definition)
        self.project = project
        self.service = service
        self.project_dir = project_dir
        self.compose_file = compose_file
        self.settle_seconds = settle_seconds
        self.ready_timeout = ready_timeout
        self._client = client

    @property
    def client(self) -> docker.DockerClient:
        """Get or create Docker client."""
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def compose_command(self, *args: str) -> List[str]:
        """Build a ``docker compose`` invocation bound to this project."""
        cmd = ["docker", "compose", "-p", self.project]
        if self.compose_file is not None:
            cmd.extend(["-f", str(self.compose_file)])
        cmd.extend(args)
        return cmd

    def is_running(self) -> bool:
        """Query the engine for a running container of this service.

        Raises:
            DockerException: If the engine cannot be reached
        """
        containers = self.client.containers.list(
            filters={
                "label": [
                    f"{PROJECT_LABEL}={self.project}",
                    f"{SERVICE_LABEL}={self.service}",
                ],
                "status": "running",
            }
        )
        return len(containers) > 0

    def _safe_is_running(self) -> Optional[bool]:
        try:
            return self.is_running()
        except DockerException as e:
            LOGGER.debug("Docker query failed", unit=self.name, error=str(e))
            return None

    def start(self) -> StartOutcome:
        """Start the compose service unless it is already running.

        Returns:
            StartOutcome.ALREADY_RUNNING or StartOutcome.STARTED

        Raises:
            StartFailure: If ``docker compose up`` fails or the container
                never shows as running
        """
        if self._safe_is_running():
            LOGGER.info("Compose service already running", unit=self.name, service=self.service)
            return StartOutcome.ALREADY_RUNNING

        result = run_command(
            self.compose_command("up", "-d", self.service),
            cwd=self.project_dir,
            stdout=None,
            stderr=None,
        )
        if not result.ok:
            raise StartFailure(
                self.name, f"docker compose up {self.service} exited with code {result.returncode}"
            )

        time.sleep(self.settle_seconds)

        running = self._safe_is_running()
        if running is None:
            # Engine not queryable through the API; trust compose's exit status
            return StartOutcome.STARTED
        if not running and not wait_until(self._safe_is_running, timeout=self.ready_timeout):
            raise StartFailure(self.name, f"container for {self.service} is not running after start")

        LOGGER.info("Compose service started", unit=self.name, service=self.service)
        return StartOutcome.STARTED

    def stop(self) -> StopOutcome:
        """Tear the compose service down. Failures are logged, never raised."""
        was_running = self._safe_is_running()

        with self.open_log_sink() as log_handle:
            result = run_command(
                self.compose_command("down", self.service),
                cwd=self.project_dir,
                stdout=log_handle,
            )
        if not result.ok:
            LOGGER.warning(
                "docker compose down failed",
                unit=self.name,
                returncode=result.returncode,
                log=str(self.definition.log_sink),
            )

        if was_running is False:
            return StopOutcome.NOT_RUNNING
        return StopOutcome.STOPPED

    def probe(self) -> UnitStatus:
        running = self._safe_is_running()
        if running is None:
            return UnitStatus.UNKNOWN
        return UnitStatus.RUNNING if running else UnitStatus.STOPPED


__all__ = ["ComposeServiceDriver", "PROJECT_LABEL", "SERVICE_LABEL"]
