# noqa: D401
"""Local Supabase managed through its own CLI."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

from ..logging import get_logger
from ..types import StartOutcome, StopOutcome, UnitDefinition, UnitStatus
from .base import COMMAND_NOT_FOUND, ConfigurationError, StartFailure, UnitDriver, run_command

LOGGER = get_logger(__name__)

DEFAULT_CLI = ("npx", "supabase")


class SupabaseSidecarDriver(UnitDriver):
    """Drives a local Supabase stack with ``supabase status/start/stop``."""

    def __init__(
        self,
        definition: UnitDefinition,
        project_dir: Path,
        cli: Sequence[str] = DEFAULT_CLI,
        status_timeout: Optional[float] = 60.0,
    ) -> None:
        """Initialize sidecar driver.

        Args:
            definition: Unit descriptor
            project_dir: Directory containing the ``supabase/`` project
            cli: Command prefix invoking the Supabase CLI
            status_timeout: Timeout for ``supabase status``
        """
        super().__init__(definition)
        self.project_dir = project_dir
        self.cli = tuple(cli)
        self.status_timeout = status_timeout

    @property
    def config_file(self) -> Path:
        return self.project_dir / "supabase" / "config.toml"

    def is_initialized(self) -> bool:
        return self.config_file.is_file()

    def _command(self, action: str) -> List[str]:
        return [*self.cli, action]

    def start(self) -> StartOutcome:
        """Start local Supabase in the foreground.

        The CLI runs attached to the terminal because the first start can
        download images and prompt the operator.

        Raises:
            ConfigurationError: If the Supabase project was never initialized
            StartFailure: If ``supabase start`` fails
        """
        if self.probe() == UnitStatus.RUNNING:
            LOGGER.info("Local Supabase already running", unit=self.name)
            return StartOutcome.ALREADY_RUNNING

        if not self.is_initialized():
            raise ConfigurationError(
                self.name,
                "Supabase project not initialized. "
                f"Run 'npx supabase init' in {self.project_dir} first.",
            )

        result = run_command(self._command("start"), cwd=self.project_dir, stdout=None, stderr=None)
        if result.returncode == COMMAND_NOT_FOUND:
            raise StartFailure(self.name, f"Supabase CLI not found ({' '.join(self.cli)})")
        if not result.ok:
            raise StartFailure(self.name, f"supabase start exited with code {result.returncode}")

        LOGGER.info("Local Supabase started", unit=self.name)
        return StartOutcome.STARTED

    def stop(self) -> StopOutcome:
        """Stop local Supabase, appending CLI output to the log sink."""
        with self.open_log_sink() as log_handle:
            result = run_command(self._command("stop"), cwd=self.project_dir, stdout=log_handle)
        if not result.ok:
            LOGGER.warning(
                "supabase stop reported an error",
                unit=self.name,
                returncode=result.returncode,
                log=str(self.definition.log_sink),
            )
        return StopOutcome.STOPPED

    def probe(self) -> UnitStatus:
        result = run_command(
            self._command("status"), cwd=self.project_dir, timeout=self.status_timeout
        )
        if result.returncode == COMMAND_NOT_FOUND or result.timed_out:
            return UnitStatus.UNKNOWN
        return UnitStatus.RUNNING if result.ok else UnitStatus.STOPPED


__all__ = ["SupabaseSidecarDriver", "DEFAULT_CLI"]
