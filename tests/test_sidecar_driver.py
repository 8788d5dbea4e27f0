# noqa: D401
"""Unit tests for the local Supabase sidecar driver."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List
from unittest.mock import patch

import pytest

from suna_manager.drivers.base import COMMAND_NOT_FOUND, CommandResult, ConfigurationError, StartFailure
from suna_manager.drivers.sidecar_driver import SupabaseSidecarDriver
from suna_manager.types import StartOutcome, StopOutcome, UnitDefinition, UnitKind, UnitStatus

RUN_COMMAND = "suna_manager.drivers.sidecar_driver.run_command"


class FakeCli:
    """Scripted ``npx supabase`` returning fixed exit codes per action."""

    def __init__(self, **returncodes: int) -> None:
        self.returncodes: Dict[str, int] = returncodes
        self.calls: List[List[str]] = []
        self.kwargs: List[dict] = []

    def __call__(self, args: List[str], **kwargs: object) -> CommandResult:
        self.calls.append(args)
        self.kwargs.append(kwargs)
        return CommandResult(args=args, returncode=self.returncodes.get(args[-1], 0))

    @property
    def actions(self) -> List[str]:
        return [call[-1] for call in self.calls]


@pytest.fixture
def driver(suna_root: Path) -> SupabaseSidecarDriver:
    definition = UnitDefinition(
        name="supabase",
        display_name="Local Supabase",
        kind=UnitKind.CLI_MANAGED_SIDECAR,
        order=10,
        log_sink=suna_root / "logs" / "supabase.log",
        local_only=True,
    )
    return SupabaseSidecarDriver(definition, project_dir=suna_root / "backend")


def _initialize(driver: SupabaseSidecarDriver) -> None:
    driver.config_file.parent.mkdir(parents=True, exist_ok=True)
    driver.config_file.write_text("[api]\nport = 54321\n")


class TestStart:
    """Test sidecar startup."""

    def test_already_running(self, driver: SupabaseSidecarDriver) -> None:
        cli = FakeCli(status=0)
        with patch(RUN_COMMAND, cli):
            assert driver.start() == StartOutcome.ALREADY_RUNNING
        assert cli.actions == ["status"]

    def test_uninitialized_project_is_fatal(self, driver: SupabaseSidecarDriver) -> None:
        """Test that a missing config.toml aborts without running supabase start."""
        cli = FakeCli(status=1)
        with patch(RUN_COMMAND, cli):
            with pytest.raises(ConfigurationError) as exc_info:
                driver.start()

        assert exc_info.value.retryable is False
        assert "npx supabase init" in exc_info.value.reason
        assert "start" not in cli.actions
        assert "init" not in cli.actions

    def test_start_runs_attached(self, driver: SupabaseSidecarDriver) -> None:
        """Test that supabase start inherits the terminal."""
        _initialize(driver)
        cli = FakeCli(status=1, start=0)
        with patch(RUN_COMMAND, cli):
            assert driver.start() == StartOutcome.STARTED

        assert cli.actions == ["status", "start"]
        assert cli.calls[1] == ["npx", "supabase", "start"]
        assert cli.kwargs[1]["stdout"] is None
        assert cli.kwargs[1]["cwd"] == driver.project_dir

    def test_start_failure(self, driver: SupabaseSidecarDriver) -> None:
        _initialize(driver)
        with patch(RUN_COMMAND, FakeCli(status=1, start=1)):
            with pytest.raises(StartFailure) as exc_info:
                driver.start()
        assert not isinstance(exc_info.value, ConfigurationError)
        assert exc_info.value.unit == "supabase"

    def test_missing_cli(self, driver: SupabaseSidecarDriver) -> None:
        _initialize(driver)
        with patch(RUN_COMMAND, FakeCli(status=COMMAND_NOT_FOUND, start=COMMAND_NOT_FOUND)):
            with pytest.raises(StartFailure, match="CLI not found"):
                driver.start()


class TestStopAndProbe:
    """Test sidecar teardown and status."""

    def test_stop_appends_to_log(self, driver: SupabaseSidecarDriver) -> None:
        cli = FakeCli(stop=0)
        with patch(RUN_COMMAND, cli):
            assert driver.stop() == StopOutcome.STOPPED

        assert cli.actions == ["stop"]
        assert str(cli.kwargs[0]["stdout"].name) == str(driver.definition.log_sink)
        assert driver.definition.log_sink.exists()

    def test_stop_error_is_swallowed(self, driver: SupabaseSidecarDriver) -> None:
        """Test that a failing supabase stop never raises."""
        with patch(RUN_COMMAND, FakeCli(stop=1)):
            assert driver.stop() == StopOutcome.STOPPED

    @pytest.mark.parametrize(
        "returncode,expected",
        [(0, UnitStatus.RUNNING), (1, UnitStatus.STOPPED), (COMMAND_NOT_FOUND, UnitStatus.UNKNOWN)],
    )
    def test_probe(self, driver: SupabaseSidecarDriver, returncode: int, expected: UnitStatus) -> None:
        with patch(RUN_COMMAND, FakeCli(status=returncode)):
            assert driver.probe() == expected
