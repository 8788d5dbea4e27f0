# noqa: D401
"""Unit tests for structured logging setup."""

from __future__ import annotations

import json

import pytest

from suna_manager.logging import configure_logging, get_logger


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    configure_logging()


class TestConfigureLogging:
    """Test level filtering and renderers."""

    def test_json_output_goes_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("INFO", json_output=True)

        get_logger("tests").info("Process started", unit="backend", pid=42)

        captured = capsys.readouterr()
        assert captured.out == ""
        record = json.loads(captured.err.strip().splitlines()[-1])
        assert record["event"] == "Process started"
        assert record["unit"] == "backend"
        assert record["pid"] == 42
        assert record["level"] == "info"

    def test_level_filters_lower_events(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("WARNING", json_output=True)

        get_logger("tests").info("hidden")
        get_logger("tests").warning("shown")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err

    def test_unknown_level_falls_back_to_warning(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("NOPE", json_output=True)

        get_logger("tests").info("hidden")

        assert "hidden" not in capsys.readouterr().err

    def test_initial_values_are_bound(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("INFO", json_output=True)

        get_logger("tests", unit="redis").info("bound")

        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert record["unit"] == "redis"
