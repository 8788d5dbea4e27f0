# noqa: D401
"""Driver contract shared by every unit kind."""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import IO, List, Optional, Sequence, Union

from ..logging import get_logger
from ..types import StartOutcome, StopOutcome, UnitDefinition, UnitReport, UnitStatus

LOGGER = get_logger(__name__)

# Exit code reported when the command itself could not be executed
COMMAND_NOT_FOUND = 127


class DriverError(Exception):
    """Base exception for unit driver errors."""

    pass


class StartFailure(DriverError):
    """A unit failed to come up."""

    retryable = True

    def __init__(self, unit: str, reason: str) -> None:
        self.unit = unit
        self.reason = reason
        super().__init__(f"{unit}: {reason}")


class ConfigurationError(StartFailure):
    """A unit cannot be started until the operator fixes its setup."""

    retryable = False


@dataclass
class CommandResult:
    """Outcome of an external command."""

    args: List[str]
    returncode: int
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


Output = Union[int, IO, None]


def run_command(
    args: Sequence[str],
    cwd: Optional[Path] = None,
    stdout: Output = subprocess.DEVNULL,
    stderr: Output = subprocess.STDOUT,
    timeout: Optional[float] = None,
) -> CommandResult:
    """Run an external command to completion.

    A missing executable or working directory is reported as exit code 127
    instead of raising, and a timeout is reported on the result.

    Args:
        args: Command and arguments
        cwd: Working directory
        stdout: Where to send standard output (None inherits the terminal)
        stderr: Where to send standard error
        timeout: Optional timeout in seconds

    Returns:
        CommandResult with the exit status
    """
    args = list(args)
    LOGGER.debug("Running command", command=" ".join(args), cwd=str(cwd) if cwd else None)
    try:
        completed = subprocess.run(
            args,
            cwd=cwd,
            stdout=stdout,
            stderr=stderr,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as e:
        LOGGER.debug("Command not found", command=args[0], error=str(e))
        return CommandResult(args=args, returncode=COMMAND_NOT_FOUND)
    except subprocess.TimeoutExpired:
        LOGGER.warning("Command timed out", command=" ".join(args), timeout=timeout)
        return CommandResult(args=args, returncode=-1, timed_out=True)
    return CommandResult(args=args, returncode=completed.returncode)


class UnitDriver(ABC):
    """Uniform start/stop/probe contract over one lifecycle mechanism.

    ``start`` is idempotent and raises StartFailure when the unit cannot
    be brought up. ``stop`` never raises for an already stopped unit or a
    failing teardown command. ``probe`` never raises.
    """

    def __init__(self, definition: UnitDefinition) -> None:
        self.definition = definition

    @property
    def name(self) -> str:
        return self.definition.name

    @abstractmethod
    def start(self) -> StartOutcome:
        """Bring the unit up."""

    @abstractmethod
    def stop(self) -> StopOutcome:
        """Bring the unit down."""

    @abstractmethod
    def probe(self) -> UnitStatus:
        """Return the unit's current status."""

    def report(self) -> UnitReport:
        """Probe the unit and wrap the result for status output."""
        return UnitReport(
            name=self.definition.name,
            display_name=self.definition.display_name,
            status=self.probe(),
        )

    def open_log_sink(self) -> IO:
        """Open the unit's log sink for appending."""
        sink = self.definition.log_sink
        sink.parent.mkdir(parents=True, exist_ok=True)
        return open(sink, "a")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


__all__ = [
    "COMMAND_NOT_FOUND",
    "CommandResult",
    "ConfigurationError",
    "DriverError",
    "StartFailure",
    "UnitDriver",
    "run_command",
]
