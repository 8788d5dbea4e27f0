# noqa: D401
"""PID record bookkeeping for self-spawned units."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import psutil

from .logging import get_logger

LOGGER = get_logger(__name__)


def pid_alive(pid: int) -> bool:
    """Return True if ``pid`` names a live, non-zombie process.

    A process that exists but cannot be inspected counts as alive.
    """
    if pid <= 0:
        return False
    try:
        process = psutil.Process(pid)
        return process.status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        return True


class LivenessTracker:
    """Maps unit names to recorded process identifiers.

    Records live in ``<record_dir>/<unit>.pid``. They are never trusted
    blindly: every read verifies the process against the OS process table
    and removes the record when the process is gone.
    """

    def __init__(self, record_dir: Path) -> None:
        """Initialize tracker.

        Args:
            record_dir: Directory holding one PID file per unit
        """
        self.record_dir = record_dir

    def record_path(self, unit: str) -> Path:
        return self.record_dir / f"{unit}.pid"

    def is_alive(self, unit: str) -> bool:
        """Check whether the unit's recorded process is alive.

        Stale or unreadable records are removed as a side effect.

        Args:
            unit: Unit name

        Returns:
            True if a record exists and its process is alive
        """
        pid = self._read(unit)
        if pid is None:
            return False

        if pid_alive(pid):
            return True

        LOGGER.debug("Removing stale PID record", unit=unit, pid=pid)
        self.clear(unit)
        return False

    def get_pid(self, unit: str) -> Optional[int]:
        """Return the recorded PID if its process is alive."""
        if not self.is_alive(unit):
            return None
        return self._read(unit)

    def recorded_pid(self, unit: str) -> Optional[int]:
        """Return the recorded PID without checking the process."""
        return self._read(unit)

    def record(self, unit: str, pid: int) -> None:
        """Persist a PID for the unit, creating the record directory.

        Args:
            unit: Unit name
            pid: Process ID to record
        """
        path = self.record_path(unit)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"{pid}\n")
        LOGGER.debug("Recorded PID", unit=unit, pid=pid, path=str(path))

    def clear(self, unit: str) -> None:
        """Remove the unit's record. Clearing a missing record is a no-op."""
        self.record_path(unit).unlink(missing_ok=True)

    def _read(self, unit: str) -> Optional[int]:
        path = self.record_path(unit)
        try:
            content = path.read_text().strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            LOGGER.warning("Unreadable PID record", unit=unit, error=str(e))
            return None

        try:
            return int(content)
        except ValueError:
            LOGGER.debug("Removing malformed PID record", unit=unit, content=content)
            self.clear(unit)
            return None


__all__ = ["LivenessTracker", "pid_alive"]
