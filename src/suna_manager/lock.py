# noqa: D401
"""Advisory lock rejecting concurrent manager invocations."""

from __future__ import annotations

import os
from pathlib import Path
from types import TracebackType
from typing import Optional, Type

from .liveness import pid_alive
from .logging import get_logger

LOGGER = get_logger(__name__)


class LockHeldError(Exception):
    """Another manager invocation holds the lock."""

    def __init__(self, path: Path, holder: Optional[int]) -> None:
        self.path = path
        self.holder = holder
        who = f"PID {holder}" if holder else "another process"
        super().__init__(f"Another suna-manager run ({who}) holds {path}")


class RunLock:
    """PID-stamped lock file created atomically with its holder.

    A lock left behind by a dead process is treated as stale and taken
    over.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def holder(self) -> Optional[int]:
        """Return the PID stored in the lock file, if any."""
        try:
            return int(self.path.read_text().strip())
        except (FileNotFoundError, ValueError):
            return None

    def acquire(self) -> None:
        """Take the lock.

        The PID is written to a private file first and hard-linked into
        place, so the lock file is never visible without its holder.

        Raises:
            LockHeldError: If a live process holds the lock
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        staging = self.path.with_name(f"{self.path.name}.{os.getpid()}")
        staging.write_text(f"{os.getpid()}\n")

        try:
            for _ in range(2):
                try:
                    os.link(staging, self.path)
                except FileExistsError:
                    holder = self.holder()
                    if holder is not None and pid_alive(holder):
                        raise LockHeldError(self.path, holder)
                    LOGGER.debug("Removing stale lock", path=str(self.path), holder=holder)
                    self.path.unlink(missing_ok=True)
                    continue
                self._held = True
                return
        finally:
            staging.unlink(missing_ok=True)

        raise LockHeldError(self.path, self.holder())

    def release(self) -> None:
        """Release the lock if this instance holds it."""
        if not self._held:
            return
        if self.holder() == os.getpid():
            self.path.unlink(missing_ok=True)
        self._held = False

    def __enter__(self) -> RunLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()


__all__ = ["LockHeldError", "RunLock"]
