# noqa: D401
"""Backing store mode detection from the backend .env file."""

from __future__ import annotations

import ipaddress
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from dotenv import dotenv_values

from .logging import get_logger
from .types import OperatingMode

LOGGER = get_logger(__name__)

SUPABASE_URL_KEY = "SUPABASE_URL"


def is_loopback_host(host: Optional[str]) -> bool:
    """Return True for ``localhost`` or a loopback IP literal."""
    if not host:
        return False
    host = host.strip("[]").lower()
    if host == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def extract_host(url: str) -> Optional[str]:
    """Extract the host component of a URL, tolerating a missing scheme."""
    url = url.strip()
    if not url:
        return None
    if "//" not in url:
        url = f"http://{url}"
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


class ModeResolver:
    """Classifies the backing store as locally or externally hosted."""

    def __init__(self, env_path: Path, key: str = SUPABASE_URL_KEY) -> None:
        """Initialize resolver.

        Args:
            env_path: Path to the backend .env file
            key: Variable holding the backing store URL
        """
        self.env_path = env_path
        self.key = key

    def resolve(self) -> OperatingMode:
        """Resolve the operating mode.

        The file is read on every call. A missing file, key or host
        resolves to REMOTE, which leaves the backing store alone.

        Returns:
            OperatingMode.LOCAL if the URL points at a loopback host
        """
        if not self.env_path.exists():
            LOGGER.debug("No env file, assuming remote backing store", path=str(self.env_path))
            return OperatingMode.REMOTE

        try:
            values = dotenv_values(self.env_path)
        except OSError as e:
            LOGGER.warning("Cannot read env file", path=str(self.env_path), error=str(e))
            return OperatingMode.REMOTE

        url = values.get(self.key) or ""
        host = extract_host(url)

        mode = OperatingMode.LOCAL if is_loopback_host(host) else OperatingMode.REMOTE
        LOGGER.debug("Resolved operating mode", mode=mode.value, host=host)
        return mode


__all__ = ["ModeResolver", "extract_host", "is_loopback_host"]
