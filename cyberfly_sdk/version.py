"""Cyberfly SDK version."""

from __future__ import annotations

from importlib import metadata

__version__ = "0.3.0"

DIST_NAME = "cyberfly-sdk"


def version() -> str:
    """Installed distribution version, falling back to `__version__` in a source tree."""
    try:
        return metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        return __version__


__all__ = ["__version__", "version"]
