"""
cyberfly_sdk.cli
================

Command-line interface for the Cyberfly node SDK, exposed as the `cyberfly`
console script. Typer is only imported when the CLI is actually used.

    $ cyberfly --help
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, List, Optional

__all__ = ["get_app", "run"]


def get_app() -> Any:
    """Return the Typer application (imports the CLI lazily)."""
    return import_module(".main", __name__).app


def run(argv: Optional[List[str]] = None) -> int:
    return import_module(".main", __name__).main(argv)
