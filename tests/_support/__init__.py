"""
Test support utilities for rowbind tests.

Helpers that are not fixtures but are shared by several test modules:
the recording ``FakeConnection`` and the model classes used across the
ORM tests.
"""

from __future__ import annotations

from pathlib import Path

from tests._support.fake_connection import Executed, FakeConnection, FakeResult, TrackingTable


def write_migration(directory: Path, name: str, up: object, down: object = None) -> Path:
    """Write a migration module defining ``up`` (and ``down`` unless None)."""
    directory.mkdir(parents=True, exist_ok=True)
    lines = [f"up = {up!r}"]
    if down is not None:
        lines.append(f"down = {down!r}")
    path = directory / name
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


__all__ = [
    "Executed",
    "FakeConnection",
    "FakeResult",
    "TrackingTable",
    "write_migration",
]
