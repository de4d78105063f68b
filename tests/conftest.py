"""
Shared pytest fixtures and configuration for rowbind tests.

This module provides:
- Registry and settings cleanup for test isolation
- A recording ``FakeConnection``
- A temporary migrations directory

Usage:
    Fixtures are auto-discovered by pytest; request them by name.

    def test_find(conn):
        conn.on("SELECT * FROM `users`", rows=[{"id": 1}])
"""

from __future__ import annotations

from pathlib import Path

import pytest

from rowbind.core.settings import reset_settings
from rowbind.orm.registry import clear_registry
from tests._support import FakeConnection, TrackingTable


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Every test in this suite is a fast, isolated unit test."""
    for item in items:
        item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Fresh descriptor cache and settings; no stray ROWBIND_* variables or .env."""
    import os

    for key in list(os.environ):
        if key.startswith("ROWBIND_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    clear_registry()
    reset_settings()
    yield
    clear_registry()
    reset_settings()


# =============================================================================
# Connections
# =============================================================================


@pytest.fixture
def conn() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def tracking(conn: FakeConnection) -> TrackingTable:
    return TrackingTable(conn)


@pytest.fixture
def migrations_dir(tmp_path: Path) -> Path:
    path = tmp_path / "database" / "migrations"
    path.mkdir(parents=True)
    return path
