"""Migration file discovery and loading.

A migration is a Python module in the migrations directory whose file name
sorts into application order (``2024_05_01_0001_create_users.py``). It
defines two module attributes:

    up = "CREATE TABLE `users` (...)"
    down = ["DROP TABLE `users`"]

Each is one SQL statement or a list of them; a zero-argument callable
returning either form is also accepted. Files starting with ``_`` are
ignored.
"""

from __future__ import annotations

import hashlib
import importlib.util
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rowbind.core.errors import MigrationDefinitionError

MIGRATION_GLOB = "*.py"


@dataclass(frozen=True)
class MigrationDefinition:
    """A loaded migration: its identity and normalised statements."""

    name: str
    path: Path
    up: tuple[str, ...]
    down: tuple[str, ...]


def normalize_statements(value: Any, *, migration: str | None = None, direction: str = "up") -> tuple[str, ...]:
    """Turn ``up``/``down`` into a tuple of non-blank, stripped statements.

    >>> normalize_statements("  DROP TABLE `t`;  ")
    ('DROP TABLE `t`;',)
    >>> normalize_statements(["CREATE TABLE `a` (id INT)", "  ", "DROP TABLE `b`"])
    ('CREATE TABLE `a` (id INT)', 'DROP TABLE `b`')
    """
    if isinstance(value, str):
        statement = value.strip()
        return (statement,) if statement else ()
    if isinstance(value, (list, tuple)):
        statements = []
        for item in value:
            if not isinstance(item, str):
                raise MigrationDefinitionError(
                    f"'{direction}' must contain only SQL strings, got {type(item).__name__}",
                    migration=migration,
                )
            if item.strip():
                statements.append(item.strip())
        return tuple(statements)
    raise MigrationDefinitionError(
        f"'{direction}' must be a SQL string or a list of SQL strings, got {type(value).__name__}",
        migration=migration,
    )


def discover(directory: Path) -> list[Path]:
    """Migration files directly inside ``directory``, in lexicographic order."""
    if not directory.is_dir():
        return []
    return sorted(
        (path for path in directory.glob(MIGRATION_GLOB) if path.is_file() and not path.name.startswith("_")),
        key=lambda path: path.name,
    )


def _module_name(path: Path) -> str:
    digest = hashlib.sha1(str(path.resolve()).encode("utf-8")).hexdigest()[:12]
    return f"rowbind_migration_{path.stem.replace('-', '_').replace('.', '_')}_{digest}"


def load_definition(path: Path) -> MigrationDefinition:
    """Import ``path`` and read its ``up`` and ``down`` statements.

    Raises:
        MigrationDefinitionError: the module cannot be imported, lacks
            ``up``/``down``, or defines them with the wrong shape
    """
    name = path.name
    spec = importlib.util.spec_from_file_location(_module_name(path), path)
    if spec is None or spec.loader is None:
        raise MigrationDefinitionError(f"Cannot load migration {name}", migration=name)
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise MigrationDefinitionError(
            f"Migration {name} failed to import: {exc}",
            migration=name,
            cause=exc,
        ) from exc

    missing = [attr for attr in ("up", "down") if not hasattr(module, attr)]
    if missing:
        raise MigrationDefinitionError(
            f"Migration {name} must define both 'up' and 'down' (missing: {', '.join(missing)})",
            migration=name,
        )

    fields = {}
    for direction in ("up", "down"):
        value = getattr(module, direction)
        if callable(value):
            try:
                value = value()
            except Exception as exc:
                raise MigrationDefinitionError(
                    f"Migration {name}: '{direction}' raised {exc!r}",
                    migration=name,
                    cause=exc,
                ) from exc
        fields[direction] = normalize_statements(value, migration=name, direction=direction)
    return MigrationDefinition(name=name, path=path, up=fields["up"], down=fields["down"])


__all__ = [
    "MIGRATION_GLOB",
    "MigrationDefinition",
    "normalize_statements",
    "discover",
    "load_definition",
]
