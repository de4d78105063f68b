"""Batch-tracked migration runner.

Applies pending migration modules in filename order, one transaction per
migration, and records each in the tracking table under a shared batch
number. Rollback reverts whole batches, newest first, each batch in reverse
application order.

Example::

    from rowbind.adapters.mysql import MySQLConnection
    from rowbind.migrations import MigrationRunner

    conn = MySQLConnection.connect(host="localhost", database="shop", user="app")
    runner = MigrationRunner("database/migrations")
    result = runner.migrate(conn)
    print(f"Applied {len(result.applied)} migrations in batch {result.batch}")

    runner.rollback(conn, steps=1)
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from rowbind.core.errors import MigrationDefinitionError, MigrationFileNotFoundError, RowbindError
from rowbind.core.logging import LogContext, get_logger
from rowbind.core.protocols import Connection
from rowbind.core.settings import RowbindSettings, get_settings
from rowbind.core.sql import SqlStatement, run, transaction
from rowbind.migrations.loader import MigrationDefinition, discover, load_definition
from rowbind.migrations.tracker import MigrationRecord, MigrationTracker

logger = get_logger(__name__)


@dataclass
class MigrationResult:
    """Result of a ``migrate()`` call. ``batch`` is None when nothing ran."""

    batch: int | None = None
    applied: list[str] = field(default_factory=list)


@dataclass
class RollbackResult:
    """Result of a ``rollback()`` call."""

    batches: list[int] = field(default_factory=list)
    rolled_back: list[str] = field(default_factory=list)


class MigrationRunner:
    """Applies and reverts migrations from a directory.

    Parameters
    ----------
    path
        Directory containing migration modules. Defaults to
        ``settings.migrations_path``.
    settings
        ``RowbindSettings``; defaults to the process-wide settings.
    move_applied
        Move each file into the applied sub-directory once recorded.
    move_back
        On rollback, move files found in the applied sub-directory back.
    table
        Tracking table name.
    """

    def __init__(
        self,
        path: Path | str | None = None,
        *,
        settings: RowbindSettings | None = None,
        move_applied: bool | None = None,
        move_back: bool | None = None,
        table: str | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._path = Path(path) if path is not None else settings.migrations_path
        self._applied_path = self._path / settings.applied_subdir
        self._move_applied = settings.move_applied if move_applied is None else move_applied
        self._move_back = settings.move_back if move_back is None else move_back
        self._tracker = MigrationTracker(table or settings.tracking_table)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def applied_path(self) -> Path:
        return self._applied_path

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def migrate(self, conn: Connection) -> MigrationResult:
        """Apply every pending migration as one new batch.

        Fails fast: a failing migration is rolled back and its error is
        re-raised; migrations applied before it in the same batch stay
        recorded.
        """
        self._tracker.ensure_table(conn)
        applied = self._tracker.applied_names(conn)
        pending = [path for path in discover(self._path) if path.name not in applied]
        if not pending:
            logger.info("migrations.up_to_date", path=str(self._path))
            return MigrationResult()

        definitions = [load_definition(path) for path in pending]
        for definition in definitions:
            if not definition.up:
                raise MigrationDefinitionError(
                    f"Migration {definition.name} has no 'up' statements",
                    migration=definition.name,
                )

        batch = self._tracker.next_batch(conn)
        result = MigrationResult(batch=batch)
        for definition in definitions:
            self._execute(conn, definition, definition.up, direction="up", batch=batch)
            self._tracker.record(conn, definition.name, batch)
            if self._move_applied:
                self._relocate(definition.path, self._applied_path)
            result.applied.append(definition.name)
            logger.info("migration.applied", migration=definition.name, batch=batch)
        return result

    def rollback(self, conn: Connection, steps: int = 1) -> RollbackResult:
        """Revert the last ``steps`` batches, newest first.

        Each step reverts the highest batch still recorded, so gaps in the
        batch numbers are skipped rather than counted as empty steps.
        """
        result = RollbackResult()
        if steps < 1:
            return result
        self._tracker.ensure_table(conn)

        for _ in range(steps):
            batch = self._tracker.last_batch(conn)
            if batch < 1:
                break
            names = list(reversed(self._tracker.names_in_batch(conn, batch)))
            definitions = [self._load_for_rollback(name) for name in names]
            for definition in definitions:
                self._execute(conn, definition, definition.down, direction="down", batch=batch)
                self._tracker.remove(conn, definition.name)
                if self._move_back and definition.path.parent == self._applied_path:
                    self._relocate(definition.path, self._path)
                result.rolled_back.append(definition.name)
                logger.info("migration.rolled_back", migration=definition.name, batch=batch)
            result.batches.append(batch)
        return result

    def applied(self, conn: Connection) -> list[MigrationRecord]:
        """Tracking records in application order."""
        self._tracker.ensure_table(conn)
        return self._tracker.records(conn)

    def pending(self, conn: Connection) -> list[str]:
        """File names of migrations not yet applied."""
        self._tracker.ensure_table(conn)
        applied = self._tracker.applied_names(conn)
        return [path.name for path in discover(self._path) if path.name not in applied]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _locate(self, name: str) -> Path:
        for directory in (self._path, self._applied_path):
            candidate = directory / name
            if candidate.is_file():
                return candidate
        raise MigrationFileNotFoundError(
            f"Migration file {name} not found in {self._path} or {self._applied_path}",
            migration=name,
        )

    def _load_for_rollback(self, name: str) -> MigrationDefinition:
        definition = load_definition(self._locate(name))
        if not definition.down:
            raise MigrationDefinitionError(
                f"Migration {name} has no 'down' statements and cannot be rolled back",
                migration=name,
            )
        return definition

    def _execute(
        self,
        conn: Connection,
        definition: MigrationDefinition,
        statements: tuple[str, ...],
        *,
        direction: str,
        batch: int,
    ) -> None:
        with LogContext(migration=definition.name, direction=direction, batch=batch):
            try:
                with transaction(conn):
                    for sql in statements:
                        run(conn, SqlStatement(sql))
            except RowbindError as exc:
                logger.error("migration.failed", error=str(exc))
                exc.with_context(migration=definition.name)
                raise

    def _relocate(self, source: Path, directory: Path) -> None:
        try:
            directory.mkdir(parents=True, exist_ok=True)
            shutil.move(str(source), str(directory / source.name))
        except OSError as exc:
            logger.warning(
                "migration.relocate_failed",
                migration=source.name,
                target=str(directory),
                error=str(exc),
            )


__all__ = [
    "MigrationResult",
    "RollbackResult",
    "MigrationRunner",
]
