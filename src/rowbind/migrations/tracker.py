"""Tracking table access for the migration runner.

One row per applied migration::

    CREATE TABLE IF NOT EXISTS `rowbind_migrations` (
        `id` INT AUTO_INCREMENT PRIMARY KEY,
        `name` VARCHAR(255) NOT NULL UNIQUE,
        `batch` INT NOT NULL,
        `applied_at` TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )

Rows are only inserted after a migration's transaction commits and only
deleted after its rollback transaction commits.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from rowbind.core.protocols import Connection
from rowbind.core.sql import BoundParam, SqlStatement, fetch_all, quote_identifier, run

DEFAULT_TABLE = "rowbind_migrations"


@dataclass
class MigrationRecord:
    """Record of a single applied migration."""

    id: int
    name: str
    batch: int
    applied_at: Any = None


class MigrationTracker:
    """Reads and writes the tracking table. Holds no connection."""

    def __init__(self, table: str = DEFAULT_TABLE):
        self.table = table
        self._quoted = quote_identifier(table)

    def ensure_table(self, conn: Connection) -> None:
        """Create the tracking table if it doesn't exist."""
        run(
            conn,
            SqlStatement(
                f"CREATE TABLE IF NOT EXISTS {self._quoted} ("
                "`id` INT AUTO_INCREMENT PRIMARY KEY, "
                "`name` VARCHAR(255) NOT NULL UNIQUE, "
                "`batch` INT NOT NULL, "
                "`applied_at` TIMESTAMP DEFAULT CURRENT_TIMESTAMP)"
            ),
        )

    def records(self, conn: Connection) -> list[MigrationRecord]:
        rows = fetch_all(
            conn,
            SqlStatement(f"SELECT `id`, `name`, `batch`, `applied_at` FROM {self._quoted} ORDER BY `id`"),
        )
        return [
            MigrationRecord(
                id=int(row["id"]),
                name=row["name"],
                batch=int(row["batch"]),
                applied_at=row.get("applied_at"),
            )
            for row in rows
        ]

    def applied_names(self, conn: Connection) -> set[str]:
        rows = fetch_all(conn, SqlStatement(f"SELECT `name` FROM {self._quoted}"))
        return {row["name"] for row in rows}

    def last_batch(self, conn: Connection) -> int:
        """Highest batch number, 0 when nothing is applied."""
        rows = fetch_all(
            conn,
            SqlStatement(f"SELECT COALESCE(MAX(`batch`), 0) AS `batch` FROM {self._quoted}"),
        )
        return int(rows[0]["batch"]) if rows else 0

    def next_batch(self, conn: Connection) -> int:
        return self.last_batch(conn) + 1

    def names_in_batch(self, conn: Connection, batch: int) -> list[str]:
        """Members of ``batch`` in the order they were applied."""
        rows = fetch_all(
            conn,
            SqlStatement(
                f"SELECT `name` FROM {self._quoted} WHERE `batch` = ? ORDER BY `id`",
                (BoundParam(batch, "i"),),
            ),
        )
        return [row["name"] for row in rows]

    def record(self, conn: Connection, name: str, batch: int) -> None:
        run(
            conn,
            SqlStatement(
                f"INSERT INTO {self._quoted} (`name`, `batch`) VALUES (?, ?)",
                (BoundParam(name, "s"), BoundParam(batch, "i")),
            ),
        )

    def remove(self, conn: Connection, name: str) -> None:
        run(
            conn,
            SqlStatement(
                f"DELETE FROM {self._quoted} WHERE `name` = ?",
                (BoundParam(name, "s"),),
            ),
        )


__all__ = [
    "DEFAULT_TABLE",
    "MigrationRecord",
    "MigrationTracker",
]
