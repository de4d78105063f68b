"""
Canonical protocol definitions for rowbind.

rowbind never owns a database driver. Every operation receives an object
that satisfies ``Connection`` and talks to it only through the methods
below, so any driver can be plugged in with a thin adapter (see
``rowbind.adapters.mysql``) and tests can use a recording fake.

Architecture:
    ::

        Connection Protocol:
        ┌────────────────────────────────────────────────────────┐
        │ prepare(sql)        → PreparedStatement                │
        │ begin()             → Start a transaction              │
        │ commit()            → Commit current transaction       │
        │ rollback()          → Roll back current transaction    │
        │ last_insert_id      → Key generated by the last INSERT │
        └────────────────────────────────────────────────────────┘

        PreparedStatement Protocol:
        ┌────────────────────────────────────────────────────────┐
        │ bind([(value, tag), ...]) → one batch bind             │
        │ execute()                 → Run the statement          │
        │ fetch_all()               → list[dict[column, value]]  │
        │ affected_rows             → Rows changed by execute()  │
        │ close()                   → Release driver resources   │
        └────────────────────────────────────────────────────────┘

    Tags are ``i`` (integer), ``d`` (double) and ``s`` (string/other).
    Placeholders in the SQL text are ``?``.

Guardrails:
    ❌ DON'T: Store a Connection on a model or runner
    ✅ DO: Pass it into every call

Tags:
    protocol, connection, prepared-statement, rowbind, contracts
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rowbind.core.sql import BoundParam


@runtime_checkable
class PreparedStatement(Protocol):
    """A statement prepared by the driver, ready for parameter binding."""

    def bind(self, params: Sequence[BoundParam]) -> None:
        """Bind all parameters in placeholder order, in a single call."""
        ...

    def execute(self) -> None:
        """Execute with the bound parameters."""
        ...

    def fetch_all(self) -> list[dict[str, Any]]:
        """Return every result row as a column → value mapping."""
        ...

    @property
    def affected_rows(self) -> int:
        """Rows inserted/updated/deleted by the last ``execute()``."""
        ...

    def close(self) -> None:
        """Release the statement."""
        ...


@runtime_checkable
class Connection(Protocol):
    """
    Minimal synchronous connection interface consumed by rowbind.

    Examples:
        >>> stmt = conn.prepare("SELECT * FROM `users` WHERE `id` = ? LIMIT 1")
        >>> stmt.bind([BoundParam(7, "i")])
        >>> stmt.execute()
        >>> stmt.fetch_all()
        [{'id': 7, 'name': 'Ada'}]
    """

    def prepare(self, sql: str) -> PreparedStatement:
        """Prepare ``sql``; raise the driver's error if it is rejected."""
        ...

    def begin(self) -> None:
        """Start a transaction."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...

    @property
    def last_insert_id(self) -> int | None:
        """Auto-increment value generated by the most recent statement, or None."""
        ...


__all__ = [
    "Connection",
    "PreparedStatement",
]
