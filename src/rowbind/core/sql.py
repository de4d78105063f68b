"""SQL statement values and the single execution path to a ``Connection``.

Every statement rowbind issues is a ``SqlStatement``: SQL text with ``?``
placeholders plus an ordered tuple of ``BoundParam(value, tag)``. Nothing is
interpolated into the SQL text except back-tick quoted identifiers.

``run()`` and ``fetch_all()`` are the only places that touch a prepared
statement. They wrap driver failures into ``QueryPreparationError`` /
``QueryExecutionError``, log them, and always close the statement.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, NamedTuple

from rowbind.core.errors import (
    DatabaseError,
    QueryExecutionError,
    QueryPreparationError,
    UnsafeQueryError,
)
from rowbind.core.logging import get_logger
from rowbind.core.protocols import Connection, PreparedStatement

logger = get_logger(__name__)


class BoundParam(NamedTuple):
    """One positional parameter and its driver type tag (``i``/``d``/``s``)."""

    value: Any
    tag: str


def type_tag(value: Any) -> str:
    """Driver type tag for a storage-ready value.

    >>> type_tag(True), type_tag(3), type_tag(2.5), type_tag("x"), type_tag(None)
    ('i', 'i', 'd', 's', 's')
    """
    if isinstance(value, (bool, int)):
        return "i"
    if isinstance(value, float):
        return "d"
    return "s"


def bind(value: Any, tag: str | None = None) -> BoundParam:
    """Pair ``value`` with ``tag`` (derived from the value when omitted)."""
    return BoundParam(value, tag if tag is not None else type_tag(value))


def quote_identifier(name: str) -> str:
    """Back-tick quote a table or column name.

    Dotted names are quoted per part and embedded back-ticks are doubled.

    >>> quote_identifier("shop.orders")
    '`shop`.`orders`'
    """
    if not isinstance(name, str) or not name.strip():
        raise UnsafeQueryError("SQL identifier must be a non-empty string", value=name)
    parts = name.split(".")
    if any(not part for part in parts):
        raise UnsafeQueryError(f"Malformed SQL identifier: {name!r}", value=name)
    return ".".join("`" + part.replace("`", "``") + "`" for part in parts)


@dataclass(frozen=True)
class SqlFragment:
    """A piece of a WHERE clause with its parameters."""

    clause: str
    params: tuple[BoundParam, ...] = ()

    @property
    def types(self) -> str:
        return "".join(param.tag for param in self.params)

    @staticmethod
    def join(fragments: Iterable[SqlFragment], separator: str) -> SqlFragment:
        fragments = [f for f in fragments if f.clause]
        params: list[BoundParam] = []
        for fragment in fragments:
            params.extend(fragment.params)
        return SqlFragment(separator.join(f.clause for f in fragments), tuple(params))


@dataclass(frozen=True)
class SqlStatement:
    """Complete statement: SQL text and its ordered, typed parameters."""

    sql: str
    params: tuple[BoundParam, ...] = ()

    @property
    def types(self) -> str:
        """Parallel type-tag string, e.g. ``"sis"``."""
        return "".join(param.tag for param in self.params)

    @property
    def values(self) -> list[Any]:
        return [param.value for param in self.params]


def _prepare(conn: Connection, statement: SqlStatement) -> PreparedStatement:
    try:
        return conn.prepare(statement.sql)
    except Exception as exc:
        logger.error("query.failed", stage="prepare", sql=statement.sql, error=str(exc))
        raise QueryPreparationError(
            f"Failed to prepare statement: {exc}",
            sql=statement.sql,
            cause=exc,
        ) from exc


def _execution_error(statement: SqlStatement, exc: Exception) -> QueryExecutionError:
    logger.error(
        "query.failed",
        stage="execute",
        sql=statement.sql,
        types=statement.types,
        error=str(exc),
    )
    return QueryExecutionError(
        f"Failed to execute statement: {exc}",
        sql=statement.sql,
        cause=exc,
    )


@contextmanager
def executed(conn: Connection, statement: SqlStatement) -> Iterator[PreparedStatement]:
    """Prepare, bind and execute ``statement``; close it on exit."""
    prepared = _prepare(conn, statement)
    try:
        try:
            if statement.params:
                prepared.bind(list(statement.params))
            prepared.execute()
        except Exception as exc:
            raise _execution_error(statement, exc) from exc
        logger.debug("query.executed", sql=statement.sql, types=statement.types)
        yield prepared
    finally:
        prepared.close()


def run(conn: Connection, statement: SqlStatement) -> int:
    """Execute a statement that returns no rows; returns the affected-row count."""
    with executed(conn, statement) as prepared:
        return prepared.affected_rows


def fetch_all(conn: Connection, statement: SqlStatement) -> list[dict[str, Any]]:
    """Execute a query and return all rows as dicts."""
    with executed(conn, statement) as prepared:
        try:
            return prepared.fetch_all()
        except Exception as exc:
            raise _execution_error(statement, exc) from exc


def _rollback_quietly(conn: Connection) -> None:
    """Roll back after a failure; the original failure is the one that propagates."""
    try:
        conn.rollback()
    except Exception as exc:
        logger.warning("transaction.rollback_failed", error=str(exc))


@contextmanager
def transaction(conn: Connection) -> Iterator[Connection]:
    """Run the block inside ``begin``/``commit``; roll back and re-raise on error."""
    try:
        conn.begin()
    except Exception as exc:
        raise DatabaseError(f"Failed to begin transaction: {exc}", cause=exc) from exc
    try:
        yield conn
    except Exception:
        _rollback_quietly(conn)
        raise
    try:
        conn.commit()
    except Exception as exc:
        _rollback_quietly(conn)
        raise DatabaseError(f"Failed to commit transaction: {exc}", cause=exc) from exc


__all__ = [
    "BoundParam",
    "SqlFragment",
    "SqlStatement",
    "type_tag",
    "bind",
    "quote_identifier",
    "executed",
    "run",
    "fetch_all",
    "transaction",
]
