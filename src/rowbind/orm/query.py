"""SQL builders for entity CRUD.

Pure functions: they return ``SqlStatement`` values and never touch a
connection. Identifiers are back-tick quoted, values are always ``?``
placeholders with a parallel tag per parameter.

    >>> stmt = select("users", where=where_conditions({"email": "a@b.c"}), single=True)
    >>> stmt.sql
    'SELECT * FROM `users` WHERE `email` = ? LIMIT 1'
    >>> stmt.types
    's'
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from rowbind.core.errors import UnsafeQueryError
from rowbind.core.sql import BoundParam, SqlFragment, SqlStatement, quote_identifier
from rowbind.orm.keys import key_param

ASC = "ASC"
DESC = "DESC"


def where_conditions(conditions: Mapping[str, Any] | None) -> SqlFragment:
    """AND-conjunction of equality terms; ``None`` values become ``IS NULL``."""
    parts = []
    for column, value in (conditions or {}).items():
        quoted = quote_identifier(column)
        if value is None:
            parts.append(SqlFragment(f"{quoted} IS NULL"))
        else:
            parts.append(SqlFragment(f"{quoted} = ?", (key_param(value),)))
    return SqlFragment.join(parts, " AND ")


def search_group(term: str | None, columns: Sequence[str]) -> SqlFragment:
    """``(`a` LIKE ? OR `b` LIKE ?)`` with each parameter bound as ``%term%``."""
    if term is None or term == "" or not columns:
        return SqlFragment("")
    pattern = f"%{term}%"
    clause = " OR ".join(f"{quote_identifier(column)} LIKE ?" for column in columns)
    return SqlFragment(f"({clause})", tuple(BoundParam(pattern, "s") for _ in columns))


def normalize_direction(direction: Any) -> str:
    """``DESC`` when the upper-cased input is ``DESC``; anything else is ``ASC``."""
    return DESC if isinstance(direction, str) and direction.strip().upper() == DESC else ASC


def order_clause(order_by: Mapping[str, Any] | None) -> str:
    if not order_by:
        return ""
    terms = [f"{quote_identifier(column)} {normalize_direction(d)}" for column, d in order_by.items()]
    return " ORDER BY " + ", ".join(terms)


def _check_count(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise UnsafeQueryError(f"{name} must be a non-negative integer", field=name, value=value)
    return value


def _where(fragment: SqlFragment | None) -> str:
    return f" WHERE {fragment.clause}" if fragment is not None and fragment.clause else ""


def select(
    table: str,
    *,
    where: SqlFragment | None = None,
    order_by: Mapping[str, Any] | None = None,
    limit: int | None = None,
    offset: int | None = None,
    single: bool = False,
) -> SqlStatement:
    """``SELECT *`` with optional WHERE, ORDER BY and LIMIT/OFFSET.

    ``single`` appends a literal ``LIMIT 1``. Otherwise ``limit`` and
    ``offset`` are bound as integer parameters; ``offset`` is ignored when
    there is no limit.
    """
    sql = f"SELECT * FROM {quote_identifier(table)}{_where(where)}{order_clause(order_by)}"
    params = list(where.params) if where is not None else []
    if single:
        sql += " LIMIT 1"
    elif limit is not None:
        sql += " LIMIT ?"
        params.append(BoundParam(_check_count("limit", limit), "i"))
        if offset is not None:
            sql += " OFFSET ?"
            params.append(BoundParam(_check_count("offset", offset), "i"))
    return SqlStatement(sql, tuple(params))


def select_count(table: str, *, where: SqlFragment | None = None) -> SqlStatement:
    sql = f"SELECT COUNT(*) AS `count` FROM {quote_identifier(table)}{_where(where)}"
    return SqlStatement(sql, where.params if where is not None else ())


def insert(table: str, values: Mapping[str, BoundParam]) -> SqlStatement:
    columns = ", ".join(quote_identifier(column) for column in values)
    placeholders = ", ".join("?" for _ in values)
    sql = f"INSERT INTO {quote_identifier(table)} ({columns}) VALUES ({placeholders})"
    return SqlStatement(sql, tuple(values.values()))


def update(table: str, values: Mapping[str, BoundParam], where: SqlFragment) -> SqlStatement:
    if not where.clause:
        raise UnsafeQueryError("Refusing to build an UPDATE without a WHERE clause")
    assignments = ", ".join(f"{quote_identifier(column)} = ?" for column in values)
    sql = f"UPDATE {quote_identifier(table)} SET {assignments}{_where(where)}"
    return SqlStatement(sql, tuple(values.values()) + where.params)


def delete(table: str, where: SqlFragment, *, single: bool = False) -> SqlStatement:
    if not where.clause:
        raise UnsafeQueryError("Refusing to build a DELETE without a WHERE clause")
    sql = f"DELETE FROM {quote_identifier(table)}{_where(where)}"
    if single:
        sql += " LIMIT 1"
    return SqlStatement(sql, where.params)


__all__ = [
    "ASC",
    "DESC",
    "where_conditions",
    "search_group",
    "normalize_direction",
    "order_clause",
    "select",
    "select_count",
    "insert",
    "update",
    "delete",
]
