"""MySQL connection adapter.

Wraps a ``mysql.connector`` connection from the ``mysql-connector-python``
package so it satisfies ``rowbind.core.protocols.Connection``. Statements
with parameters run on a prepared (binary protocol) cursor, which accepts
``?`` placeholders; statements without parameters (DDL in migrations) run
on a plain cursor.

Install the driver::

    pip install mysql-connector-python
    # or:  pip install rowbind[mysql]

The driver is imported at ``connect()`` time; when it is missing a
:class:`~rowbind.core.errors.ConfigError` is raised.

The session runs with autocommit enabled; ``begin()`` opens an explicit
transaction that ``commit()``/``rollback()`` closes.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from rowbind.core.errors import ConfigError, DatabaseConnectionError
from rowbind.core.sql import BoundParam


class MySQLStatement:
    """One statement; the driver prepares it on first ``execute()``."""

    def __init__(self, connection: MySQLConnection, sql: str):
        self._connection = connection
        self._sql = sql
        self._values: tuple[Any, ...] = ()
        self._cursor: Any = None
        self._columns: tuple[str, ...] = ()
        self._rows: list[tuple[Any, ...]] = []
        self._affected = 0

    @property
    def sql(self) -> str:
        return self._sql

    def bind(self, params: Sequence[BoundParam]) -> None:
        self._values = tuple(param.value for param in params)

    def execute(self) -> None:
        self.close()
        self._cursor = self._connection.raw.cursor(prepared=bool(self._values))
        if self._values:
            self._cursor.execute(self._sql, self._values)
        else:
            self._cursor.execute(self._sql)
        if self._cursor.description is not None:
            self._columns = tuple(self._cursor.column_names)
            self._rows = list(self._cursor.fetchall())
        else:
            self._columns = ()
            self._rows = []
        self._affected = max(self._cursor.rowcount or 0, 0)
        self._connection._note_insert_id(self._cursor.lastrowid)

    def fetch_all(self) -> list[dict[str, Any]]:
        return [dict(zip(self._columns, row)) for row in self._rows]

    @property
    def affected_rows(self) -> int:
        return self._affected

    def close(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None


class MySQLConnection:
    """``Connection`` implementation over ``mysql.connector``."""

    def __init__(self, raw: Any):
        self._raw = raw
        self._last_insert_id: int | None = None

    @classmethod
    def connect(
        cls,
        host: str = "localhost",
        port: int = 3306,
        database: str = "",
        user: str | None = None,
        password: str | None = None,
        *,
        charset: str = "utf8mb4",
        connect_timeout: int = 10,
        **options: Any,
    ) -> MySQLConnection:
        """Open a new autocommit session."""
        try:
            import mysql.connector
        except ImportError:
            raise ConfigError(
                "mysql-connector-python is required for MySQL. "
                "Install with: pip install mysql-connector-python"
            ) from None

        try:
            raw = mysql.connector.connect(
                host=host,
                port=port,
                database=database,
                user=user,
                password=password,
                charset=charset,
                connection_timeout=connect_timeout,
                autocommit=True,
                **options,
            )
        except mysql.connector.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to MySQL at {host}:{port}: {e}",
                cause=e,
            ) from e
        return cls(raw)

    @property
    def raw(self) -> Any:
        """The underlying ``mysql.connector`` connection."""
        return self._raw

    def prepare(self, sql: str) -> MySQLStatement:
        return MySQLStatement(self, sql)

    def begin(self) -> None:
        self._raw.start_transaction()

    def commit(self) -> None:
        self._raw.commit()

    def rollback(self) -> None:
        self._raw.rollback()

    @property
    def last_insert_id(self) -> int | None:
        return self._last_insert_id

    def _note_insert_id(self, value: Any) -> None:
        # mysql.connector reports 0 or None when the statement generated no id
        self._last_insert_id = int(value) if value else None

    def close(self) -> None:
        self._raw.close()

    def __enter__(self) -> MySQLConnection:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


__all__ = [
    "MySQLConnection",
    "MySQLStatement",
]
