"""Tests for the MySQL adapter using a mocked mysql.connector connection."""

from __future__ import annotations

import sys
from types import ModuleType
from unittest.mock import MagicMock

import pytest

from rowbind.adapters.mysql import MySQLConnection
from rowbind.core.errors import ConfigError, DatabaseConnectionError
from rowbind.core.protocols import Connection, PreparedStatement
from rowbind.core.sql import BoundParam, SqlStatement, fetch_all, run, transaction


def _cursor(*, description=None, column_names=(), rows=(), rowcount=0, lastrowid=None):
    cursor = MagicMock()
    cursor.description = description
    cursor.column_names = column_names
    cursor.fetchall.return_value = list(rows)
    cursor.rowcount = rowcount
    cursor.lastrowid = lastrowid
    return cursor


@pytest.fixture
def raw():
    return MagicMock()


class TestMySQLStatement:
    def test_satisfies_protocols(self, raw):
        conn = MySQLConnection(raw)
        assert isinstance(conn, Connection)
        assert isinstance(conn.prepare("SELECT 1"), PreparedStatement)

    def test_select_with_params_uses_prepared_cursor(self, raw):
        cursor = _cursor(
            description=[("id",), ("email",)],
            column_names=("id", "email"),
            rows=[(1, "a@b.c")],
        )
        raw.cursor.return_value = cursor
        conn = MySQLConnection(raw)

        rows = fetch_all(conn, SqlStatement("SELECT * FROM `users` WHERE `id` = ?", (BoundParam(1, "i"),)))

        assert rows == [{"id": 1, "email": "a@b.c"}]
        raw.cursor.assert_called_once_with(prepared=True)
        cursor.execute.assert_called_once_with("SELECT * FROM `users` WHERE `id` = ?", (1,))
        cursor.close.assert_called_once()

    def test_ddl_without_params_uses_plain_cursor(self, raw):
        cursor = _cursor(rowcount=0)
        raw.cursor.return_value = cursor
        run(MySQLConnection(raw), SqlStatement("CREATE TABLE `t` (id INT)"))
        raw.cursor.assert_called_once_with(prepared=False)
        cursor.execute.assert_called_once_with("CREATE TABLE `t` (id INT)")

    def test_affected_rows_and_insert_id(self, raw):
        raw.cursor.return_value = _cursor(rowcount=1, lastrowid=17)
        conn = MySQLConnection(raw)
        affected = run(conn, SqlStatement("INSERT INTO `t` (`a`) VALUES (?)", (BoundParam("x", "s"),)))
        assert affected == 1
        assert conn.last_insert_id == 17

    def test_insert_id_resets_when_none_generated(self, raw):
        raw.cursor.side_effect = [_cursor(rowcount=1, lastrowid=41), _cursor(rowcount=1, lastrowid=0)]
        conn = MySQLConnection(raw)
        run(conn, SqlStatement("INSERT INTO `t` (`a`) VALUES (?)", (BoundParam("x", "s"),)))
        assert conn.last_insert_id == 41
        run(conn, SqlStatement("INSERT INTO `codes` (`code`) VALUES (?)", (BoundParam("y", "s"),)))
        assert conn.last_insert_id is None

    def test_negative_rowcount_is_zero(self, raw):
        raw.cursor.return_value = _cursor(rowcount=-1)
        assert run(MySQLConnection(raw), SqlStatement("DO 1")) == 0


class TestMySQLConnection:
    def test_transaction_calls(self, raw):
        conn = MySQLConnection(raw)
        with transaction(conn):
            pass
        raw.start_transaction.assert_called_once()
        raw.commit.assert_called_once()
        raw.rollback.assert_not_called()

    def test_context_manager_closes(self, raw):
        with MySQLConnection(raw) as conn:
            assert conn.raw is raw
        raw.close.assert_called_once()

    def test_connect_missing_driver(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "mysql", None)
        monkeypatch.setitem(sys.modules, "mysql.connector", None)
        with pytest.raises(ConfigError, match="mysql-connector-python"):
            MySQLConnection.connect(database="shop")

    def test_connect_passes_options(self, monkeypatch):
        connector = ModuleType("mysql.connector")
        connector.Error = type("Error", (Exception,), {})
        connector.connect = MagicMock(return_value="raw-connection")
        package = ModuleType("mysql")
        package.connector = connector
        monkeypatch.setitem(sys.modules, "mysql", package)
        monkeypatch.setitem(sys.modules, "mysql.connector", connector)

        conn = MySQLConnection.connect(host="db", database="shop", user="app", password="pw")

        assert conn.raw == "raw-connection"
        kwargs = connector.connect.call_args.kwargs
        assert kwargs["host"] == "db"
        assert kwargs["autocommit"] is True
        assert kwargs["charset"] == "utf8mb4"

    def test_connect_failure(self, monkeypatch):
        connector = ModuleType("mysql.connector")
        connector.Error = type("Error", (Exception,), {})
        connector.connect = MagicMock(side_effect=connector.Error("access denied"))
        package = ModuleType("mysql")
        package.connector = connector
        monkeypatch.setitem(sys.modules, "mysql", package)
        monkeypatch.setitem(sys.modules, "mysql.connector", connector)

        with pytest.raises(DatabaseConnectionError, match="access denied"):
            MySQLConnection.connect(host="db")
