"""Tests for the pure SQL builders in rowbind.orm.query."""

from __future__ import annotations

import pytest

from rowbind.core.errors import UnsafeQueryError
from rowbind.core.sql import BoundParam, SqlFragment
from rowbind.orm import query
from tests._support.models import Status


class TestWhere:
    def test_equality_conjunction(self):
        where = query.where_conditions({"email": "a@b.c", "age": 30})
        assert where.clause == "`email` = ? AND `age` = ?"
        assert where.types == "si"

    def test_none_becomes_is_null(self):
        where = query.where_conditions({"deleted_at": None, "status": Status.ACTIVE})
        assert where.clause == "`deleted_at` IS NULL AND `status` = ?"
        assert where.params == (BoundParam("active", "s"),)

    def test_empty(self):
        assert query.where_conditions({}).clause == ""
        assert query.where_conditions(None).clause == ""


class TestSearchGroup:
    def test_or_group(self):
        group = query.search_group("ada", ["email", "name"])
        assert group.clause == "(`email` LIKE ? OR `name` LIKE ?)"
        assert group.params == (BoundParam("%ada%", "s"), BoundParam("%ada%", "s"))

    @pytest.mark.parametrize("term,columns", [(None, ["email"]), ("", ["email"]), ("ada", [])])
    def test_inactive(self, term, columns):
        assert query.search_group(term, columns).clause == ""


class TestOrder:
    @pytest.mark.parametrize(
        "direction,expected",
        [("desc", "DESC"), (" DESC ", "DESC"), ("asc", "ASC"), ("sideways", "ASC"), (None, "ASC")],
    )
    def test_normalize_direction(self, direction, expected):
        assert query.normalize_direction(direction) == expected

    def test_order_clause(self):
        assert query.order_clause({"age": "desc", "email": "asc"}) == " ORDER BY `age` DESC, `email` ASC"
        assert query.order_clause(None) == ""


class TestSelect:
    def test_single(self):
        stmt = query.select("users", where=query.where_conditions({"id": 3}), single=True)
        assert stmt.sql == "SELECT * FROM `users` WHERE `id` = ? LIMIT 1"
        assert stmt.types == "i"

    def test_limit_offset_bound_as_ints(self):
        stmt = query.select("users", order_by={"id": "desc"}, limit=10, offset=20)
        assert stmt.sql == "SELECT * FROM `users` ORDER BY `id` DESC LIMIT ? OFFSET ?"
        assert stmt.values == [10, 20]
        assert stmt.types == "ii"

    def test_offset_ignored_without_limit(self):
        stmt = query.select("users", offset=5)
        assert stmt.sql == "SELECT * FROM `users`"
        assert stmt.params == ()

    @pytest.mark.parametrize("limit", [-1, "10", True, 1.5])
    def test_rejects_bad_limit(self, limit):
        with pytest.raises(UnsafeQueryError):
            query.select("users", limit=limit)

    def test_count(self):
        stmt = query.select_count("users", where=query.where_conditions({"active": True}))
        assert stmt.sql == "SELECT COUNT(*) AS `count` FROM `users` WHERE `active` = ?"
        assert stmt.values == [1]


class TestWrites:
    def test_insert(self):
        stmt = query.insert("users", {"email": BoundParam("a@b.c", "s"), "age": BoundParam(3, "i")})
        assert stmt.sql == "INSERT INTO `users` (`email`, `age`) VALUES (?, ?)"
        assert stmt.types == "si"

    def test_update_set_then_where(self):
        stmt = query.update(
            "users",
            {"email": BoundParam("x@y.z", "s")},
            query.where_conditions({"id": 7}),
        )
        assert stmt.sql == "UPDATE `users` SET `email` = ? WHERE `id` = ?"
        assert stmt.values == ["x@y.z", 7]

    def test_delete_single(self):
        stmt = query.delete("users", query.where_conditions({"id": 7}), single=True)
        assert stmt.sql == "DELETE FROM `users` WHERE `id` = ? LIMIT 1"

    @pytest.mark.parametrize("builder", ["update", "delete"])
    def test_refuses_empty_where(self, builder):
        with pytest.raises(UnsafeQueryError):
            if builder == "update":
                query.update("users", {"email": BoundParam("x", "s")}, SqlFragment(""))
            else:
                query.delete("users", SqlFragment(""))
