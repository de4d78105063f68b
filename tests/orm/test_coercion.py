"""Tests for the coercion engine.

validate / coerce accept loosely typed input where unambiguous;
prepare_for_storage / from_storage move values across the driver boundary.
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from enum import Enum, IntEnum

import pytest

from rowbind.core.errors import TypeMismatchError, UnsupportedTypeError
from rowbind.orm.coercion import coerce, from_storage, prepare_for_storage, storage_tag, validate
from rowbind.orm.types import (
    ClassType,
    EnumType,
    Primitive,
    PrimitiveType,
    UnionType,
    UnsupportedType,
)

INT = PrimitiveType(Primitive.INT)
FLOAT = PrimitiveType(Primitive.FLOAT)
STRING = PrimitiveType(Primitive.STRING)
BOOL = PrimitiveType(Primitive.BOOL)
ARRAY = PrimitiveType(Primitive.ARRAY)


class Status(Enum):
    ACTIVE = "active"
    BANNED = "banned"


class Level(IntEnum):
    LOW = 1
    HIGH = 2


# ── validate ────────────────────────────────────────────────────────


class TestValidate:
    @pytest.mark.parametrize("value", [0, 42, "42", "007"])
    def test_int_accepts(self, value):
        assert validate(value, INT)

    @pytest.mark.parametrize("value", ["4x2", "", "-3", 1.5, True, [1]])
    def test_int_rejects(self, value):
        assert not validate(value, INT)

    @pytest.mark.parametrize("value", [1, 1.5, "2.5", "-3", "1e3", ".5"])
    def test_float_accepts(self, value):
        assert validate(value, FLOAT)

    @pytest.mark.parametrize("value", ["abc", "", True, None])
    def test_float_rejects(self, value):
        assert not validate(value, FLOAT)

    @pytest.mark.parametrize("value", [True, False, 0, 1, "0", "1"])
    def test_bool_accepts(self, value):
        assert validate(value, BOOL)

    @pytest.mark.parametrize("value", [2, "true", "yes", 1.0])
    def test_bool_rejects(self, value):
        assert not validate(value, BOOL)

    def test_string_is_strict(self):
        assert validate("x", STRING)
        assert not validate(5, STRING)

    def test_array(self):
        assert validate([1, 2], ARRAY)
        assert validate({"a": 1}, ARRAY)
        assert not validate("[1, 2]", ARRAY)

    def test_none_only_for_nullable(self):
        assert not validate(None, INT)
        assert validate(None, PrimitiveType(Primitive.INT, nullable=True))

    def test_enum_by_member_value_or_text(self):
        assert validate(Status.ACTIVE, EnumType(Status))
        assert validate("banned", EnumType(Status))
        assert validate("2", EnumType(Level))
        assert not validate("gone", EnumType(Status))
        assert not validate(Level.LOW, EnumType(Status))

    def test_union_any_member(self):
        union = UnionType((INT, STRING))
        assert validate(7, union)
        assert validate("seven", union)
        assert not validate(1.5, union)

    def test_class_is_isinstance(self):
        column = ClassType(datetime.date)
        assert validate(datetime.date(2024, 1, 1), column)
        assert not validate("2024-01-01", column)

    def test_unsupported_raises(self):
        with pytest.raises(UnsupportedTypeError):
            validate(1, UnsupportedType("Any"))


# ── coerce ──────────────────────────────────────────────────────────


class TestCoerce:
    def test_canonical_values(self):
        assert coerce("42", INT) == 42
        assert coerce("2.5", FLOAT) == 2.5
        assert coerce(3, FLOAT) == 3.0 and isinstance(coerce(3, FLOAT), float)
        assert coerce("1", BOOL) is True
        assert coerce(0, BOOL) is False
        assert coerce("active", EnumType(Status)) is Status.ACTIVE

    def test_union_uses_first_matching_member(self):
        assert coerce("12", UnionType((INT, STRING))) == 12
        assert coerce("12", UnionType((STRING, INT))) == "12"

    def test_none_passes_through_nullable(self):
        assert coerce(None, PrimitiveType(Primitive.STRING, nullable=True)) is None

    def test_mismatch_carries_field(self):
        with pytest.raises(TypeMismatchError) as exc_info:
            coerce("4x2", INT, field="age")
        err = exc_info.value
        assert err.field == "age"
        assert err.value == "4x2"
        assert err.constraint == "int"
        assert "age" in str(err)


# ── storage ─────────────────────────────────────────────────────────


class TestStorage:
    def test_prepare(self):
        assert prepare_for_storage(True, BOOL) == 1
        assert prepare_for_storage(["a", "b"], ARRAY) == '["a", "b"]'
        assert prepare_for_storage(Status.BANNED, EnumType(Status)) == "banned"
        assert prepare_for_storage(Level.HIGH, EnumType(Level)) == 2
        assert prepare_for_storage(None, INT) is None

    def test_prepare_union_member(self):
        assert prepare_for_storage(5, UnionType((INT, STRING))) == 5

    def test_prepare_unsupported_raises(self):
        with pytest.raises(UnsupportedTypeError):
            prepare_for_storage(object(), UnsupportedType("Any"))

    def test_from_storage(self):
        assert from_storage('["a"]', ARRAY) == ["a"]
        assert from_storage(Decimal("1.25"), FLOAT) == 1.25
        assert from_storage(b"text", STRING) == "text"
        assert from_storage(None, ARRAY) is None

    def test_from_storage_leaves_bad_json(self):
        assert from_storage("not json", ARRAY) == "not json"

    def test_from_storage_union(self):
        union = UnionType((ARRAY, INT))
        assert from_storage("[1]", union) == [1]
        assert from_storage(5, union) == 5

    @pytest.mark.parametrize(
        "value,column_type",
        [
            (7, INT),
            (2.5, FLOAT),
            ("caf\u00e9", STRING),
            (True, BOOL),
            (False, BOOL),
            ([1, "a"], ARRAY),
            ({"a": [1, 2]}, ARRAY),
            ((1, 2), ARRAY),
            (Status.BANNED, EnumType(Status)),
            (Level.HIGH, EnumType(Level)),
        ],
    )
    def test_stored_value_reads_back_equal(self, value, column_type):
        canonical = coerce(value, column_type)
        reread = coerce(from_storage(prepare_for_storage(canonical, column_type), column_type), column_type)
        assert reread == canonical
        assert type(reread) is type(canonical)

    def test_tuple_canonical_form_is_list(self):
        assert coerce((1, 2), ARRAY) == [1, 2]
        assert isinstance(coerce((1, 2), ARRAY), list)

    @pytest.mark.parametrize(
        "value,column_type,tag",
        [
            (1, BOOL, "i"),
            (3, INT, "i"),
            (2.0, FLOAT, "d"),
            ("x", STRING, "s"),
            ("[]", ARRAY, "s"),
            (None, INT, "i"),
            ("active", EnumType(Status), "s"),
            (2, EnumType(Level), "i"),
        ],
    )
    def test_storage_tag(self, value, column_type, tag):
        assert storage_tag(value, column_type) == tag
