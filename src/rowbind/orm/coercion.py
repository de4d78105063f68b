"""Type coercion engine.

Four operations over a value and a resolved ``ColumnType``:

``validate``
    Does the value satisfy the type? Loosely typed input is accepted where
    it is unambiguous ("42" for an int column, "1" for a bool column, an
    enum's backing value for an enum column).
``coerce``
    Validate, then convert to the canonical Python value stored on the
    entity. Raises ``TypeMismatchError``.
``prepare_for_storage``
    Convert a canonical value into what is bound to the driver.
``from_storage``
    Undo driver-side representations (JSON text, ``Decimal``) before a row
    value is coerced back onto an entity.
"""

from __future__ import annotations

import json
import re
from decimal import Decimal
from enum import Enum
from typing import Any

from rowbind.core.errors import TypeMismatchError, UnsupportedTypeError
from rowbind.core.sql import type_tag
from rowbind.orm.types import (
    ClassType,
    ColumnType,
    EnumType,
    Primitive,
    PrimitiveType,
    UnionType,
    UnsupportedType,
)

_DIGITS = re.compile(r"[0-9]+")
_NUMERIC = re.compile(r"\s*[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?\s*")

_MISSING = object()


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _resolve_enum(value: Any, enum: type[Enum]) -> Any:
    """Member of ``enum`` for ``value``, or ``_MISSING``. Never raises."""
    if isinstance(value, enum):
        return value
    if isinstance(value, Enum):
        return _MISSING
    try:
        return enum(value)
    except (ValueError, TypeError):
        pass
    if isinstance(value, str):
        for member in enum:
            if str(member.value) == value:
                return member
    return _MISSING


def _validate_primitive(value: Any, primitive: Primitive) -> bool:
    if primitive is Primitive.INT:
        return _is_int(value) or (isinstance(value, str) and _DIGITS.fullmatch(value) is not None)
    if primitive is Primitive.FLOAT:
        if _is_int(value) or isinstance(value, float):
            return True
        return isinstance(value, str) and _NUMERIC.fullmatch(value) is not None
    if primitive is Primitive.STRING:
        return isinstance(value, str)
    if primitive is Primitive.BOOL:
        if isinstance(value, bool):
            return True
        if _is_int(value):
            return value in (0, 1)
        return isinstance(value, str) and value in ("0", "1")
    return isinstance(value, (list, tuple, dict))


def validate(value: Any, column_type: ColumnType) -> bool:
    """Return True if ``value`` is acceptable for ``column_type``.

    >>> validate("42", PrimitiveType(Primitive.INT))
    True
    >>> validate("4x2", PrimitiveType(Primitive.INT))
    False
    """
    if value is None:
        return column_type.nullable
    if isinstance(column_type, PrimitiveType):
        return _validate_primitive(value, column_type.primitive)
    if isinstance(column_type, EnumType):
        return _resolve_enum(value, column_type.enum) is not _MISSING
    if isinstance(column_type, UnionType):
        return any(validate(value, member) for member in column_type.members)
    if isinstance(column_type, ClassType):
        return isinstance(value, column_type.cls)
    raise UnsupportedTypeError(
        f"Cannot validate values of unsupported type {column_type.describe()}",
        value=value,
        constraint=column_type.describe(),
    )


def _first_match(value: Any, union: UnionType) -> ColumnType:
    for member in union.members:
        if validate(value, member):
            return member
    raise TypeMismatchError(
        f"Value {value!r} does not match any of {union.describe()}",
        value=value,
        constraint=union.describe(),
    )


def _canonical(value: Any, column_type: ColumnType) -> Any:
    if value is None:
        return None
    if isinstance(column_type, PrimitiveType):
        primitive = column_type.primitive
        if primitive is Primitive.INT:
            return int(value)
        if primitive is Primitive.FLOAT:
            return float(value)
        if primitive is Primitive.BOOL:
            return bool(int(value))
        if primitive is Primitive.ARRAY and isinstance(value, tuple):
            return list(value)
        return value
    if isinstance(column_type, EnumType):
        return _resolve_enum(value, column_type.enum)
    if isinstance(column_type, UnionType):
        return _canonical(value, _first_match(value, column_type))
    return value


def coerce(value: Any, column_type: ColumnType, *, field: str | None = None) -> Any:
    """Validate ``value`` and return its canonical form.

    Raises:
        TypeMismatchError: value is not valid for ``column_type``
        UnsupportedTypeError: ``column_type`` cannot be validated at all
    """
    if not validate(value, column_type):
        target = f"column '{field}'" if field else "column"
        raise TypeMismatchError(
            f"Invalid value {value!r} for {target} of type {column_type.describe()}",
            field=field,
            value=value,
            constraint=column_type.describe(),
        )
    return _canonical(value, column_type)


def prepare_for_storage(value: Any, column_type: ColumnType) -> Any:
    """Convert a canonical value into the value bound to the driver."""
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if isinstance(column_type, PrimitiveType):
        primitive = column_type.primitive
        if primitive in (Primitive.INT, Primitive.BOOL):
            return int(value)
        if primitive is Primitive.FLOAT:
            return float(value)
        if primitive is Primitive.STRING:
            return str(value)
        return json.dumps(value)
    if isinstance(column_type, UnionType):
        return prepare_for_storage(value, _first_match(value, column_type))
    if isinstance(column_type, UnsupportedType):
        raise UnsupportedTypeError(
            f"Cannot store values of unsupported type {column_type.describe()}",
            value=value,
            constraint=column_type.describe(),
        )
    return value


def from_storage(value: Any, column_type: ColumnType) -> Any:
    """Turn a value read from a row back into something ``coerce`` accepts."""
    if value is None or isinstance(column_type, (EnumType, ClassType, UnsupportedType)):
        return value
    if isinstance(column_type, PrimitiveType):
        primitive = column_type.primitive
        if primitive is Primitive.ARRAY and isinstance(value, (str, bytes)):
            try:
                return json.loads(value)
            except ValueError:
                return value
        if primitive is Primitive.FLOAT and isinstance(value, Decimal):
            return float(value)
        if primitive is Primitive.STRING and isinstance(value, (bytes, bytearray)):
            return value.decode("utf-8")
        return value
    for member in column_type.members:
        if validate(value, member):
            return value
    for member in column_type.members:
        converted = from_storage(value, member)
        if converted is not value and validate(converted, member):
            return converted
    return value


def storage_tag(value: Any, column_type: ColumnType) -> str:
    """Driver tag for a storage-ready value of ``column_type``."""
    if isinstance(column_type, PrimitiveType):
        if column_type.primitive in (Primitive.INT, Primitive.BOOL):
            return "i"
        if column_type.primitive is Primitive.FLOAT:
            return "d"
        return "s"
    return type_tag(value)


__all__ = [
    "validate",
    "coerce",
    "prepare_for_storage",
    "from_storage",
    "storage_tag",
]
