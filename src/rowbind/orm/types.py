"""Semantic column types.

A model's annotations are resolved once, when its descriptor is built, into
small frozen ``ColumnType`` values. The coercion engine dispatches on these
values and never looks at raw annotations again.

    int, float, str, bool          → PrimitiveType
    list / dict / tuple (+ params) → PrimitiveType(ARRAY), tuples held as lists
    Enum subclass                  → EnumType
    X | None, Optional[X]          → same type with nullable=True
    X | Y                          → UnionType (declaration order)
    other concrete classes         → ClassType (isinstance check)
    Any, Literal, TypeVar, ...     → UnsupportedType
"""

from __future__ import annotations

import types
import typing
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, ClassVar

NoneType = type(None)


class TypeKind(str, Enum):
    PRIMITIVE = "primitive"
    ENUM = "enum"
    UNION = "union"
    CLASS = "class"
    UNSUPPORTED = "unsupported"


class Primitive(str, Enum):
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BOOL = "bool"
    ARRAY = "array"


class ColumnType(ABC):
    """Base for resolved column types. Every concrete type has ``nullable``."""

    kind: ClassVar[TypeKind]
    nullable: bool

    @abstractmethod
    def describe(self) -> str:
        """Human-readable type, used in error messages."""

    def _suffix(self) -> str:
        return " | None" if self.nullable else ""


@dataclass(frozen=True)
class PrimitiveType(ColumnType):
    primitive: Primitive
    nullable: bool = False

    kind: ClassVar[TypeKind] = TypeKind.PRIMITIVE

    def describe(self) -> str:
        return self.primitive.value + self._suffix()


@dataclass(frozen=True)
class EnumType(ColumnType):
    enum: type[Enum]
    nullable: bool = False

    kind: ClassVar[TypeKind] = TypeKind.ENUM

    def describe(self) -> str:
        return self.enum.__name__ + self._suffix()


@dataclass(frozen=True)
class UnionType(ColumnType):
    members: tuple[ColumnType, ...]
    nullable: bool = False

    kind: ClassVar[TypeKind] = TypeKind.UNION

    def describe(self) -> str:
        return " | ".join(member.describe() for member in self.members) + self._suffix()


@dataclass(frozen=True)
class ClassType(ColumnType):
    cls: type
    nullable: bool = False

    kind: ClassVar[TypeKind] = TypeKind.CLASS

    def describe(self) -> str:
        return self.cls.__name__ + self._suffix()


@dataclass(frozen=True)
class UnsupportedType(ColumnType):
    annotation: str
    nullable: bool = False

    kind: ClassVar[TypeKind] = TypeKind.UNSUPPORTED

    def describe(self) -> str:
        return self.annotation + self._suffix()


_PRIMITIVES: dict[Any, Primitive] = {
    int: Primitive.INT,
    float: Primitive.FLOAT,
    str: Primitive.STRING,
    bool: Primitive.BOOL,
    list: Primitive.ARRAY,
    dict: Primitive.ARRAY,
    tuple: Primitive.ARRAY,
}

_UNION_ORIGINS = (typing.Union, types.UnionType)


def resolve_annotation(annotation: Any) -> ColumnType:
    """Resolve an evaluated annotation into a ``ColumnType``."""
    origin = typing.get_origin(annotation)

    if origin is typing.Annotated:
        return resolve_annotation(typing.get_args(annotation)[0])

    if origin in _UNION_ORIGINS:
        args = typing.get_args(annotation)
        members = [arg for arg in args if arg is not NoneType]
        nullable = len(members) < len(args)
        if len(members) == 1:
            return replace(resolve_annotation(members[0]), nullable=nullable)
        return UnionType(tuple(resolve_annotation(m) for m in members), nullable=nullable)

    if origin is not None and origin in _PRIMITIVES:
        return PrimitiveType(_PRIMITIVES[origin])

    if annotation is typing.Any or origin is not None:
        return UnsupportedType(_annotation_name(annotation))

    if annotation in _PRIMITIVES:
        return PrimitiveType(_PRIMITIVES[annotation])

    if isinstance(annotation, type):
        if issubclass(annotation, Enum):
            return EnumType(annotation)
        return ClassType(annotation)

    return UnsupportedType(_annotation_name(annotation))


def _annotation_name(annotation: Any) -> str:
    if isinstance(annotation, type):
        return annotation.__qualname__
    return repr(annotation).replace("typing.", "")


__all__ = [
    "TypeKind",
    "Primitive",
    "ColumnType",
    "PrimitiveType",
    "EnumType",
    "UnionType",
    "ClassType",
    "UnsupportedType",
    "resolve_annotation",
]
