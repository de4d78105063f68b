"""
Model base class.

A model is a plain class whose annotated attributes are its columns::

    class Status(Enum):
        ACTIVE = "active"
        BANNED = "banned"

    class User(Model):
        __table__ = "users"
        __fillable__ = ("password_confirmation",)

        id: int | None = None
        email: str = ""
        status: Status = Status.ACTIVE
        tags: list = []

    user = User(email="ada@example.com", status="active")
    user.save(conn)            # INSERT, then user.id = last insert id
    User.find(conn, {"email": "ada@example.com"})

Every write (constructor, ``fill``, ``obj.col = value``) is validated and
coerced against the column type; reads are plain lookups. The connection is
always an argument, never stored on the model.

Table-level configuration lives in dunder class attributes:

    __table__           table name (required)
    __primary_key__     "id" (default), or a tuple for a composite key
    __auto_increment__  None = auto-increment for single keys only
    __fillable__        extra names accepted by mass assignment
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from rowbind.core.errors import SchemaError, UnknownAttributeError, ValidationError
from rowbind.orm import crud
from rowbind.orm.coercion import coerce, from_storage
from rowbind.orm.registry import MISSING, EntityDescriptor, describe

if TYPE_CHECKING:
    from rowbind.core.protocols import Connection
    from rowbind.orm.collection import Collection

M = TypeVar("M", bound="Model")

_CLASSVAR = re.compile(r"^\s*(?:[\w.]+\.)?ClassVar\b")


def _is_classvar(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return _CLASSVAR.match(annotation) is not None
    return annotation is ClassVar or getattr(annotation, "__origin__", None) is ClassVar


class Column:
    """Class-level accessor for one declared column.

    ``User.email`` returns the accessor itself; ``user.email`` returns the
    stored value.
    """

    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return instance._attributes[self.name]

    def __set__(self, instance: Any, value: Any) -> None:
        instance.set_attribute(self.name, value)

    def __repr__(self) -> str:
        return f"Column({self.name!r})"


class Model:
    """Base class for entity types."""

    __table__: ClassVar[str]
    __primary_key__: ClassVar[str | tuple[str, ...]] = "id"
    __auto_increment__: ClassVar[bool | None] = None
    __fillable__: ClassVar[tuple[str, ...]] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        declared: dict[str, Any] = {}
        for name, annotation in inspect.get_annotations(cls).items():
            if name.startswith("_") or _is_classvar(annotation):
                continue
            if callable(getattr(Model, name, None)):
                raise SchemaError(
                    f"{cls.__qualname__}: column '{name}' shadows a Model method",
                    field=name,
                )
            declared[name] = cls.__dict__.get(name, MISSING)
            setattr(cls, name, Column(name))
        cls.__rowbind_columns__ = declared

    def __init__(self, attributes: Mapping[str, Any] | None = None, /, **values: Any):
        descriptor = describe(type(self))
        object.__setattr__(self, "_attributes", descriptor.initial_attributes())
        if attributes or values:
            self.fill({**(attributes or {}), **values})

    # ── Schema ──────────────────────────────────────────────────────────

    @classmethod
    def descriptor(cls) -> EntityDescriptor:
        return describe(cls)

    @classmethod
    def table_name(cls) -> str:
        return describe(cls).table

    @classmethod
    def key_name(cls) -> str | tuple[str, ...]:
        """Key column, or the tuple of key columns for a composite key."""
        columns = describe(cls).key.columns
        return columns[0] if len(columns) == 1 else columns

    @classmethod
    def is_auto_increment(cls) -> bool:
        return describe(cls).key.auto_increment

    # ── Attributes ──────────────────────────────────────────────────────

    def fill(self: M, attributes: Mapping[str, Any]) -> M:
        """Mass-assign declared columns and fillable names."""
        descriptor = describe(type(self))
        for name in attributes:
            if not descriptor.accepts(name):
                raise self._unknown(name)
        for name, value in attributes.items():
            self.set_attribute(name, value)
        return self

    def get_attribute(self, name: str) -> Any:
        try:
            return self._attributes[name]
        except KeyError:
            raise self._unknown(name) from None

    def set_attribute(self, name: str, value: Any) -> None:
        descriptor = describe(type(self))
        column = descriptor.column(name)
        if column is None:
            if name not in descriptor.fillable:
                raise self._unknown(name)
            self._attributes[name] = value
            return
        try:
            self._attributes[name] = coerce(value, column.type, field=name)
        except ValidationError as exc:
            exc.with_context(entity=type(self).__qualname__, table=descriptor.table, column=name)
            raise

    def _unknown(self, name: str) -> UnknownAttributeError:
        error = UnknownAttributeError(
            f"{type(self).__qualname__} has no column or fillable attribute '{name}'",
            field=name,
        )
        error.with_context(entity=type(self).__qualname__)
        return error

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
            return
        self.set_attribute(name, value)

    def __getattr__(self, name: str) -> Any:
        attributes = self.__dict__.get("_attributes")
        if attributes is not None and name in attributes:
            return attributes[name]
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def to_dict(self) -> dict[str, Any]:
        """Declared columns in order, enum members replaced by their values."""
        result = {}
        for column in describe(type(self)).columns:
            value = self._attributes[column.name]
            result[column.name] = value.value if isinstance(value, Enum) else value
        return result

    def __repr__(self) -> str:
        attributes = self.__dict__.get("_attributes", {})
        body = ", ".join(f"{name}={value!r}" for name, value in attributes.items())
        return f"{type(self).__name__}({body})"

    # ── Keys ────────────────────────────────────────────────────────────

    def is_new(self) -> bool:
        return describe(type(self)).key.is_new(self)

    def get_key(self) -> Any:
        return describe(type(self)).key.get_key(self)

    def set_key(self, value: Any) -> None:
        describe(type(self)).key.set_key(self, value)

    # ── Hydration ───────────────────────────────────────────────────────

    @classmethod
    def from_row(cls: type[M], row: Mapping[str, Any]) -> M:
        """Build an instance from a result row.

        Columns the model does not declare (and that are not fillable) are
        ignored.
        """
        descriptor = describe(cls)
        instance = cls.__new__(cls)
        attributes = descriptor.initial_attributes()
        object.__setattr__(instance, "_attributes", attributes)
        for name, value in row.items():
            column = descriptor.column(name)
            if column is not None:
                try:
                    attributes[name] = coerce(from_storage(value, column.type), column.type, field=name)
                except ValidationError as exc:
                    exc.with_context(entity=cls.__qualname__, table=descriptor.table, column=name)
                    raise
            elif name in descriptor.fillable:
                attributes[name] = value
        return instance

    # ── Persistence ─────────────────────────────────────────────────────

    @classmethod
    def find(cls: type[M], conn: Connection, conditions: Mapping[str, Any] | None = None) -> M | None:
        return crud.find(conn, cls, conditions)

    @classmethod
    def find_by_key(cls: type[M], conn: Connection, key: Any) -> M | None:
        return crud.find_by_key(conn, cls, key)

    @classmethod
    def collection(
        cls: type[M],
        conn: Connection,
        *,
        search_term: str | None = None,
        search_columns: Sequence[str] = (),
        conditions: Mapping[str, Any] | None = None,
        order_by: Mapping[str, str] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Collection[M]:
        return crud.collection(
            conn,
            cls,
            search_term=search_term,
            search_columns=search_columns,
            conditions=conditions,
            order_by=order_by,
            limit=limit,
            offset=offset,
        )

    @classmethod
    def count(cls, conn: Connection, conditions: Mapping[str, Any] | None = None) -> int:
        return crud.count(conn, cls, conditions)

    @classmethod
    def exists(cls, conn: Connection, conditions: Mapping[str, Any] | None = None) -> bool:
        return crud.exists(conn, cls, conditions)

    @classmethod
    def delete_where(cls, conn: Connection, conditions: Mapping[str, Any]) -> int:
        return crud.delete_where(conn, cls, conditions)

    @classmethod
    def create(
        cls: type[M],
        conn: Connection,
        attributes: Mapping[str, Any] | None = None,
        /,
        **values: Any,
    ) -> M:
        """Construct, save and return a new instance."""
        instance = cls(attributes, **values)
        instance.save(conn)
        return instance

    def save(self, conn: Connection) -> bool:
        return crud.save(conn, self)

    def insert(self, conn: Connection) -> bool:
        return crud.insert(conn, self)

    def delete(self, conn: Connection) -> bool:
        return crud.delete(conn, self)

    def refresh(self, conn: Connection) -> bool:
        return crud.refresh(conn, self)


__all__ = [
    "Column",
    "Model",
]
