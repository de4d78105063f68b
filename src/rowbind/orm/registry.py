"""
Type descriptor registry.

Each ``Model`` subclass is described once, on first use, by an immutable
``EntityDescriptor``: table name, key strategy, fillable names and the
ordered column descriptors resolved from the class annotations. The
descriptor is cached by class identity and shared by every instance.

Manifesto:
    Annotations are evaluated once per class, not once per instance.
    Definition mistakes (no table, a non-nullable column without a default,
    a key that is not a column) surface as ``SchemaError`` the first time
    the class is used, before any SQL is built.

Architecture:
    ::

        class User(Model)            describe(User)
        ┌──────────────────────┐     ┌──────────────────────────────────┐
        │ __table__ = "users"  │     │ EntityDescriptor                 │
        │ id: int | None = None│ ──► │   table    "users"               │
        │ name: str = ""       │     │   key      SingleKey("id")       │
        │ role: Role = Role.A  │     │   columns  (id, name, role)      │
        └──────────────────────┘     │   fillable ()                    │
                                     └──────────────────────────────────┘
                                          cached in _REGISTRY[User]

Tags:
    registry, schema, descriptor, annotations, rowbind
"""

from __future__ import annotations

import copy
import threading
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from rowbind.core.errors import SchemaError, TypeMismatchError, UnsupportedTypeError
from rowbind.core.logging import get_logger
from rowbind.orm.coercion import coerce
from rowbind.orm.keys import PrimaryKeyStrategy, strategy_for
from rowbind.orm.types import ColumnType, resolve_annotation

logger = get_logger(__name__)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()

_IMMUTABLE = (str, int, float, bool, bytes, tuple, frozenset, type(None))


@dataclass(frozen=True)
class ColumnDescriptor:
    """One declared column of an entity type."""

    name: str
    type: ColumnType
    default: Any = None
    primary_key: bool = False

    @property
    def nullable(self) -> bool:
        return self.type.nullable

    def initial_value(self) -> Any:
        """Default for a new instance; mutable defaults are copied."""
        if isinstance(self.default, _IMMUTABLE):
            return self.default
        return copy.deepcopy(self.default)


@dataclass(frozen=True)
class EntityDescriptor:
    """Immutable description of one entity type."""

    entity: type
    table: str
    key: PrimaryKeyStrategy
    columns: tuple[ColumnDescriptor, ...]
    fillable: tuple[str, ...] = ()
    by_name: Mapping[str, ColumnDescriptor] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "by_name", MappingProxyType({c.name: c for c in self.columns}))

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    @property
    def extra_names(self) -> tuple[str, ...]:
        """Fillable names that are not declared columns (untyped, not persisted)."""
        return tuple(name for name in self.fillable if name not in self.by_name)

    def column(self, name: str) -> ColumnDescriptor | None:
        return self.by_name.get(name)

    def accepts(self, name: str) -> bool:
        return name in self.by_name or name in self.fillable

    def initial_attributes(self) -> dict[str, Any]:
        attributes = {column.name: column.initial_value() for column in self.columns}
        for name in self.extra_names:
            attributes[name] = None
        return attributes


_REGISTRY: dict[type, EntityDescriptor] = {}
_LOCK = threading.Lock()


def describe(entity: type) -> EntityDescriptor:
    """Return the (cached) descriptor for ``entity``, building it on first use."""
    descriptor = _REGISTRY.get(entity)
    if descriptor is not None:
        return descriptor
    with _LOCK:
        descriptor = _REGISTRY.get(entity)
        if descriptor is None:
            descriptor = _build(entity)
            _REGISTRY[entity] = descriptor
            logger.debug(
                "entity.registered",
                entity=entity.__qualname__,
                table=descriptor.table,
                columns=list(descriptor.column_names),
                key=list(descriptor.key.columns),
            )
    return descriptor


def clear_registry() -> None:
    """Drop every cached descriptor."""
    with _LOCK:
        _REGISTRY.clear()


def _declared_defaults(entity: type) -> dict[str, Any]:
    """Column name → declared default, base classes first."""
    declared: dict[str, Any] = {}
    for klass in reversed(entity.__mro__):
        own = vars(klass).get("__rowbind_columns__")
        if not own:
            continue
        for name, default in own.items():
            if default is MISSING and name in declared:
                continue
            declared[name] = default
    return declared


def _schema_error(entity: type, message: str, **kwargs: Any) -> SchemaError:
    error = SchemaError(f"{entity.__qualname__}: {message}", **kwargs)
    error.with_context(entity=entity.__qualname__, table=getattr(entity, "__table__", None))
    return error


def _checked_default(entity: type, name: str, default: Any, column_type: ColumnType) -> Any:
    """Canonical form of a declared default; a default its column would reject is a SchemaError."""
    try:
        return coerce(default, column_type, field=name)
    except UnsupportedTypeError:
        # no validation rules for this type; storage rejects it later
        return default
    except TypeMismatchError as exc:
        raise _schema_error(
            entity,
            f"default {default!r} for column '{name}' is not a valid {column_type.describe()}",
            field=name,
            value=default,
            constraint=column_type.describe(),
            cause=exc,
        ) from exc


def _build(entity: type) -> EntityDescriptor:
    table = getattr(entity, "__table__", None)
    if not isinstance(table, str) or not table.strip():
        raise _schema_error(entity, "__table__ must be a non-empty string", field="__table__")

    declared = _declared_defaults(entity)
    if not declared:
        raise _schema_error(entity, "no columns declared")

    try:
        hints = typing.get_type_hints(entity)
    except Exception as exc:
        raise _schema_error(entity, f"cannot resolve column annotations: {exc}", cause=exc) from exc

    try:
        key = strategy_for(
            getattr(entity, "__primary_key__", "id"),
            getattr(entity, "__auto_increment__", None),
        )
    except SchemaError as exc:
        raise _schema_error(entity, exc.message, constraint=exc.constraint, cause=exc) from exc

    unknown_keys = [name for name in key.columns if name not in declared]
    if unknown_keys:
        raise _schema_error(
            entity,
            f"primary key column(s) not declared: {', '.join(unknown_keys)}",
            field=unknown_keys[0],
        )

    columns = []
    missing_defaults = []
    for name, default in declared.items():
        column_type = resolve_annotation(hints[name])
        if default is MISSING:
            default = None
        elif default is not None:
            default = _checked_default(entity, name, default, column_type)
        is_key = name in key.columns
        if is_key and not column_type.nullable:
            raise _schema_error(
                entity,
                f"primary key column '{name}' must allow None (declare it as '{column_type.describe()} | None')",
                field=name,
                constraint=column_type.describe(),
            )
        if default is None and not column_type.nullable:
            missing_defaults.append(name)
        columns.append(ColumnDescriptor(name, column_type, default, is_key))

    if missing_defaults:
        raise _schema_error(
            entity,
            "non-nullable column(s) declared without a default: " + ", ".join(missing_defaults),
            field=missing_defaults[0],
            constraint="default required",
        )

    fillable = getattr(entity, "__fillable__", ()) or ()
    if isinstance(fillable, str) or any(not isinstance(name, str) for name in fillable):
        raise _schema_error(entity, "__fillable__ must be a sequence of attribute names", field="__fillable__")

    return EntityDescriptor(
        entity=entity,
        table=table,
        key=key,
        columns=tuple(columns),
        fillable=tuple(fillable),
    )


__all__ = [
    "MISSING",
    "ColumnDescriptor",
    "EntityDescriptor",
    "describe",
    "clear_registry",
]
