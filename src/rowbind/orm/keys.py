"""Primary key strategies.

Every entity type gets exactly one strategy, chosen when its descriptor is
built. CRUD code only uses the four strategy operations (``is_new``,
``get_key``, ``set_key``, ``build_key_where``) and never branches on the
key shape itself.

SingleKey
    One column, usually auto-increment. ``None`` key means "not stored yet".
CompositeKey
    Two or more columns, never auto-increment. A fully populated key does
    *not* prove the row exists, so ``save()`` looks it up first.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Protocol

from rowbind.core.errors import MissingPrimaryKeyError, SchemaError
from rowbind.core.sql import BoundParam, SqlFragment, bind, quote_identifier


class KeyedEntity(Protocol):
    def get_attribute(self, name: str) -> Any: ...

    def set_attribute(self, name: str, value: Any) -> None: ...


def key_param(value: Any) -> BoundParam:
    """Bound parameter for a key or condition value (enums unwrapped)."""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        value = int(value)
    return bind(value)


class PrimaryKeyStrategy(ABC):
    """Key behaviour shared by the single and composite variants."""

    def __init__(self, columns: Sequence[str], auto_increment: bool):
        self.columns: tuple[str, ...] = tuple(columns)
        self.auto_increment = auto_increment

    @abstractmethod
    def is_new(self, entity: KeyedEntity) -> bool:
        """True if the entity does not (yet) correspond to a stored row."""

    @abstractmethod
    def get_key(self, entity: KeyedEntity) -> Any:
        ...

    @abstractmethod
    def set_key(self, entity: KeyedEntity, value: Any) -> None:
        ...

    @abstractmethod
    def key_values(self, key: Any) -> dict[str, Any]:
        """Map a key as accepted by ``set_key`` to column → value."""

    def build_key_where(self, entity: KeyedEntity) -> SqlFragment:
        """``\\`a\\` = ? AND \\`b\\` = ?`` over the key columns of ``entity``."""
        values = {column: entity.get_attribute(column) for column in self.columns}
        return self.where_for(values)

    def where_for(self, values: Mapping[str, Any]) -> SqlFragment:
        missing = [column for column in self.columns if values.get(column) is None]
        if missing:
            raise MissingPrimaryKeyError(
                f"Primary key column(s) {', '.join(missing)} must not be None",
                field=missing[0],
            )
        clause = " AND ".join(f"{quote_identifier(column)} = ?" for column in self.columns)
        return SqlFragment(clause, tuple(key_param(values[column]) for column in self.columns))

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(columns={self.columns!r}, "
            f"auto_increment={self.auto_increment})"
        )


class SingleKey(PrimaryKeyStrategy):
    def __init__(self, column: str, auto_increment: bool = True):
        super().__init__((column,), auto_increment)

    @property
    def column(self) -> str:
        return self.columns[0]

    def is_new(self, entity: KeyedEntity) -> bool:
        return entity.get_attribute(self.column) is None

    def get_key(self, entity: KeyedEntity) -> Any:
        return entity.get_attribute(self.column)

    def set_key(self, entity: KeyedEntity, value: Any) -> None:
        entity.set_attribute(self.column, value)

    def key_values(self, key: Any) -> dict[str, Any]:
        if isinstance(key, Mapping):
            return {self.column: key.get(self.column)}
        return {self.column: key}


class CompositeKey(PrimaryKeyStrategy):
    def __init__(self, columns: Sequence[str]):
        if len(columns) < 2:
            raise SchemaError("A composite key needs at least two columns")
        super().__init__(columns, auto_increment=False)

    def is_new(self, entity: KeyedEntity) -> bool:
        return any(entity.get_attribute(column) is None for column in self.columns)

    def get_key(self, entity: KeyedEntity) -> dict[str, Any]:
        return {column: entity.get_attribute(column) for column in self.columns}

    def set_key(self, entity: KeyedEntity, value: Any) -> None:
        for column, part in self.key_values(value).items():
            entity.set_attribute(column, part)

    def key_values(self, key: Any) -> dict[str, Any]:
        if key is None:
            return dict.fromkeys(self.columns)
        if isinstance(key, Mapping):
            unknown = set(key) - set(self.columns)
            if unknown:
                raise MissingPrimaryKeyError(
                    f"Not part of the primary key: {', '.join(sorted(unknown))}",
                    field=sorted(unknown)[0],
                )
            return {column: key.get(column) for column in self.columns}
        if isinstance(key, Sequence) and not isinstance(key, str):
            if len(key) != len(self.columns):
                raise MissingPrimaryKeyError(
                    f"Expected {len(self.columns)} key values, got {len(key)}",
                    value=key,
                )
            return dict(zip(self.columns, key))
        raise MissingPrimaryKeyError(
            "A composite key must be given as a mapping or a sequence",
            value=key,
        )


def strategy_for(primary_key: str | Sequence[str], auto_increment: bool | None) -> PrimaryKeyStrategy:
    """Pick the key strategy for an entity type's declared key."""
    columns = (primary_key,) if isinstance(primary_key, str) else tuple(primary_key)
    if not columns or any(not isinstance(c, str) or not c for c in columns):
        raise SchemaError(f"Invalid primary key declaration: {primary_key!r}")
    if len(columns) == 1:
        return SingleKey(columns[0], True if auto_increment is None else auto_increment)
    if auto_increment:
        raise SchemaError(
            "Auto-increment cannot be used with a composite primary key",
            constraint="composite key",
        )
    return CompositeKey(columns)


__all__ = [
    "PrimaryKeyStrategy",
    "SingleKey",
    "CompositeKey",
    "key_param",
    "strategy_for",
]
