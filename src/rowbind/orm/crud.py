"""CRUD orchestrator.

Runs the statements built by ``rowbind.orm.query`` against a caller-owned
connection, using the entity descriptor for column types and the key
strategy for everything key related. ``Model`` methods are thin wrappers
around the functions here.

Entity state is only mutated after the driver reports success: a failed
INSERT leaves the key untouched, a failed DELETE leaves it set.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, TypeVar

from rowbind.core.errors import MissingPrimaryKeyError, NotPersistedError, UnsafeQueryError
from rowbind.core.logging import get_logger
from rowbind.core.sql import BoundParam, SqlFragment, fetch_all, run
from rowbind.orm import query
from rowbind.orm.coercion import prepare_for_storage, storage_tag
from rowbind.orm.collection import Collection
from rowbind.orm.registry import ColumnDescriptor, EntityDescriptor, describe

if TYPE_CHECKING:
    from rowbind.core.protocols import Connection
    from rowbind.orm.model import Model

logger = get_logger(__name__)

M = TypeVar("M", bound="Model")


def _storage_param(column: ColumnDescriptor, value: Any) -> BoundParam:
    stored = prepare_for_storage(value, column.type)
    return BoundParam(stored, storage_tag(stored, column.type))


def _entity_name(descriptor: EntityDescriptor) -> str:
    return descriptor.entity.__qualname__


# ── Reads ─────────────────────────────────────────────────────────────


def _first(conn: Connection, entity: type[M], where: SqlFragment) -> M | None:
    descriptor = describe(entity)
    rows = fetch_all(conn, query.select(descriptor.table, where=where, single=True))
    if not rows:
        return None
    return entity.from_row(rows[0])


def find(conn: Connection, entity: type[M], conditions: Mapping[str, Any] | None) -> M | None:
    """First row matching every equality condition, or None."""
    return _first(conn, entity, query.where_conditions(conditions))


def find_by_key(conn: Connection, entity: type[M], key: Any) -> M | None:
    """Row with primary key ``key`` (scalar, or mapping/sequence for composite keys)."""
    strategy = describe(entity).key
    return _first(conn, entity, strategy.where_for(strategy.key_values(key)))


def collection(
    conn: Connection,
    entity: type[M],
    *,
    search_term: str | None = None,
    search_columns: Sequence[str] = (),
    conditions: Mapping[str, Any] | None = None,
    order_by: Mapping[str, Any] | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> Collection[M]:
    """Rows matching ``conditions`` AND any ``search_columns`` LIKE ``%search_term%``."""
    descriptor = describe(entity)
    where = SqlFragment.join(
        [query.where_conditions(conditions), query.search_group(search_term, search_columns)],
        " AND ",
    )
    statement = query.select(
        descriptor.table,
        where=where,
        order_by=order_by,
        limit=limit,
        offset=offset,
    )
    return Collection(entity.from_row(row) for row in fetch_all(conn, statement))


def count(conn: Connection, entity: type[Model], conditions: Mapping[str, Any] | None = None) -> int:
    descriptor = describe(entity)
    statement = query.select_count(descriptor.table, where=query.where_conditions(conditions))
    rows = fetch_all(conn, statement)
    if not rows:
        return 0
    row = rows[0]
    value = row["count"] if "count" in row else next(iter(row.values()))
    return int(value)


def exists(conn: Connection, entity: type[Model], conditions: Mapping[str, Any] | None = None) -> bool:
    return count(conn, entity, conditions) > 0


# ── Writes ────────────────────────────────────────────────────────────


def save(conn: Connection, instance: Model) -> bool:
    """Insert a new entity or update a stored one.

    Keys the database does not generate (composite keys, manual single
    keys) can be fully populated before the row exists, so for those the
    row is looked up by key first.
    """
    descriptor = describe(type(instance))
    strategy = descriptor.key
    if strategy.is_new(instance):
        return insert(conn, instance)
    if not strategy.auto_increment and _first(conn, type(instance), strategy.build_key_where(instance)) is None:
        return insert(conn, instance)
    return update(conn, instance)


def insert(conn: Connection, instance: Model) -> bool:
    """INSERT every column, except an auto-increment key that is still None."""
    descriptor = describe(type(instance))
    strategy = descriptor.key
    if not strategy.auto_increment and strategy.is_new(instance):
        missing = [c for c in strategy.columns if instance.get_attribute(c) is None]
        error = MissingPrimaryKeyError(
            f"Cannot insert {_entity_name(descriptor)}: key column(s) {', '.join(missing)} are None",
            field=missing[0],
        )
        raise error.with_context(entity=_entity_name(descriptor), table=descriptor.table)

    generated = strategy.auto_increment and strategy.is_new(instance)
    values = {}
    for column in descriptor.columns:
        value = instance.get_attribute(column.name)
        if generated and column.primary_key and value is None:
            continue
        values[column.name] = _storage_param(column, value)

    run(conn, query.insert(descriptor.table, values))

    if generated:
        last_id = conn.last_insert_id
        if last_id:
            strategy.set_key(instance, last_id)
    logger.debug("entity.inserted", entity=_entity_name(descriptor), key=strategy.get_key(instance))
    return True


def update(conn: Connection, instance: Model) -> bool:
    """UPDATE the non-key columns of a stored entity, matched by key."""
    descriptor = describe(type(instance))
    where = descriptor.key.build_key_where(instance)
    values = {
        column.name: _storage_param(column, instance.get_attribute(column.name))
        for column in descriptor.columns
        if not column.primary_key
    }
    if not values:
        return True
    run(conn, query.update(descriptor.table, values, where))
    logger.debug("entity.updated", entity=_entity_name(descriptor), key=descriptor.key.get_key(instance))
    return True


def delete(conn: Connection, instance: Model) -> bool:
    """DELETE the entity's row (LIMIT 1) and clear its key."""
    descriptor = describe(type(instance))
    strategy = descriptor.key
    if strategy.is_new(instance):
        error = NotPersistedError(f"Cannot delete an unsaved {_entity_name(descriptor)}")
        raise error.with_context(entity=_entity_name(descriptor), table=descriptor.table)
    key = strategy.get_key(instance)
    run(conn, query.delete(descriptor.table, strategy.build_key_where(instance), single=True))
    strategy.set_key(instance, None)
    logger.debug("entity.deleted", entity=_entity_name(descriptor), key=key)
    return True


def delete_where(conn: Connection, entity: type[Model], conditions: Mapping[str, Any]) -> int:
    """Bulk DELETE; refuses empty conditions. Returns the affected-row count."""
    descriptor = describe(entity)
    if not conditions:
        error = UnsafeQueryError(
            f"delete_where on {descriptor.table} requires at least one condition",
            constraint="non-empty conditions",
        )
        raise error.with_context(entity=_entity_name(descriptor), table=descriptor.table)
    affected = run(conn, query.delete(descriptor.table, query.where_conditions(conditions)))
    logger.debug("entity.deleted", entity=_entity_name(descriptor), rows=affected)
    return affected


def refresh(conn: Connection, instance: Model) -> bool:
    """Reload every attribute from the stored row; False if new or gone."""
    descriptor = describe(type(instance))
    strategy = descriptor.key
    if strategy.is_new(instance):
        return False
    fresh = _first(conn, type(instance), strategy.build_key_where(instance))
    if fresh is None:
        return False
    instance._attributes.update(fresh._attributes)
    return True


__all__ = [
    "find",
    "find_by_key",
    "collection",
    "count",
    "exists",
    "save",
    "insert",
    "update",
    "delete",
    "delete_where",
    "refresh",
]
