"""rowbind ORM -- typed models, key strategies and CRUD query construction.

Modules
-------
types       Semantic column types resolved from annotations
coercion    validate / coerce / prepare_for_storage / from_storage
registry    Per-class immutable EntityDescriptor cache
keys        SingleKey / CompositeKey primary key strategies
query       SQL builders (pure, no connection)
crud        Executes builders against a caller-owned connection
collection  Collection result container
model       Model base class
"""

from rowbind.orm.collection import Collection
from rowbind.orm.keys import CompositeKey, PrimaryKeyStrategy, SingleKey
from rowbind.orm.model import Column, Model
from rowbind.orm.registry import ColumnDescriptor, EntityDescriptor, clear_registry, describe

__all__ = [
    "Collection",
    "Column",
    "ColumnDescriptor",
    "CompositeKey",
    "EntityDescriptor",
    "Model",
    "PrimaryKeyStrategy",
    "SingleKey",
    "clear_registry",
    "describe",
]
