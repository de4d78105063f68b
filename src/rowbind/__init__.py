"""rowbind -- typed row mapping, CRUD query construction and batch-tracked migrations.

Declare a model, pass a connection, get validated entities back::

    from enum import Enum
    from rowbind import Model

    class Status(Enum):
        ACTIVE = "active"
        BANNED = "banned"

    class User(Model):
        __table__ = "users"

        id: int | None = None
        email: str = ""
        status: Status = Status.ACTIVE

    user = User.create(conn, email="ada@example.com")
    active = User.collection(conn, conditions={"status": Status.ACTIVE}, limit=20)

Packages
--------
core        errors, logging, settings, Connection protocol, statement execution
orm         Model, column types, coercion, key strategies, CRUD, Collection
migrations  MigrationRunner (migrate / rollback by batch)
adapters    MySQLConnection (mysql-connector-python)
"""

from rowbind.core.errors import (
    MigrationDefinitionError,
    MigrationError,
    MigrationFileNotFoundError,
    MissingPrimaryKeyError,
    NotPersistedError,
    QueryExecutionError,
    QueryPreparationError,
    RowbindError,
    SchemaError,
    TypeMismatchError,
    UnknownAttributeError,
    UnsafeQueryError,
    UnsupportedTypeError,
)
from rowbind.core.logging import configure_logging, get_logger
from rowbind.core.protocols import Connection, PreparedStatement
from rowbind.core.settings import RowbindSettings, get_settings
from rowbind.migrations import MigrationRunner
from rowbind.orm import Collection, Model

__version__ = "0.4.0"

__all__ = [
    "Collection",
    "Connection",
    "MigrationDefinitionError",
    "MigrationError",
    "MigrationFileNotFoundError",
    "MigrationRunner",
    "MissingPrimaryKeyError",
    "Model",
    "NotPersistedError",
    "PreparedStatement",
    "QueryExecutionError",
    "QueryPreparationError",
    "RowbindError",
    "RowbindSettings",
    "SchemaError",
    "TypeMismatchError",
    "UnknownAttributeError",
    "UnsafeQueryError",
    "UnsupportedTypeError",
    "configure_logging",
    "get_logger",
    "get_settings",
]
