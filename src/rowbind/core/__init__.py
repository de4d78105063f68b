"""rowbind core -- errors, logging, settings, protocols and statement execution.

Architecture::

    errors.py      Structured error hierarchy (RowbindError and subclasses)
    logging.py     structlog configuration (configure_logging, get_logger)
    settings.py    RowbindSettings (pydantic-settings, ROWBIND_ prefix)
    protocols.py   Connection / PreparedStatement contracts
    sql.py         SqlStatement, BoundParam, quoting, run/fetch_all, transaction

Nothing in ``core`` knows about models or migrations; both build on it.
"""

from rowbind.core.errors import (
    ConfigError,
    DatabaseConnectionError,
    DatabaseError,
    ErrorCategory,
    ErrorContext,
    MigrationDefinitionError,
    MigrationError,
    MigrationFileNotFoundError,
    MissingPrimaryKeyError,
    NotPersistedError,
    QueryError,
    QueryExecutionError,
    QueryPreparationError,
    RowbindError,
    SchemaError,
    TypeMismatchError,
    UnknownAttributeError,
    UnsafeQueryError,
    UnsupportedTypeError,
    ValidationError,
)
from rowbind.core.protocols import Connection, PreparedStatement
from rowbind.core.sql import BoundParam, SqlStatement, transaction

__all__ = [
    "BoundParam",
    "ConfigError",
    "Connection",
    "DatabaseConnectionError",
    "DatabaseError",
    "ErrorCategory",
    "ErrorContext",
    "MigrationDefinitionError",
    "MigrationError",
    "MigrationFileNotFoundError",
    "MissingPrimaryKeyError",
    "NotPersistedError",
    "PreparedStatement",
    "QueryError",
    "QueryExecutionError",
    "QueryPreparationError",
    "RowbindError",
    "SchemaError",
    "SqlStatement",
    "TypeMismatchError",
    "UnknownAttributeError",
    "UnsafeQueryError",
    "UnsupportedTypeError",
    "ValidationError",
    "transaction",
]
