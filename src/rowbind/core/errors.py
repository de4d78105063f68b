"""
Structured error types for rowbind.

Every failure the engine reports is a ``RowbindError``. Errors carry a
category for routing, a structured context (entity, table, column,
migration, SQL text) and the chained driver exception when one exists, so a
single ``to_dict()`` call is enough to log a failure with everything needed
to reproduce it.

Manifesto:
    - **Typed hierarchy:** schema, type, query and migration failures are
      distinct classes, caught independently by callers
    - **Fail at the source:** type and shape errors are raised at assignment
      time, not deferred to ``save()``
    - **Rich context:** errors know which entity/table/column/migration failed
    - **Error chaining:** driver exceptions are preserved as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        RowbindError                          │
        │              (category, context, cause)                      │
        ├──────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ValidationError       DatabaseError       MigrationError    │
        │  (VALIDATION)          (DATABASE)          (MIGRATION)       │
        │       │                     │                    │           │
        │  SchemaError           QueryError          Definition        │
        │  TypeMismatchError     ├ Preparation       FileNotFound      │
        │  UnsupportedTypeError  └ Execution                           │
        │  UnknownAttributeError ConnectionError     ConfigError       │
        │  MissingPrimaryKey                         (CONFIG)          │
        │  NotPersisted / UnsafeQuery                                  │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> err = TypeMismatchError("bad value", field="age", value="4x2")
    >>> err.category
    <ErrorCategory.VALIDATION: 'VALIDATION'>
    >>> err.with_context(entity="User", table="users").to_dict()["context"]
    {'entity': 'User', 'table': 'users'}

Guardrails:
    ❌ DON'T: Raise bare Exception from the engine
    ✅ DO: Pick the narrowest RowbindError subclass

    ❌ DON'T: Drop the driver exception when wrapping
    ✅ DO: Pass it as ``cause=``

Tags:
    error-handling, exception-hierarchy, error-context, rowbind
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for classification and log routing."""

    VALIDATION = "VALIDATION"     # Schema, type, attribute violations
    DATABASE = "DATABASE"         # Driver, connection, query failures
    MIGRATION = "MIGRATION"       # Migration definition and execution
    CONFIG = "CONFIG"             # Settings, missing optional drivers
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only non-None fields are exported by ``to_dict()``; anything that has no
    dedicated field goes into ``metadata``.

    Attributes:
        entity: Model class name
        table: Table the operation targeted
        column: Column involved, if any
        migration: Migration name (file name)
        sql: SQL text being prepared or executed
        metadata: Additional key-value pairs
    """

    entity: str | None = None
    table: str | None = None
    column: str | None = None
    migration: str | None = None
    sql: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["entity", "table", "column", "migration", "sql"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RowbindError(Exception):
    """
    Base exception for all rowbind errors.

    Subclasses set ``default_category``; callers may still override it per
    instance. The optional ``cause`` is chained into ``__cause__`` so
    tracebacks show the driver error underneath.

    Examples:
        >>> error = RowbindError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["error_type"]
        'RowbindError'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RowbindError:
        """
        Add context to this error (fluent API).

        Usage:
            raise QueryExecutionError("Insert failed").with_context(
                entity="User", table="users"
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(RowbindError):
    """
    Entity definition or attribute value error.

    Carries the offending ``field``, the rejected ``value`` and a short
    ``constraint`` description (usually the declared type).
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.constraint = constraint

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        if self.constraint:
            result["constraint"] = self.constraint
        return result


class SchemaError(ValidationError):
    """Invalid entity type definition (missing table, default, key column)."""


class TypeMismatchError(ValidationError, TypeError):
    """A value failed validation against its column's declared type."""


class UnsupportedTypeError(ValidationError):
    """A column declares a type kind the coercion engine cannot validate."""


class UnknownAttributeError(ValidationError, AttributeError):
    """Assignment to a name that is neither a declared column nor fillable."""


class MissingPrimaryKeyError(ValidationError):
    """A key component is None where a complete key is required."""


class NotPersistedError(ValidationError):
    """Operation requires a stored row but the entity is new."""


class UnsafeQueryError(ValidationError):
    """Refused to build a statement that would touch every row of a table."""


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(RowbindError):
    """Database operation error."""

    default_category = ErrorCategory.DATABASE


class DatabaseConnectionError(DatabaseError):
    """Could not open a connection to the database server."""


class QueryError(DatabaseError):
    """
    The driver rejected or failed a statement.

    ``sql`` holds the statement text; the driver's exception is the cause.
    """

    def __init__(self, message: str, *, sql: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.sql = sql
        if sql is not None and self.context.sql is None:
            self.context.sql = sql


class QueryPreparationError(QueryError):
    """The driver could not prepare the statement."""


class QueryExecutionError(QueryError):
    """The driver failed while binding or executing a prepared statement."""


# =============================================================================
# MIGRATION ERRORS
# =============================================================================


class MigrationError(RowbindError):
    """Migration failure. ``migration`` names the file involved."""

    default_category = ErrorCategory.MIGRATION

    def __init__(self, message: str, *, migration: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.migration = migration
        if migration is not None and self.context.migration is None:
            self.context.migration = migration


class MigrationDefinitionError(MigrationError):
    """A migration file is missing ``up``/``down`` or defines them wrongly."""


class MigrationFileNotFoundError(MigrationError):
    """A migration recorded as applied has no source file on disk."""


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(RowbindError):
    """Invalid settings or a missing optional driver. Never retryable."""

    default_category = ErrorCategory.CONFIG


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RowbindError",
    "ValidationError",
    "SchemaError",
    "TypeMismatchError",
    "UnsupportedTypeError",
    "UnknownAttributeError",
    "MissingPrimaryKeyError",
    "NotPersistedError",
    "UnsafeQueryError",
    "DatabaseError",
    "DatabaseConnectionError",
    "QueryError",
    "QueryPreparationError",
    "QueryExecutionError",
    "MigrationError",
    "MigrationDefinitionError",
    "MigrationFileNotFoundError",
    "ConfigError",
]
