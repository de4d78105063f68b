"""Batch-tracked schema migrations for rowbind.

Applies Python migration modules (``up``/``down`` SQL) from a directory in
filename order, tracking what has been applied, and in which batch, in the
``rowbind_migrations`` table.

Modules
-------
loader    discovery, MigrationDefinition, normalize_statements
tracker   MigrationTracker, MigrationRecord (tracking table access)
runner    MigrationRunner with migrate() / rollback() / pending() / applied()
"""

from rowbind.migrations.loader import MigrationDefinition, load_definition, normalize_statements
from rowbind.migrations.runner import MigrationResult, MigrationRunner, RollbackResult
from rowbind.migrations.tracker import MigrationRecord, MigrationTracker

__all__ = [
    "MigrationDefinition",
    "MigrationRecord",
    "MigrationResult",
    "MigrationRunner",
    "MigrationTracker",
    "RollbackResult",
    "load_definition",
    "normalize_statements",
]
