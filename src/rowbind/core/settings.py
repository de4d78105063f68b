"""Runtime settings for rowbind.

Migration locations, the tracking table name and logging options are read
from the environment (``ROWBIND_`` prefix) and an optional ``.env`` file.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    A typo in ``ROWBIND_TRACKING_TABLE`` must fail at startup with a
    ``ConfigError``, not as an SQL syntax error halfway through a migration.

Examples:
    >>> from rowbind.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.migrations_path
    PosixPath('database/migrations')
    >>> settings.applied_path
    PosixPath('database/migrations/applied')

Tags:
    settings, configuration, pydantic, environment, rowbind
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rowbind.core.errors import ConfigError

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class RowbindSettings(BaseSettings):
    """Settings shared by the migration runner and logging setup.

    Fields
    ──────
    migrations_path : Directory holding migration modules
    applied_subdir  : Sub-directory applied migrations are moved into
    tracking_table  : Table recording applied migrations and their batch
    move_applied    : Move each migration file after it is applied
    move_back       : Move files back out of ``applied_subdir`` on rollback
    log_level       : Structlog log level
    json_logs       : Force JSON (True) or console (False) output; None = auto
    """

    model_config = SettingsConfigDict(
        env_prefix="ROWBIND_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Migrations ───────────────────────────────────────────────
    migrations_path: Path = Field(
        default=Path("database/migrations"),
        description="Directory holding migration modules",
    )
    applied_subdir: str = "applied"
    tracking_table: str = "rowbind_migrations"
    move_applied: bool = True
    move_back: bool = False

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("tracking_table")
    @classmethod
    def _check_table(cls, value: str) -> str:
        if not _IDENTIFIER.match(value):
            raise ValueError(f"not a plain SQL identifier: {value!r}")
        return value

    @field_validator("applied_subdir")
    @classmethod
    def _check_subdir(cls, value: str) -> str:
        parts = Path(value).parts
        if len(parts) != 1 or value in (".", "..") or Path(value).is_absolute():
            raise ValueError(f"must be a single relative directory name: {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value!r}")
        return level

    @property
    def applied_path(self) -> Path:
        return self.migrations_path / self.applied_subdir


def load_settings(**overrides: object) -> RowbindSettings:
    """Build settings, converting pydantic validation failures to ``ConfigError``."""
    try:
        return RowbindSettings(**overrides)
    except ValidationError as exc:
        raise ConfigError(f"Invalid rowbind settings: {exc}", cause=exc) from exc


@lru_cache(maxsize=1)
def get_settings() -> RowbindSettings:
    """Process-wide settings, read once from the environment."""
    return load_settings()


def reset_settings() -> None:
    """Forget cached settings (tests, or after changing the environment)."""
    get_settings.cache_clear()


__all__ = [
    "RowbindSettings",
    "load_settings",
    "get_settings",
    "reset_settings",
]
