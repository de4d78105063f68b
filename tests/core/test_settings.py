"""Tests for core.settings module.

Covers:
- RowbindSettings defaults
- Environment variable override (ROWBIND_ prefix)
- Validation failures surfacing as ConfigError
- get_settings caching
"""

from pathlib import Path

import pytest

from rowbind.core.errors import ConfigError
from rowbind.core.settings import RowbindSettings, get_settings, load_settings, reset_settings


class TestRowbindSettingsDefaults:
    def test_migration_defaults(self):
        s = RowbindSettings()
        assert s.migrations_path == Path("database/migrations")
        assert s.applied_subdir == "applied"
        assert s.applied_path == Path("database/migrations/applied")
        assert s.tracking_table == "rowbind_migrations"
        assert s.move_applied is True
        assert s.move_back is False

    def test_logging_defaults(self):
        s = RowbindSettings()
        assert s.log_level == "INFO"
        assert s.json_logs is None


class TestRowbindSettingsEnvOverride:
    def test_path_from_env(self, monkeypatch):
        monkeypatch.setenv("ROWBIND_MIGRATIONS_PATH", "db/changes")
        assert RowbindSettings().migrations_path == Path("db/changes")

    def test_flags_from_env(self, monkeypatch):
        monkeypatch.setenv("ROWBIND_MOVE_APPLIED", "false")
        monkeypatch.setenv("ROWBIND_MOVE_BACK", "true")
        s = RowbindSettings()
        assert s.move_applied is False
        assert s.move_back is True

    def test_log_level_is_normalised(self, monkeypatch):
        monkeypatch.setenv("ROWBIND_LOG_LEVEL", "debug")
        assert RowbindSettings().log_level == "DEBUG"

    def test_unprefixed_env_ignored(self, monkeypatch):
        monkeypatch.setenv("TRACKING_TABLE", "other")
        assert RowbindSettings().tracking_table == "rowbind_migrations"

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("ROWBIND_TRACKING_TABLE=schema_history\n", encoding="utf-8")
        assert RowbindSettings().tracking_table == "schema_history"


class TestValidation:
    @pytest.mark.parametrize("table", ["bad-name", "drop table x", "1abc", ""])
    def test_tracking_table_must_be_identifier(self, table):
        with pytest.raises(ConfigError):
            load_settings(tracking_table=table)

    @pytest.mark.parametrize("subdir", ["a/b", "..", "/abs"])
    def test_applied_subdir_single_segment(self, subdir):
        with pytest.raises(ConfigError):
            load_settings(applied_subdir=subdir)

    def test_unknown_log_level(self):
        with pytest.raises(ConfigError) as exc_info:
            load_settings(log_level="LOUD")
        assert exc_info.value.cause is not None


class TestGetSettings:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_reset_rereads_environment(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("ROWBIND_APPLIED_SUBDIR", "done")
        assert get_settings() is first
        reset_settings()
        assert get_settings().applied_subdir == "done"
