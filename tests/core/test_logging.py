"""Tests for rowbind.core.logging."""

import pytest
import structlog
from structlog.testing import capture_logs

from rowbind.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
)
from rowbind.core.settings import load_settings


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    clear_context()
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_json_renderer(self):
        configure_logging(level="DEBUG", json_format=True)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer(self):
        configure_logging(level="INFO", json_format=False)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_from_settings(self):
        configure_from_settings(load_settings(log_level="warning", json_logs=True))
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)


class TestContext:
    def test_log_context_is_scoped(self):
        with LogContext(migration="0001_users.py", batch=2):
            assert structlog.contextvars.get_contextvars() == {
                "migration": "0001_users.py",
                "batch": 2,
            }
        assert structlog.contextvars.get_contextvars() == {}

    def test_get_logger_emits_events(self):
        log = get_logger("rowbind.test")
        with capture_logs() as logs:
            log.info("migration.applied", migration="0001_users.py", batch=1)
        assert logs == [
            {
                "event": "migration.applied",
                "log_level": "info",
                "migration": "0001_users.py",
                "batch": 1,
            }
        ]

    def test_clear_context(self):
        bind_context(entity="User")
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
