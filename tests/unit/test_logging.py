"""Unit tests for the logging configuration module."""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest
import structlog

from swarm_updater.logging import get_logger, setup_logging


@pytest.fixture(autouse=True)
def _reset_root_logger():
    """Reset root logger state before and after each test."""
    original_handlers = logging.root.handlers[:]
    original_level = logging.root.level
    logging.root.handlers.clear()
    logging.root.setLevel(logging.WARNING)
    yield
    logging.root.handlers.clear()
    logging.root.handlers.extend(original_handlers)
    logging.root.setLevel(original_level)
    structlog.reset_defaults()


def _settings(level: str = "INFO", development: bool = False) -> MagicMock:
    mock_settings = MagicMock()
    mock_settings.log_level = level
    mock_settings.is_development = development
    return mock_settings


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_uses_configured_level(self):
        with patch("swarm_updater.logging.get_settings", return_value=_settings("WARNING")):
            with patch("swarm_updater.logging.logging.basicConfig") as mock_basic:
                setup_logging()

        assert mock_basic.call_args.kwargs["level"] == logging.WARNING

    def test_explicit_level_overrides_settings(self):
        with patch("swarm_updater.logging.get_settings", return_value=_settings("INFO")):
            with patch("swarm_updater.logging.logging.basicConfig") as mock_basic:
                setup_logging("debug")

        assert mock_basic.call_args.kwargs["level"] == logging.DEBUG

    def test_invalid_level_defaults_to_info(self):
        with patch("swarm_updater.logging.get_settings", return_value=_settings("NONEXISTENT")):
            with patch("swarm_updater.logging.logging.basicConfig") as mock_basic:
                setup_logging()

        assert mock_basic.call_args.kwargs["level"] == logging.INFO

    def test_reduces_third_party_noise(self):
        with patch("swarm_updater.logging.get_settings", return_value=_settings("DEBUG")):
            setup_logging()

        assert logging.getLogger("docker").level == logging.WARNING
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_configures_structlog(self):
        with patch("swarm_updater.logging.get_settings", return_value=_settings()):
            with patch("swarm_updater.logging.structlog.configure") as mock_configure:
                setup_logging()

        mock_configure.assert_called_once()
        call_kwargs = mock_configure.call_args[1]
        assert call_kwargs["context_class"] is dict
        assert call_kwargs["cache_logger_on_first_use"] is True

    def test_development_uses_console_renderer(self):
        with patch(
            "swarm_updater.logging.get_settings", return_value=_settings(development=True)
        ):
            with patch("swarm_updater.logging.structlog.dev.ConsoleRenderer") as mock_renderer:
                setup_logging()

        mock_renderer.assert_called_once_with(colors=True)

    def test_production_uses_json_renderer(self):
        with patch("swarm_updater.logging.get_settings", return_value=_settings()):
            with patch("swarm_updater.logging.structlog.processors.JSONRenderer") as mock_renderer:
                setup_logging()

        mock_renderer.assert_called_once_with()

    def test_stdlib_records_use_processor_formatter(self):
        with patch("swarm_updater.logging.get_settings", return_value=_settings()):
            setup_logging()

        formatters = [h.formatter for h in logging.root.handlers]
        assert any(isinstance(f, structlog.stdlib.ProcessorFormatter) for f in formatters)

    def test_docker_warning_rendered_as_json(self, capsys):
        with patch("swarm_updater.logging.get_settings", return_value=_settings()):
            setup_logging()

        logging.getLogger("docker.api").warning("connection pool is full")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "connection pool is full"
        assert record["level"] == "warning"
        assert record["logger"] == "docker.api"
        assert "timestamp" in record


class TestGetLogger:
    """Tests for get_logger."""

    def test_returns_bound_logger(self):
        log = get_logger("swarm_updater.test")
        assert hasattr(log, "info")
        assert hasattr(log, "debug")
