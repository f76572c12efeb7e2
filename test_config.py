"""
Tests for startup configuration and logging setup
"""
import logging

import pytest
from pydantic import ValidationError

from app.config import DEFAULT_LOG_FORMAT, ServerConfig, configure_logging


def test_defaults_bind_loopback():
    config = ServerConfig()
    assert config.host == "127.0.0.1"
    assert config.port == 3000
    assert config.log_level == "DEBUG"
    assert config.log_format == DEFAULT_LOG_FORMAT
    assert config.graceful_timeout is None


def test_log_level_is_normalised():
    assert ServerConfig(log_level="info").log_level == "INFO"
    assert ServerConfig(log_level="trace").log_level == "TRACE"


@pytest.mark.parametrize(
    "overrides",
    [
        {"port": 70000},
        {"port": -1},
        {"log_level": "chatty"},
        {"log_level": "WARN"},
        {"log_level": "FATAL"},
        {"log_level": "NOTSET"},
        {"graceful_timeout": -1},
    ],
)
def test_invalid_values_rejected(overrides):
    with pytest.raises(ValidationError):
        ServerConfig(**overrides)


def test_config_is_frozen():
    config = ServerConfig()
    with pytest.raises(ValidationError):
        config.port = 8000


def test_configure_logging_sets_root_level():
    root = logging.getLogger()
    previous_level, previous_handlers = root.level, root.handlers[:]
    try:
        configure_logging(ServerConfig(log_level="WARNING"))
        assert root.level == logging.WARNING
        assert root.handlers
    finally:
        root.handlers[:] = previous_handlers
        root.setLevel(previous_level)


@pytest.mark.parametrize("level", ["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
def test_every_accepted_level_builds_a_server(level):
    from app.main import create_app
    from app.services.server_runner import build_server

    server = build_server(create_app(), ServerConfig(port=0, log_level=level))
    assert server.config.log_level == level.lower()
