import logging

import pytest

from webfetch_lib.config import DEFAULT_PORT, Settings, load_settings
from webfetch_lib.log import ROOT_LOGGER, configure_logging


def test_defaults_from_empty_environment():
    settings = load_settings({})
    assert settings == Settings()
    assert settings.port == DEFAULT_PORT == 3000
    assert settings.fetch_timeout == 10.0
    assert settings.sole_session_fallback is False
    assert settings.message_path == "/message"
    assert settings.log_path is None


def test_environment_overrides():
    settings = load_settings(
        {
            "WEBFETCH_HOST": "127.0.0.1",
            "WEBFETCH_PORT": "8123",
            "WEBFETCH_FETCH_TIMEOUT": "2.5",
            "WEBFETCH_USER_AGENT": "agent/2",
            "WEBFETCH_KEEPALIVE_INTERVAL": "3",
            "WEBFETCH_SOLE_SESSION_FALLBACK": "Yes",
            "WEBFETCH_MESSAGE_PATH": "messages",
            "WEBFETCH_LOG_PATH": "/tmp/webfetch.log",
            "WEBFETCH_LOG_LEVEL": "debug",
        }
    )
    assert settings.host == "127.0.0.1"
    assert settings.port == 8123
    assert settings.fetch_timeout == 2.5
    assert settings.user_agent == "agent/2"
    assert settings.keepalive_interval == 3.0
    assert settings.sole_session_fallback is True
    assert settings.message_path == "/messages"
    assert settings.log_path == "/tmp/webfetch.log"
    assert settings.log_level == "DEBUG"


def test_port_falls_back_to_generic_variable():
    assert load_settings({"PORT": "4001"}).port == 4001
    assert load_settings({"PORT": "4001", "WEBFETCH_PORT": "4002"}).port == 4002
    assert load_settings({"WEBFETCH_PORT": " ", "PORT": "4003"}).port == 4003


def test_reads_process_environment(monkeypatch):
    monkeypatch.setenv("WEBFETCH_PORT", "5055")
    assert load_settings().port == 5055


@pytest.mark.parametrize(
    "env",
    [
        {"WEBFETCH_PORT": "eighty"},
        {"WEBFETCH_FETCH_TIMEOUT": "soon"},
        {"WEBFETCH_FETCH_TIMEOUT": "0"},
        {"WEBFETCH_KEEPALIVE_INTERVAL": "-1"},
    ],
)
def test_invalid_values_are_rejected(env):
    with pytest.raises(ValueError):
        load_settings(env)


@pytest.fixture
def fresh_logger():
    logger = logging.getLogger(ROOT_LOGGER)
    saved = (list(logger.handlers), logger.propagate, logger.level)
    logger.handlers.clear()
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = saved[0]
    logger.propagate = saved[1]
    logger.setLevel(saved[2])


def test_configure_logging_writes_to_file_once(tmp_path, fresh_logger):
    log_file = tmp_path / "logs" / "webfetch.log"
    logger = configure_logging(level="debug", log_path=str(log_file))
    assert logger is fresh_logger
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2

    configure_logging(level="INFO", log_path=str(log_file))
    assert len(logger.handlers) == 2

    logging.getLogger("webfetch.fetcher").info("hello from fetcher")
    for handler in logger.handlers:
        handler.flush()
    assert "[INFO] webfetch.fetcher: hello from fetcher" in log_file.read_text(encoding="utf-8")


def test_configure_logging_falls_back_to_stderr(tmp_path, fresh_logger):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    logger = configure_logging(log_path=str(blocker / "webfetch.log"))
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.StreamHandler)
