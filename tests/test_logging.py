# tests/test_logging.py
import logging

import pytest
from rich.logging import RichHandler

from inventorylock.config import InventoryLockConfig
from inventorylock.logging import (
    LoggingMode, configure_logging, get_environment_log_level, resolve_level,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_environment_debug_switch(monkeypatch):
    monkeypatch.delenv("DEBUG", raising=False)
    monkeypatch.delenv("INVLOCK_LOGLEVEL", raising=False)
    monkeypatch.setenv("INVLOCK_DEBUG", "1")

    assert get_environment_log_level() == logging.DEBUG


def test_environment_log_level_name(monkeypatch):
    monkeypatch.delenv("DEBUG", raising=False)
    monkeypatch.delenv("INVLOCK_DEBUG", raising=False)
    monkeypatch.setenv("INVLOCK_LOGLEVEL", "warning")

    assert get_environment_log_level() == logging.WARNING


def test_explicit_level_beats_environment_and_config(monkeypatch):
    monkeypatch.setenv("INVLOCK_LOGLEVEL", "error")
    config = InventoryLockConfig(log_level="warning")

    assert resolve_level(config, "debug") == logging.DEBUG


def test_environment_beats_config(monkeypatch):
    for name in ("DEBUG", "INVLOCK_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("INVLOCK_LOGLEVEL", "error")

    assert resolve_level(InventoryLockConfig(log_level="warning")) == logging.ERROR


def test_config_level_used_last(monkeypatch):
    for name in ("DEBUG", "INVLOCK_DEBUG", "INVLOCK_LOGLEVEL"):
        monkeypatch.delenv(name, raising=False)

    assert resolve_level(InventoryLockConfig(log_level="warning")) == logging.WARNING


def test_configure_development_logging_uses_rich():
    configure_logging(InventoryLockConfig(), mode=LoggingMode.DEVELOPMENT, log_level="debug")

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(isinstance(h, RichHandler) for h in root.handlers)


def test_configure_production_logging_to_file(tmp_path):
    log_file = tmp_path / "logs" / "invlock.log"

    configure_logging(InventoryLockConfig(), mode=LoggingMode.PRODUCTION, log_level=logging.INFO, log_file=log_file)
    logging.getLogger("inventorylock.test").info("writer saved")

    root = logging.getLogger()
    assert not any(isinstance(h, RichHandler) for h in root.handlers)
    for handler in root.handlers:
        handler.flush()
    assert "writer saved" in log_file.read_text()
