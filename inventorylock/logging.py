"""
Logging setup for inventorylock.

Writers run on named threads (Alice, Bob, ...), so every console and file line
carries the thread name; that is what makes an interleaving readable after a
race. Console output goes to stderr through rich, leaving stdout to command
output such as ``--json``.

Level sources, strongest first:
- an explicit level, which the CLI passes for ``--debug``
- ``DEBUG=1``, ``INVLOCK_DEBUG=1`` or ``INVLOCK_LOGLEVEL=<name>``
- ``log_level`` from the configuration
"""
import logging
import os
import sys
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from inventorylock.config import InventoryLockConfig, LogLevel


APP_NAME = "inventorylock"
FILE_FORMAT = "%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s: %(message)s"
PLAIN_FORMAT = "%(levelname)s [%(threadName)s] %(message)s"
RICH_FORMAT = "[%(threadName)s] %(message)s"
ROTATE_BYTES = 5 * 1024 * 1024
ROTATE_KEEP = 3

# Third-party loggers kept at WARNING unless SQL echo is requested
NOISY_LOGGERS = ("sqlalchemy",)


class LoggingMode(str, Enum):
    """Rich console output while developing, plain lines otherwise."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


def _level_number(level: Union[int, str, LogLevel, None]) -> Optional[int]:
    if level is None:
        return None
    if isinstance(level, int):
        return level
    name = level.value if isinstance(level, LogLevel) else str(level)
    number = logging.getLevelName(name.upper())
    return number if isinstance(number, int) else None


def get_environment_log_level() -> Optional[int]:
    """Level requested through the environment, if any."""
    if "1" in (os.environ.get("DEBUG"), os.environ.get("INVLOCK_DEBUG")):
        return logging.DEBUG
    return _level_number(os.environ.get("INVLOCK_LOGLEVEL"))


def resolve_level(
    config: InventoryLockConfig,
    explicit: Union[int, str, LogLevel, None] = None,
) -> int:
    """Pick the level from the strongest source that sets one."""
    level = _level_number(explicit)
    if level is not None:
        return level
    level = get_environment_log_level()
    if level is not None:
        return level
    return _level_number(config.log_level) or logging.INFO


def _console_handler(use_rich: bool) -> logging.Handler:
    if not use_rich:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
        return handler

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter(RICH_FORMAT))
    return handler


def _file_handler(log_file: Path) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_file, maxBytes=ROTATE_BYTES, backupCount=ROTATE_KEEP, encoding="utf-8")
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def configure_logging(
    config: Optional[InventoryLockConfig] = None,
    mode: LoggingMode = LoggingMode.DEVELOPMENT,
    log_level: Union[int, str, LogLevel, None] = None,
    log_file: Optional[Path] = None,
) -> None:
    """
    Replace the root logger's handlers.

    Args:
        config: Application configuration (defaults are used if omitted)
        mode: Console style
        log_level: Level overriding every other source (``--debug`` passes DEBUG)
        log_file: Rotating log file, overriding ``config.log_file``
    """
    config = config or InventoryLockConfig()
    level = resolve_level(config, log_level)
    target = log_file or config.log_file

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(level)
    root.addHandler(_console_handler(mode == LoggingMode.DEVELOPMENT and config.color_output))
    if target:
        root.addHandler(_file_handler(Path(target).expanduser()))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET if config.echo_sql else logging.WARNING)

    logger.debug(
        f"Logging at {logging.getLevelName(level)} in {mode.value} mode"
        + (f", writing to {target}" if target else "")
    )


logger = logging.getLogger(APP_NAME)
