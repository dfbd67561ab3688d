"""Logging configuration and setup."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List

from ..config.models import LoggingConfig

# Library loggers kept at WARNING whatever the application level
NOISY_LOGGERS = ("aiohttp.access", "aiohttp.client", "aiohttp.internal", "asyncio")


def setup_logging(config: LoggingConfig) -> List[logging.Handler]:
    """Configure the root logger.

    Records go to stderr so that listings printed on stdout stay parseable.
    A rotating file handler is added when ``logging.file`` is set.

    Args:
        config: Logging configuration.

    Returns:
        Handlers installed on the root logger.
    """
    level = getattr(logging, config.level)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=config.max_size_mb * 1024 * 1024,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        )

    formatter = logging.Formatter(config.format)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.debug(f"Logging configured with level {config.level}")
    return handlers


class LoggerMixin:
    """Mixin class that provides logging functionality."""

    @property
    def logger(self) -> logging.Logger:
        """Logger named after the concrete class."""
        return logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")
