"""Logging setup driven by the ``logging`` section of the configuration."""

from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING
import logging

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from ..config import LoggingConfig

PACKAGE_LOGGER = "statement_recon"
FILE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
)


def setup_logging(config: "LoggingConfig", verbose: bool = False) -> logging.Logger:
    """
    Attach handlers to the package logger.

    Calling this again replaces the handlers of the previous call, so the
    CLI can configure logging once per command.

    Args:
        config: Logging section of the application configuration
        verbose: Log at DEBUG regardless of the configured level

    Returns:
        The package logger

    Raises:
        ConfigurationError: If the configured level is not a logging level
    """
    level = logging.DEBUG if verbose else resolve_level(config.level)
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(config.format))
    logger.addHandler(console_handler)

    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def resolve_level(name: str) -> int:
    """Translate a level name such as "info" into its logging constant."""
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown logging level '{name}'")
    return level


def get_logger(name: str) -> logging.Logger:
    """Child of the package logger, e.g. get_logger("cli")."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
