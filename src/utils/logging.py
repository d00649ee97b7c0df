"""Logging configuration for evidence-rewrite."""

import logging
import sys

# Logger name for the application
LOGGER_NAME = "evidence_rewrite"

# Modules log through logging.getLogger(__name__), under this package
PACKAGE_LOGGER_NAME = "src"

# Default log format
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Track if logging has been configured
_configured = False


def _managed_loggers() -> list[logging.Logger]:
    return [logging.getLogger(LOGGER_NAME), logging.getLogger(PACKAGE_LOGGER_NAME)]


def configure_logging(
    level: str | None = None,
    format_string: str = LOG_FORMAT,
    date_format: str = DATE_FORMAT,
) -> logging.Logger:
    """Configure and return the main application logger.

    The same stderr handler is attached to the package logger so module
    loggers (``src.rewrite.*``) share the format and level.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to INFO if not specified.
        format_string: Format string for log messages.
        date_format: Format string for timestamps.

    Returns:
        The configured application logger.
    """
    global _configured

    if level is None:
        level = "INFO"
    log_level = getattr(logging, level.upper(), logging.INFO)

    if not _configured:
        formatter = logging.Formatter(format_string, datefmt=date_format)
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)

        for logger in _managed_loggers():
            logger.handlers.clear()
            logger.addHandler(console_handler)
            # Prevent propagation to root logger
            logger.propagate = False

        _configured = True

    for logger in _managed_loggers():
        logger.setLevel(log_level)
        for handler in logger.handlers:
            handler.setLevel(log_level)

    return logging.getLogger(LOGGER_NAME)


def get_logger(name: str) -> logging.Logger:
    """Get a child logger for a specific module.

    Args:
        name: The module name (will be prefixed with 'evidence_rewrite.').

    Returns:
        A child logger for the module.
    """
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def reset_logging() -> None:
    """Reset logging configuration (useful for testing)."""
    global _configured

    for logger in _managed_loggers():
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
        logger.propagate = True

    _configured = False
