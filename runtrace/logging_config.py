"""Reporting side channel for runtrace.

runtrace never raises reporting failures into application code; it logs
them under the ``runtrace`` logger instead. Modules only call
``logging.getLogger(__name__)`` and install no handlers, so by default
those records go wherever the application's root configuration sends them.

The helpers here touch the ``runtrace`` logger only. The application's
root logger and its handlers are left alone.

Example:
    >>> from runtrace.logging_config import enable_reporting_logs
    >>> enable_reporting_logs("DEBUG")   # every create/update, plus failures
"""

import logging
import sys
from typing import IO, Optional

PACKAGE_LOGGER = "runtrace"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Marks the handler enable_reporting_logs() owns, so repeated calls replace it
_HANDLER_ATTR = "_runtrace_reporting_handler"


def _numeric_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.WARNING)


def _installed_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if getattr(h, _HANDLER_ATTR, False)]


def enable_reporting_logs(
    level: str | int = "WARNING",
    stream: Optional[IO[str]] = None,
    format_string: Optional[str] = None,
) -> logging.Handler:
    """Attach a stream handler to the ``runtrace`` logger.

    Calling it again replaces the handler from the previous call. Records
    still propagate to the root logger.

    Args:
        level: WARNING shows failed reports and observer errors; DEBUG adds
            every successful report and disabled short-circuit
        stream: Where to write (defaults to stderr)
        format_string: Custom format string for log messages

    Returns:
        The installed handler
    """
    numeric_level = _numeric_level(level)
    logger = logging.getLogger(PACKAGE_LOGGER)

    for handler in _installed_handlers(logger):
        logger.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT))
    setattr(handler, _HANDLER_ATTR, True)

    logger.addHandler(handler)
    logger.setLevel(numeric_level)
    return handler


def disable_reporting_logs() -> None:
    """Remove the handler installed by enable_reporting_logs()."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in _installed_handlers(logger):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def set_package_log_level(level: str | int) -> None:
    """Set the level of the ``runtrace`` logger and every logger below it."""
    numeric_level = _numeric_level(level)

    logging.getLogger(PACKAGE_LOGGER).setLevel(numeric_level)
    for logger_name in logging.Logger.manager.loggerDict:
        if logger_name.startswith(f"{PACKAGE_LOGGER}."):
            logging.getLogger(logger_name).setLevel(numeric_level)


def disable_package_logging() -> None:
    """Silence all runtrace logging (useful in tests of host applications)."""
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.CRITICAL + 1)
