"""
Logging infrastructure.

Every module logs through ``logging.getLogger(__name__)``; the single
console handler lives on the ``order_store`` package logger and child
loggers propagate to it.
"""
import logging

PACKAGE_LOGGER = "order_store"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance, installing the package handler on first use.

    Args:
        name: Logger name (usually module name)

    Returns:
        Logger instance
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
        package_logger.setLevel(logging.INFO)
    return logging.getLogger(name)
