"""Shared logger for the expression calculator."""
import logging
import os


LOGGER_NAME = "expression_calculator"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Return the package logger, attaching a stream handler on first use.

    The level is read from the ``EXPRESSION_CALCULATOR_LOG_LEVEL`` environment
    variable and defaults to ``INFO``.

    :param str name: Logger name

    :return: Configured logger
    :rtype: logging.Logger
    """
    log = logging.getLogger(name)
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
        log.setLevel(os.environ.get("EXPRESSION_CALCULATOR_LOG_LEVEL", "INFO").upper())
    return log


logger: logging.Logger = get_logger()
