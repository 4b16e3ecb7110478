"""
Exception taxonomy.

All failures are fatal: nothing here is meant to be caught and retried.
Disabled processes (multiplier <= 0) are the only silent path and never
reach these exceptions.
"""

import logging
from typing import NoReturn, Type


class ElossError(Exception):
    """Base class for all eloss_mc errors."""


class ConfigurationError(ElossError):
    """Unregistered parametrization, unknown particle/medium, invalid cuts."""


class NumericError(ElossError):
    """Non-convergent quadrature, failed root finding, table inversion miss."""


class InvariantViolation(ElossError):
    """Broken precondition, e.g. ef > ei or a negative random draw."""


def log_fatal(logger: logging.Logger, exc_type: Type[ElossError],
              msg: str, *args) -> NoReturn:
    """
    Log a fatal condition at CRITICAL level and raise it.

    Parameters:
        logger: Module logger of the caller
        exc_type: Exception class to raise
        msg: printf-style message
        *args: Message arguments
    """
    text = msg % args if args else msg
    logger.critical(text)
    raise exc_type(text)
