"""Constants used throughout essentials-di.

This module defines the package logger, the attribute name stamped onto
decorated non-class objects, and the service lifetimes.
"""

import logging
from enum import Enum

LOGGER_NAME: str = "essentials_di"
"""Default logger name for essentials-di."""

LOGGER: logging.Logger = logging.getLogger(LOGGER_NAME)
"""Pre-configured logger instance for essentials-di internal diagnostics."""

SERVICE_MARKER: str = "_essentials_service"
"""Attribute name storing the :class:`~essentials_di.decorators.ServiceMarker` of a decorated non-class object."""


class Lifetime(str, Enum):
    """How long a resolved instance is reused."""

    TRANSIENT = "transient"
    """A new instance on every resolution."""

    SCOPED = "scoped"
    """One instance per :class:`~essentials_di.scope.ServiceScope`."""

    SINGLETON = "singleton"
    """One instance per root provider lifetime."""
