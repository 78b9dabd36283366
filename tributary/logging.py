"""Level handling for the Tributary entry points.

The CLI and the Dramatiq actors call :func:`configure_logging` once. It sets
up femtologging for their own operator-facing messages and puts the
standard-library root logger, which the ingestion and materialization
modules log through, on the matching level.

Example:
>>> from tributary.logging import get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Materialized %d archive files", 3)

"""

from __future__ import annotations

import logging as stdlib_logging
import typing as typ

from femtologging import basicConfig, get_logger

DEFAULT_LEVEL = "INFO"

# Every femtologging level name with its stdlib counterpart; TRACE and WARN
# exist only in femtologging.
_STDLIB_LEVELS: dict[str, int] = {
    "TRACE": stdlib_logging.DEBUG,
    "DEBUG": stdlib_logging.DEBUG,
    "INFO": stdlib_logging.INFO,
    "WARN": stdlib_logging.WARNING,
    "WARNING": stdlib_logging.WARNING,
    "ERROR": stdlib_logging.ERROR,
    "CRITICAL": stdlib_logging.CRITICAL,
}

_STDLIB_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Normalize a log level string and report invalid inputs.

    Parameters
    ----------
    level : str | None
        Raw log level string, typically from ``TRIBUTARY_LOG_LEVEL``.

    Returns
    -------
    tuple[str, bool]
        The normalized level and whether the input had to be replaced by
        the default.

    """
    normalized = (level or "").strip().upper()
    if normalized in _STDLIB_LEVELS:
        return (normalized, False)
    return (DEFAULT_LEVEL, True)


def stdlib_level(level: str) -> int:
    """Return the standard-library numeric level for a normalized level name."""
    return _STDLIB_LEVELS.get(level, stdlib_logging.INFO)


def configure_logging(level: str, *, force: bool = False) -> tuple[str, bool]:
    """Configure femtologging and the stdlib root logger on one level.

    ``force`` replaces handlers that are already installed. Returns the same
    pair as :func:`normalize_log_level`.
    """
    normalized, invalid = normalize_log_level(level)
    basicConfig(level=normalized, force=force)
    stdlib_logging.basicConfig(
        level=stdlib_level(normalized), format=_STDLIB_FORMAT, force=force
    )
    return (normalized, invalid)


class _SupportsLog(typ.Protocol):
    """The slice of a femtologging logger the helpers below use."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def _emit(
    logger: _SupportsLog,
    level: str,
    template: str,
    args: tuple[object, ...],
    exc_info: object | None,
) -> None:
    # femtologging takes finished messages, so interpolate here.
    logger.log(level, template % args, exc_info=exc_info, stack_info=False)


def log_info(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log an INFO message with percent-style formatting."""
    _emit(logger, "INFO", template, args, exc_info)


def log_warning(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log a WARNING message with percent-style formatting."""
    _emit(logger, "WARNING", template, args, exc_info)


__all__ = [
    "DEFAULT_LEVEL",
    "configure_logging",
    "get_logger",
    "log_info",
    "log_warning",
    "normalize_log_level",
    "stdlib_level",
]
