"""Observability primitives for the incremental sync.

Run-level outcomes are emitted as structured ``key=value`` log events so a log
aggregator can chart throughput per entity and alert on failed runs.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import typing as typ

import httpx
from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

from tributary.columnar.errors import ColumnarConfigError, ColumnarSchemaError
from tributary.fetch import FetchError

from .errors import SyncConfigError

if typ.TYPE_CHECKING:
    import datetime as dt

    from .controller import EntityOutcome, SyncRunResult

logger = logging.getLogger(__name__)

_HTTP_SERVER_ERROR_THRESHOLD = 500


class SyncEventType(enum.StrEnum):
    """Structured log event types for sync observability."""

    RUN_STARTED = "sync.run.started"
    RUN_COMPLETED = "sync.run.completed"
    RUN_FAILED = "sync.run.failed"
    ENTITY_COMPLETED = "sync.entity.completed"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    SCHEMA_DRIFT = "schema_drift"
    CONFIGURATION = "configuration"
    DATABASE_CONNECTIVITY = "database_connectivity"
    DATA_INTEGRITY = "data_integrity"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


@dataclasses.dataclass(frozen=True, slots=True)
class SyncRunContext:
    """Shared context for a single sync run."""

    platform: str
    entities: int
    started_at: dt.datetime


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (httpx.TransportError, ErrorCategory.TRANSIENT),
    (ColumnarSchemaError, ErrorCategory.SCHEMA_DRIFT),
    (SyncConfigError, ErrorCategory.CONFIGURATION),
    (ColumnarConfigError, ErrorCategory.CONFIGURATION),
    (OperationalError, ErrorCategory.DATABASE_CONNECTIVITY),
    (InterfaceError, ErrorCategory.DATABASE_CONNECTIVITY),
    (IntegrityError, ErrorCategory.DATA_INTEGRITY),
    (SQLAlchemyError, ErrorCategory.DATABASE_ERROR),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alerting purposes."""
    if isinstance(exc, FetchError):
        if exc.status_code is None:
            return ErrorCategory.SCHEMA_DRIFT
        if exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD:
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


class SyncEventLogger:
    """Emit structured sync events via Python logging."""

    def log_run_started(self, context: SyncRunContext) -> None:
        """Log sync run start."""
        logger.info(
            "[%s] platform=%s entities=%d started_at=%s",
            SyncEventType.RUN_STARTED,
            context.platform,
            context.entities,
            context.started_at.isoformat(),
        )

    def log_entity_completed(self, outcome: EntityOutcome) -> None:
        """Log the final state of one entity's cursor chain."""
        logger.info(
            "[%s] entity=%s kind=%s stage=%s pages=%d inserted=%d",
            SyncEventType.ENTITY_COMPLETED,
            outcome.name,
            outcome.kind,
            outcome.stage,
            outcome.pages,
            outcome.inserted,
        )

    def log_run_completed(
        self,
        context: SyncRunContext,
        result: SyncRunResult,
        duration: dt.timedelta,
    ) -> None:
        """Log successful run completion with totals."""
        logger.info(
            "[%s] platform=%s duration_seconds=%.3f entities=%d "
            "inserted=%d failed_requests=%d",
            SyncEventType.RUN_COMPLETED,
            context.platform,
            duration.total_seconds(),
            len(result.entities),
            result.inserted,
            result.failed_requests,
        )

    def log_run_failed(
        self,
        context: SyncRunContext,
        error: BaseException,
        duration: dt.timedelta,
    ) -> None:
        """Log failed run with error categorization."""
        logger.error(
            "[%s] platform=%s duration_seconds=%.3f error_type=%s "
            "error_category=%s error_message=%s",
            SyncEventType.RUN_FAILED,
            context.platform,
            duration.total_seconds(),
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )
