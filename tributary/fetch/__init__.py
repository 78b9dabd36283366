"""Batched HTTP fetch executor consumed by the sync controller."""

from __future__ import annotations

from .errors import FetchError
from .executor import (
    NO_RETRY,
    FetchExecutor,
    FetchExecutorConfig,
    FetchResponse,
    FetchStats,
    FetchTask,
    ResponseCallback,
    RetryPolicy,
)

__all__ = [
    "NO_RETRY",
    "FetchError",
    "FetchExecutor",
    "FetchExecutorConfig",
    "FetchResponse",
    "FetchStats",
    "FetchTask",
    "ResponseCallback",
    "RetryPolicy",
]
