"""Watermark-driven incremental sync of Gitee event feeds."""

from __future__ import annotations

from .config import DEFAULT_GITEE_API, EntityTarget, GiteeSyncConfig
from .controller import EntityOutcome, IncrementalSyncController, SyncRunResult
from .cursor import (
    NEWEST,
    EntityKind,
    SyncCursor,
    SyncStage,
    TrackedEntity,
    Watermark,
    advance,
)
from .discovery import GiteeEntityDiscovery
from .errors import SyncConfigError
from .observability import ErrorCategory, SyncEventLogger, SyncEventType
from .watermarks import WatermarkStore

__all__ = [
    "DEFAULT_GITEE_API",
    "NEWEST",
    "EntityKind",
    "EntityOutcome",
    "EntityTarget",
    "ErrorCategory",
    "GiteeEntityDiscovery",
    "GiteeSyncConfig",
    "IncrementalSyncController",
    "SyncConfigError",
    "SyncCursor",
    "SyncEventLogger",
    "SyncEventType",
    "SyncRunResult",
    "SyncStage",
    "TrackedEntity",
    "Watermark",
    "WatermarkStore",
    "advance",
]
