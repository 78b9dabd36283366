"""Single-flight job orchestration and the scheduled Dramatiq actors.

The actors live in :mod:`tributary.orchestration.actors`; importing that
module configures a Dramatiq broker, so it is not imported here.
"""

from __future__ import annotations

from .jobs import (
    ARCHIVE_GRAPH_KEY,
    ARCHIVE_IMPORT_KEY,
    GITEE_SYNC_KEY,
    Orchestrator,
    open_columnar,
    run_archive_download,
    run_archive_import,
    run_archive_materialization,
    run_gitee_sync,
)
from .single_flight import SingleFlightRegistry

__all__ = [
    "ARCHIVE_GRAPH_KEY",
    "ARCHIVE_IMPORT_KEY",
    "GITEE_SYNC_KEY",
    "Orchestrator",
    "SingleFlightRegistry",
    "open_columnar",
    "run_archive_download",
    "run_archive_import",
    "run_archive_materialization",
    "run_gitee_sync",
]
