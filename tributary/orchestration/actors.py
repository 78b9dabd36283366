"""Dramatiq actors fired by the external scheduler.

Every actor runs its job through one process-wide :class:`Orchestrator`, so
a trigger that arrives while the previous run of the same job is still
going is dropped.

Usage
-----
Trigger an incremental Gitee sync:

>>> gitee_sync_job.send()

Download and import the last six archive hours:

>>> archive_import_job.send(lookback_hours=6)

"""

from __future__ import annotations

import asyncio
import datetime as dt
import os
import threading
import typing as typ
from pathlib import Path

import dramatiq
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tributary.archive import ArchiveConfig
from tributary.columnar import (
    ColumnarConfig,
    SqlAlchemyColumnarGateway,
    init_columnar_storage,
)
from tributary.graph import GraphStoreConfig, Neo4jGraphGateway
from tributary.logging import configure_logging, get_logger, log_info, log_warning
from tributary.sync import GiteeSyncConfig

from ._broker import ensure_broker_configured
from .jobs import (
    ARCHIVE_GRAPH_KEY,
    ARCHIVE_IMPORT_KEY,
    GITEE_SYNC_KEY,
    Orchestrator,
    run_archive_download,
    run_archive_import,
    run_archive_materialization,
    run_gitee_sync,
)
from .single_flight import SingleFlightRegistry

if typ.TYPE_CHECKING:
    import collections.abc as cabc

type SessionFactory = async_sessionmaker[AsyncSession]

ensure_broker_configured()

logger = get_logger(__name__)

REGISTRY = SingleFlightRegistry()
ORCHESTRATOR = Orchestrator(REGISTRY)

_ENGINE_CACHE: dict[str, AsyncEngine] = {}
_CACHE_LOCK = threading.Lock()
_logging_configured = False


def _get_or_create_engine(database_url: str) -> AsyncEngine:
    """Get or create an async engine for ``database_url``.

    Thread-safe: Dramatiq runs actors on several worker threads.
    """
    with _CACHE_LOCK:
        if database_url not in _ENGINE_CACHE:
            _ENGINE_CACHE[database_url] = create_async_engine(database_url)
        return _ENGINE_CACHE[database_url]


async def _columnar_gateway(database_url: str | None) -> SqlAlchemyColumnarGateway:
    url = database_url or ColumnarConfig.from_env().url
    engine = _get_or_create_engine(url)
    await init_columnar_storage(engine)
    session_factory: SessionFactory = async_sessionmaker(
        engine, expire_on_commit=False
    )
    return SqlAlchemyColumnarGateway(session_factory)


def _configure_logging_once() -> None:
    global _logging_configured
    with _CACHE_LOCK:
        if _logging_configured:
            return
        level, invalid = configure_logging(os.environ.get("TRIBUTARY_LOG_LEVEL", "INFO"))
        _logging_configured = True
    if invalid:
        log_warning(logger, "Unknown TRIBUTARY_LOG_LEVEL; using %s", level)


def _run_actor[T](main: cabc.Callable[[], cabc.Coroutine[typ.Any, typ.Any, T]]) -> T:
    """Run an actor body on a fresh event loop."""
    ensure_broker_configured()
    _configure_logging_once()
    return asyncio.run(main())


def _archive_paths(
    config: ArchiveConfig, file_names: cabc.Sequence[str] | None
) -> list[Path] | None:
    if file_names is None:
        return None
    return [config.path_for(Path(name).name) for name in file_names]


@dramatiq.actor
def gitee_sync_job(database_url: str | None = None) -> int | None:
    """Run the incremental Gitee sync.

    Returns the number of inserted events, or ``None`` when the trigger was
    dropped because a sync is already running.
    """

    async def main() -> int | None:
        columnar = await _columnar_gateway(database_url)
        config = GiteeSyncConfig.from_env()
        result = await ORCHESTRATOR.run_exclusive(
            GITEE_SYNC_KEY, lambda: run_gitee_sync(columnar, config)
        )
        return None if result is None else result.inserted

    return _run_actor(main)


@dramatiq.actor
def archive_import_job(
    lookback_hours: int = 24,
    database_url: str | None = None,
) -> int | None:
    """Download recent archive hours and import the new files.

    Returns the number of inserted events, or ``None`` when dropped.
    """

    async def main() -> int | None:
        columnar = await _columnar_gateway(database_url)
        config = ArchiveConfig.from_env()

        async def job() -> int:
            summary = await run_archive_download(
                config, lookback=dt.timedelta(hours=lookback_hours)
            )
            return await run_archive_import(columnar, config, summary.files)

        return await ORCHESTRATOR.run_exclusive(ARCHIVE_IMPORT_KEY, job)

    return _run_actor(main)


@dramatiq.actor
def archive_graph_job(file_names: list[str] | None = None) -> int | None:
    """Materialize archive files into the graph store.

    ``file_names`` default to every archive file present locally. Returns the
    number of committed files, or ``None`` when dropped.
    """

    async def main() -> int | None:
        archive_config = ArchiveConfig.from_env()
        graph_config = GraphStoreConfig.from_env()
        paths = _archive_paths(archive_config, file_names)
        async with Neo4jGraphGateway.from_config(graph_config) as gateway:
            summaries = await ORCHESTRATOR.run_exclusive(
                ARCHIVE_GRAPH_KEY,
                lambda: run_archive_materialization(
                    gateway,
                    archive_config,
                    paths,
                    chunk_size=graph_config.chunk_size,
                ),
            )
        if summaries is None:
            return None
        log_info(logger, "Materialized %d archive files", len(summaries))
        return len(summaries)

    return _run_actor(main)
