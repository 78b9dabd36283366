"""Job composition for the scheduled runs.

Each job wires configuration into the components it needs and runs them to
completion. :class:`Orchestrator` adds the single-flight check: a trigger
arriving while the same job is still running is logged and dropped.
"""

from __future__ import annotations

import datetime as dt
import logging
import typing as typ

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from tributary.archive import (
    ArchiveConfig,
    ArchiveDownloader,
    ArchiveEventImporter,
    archive_hours,
)
from tributary.columnar import SqlAlchemyColumnarGateway, init_columnar_storage
from tributary.common.time import utcnow
from tributary.fetch import FetchExecutor, FetchExecutorConfig
from tributary.graph import GraphMaterializer
from tributary.graph.config import DEFAULT_CHUNK_SIZE
from tributary.sync import (
    GiteeEntityDiscovery,
    GiteeSyncConfig,
    IncrementalSyncController,
)

from .single_flight import SingleFlightRegistry

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    import httpx
    from sqlalchemy.ext.asyncio import AsyncEngine

    from tributary.archive import DownloadSummary
    from tributary.columnar import ColumnarGateway
    from tributary.graph import CommitSummary, GraphGateway
    from tributary.sync import SyncRunResult

logger = logging.getLogger(__name__)

GITEE_SYNC_KEY = "GiteeImporterTask"
ARCHIVE_IMPORT_KEY = "GitHubImporterTask"
ARCHIVE_GRAPH_KEY = "GitHubGraphTask"


class Orchestrator:
    """Run jobs under a single-flight registry."""

    def __init__(self, registry: SingleFlightRegistry | None = None) -> None:
        """Create an orchestrator, with a private registry unless one is shared."""
        self._registry = registry or SingleFlightRegistry()

    @property
    def registry(self) -> SingleFlightRegistry:
        """Return the registry guarding job keys."""
        return self._registry

    async def run_exclusive[T](
        self, key: str, job: cabc.Callable[[], cabc.Awaitable[T]]
    ) -> T | None:
        """Run ``job`` unless ``key`` is already running.

        Returns ``None`` without running anything when the key is held; the
        trigger is dropped, not deferred.
        """
        with self._registry.hold(key) as acquired:
            if not acquired:
                logger.info("Job %s is still running; skipping this trigger", key)
                return None
            logger.info("Job %s started", key)
            try:
                return await job()
            finally:
                logger.info("Job %s finished", key)


async def open_columnar(url: str) -> tuple[AsyncEngine, SqlAlchemyColumnarGateway]:
    """Create an engine for ``url``, ensure the tables exist, wrap a gateway."""
    engine = create_async_engine(url)
    await init_columnar_storage(engine)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    return engine, SqlAlchemyColumnarGateway(session_factory)


async def run_gitee_sync(
    columnar: ColumnarGateway,
    config: GiteeSyncConfig,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> SyncRunResult:
    """Discover tracked Gitee entities and sync their event feeds."""
    executor_config = FetchExecutorConfig(
        batch_size=config.batch_size, retry=config.retry
    )
    async with FetchExecutor(executor_config, http_client=http_client) as executor:
        discovery = GiteeEntityDiscovery(executor, columnar, config)
        entities = await discovery.discover()
        logger.info("Syncing %d Gitee entities", len(entities))
        controller = IncrementalSyncController(executor, columnar, config)
        return await controller.run(entities)


async def run_archive_download(
    config: ArchiveConfig,
    *,
    lookback: dt.timedelta,
    now: dt.datetime | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> DownloadSummary:
    """Download the completed archive hours inside ``lookback``."""
    end = (now or utcnow()).replace(minute=0, second=0, microsecond=0)
    hours = archive_hours(end - lookback, end)
    async with ArchiveDownloader(config, http_client=http_client) as downloader:
        return await downloader.download(hours)


async def run_archive_import(
    columnar: ColumnarGateway,
    config: ArchiveConfig,
    paths: cabc.Sequence[Path] | None = None,
) -> int:
    """Import archive files into the columnar store.

    ``paths`` defaults to every archive file present locally.
    """
    files = config.archive_files() if paths is None else list(paths)
    importer = ArchiveEventImporter(columnar, batch_size=config.insert_batch_size)
    inserted = await importer.import_files(files)
    logger.info("Imported %d archive files, %d rows", len(files), inserted)
    if importer.failed_files:
        logger.error(
            "Archive import incomplete for %s",
            ", ".join(path.name for path in importer.failed_files),
        )
    return inserted


async def run_archive_materialization(
    gateway: GraphGateway,
    config: ArchiveConfig,
    paths: cabc.Sequence[Path] | None = None,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> list[CommitSummary]:
    """Materialize archive files into the graph store, oldest first.

    ``paths`` defaults to every archive file present locally.
    """
    files = config.archive_files() if paths is None else list(paths)
    materializer = GraphMaterializer(gateway, chunk_size=chunk_size)
    summaries = await materializer.materialize_all(files)
    failed = [summary.path.name for summary in summaries if not summary.ok]
    if failed:
        logger.error("Graph commit incomplete for %s", ", ".join(failed))
    return summaries
