"""Watermark-driven incremental sync of Gitee event feeds.

Every tracked entity gets its own cursor chain. The first request of each
chain is enqueued up front and the fetch executor runs all chains
concurrently; within a chain, the next page is only requested after the
current page has been normalized and its insert awaited, because the stage
decision for page N+1 depends on page N.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import typing as typ

from tributary.common.time import utcnow
from tributary.fetch import FetchResponse, FetchTask
from tributary.normalize import GITEE, EventNormalizer

from .cursor import EntityKind, SyncCursor, SyncStage, advance
from .observability import SyncEventLogger, SyncRunContext
from .watermarks import WatermarkStore

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from tributary.columnar import ColumnarGateway
    from tributary.fetch import FetchExecutor

    from .config import GiteeSyncConfig
    from .cursor import TrackedEntity

logger = logging.getLogger(__name__)

EVENTS_TABLE = "events"


@dc.dataclass(frozen=True, slots=True)
class EntityOutcome:
    """Final state of one entity's cursor chain."""

    name: str
    kind: EntityKind
    stage: SyncStage
    pages: int
    inserted: int

    @classmethod
    def from_cursor(cls, cursor: SyncCursor) -> EntityOutcome:
        """Snapshot a finished cursor."""
        return cls(
            name=cursor.entity.name,
            kind=cursor.entity.kind,
            stage=cursor.stage,
            pages=cursor.pages,
            inserted=cursor.inserted,
        )


@dc.dataclass(frozen=True, slots=True)
class SyncRunResult:
    """Summary of one controller run."""

    entities: tuple[EntityOutcome, ...] = ()
    failed_requests: int = 0

    @property
    def inserted(self) -> int:
        """Total rows inserted across all entities."""
        return sum(outcome.inserted for outcome in self.entities)


class IncrementalSyncController:
    """Drive per-entity cursor chains through the fetch executor."""

    def __init__(
        self,
        executor: FetchExecutor,
        columnar: ColumnarGateway,
        config: GiteeSyncConfig,
        *,
        watermarks: WatermarkStore | None = None,
        event_logger: SyncEventLogger | None = None,
    ) -> None:
        """Create a controller bound to an executor and a columnar gateway."""
        self._executor = executor
        self._columnar = columnar
        self._config = config
        self._watermarks = watermarks or WatermarkStore(columnar)
        self._event_logger = event_logger or SyncEventLogger()
        self._normalizer = EventNormalizer(GITEE)

    @property
    def normalizer(self) -> EventNormalizer:
        """Return the normalizer, whose stats accumulate across runs."""
        return self._normalizer

    async def run(self, entities: cabc.Sequence[TrackedEntity]) -> SyncRunResult:
        """Sync every entity until each chain breaks or runs dry."""
        started_at = utcnow()
        context = SyncRunContext(
            platform=str(GITEE.platform),
            entities=len(entities),
            started_at=started_at,
        )
        self._event_logger.log_run_started(context)
        try:
            result = await self._run_inner(entities)
        except BaseException as exc:
            self._event_logger.log_run_failed(context, exc, utcnow() - started_at)
            raise
        self._event_logger.log_run_completed(context, result, utcnow() - started_at)
        return result

    async def _run_inner(
        self, entities: cabc.Sequence[TrackedEntity]
    ) -> SyncRunResult:
        marks = await self._watermarks.load(GITEE.platform)
        cursors = [
            SyncCursor.start(entity, marks.get((entity.kind, entity.name)))
            for entity in entities
        ]
        for cursor in cursors:
            self._request_page(cursor)

        stats = await self._executor.drain(self._on_page, retry=self._config.retry)

        outcomes = tuple(EntityOutcome.from_cursor(cursor) for cursor in cursors)
        for outcome in outcomes:
            self._event_logger.log_entity_completed(outcome)
        return SyncRunResult(entities=outcomes, failed_requests=stats.failed)

    def _request_page(self, cursor: SyncCursor) -> None:
        entity = cursor.entity
        scope = "orgs" if entity.kind is EntityKind.ORG else "networks"
        params: dict[str, str | int] = {
            "limit": self._config.page_limit,
            "access_token": self._config.token,
        }
        if cursor.prev_id > 0:
            params["prev_id"] = cursor.prev_id
        self._executor.enqueue(
            FetchTask(
                method="GET",
                url=f"{self._config.api_base}/{scope}/{entity.name}/events",
                params=params,
                user_data=cursor,
            )
        )

    async def _on_page(self, response: FetchResponse) -> None:
        cursor = typ.cast("SyncCursor", response.task.user_data)
        if not response.ok:
            logger.error(
                "Event page request for %s %s failed with HTTP %d: %s",
                cursor.entity.kind,
                cursor.entity.name,
                response.status,
                response.body[:500],
            )
            return
        page = response.json()
        if not isinstance(page, list):
            logger.error(
                "Event page for %s %s is not a list (prev_id=%d): %s",
                cursor.entity.kind,
                cursor.entity.name,
                cursor.prev_id,
                response.body[:500],
            )
            return

        queued = advance(
            cursor,
            [raw for raw in page if isinstance(raw, dict)],
            completeness_threshold=self._config.completeness_threshold,
        )
        rows = [
            record.to_row()
            for record in map(self._normalizer.normalize, queued)
            if record is not None
        ]
        cursor.inserted += await self._columnar.insert(rows, EVENTS_TABLE)

        if cursor.wants_more:
            self._request_page(cursor)
        else:
            logger.debug(
                "Cursor chain for %s %s finished in stage %s",
                cursor.entity.kind,
                cursor.entity.name,
                cursor.stage,
            )
