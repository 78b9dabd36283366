"""Per-entity sync watermarks derived from stored events.

There is no side-car checkpoint: the newest and oldest event ids already in
the ``events`` table, grouped by organization and by repository, are the
resume position of the next run.
"""

from __future__ import annotations

import logging
import typing as typ

from sqlalchemy import func, select

from tributary.columnar.storage import events_table

from .cursor import EntityKind, Watermark

if typ.TYPE_CHECKING:
    from sqlalchemy import ColumnElement

    from tributary.columnar import ColumnarGateway
    from tributary.normalize import Platform

logger = logging.getLogger(__name__)

type WatermarkMap = dict[tuple[EntityKind, str], Watermark]


class WatermarkStore:
    """Load watermarks with one aggregate query per entity kind."""

    def __init__(self, columnar: ColumnarGateway) -> None:
        """Bind the store to a columnar gateway."""
        self._columnar = columnar

    async def load(self, platform: Platform) -> WatermarkMap:
        """Return watermarks for every org and repo with stored events."""
        marks: WatermarkMap = {}
        groups: tuple[tuple[EntityKind, ColumnElement[typ.Any]], ...] = (
            (EntityKind.ORG, events_table.c.org_login),
            (EntityKind.REPO, events_table.c.repo_name),
        )
        for kind, column in groups:
            statement = (
                select(
                    column,
                    func.max(events_table.c.id),
                    func.min(events_table.c.id),
                    func.min(events_table.c.created_at),
                )
                .where(events_table.c.platform == str(platform), column.is_not(None))
                .group_by(column)
            )
            for name, max_id, min_id, min_created_at in await self._columnar.query(
                statement
            ):
                marks[(kind, name)] = Watermark(
                    max_id=int(max_id),
                    min_id=int(min_id),
                    min_created_at=min_created_at,
                )
        logger.debug("Loaded %d %s watermarks", len(marks), platform)
        return marks
