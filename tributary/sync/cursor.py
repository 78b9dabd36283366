"""Per-entity sync cursor and the page state machine.

The upstream feed is reverse chronological: each page holds event ids in
descending order and the ``prev_id`` of the next request is the oldest id of
the current page. A cursor starts in ``new`` and walks back from the newest
event until it meets the newest event already stored (``max_id``). From there
it either stops (``break``) because history is known to be complete, or jumps
to the oldest stored event (``min_id``) and keeps walking back in ``old``
stage, inserting everything, until a page comes back empty.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import enum
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

# Pagination token meaning "start from the newest event".
NEWEST = -1


class SyncStage(enum.StrEnum):
    """Stages of a per-entity cursor chain."""

    NEW = "new"
    OLD = "old"
    BREAK = "break"


class EntityKind(enum.StrEnum):
    """Kinds of tracked Gitee entities."""

    ORG = "org"
    REPO = "repo"


@dc.dataclass(frozen=True, slots=True)
class TrackedEntity:
    """An organization or repository whose event feed is synced."""

    name: str
    kind: EntityKind
    created_at: dt.datetime | None = None


@dc.dataclass(frozen=True, slots=True)
class Watermark:
    """Newest and oldest stored event for one entity."""

    max_id: int
    min_id: int
    min_created_at: dt.datetime | None = None


@dc.dataclass(slots=True)
class SyncCursor:
    """Mutable pagination state for one entity during one run."""

    entity: TrackedEntity
    max_id: int = 0
    min_id: int = 0
    min_created_at: dt.datetime | None = None
    prev_id: int = NEWEST
    stage: SyncStage = SyncStage.NEW
    exhausted: bool = False
    pages: int = 0
    queued: int = 0
    inserted: int = 0

    @classmethod
    def start(cls, entity: TrackedEntity, mark: Watermark | None) -> SyncCursor:
        """Build the initial cursor for ``entity`` from its stored watermark."""
        if mark is None:
            return cls(entity=entity)
        return cls(
            entity=entity,
            max_id=mark.max_id,
            min_id=mark.min_id,
            min_created_at=mark.min_created_at,
        )

    @property
    def created_at(self) -> dt.datetime | None:
        """Creation time of the tracked entity, when known."""
        return self.entity.created_at

    @property
    def wants_more(self) -> bool:
        """Return ``True`` while another page should be requested."""
        return not self.exhausted and self.stage is not SyncStage.BREAK

    def history_complete(self, threshold: dt.timedelta) -> bool:
        """Return ``True`` when stored history reaches back to entity creation.

        The oldest stored event must lie within ``threshold`` of the entity's
        creation time. Unknown timestamps never count as complete.
        """
        if self.created_at is None or self.min_created_at is None:
            return False
        return self.min_created_at - self.created_at < threshold


def event_id(raw: cabc.Mapping[str, typ.Any]) -> int | None:
    """Return the integer id of a raw event, or ``None`` when unusable."""
    value = raw.get("id")
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def advance(
    cursor: SyncCursor,
    page: cabc.Sequence[cabc.Mapping[str, typ.Any]],
    *,
    completeness_threshold: dt.timedelta,
) -> list[cabc.Mapping[str, typ.Any]]:
    """Apply one page to ``cursor`` and return the events to insert.

    An empty page exhausts the cursor. Events without a usable id are skipped
    and neither queued nor used as the pagination cursor.
    """
    cursor.pages += 1
    scanned = [(event_id(raw), raw) for raw in page]
    identified = [(ident, raw) for ident, raw in scanned if ident is not None]
    if not identified:
        cursor.exhausted = True
        return []

    queued: list[cabc.Mapping[str, typ.Any]] = []
    if cursor.stage is SyncStage.NEW and cursor.max_id > 0:
        for ident, raw in identified:
            if ident <= cursor.max_id:
                _cross_boundary(cursor, completeness_threshold)
                cursor.queued += len(queued)
                return queued
            queued.append(raw)
    else:
        queued = [raw for _, raw in identified]

    cursor.prev_id = identified[-1][0]
    cursor.queued += len(queued)
    return queued


def _cross_boundary(cursor: SyncCursor, threshold: dt.timedelta) -> None:
    """Leave ``new`` stage after meeting the newest stored event."""
    if cursor.min_id <= 0 or cursor.history_complete(threshold):
        cursor.stage = SyncStage.BREAK
        return
    cursor.stage = SyncStage.OLD
    cursor.prev_id = cursor.min_id
