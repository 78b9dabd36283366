"""Unit tests for the per-entity cursor state machine."""

from __future__ import annotations

import datetime as dt

import pytest

from tributary.sync import (
    NEWEST,
    EntityKind,
    SyncCursor,
    SyncStage,
    TrackedEntity,
    Watermark,
    advance,
)
from tributary.sync.cursor import event_id

THRESHOLD = dt.timedelta(days=3)
CREATED = dt.datetime(2020, 1, 1, tzinfo=dt.UTC)


def _page(*ids: int) -> list[dict[str, int]]:
    return [{"id": ident} for ident in ids]


def _cursor(
    *,
    max_id: int = 0,
    min_id: int = 0,
    min_created_at: dt.datetime | None = None,
    created_at: dt.datetime | None = CREATED,
) -> SyncCursor:
    entity = TrackedEntity("acme", EntityKind.ORG, created_at)
    mark = Watermark(max_id, min_id, min_created_at) if max_id else None
    return SyncCursor.start(entity, mark)


def _ids(queued: list[dict[str, int]]) -> list[int]:
    return [raw["id"] for raw in queued]


def test_fresh_cursor_starts_from_newest() -> None:
    """Entities without a watermark start at the newest page in ``new``."""
    cursor = _cursor()

    assert cursor.prev_id == NEWEST
    assert cursor.stage is SyncStage.NEW
    assert cursor.wants_more


def test_zero_max_id_skips_boundary_detection() -> None:
    """Without stored events every page is queued."""
    cursor = _cursor()

    queued = advance(cursor, _page(10, 9, 8), completeness_threshold=THRESHOLD)

    assert _ids(queued) == [10, 9, 8]
    assert cursor.stage is SyncStage.NEW
    assert cursor.prev_id == 8


def test_boundary_queues_only_newer_events() -> None:
    """Events at or below ``max_id`` are not queued again."""
    cursor = _cursor(max_id=8, min_id=3)

    queued = advance(cursor, _page(10, 9, 8, 7), completeness_threshold=THRESHOLD)

    assert _ids(queued) == [10, 9]
    assert cursor.queued == 2


def test_boundary_with_incomplete_history_jumps_to_old() -> None:
    """History not reaching creation continues below ``min_id``."""
    cursor = _cursor(
        max_id=8, min_id=3, min_created_at=CREATED + dt.timedelta(days=30)
    )

    advance(cursor, _page(10, 9, 8, 7), completeness_threshold=THRESHOLD)

    assert cursor.stage is SyncStage.OLD
    assert cursor.prev_id == 3
    assert cursor.wants_more


def test_boundary_with_complete_history_breaks() -> None:
    """History within the threshold of creation ends the chain."""
    cursor = _cursor(
        max_id=8, min_id=3, min_created_at=CREATED + dt.timedelta(days=1)
    )

    advance(cursor, _page(10, 8), completeness_threshold=THRESHOLD)

    assert cursor.stage is SyncStage.BREAK
    assert not cursor.wants_more


def test_unknown_creation_time_never_counts_as_complete() -> None:
    """Missing entity creation time keeps backfilling."""
    cursor = _cursor(max_id=8, min_id=3, min_created_at=CREATED, created_at=None)

    advance(cursor, _page(8), completeness_threshold=THRESHOLD)

    assert cursor.stage is SyncStage.OLD


@pytest.mark.parametrize("min_id", [0, -5])
def test_boundary_without_min_id_breaks(min_id: int) -> None:
    """Nothing older is known to resume from."""
    cursor = SyncCursor.start(
        TrackedEntity("acme", EntityKind.ORG, CREATED),
        Watermark(max_id=8, min_id=min_id),
    )

    advance(cursor, _page(9, 8), completeness_threshold=THRESHOLD)

    assert cursor.stage is SyncStage.BREAK


def test_no_boundary_stays_new_and_pages_on() -> None:
    """A page entirely above ``max_id`` is queued and paging continues."""
    cursor = _cursor(max_id=8, min_id=3)

    queued = advance(cursor, _page(20, 19, 18), completeness_threshold=THRESHOLD)

    assert _ids(queued) == [20, 19, 18]
    assert cursor.stage is SyncStage.NEW
    assert cursor.prev_id == 18


def test_old_stage_queues_everything() -> None:
    """Below the stored range every event is new."""
    cursor = _cursor(max_id=8, min_id=3, min_created_at=CREATED + THRESHOLD * 2)
    advance(cursor, _page(9, 8), completeness_threshold=THRESHOLD)

    queued = advance(cursor, _page(2, 1), completeness_threshold=THRESHOLD)

    assert cursor.stage is SyncStage.OLD
    assert _ids(queued) == [2, 1]
    assert cursor.prev_id == 1


@pytest.mark.parametrize("stage", [SyncStage.NEW, SyncStage.OLD])
def test_empty_page_exhausts_chain(stage: SyncStage) -> None:
    """An empty page ends the chain in either live stage."""
    cursor = _cursor(max_id=8, min_id=3)
    cursor.stage = stage

    assert advance(cursor, [], completeness_threshold=THRESHOLD) == []
    assert cursor.exhausted
    assert not cursor.wants_more
    assert cursor.stage is stage


def test_events_without_ids_are_skipped() -> None:
    """Unusable ids are neither queued nor used as the next cursor."""
    cursor = _cursor()

    queued = advance(
        cursor,
        [{"id": "12"}, {"id": None}, {"id": True}, {"id": 10}, {}],
        completeness_threshold=THRESHOLD,
    )

    assert [event_id(raw) for raw in queued] == [12, 10]
    assert cursor.prev_id == 10


def test_pages_are_counted() -> None:
    """Each applied page increments the page counter."""
    cursor = _cursor()

    advance(cursor, _page(3, 2), completeness_threshold=THRESHOLD)
    advance(cursor, [], completeness_threshold=THRESHOLD)

    assert cursor.pages == 2
