"""Behavioural tests for incremental Gitee event sync."""

from __future__ import annotations

import asyncio
import dataclasses as dc
import datetime as dt
import typing as typ

import pytest
from pytest_bdd import given, parsers, scenario, then, when
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from tributary.columnar import (
    SqlAlchemyColumnarGateway,
    events_table,
    init_columnar_storage,
)
from tributary.fetch import FetchExecutor, FetchExecutorConfig, RetryPolicy
from tributary.normalize import GITEE, EventNormalizer
from tributary.sync import (
    EntityKind,
    GiteeSyncConfig,
    IncrementalSyncController,
    SyncRunResult,
    TrackedEntity,
)
from tests.helpers.gitee_events import API_BASE, FakeGiteeApi, feed

if typ.TYPE_CHECKING:
    from pathlib import Path

_FIRST_EVENT = dt.datetime(2024, 3, 1, tzinfo=dt.UTC)


def run_async[T](coro: typ.Coroutine[typ.Any, typ.Any, T]) -> T:
    """Run async coroutines in sync BDD step functions."""
    return asyncio.run(coro)


class SyncContext(typ.TypedDict, total=False):
    """Shared state used by incremental sync BDD steps."""

    columnar: SqlAlchemyColumnarGateway
    api: FakeGiteeApi
    entity: TrackedEntity
    result: SyncRunResult


@scenario("../incremental_sync.feature", "First sync imports the whole feed")
def test_first_sync_imports_whole_feed() -> None:
    """Behavioural test: an empty store reads the feed to its end."""


@scenario("../incremental_sync.feature", "Resumed sync backfills older history")
def test_resumed_sync_backfills_history() -> None:
    """Behavioural test: incomplete history is fetched below the boundary."""


@scenario(
    "../incremental_sync.feature", "Complete history stops at the stored boundary"
)
def test_complete_history_stops_at_boundary() -> None:
    """Behavioural test: complete history ends the chain early."""


@pytest.fixture
def sync_context(tmp_path: Path) -> typ.Iterator[SyncContext]:
    """Provision a fresh columnar store for each scenario."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'sync.db'}")
    run_async(init_columnar_storage(engine))
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    yield {"columnar": SqlAlchemyColumnarGateway(session_factory)}
    run_async(engine.dispose())


@given(
    parsers.parse('the Gitee org "{name}" publishes events {high:d} down to {low:d}')
)
def org_publishes_events(
    sync_context: SyncContext, name: str, high: int, low: int
) -> None:
    """Serve a newest-first event feed for the org."""
    sync_context["api"] = FakeGiteeApi(
        feeds={f"orgs/{name}": feed(*range(high, low - 1, -1))}
    )
    sync_context["entity"] = TrackedEntity(
        name, EntityKind.ORG, _FIRST_EVENT - dt.timedelta(days=30)
    )


@given(parsers.parse('the org "{name}" was created when its first event happened'))
def org_created_at_first_event(sync_context: SyncContext, name: str) -> None:
    """Move the org creation time up to the start of its feed."""
    entity = sync_context["entity"]
    assert entity.name == name
    sync_context["entity"] = dc.replace(entity, created_at=_FIRST_EVENT)


@given(parsers.parse("events {high:d} down to {low:d} are already stored"))
def events_already_stored(sync_context: SyncContext, high: int, low: int) -> None:
    """Store normalized events as an earlier run would have."""
    normalizer = EventNormalizer(GITEE)
    rows = []
    for raw in feed(*range(high, low - 1, -1)):
        event = normalizer.normalize(raw)
        assert event is not None
        rows.append(event.to_row())

    run_async(sync_context["columnar"].insert(rows, "events"))


@when(parsers.parse("the incremental sync runs with {limit:d} events per page"))
def run_incremental_sync(sync_context: SyncContext, limit: int) -> None:
    """Run the controller for the tracked org."""
    config = GiteeSyncConfig(
        token="secret",
        api_base=API_BASE,
        page_limit=limit,
        batch_size=4,
        retry=RetryPolicy(retries=0, delay_s=0.0),
    )

    async def _run() -> SyncRunResult:
        executor = FetchExecutor(
            FetchExecutorConfig(batch_size=config.batch_size),
            http_client=sync_context["api"].client(),
        )
        async with executor:
            controller = IncrementalSyncController(
                executor, sync_context["columnar"], config
            )
            return await controller.run([sync_context["entity"]])

    sync_context["result"] = run_async(_run())


@then(parsers.parse("the store holds events {low:d} to {high:d}"))
def store_holds_events(sync_context: SyncContext, low: int, high: int) -> None:
    """Assert exactly the expected event ids were stored."""
    rows = run_async(
        sync_context["columnar"].query(
            select(events_table.c.id).order_by(events_table.c.id)
        )
    )

    assert [row[0] for row in rows] == list(range(low, high + 1))


@then(parsers.parse('the org "{name}" finished in the "{stage}" stage'))
def org_finished_in_stage(sync_context: SyncContext, name: str, stage: str) -> None:
    """Assert the final stage of the org's request chain."""
    (outcome,) = sync_context["result"].entities

    assert outcome.name == name
    assert str(outcome.stage) == stage
