"""Unit tests for the single-flight registry and orchestrator."""

from __future__ import annotations

import asyncio
import logging

import pytest

from tributary.orchestration import Orchestrator, SingleFlightRegistry


def test_key_can_only_be_acquired_once() -> None:
    """A held key refuses a second acquisition until released."""
    registry = SingleFlightRegistry()

    assert registry.try_acquire("sync")
    assert not registry.try_acquire("sync")
    assert registry.try_acquire("graph")
    assert registry.running == frozenset({"sync", "graph"})

    registry.release("sync")

    assert not registry.is_running("sync")
    assert registry.try_acquire("sync")


def test_releasing_an_unheld_key_warns(caplog: pytest.LogCaptureFixture) -> None:
    """Unbalanced releases are reported, not raised."""
    registry = SingleFlightRegistry()

    logger_name = "tributary.orchestration.single_flight"
    with caplog.at_level(logging.WARNING, logger=logger_name):
        registry.release("ghost")

    assert any("ghost" in record.getMessage() for record in caplog.records)


def test_hold_releases_only_what_it_acquired() -> None:
    """A nested hold on a busy key leaves the outer hold intact."""
    registry = SingleFlightRegistry()

    with registry.hold("sync") as outer:
        with registry.hold("sync") as inner:
            assert outer
            assert not inner
        assert registry.is_running("sync")

    assert not registry.is_running("sync")


def test_hold_releases_on_error() -> None:
    """Exceptions inside the block still free the key."""
    registry = SingleFlightRegistry()

    with pytest.raises(RuntimeError), registry.hold("sync"):
        raise RuntimeError

    assert registry.running == frozenset()


@pytest.mark.asyncio
async def test_run_exclusive_returns_the_job_result() -> None:
    """A free key runs the job and is released afterwards."""
    orchestrator = Orchestrator()

    async def job() -> int:
        assert orchestrator.registry.is_running("sync")
        return 42

    assert await orchestrator.run_exclusive("sync", job) == 42
    assert not orchestrator.registry.is_running("sync")


@pytest.mark.asyncio
async def test_overlapping_trigger_is_dropped(caplog: pytest.LogCaptureFixture) -> None:
    """A second trigger while the job runs is skipped, not queued."""
    orchestrator = Orchestrator()
    started = asyncio.Event()
    finish = asyncio.Event()
    runs: list[str] = []

    async def slow() -> str:
        runs.append("slow")
        started.set()
        await finish.wait()
        return "done"

    async def quick() -> str:
        runs.append("quick")
        return "quick"

    first = asyncio.create_task(orchestrator.run_exclusive("sync", slow))
    await started.wait()
    with caplog.at_level(logging.INFO, logger="tributary.orchestration.jobs"):
        second = await orchestrator.run_exclusive("sync", quick)
    finish.set()

    assert second is None
    assert await first == "done"
    assert runs == ["slow"]
    assert any("still running" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_shared_registry_spans_orchestrators() -> None:
    """Orchestrators sharing a registry see each other's keys."""
    registry = SingleFlightRegistry()
    registry.try_acquire("sync")

    async def job() -> int:
        return 1

    assert await Orchestrator(registry).run_exclusive("sync", job) is None
    assert await Orchestrator(registry).run_exclusive("graph", job) == 1


@pytest.mark.asyncio
async def test_failed_job_releases_the_key() -> None:
    """Errors propagate and the key is free for the next trigger."""
    orchestrator = Orchestrator()

    async def broken() -> None:
        msg = "boom"
        raise RuntimeError(msg)

    with pytest.raises(RuntimeError, match="boom"):
        await orchestrator.run_exclusive("sync", broken)

    assert not orchestrator.registry.is_running("sync")
