"""Unit tests for graph batch merging."""

from __future__ import annotations

import datetime as dt
import itertools

import pytest

from tributary.graph import EdgeType, GraphBatch, NodeType

T0 = dt.datetime(2015, 1, 1, 3, tzinfo=dt.UTC)


def _at(minute: int) -> dt.datetime:
    return T0 + dt.timedelta(minutes=minute)


UPDATES = [
    ({"login": "old", "company": "acme"}, _at(1)),
    ({"login": "new"}, _at(5)),
    ({"company": "globex", "location": "moon"}, _at(3)),
]


def test_first_update_creates_state() -> None:
    """A new node keeps its attributes and event time."""
    batch = GraphBatch()

    batch.update_node(NodeType.ACTOR, 1, {"login": "octo"}, _at(2))

    state = batch.nodes[NodeType.ACTOR][1]
    assert state.attrs == {"login": "octo"}
    assert state.last_update == _at(2)
    assert batch.node_count == 1


@pytest.mark.parametrize("order", list(itertools.permutations(range(3))))
def test_merge_is_independent_of_update_order(order: tuple[int, ...]) -> None:
    """Each attribute keeps the value of its newest event."""
    batch = GraphBatch()

    for index in order:
        attrs, at = UPDATES[index]
        batch.update_node(NodeType.ACTOR, 1, attrs, at)

    state = batch.nodes[NodeType.ACTOR][1]
    assert state.attrs == {"login": "new", "company": "globex", "location": "moon"}
    assert state.last_update == _at(5)


def test_older_update_does_not_overwrite_newer_attribute() -> None:
    """Stale values are ignored per attribute, not per element."""
    batch = GraphBatch()
    batch.update_node(NodeType.REPO, 10, {"name": "acme/new"}, _at(9))

    batch.update_node(NodeType.REPO, 10, {"name": "acme/old", "language": "C"}, _at(1))

    state = batch.nodes[NodeType.REPO][10]
    assert state.attrs == {"name": "acme/new", "language": "C"}
    assert state.last_update == _at(9)


def test_older_update_fills_unset_edge_attributes() -> None:
    """An edge merged from an older event gains only the attributes it lacks."""
    batch = GraphBatch()
    batch.update_edge(EdgeType.STAR, 1, 10, {"created_at": "late"}, _at(9))

    batch.update_edge(
        EdgeType.STAR, 1, 10, {"created_at": "early", "source": "mirror"}, _at(2)
    )

    state = batch.edges[EdgeType.STAR][(1, 10, -1)]
    assert state.attrs == {"created_at": "late", "source": "mirror"}
    assert state.last_update == _at(9)


def test_equal_times_let_the_later_update_win() -> None:
    """Ties resolve to the update applied last."""
    batch = GraphBatch()
    batch.update_node(NodeType.REPO, 10, {"name": "first"}, _at(1))

    batch.update_node(NodeType.REPO, 10, {"name": "second"}, _at(1))

    assert batch.nodes[NodeType.REPO][10].attrs == {"name": "second"}


def test_dedup_edges_merge_per_endpoint_pair() -> None:
    """Repeated stars from the same actor collapse into one edge."""
    batch = GraphBatch()

    batch.update_edge(EdgeType.STAR, 1, 10, {"created_at": "a"}, _at(1))
    batch.update_edge(EdgeType.STAR, 1, 10, {"created_at": "b"}, _at(2))

    assert batch.edge_count == 1
    assert batch.edges[EdgeType.STAR][(1, 10, -1)].attrs == {"created_at": "b"}


def test_parallel_edges_are_kept_per_event() -> None:
    """Actions between the same endpoints stay distinct by event id."""
    batch = GraphBatch()

    batch.update_edge(EdgeType.ACTION, 1, "10_5", {"type": "open"}, _at(1), edge_id=100)
    batch.update_edge(
        EdgeType.ACTION, 1, "10_5", {"type": "comment"}, _at(2), edge_id=101
    )

    assert set(batch.edges[EdgeType.ACTION]) == {(1, "10_5", 100), (1, "10_5", 101)}


def test_parallel_edges_require_an_event_id() -> None:
    """Parallel types reject the dedup id."""
    with pytest.raises(ValueError, match="action"):
        GraphBatch().update_edge(EdgeType.ACTION, 1, "10_5", {}, _at(1))


def test_dedup_edges_reject_event_ids() -> None:
    """Dedup types reject explicit ids."""
    with pytest.raises(ValueError, match="star"):
        GraphBatch().update_edge(EdgeType.STAR, 1, 10, {}, _at(1), edge_id=5)
