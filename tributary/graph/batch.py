"""Per-file accumulation of graph node and edge updates.

Every update carries the event time it was derived from. Attributes are
merged last-write-wins, with recency tracked per attribute: an update
overwrites an attribute unless that attribute was last written by a strictly
newer event. When two updates carry the same event time the one applied
later wins. Recency is not tracked per element, so an update older than the
element's newest event still adds the attributes that are not set yet.
Tracking recency per attribute makes the final attribute bag independent of
line order whenever event times differ.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from .schema import DEDUP_EDGE_ID, PARALLEL_EDGES, EdgeType, NodeType

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

type NodeKey = int | str
type EdgeKey = tuple[NodeKey, NodeKey, int]


@dc.dataclass(slots=True)
class ElementState:
    """Attribute bag of one node or edge plus per-attribute recency."""

    last_update: dt.datetime
    attrs: dict[str, typ.Any] = dc.field(default_factory=dict)
    stamps: dict[str, dt.datetime] = dc.field(default_factory=dict)

    def merge(self, attrs: cabc.Mapping[str, typ.Any], at: dt.datetime) -> None:
        """Apply ``attrs`` observed at ``at``.

        Attributes never set before are added even when ``at`` is older than
        :attr:`last_update`.
        """
        for name, value in attrs.items():
            stamp = self.stamps.get(name)
            if stamp is None or stamp <= at:
                self.attrs[name] = value
                self.stamps[name] = at
        if self.last_update <= at:
            self.last_update = at


class GraphBatch:
    """Node and edge maps for one materialization run.

    A batch is filled by a single parser and then handed to exactly one
    commit; it is never shared between runs.
    """

    def __init__(self) -> None:
        """Create empty maps for every node and edge type."""
        self.nodes: dict[NodeType, dict[NodeKey, ElementState]] = {
            node_type: {} for node_type in NodeType
        }
        self.edges: dict[EdgeType, dict[EdgeKey, ElementState]] = {
            edge_type: {} for edge_type in EdgeType
        }

    def update_node(
        self,
        node_type: NodeType,
        key: NodeKey,
        attrs: cabc.Mapping[str, typ.Any],
        at: dt.datetime,
    ) -> None:
        """Insert or merge the node ``(node_type, key)``."""
        state = self.nodes[node_type].get(key)
        if state is None:
            self.nodes[node_type][key] = ElementState(
                last_update=at,
                attrs=dict(attrs),
                stamps=dict.fromkeys(attrs, at),
            )
            return
        state.merge(attrs, at)

    def update_edge(  # noqa: PLR0913
        self,
        edge_type: EdgeType,
        source: NodeKey,
        target: NodeKey,
        attrs: cabc.Mapping[str, typ.Any],
        at: dt.datetime,
        *,
        edge_id: int = DEDUP_EDGE_ID,
    ) -> None:
        """Insert or merge an edge.

        Parallel edge types need the originating event id as ``edge_id``;
        every other type is deduplicated per endpoint pair.
        """
        parallel = edge_type in PARALLEL_EDGES
        if parallel == (edge_id == DEDUP_EDGE_ID):
            msg = f"edge {edge_type} does not accept edge id {edge_id}"
            raise ValueError(msg)
        key = (source, target, edge_id)
        state = self.edges[edge_type].get(key)
        if state is None:
            self.edges[edge_type][key] = ElementState(
                last_update=at,
                attrs=dict(attrs),
                stamps=dict.fromkeys(attrs, at),
            )
            return
        state.merge(attrs, at)

    @property
    def node_count(self) -> int:
        """Number of distinct nodes across all types."""
        return sum(len(states) for states in self.nodes.values())

    @property
    def edge_count(self) -> int:
        """Number of distinct edges across all types."""
        return sum(len(states) for states in self.edges.values())
