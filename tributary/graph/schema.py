"""Node and edge types of the activity graph."""

from __future__ import annotations

import enum
import typing as typ

# Edge id of deduplicated edge types: one edge per (from, to) pair.
DEDUP_EDGE_ID = -1


class NodeType(enum.StrEnum):
    """Node labels written to the graph store."""

    REPO = "github_repo"
    ORG = "github_org"
    ACTOR = "github_actor"
    ISSUE = "github_issue_change_request"
    LABEL = "issue_label"
    LANGUAGE = "language"
    LICENSE = "license"


class EdgeType(enum.StrEnum):
    """Relationship types written to the graph store."""

    HAS_REPO = "has_repo"
    HAS_LICENSE = "has_license"
    HAS_LANGUAGE = "has_language"
    HAS_FORK = "has_fork"
    STAR = "star"
    FORK = "fork"
    HAS_ISSUE = "has_issue_change_request"
    CHANGE_REQUEST_FROM = "change_request_from"
    HAS_LABEL = "has_issue_label"
    HAS_ASSIGNEE = "has_assignee"
    HAS_REQUESTED_REVIEWER = "has_requested_reviewer"
    ACTION = "action"


class EdgeSpec(typ.NamedTuple):
    """Endpoint labels of an edge type."""

    source: NodeType
    target: NodeType


NODE_PRIMARY_KEYS: dict[NodeType, str] = {
    NodeType.REPO: "id",
    NodeType.ORG: "id",
    NodeType.ACTOR: "id",
    NodeType.ISSUE: "id",
    NodeType.LABEL: "name",
    NodeType.LANGUAGE: "name",
    NodeType.LICENSE: "spdx_id",
}

EDGE_SPECS: dict[EdgeType, EdgeSpec] = {
    EdgeType.HAS_REPO: EdgeSpec(NodeType.ORG, NodeType.REPO),
    EdgeType.HAS_LICENSE: EdgeSpec(NodeType.REPO, NodeType.LICENSE),
    EdgeType.HAS_LANGUAGE: EdgeSpec(NodeType.REPO, NodeType.LANGUAGE),
    EdgeType.HAS_FORK: EdgeSpec(NodeType.REPO, NodeType.REPO),
    EdgeType.STAR: EdgeSpec(NodeType.ACTOR, NodeType.REPO),
    EdgeType.FORK: EdgeSpec(NodeType.ACTOR, NodeType.REPO),
    EdgeType.HAS_ISSUE: EdgeSpec(NodeType.REPO, NodeType.ISSUE),
    EdgeType.CHANGE_REQUEST_FROM: EdgeSpec(NodeType.ISSUE, NodeType.REPO),
    EdgeType.HAS_LABEL: EdgeSpec(NodeType.ISSUE, NodeType.LABEL),
    EdgeType.HAS_ASSIGNEE: EdgeSpec(NodeType.ISSUE, NodeType.ACTOR),
    EdgeType.HAS_REQUESTED_REVIEWER: EdgeSpec(NodeType.ISSUE, NodeType.ACTOR),
    EdgeType.ACTION: EdgeSpec(NodeType.ACTOR, NodeType.ISSUE),
}

# Edge types keyed by the originating event id; one edge per event.
PARALLEL_EDGES: frozenset[EdgeType] = frozenset({EdgeType.ACTION, EdgeType.FORK})

# Phase 2 edges hang off issue nodes announced by phase 1 edges.
EDGE_PHASES: tuple[tuple[EdgeType, ...], ...] = (
    (
        EdgeType.HAS_REPO,
        EdgeType.HAS_LICENSE,
        EdgeType.HAS_LANGUAGE,
        EdgeType.HAS_FORK,
        EdgeType.STAR,
        EdgeType.FORK,
        EdgeType.HAS_ISSUE,
        EdgeType.CHANGE_REQUEST_FROM,
    ),
    (
        EdgeType.HAS_LABEL,
        EdgeType.HAS_ASSIGNEE,
        EdgeType.HAS_REQUESTED_REVIEWER,
        EdgeType.ACTION,
    ),
)

# Nodes stamped with ``__updated_at`` when committed.
TIMESTAMPED_NODES: frozenset[NodeType] = frozenset(
    {NodeType.REPO, NodeType.ORG, NodeType.ACTOR, NodeType.ISSUE}
)


def primary_key(node_type: NodeType) -> str:
    """Return the primary key property of ``node_type``."""
    return NODE_PRIMARY_KEYS[node_type]
