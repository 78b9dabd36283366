"""Materialization of GH Archive events into the property graph."""

from __future__ import annotations

from .batch import ElementState, GraphBatch
from .config import GraphStoreConfig
from .errors import GraphCommitError, GraphParseError, GraphResetAborted
from .gateway import GraphGateway, Neo4jGraphGateway
from .materializer import CommitSummary, GraphMaterializer, ParseSummary
from .parser import ArchiveLineParser
from .schema import (
    DEDUP_EDGE_ID,
    EDGE_PHASES,
    EDGE_SPECS,
    NODE_PRIMARY_KEYS,
    PARALLEL_EDGES,
    EdgeType,
    NodeType,
)

__all__ = [
    "DEDUP_EDGE_ID",
    "EDGE_PHASES",
    "EDGE_SPECS",
    "NODE_PRIMARY_KEYS",
    "PARALLEL_EDGES",
    "ArchiveLineParser",
    "CommitSummary",
    "EdgeType",
    "ElementState",
    "GraphBatch",
    "GraphCommitError",
    "GraphGateway",
    "GraphMaterializer",
    "GraphParseError",
    "GraphResetAborted",
    "GraphStoreConfig",
    "Neo4jGraphGateway",
    "NodeType",
    "ParseSummary",
]
