"""Configuration for the graph store and materializer."""

from __future__ import annotations

import dataclasses as dc
import os

from tributary.common.env import env_positive_int, env_str

DEFAULT_NEO4J_URI = "bolt://localhost:7687"
DEFAULT_CHUNK_SIZE = 50_000


@dc.dataclass(frozen=True, slots=True)
class GraphStoreConfig:
    """Connection settings for Neo4j plus the commit chunk size.

    Attributes
    ----------
    uri
        Bolt or neo4j URI of the graph store.
    user, password
        Credentials; an empty password connects without authentication.
    database
        Target database, or ``None`` for the server default.
    chunk_size
        Rows per upsert request when committing a batch.

    """

    uri: str = DEFAULT_NEO4J_URI
    user: str = "neo4j"
    password: str = ""
    database: str | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE

    @classmethod
    def from_env(cls) -> GraphStoreConfig:
        """Create configuration from ``TRIBUTARY_NEO4J_*`` variables."""
        return cls(
            uri=env_str("TRIBUTARY_NEO4J_URI", DEFAULT_NEO4J_URI),
            user=env_str("TRIBUTARY_NEO4J_USER", "neo4j"),
            password=os.environ.get("TRIBUTARY_NEO4J_PASSWORD", ""),
            database=os.environ.get("TRIBUTARY_NEO4J_DATABASE") or None,
            chunk_size=env_positive_int("TRIBUTARY_GRAPH_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
        )
