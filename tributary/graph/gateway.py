"""Typed upsert client for the property-graph store."""

from __future__ import annotations

import collections.abc as cabc
import logging
import re
import typing as typ

from neo4j import AsyncGraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from .errors import GraphCommitError

if typ.TYPE_CHECKING:
    from neo4j import AsyncDriver

    from .config import GraphStoreConfig

logger = logging.getLogger(__name__)

Row: typ.TypeAlias = cabc.Mapping[str, typ.Any]

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class GraphGateway(typ.Protocol):
    """Interface consumed by the graph materializer.

    Node rows are ``{"key": ..., "properties": {...}}``. Edge rows are
    ``{"source": ..., "target": ..., "id": ..., "properties": {...}}``; the
    ``id`` is only used when ``parallel`` is set. Both operations merge by key
    and are idempotent.
    """

    async def upsert_nodes(
        self, node_type: str, primary_key: str, rows: cabc.Sequence[Row]
    ) -> int:
        """Merge nodes of one label and return the number of rows sent."""
        ...

    async def upsert_edges(  # noqa: PLR0913
        self,
        from_label: str,
        from_key: str,
        to_label: str,
        to_key: str,
        edge_label: str,
        rows: cabc.Sequence[Row],
        *,
        parallel: bool = False,
    ) -> int:
        """Merge edges of one type and return the number of rows sent."""
        ...

    async def reset(
        self,
        node_keys: cabc.Mapping[str, str],
        *,
        edge_ids: cabc.Iterable[str] = (),
    ) -> None:
        """Delete everything and recreate uniqueness constraints."""
        ...


def _identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise GraphCommitError.invalid_identifier(name)
    return name


def node_upsert_query(node_type: str, primary_key: str) -> str:
    """Build the Cypher merging a batch of ``node_type`` rows."""
    label = _identifier(node_type)
    key = _identifier(primary_key)
    return (
        "UNWIND $rows AS row\n"
        f"MERGE (n:{label} {{{key}: row.key}})\n"
        "SET n += row.properties"
    )


def edge_upsert_query(  # noqa: PLR0913
    from_label: str,
    from_key: str,
    to_label: str,
    to_key: str,
    edge_label: str,
    *,
    parallel: bool,
) -> str:
    """Build the Cypher merging a batch of edges between existing nodes."""
    source = f"{_identifier(from_label)} {{{_identifier(from_key)}: row.source}}"
    target = f"{_identifier(to_label)} {{{_identifier(to_key)}: row.target}}"
    edge = _identifier(edge_label)
    edge_key = " {id: row.id}" if parallel else ""
    return (
        "UNWIND $rows AS row\n"
        f"MATCH (a:{source}), (b:{target})\n"
        f"MERGE (a)-[e:{edge}{edge_key}]->(b)\n"
        "SET e += row.properties"
    )


class Neo4jGraphGateway:
    """Graph gateway backed by the official async Neo4j driver."""

    def __init__(
        self,
        driver: AsyncDriver,
        *,
        database: str | None = None,
        owns_driver: bool = False,
    ) -> None:
        """Wrap ``driver``; owned drivers are closed by :meth:`aclose`."""
        self._driver = driver
        self._database = database
        self._owns_driver = owns_driver

    @classmethod
    def from_config(cls, config: GraphStoreConfig) -> Neo4jGraphGateway:
        """Open a driver from configuration; the gateway owns it."""
        auth = (config.user, config.password) if config.password else None
        driver = AsyncGraphDatabase.driver(config.uri, auth=auth)
        return cls(driver, database=config.database, owns_driver=True)

    async def __aenter__(self) -> Neo4jGraphGateway:
        """Return the gateway for ``async with`` usage."""
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Close the owned driver on exit."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the driver when this gateway opened it."""
        if self._owns_driver:
            await self._driver.close()

    async def upsert_nodes(
        self, node_type: str, primary_key: str, rows: cabc.Sequence[Row]
    ) -> int:
        """Merge ``rows`` as ``node_type`` nodes keyed by ``primary_key``."""
        if not rows:
            return 0
        await self._write(node_type, node_upsert_query(node_type, primary_key), rows)
        return len(rows)

    async def upsert_edges(  # noqa: PLR0913
        self,
        from_label: str,
        from_key: str,
        to_label: str,
        to_key: str,
        edge_label: str,
        rows: cabc.Sequence[Row],
        *,
        parallel: bool = False,
    ) -> int:
        """Merge ``rows`` as ``edge_label`` relationships.

        Deduplicated edge types merge one relationship per endpoint pair;
        ``parallel`` types merge one relationship per row ``id``.
        """
        if not rows:
            return 0
        query = edge_upsert_query(
            from_label, from_key, to_label, to_key, edge_label, parallel=parallel
        )
        await self._write(edge_label, query, rows)
        return len(rows)

    async def reset(
        self,
        node_keys: cabc.Mapping[str, str],
        *,
        edge_ids: cabc.Iterable[str] = (),
    ) -> None:
        """Delete every node and recreate uniqueness constraints."""
        statements = ["MATCH (n) DETACH DELETE n"]
        statements.extend(
            f"CREATE CONSTRAINT {_identifier(label)}_unique IF NOT EXISTS "
            f"FOR (n:{label}) REQUIRE n.{_identifier(key)} IS UNIQUE"
            for label, key in node_keys.items()
        )
        statements.extend(
            f"CREATE CONSTRAINT {_identifier(label)}_id IF NOT EXISTS "
            f"FOR ()-[r:{label}]-() REQUIRE r.id IS UNIQUE"
            for label in edge_ids
        )
        for statement in statements:
            try:
                await self._driver.execute_query(statement, database_=self._database)
            except (Neo4jError, DriverError) as exc:
                raise GraphCommitError.write_failed("reset", exc) from exc
        logger.info("Graph store reset with %d constraints", len(statements) - 1)

    async def _write(self, label: str, query: str, rows: cabc.Sequence[Row]) -> None:
        try:
            await self._driver.execute_query(
                query,
                parameters_={"rows": [dict(row) for row in rows]},
                database_=self._database,
            )
        except (Neo4jError, DriverError) as exc:
            raise GraphCommitError.write_failed(label, exc) from exc
        logger.debug("Upserted %d %s rows", len(rows), label)
