"""Pipelined materialization of archive files into the graph store.

Each file is parsed into a fresh :class:`GraphBatch` in a worker thread, so
the commit of the previous file keeps running on the event loop meanwhile.
Once parsing finishes the materializer waits for that previous commit and
hands the new batch to a new commit task, which owns it from then on. At most
one commit is in flight at a time.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import logging
import time
import typing as typ
from pathlib import Path

from tributary.archive.reader import ARCHIVE_READ_ERRORS, iter_archive_lines
from tributary.common.batching import chunked
from tributary.common.time import isoformat_utc

from .batch import GraphBatch
from .config import DEFAULT_CHUNK_SIZE
from .errors import GraphCommitError, GraphParseError
from .parser import ArchiveLineParser
from .schema import (
    EDGE_PHASES,
    EDGE_SPECS,
    PARALLEL_EDGES,
    TIMESTAMPED_NODES,
    EdgeType,
    NodeType,
    primary_key,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .batch import EdgeKey, ElementState, NodeKey
    from .gateway import GraphGateway

logger = logging.getLogger(__name__)

LineReader = typ.Callable[[Path], typ.Iterable[str]]

_LOG_LINE_LIMIT = 500


@dc.dataclass(frozen=True, slots=True)
class ParseSummary:
    """Outcome of parsing one file."""

    lines: int = 0
    errors: int = 0
    duration_s: float = 0.0
    # Set when the file could not be read to its end.
    read_error: str | None = None


@dc.dataclass(frozen=True, slots=True)
class CommitSummary:
    """Outcome of committing one file's batch."""

    path: Path
    parse: ParseSummary
    nodes_written: int = 0
    edges_written: int = 0
    failed_types: tuple[str, ...] = ()
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        """Return ``True`` when the file was read whole and every type committed."""
        return not self.failed_types and self.parse.read_error is None


@dc.dataclass(frozen=True, slots=True)
class _TypeOutcome:
    label: str
    written: int
    failed: bool = False


def node_rows(
    node_type: NodeType, states: cabc.Mapping[NodeKey, ElementState]
) -> list[dict[str, typ.Any]]:
    """Render accumulated nodes as upsert rows.

    Repository, org, actor and issue nodes are stamped with ``__updated_at``;
    actors whose login ends with ``[bot]`` are flagged ``is_bot``.
    """
    rows: list[dict[str, typ.Any]] = []
    for key, state in states.items():
        properties = dict(state.attrs)
        if node_type in TIMESTAMPED_NODES:
            properties["__updated_at"] = isoformat_utc(state.last_update)
        if node_type is NodeType.ACTOR and str(properties.get("login", "")).endswith(
            "[bot]"
        ):
            properties["is_bot"] = True
        rows.append({"key": key, "properties": properties})
    return rows


def edge_rows(
    states: cabc.Mapping[EdgeKey, ElementState],
) -> list[dict[str, typ.Any]]:
    """Render accumulated edges as upsert rows."""
    return [
        {
            "source": source,
            "target": target,
            "id": edge_id,
            "properties": dict(state.attrs),
        }
        for (source, target, edge_id), state in states.items()
    ]


class GraphMaterializer:
    """Parse archive files and commit them with pipeline depth one."""

    def __init__(
        self,
        gateway: GraphGateway,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        parser: ArchiveLineParser | None = None,
        read_lines: LineReader = iter_archive_lines,
    ) -> None:
        """Create a materializer committing through ``gateway``."""
        if chunk_size < 1:
            msg = f"chunk_size must be positive, got {chunk_size}"
            raise ValueError(msg)
        self._gateway = gateway
        self._chunk_size = chunk_size
        self._parser = parser or ArchiveLineParser()
        self._read_lines = read_lines
        self._commit_task: asyncio.Task[CommitSummary] | None = None

    async def materialize(self, path: str | Path) -> asyncio.Task[CommitSummary]:
        """Parse ``path`` and schedule its commit.

        Returns the commit task as soon as it is scheduled; awaiting it
        yields the :class:`CommitSummary`. A file that cannot be read to its
        end still commits the lines read so far, and its summary is not
        ``ok``.
        """
        file_path = Path(path)
        batch, parse = await asyncio.to_thread(self._parse_file, file_path)
        await self.wait_idle()
        self._commit_task = asyncio.create_task(
            self._commit(file_path, batch, parse),
            name=f"graph-commit:{file_path.name}",
        )
        return self._commit_task

    async def materialize_all(
        self, paths: cabc.Iterable[str | Path]
    ) -> list[CommitSummary]:
        """Materialize ``paths`` in order and wait for the final commit."""
        tasks = [await self.materialize(path) for path in paths]
        await self.wait_idle()
        return [task.result() for task in tasks]

    async def wait_idle(self) -> None:
        """Wait for the in-flight commit, if any, to finish."""
        task = self._commit_task
        if task is not None and not task.done():
            await asyncio.wait({task})

    def _parse_file(self, path: Path) -> tuple[GraphBatch, ParseSummary]:
        started = time.perf_counter()
        batch = GraphBatch()
        lines = errors = 0
        read_error: str | None = None
        try:
            for line in self._read_lines(path):
                lines += 1
                try:
                    self._parser.parse(line, batch)
                except GraphParseError as exc:
                    errors += 1
                    logger.warning(
                        "Skipping line %d of %s: %s; line=%s",
                        lines,
                        path.name,
                        exc,
                        line[:_LOG_LINE_LIMIT],
                    )
        except ARCHIVE_READ_ERRORS as exc:
            read_error = f"{type(exc).__name__}: {exc}"
            logger.exception("Stopped reading %s after %d lines", path.name, lines)
        summary = ParseSummary(
            lines=lines,
            errors=errors,
            duration_s=time.perf_counter() - started,
            read_error=read_error,
        )
        logger.info(
            "Parsed %s: lines=%d errors=%d nodes=%d edges=%d duration_seconds=%.3f",
            path.name,
            lines,
            errors,
            batch.node_count,
            batch.edge_count,
            summary.duration_s,
        )
        return batch, summary

    async def _commit(
        self, path: Path, batch: GraphBatch, parse: ParseSummary
    ) -> CommitSummary:
        started = time.perf_counter()
        node_outcomes = await asyncio.gather(
            *(self._commit_nodes(node_type, batch) for node_type in NodeType)
        )
        edge_outcomes: list[_TypeOutcome] = []
        for phase in EDGE_PHASES:
            edge_outcomes.extend(
                await asyncio.gather(
                    *(self._commit_edges(edge_type, batch) for edge_type in phase)
                )
            )

        summary = CommitSummary(
            path=path,
            parse=parse,
            nodes_written=sum(outcome.written for outcome in node_outcomes),
            edges_written=sum(outcome.written for outcome in edge_outcomes),
            failed_types=tuple(
                outcome.label
                for outcome in (*node_outcomes, *edge_outcomes)
                if outcome.failed
            ),
            duration_s=time.perf_counter() - started,
        )
        log = logger.info if summary.ok else logger.error
        log(
            "Committed %s: nodes=%d edges=%d failed_types=%s duration_seconds=%.3f",
            path.name,
            summary.nodes_written,
            summary.edges_written,
            ",".join(summary.failed_types) or "-",
            summary.duration_s,
        )
        return summary

    async def _commit_nodes(self, node_type: NodeType, batch: GraphBatch) -> _TypeOutcome:
        rows = node_rows(node_type, batch.nodes[node_type])
        written = 0
        try:
            for chunk in chunked(rows, self._chunk_size):
                written += await self._gateway.upsert_nodes(
                    str(node_type), primary_key(node_type), chunk
                )
        except GraphCommitError:
            logger.exception("Failed to commit %s nodes", node_type)
            return _TypeOutcome(str(node_type), written, failed=True)
        return _TypeOutcome(str(node_type), written)

    async def _commit_edges(self, edge_type: EdgeType, batch: GraphBatch) -> _TypeOutcome:
        spec = EDGE_SPECS[edge_type]
        rows = edge_rows(batch.edges[edge_type])
        written = 0
        try:
            for chunk in chunked(rows, self._chunk_size):
                written += await self._gateway.upsert_edges(
                    str(spec.source),
                    primary_key(spec.source),
                    str(spec.target),
                    primary_key(spec.target),
                    str(edge_type),
                    chunk,
                    parallel=edge_type in PARALLEL_EDGES,
                )
        except GraphCommitError:
            logger.exception("Failed to commit %s edges", edge_type)
            return _TypeOutcome(str(edge_type), written, failed=True)
        return _TypeOutcome(str(edge_type), written)
