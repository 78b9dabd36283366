"""Operator command line for running Tributary jobs by hand."""

from __future__ import annotations

import argparse
import asyncio
import datetime as dt
import os
import typing as typ
from pathlib import Path

from tributary.archive import ArchiveConfig, ArchiveNameError
from tributary.columnar import ColumnarConfig, ColumnarConfigError
from tributary.graph import (
    NODE_PRIMARY_KEYS,
    PARALLEL_EDGES,
    GraphCommitError,
    GraphResetAborted,
    GraphStoreConfig,
    Neo4jGraphGateway,
)
from tributary.logging import configure_logging, get_logger, log_warning
from tributary.orchestration import (
    open_columnar,
    run_archive_download,
    run_archive_import,
    run_archive_materialization,
    run_gitee_sync,
)
from tributary.sync import GiteeSyncConfig, SyncConfigError

logger = get_logger(__name__)

RESET_PROMPT = "!!!Do you want to init the neo4j database?(Yes) "
RESET_ANSWER = "Yes"

_EXIT_FAILURE = 1
_EXIT_CONFIG = 2


def _parse_hour(raw: str) -> dt.datetime:
    parsed = dt.datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.UTC)
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tributary", description=__doc__)
    parser.add_argument(
        "--log-level",
        default=os.environ.get("TRIBUTARY_LOG_LEVEL", "INFO"),
        help="Log level (default: TRIBUTARY_LOG_LEVEL or INFO)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("sync-gitee", help="Run the incremental Gitee sync")

    download = commands.add_parser(
        "download-archive", help="Download hourly GH Archive files"
    )
    download.add_argument(
        "--start", type=_parse_hour, default=None, help="First hour (ISO-8601, UTC)"
    )
    download.add_argument(
        "--end", type=_parse_hour, default=None, help="End hour, exclusive"
    )
    download.add_argument(
        "--hours",
        type=int,
        default=24,
        help="Lookback from the current hour when --start is absent (default: 24)",
    )

    import_cmd = commands.add_parser(
        "import-archive", help="Import archive files into the columnar store"
    )
    import_cmd.add_argument(
        "files", nargs="*", type=Path, help="Files to import (default: all local)"
    )

    materialize = commands.add_parser(
        "materialize", help="Materialize archive files into the graph store"
    )
    materialize.add_argument(
        "files", nargs="*", type=Path, help="Files to load (default: all local)"
    )

    init_graph = commands.add_parser(
        "init-graph", help="Wipe the graph store and recreate its constraints"
    )
    init_graph.add_argument(
        "--force",
        action="store_true",
        help="Actually reset; asks for confirmation first",
    )
    return parser


async def _sync_gitee(_args: argparse.Namespace) -> int:
    config = GiteeSyncConfig.from_env()
    engine, columnar = await open_columnar(ColumnarConfig.from_env().url)
    try:
        result = await run_gitee_sync(columnar, config)
    finally:
        await engine.dispose()
    for outcome in result.entities:
        print(
            f"{outcome.kind} {outcome.name}: stage={outcome.stage} "
            f"pages={outcome.pages} inserted={outcome.inserted}"
        )
    print(f"inserted {result.inserted} events ({result.failed_requests} failed requests)")
    return 0


async def _download_archive(args: argparse.Namespace) -> int:
    config = ArchiveConfig.from_env()
    if args.start is None:
        summary = await run_archive_download(
            config, lookback=dt.timedelta(hours=args.hours)
        )
    else:
        end = args.end or dt.datetime.now(dt.UTC)
        lookback = end - args.start
        summary = await run_archive_download(config, lookback=lookback, now=end)
    print(
        f"downloaded={summary.downloaded} skipped={summary.skipped} "
        f"not_found={summary.not_found} timed_out={summary.timed_out} "
        f"failed={summary.failed}"
    )
    return 0 if summary.failed == 0 and summary.timed_out == 0 else _EXIT_FAILURE


async def _import_archive(args: argparse.Namespace) -> int:
    config = ArchiveConfig.from_env()
    engine, columnar = await open_columnar(ColumnarConfig.from_env().url)
    try:
        inserted = await run_archive_import(columnar, config, args.files or None)
    finally:
        await engine.dispose()
    print(f"inserted {inserted} events")
    return 0


async def _materialize(args: argparse.Namespace) -> int:
    archive_config = ArchiveConfig.from_env()
    graph_config = GraphStoreConfig.from_env()
    async with Neo4jGraphGateway.from_config(graph_config) as gateway:
        summaries = await run_archive_materialization(
            gateway,
            archive_config,
            args.files or None,
            chunk_size=graph_config.chunk_size,
        )
    for summary in summaries:
        failed = ",".join(summary.failed_types) or "-"
        read_error = summary.parse.read_error
        suffix = f" read_error={read_error}" if read_error else ""
        print(
            f"{summary.path.name}: nodes={summary.nodes_written} "
            f"edges={summary.edges_written} parse_errors={summary.parse.errors} "
            f"failed_types={failed}{suffix}"
        )
    return 0 if all(summary.ok for summary in summaries) else _EXIT_FAILURE


def confirm_reset(ask: typ.Callable[[str], str] = input) -> None:
    """Ask the operator to confirm a graph reset.

    Raises
    ------
    GraphResetAborted
        Unless the answer is exactly ``Yes``.

    """
    answer = ask(RESET_PROMPT)
    if answer != RESET_ANSWER:
        raise GraphResetAborted.declined(answer)


async def _init_graph(args: argparse.Namespace) -> int:
    if not args.force:
        print("init-graph only resets the graph store when --force is given")
        return 0
    confirm_reset()
    config = GraphStoreConfig.from_env()
    async with Neo4jGraphGateway.from_config(config) as gateway:
        await gateway.reset(
            {str(node_type): key for node_type, key in NODE_PRIMARY_KEYS.items()},
            edge_ids=sorted(str(edge_type) for edge_type in PARALLEL_EDGES),
        )
    print("graph store reset")
    return 0


_COMMANDS: dict[str, typ.Callable[[argparse.Namespace], typ.Awaitable[int]]] = {
    "sync-gitee": _sync_gitee,
    "download-archive": _download_archive,
    "import-archive": _import_archive,
    "materialize": _materialize,
    "init-graph": _init_graph,
}


def main(argv: list[str] | None = None) -> int:
    """Run one Tributary command.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 on success, 1 when the job failed, 2 on configuration
        errors.

    """
    args = _build_parser().parse_args(argv)
    level, invalid = configure_logging(args.log_level)
    if invalid:
        log_warning(logger, "Unknown log level %r; using %s", args.log_level, level)

    command = _COMMANDS[args.command]
    try:
        return asyncio.run(command(args))
    except GraphResetAborted as exc:
        print(f"aborted: {exc}")
        return _EXIT_FAILURE
    except (SyncConfigError, ColumnarConfigError, ArchiveNameError, ValueError) as exc:
        print(f"configuration error: {exc}")
        return _EXIT_CONFIG
    except GraphCommitError as exc:
        print(f"graph store error: {exc}")
        return _EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
