"""Unit tests for importing archive files into the columnar store."""

from __future__ import annotations

import collections.abc as cabc
import logging
import typing as typ
from pathlib import Path

import pytest
from sqlalchemy import select

from tributary.archive import ArchiveEventImporter
from tributary.columnar import SqlAlchemyColumnarGateway, events_table
from tests.helpers.archive_lines import (
    archive_event,
    comment,
    encode,
    issue,
    star,
    write_archive,
)


class _RecordingColumnar:
    """Delegate to the real gateway while recording insert sizes."""

    def __init__(self, inner: SqlAlchemyColumnarGateway) -> None:
        self.inner = inner
        self.batches: list[int] = []

    async def query(
        self, statement: typ.Any, params: typ.Any = None  # noqa: ANN401
    ) -> list[typ.Any]:
        return await self.inner.query(statement, params)

    async def insert(
        self, records: cabc.Sequence[cabc.Mapping[str, typ.Any]], table: str
    ) -> int:
        self.batches.append(len(records))
        return await self.inner.insert(records, table)


async def _stored(columnar: SqlAlchemyColumnarGateway) -> list[tuple[int, str]]:
    rows = await columnar.query(
        select(events_table.c.id, events_table.c.type).order_by(events_table.c.id)
    )
    return [(row[0], row[1]) for row in rows]


@pytest.mark.asyncio
async def test_import_file_normalizes_and_inserts(
    columnar: SqlAlchemyColumnarGateway, tmp_path: Path
) -> None:
    """Supported events become canonical GitHub rows."""
    path = write_archive(
        tmp_path / "2015-01-01-3.json.gz",
        [
            encode(star(1)),
            encode(issue(2, labels=("bug",))),
            encode(comment(3)),
            encode(archive_event(4, "GollumEvent")),
        ],
    )

    inserted = await ArchiveEventImporter(columnar).import_file(path)

    assert inserted == 3
    assert await _stored(columnar) == [
        (1, "WatchEvent"),
        (2, "IssuesEvent"),
        (3, "IssueCommentEvent"),
    ]
    rows = await columnar.query(select(events_table.c.platform).distinct())
    assert [row[0] for row in rows] == ["GitHub"]


@pytest.mark.asyncio
async def test_rows_are_inserted_in_batches(
    columnar: SqlAlchemyColumnarGateway,
) -> None:
    """Inserts are flushed every ``batch_size`` rows plus a final remainder."""
    recording = _RecordingColumnar(columnar)
    lines = [encode(star(index, actor_id=index)) for index in range(1, 6)]
    importer = ArchiveEventImporter(
        recording, batch_size=2, read_lines=lambda path: lines
    )

    inserted = await importer.import_file("2015-01-01-3.json.gz")

    assert inserted == 5
    assert recording.batches == [2, 2, 1]


@pytest.mark.asyncio
async def test_undecodable_lines_are_skipped(
    columnar: SqlAlchemyColumnarGateway, caplog: pytest.LogCaptureFixture
) -> None:
    """Broken lines are logged and the rest of the file is imported."""
    lines = ["{oops", encode(star(1)), "[1, 2]"]
    importer = ArchiveEventImporter(columnar, read_lines=lambda path: lines)

    with caplog.at_level(logging.WARNING, logger="tributary.archive.importer"):
        inserted = await importer.import_file("2015-01-01-3.json.gz")

    assert inserted == 1
    assert any("{oops" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_import_files_sums_rows_and_keeps_stats(
    columnar: SqlAlchemyColumnarGateway,
) -> None:
    """Totals span files and normalizer stats accumulate."""
    files = {
        "2015-01-01-3.json.gz": [encode(star(1))],
        "2015-01-01-4.json.gz": [
            encode(star(2, actor_id=2)),
            encode(archive_event(3, "GollumEvent")),
        ],
    }
    importer = ArchiveEventImporter(columnar, read_lines=lambda path: files[path.name])

    total = await importer.import_files(files)

    assert total == 2
    assert importer.normalizer.stats.normalized == 2
    assert importer.normalizer.stats.unsupported == 1


@pytest.mark.asyncio
async def test_unreadable_file_does_not_stop_the_import(
    columnar: SqlAlchemyColumnarGateway,
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """A corrupt archive is listed as failed and later files still import."""
    before = write_archive(tmp_path / "2015-01-01-3.json.gz", [encode(star(1))])
    corrupt = tmp_path / "2015-01-01-4.json.gz"
    corrupt.write_bytes(b"this is not gzip data")
    after = write_archive(
        tmp_path / "2015-01-01-5.json.gz", [encode(star(2, actor_id=2))]
    )
    importer = ArchiveEventImporter(columnar)

    with caplog.at_level(logging.ERROR, logger="tributary.archive.importer"):
        total = await importer.import_files([before, corrupt, after])

    assert total == 2
    assert importer.failed_files == (corrupt,)
    assert [event_id for event_id, _ in await _stored(columnar)] == [1, 2]
    assert any(corrupt.name in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_store_errors_are_not_mistaken_for_read_errors() -> None:
    """Insert failures propagate instead of marking the file unreadable."""

    class _OfflineColumnar:
        async def insert(self, records: object, table: str) -> int:
            del records, table
            msg = "store offline"
            raise ConnectionError(msg)

    offline: typ.Any = _OfflineColumnar()
    importer = ArchiveEventImporter(offline, read_lines=lambda path: [encode(star(1))])

    with pytest.raises(ConnectionError):
        await importer.import_file("2015-01-01-3.json.gz")

    assert importer.failed_files == ()


def test_batch_size_must_be_positive() -> None:
    """A zero batch size is a programming error."""
    with pytest.raises(ValueError, match="batch_size"):
        ArchiveEventImporter(typ.cast("typ.Any", object()), batch_size=0)
