"""Unit tests for the archive downloader."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
import random
from pathlib import Path

import httpx
import pytest

from tributary.archive import ArchiveConfig, ArchiveDownloader, archive_hours

BASE_URL = "https://archive.test/"
START = dt.datetime(2015, 1, 1, 0, tzinfo=dt.UTC)


def _hours(count: int) -> list[dt.datetime]:
    return archive_hours(START, START + dt.timedelta(hours=count))


def _downloader(
    tmp_path: Path, transport: httpx.MockTransport, *, timeout_s: float = 5.0
) -> ArchiveDownloader:
    config = ArchiveConfig(
        archive_dir=tmp_path / "archive",
        base_url=BASE_URL,
        workers=2,
        timeout_s=timeout_s,
    )
    client = httpx.AsyncClient(transport=transport)
    return ArchiveDownloader(config, http_client=client, rng=random.Random(7))


@pytest.mark.asyncio
async def test_downloads_missing_hours(tmp_path: Path) -> None:
    """Each hour is fetched from ``base_url`` plus the file name."""
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(200, content=request.url.path.encode())

    async with _downloader(tmp_path, httpx.MockTransport(handler)) as downloader:
        summary = await downloader.download(_hours(3))

    assert sorted(requested) == [
        "https://archive.test/2015-01-01-0.json.gz",
        "https://archive.test/2015-01-01-1.json.gz",
        "https://archive.test/2015-01-01-2.json.gz",
    ]
    assert summary.downloaded == 3
    assert summary.attempted == 3
    assert sorted(path.name for path in summary.files) == [
        "2015-01-01-0.json.gz",
        "2015-01-01-1.json.gz",
        "2015-01-01-2.json.gz",
    ]
    first = tmp_path / "archive" / "2015-01-01-0.json.gz"
    assert first.read_bytes() == b"/2015-01-01-0.json.gz"


@pytest.mark.asyncio
async def test_existing_files_are_skipped(tmp_path: Path) -> None:
    """Files already on disk are neither fetched nor reported as new."""
    archive_dir = tmp_path / "archive"
    archive_dir.mkdir()
    (archive_dir / "2015-01-01-0.json.gz").write_bytes(b"kept")
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        return httpx.Response(200, content=b"new")

    async with _downloader(tmp_path, httpx.MockTransport(handler)) as downloader:
        summary = await downloader.download(_hours(2))

    assert requested == ["/2015-01-01-1.json.gz"]
    assert summary.skipped == 1
    assert summary.downloaded == 1
    assert (archive_dir / "2015-01-01-0.json.gz").read_bytes() == b"kept"


@pytest.mark.asyncio
async def test_unpublished_hours_are_counted(tmp_path: Path) -> None:
    """A 404 leaves no file and is not an error."""
    transport = httpx.MockTransport(lambda request: httpx.Response(404))

    async with _downloader(tmp_path, transport) as downloader:
        summary = await downloader.download(_hours(1))

    assert summary.not_found == 1
    assert summary.files == []
    assert not (tmp_path / "archive" / "2015-01-01-0.json.gz").exists()


@pytest.mark.asyncio
async def test_server_errors_leave_no_partial_file(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Failed downloads are counted and the other hours continue."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("-1.json.gz"):
            return httpx.Response(500)
        return httpx.Response(200, content=b"ok")

    with caplog.at_level(logging.WARNING, logger="tributary.archive.downloader"):
        async with _downloader(tmp_path, httpx.MockTransport(handler)) as downloader:
            summary = await downloader.download(_hours(3))

    assert summary.failed == 1
    assert summary.downloaded == 2
    assert not (tmp_path / "archive" / "2015-01-01-1.json.gz").exists()
    messages = [record.getMessage() for record in caplog.records]
    assert any("2015-01-01-1.json.gz" in message for message in messages)


@pytest.mark.asyncio
async def test_timed_out_downloads_are_removed(tmp_path: Path) -> None:
    """A download exceeding its timeout is abandoned and deleted."""

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("-0.json.gz"):
            await asyncio.sleep(5)
        return httpx.Response(200, content=b"ok")

    transport = httpx.MockTransport(handler)
    async with _downloader(tmp_path, transport, timeout_s=0.05) as downloader:
        summary = await downloader.download(_hours(2))

    assert summary.timed_out == 1
    assert summary.downloaded == 1
    assert not (tmp_path / "archive" / "2015-01-01-0.json.gz").exists()


def test_archive_config_from_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """The base URL always ends with a slash."""
    monkeypatch.setenv("TRIBUTARY_ARCHIVE_DIR", str(tmp_path))
    monkeypatch.setenv("TRIBUTARY_ARCHIVE_BASE_URL", "https://mirror.test/gh")
    monkeypatch.setenv("TRIBUTARY_ARCHIVE_WORKERS", "8")
    monkeypatch.setenv("TRIBUTARY_ARCHIVE_TIMEOUT_S", "12.5")
    monkeypatch.setenv("TRIBUTARY_ARCHIVE_INSERT_BATCH_SIZE", "10")

    config = ArchiveConfig.from_env()

    assert config.archive_dir == tmp_path
    assert config.base_url == "https://mirror.test/gh/"
    assert config.workers == 8
    assert config.timeout_s == 12.5
    assert config.insert_batch_size == 10


def test_archive_files_lists_hourly_files_in_order(tmp_path: Path) -> None:
    """Only archive-shaped names are listed, oldest first."""
    for name in ("2015-01-01-10.json.gz", "2015-01-01-2.json.gz", "notes.txt"):
        (tmp_path / name).write_text("")

    files = ArchiveConfig(archive_dir=tmp_path).archive_files()

    assert [path.name for path in files] == [
        "2015-01-01-2.json.gz",
        "2015-01-01-10.json.gz",
    ]


def test_archive_files_of_missing_directory(tmp_path: Path) -> None:
    """A missing directory holds no files."""
    assert ArchiveConfig(archive_dir=tmp_path / "absent").archive_files() == []
