"""Download hourly GH Archive files with a bounded worker pool.

Files already present locally are skipped. The remaining hours are shuffled
so consecutive requests do not walk the CDN cache in order. Every download
runs under its own timeout; a timed out or failed download leaves no partial
file behind and the remaining downloads carry on.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import logging
import random
import typing as typ

import httpx

from .config import ArchiveConfig
from .naming import archive_file_name

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt
    from pathlib import Path

logger = logging.getLogger(__name__)

_HTTP_NOT_FOUND = 404


@dc.dataclass(slots=True)
class DownloadSummary:
    """Counters and new files of one :meth:`ArchiveDownloader.download` call."""

    downloaded: int = 0
    skipped: int = 0
    not_found: int = 0
    timed_out: int = 0
    failed: int = 0
    files: list[Path] = dc.field(default_factory=list)

    @property
    def attempted(self) -> int:
        """Number of files a download was attempted for."""
        return self.downloaded + self.not_found + self.timed_out + self.failed


class ArchiveDownloader:
    """Fetch missing archive files into the configured directory."""

    def __init__(
        self,
        config: ArchiveConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Create a downloader, owning an HTTP client unless one is supplied."""
        self._config = config or ArchiveConfig()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(follow_redirects=True)
        self._rng = rng or random.Random()  # noqa: S311

    async def __aenter__(self) -> ArchiveDownloader:
        """Return the downloader for ``async with`` usage."""
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Close owned resources on exit."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def download(self, hours: cabc.Iterable[dt.datetime]) -> DownloadSummary:
        """Download the files covering ``hours`` that are not present yet."""
        summary = DownloadSummary()
        self._config.archive_dir.mkdir(parents=True, exist_ok=True)

        pending: list[str] = []
        for hour in hours:
            name = archive_file_name(hour)
            if self._config.path_for(name).exists():
                summary.skipped += 1
            else:
                pending.append(name)
        self._rng.shuffle(pending)

        pool = asyncio.Semaphore(self._config.workers)
        await asyncio.gather(
            *(self._download_one(name, pool, summary) for name in pending)
        )
        logger.info(
            "Archive download finished: downloaded=%d skipped=%d not_found=%d "
            "timed_out=%d failed=%d",
            summary.downloaded,
            summary.skipped,
            summary.not_found,
            summary.timed_out,
            summary.failed,
        )
        return summary

    async def _download_one(
        self, name: str, pool: asyncio.Semaphore, summary: DownloadSummary
    ) -> None:
        url = f"{self._config.base_url}{name}"
        path = self._config.path_for(name)
        async with pool:
            try:
                async with asyncio.timeout(self._config.timeout_s):
                    found = await self._fetch(url, path)
            except TimeoutError:
                summary.timed_out += 1
                path.unlink(missing_ok=True)
                logger.warning("Timed out downloading %s", url)
                return
            except (httpx.HTTPError, OSError) as exc:
                summary.failed += 1
                path.unlink(missing_ok=True)
                logger.warning("Failed to download %s: %s", url, exc)
                return

        if found:
            summary.downloaded += 1
            summary.files.append(path)
            logger.info("Downloaded %s", path)
        else:
            summary.not_found += 1
            logger.info("Archive file not published: %s", url)

    async def _fetch(self, url: str, path: Path) -> bool:
        async with self._client.stream("GET", url) as response:
            if response.status_code == _HTTP_NOT_FOUND:
                return False
            response.raise_for_status()
            with path.open("wb") as handle:
                async for chunk in response.aiter_bytes():
                    handle.write(chunk)
        return True
