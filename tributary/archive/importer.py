"""Import GH Archive files into the columnar ``events`` table."""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

import msgspec

from tributary.normalize import GITHUB, EventNormalizer

from .reader import ARCHIVE_READ_ERRORS, iter_archive_lines

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from tributary.columnar import ColumnarGateway

logger = logging.getLogger(__name__)

EVENTS_TABLE = "events"

LineReader = typ.Callable[[Path], typ.Iterable[str]]


class ArchiveEventImporter:
    """Normalize archive lines with the GitHub profile and insert them."""

    def __init__(
        self,
        columnar: ColumnarGateway,
        *,
        batch_size: int = 5_000,
        read_lines: LineReader = iter_archive_lines,
    ) -> None:
        """Bind the importer to a columnar gateway."""
        if batch_size < 1:
            msg = f"batch_size must be positive, got {batch_size}"
            raise ValueError(msg)
        self._columnar = columnar
        self._batch_size = batch_size
        self._read_lines = read_lines
        self._normalizer = EventNormalizer(GITHUB)
        self._failed_files: list[Path] = []

    @property
    def normalizer(self) -> EventNormalizer:
        """Return the normalizer, whose stats accumulate across files."""
        return self._normalizer

    @property
    def failed_files(self) -> tuple[Path, ...]:
        """Return the files that could not be read to their end."""
        return tuple(self._failed_files)

    async def import_file(self, path: str | Path) -> int:
        """Insert the canonical rows of one archive file; return rows written.

        A file that cannot be read to its end keeps the rows read so far and
        is listed in :attr:`failed_files`.
        """
        file_path = Path(path)
        inserted = 0
        undecodable = 0
        rows: list[cabc.Mapping[str, typ.Any]] = []
        for line in self._readable_lines(file_path):
            try:
                raw = msgspec.json.decode(line)
            except msgspec.DecodeError:
                undecodable += 1
                logger.warning("Undecodable line in %s: %s", file_path.name, line[:500])
                continue
            if not isinstance(raw, dict):
                undecodable += 1
                continue
            event = self._normalizer.normalize(raw)
            if event is None:
                continue
            rows.append(event.to_row())
            if len(rows) >= self._batch_size:
                inserted += await self._columnar.insert(rows, EVENTS_TABLE)
                rows = []
        inserted += await self._columnar.insert(rows, EVENTS_TABLE)
        logger.info(
            "Imported %s: inserted=%d undecodable=%d",
            file_path.name,
            inserted,
            undecodable,
        )
        return inserted

    def _readable_lines(self, path: Path) -> cabc.Iterator[str]:
        """Yield lines until the file ends or stops being readable."""
        lines = iter(self._read_lines(path))
        while True:
            try:
                line = next(lines)
            except StopIteration:
                return
            except ARCHIVE_READ_ERRORS:
                self._failed_files.append(path)
                logger.exception("Stopped reading %s", path.name)
                return
            yield line

    async def import_files(self, paths: cabc.Iterable[str | Path]) -> int:
        """Import ``paths`` in order and return the total rows written."""
        total = 0
        for path in paths:
            total += await self.import_file(path)
        return total
