"""Stream JSON lines out of GH Archive files."""

from __future__ import annotations

import gzip
import typing as typ
from pathlib import Path

if typ.TYPE_CHECKING:
    import collections.abc as cabc

# A truncated or corrupt download surfaces as one of these while iterating.
ARCHIVE_READ_ERRORS: tuple[type[Exception], ...] = (OSError, EOFError)


def iter_archive_lines(path: str | Path) -> cabc.Iterator[str]:
    """Yield the non-blank lines of a gzip (``.gz``) or plain JSON-lines file.

    Invalid UTF-8 is replaced rather than raised, so a bad byte sequence
    only spoils the line holding it.
    """
    file_path = Path(path)
    if file_path.suffix == ".gz":
        handle = gzip.open(file_path, "rt", encoding="utf-8", errors="replace")
    else:
        handle = file_path.open(encoding="utf-8", errors="replace")
    with handle:
        for raw in handle:
            line = raw.strip()
            if line:
                yield line
