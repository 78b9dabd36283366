"""Hourly GH Archive file names.

GH Archive publishes one file per UTC hour named ``YYYY-MM-DD-H.json.gz``,
with the hour *not* zero padded:

>>> import datetime as dt
>>> archive_file_name(dt.datetime(2015, 1, 1, 3, tzinfo=dt.UTC))
'2015-01-01-3.json.gz'
>>> parse_archive_hour("2015-01-01-15.json.gz").hour
15

"""

from __future__ import annotations

import datetime as dt
import re
import typing as typ

from .errors import ArchiveNameError

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

_NAME = re.compile(r"^(\d{4})-(\d{2})-(\d{2})-(\d{1,2})\.json(?:\.gz)?$")
_HOUR = dt.timedelta(hours=1)


def _utc_hour(value: dt.datetime) -> dt.datetime:
    """Floor ``value`` to the hour in UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.UTC)
    return value.astimezone(dt.UTC).replace(minute=0, second=0, microsecond=0)


def archive_file_name(hour: dt.datetime) -> str:
    """Return the archive file name covering ``hour``."""
    start = _utc_hour(hour)
    return f"{start:%Y-%m-%d}-{start.hour}.json.gz"


def archive_hours(start: dt.datetime, end: dt.datetime) -> list[dt.datetime]:
    """Return every hour from ``start`` up to, but excluding, ``end``."""
    current = _utc_hour(start)
    stop = _utc_hour(end)
    hours: list[dt.datetime] = []
    while current < stop:
        hours.append(current)
        current += _HOUR
    return hours


def parse_archive_hour(name: str) -> dt.datetime:
    """Return the UTC hour encoded in an archive file name.

    Raises
    ------
    ArchiveNameError
        If ``name`` is not an hourly archive file name.

    """
    match = _NAME.match(name)
    if match is None:
        raise ArchiveNameError.invalid(name)
    year, month, day, hour = (int(part) for part in match.groups())
    try:
        return dt.datetime(year, month, day, hour, tzinfo=dt.UTC)
    except ValueError as exc:
        raise ArchiveNameError.invalid(name) from exc


def is_archive_name(name: str) -> bool:
    """Return ``True`` when ``name`` looks like an hourly archive file."""
    return _NAME.match(name) is not None


def sort_archive_paths(paths: cabc.Iterable[Path]) -> list[Path]:
    """Order archive paths chronologically by the hour in their names."""
    return sorted(paths, key=lambda path: parse_archive_hour(path.name))
