"""GH Archive file naming, download, and columnar import."""

from __future__ import annotations

from .config import DEFAULT_ARCHIVE_BASE_URL, ArchiveConfig
from .downloader import ArchiveDownloader, DownloadSummary
from .errors import ArchiveNameError
from .importer import ArchiveEventImporter
from .naming import (
    archive_file_name,
    archive_hours,
    is_archive_name,
    parse_archive_hour,
    sort_archive_paths,
)
from .reader import ARCHIVE_READ_ERRORS, iter_archive_lines

__all__ = [
    "ARCHIVE_READ_ERRORS",
    "DEFAULT_ARCHIVE_BASE_URL",
    "ArchiveConfig",
    "ArchiveDownloader",
    "ArchiveEventImporter",
    "ArchiveNameError",
    "DownloadSummary",
    "archive_file_name",
    "archive_hours",
    "is_archive_name",
    "iter_archive_lines",
    "parse_archive_hour",
    "sort_archive_paths",
]
