"""Configuration for GH Archive download and import."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path

from tributary.common.env import env_positive_float, env_positive_int, env_str

from .naming import is_archive_name, sort_archive_paths

DEFAULT_ARCHIVE_BASE_URL = "https://data.gharchive.org/"


@dc.dataclass(frozen=True, slots=True)
class ArchiveConfig:
    """Archive directory, download pool and import batching settings.

    Attributes
    ----------
    archive_dir
        Directory holding hourly ``.json.gz`` files.
    base_url
        URL prefix the file names are appended to when downloading.
    workers
        Concurrent downloads.
    timeout_s
        Per-file download timeout; timed out files are deleted.
    insert_batch_size
        Canonical rows per columnar insert when importing a file.

    """

    archive_dir: Path = Path("gharchive")
    base_url: str = DEFAULT_ARCHIVE_BASE_URL
    workers: int = 3
    timeout_s: float = 300.0
    insert_batch_size: int = 5_000

    @classmethod
    def from_env(cls) -> ArchiveConfig:
        """Create configuration from ``TRIBUTARY_ARCHIVE_*`` variables."""
        base_url = env_str("TRIBUTARY_ARCHIVE_BASE_URL", DEFAULT_ARCHIVE_BASE_URL)
        return cls(
            archive_dir=Path(env_str("TRIBUTARY_ARCHIVE_DIR", "gharchive")),
            base_url=base_url if base_url.endswith("/") else f"{base_url}/",
            workers=env_positive_int("TRIBUTARY_ARCHIVE_WORKERS", 3),
            timeout_s=env_positive_float("TRIBUTARY_ARCHIVE_TIMEOUT_S", 300.0),
            insert_batch_size=env_positive_int(
                "TRIBUTARY_ARCHIVE_INSERT_BATCH_SIZE", 5_000
            ),
        )

    def path_for(self, file_name: str) -> Path:
        """Return the local path of an archive file."""
        return self.archive_dir / file_name

    def archive_files(self) -> list[Path]:
        """Return the archive files present locally, oldest first."""
        if not self.archive_dir.is_dir():
            return []
        return sort_archive_paths(
            path for path in self.archive_dir.iterdir() if is_archive_name(path.name)
        )
