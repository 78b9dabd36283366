"""Archive tooling error types."""

from __future__ import annotations


class ArchiveNameError(ValueError):
    """Raised when a file name is not a GH Archive hourly file name."""

    @classmethod
    def invalid(cls, name: str) -> ArchiveNameError:
        """Return an error for names not shaped ``YYYY-MM-DD-H.json.gz``."""
        return cls(f"not an hourly archive file name: {name!r}")
