"""Connection settings for the columnar analytical store."""

from __future__ import annotations

import dataclasses as dc
import os

from .errors import ColumnarConfigError


@dc.dataclass(frozen=True, slots=True)
class ColumnarConfig:
    """SQLAlchemy URL of the columnar store.

    Any async dialect works; production deployments point this at ClickHouse,
    tests use ``sqlite+aiosqlite``.
    """

    url: str

    @classmethod
    def from_env(cls) -> ColumnarConfig:
        """Build configuration from ``TRIBUTARY_COLUMNAR_URL``."""
        url = os.environ.get("TRIBUTARY_COLUMNAR_URL", "").strip()
        if not url:
            raise ColumnarConfigError.missing_url()
        return cls(url=url)
