"""Columnar analytical store: table declarations and gateway."""

from __future__ import annotations

from .config import ColumnarConfig
from .errors import ColumnarConfigError, ColumnarSchemaError
from .gateway import ColumnarGateway, SqlAlchemyColumnarGateway
from .storage import (
    COLUMNAR_METADATA,
    UTCDateTime,
    events_table,
    gitee_entities_table,
    init_columnar_storage,
)

__all__ = [
    "COLUMNAR_METADATA",
    "ColumnarConfig",
    "ColumnarConfigError",
    "ColumnarGateway",
    "ColumnarSchemaError",
    "SqlAlchemyColumnarGateway",
    "UTCDateTime",
    "events_table",
    "gitee_entities_table",
    "init_columnar_storage",
]
