"""Query and insert gateway for the columnar analytical store."""

from __future__ import annotations

import collections.abc as cabc
import logging
import typing as typ

from sqlalchemy import insert, text

from .errors import ColumnarSchemaError
from .storage import COLUMNAR_METADATA

if typ.TYPE_CHECKING:
    from sqlalchemy import MetaData, Row
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from sqlalchemy.sql import Executable

    type SessionFactory = async_sessionmaker[AsyncSession]

logger = logging.getLogger(__name__)

Record: typ.TypeAlias = cabc.Mapping[str, typ.Any]


class ColumnarGateway(typ.Protocol):
    """Interface consumed by the sync controller and archive importer."""

    async def query(
        self,
        statement: str | Executable,
        params: cabc.Mapping[str, typ.Any] | None = None,
    ) -> list[Row[typ.Any]]:
        """Execute a read statement and return every row."""
        ...

    async def insert(self, records: cabc.Sequence[Record], table: str) -> int:
        """Insert records into ``table`` and return the number written."""
        ...


class SqlAlchemyColumnarGateway:
    """Columnar gateway backed by a SQLAlchemy async session factory."""

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        metadata: MetaData = COLUMNAR_METADATA,
    ) -> None:
        """Bind the gateway to a session factory and table metadata."""
        self._session_factory = session_factory
        self._metadata = metadata

    async def query(
        self,
        statement: str | Executable,
        params: cabc.Mapping[str, typ.Any] | None = None,
    ) -> list[Row[typ.Any]]:
        """Execute ``statement``; plain strings are treated as textual SQL."""
        stmt = text(statement) if isinstance(statement, str) else statement
        async with self._session_factory() as session:
            result = await session.execute(stmt, dict(params or {}))
            return list(result.all())

    async def insert(self, records: cabc.Sequence[Record], table: str) -> int:
        """Insert ``records`` into ``table``.

        Empty input is a no-op. Every record is conformed to the full column
        set of the table so executemany sees a homogeneous parameter shape;
        keys that are not columns of the table are rejected.
        """
        if not records:
            return 0
        target = self._metadata.tables.get(table)
        if target is None:
            raise ColumnarSchemaError.unknown_table(table)

        columns = list(target.columns.keys())
        known = set(columns)
        rows: list[dict[str, typ.Any]] = []
        for record in records:
            unknown = set(record) - known
            if unknown:
                raise ColumnarSchemaError.unknown_columns(table, unknown)
            rows.append({name: record.get(name) for name in columns})

        async with self._session_factory() as session, session.begin():
            await session.execute(insert(target), rows)
        logger.debug("inserted %d rows into %s", len(rows), table)
        return len(rows)
