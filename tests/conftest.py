"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tributary.columnar import SqlAlchemyColumnarGateway, init_columnar_storage

if typ.TYPE_CHECKING:
    from pathlib import Path


async def _setup_sqlite(tmp_path: Path) -> AsyncEngine:
    """Create a SQLite engine and initialise the columnar tables."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tributary_test.db'}"
    )
    try:
        await init_columnar_storage(engine)
    except Exception:
        await engine.dispose()
        raise
    return engine


@pytest_asyncio.fixture
async def session_factory(
    tmp_path: Path,
) -> typ.AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a fresh async session factory backed by sqlite."""
    engine = await _setup_sqlite(tmp_path)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def columnar(
    session_factory: async_sessionmaker[AsyncSession],
) -> SqlAlchemyColumnarGateway:
    """Return a columnar gateway over the sqlite session factory."""
    return SqlAlchemyColumnarGateway(session_factory)
