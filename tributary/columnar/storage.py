"""Table declarations for the columnar analytical store.

The ``events`` table holds canonical event rows for every platform. Nested
column groups (labels, assignees, push commits) are stored as parallel arrays
named ``group.field`` so each group mirrors its source list length, the same
shape a ClickHouse ``Nested`` column expects. ``gitee_entities`` records the
organizations and repositories tracked by the Gitee incremental sync.
"""

from __future__ import annotations

import datetime as dt
import typing as typ

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    SmallInteger,
    String,
    Table,
    Text,
)
from sqlalchemy.types import TypeDecorator

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine

from .errors import ColumnarSchemaError

COLUMNAR_METADATA = MetaData()


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Force bound datetime values to UTC with tzinfo."""
        if value is None:
            return None
        if value.tzinfo is None:
            raise ColumnarSchemaError.naive_datetime()
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Ensure result datetimes are UTC and timezone aware."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


def _id(name: str) -> Column[typ.Any]:
    return Column(name, BigInteger, nullable=True)


def _login(name: str) -> Column[typ.Any]:
    return Column(name, String(255), nullable=True)


def _when(name: str) -> Column[typ.Any]:
    return Column(name, UTCDateTime(), nullable=True)


def _array(name: str) -> Column[typ.Any]:
    return Column(name, JSON, nullable=True)


events_table = Table(
    "events",
    COLUMNAR_METADATA,
    # common
    Column("platform", String(16), nullable=False),
    Column("id", BigInteger, nullable=False),
    Column("type", String(64), nullable=False),
    Column("action", String(32), nullable=True),
    Column("actor_id", BigInteger, nullable=False),
    Column("actor_login", String(255), nullable=False),
    Column("repo_id", BigInteger, nullable=False),
    Column("repo_name", String(255), nullable=False),
    _id("org_id"),
    _login("org_login"),
    Column("created_at", UTCDateTime(), nullable=False),
    # issues and pull requests
    _id("issue_id"),
    _id("issue_number"),
    Column("issue_title", Text, nullable=True),
    Column("body", Text, nullable=True),
    _array("issue_labels.name"),
    _array("issue_labels.color"),
    _array("issue_labels.default"),
    _array("issue_labels.description"),
    _id("issue_author_id"),
    _login("issue_author_login"),
    Column("issue_author_association", String(32), nullable=True),
    _id("issue_assignee_id"),
    _login("issue_assignee_login"),
    _array("issue_assignees.login"),
    _array("issue_assignees.id"),
    _when("issue_created_at"),
    _when("issue_updated_at"),
    _when("issue_closed_at"),
    Column("issue_comments", Integer, nullable=True),
    # issue comments
    _id("issue_comment_id"),
    _when("issue_comment_created_at"),
    _when("issue_comment_updated_at"),
    _id("issue_comment_author_id"),
    _login("issue_comment_author_login"),
    Column("issue_comment_author_association", String(32), nullable=True),
    # pull requests
    Column("pull_commits", Integer, nullable=True),
    Column("pull_additions", Integer, nullable=True),
    Column("pull_deletions", Integer, nullable=True),
    Column("pull_changed_files", Integer, nullable=True),
    Column("pull_merged", SmallInteger, nullable=True),
    Column("pull_merge_commit_sha", String(64), nullable=True),
    _when("pull_merged_at"),
    _id("pull_merged_by_id"),
    _login("pull_merged_by_login"),
    Column("pull_review_comments", Integer, nullable=True),
    Column("pull_base_ref", String(255), nullable=True),
    Column("pull_head_ref", String(255), nullable=True),
    _id("pull_head_repo_id"),
    _login("pull_head_repo_name"),
    # pull request review comments
    _id("pull_review_id"),
    _id("pull_review_comment_id"),
    Column("pull_review_comment_path", Text, nullable=True),
    Column("pull_review_comment_position", String(32), nullable=True),
    _id("pull_review_comment_author_id"),
    _login("pull_review_comment_author_login"),
    Column("pull_review_comment_author_association", String(32), nullable=True),
    _when("pull_review_comment_created_at"),
    _when("pull_review_comment_updated_at"),
    # pushes
    _id("push_id"),
    Column("push_size", Integer, nullable=True),
    Column("push_distinct_size", Integer, nullable=True),
    Column("push_ref", String(255), nullable=True),
    Column("push_head", String(64), nullable=True),
    _array("push_commits.name"),
    _array("push_commits.email"),
    _array("push_commits.message"),
    # forks
    _id("fork_forkee_id"),
    _login("fork_forkee_full_name"),
    _id("fork_forkee_owner_id"),
    _login("fork_forkee_owner_login"),
    # commit comments
    _id("commit_comment_id"),
    _id("commit_comment_author_id"),
    _login("commit_comment_author_login"),
    Column("commit_comment_author_association", String(32), nullable=True),
    Column("commit_comment_path", Text, nullable=True),
    Column("commit_comment_position", String(32), nullable=True),
    Column("commit_comment_line", String(32), nullable=True),
    Column("commit_comment_sha", String(64), nullable=True),
    _when("commit_comment_created_at"),
    _when("commit_comment_updated_at"),
    Index("ix_events_platform_org", "platform", "org_login"),
    Index("ix_events_platform_repo", "platform", "repo_name"),
)


gitee_entities_table = Table(
    "gitee_entities",
    COLUMNAR_METADATA,
    Column("name", String(255), primary_key=True),
    Column("type", String(8), primary_key=True),
    Column("id", BigInteger, nullable=False),
    Column("split", Boolean, nullable=False, default=False),
    Column("created_at", UTCDateTime(), nullable=True),
)


async def init_columnar_storage(engine: AsyncEngine) -> None:
    """Create all columnar tables if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(COLUMNAR_METADATA.create_all)
