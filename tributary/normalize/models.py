"""Canonical event records and their flattening to the fixed column set.

Every canonical record carries the common event fields plus, depending on its
category, exactly one ``detail`` variant. Details are tagged ``msgspec``
structs; :meth:`CanonicalEvent.to_row` enumerates the full column set so every
row has the same shape regardless of category.
"""

from __future__ import annotations

import datetime as dt
import enum
import typing as typ

import msgspec


class Platform(enum.StrEnum):
    """Source platforms, stored verbatim in the ``platform`` column."""

    GITEE = "Gitee"
    GITHUB = "GitHub"


class CanonicalType(enum.StrEnum):
    """Supported canonical event types."""

    ISSUES = "IssuesEvent"
    ISSUE_COMMENT = "IssueCommentEvent"
    PULL_REQUEST = "PullRequestEvent"
    REVIEW_COMMENT = "PullRequestReviewCommentEvent"
    COMMIT_COMMENT = "CommitCommentEvent"
    PUSH = "PushEvent"
    WATCH = "WatchEvent"
    FORK = "ForkEvent"


COMMON_COLUMNS: tuple[str, ...] = (
    "platform",
    "id",
    "type",
    "action",
    "actor_id",
    "actor_login",
    "repo_id",
    "repo_name",
    "org_id",
    "org_login",
    "created_at",
)

ARRAY_COLUMNS: frozenset[str] = frozenset(
    {
        "issue_labels.name",
        "issue_labels.color",
        "issue_labels.default",
        "issue_labels.description",
        "issue_assignees.login",
        "issue_assignees.id",
        "push_commits.name",
        "push_commits.email",
        "push_commits.message",
    }
)

OPTIONAL_COLUMNS: tuple[str, ...] = (
    "issue_id",
    "issue_number",
    "issue_title",
    "body",
    "issue_labels.name",
    "issue_labels.color",
    "issue_labels.default",
    "issue_labels.description",
    "issue_author_id",
    "issue_author_login",
    "issue_author_association",
    "issue_assignee_id",
    "issue_assignee_login",
    "issue_assignees.login",
    "issue_assignees.id",
    "issue_created_at",
    "issue_updated_at",
    "issue_closed_at",
    "issue_comments",
    "issue_comment_id",
    "issue_comment_created_at",
    "issue_comment_updated_at",
    "issue_comment_author_id",
    "issue_comment_author_login",
    "issue_comment_author_association",
    "pull_commits",
    "pull_additions",
    "pull_deletions",
    "pull_changed_files",
    "pull_merged",
    "pull_merge_commit_sha",
    "pull_merged_at",
    "pull_merged_by_id",
    "pull_merged_by_login",
    "pull_review_comments",
    "pull_base_ref",
    "pull_head_ref",
    "pull_head_repo_id",
    "pull_head_repo_name",
    "pull_review_id",
    "pull_review_comment_id",
    "pull_review_comment_path",
    "pull_review_comment_position",
    "pull_review_comment_author_id",
    "pull_review_comment_author_login",
    "pull_review_comment_author_association",
    "pull_review_comment_created_at",
    "pull_review_comment_updated_at",
    "push_id",
    "push_size",
    "push_distinct_size",
    "push_ref",
    "push_head",
    "push_commits.name",
    "push_commits.email",
    "push_commits.message",
    "fork_forkee_id",
    "fork_forkee_full_name",
    "fork_forkee_owner_id",
    "fork_forkee_owner_login",
    "commit_comment_id",
    "commit_comment_author_id",
    "commit_comment_author_login",
    "commit_comment_author_association",
    "commit_comment_path",
    "commit_comment_position",
    "commit_comment_line",
    "commit_comment_sha",
    "commit_comment_created_at",
    "commit_comment_updated_at",
)

EVENT_COLUMNS: tuple[str, ...] = COMMON_COLUMNS + OPTIONAL_COLUMNS

Columns: typ.TypeAlias = dict[str, typ.Any]


class UserRef(msgspec.Struct, frozen=True, kw_only=True):
    """An account reference embedded in another object."""

    id: int
    login: str


class LabelFields(msgspec.Struct, frozen=True, kw_only=True):
    """One entry of the ``issue_labels`` nested group."""

    name: str
    color: str = ""
    default: bool = False
    description: str = ""


class IssueFields(msgspec.Struct, frozen=True, kw_only=True):
    """Issue or pull request fields shared by several categories."""

    id: int
    number: int
    title: str | None = None
    body: str | None = None
    labels: tuple[LabelFields, ...] = ()
    author: UserRef | None = None
    author_association: str | None = None
    assignee: UserRef | None = None
    assignees: tuple[UserRef, ...] = ()
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    closed_at: dt.datetime | None = None
    comments: int | None = None

    def columns(self) -> Columns:
        """Flatten to ``issue_*`` columns; label and assignee groups stay aligned."""
        return {
            "issue_id": self.id,
            "issue_number": self.number,
            "issue_title": self.title,
            "body": self.body,
            "issue_labels.name": [label.name for label in self.labels],
            "issue_labels.color": [label.color for label in self.labels],
            "issue_labels.default": [label.default for label in self.labels],
            "issue_labels.description": [label.description for label in self.labels],
            "issue_author_id": self.author.id if self.author else None,
            "issue_author_login": self.author.login if self.author else None,
            "issue_author_association": self.author_association,
            "issue_assignee_id": self.assignee.id if self.assignee else None,
            "issue_assignee_login": self.assignee.login if self.assignee else None,
            "issue_assignees.login": [user.login for user in self.assignees],
            "issue_assignees.id": [user.id for user in self.assignees],
            "issue_created_at": self.created_at,
            "issue_updated_at": self.updated_at,
            "issue_closed_at": self.closed_at,
            "issue_comments": self.comments,
        }


class CommentFields(msgspec.Struct, frozen=True, kw_only=True):
    """Issue comment fields."""

    id: int
    body: str | None = None
    author: UserRef | None = None
    author_association: str | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None

    def columns(self) -> Columns:
        """Flatten to ``issue_comment_*`` columns; the comment body wins ``body``."""
        return {
            "body": self.body,
            "issue_comment_id": self.id,
            "issue_comment_created_at": self.created_at,
            "issue_comment_updated_at": self.updated_at,
            "issue_comment_author_id": self.author.id if self.author else None,
            "issue_comment_author_login": self.author.login if self.author else None,
            "issue_comment_author_association": self.author_association,
        }


class PullFields(msgspec.Struct, frozen=True, kw_only=True):
    """Pull request specific fields."""

    merged: bool = False
    merged_at: dt.datetime | None = None
    merged_by: UserRef | None = None
    merge_commit_sha: str | None = None
    commits: int | None = None
    additions: int | None = None
    deletions: int | None = None
    changed_files: int | None = None
    review_comments: int | None = None
    base_ref: str | None = None
    head_ref: str | None = None
    head_repo_id: int | None = None
    head_repo_name: str | None = None

    def columns(self) -> Columns:
        """Flatten to ``pull_*`` columns."""
        return {
            "pull_commits": self.commits,
            "pull_additions": self.additions,
            "pull_deletions": self.deletions,
            "pull_changed_files": self.changed_files,
            "pull_merged": 1 if self.merged else 0,
            "pull_merge_commit_sha": self.merge_commit_sha,
            "pull_merged_at": self.merged_at,
            "pull_merged_by_id": self.merged_by.id if self.merged_by else None,
            "pull_merged_by_login": self.merged_by.login if self.merged_by else None,
            "pull_review_comments": self.review_comments,
            "pull_base_ref": self.base_ref,
            "pull_head_ref": self.head_ref,
            "pull_head_repo_id": self.head_repo_id,
            "pull_head_repo_name": self.head_repo_name,
        }


class ReviewCommentFields(msgspec.Struct, frozen=True, kw_only=True):
    """Pull request review comment fields."""

    id: int
    review_id: int | None = None
    body: str | None = None
    path: str | None = None
    position: str | None = None
    author: UserRef | None = None
    author_association: str | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None

    def columns(self) -> Columns:
        """Flatten to ``pull_review_comment_*`` columns."""
        return {
            "body": self.body,
            "pull_review_id": self.review_id,
            "pull_review_comment_id": self.id,
            "pull_review_comment_path": self.path,
            "pull_review_comment_position": self.position,
            "pull_review_comment_author_id": self.author.id if self.author else None,
            "pull_review_comment_author_login": (
                self.author.login if self.author else None
            ),
            "pull_review_comment_author_association": self.author_association,
            "pull_review_comment_created_at": self.created_at,
            "pull_review_comment_updated_at": self.updated_at,
        }


class CommitCommentFields(msgspec.Struct, frozen=True, kw_only=True):
    """Commit comment fields."""

    id: int
    body: str | None = None
    sha: str | None = None
    path: str | None = None
    position: str | None = None
    line: str | None = None
    author: UserRef | None = None
    author_association: str | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None

    def columns(self) -> Columns:
        """Flatten to ``commit_comment_*`` columns."""
        return {
            "body": self.body,
            "commit_comment_id": self.id,
            "commit_comment_author_id": self.author.id if self.author else None,
            "commit_comment_author_login": self.author.login if self.author else None,
            "commit_comment_author_association": self.author_association,
            "commit_comment_path": self.path,
            "commit_comment_position": self.position,
            "commit_comment_line": self.line,
            "commit_comment_sha": self.sha,
            "commit_comment_created_at": self.created_at,
            "commit_comment_updated_at": self.updated_at,
        }


class PushCommit(msgspec.Struct, frozen=True, kw_only=True):
    """One entry of the ``push_commits`` nested group."""

    name: str = ""
    email: str = ""
    message: str = ""


class PushFields(msgspec.Struct, frozen=True, kw_only=True):
    """Push fields."""

    push_id: int | None = None
    size: int | None = None
    distinct_size: int | None = None
    ref: str | None = None
    head: str | None = None
    commits: tuple[PushCommit, ...] = ()

    def columns(self) -> Columns:
        """Flatten to ``push_*`` columns."""
        return {
            "push_id": self.push_id,
            "push_size": self.size,
            "push_distinct_size": self.distinct_size,
            "push_ref": self.ref,
            "push_head": self.head,
            "push_commits.name": [commit.name for commit in self.commits],
            "push_commits.email": [commit.email for commit in self.commits],
            "push_commits.message": [commit.message for commit in self.commits],
        }


class ForkFields(msgspec.Struct, frozen=True, kw_only=True):
    """Fork target fields."""

    forkee_id: int | None = None
    forkee_full_name: str | None = None
    owner: UserRef | None = None

    def columns(self) -> Columns:
        """Flatten to ``fork_*`` columns."""
        return {
            "fork_forkee_id": self.forkee_id,
            "fork_forkee_full_name": self.forkee_full_name,
            "fork_forkee_owner_id": self.owner.id if self.owner else None,
            "fork_forkee_owner_login": self.owner.login if self.owner else None,
        }


class IssueDetail(msgspec.Struct, frozen=True, kw_only=True, tag="issue"):
    """Detail for ``IssuesEvent``."""

    issue: IssueFields

    def columns(self) -> Columns:
        """Return the flattened optional columns."""
        return self.issue.columns()


class IssueCommentDetail(msgspec.Struct, frozen=True, kw_only=True, tag="issue_comment"):
    """Detail for ``IssueCommentEvent``."""

    issue: IssueFields
    comment: CommentFields

    def columns(self) -> Columns:
        """Return the flattened optional columns."""
        return self.issue.columns() | self.comment.columns()


class PullRequestDetail(msgspec.Struct, frozen=True, kw_only=True, tag="pull_request"):
    """Detail for ``PullRequestEvent``."""

    issue: IssueFields
    pull: PullFields

    def columns(self) -> Columns:
        """Return the flattened optional columns."""
        return self.issue.columns() | self.pull.columns()


class ReviewCommentDetail(
    msgspec.Struct, frozen=True, kw_only=True, tag="review_comment"
):
    """Detail for ``PullRequestReviewCommentEvent``."""

    issue: IssueFields
    comment: ReviewCommentFields

    def columns(self) -> Columns:
        """Return the flattened optional columns."""
        return self.issue.columns() | self.comment.columns()


class CommitCommentDetail(
    msgspec.Struct, frozen=True, kw_only=True, tag="commit_comment"
):
    """Detail for ``CommitCommentEvent``."""

    comment: CommitCommentFields

    def columns(self) -> Columns:
        """Return the flattened optional columns."""
        return self.comment.columns()


class PushDetail(msgspec.Struct, frozen=True, kw_only=True, tag="push"):
    """Detail for ``PushEvent``."""

    push: PushFields

    def columns(self) -> Columns:
        """Return the flattened optional columns."""
        return self.push.columns()


class ForkDetail(msgspec.Struct, frozen=True, kw_only=True, tag="fork"):
    """Detail for ``ForkEvent``."""

    fork: ForkFields

    def columns(self) -> Columns:
        """Return the flattened optional columns."""
        return self.fork.columns()


EventDetail: typ.TypeAlias = (
    IssueDetail
    | IssueCommentDetail
    | PullRequestDetail
    | ReviewCommentDetail
    | CommitCommentDetail
    | PushDetail
    | ForkDetail
)


def empty_row() -> Columns:
    """Return a row with every optional column at its empty value."""
    return {
        name: ([] if name in ARRAY_COLUMNS else None) for name in OPTIONAL_COLUMNS
    }


class CanonicalEvent(msgspec.Struct, frozen=True, kw_only=True):
    """Normalized, platform-independent event record."""

    platform: Platform
    id: int
    type: CanonicalType
    actor_id: int
    actor_login: str
    repo_id: int
    repo_name: str
    created_at: dt.datetime
    action: str | None = None
    org_id: int | None = None
    org_login: str | None = None
    detail: EventDetail | None = None

    def to_row(self) -> Columns:
        """Flatten into a record holding exactly :data:`EVENT_COLUMNS`."""
        row = empty_row()
        row.update(
            platform=str(self.platform),
            id=self.id,
            type=str(self.type),
            action=self.action,
            actor_id=self.actor_id,
            actor_login=self.actor_login,
            repo_id=self.repo_id,
            repo_name=self.repo_name,
            org_id=self.org_id,
            org_login=self.org_login,
            created_at=self.created_at,
        )
        if self.detail is not None:
            row.update(self.detail.columns())
        return row
