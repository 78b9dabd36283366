"""Typed views over raw vendor event payloads.

Only the fields the normalizer reads are declared; everything else in the
vendor payload is ignored. Structs are decoded with ``strict=False`` so
numeric strings (Gitee sends some ids as strings) coerce to integers.
"""

from __future__ import annotations

import typing as typ

import msgspec

Payload: typ.TypeAlias = dict[str, typ.Any]


class RawAccount(msgspec.Struct, kw_only=True):
    """Actor, organization, or user reference."""

    id: int | None = None
    login: str | None = None


class RawRepo(msgspec.Struct, kw_only=True):
    """Repository reference; Gitee sends ``full_name``, GitHub sends ``name``."""

    id: int | None = None
    name: str | None = None
    full_name: str | None = None


class RawEvent(msgspec.Struct, kw_only=True):
    """Envelope shared by every vendor event."""

    id: int
    type: str | None = None
    actor: RawAccount | None = None
    repo: RawRepo | None = None
    org: RawAccount | None = None
    created_at: str
    payload: Payload | None = None


class RawLabel(msgspec.Struct, kw_only=True):
    """Issue label entry."""

    name: str | None = None
    color: str | None = None
    default: bool = False
    description: str | None = None


class RawIssue(msgspec.Struct, kw_only=True):
    """Issue or pull request object."""

    id: int | None = None
    number: str | int | None = None
    title: str | None = None
    body: str | None = None
    labels: list[RawLabel] | None = None
    user: RawAccount | None = None
    author_association: str | None = None
    assignee: RawAccount | None = None
    assignees: list[RawAccount] | None = None
    created_at: str | None = None
    updated_at: str | None = None
    closed_at: str | None = None
    finished_at: str | None = None
    comments: int | None = None


class RawRef(msgspec.Struct, kw_only=True):
    """Pull request ``base`` or ``head`` reference."""

    ref: str | None = None
    sha: str | None = None
    repo: RawRepo | None = None


class RawPull(msgspec.Struct, kw_only=True):
    """Pull request specific fields."""

    merged: bool | None = None
    merged_at: str | None = None
    merged_by: RawAccount | None = None
    merge_commit_sha: str | None = None
    commits: int | None = None
    additions: int | None = None
    deletions: int | None = None
    changed_files: int | None = None
    review_comments: int | None = None
    base: RawRef | None = None
    head: RawRef | None = None


class RawComment(msgspec.Struct, kw_only=True):
    """Issue, review, or commit comment."""

    id: int | None = None
    body: str | None = None
    user: RawAccount | None = None
    author_association: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    pull_request_review_id: int | None = None
    path: str | None = None
    position: int | str | None = None
    line: int | str | None = None
    commit_id: str | None = None


class RawCommitAuthor(msgspec.Struct, kw_only=True):
    """Author block of a pushed commit."""

    name: str | None = None
    email: str | None = None


class RawCommit(msgspec.Struct, kw_only=True):
    """Pushed commit summary."""

    author: RawCommitAuthor | None = None
    message: str | None = None


class RawPush(msgspec.Struct, kw_only=True):
    """Push payload."""

    push_id: int | None = None
    size: int | None = None
    distinct_size: int | None = None
    ref: str | None = None
    head: str | None = None
    after: str | None = None
    commits: list[RawCommit] | None = None


class RawForkee(msgspec.Struct, kw_only=True):
    """Repository created by a fork."""

    id: int | None = None
    full_name: str | None = None
    owner: RawAccount | None = None


def decode_part[StructT: msgspec.Struct](
    value: object, model: type[StructT]
) -> StructT | None:
    """Convert a payload fragment into ``model``; absent fragments give ``None``."""
    if value is None:
        return None
    return msgspec.convert(value, type=model, strict=False)
