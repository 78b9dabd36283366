"""Per-platform normalization tables.

A :class:`PlatformProfile` captures everything that differs between the
vendors: which event types map to which canonical type, which types are
explicitly unsupported, how action strings translate, where the issue and
pull request objects live in the payload, and the radix of their numbers.
Gitee issue numbers are base-36 strings (``I4ABCD``). Its pull request events
carry decimal numbers, but the pull request object of a review comment event
is read like an issue, so that number is base-36 too. Every GitHub number is
decimal.
"""

from __future__ import annotations

import dataclasses as dc
import types
import typing as typ

from .models import CanonicalType, Platform

# An action mapped to ``None`` is a recognised no-op and the event is dropped.
type ActionTable = typ.Mapping[str, str | None]


@dc.dataclass(frozen=True, slots=True)
class PlatformProfile:
    """Vendor specific lookup tables consumed by the event normalizer."""

    platform: Platform
    event_types: typ.Mapping[str, CanonicalType]
    unsupported_types: frozenset[str | None]
    actions: ActionTable
    issue_number_base: int
    pull_number_base: int
    review_comment_number_base: int
    # Payload key holding the issue or pull request; ``None`` means the root.
    issue_key: str | None
    pull_key: str | None
    closed_at_field: str
    push_head_field: str
    merged_from_action: bool
    created_action_types: frozenset[CanonicalType] = frozenset()

    def issue_source(self, payload: typ.Mapping[str, typ.Any]) -> object:
        """Return the issue object of an ``IssuesEvent`` payload."""
        return payload if self.issue_key is None else payload.get(self.issue_key)

    def pull_source(self, payload: typ.Mapping[str, typ.Any]) -> object:
        """Return the pull request object of a ``PullRequestEvent`` payload."""
        return payload if self.pull_key is None else payload.get(self.pull_key)


_NOOP = None

GITEE = PlatformProfile(
    platform=Platform.GITEE,
    event_types=types.MappingProxyType(
        {
            "IssueEvent": CanonicalType.ISSUES,
            "IssueCommentEvent": CanonicalType.ISSUE_COMMENT,
            "PullRequestEvent": CanonicalType.PULL_REQUEST,
            "PullRequestCommentEvent": CanonicalType.REVIEW_COMMENT,
            "CommitCommentEvent": CanonicalType.COMMIT_COMMENT,
            "PushEvent": CanonicalType.PUSH,
            "StarEvent": CanonicalType.WATCH,
            "ForkEvent": CanonicalType.FORK,
        }
    ),
    unsupported_types=frozenset(
        {
            "CreateEvent",
            "DeleteEvent",
            "MemberEvent",
            "ProjectCommentEvent",
            "MilestoneEvent",
            None,
        }
    ),
    actions=types.MappingProxyType(
        {
            "opened": "opened",
            "open": "opened",
            "closed": "closed",
            "rejected": "closed",
            "merged": "closed",
            "starred": "started",
            "progressing": _NOOP,
        }
    ),
    issue_number_base=36,
    pull_number_base=10,
    review_comment_number_base=36,
    issue_key=None,
    pull_key=None,
    closed_at_field="finished_at",
    push_head_field="after",
    merged_from_action=True,
    created_action_types=frozenset(
        {CanonicalType.ISSUE_COMMENT, CanonicalType.REVIEW_COMMENT}
    ),
)

GITHUB = PlatformProfile(
    platform=Platform.GITHUB,
    event_types=types.MappingProxyType(
        {str(kind): kind for kind in CanonicalType}
    ),
    unsupported_types=frozenset(
        {
            "CreateEvent",
            "DeleteEvent",
            "MemberEvent",
            "GollumEvent",
            "PublicEvent",
            "ReleaseEvent",
            "PullRequestReviewEvent",
            None,
        }
    ),
    actions=types.MappingProxyType(
        {
            "opened": "opened",
            "reopened": "reopened",
            "closed": "closed",
            "created": "created",
            "started": "started",
            "edited": _NOOP,
            "deleted": _NOOP,
            "labeled": _NOOP,
            "unlabeled": _NOOP,
            "assigned": _NOOP,
            "unassigned": _NOOP,
            "review_requested": _NOOP,
            "review_request_removed": _NOOP,
            "synchronize": _NOOP,
            "ready_for_review": _NOOP,
            "converted_to_draft": _NOOP,
            "locked": _NOOP,
            "unlocked": _NOOP,
            "pinned": _NOOP,
            "unpinned": _NOOP,
            "transferred": _NOOP,
            "milestoned": _NOOP,
            "demilestoned": _NOOP,
        }
    ),
    issue_number_base=10,
    pull_number_base=10,
    review_comment_number_base=10,
    issue_key="issue",
    pull_key="pull_request",
    closed_at_field="closed_at",
    push_head_field="head",
    merged_from_action=False,
)

PROFILES: typ.Mapping[Platform, PlatformProfile] = types.MappingProxyType(
    {Platform.GITEE: GITEE, Platform.GITHUB: GITHUB}
)
