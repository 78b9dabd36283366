"""Map raw vendor events onto canonical event records.

:meth:`EventNormalizer.normalize` applies a fixed drop policy before any
payload is read: explicitly unsupported types are dropped silently, unknown
types and unknown actions are logged as anomalies (possible upstream schema
drift), and events without an actor or repository are discarded. Surviving
events are dispatched to a per-category extractor. Normalization never raises;
any failure inside an extractor is logged with the offending payload and the
event is dropped.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import typing as typ

import msgspec

from tributary.common.time import maybe_vendor_datetime, parse_vendor_datetime

from .models import (
    CanonicalEvent,
    CanonicalType,
    CommentFields,
    CommitCommentDetail,
    CommitCommentFields,
    EventDetail,
    ForkDetail,
    ForkFields,
    IssueCommentDetail,
    IssueDetail,
    IssueFields,
    LabelFields,
    PullFields,
    PullRequestDetail,
    PushCommit,
    PushDetail,
    PushFields,
    ReviewCommentDetail,
    ReviewCommentFields,
    UserRef,
)
from .payloads import (
    RawAccount,
    RawComment,
    RawEvent,
    RawForkee,
    RawIssue,
    RawPull,
    RawPush,
    decode_part,
)
from .profiles import PlatformProfile

logger = logging.getLogger(__name__)

Payload: typ.TypeAlias = cabc.Mapping[str, typ.Any]
DetailExtractor = typ.Callable[[PlatformProfile, Payload], EventDetail | None]
_extractors: dict[CanonicalType, DetailExtractor] = {}


def register(
    kind: CanonicalType,
) -> typ.Callable[[DetailExtractor], DetailExtractor]:
    """Register the payload extractor for a canonical event type."""

    def _inner(func: DetailExtractor) -> DetailExtractor:
        _extractors[kind] = func
        return func

    return _inner


def escape_nested(value: object) -> str:
    """Escape a nested-array string for single-quoted query text."""
    if value is None:
        return ""
    return str(value).replace("'", "\\'")


def decode_number(value: str | int, base: int) -> int:
    """Decode an issue or pull request number in the platform's radix."""
    return int(str(value).strip(), base)


@dc.dataclass(slots=True)
class NormalizerStats:
    """Outcome counters for one normalizer instance."""

    normalized: int = 0
    unsupported: int = 0
    unknown_type: int = 0
    noop_action: int = 0
    unknown_action: int = 0
    incomplete: int = 0
    malformed: int = 0

    @property
    def dropped(self) -> int:
        """Total number of events that did not produce a record."""
        return (
            self.unsupported
            + self.unknown_type
            + self.noop_action
            + self.unknown_action
            + self.incomplete
            + self.malformed
        )


class EventNormalizer:
    """Normalize raw events of a single platform."""

    def __init__(self, profile: PlatformProfile) -> None:
        """Bind the normalizer to a platform profile."""
        self._profile = profile
        self.stats = NormalizerStats()

    @property
    def profile(self) -> PlatformProfile:
        """Return the platform profile in use."""
        return self._profile

    def normalize(self, raw: Payload) -> CanonicalEvent | None:
        """Return the canonical record for ``raw`` or ``None`` to drop it."""
        vendor_type = raw.get("type")
        if vendor_type is not None and not isinstance(vendor_type, str):
            vendor_type = str(vendor_type)
        if vendor_type in self._profile.unsupported_types:
            self.stats.unsupported += 1
            return None
        canonical_type = self._profile.event_types.get(typ.cast("str", vendor_type))
        if canonical_type is None:
            self.stats.unknown_type += 1
            logger.warning(
                "Unknown %s event type %s (event id %s)",
                self._profile.platform,
                vendor_type,
                raw.get("id"),
            )
            return None

        try:
            return self._normalize(canonical_type, raw)
        except Exception:  # noqa: BLE001
            # Normalization must never abort a batch.
            self.stats.malformed += 1
            logger.exception(
                "Failed to normalize %s event: %r", self._profile.platform, raw
            )
            return None

    def _normalize(
        self, canonical_type: CanonicalType, raw: Payload
    ) -> CanonicalEvent | None:
        envelope = msgspec.convert(raw, type=RawEvent, strict=False)
        actor = envelope.actor
        repo = envelope.repo
        repo_name = (repo.full_name or repo.name) if repo is not None else None
        if (
            actor is None
            or actor.id is None
            or repo is None
            or repo.id is None
            or repo_name is None
        ):
            self.stats.incomplete += 1
            logger.debug("Dropping event %s without actor or repo", envelope.id)
            return None
        if envelope.payload is None:
            self.stats.incomplete += 1
            logger.debug("Dropping event %s without payload", envelope.id)
            return None

        payload = envelope.payload
        raw_action = payload.get("action")
        action: str | None = None
        if raw_action is not None:
            if raw_action not in self._profile.actions:
                self.stats.unknown_action += 1
                logger.warning(
                    "Unknown %s action %r on %s event %s",
                    self._profile.platform,
                    raw_action,
                    canonical_type,
                    envelope.id,
                )
                return None
            action = self._profile.actions[raw_action]
            if action is None:
                self.stats.noop_action += 1
                return None
        if canonical_type in self._profile.created_action_types:
            action = "created"

        detail: EventDetail | None = None
        extractor = _extractors.get(canonical_type)
        if extractor is not None:
            detail = extractor(self._profile, payload)
            if detail is None:
                self.stats.malformed += 1
                logger.info(
                    "Dropping %s event %s with incomplete payload",
                    canonical_type,
                    envelope.id,
                )
                return None

        org = envelope.org
        if org is not None and org.id is None:
            org = None
        self.stats.normalized += 1
        return CanonicalEvent(
            platform=self._profile.platform,
            id=envelope.id,
            type=canonical_type,
            actor_id=actor.id,
            actor_login=actor.login or "",
            repo_id=repo.id,
            repo_name=repo_name,
            created_at=parse_vendor_datetime(envelope.created_at),
            action=action,
            org_id=org.id if org is not None else None,
            org_login=org.login if org is not None else None,
            detail=detail,
        )


def _user(account: RawAccount | None) -> UserRef | None:
    if account is None or account.id is None:
        return None
    return UserRef(id=account.id, login=account.login or "")


def _optional_text(value: int | str | None) -> str | None:
    return None if value is None else str(value)


def _issue_fields(
    profile: PlatformProfile, source: object, *, number_base: int
) -> IssueFields | None:
    issue = decode_part(source, RawIssue)
    if issue is None or not issue.id or issue.number in (None, ""):
        return None
    number = typ.cast("str | int", issue.number)
    labels = tuple(
        LabelFields(
            name=escape_nested(label.name),
            color=escape_nested(label.color),
            default=label.default,
            description=escape_nested(label.description),
        )
        for label in issue.labels or ()
    )
    assignees = tuple(
        user for user in (_user(account) for account in issue.assignees or ()) if user
    )
    closed_at = getattr(issue, profile.closed_at_field)
    return IssueFields(
        id=issue.id,
        number=decode_number(number, number_base),
        title=issue.title,
        body=issue.body,
        labels=labels,
        author=_user(issue.user),
        author_association=issue.author_association,
        assignee=_user(issue.assignee),
        assignees=assignees,
        created_at=maybe_vendor_datetime(issue.created_at),
        updated_at=maybe_vendor_datetime(issue.updated_at),
        closed_at=maybe_vendor_datetime(closed_at),
        comments=issue.comments,
    )


def _comment_fields(source: object) -> CommentFields | None:
    comment = decode_part(source, RawComment)
    if comment is None or not comment.id:
        return None
    return CommentFields(
        id=comment.id,
        body=comment.body,
        author=_user(comment.user),
        author_association=comment.author_association,
        created_at=maybe_vendor_datetime(comment.created_at),
        updated_at=maybe_vendor_datetime(comment.updated_at),
    )


@register(CanonicalType.ISSUES)
def _issues(profile: PlatformProfile, payload: Payload) -> EventDetail | None:
    issue = _issue_fields(
        profile,
        profile.issue_source(payload),
        number_base=profile.issue_number_base,
    )
    return None if issue is None else IssueDetail(issue=issue)


@register(CanonicalType.ISSUE_COMMENT)
def _issue_comment(profile: PlatformProfile, payload: Payload) -> EventDetail | None:
    issue = _issue_fields(
        profile, payload.get("issue"), number_base=profile.issue_number_base
    )
    comment = _comment_fields(payload.get("comment"))
    if issue is None or comment is None:
        return None
    return IssueCommentDetail(issue=issue, comment=comment)


@register(CanonicalType.PULL_REQUEST)
def _pull_request(profile: PlatformProfile, payload: Payload) -> EventDetail | None:
    source = profile.pull_source(payload)
    issue = _issue_fields(profile, source, number_base=profile.pull_number_base)
    pull = decode_part(source, RawPull)
    if issue is None or pull is None:
        return None
    if profile.merged_from_action:
        merged = payload.get("action") == "merged"
    else:
        merged = bool(pull.merged)
    head_repo = pull.head.repo if pull.head is not None else None
    return PullRequestDetail(
        issue=issue,
        pull=PullFields(
            merged=merged,
            merged_at=maybe_vendor_datetime(pull.merged_at),
            merged_by=_user(pull.merged_by),
            merge_commit_sha=pull.merge_commit_sha,
            commits=pull.commits,
            additions=pull.additions,
            deletions=pull.deletions,
            changed_files=pull.changed_files,
            review_comments=pull.review_comments,
            base_ref=pull.base.ref if pull.base is not None else None,
            head_ref=pull.head.ref if pull.head is not None else None,
            head_repo_id=head_repo.id if head_repo is not None else None,
            head_repo_name=(
                (head_repo.full_name or head_repo.name)
                if head_repo is not None
                else None
            ),
        ),
    )


@register(CanonicalType.REVIEW_COMMENT)
def _review_comment(profile: PlatformProfile, payload: Payload) -> EventDetail | None:
    issue = _issue_fields(
        profile,
        payload.get("pull_request"),
        number_base=profile.review_comment_number_base,
    )
    comment = decode_part(payload.get("comment"), RawComment)
    if issue is None or comment is None or not comment.id:
        return None
    return ReviewCommentDetail(
        issue=issue,
        comment=ReviewCommentFields(
            id=comment.id,
            review_id=comment.pull_request_review_id,
            body=comment.body,
            path=comment.path,
            position=_optional_text(comment.position),
            author=_user(comment.user),
            author_association=comment.author_association,
            created_at=maybe_vendor_datetime(comment.created_at),
            updated_at=maybe_vendor_datetime(comment.updated_at),
        ),
    )


@register(CanonicalType.COMMIT_COMMENT)
def _commit_comment(profile: PlatformProfile, payload: Payload) -> EventDetail | None:
    del profile
    comment = decode_part(payload.get("comment"), RawComment)
    if comment is None or not comment.id:
        return None
    return CommitCommentDetail(
        comment=CommitCommentFields(
            id=comment.id,
            body=comment.body,
            sha=comment.commit_id,
            path=comment.path,
            position=_optional_text(comment.position),
            line=_optional_text(comment.line),
            author=_user(comment.user),
            author_association=comment.author_association,
            created_at=maybe_vendor_datetime(comment.created_at),
            updated_at=maybe_vendor_datetime(comment.updated_at),
        )
    )


@register(CanonicalType.PUSH)
def _push(profile: PlatformProfile, payload: Payload) -> EventDetail | None:
    push = decode_part(payload, RawPush)
    if push is None:
        return None
    commits = tuple(
        PushCommit(
            name=escape_nested(commit.author.name if commit.author else None),
            email=escape_nested(commit.author.email if commit.author else None),
            message=escape_nested(commit.message),
        )
        for commit in push.commits or ()
    )
    return PushDetail(
        push=PushFields(
            push_id=push.push_id,
            size=push.size,
            distinct_size=push.distinct_size,
            ref=push.ref,
            head=getattr(push, profile.push_head_field),
            commits=commits,
        )
    )


@register(CanonicalType.FORK)
def _fork(profile: PlatformProfile, payload: Payload) -> EventDetail | None:
    del profile
    forkee = decode_part(payload.get("forkee"), RawForkee)
    if forkee is None:
        return ForkDetail(fork=ForkFields())
    return ForkDetail(
        fork=ForkFields(
            forkee_id=forkee.id,
            forkee_full_name=forkee.full_name,
            owner=_user(forkee.owner),
        )
    )
