"""Turn GH Archive event lines into graph node and edge updates.

Every event contributes its repository and actor nodes, plus the owning org
and a ``has_repo`` edge when present. Stars and forks link actors to
repositories; issue and pull request events build the
``github_issue_change_request`` node with its labels, assignees and
reviewers, and record what the actor did as a parallel ``action`` edge.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import logging
import typing as typ

import msgspec

from tributary.common.time import isoformat_utc, parse_vendor_datetime
from tributary.normalize.payloads import RawAccount, RawForkee, RawLabel, RawRepo

from .errors import GraphParseError
from .schema import EdgeType, NodeType

if typ.TYPE_CHECKING:
    from .batch import GraphBatch

logger = logging.getLogger(__name__)

_REPO_TIMESTAMPS = ("created_at", "updated_at", "pushed_at")


class ArchiveLicense(msgspec.Struct, kw_only=True):
    """License block of a repository."""

    spdx_id: str | None = None


class ArchiveRepo(msgspec.Struct, kw_only=True):
    """Repository object embedded in pull request refs."""

    id: int | None = None
    name: str | None = None
    full_name: str | None = None
    language: str | None = None
    license: ArchiveLicense | None = None
    description: str | None = None
    default_branch: str | None = None
    created_at: str | int | None = None
    updated_at: str | int | None = None
    pushed_at: str | int | None = None


class ArchiveRef(msgspec.Struct, kw_only=True):
    """Pull request ``base`` or ``head``."""

    ref: str | None = None
    sha: str | None = None
    repo: ArchiveRepo | None = None


class ArchiveIssue(msgspec.Struct, kw_only=True):
    """Issue or pull request; pull requests carry the size and ref fields."""

    id: int | None = None
    number: int | None = None
    title: str | None = None
    body: str | None = None
    labels: list[RawLabel] | None = None
    assignee: RawAccount | None = None
    assignees: list[RawAccount] | None = None
    pull_request: dict[str, typ.Any] | None = None
    requested_reviewers: list[RawAccount] | None = None
    merged: bool | None = None
    commits: int | None = None
    additions: int | None = None
    deletions: int | None = None
    changed_files: int | None = None
    base: ArchiveRef | None = None
    head: ArchiveRef | None = None


class ArchiveComment(msgspec.Struct, kw_only=True):
    """Issue comment or review comment."""

    id: int | None = None
    body: str | None = None
    path: str | None = None
    position: int | None = None
    line: int | None = None
    start_line: int | None = None


class ArchiveReview(msgspec.Struct, kw_only=True):
    """Pull request review."""

    id: int | None = None
    body: str | None = None
    state: str | None = None


class ArchivePayload(msgspec.Struct, kw_only=True):
    """Payload fields read by the graph parser."""

    action: str | None = None
    issue: ArchiveIssue | None = None
    pull_request: ArchiveIssue | None = None
    comment: ArchiveComment | None = None
    review: ArchiveReview | None = None
    forkee: RawForkee | None = None


class ArchiveEvent(msgspec.Struct, kw_only=True):
    """One GH Archive line."""

    id: int
    type: str | None = None
    actor: RawAccount | None = None
    repo: RawRepo | None = None
    org: RawAccount | None = None
    created_at: str
    payload: ArchivePayload | None = None


@dc.dataclass(frozen=True, slots=True)
class _Line:
    event_id: int
    actor_id: int
    repo_id: int
    payload: ArchivePayload
    at: dt.datetime
    batch: GraphBatch

    @property
    def created_at(self) -> str:
        return isoformat_utc(self.at)

    def action(self, issue_key: str, attrs: dict[str, typ.Any]) -> None:
        self.batch.update_edge(
            EdgeType.ACTION,
            self.actor_id,
            issue_key,
            {**attrs, "created_at": self.created_at},
            self.at,
            edge_id=self.event_id,
        )


_Handler = typ.Callable[["ArchiveLineParser", _Line], object]


class ArchiveLineParser:
    """Parse one archive line into merge operations on a :class:`GraphBatch`."""

    def __init__(self) -> None:
        """Create the parser with a reusable typed decoder."""
        self._decoder = msgspec.json.Decoder(ArchiveEvent, strict=False)

    def parse(self, line: str | bytes, batch: GraphBatch) -> None:
        """Apply the updates derived from ``line`` to ``batch``.

        Raises
        ------
        GraphParseError
            If the line does not decode or lacks the actor or repository.

        """
        try:
            event = self._decoder.decode(line)
        except msgspec.DecodeError as exc:
            raise GraphParseError.malformed(str(exc)) from exc

        actor = event.actor
        if actor is None or actor.id is None or not actor.login:
            raise GraphParseError.incomplete("actor")
        repo = event.repo
        repo_name = None if repo is None else repo.name or repo.full_name
        if repo is None or repo.id is None or not repo_name:
            raise GraphParseError.incomplete("repo")
        try:
            at = parse_vendor_datetime(event.created_at)
        except ValueError as exc:
            raise GraphParseError.malformed(str(exc)) from exc

        batch.update_node(NodeType.REPO, repo.id, {"name": repo_name}, at)
        batch.update_node(NodeType.ACTOR, actor.id, {"login": actor.login}, at)
        org = event.org
        if org is not None and org.id is not None and org.login:
            batch.update_node(NodeType.ORG, org.id, {"login": org.login}, at)
            batch.update_edge(EdgeType.HAS_REPO, org.id, repo.id, {}, at)

        handler = _HANDLERS.get(event.type or "")
        if handler is None:
            return
        line_ctx = _Line(
            event_id=event.id,
            actor_id=actor.id,
            repo_id=repo.id,
            payload=event.payload or ArchivePayload(),
            at=at,
            batch=batch,
        )
        try:
            handler(self, line_ctx)
        except (TypeError, ValueError) as exc:
            raise GraphParseError.malformed(f"{event.type} {event.id}: {exc}") from exc

    def _star(self, line: _Line) -> None:
        line.batch.update_edge(
            EdgeType.STAR,
            line.actor_id,
            line.repo_id,
            {"created_at": line.created_at},
            line.at,
        )

    def _fork(self, line: _Line) -> None:
        line.batch.update_edge(
            EdgeType.FORK,
            line.actor_id,
            line.repo_id,
            {"created_at": line.created_at},
            line.at,
            edge_id=line.event_id,
        )
        forkee = line.payload.forkee
        if forkee is None or forkee.id is None:
            return
        attrs = {"name": forkee.full_name} if forkee.full_name else {}
        line.batch.update_node(NodeType.REPO, forkee.id, attrs, line.at)
        line.batch.update_edge(
            EdgeType.HAS_FORK,
            line.repo_id,
            forkee.id,
            {"created_at": line.created_at},
            line.at,
        )

    def _issue(self, line: _Line) -> tuple[str, ArchiveIssue] | None:
        payload = line.payload
        issue = payload.issue or payload.pull_request
        if issue is None or issue.number is None:
            logger.debug("Issue missing from event payload at %s", line.created_at)
            return None
        is_pull = payload.issue is None or issue.pull_request is not None
        key = f"{line.repo_id}_{issue.number}"
        batch, at = line.batch, line.at

        batch.update_node(
            NodeType.ISSUE,
            key,
            {
                "type": "change_request" if is_pull else "issue",
                "number": issue.number,
                "title": issue.title or "",
                "body": issue.body or "",
            },
            at,
        )
        for label in issue.labels or ():
            if label.name:
                batch.update_node(NodeType.LABEL, label.name, {}, at)
                batch.update_edge(EdgeType.HAS_LABEL, key, label.name, {}, at)
        assignees = [issue.assignee, *(issue.assignees or ())]
        for assignee in assignees:
            if assignee is None or assignee.id is None:
                continue
            attrs = {"login": assignee.login} if assignee.login else {}
            batch.update_node(NodeType.ACTOR, assignee.id, attrs, at)
            batch.update_edge(EdgeType.HAS_ASSIGNEE, key, assignee.id, {}, at)
        batch.update_edge(EdgeType.HAS_ISSUE, line.repo_id, key, {}, at)
        return key, issue

    def _issues_event(self, line: _Line) -> None:
        found = self._issue(line)
        if found is None:
            return
        key, _ = found
        action = line.payload.action
        if action == "opened":
            line.action(key, {"type": "open"})
        elif action == "closed":
            line.action(key, {"type": "close"})

    def _issue_comment(self, line: _Line) -> None:
        found = self._issue(line)
        if found is None:
            return
        key, _ = found
        comment = line.payload.comment
        body = "" if comment is None else comment.body or ""
        line.action(key, {"type": "comment", "body": body})

    def _pull_request(self, line: _Line) -> str | None:
        found = self._issue(line)
        if found is None:
            return None
        key, pull = found
        batch, at = line.batch, line.at

        action = line.payload.action
        if action == "opened":
            line.action(key, {"type": "open"})
        elif action == "closed":
            line.action(key, {"type": "close", "merged": bool(pull.merged)})

        sizes = {
            "commits": pull.commits or 0,
            "additions": pull.additions or 0,
            "deletions": pull.deletions or 0,
            "changed_files": pull.changed_files or 0,
        }
        if any(value > 0 for value in sizes.values()):
            batch.update_node(
                NodeType.ISSUE, key, {"type": "change_request", **sizes}, at
            )
        for reviewer in pull.requested_reviewers or ():
            if reviewer.id is None:
                continue
            attrs = {"login": reviewer.login} if reviewer.login else {}
            batch.update_node(NodeType.ACTOR, reviewer.id, attrs, at)
            batch.update_edge(EdgeType.HAS_REQUESTED_REVIEWER, key, reviewer.id, {}, at)

        base = pull.base
        if base is not None and base.repo is not None:
            self._base_repo(line, base.repo)
        if base is not None and base.ref is not None and base.sha is not None:
            batch.update_node(
                NodeType.ISSUE, key, {"type": "change_request", "base_ref": base.ref}, at
            )
        head = pull.head
        if (
            head is not None
            and head.ref is not None
            and head.sha is not None
            and head.repo is not None
            and head.repo.id is not None
        ):
            head_name = head.repo.full_name or head.repo.name
            batch.update_node(
                NodeType.ISSUE,
                key,
                {
                    "type": "change_request",
                    "head_id": head.repo.id,
                    "head_name": head_name,
                    "head_ref": head.ref,
                },
                at,
            )
            batch.update_node(
                NodeType.REPO,
                head.repo.id,
                {"name": head_name} if head_name else {},
                at,
            )
            batch.update_edge(
                EdgeType.CHANGE_REQUEST_FROM,
                key,
                head.repo.id,
                {"ref": head.ref, "sha": head.sha},
                at,
            )
        return key

    def _base_repo(self, line: _Line, repo: ArchiveRepo) -> None:
        batch, at = line.batch, line.at
        if repo.language:
            batch.update_node(NodeType.LANGUAGE, repo.language, {}, at)
            batch.update_edge(EdgeType.HAS_LANGUAGE, line.repo_id, repo.language, {}, at)
        if repo.license is not None and repo.license.spdx_id:
            spdx_id = repo.license.spdx_id
            batch.update_node(NodeType.LICENSE, spdx_id, {}, at)
            batch.update_edge(EdgeType.HAS_LICENSE, line.repo_id, spdx_id, {}, at)

        attrs: dict[str, typ.Any] = {}
        if repo.description:
            attrs["description"] = repo.description
        if repo.default_branch:
            attrs["default_branch"] = repo.default_branch
        for field in _REPO_TIMESTAMPS:
            value = getattr(repo, field)
            if value:
                attrs[field] = _repo_timestamp(value)
        if attrs:
            batch.update_node(NodeType.REPO, line.repo_id, attrs, at)

    def _review(self, line: _Line) -> None:
        key = self._pull_request(line)
        if key is None:
            return
        review = line.payload.review
        if review is None:
            review = ArchiveReview()
        line.action(
            key,
            {"type": "review", "body": review.body or "", "state": review.state or ""},
        )

    def _review_comment(self, line: _Line) -> None:
        key = self._pull_request(line)
        if key is None:
            return
        comment = line.payload.comment
        if comment is None:
            comment = ArchiveComment()
        line.action(
            key,
            {
                "type": "review_comment",
                "body": comment.body or "",
                "path": comment.path or "",
                "position": comment.position or 0,
                "line": comment.line or 0,
                "start_line": comment.start_line or 0,
            },
        )


def _repo_timestamp(value: str | int) -> str:
    """Render repository timestamps (ISO text or epoch seconds) as ISO UTC."""
    if isinstance(value, int):
        return isoformat_utc(dt.datetime.fromtimestamp(value, dt.UTC))
    return isoformat_utc(parse_vendor_datetime(value))


_HANDLERS: dict[str, _Handler] = {
    "WatchEvent": ArchiveLineParser._star,  # noqa: SLF001
    "ForkEvent": ArchiveLineParser._fork,  # noqa: SLF001
    "IssuesEvent": ArchiveLineParser._issues_event,  # noqa: SLF001
    "IssueCommentEvent": ArchiveLineParser._issue_comment,  # noqa: SLF001
    "PullRequestEvent": ArchiveLineParser._pull_request,  # noqa: SLF001
    "PullRequestReviewEvent": ArchiveLineParser._review,  # noqa: SLF001
    "PullRequestReviewCommentEvent": ArchiveLineParser._review_comment,  # noqa: SLF001
}
