"""Resolve configured Gitee orgs and repos into tracked entities.

Configured names are recorded once in ``gitee_entities`` together with their
platform id and creation time. Orgs flagged ``split`` are not synced as a
whole; their repositories are listed and tracked individually instead.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import typing as typ

from sqlalchemy import select

from tributary.columnar.storage import gitee_entities_table
from tributary.common.time import maybe_vendor_datetime
from tributary.fetch import NO_RETRY, FetchResponse, FetchTask

from .cursor import EntityKind, TrackedEntity

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from tributary.columnar import ColumnarGateway
    from tributary.fetch import FetchExecutor

    from .config import EntityTarget, GiteeSyncConfig

logger = logging.getLogger(__name__)

ENTITIES_TABLE = "gitee_entities"
REPOS_PER_PAGE = 100


@dc.dataclass(frozen=True, slots=True)
class _LookupContext:
    target: EntityTarget


@dc.dataclass(frozen=True, slots=True)
class _RepoListContext:
    org: str
    page: int


class GiteeEntityDiscovery:
    """Record unknown targets and expand split orgs into repositories."""

    def __init__(
        self,
        executor: FetchExecutor,
        columnar: ColumnarGateway,
        config: GiteeSyncConfig,
    ) -> None:
        """Bind discovery to an executor, a columnar gateway and config."""
        self._executor = executor
        self._columnar = columnar
        self._config = config

    async def discover(
        self, targets: cabc.Sequence[EntityTarget] | None = None
    ) -> list[TrackedEntity]:
        """Return every tracked, non-split entity after recording new targets."""
        targets = self._config.targets if targets is None else targets
        known = await self._known_names()

        missing = [target for target in targets if target.name not in known]
        if missing:
            logger.info("Looking up %d untracked Gitee targets", len(missing))
            await self._record_targets(missing)
            known = await self._known_names()

        await self._expand_split_orgs(known)
        return await self._tracked_entities()

    async def _known_names(self) -> set[str]:
        rows = await self._columnar.query(select(gitee_entities_table.c.name))
        return {row[0] for row in rows}

    async def _record_targets(self, targets: cabc.Sequence[EntityTarget]) -> None:
        found: list[dict[str, typ.Any]] = []

        async def on_lookup(response: FetchResponse) -> None:
            context = typ.cast("_LookupContext", response.task.user_data)
            record = _entity_record(response, context.target.name, context.target)
            if record is not None:
                found.append(record)

        for target in targets:
            scope = "orgs" if target.kind is EntityKind.ORG else "repos"
            self._executor.enqueue(
                FetchTask(
                    method="GET",
                    url=f"{self._config.api_base}/{scope}/{target.name}",
                    params=self._auth(),
                    user_data=_LookupContext(target=target),
                )
            )
        await self._executor.drain(on_lookup, retry=NO_RETRY)
        await self._columnar.insert(found, ENTITIES_TABLE)

    async def _expand_split_orgs(self, known: set[str]) -> None:
        table = gitee_entities_table
        rows = await self._columnar.query(
            select(table.c.name).where(
                table.c.type == str(EntityKind.ORG), table.c.split.is_(True)
            )
        )
        split_orgs = [row[0] for row in rows]
        if not split_orgs:
            return

        discovered: dict[str, dict[str, typ.Any]] = {}

        async def on_repo_page(response: FetchResponse) -> None:
            context = typ.cast("_RepoListContext", response.task.user_data)
            page = response.json() if response.ok else None
            if not isinstance(page, list):
                logger.warning(
                    "Unexpected repo list for org %s page %d (HTTP %d): %s",
                    context.org,
                    context.page,
                    response.status,
                    response.body[:500],
                )
                return
            for repo in page:
                if not isinstance(repo, dict):
                    continue
                record = _repo_record(repo)
                if record is not None and record["name"] not in known:
                    discovered.setdefault(record["name"], record)
            if len(page) == REPOS_PER_PAGE:
                self._enqueue_repo_page(context.org, context.page + 1)

        for org in split_orgs:
            logger.info("Listing repositories of split org %s", org)
            self._enqueue_repo_page(org, 1)
        await self._executor.drain(on_repo_page, retry=self._config.retry)

        if discovered:
            logger.info("Recording %d repositories of split orgs", len(discovered))
            await self._columnar.insert(list(discovered.values()), ENTITIES_TABLE)

    def _enqueue_repo_page(self, org: str, page: int) -> None:
        self._executor.enqueue(
            FetchTask(
                method="GET",
                url=f"{self._config.api_base}/orgs/{org}/repos",
                params={**self._auth(), "page": page, "per_page": REPOS_PER_PAGE},
                user_data=_RepoListContext(org=org, page=page),
            )
        )

    async def _tracked_entities(self) -> list[TrackedEntity]:
        table = gitee_entities_table
        rows = await self._columnar.query(
            select(table.c.name, table.c.type, table.c.created_at)
            .where(table.c.split.is_(False))
            .order_by(table.c.type, table.c.name)
        )
        return [
            TrackedEntity(name=name, kind=EntityKind(kind), created_at=created_at)
            for name, kind, created_at in rows
        ]

    def _auth(self) -> dict[str, str | int]:
        return {"access_token": self._config.token}


def _entity_record(
    response: FetchResponse, name: str, target: EntityTarget
) -> dict[str, typ.Any] | None:
    data = response.json() if response.ok else None
    if not isinstance(data, dict) or not data.get("id"):
        logger.info(
            "Gitee %s %s could not be resolved (HTTP %d): %s",
            target.kind,
            name,
            response.status,
            response.body[:500],
        )
        return None
    return {
        "id": int(data["id"]),
        "name": name,
        "type": str(target.kind),
        "split": target.split,
        "created_at": maybe_vendor_datetime(data.get("created_at")),
    }


def _repo_record(repo: cabc.Mapping[str, typ.Any]) -> dict[str, typ.Any] | None:
    full_name = repo.get("full_name")
    repo_id = repo.get("id")
    if not full_name or not repo_id:
        return None
    return {
        "id": int(repo_id),
        "name": full_name,
        "type": str(EntityKind.REPO),
        "split": False,
        "created_at": maybe_vendor_datetime(repo.get("created_at")),
    }
