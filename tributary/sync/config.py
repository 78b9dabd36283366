"""Configuration for the Gitee incremental sync.

Usage
-----
Load from environment variables:

>>> import os
>>> os.environ["TRIBUTARY_GITEE_TOKEN"] = "token"
>>> os.environ["TRIBUTARY_GITEE_ORGS"] = "openharmony:split,mindspore"
>>> config = GiteeSyncConfig.from_env()
>>> [target.name for target in config.orgs]
['openharmony', 'mindspore']

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import os

from tributary.common.env import env_csv, env_positive_int, env_str
from tributary.fetch import RetryPolicy

from .cursor import EntityKind
from .errors import SyncConfigError

DEFAULT_GITEE_API = "https://gitee.com/api/v5"


@dc.dataclass(frozen=True, slots=True)
class EntityTarget:
    """A configured org or repo name; ``split`` orgs are synced per repo."""

    name: str
    kind: EntityKind
    split: bool = False

    @classmethod
    def parse_org(cls, raw: str) -> EntityTarget:
        """Parse ``NAME`` or ``NAME:split`` org entries."""
        name, _, flag = raw.partition(":")
        name = name.strip()
        flag = flag.strip().lower()
        if not name or flag not in {"", "split"}:
            raise SyncConfigError.invalid_target(raw)
        return cls(name=name, kind=EntityKind.ORG, split=flag == "split")


@dc.dataclass(frozen=True, slots=True)
class GiteeSyncConfig:
    """Runtime knobs for the Gitee incremental sync.

    Attributes
    ----------
    token
        Gitee API access token, sent as the ``access_token`` query parameter.
    api_base
        Base URL of the Gitee v5 API.
    orgs, repos
        Configured targets. Orgs flagged ``split`` are expanded into their
        repositories by entity discovery.
    page_limit
        Events requested per page.
    batch_size
        Concurrent requests across all cursor chains.
    completeness_threshold
        When the oldest stored event is within this distance of the entity's
        creation time, history counts as fully backfilled. Default 3 days.
    retry
        Retry policy for event page requests.

    """

    token: str
    api_base: str = DEFAULT_GITEE_API
    orgs: tuple[EntityTarget, ...] = ()
    repos: tuple[EntityTarget, ...] = ()
    page_limit: int = 50
    batch_size: int = 30
    completeness_threshold: dt.timedelta = dt.timedelta(days=3)
    retry: RetryPolicy = RetryPolicy()

    @property
    def targets(self) -> tuple[EntityTarget, ...]:
        """Every configured org and repo target."""
        return self.orgs + self.repos

    @classmethod
    def from_env(cls) -> GiteeSyncConfig:
        """Create configuration from ``TRIBUTARY_GITEE_*`` variables."""
        token = os.environ.get("TRIBUTARY_GITEE_TOKEN", "").strip()
        if not token:
            raise SyncConfigError.missing_token()
        orgs = tuple(
            EntityTarget.parse_org(raw) for raw in env_csv("TRIBUTARY_GITEE_ORGS")
        )
        repos = tuple(
            EntityTarget(name=name, kind=EntityKind.REPO)
            for name in env_csv("TRIBUTARY_GITEE_REPOS")
        )
        if not orgs and not repos:
            raise SyncConfigError.no_targets()
        days = env_positive_int("TRIBUTARY_SYNC_COMPLETENESS_DAYS", 3)
        return cls(
            token=token,
            api_base=env_str("TRIBUTARY_GITEE_API", DEFAULT_GITEE_API).rstrip("/"),
            orgs=orgs,
            repos=repos,
            page_limit=env_positive_int("TRIBUTARY_GITEE_PAGE_LIMIT", 50),
            batch_size=env_positive_int("TRIBUTARY_GITEE_BATCH_SIZE", 30),
            completeness_threshold=dt.timedelta(days=days),
        )
