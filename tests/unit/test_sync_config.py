"""Unit tests for Gitee sync configuration."""

from __future__ import annotations

import datetime as dt

import pytest

from tributary.sync import (
    DEFAULT_GITEE_API,
    EntityKind,
    EntityTarget,
    GiteeSyncConfig,
    SyncConfigError,
)

_VARS = (
    "TRIBUTARY_GITEE_TOKEN",
    "TRIBUTARY_GITEE_ORGS",
    "TRIBUTARY_GITEE_REPOS",
    "TRIBUTARY_GITEE_API",
    "TRIBUTARY_GITEE_PAGE_LIMIT",
    "TRIBUTARY_GITEE_BATCH_SIZE",
    "TRIBUTARY_SYNC_COMPLETENESS_DAYS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_from_env_reads_targets_and_knobs(monkeypatch: pytest.MonkeyPatch) -> None:
    """Orgs, repos and tuning knobs are read from the environment."""
    monkeypatch.setenv("TRIBUTARY_GITEE_TOKEN", " token ")
    monkeypatch.setenv("TRIBUTARY_GITEE_ORGS", "openharmony:split, mindspore")
    monkeypatch.setenv("TRIBUTARY_GITEE_REPOS", "solo/tool")
    monkeypatch.setenv("TRIBUTARY_GITEE_API", "https://mirror.test/api/v5/")
    monkeypatch.setenv("TRIBUTARY_GITEE_PAGE_LIMIT", "20")
    monkeypatch.setenv("TRIBUTARY_GITEE_BATCH_SIZE", "5")
    monkeypatch.setenv("TRIBUTARY_SYNC_COMPLETENESS_DAYS", "7")

    config = GiteeSyncConfig.from_env()

    assert config.token == "token"
    assert config.api_base == "https://mirror.test/api/v5"
    assert config.orgs == (
        EntityTarget("openharmony", EntityKind.ORG, split=True),
        EntityTarget("mindspore", EntityKind.ORG),
    )
    assert config.repos == (EntityTarget("solo/tool", EntityKind.REPO),)
    assert [target.name for target in config.targets] == [
        "openharmony",
        "mindspore",
        "solo/tool",
    ]
    assert config.page_limit == 20
    assert config.batch_size == 5
    assert config.completeness_threshold == dt.timedelta(days=7)


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    """Unset knobs fall back to the documented defaults."""
    monkeypatch.setenv("TRIBUTARY_GITEE_TOKEN", "token")
    monkeypatch.setenv("TRIBUTARY_GITEE_REPOS", "solo/tool")

    config = GiteeSyncConfig.from_env()

    assert config.api_base == DEFAULT_GITEE_API
    assert config.page_limit == 50
    assert config.batch_size == 30
    assert config.completeness_threshold == dt.timedelta(days=3)


def test_missing_token_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    """The sync cannot run without an access token."""
    monkeypatch.setenv("TRIBUTARY_GITEE_ORGS", "acme")

    with pytest.raises(SyncConfigError, match="TRIBUTARY_GITEE_TOKEN"):
        GiteeSyncConfig.from_env()


def test_missing_targets_are_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    """At least one org or repo must be configured."""
    monkeypatch.setenv("TRIBUTARY_GITEE_TOKEN", "token")

    with pytest.raises(SyncConfigError, match="TRIBUTARY_GITEE_ORGS"):
        GiteeSyncConfig.from_env()


@pytest.mark.parametrize("raw", [":split", "acme:whole", "acme:split:extra"])
def test_invalid_org_entries_are_rejected(raw: str) -> None:
    """Only ``NAME`` and ``NAME:split`` are accepted."""
    with pytest.raises(SyncConfigError, match="invalid Gitee org entry"):
        EntityTarget.parse_org(raw)


def test_split_flag_is_case_insensitive() -> None:
    """``SPLIT`` marks an org for per-repository sync."""
    assert EntityTarget.parse_org("acme:SPLIT").split


def test_non_numeric_knobs_are_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    """Malformed integers fail loudly instead of defaulting."""
    monkeypatch.setenv("TRIBUTARY_GITEE_TOKEN", "token")
    monkeypatch.setenv("TRIBUTARY_GITEE_ORGS", "acme")
    monkeypatch.setenv("TRIBUTARY_GITEE_PAGE_LIMIT", "many")

    with pytest.raises(ValueError, match="TRIBUTARY_GITEE_PAGE_LIMIT"):
        GiteeSyncConfig.from_env()
