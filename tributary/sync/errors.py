"""Incremental sync errors."""

from __future__ import annotations


class SyncConfigError(RuntimeError):
    """Raised when the Gitee sync configuration is invalid."""

    @classmethod
    def missing_token(cls) -> SyncConfigError:
        """Return an error when no Gitee token is configured."""
        return cls("TRIBUTARY_GITEE_TOKEN is required for the Gitee sync")

    @classmethod
    def invalid_target(cls, raw: str) -> SyncConfigError:
        """Return an error for unparseable org entries."""
        return cls(f"invalid Gitee org entry {raw!r}; expected NAME or NAME:split")

    @classmethod
    def no_targets(cls) -> SyncConfigError:
        """Return an error when neither orgs nor repos are configured."""
        return cls("configure TRIBUTARY_GITEE_ORGS or TRIBUTARY_GITEE_REPOS")
