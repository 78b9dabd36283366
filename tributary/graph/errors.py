"""Graph materialization error types."""

from __future__ import annotations


class GraphParseError(ValueError):
    """Raised when an archive line cannot be turned into graph updates."""

    @classmethod
    def malformed(cls, reason: str) -> GraphParseError:
        """Return an error for lines that fail to decode."""
        return cls(f"malformed archive line: {reason}")

    @classmethod
    def incomplete(cls, field: str) -> GraphParseError:
        """Return an error for events missing a required envelope field."""
        return cls(f"archive event missing {field}")


class GraphCommitError(RuntimeError):
    """Raised when the graph store rejects an upsert."""

    def __init__(self, message: str, label: str | None = None) -> None:
        """Create the error with the affected node or edge label."""
        super().__init__(message)
        self.label = label

    @classmethod
    def write_failed(cls, label: str, exc: BaseException) -> GraphCommitError:
        """Return an error for a failed write of ``label`` rows."""
        return cls(f"graph write for {label} failed: {exc}", label)

    @classmethod
    def invalid_identifier(cls, name: str) -> GraphCommitError:
        """Return an error for labels or keys unsafe to embed in Cypher."""
        return cls(f"invalid graph identifier: {name!r}", name)


class GraphResetAborted(RuntimeError):
    """Raised when the operator declines a destructive graph reset."""

    @classmethod
    def declined(cls, answer: str) -> GraphResetAborted:
        """Return an error when the confirmation answer is not ``Yes``."""
        return cls(f"graph reset not confirmed (answer was {answer!r})")
