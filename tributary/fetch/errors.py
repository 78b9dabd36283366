"""Fetch executor errors."""

from __future__ import annotations


class FetchError(RuntimeError):
    """Raised when a fetch task cannot produce a usable response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def retryable_status(cls, status_code: int, url: str) -> FetchError:
        """Return an error for throttled or server-side failures."""
        return cls(f"HTTP {status_code} from {url}", status_code=status_code)

    @classmethod
    def undecodable(cls, url: str) -> FetchError:
        """Return an error for bodies that are not valid JSON."""
        return cls(f"response from {url} is not valid JSON")
