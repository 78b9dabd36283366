"""Process-wide single-flight guard for scheduled jobs."""

from __future__ import annotations

import contextlib
import logging
import threading
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)


class SingleFlightRegistry:
    """Track which job keys are running; at most one run per key.

    Safe to share between Dramatiq worker threads.
    """

    def __init__(self) -> None:
        """Create an empty registry."""
        self._lock = threading.Lock()
        self._running: set[str] = set()

    def try_acquire(self, key: str) -> bool:
        """Mark ``key`` running; return ``False`` if it already was."""
        with self._lock:
            if key in self._running:
                return False
            self._running.add(key)
            return True

    def release(self, key: str) -> None:
        """Mark ``key`` as no longer running."""
        with self._lock:
            if key not in self._running:
                logger.warning("Released single-flight key %s that was not held", key)
            self._running.discard(key)

    def is_running(self, key: str) -> bool:
        """Return ``True`` while ``key`` is held."""
        with self._lock:
            return key in self._running

    @property
    def running(self) -> frozenset[str]:
        """Snapshot of the held keys."""
        with self._lock:
            return frozenset(self._running)

    @contextlib.contextmanager
    def hold(self, key: str) -> cabc.Iterator[bool]:
        """Try to hold ``key`` for the ``with`` block.

        Yields whether the key was acquired; it is released on exit only when
        this block acquired it.
        """
        acquired = self.try_acquire(key)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(key)
