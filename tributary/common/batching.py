"""Helpers for splitting large row sets into bounded sub-batches."""

from __future__ import annotations

import typing as typ


def chunked[T](items: typ.Sequence[T], size: int) -> typ.Iterator[typ.Sequence[T]]:
    """Yield consecutive slices of ``items`` holding at most ``size`` entries."""
    if size < 1:
        msg = f"chunk size must be positive, got {size}"
        raise ValueError(msg)
    for start in range(0, len(items), size):
        yield items[start : start + size]
