"""Vendor event normalization into the canonical event schema."""

from __future__ import annotations

from .models import (
    EVENT_COLUMNS,
    CanonicalEvent,
    CanonicalType,
    EventDetail,
    Platform,
)
from .normalizer import EventNormalizer, NormalizerStats, decode_number, escape_nested
from .profiles import GITEE, GITHUB, PROFILES, PlatformProfile

__all__ = [
    "EVENT_COLUMNS",
    "GITEE",
    "GITHUB",
    "PROFILES",
    "CanonicalEvent",
    "CanonicalType",
    "EventDetail",
    "EventNormalizer",
    "NormalizerStats",
    "Platform",
    "PlatformProfile",
    "decode_number",
    "escape_nested",
]
