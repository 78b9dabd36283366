"""Environment variable parsing shared by the configuration dataclasses."""

from __future__ import annotations

import os


def env_str(env_var: str, default: str) -> str:
    """Read a string env var, falling back to ``default`` when blank."""
    raw = os.environ.get(env_var, "")
    return raw.strip() or default


def env_positive_int(env_var: str, default: int) -> int:
    """Read a positive integer env var, falling back to a default."""
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        msg = f"{env_var} must be an integer, got: {raw!r}"
        raise ValueError(msg) from exc
    if value < 1:
        msg = f"{env_var} must be positive, got: {value}"
        raise ValueError(msg)
    return value


def env_positive_float(env_var: str, default: float) -> float:
    """Read a positive float env var, falling back to a default."""
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        msg = f"{env_var} must be a number, got: {raw!r}"
        raise ValueError(msg) from exc
    if value <= 0:
        msg = f"{env_var} must be positive, got: {value}"
        raise ValueError(msg)
    return value


def env_csv(env_var: str) -> tuple[str, ...]:
    """Split a comma separated env var into trimmed, non-empty items."""
    raw = os.environ.get(env_var, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())
