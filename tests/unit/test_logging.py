"""Unit tests for femtologging integration helpers.

Run with:
    pytest tests/unit/test_logging.py
"""

from __future__ import annotations

import logging

import pytest

from tributary.logging import (
    DEFAULT_LEVEL,
    configure_logging,
    log_info,
    log_warning,
    normalize_log_level,
    stdlib_level,
)


class _FakeLogger:
    """Collects log calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, object | None, bool]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        self.calls.append((level, message, exc_info, stack_info))
        return message


@pytest.mark.parametrize(
    ("input_level", "expected_level", "expected_invalid"),
    [
        ("warning", "WARNING", False),
        (" trace ", "TRACE", False),
        (None, DEFAULT_LEVEL, True),
        ("", "INFO", True),
        ("nope", "INFO", True),
    ],
)
def test_normalize_log_level(
    input_level: str | None, expected_level: str, *, expected_invalid: bool
) -> None:
    """Normalize log levels and flag invalid inputs."""
    level, invalid = normalize_log_level(input_level)

    assert level == expected_level, (
        f"Expected {input_level!r} to normalize to {expected_level}."
    )
    assert invalid is expected_invalid


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        ("TRACE", logging.DEBUG),
        ("WARN", logging.WARNING),
        ("CRITICAL", logging.CRITICAL),
    ],
)
def test_stdlib_level_maps_femtologging_names(level: str, expected: int) -> None:
    """Femtologging-only level names map onto stdlib levels."""
    assert stdlib_level(level) == expected


def test_log_helpers_format_and_pass_levels() -> None:
    """The helpers format messages and emit their own level."""
    logger = _FakeLogger()
    exc = ValueError("boom")

    log_info(logger, "synced %d entities", 3)
    log_warning(logger, "warning: %s", "oops", exc_info=exc)

    assert logger.calls == [
        ("INFO", "synced 3 entities", None, False),
        ("WARNING", "warning: oops", exc, False),
    ]


@pytest.mark.parametrize(
    ("input_level", "expected_normalized", "expected_stdlib", "expected_invalid"),
    [
        ("DEBUG", "DEBUG", logging.DEBUG, False),
        ("nope", "INFO", logging.INFO, True),
    ],
)
def test_configure_logging(
    monkeypatch: pytest.MonkeyPatch,
    input_level: str,
    expected_normalized: str,
    expected_stdlib: int,
    *,
    expected_invalid: bool,
) -> None:
    """configure_logging sets femtologging and stdlib to the same level."""
    femto: dict[str, object] = {}
    stdlib: dict[str, object] = {}

    def fake_basic_config(**kwargs: object) -> None:
        femto.update(kwargs)

    def fake_stdlib_basic_config(**kwargs: object) -> None:
        stdlib.update(kwargs)

    monkeypatch.setattr("tributary.logging.basicConfig", fake_basic_config)
    monkeypatch.setattr(
        "tributary.logging.stdlib_logging.basicConfig", fake_stdlib_basic_config
    )

    normalized, invalid = configure_logging(input_level)

    assert normalized == expected_normalized
    assert invalid is expected_invalid
    assert femto == {"level": expected_normalized, "force": False}
    assert stdlib["level"] == expected_stdlib
    assert stdlib["force"] is False, "Expected basicConfig to keep handlers."
