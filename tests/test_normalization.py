from __future__ import annotations

import math

import pytest

from ndzwatch.ingestion.normalize import clamp_distance, safe_float, safe_int, safe_str


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("12.5", 12.5),
        (" 7 ", 7.0),
        (3, 3.0),
        ("", None),
        ("abc", None),
        (None, None),
        (True, None),
        ("nan", None),
        (math.inf, None),
    ],
)
def test_safe_float(value: object, expected: float | None) -> None:
    assert safe_float(value) == expected


def test_safe_int_truncates_floats() -> None:
    assert safe_int("2000.9") == 2000
    assert safe_int("x") is None


def test_safe_str_strips_and_drops_blank() -> None:
    assert safe_str("  Jane ") == "Jane"
    assert safe_str("   ") is None
    assert safe_str(42) == "42"


def test_clamp_distance_clamps_negative_to_zero() -> None:
    assert clamp_distance(-3.2) == 0.0
    assert clamp_distance("15.25") == 15.25


def test_clamp_distance_rejects_non_numeric() -> None:
    with pytest.raises(ValueError):
        clamp_distance("far")
