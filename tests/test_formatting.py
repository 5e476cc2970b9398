from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from arctic_watch.formatting import (
    NOT_AVAILABLE,
    UNKNOWN,
    fmt_number,
    format_confidence_pct,
    format_distance_km,
    format_gap_duration,
    format_gap_hours,
    format_hemisphere_coordinates,
    format_mmsi,
    format_position,
    format_risk_score,
    format_target_label,
    format_timestamp,
    round_half_up,
)
from arctic_watch.records import Snapshot


@pytest.mark.parametrize(
    "value,expected",
    [(72.3125, 72), (72.5, 73), (71.49, 71), (0.0, 0), (0.5, 1)],
)
def test_round_half_up(value: float, expected: int) -> None:
    assert round_half_up(value) == expected


def test_fmt_number_fallbacks() -> None:
    assert fmt_number(None) == NOT_AVAILABLE
    assert fmt_number(float("nan")) == NOT_AVAILABLE
    assert fmt_number("abc") == NOT_AVAILABLE
    assert fmt_number(3.14159, 1) == "3.1"


@pytest.mark.parametrize(
    "hours,expected",
    [
        (72.3125, "3d 0h"),
        (35.388, "1d 11h"),
        (23.6, "1d 0h"),
        (5.2, "5h"),
        (0.0, "0h"),
        (None, NOT_AVAILABLE),
    ],
)
def test_format_gap_hours(hours: float | None, expected: str) -> None:
    assert format_gap_hours(hours) == expected


def test_format_gap_duration_for_fixture(fixture_snapshot: Snapshot) -> None:
    assert [format_gap_duration(r) for r in fixture_snapshot] == [
        "3d 0h",
        "1d 11h",
        NOT_AVAILABLE,
        "2d 1h",
        "4d 0h",
        "1d 14h",
    ]


def test_format_gap_duration_requires_both_timestamps(fixture_snapshot: Snapshot) -> None:
    record = replace(fixture_snapshot[0], gap_end_time=None)
    assert format_gap_duration(record) == NOT_AVAILABLE


def test_format_position() -> None:
    assert format_position(69.2348, -105.4562) == "69.235°, -105.456°"


def test_format_hemisphere_coordinates() -> None:
    assert format_hemisphere_coordinates(69.2348, -105.4562) == "69.234800°N, 105.456200°W"
    assert format_hemisphere_coordinates(-33.5, 151.25, precision=2) == "33.50°S, 151.25°E"


@pytest.mark.parametrize("mmsi,expected", [(316054321, "316054321"), (None, UNKNOWN), (0, UNKNOWN)])
def test_format_mmsi(mmsi: int | None, expected: str) -> None:
    assert format_mmsi(mmsi) == expected


def test_format_risk_score_and_confidence() -> None:
    assert format_risk_score(0.943) == "94/100"
    assert format_risk_score(0.689) == "69/100"
    assert format_confidence_pct(0.943) == "94.3%"
    assert format_confidence_pct(0.812, precision=0) == "81%"


def test_format_distance_km() -> None:
    assert format_distance_km(185.4) == "185.4 km"
    assert format_distance_km(None) == NOT_AVAILABLE


def test_format_timestamp() -> None:
    ts = datetime(2025, 9, 18, 14, 35, 2, tzinfo=timezone.utc)
    assert format_timestamp(ts) == "Sep 18, 02:35 PM"
    assert format_timestamp(None) == UNKNOWN


def test_format_target_label() -> None:
    assert format_target_label(0) == "TARGET #000"
    assert format_target_label(42) == "TARGET #042"
