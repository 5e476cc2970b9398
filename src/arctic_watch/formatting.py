"""Display-string formatters shared by the list, map and dashboard views.

Every helper is a pure function of a value (or a record) so that the same
string is produced for a detection wherever it appears.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any

import numpy as np

from .records import DetectionRecord


NOT_AVAILABLE = "N/A"
UNKNOWN = "Unknown"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (72.5 -> 73)."""
    return int(math.floor(float(value) + 0.5))


def fmt_number(value: Any, precision: int = 2, fallback: str = NOT_AVAILABLE) -> str:
    if value is None:
        return fallback
    try:
        f = float(value)
    except (TypeError, ValueError):
        return fallback
    if not np.isfinite(f):
        return fallback
    return f"{f:.{precision}f}"


def format_gap_hours(hours: float | None) -> str:
    if hours is None or not np.isfinite(hours):
        return NOT_AVAILABLE
    total = round_half_up(hours)
    days, rem = divmod(total, 24)
    return f"{days}d {rem}h" if days > 0 else f"{rem}h"


def format_gap_duration(record: DetectionRecord) -> str:
    return format_gap_hours(record.gap_hours)


def format_position(lat: float, lon: float, precision: int = 3) -> str:
    return f"{lat:.{precision}f}°, {lon:.{precision}f}°"


def format_hemisphere_coordinates(lat: float, lon: float, precision: int = 6) -> str:
    ns = "N" if lat >= 0 else "S"
    ew = "E" if lon >= 0 else "W"
    return f"{abs(lat):.{precision}f}°{ns}, {abs(lon):.{precision}f}°{ew}"


def format_mmsi(mmsi: int | None) -> str:
    if not mmsi:
        return UNKNOWN
    return str(mmsi)


def format_risk_score(confidence: float) -> str:
    return f"{round_half_up(confidence * 100)}/100"


def format_confidence_pct(confidence: float, precision: int = 1) -> str:
    if precision == 0:
        return f"{round_half_up(confidence * 100)}%"
    return f"{confidence * 100:.{precision}f}%"


def format_distance_km(distance_km: float | None) -> str:
    text = fmt_number(distance_km, 1)
    return text if text == NOT_AVAILABLE else f"{text} km"


def format_timestamp(value: datetime | None) -> str:
    # e.g. "Sep 18, 02:35 PM"
    if value is None:
        return UNKNOWN
    ts = value.astimezone(timezone.utc)
    return f"{ts:%b} {ts.day}, {ts:%I:%M %p}"


def format_target_label(index: int) -> str:
    return f"TARGET #{index:03d}"
