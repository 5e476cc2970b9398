from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import numpy as np
import pandas as pd

from .formatting import format_confidence_pct, round_half_up
from .records import DetectionRecord, Snapshot


HIGH_RISK_THRESHOLD = 0.8
RECENT_THREAT_LIMIT = 3
CONFIRMED_GLYPH = "\U0001F534"  # red circle
UNCONFIRMED_GLYPH = "\U0001F7E1"  # yellow circle

_FRAME_COLUMNS = ("confidence", "status", "gap_start_time", "gap_end_time")


@dataclass(frozen=True)
class RecentThreat:
    index: int
    glyph: str
    target_vessel: str
    reason: str
    confidence_pct: str


@dataclass(frozen=True)
class DashboardMetrics:
    total_count: int
    high_risk_count: int
    average_gap_hours: int
    recent_threats: tuple[RecentThreat, ...]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def snapshot_frame(snapshot: Snapshot) -> pd.DataFrame:
    """One row per record, in snapshot order."""
    rows = [
        {
            "confidence": record.confidence,
            "status": record.status.value,
            "gap_start_time": record.gap_start_time,
            "gap_end_time": record.gap_end_time,
        }
        for record in snapshot
    ]
    return pd.DataFrame(rows, columns=list(_FRAME_COLUMNS))


def total_count(snapshot: Snapshot) -> int:
    return len(snapshot)


def high_risk_count(snapshot: Snapshot, threshold: float = HIGH_RISK_THRESHOLD) -> int:
    df = snapshot_frame(snapshot)
    confidence = pd.to_numeric(df["confidence"], errors="coerce")
    return int((confidence > threshold).sum())


def average_gap_hours(snapshot: Snapshot) -> int:
    df = snapshot_frame(snapshot)
    qualifying = df.dropna(subset=["gap_start_time", "gap_end_time"])
    if qualifying.empty:
        return 0

    start = pd.to_datetime(qualifying["gap_start_time"], utc=True)
    end = pd.to_datetime(qualifying["gap_end_time"], utc=True)
    hours = (end - start).dt.total_seconds() / 3600.0
    mean = float(hours.mean())
    if not np.isfinite(mean):
        return 0
    return round_half_up(mean)


def severity_glyph(record: DetectionRecord) -> str:
    return CONFIRMED_GLYPH if record.is_confirmed else UNCONFIRMED_GLYPH


def recent_threats(snapshot: Snapshot, limit: int = RECENT_THREAT_LIMIT) -> tuple[RecentThreat, ...]:
    if limit < 0:
        raise ValueError("limit must be >= 0.")
    return tuple(
        RecentThreat(
            index=idx,
            glyph=severity_glyph(record),
            target_vessel=record.target_vessel,
            reason=record.reason,
            confidence_pct=format_confidence_pct(record.confidence, precision=0),
        )
        for idx, record in enumerate(snapshot.records[:limit])
    )


def compute_metrics(snapshot: Snapshot) -> DashboardMetrics:
    return DashboardMetrics(
        total_count=total_count(snapshot),
        high_risk_count=high_risk_count(snapshot),
        average_gap_hours=average_gap_hours(snapshot),
        recent_threats=recent_threats(snapshot),
    )
