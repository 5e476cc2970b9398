"""Deterministic mapping from a detection (plus its selection flag) to map/list visuals.

Thresholds are strict: a confidence of exactly 0.8 is *not* high, exactly 0.6
is *not* medium. Selection overrides the confidence-derived marker size but
never the color, which depends on status and confidence only.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from .formatting import format_distance_km, format_hemisphere_coordinates, format_timestamp
from .records import DetectionRecord, DetectionStatus


HIGH_CONFIDENCE_THRESHOLD = 0.8
MEDIUM_CONFIDENCE_THRESHOLD = 0.6

COLORS = {
    "alert_high": "#dc2626",
    "alert_secondary": "#ea580c",
    "caution": "#f59e0b",
    "neutral": "#6b7280",
    "gap_lost": "#ff4444",
    "gap_restored": "#44ff44",
    "gap_line": "#ff4444",
    "halo": "#007bff",
    "selected_badge": "#10b981",
    "marker_border": "#ffffff",
}

CONFIDENCE_TIER_COLORS: dict[str, str] = {
    "high": "#000000",
    "medium": "#666666",
    "low": "#999999",
}

SIZE_SELECTED = 24
SIZE_LARGE = 20
SIZE_MEDIUM = 18
SIZE_SMALL = 16

GLYPH_VESSEL = "\U0001F6A2"  # ship
GLYPH_UNKNOWN_CONTACT = "❓"  # question mark

GAP_MARKER_SIZE = 12
GAP_LINE_WEIGHT = 3
GAP_LINE_OPACITY = 0.7
GAP_LINE_DASH = "10, 10"

SELECTION_HALO_RADIUS_M = 8000.0
CONFIDENCE_RADIUS_PER_UNIT_M = 3000.0

DEFAULT_MAP_CENTER = (69.5, -105.0)
DEFAULT_MAP_ZOOM = 5
DETAIL_ZOOM_WITH_GAP = 6
DETAIL_ZOOM_WITHOUT_GAP = 7


@dataclass(frozen=True)
class GapEndpoint:
    lat: float
    lon: float
    label: str
    color: str
    size: int
    timestamp: str | None
    distance: str | None


@dataclass(frozen=True)
class GapOverlay:
    lost: GapEndpoint
    restored: GapEndpoint
    path: tuple[tuple[float, float], tuple[float, float]]
    color: str = COLORS["gap_line"]
    weight: int = GAP_LINE_WEIGHT
    opacity: float = GAP_LINE_OPACITY
    dash_array: str = GAP_LINE_DASH


@dataclass(frozen=True)
class CircleOverlay:
    lat: float
    lon: float
    radius_m: float
    color: str
    fill_opacity: float
    weight: int
    opacity: float


@dataclass(frozen=True)
class MarkerVisual:
    index: int
    lat: float
    lon: float
    color: str
    size: int
    glyph: str
    badge_tier: str
    selected: bool
    border_px: int
    popup_title: str
    confidence_circle: CircleOverlay
    gap_overlay: GapOverlay | None
    halo: CircleOverlay | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def marker_color(record: DetectionRecord) -> str:
    if record.status is DetectionStatus.DARK_SHIP_CONFIRMED:
        if record.confidence > HIGH_CONFIDENCE_THRESHOLD:
            return COLORS["alert_high"]
        return COLORS["alert_secondary"]
    if record.status is DetectionStatus.ORPHAN_DETECTION:
        return COLORS["caution"]
    return COLORS["neutral"]


def marker_size(confidence: float, is_selected: bool = False) -> int:
    if is_selected:
        return SIZE_SELECTED
    if confidence > HIGH_CONFIDENCE_THRESHOLD:
        return SIZE_LARGE
    if confidence > MEDIUM_CONFIDENCE_THRESHOLD:
        return SIZE_MEDIUM
    return SIZE_SMALL


def marker_glyph(status: DetectionStatus) -> str:
    if status is DetectionStatus.ORPHAN_DETECTION:
        return GLYPH_UNKNOWN_CONTACT
    return GLYPH_VESSEL


def confidence_tier(confidence: float) -> str:
    if confidence > HIGH_CONFIDENCE_THRESHOLD:
        return "high"
    if confidence > MEDIUM_CONFIDENCE_THRESHOLD:
        return "medium"
    return "low"


def gap_overlay(record: DetectionRecord) -> GapOverlay | None:
    """Signal-lost / signal-restored markers joined by a dashed segment."""
    if not record.is_confirmed or not record.has_gap_endpoints:
        return None

    start = format_timestamp(record.gap_start_time) if record.gap_start_time is not None else None
    end = format_timestamp(record.gap_end_time) if record.gap_end_time is not None else None
    distance = format_distance_km(record.distance_km) if record.distance_km is not None else None

    lost = GapEndpoint(
        lat=float(record.last_lat),
        lon=float(record.last_lon),
        label="AIS Signal Lost",
        color=COLORS["gap_lost"],
        size=GAP_MARKER_SIZE,
        timestamp=start,
        distance=distance,
    )
    restored = GapEndpoint(
        lat=float(record.next_lat),
        lon=float(record.next_lon),
        label="AIS Signal Restored",
        color=COLORS["gap_restored"],
        size=GAP_MARKER_SIZE,
        timestamp=end,
        distance=distance,
    )
    return GapOverlay(
        lost=lost,
        restored=restored,
        path=((lost.lat, lost.lon), (restored.lat, restored.lon)),
    )


def selection_halo(record: DetectionRecord) -> CircleOverlay:
    return CircleOverlay(
        lat=record.lat,
        lon=record.lon,
        radius_m=SELECTION_HALO_RADIUS_M,
        color=COLORS["halo"],
        fill_opacity=0.1,
        weight=3,
        opacity=0.8,
    )


def confidence_circle(record: DetectionRecord) -> CircleOverlay:
    return CircleOverlay(
        lat=record.lat,
        lon=record.lon,
        radius_m=record.confidence * CONFIDENCE_RADIUS_PER_UNIT_M,
        color=CONFIDENCE_TIER_COLORS[confidence_tier(record.confidence)],
        fill_opacity=0.1,
        weight=2,
        opacity=0.4,
    )


def detail_zoom(record: DetectionRecord) -> int:
    # zoomed out far enough to keep both gap endpoints in frame
    return DETAIL_ZOOM_WITH_GAP if record.has_gap_endpoints else DETAIL_ZOOM_WITHOUT_GAP


def derive_visual(record: DetectionRecord, is_selected: bool, index: int = 0) -> MarkerVisual:
    return MarkerVisual(
        index=index,
        lat=record.lat,
        lon=record.lon,
        color=marker_color(record),
        size=marker_size(record.confidence, is_selected),
        glyph=marker_glyph(record.status),
        badge_tier=confidence_tier(record.confidence),
        selected=is_selected,
        border_px=3 if is_selected else 2,
        popup_title=format_hemisphere_coordinates(record.lat, record.lon),
        confidence_circle=confidence_circle(record),
        gap_overlay=gap_overlay(record),
        halo=selection_halo(record) if is_selected else None,
    )
