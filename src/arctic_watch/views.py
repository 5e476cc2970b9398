"""Compose the tracker, dashboard, loading and error views from coordinator state.

The composer keeps only inputs (load status and the last load error); every
view is recomputed from the snapshot, the selection and the view mode on each
call to :meth:`ViewComposer.compose`.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Union

from .formatting import (
    format_confidence_pct,
    format_distance_km,
    format_gap_duration,
    format_hemisphere_coordinates,
    format_mmsi,
    format_position,
    format_risk_score,
    format_target_label,
    format_timestamp,
)
from .logging_config import get_logger, log_event
from .metrics import DashboardMetrics, compute_metrics
from .records import DetectionRecord, DetectionStatus, Snapshot
from .selection import SelectionCoordinator, SelectionError, ViewMode
from .sources import LoadResult, SnapshotLoader
from .visuals import (
    CONFIDENCE_TIER_COLORS,
    DEFAULT_MAP_CENTER,
    DEFAULT_MAP_ZOOM,
    MarkerVisual,
    confidence_tier,
    derive_visual,
    detail_zoom,
    marker_color,
)


DEFAULT_TITLE = "Arctic Watch"
LOADING_MESSAGE = "Loading Arctic dark ship detections..."
ERROR_TITLE = "Error Loading Dark Ship Data"
RETRY_LABEL = "Retry"
EMPTY_LIST_MESSAGE = "No vessels detected"

VIEW_TITLES = {
    ViewMode.TRACKER: "Vessel Tracker",
    ViewMode.DASHBOARD: "Dashboard",
}

STATUS_BADGES = {
    DetectionStatus.DARK_SHIP_CONFIRMED: "THREAT CONFIRMED",
    DetectionStatus.ORPHAN_DETECTION: "ORPHAN CONTACT",
    DetectionStatus.SUSPICIOUS: "SUSPICIOUS",
}
STATUS_TEXT = {
    DetectionStatus.DARK_SHIP_CONFIRMED: "\U0001F534 Confirmed Dark Ship",
    DetectionStatus.ORPHAN_DETECTION: "\U0001F7E1 Orphan Detection",
    DetectionStatus.SUSPICIOUS: "\U0001F7E0 Suspicious Activity",
}
STATUS_COLORS = {
    DetectionStatus.DARK_SHIP_CONFIRMED: "#dc2626",
    DetectionStatus.ORPHAN_DETECTION: "#ea580c",
    DetectionStatus.SUSPICIOUS: "#facc15",
}

LEGEND_LABELS = (
    ("high", "High Confidence (80%+)"),
    ("medium", "Medium Confidence (60-80%)"),
    ("low", "Low Confidence (<60%)"),
)

MAP_REGION = "Canadian Arctic"
MAP_COVERAGE = "Northwest Passage & Beaufort Sea"


class LoadStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class EventKind(str, Enum):
    LIST_CLICK = "list_click"
    MARKER_CLICK = "marker_click"
    VIEW_MODE = "view_mode"
    RETRY = "retry"


@dataclass(frozen=True)
class InteractionEvent:
    kind: EventKind
    index: int | None = None
    mode: ViewMode | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "InteractionEvent":
        kind = EventKind(raw["kind"])
        mode = raw.get("mode")
        return cls(
            kind=kind,
            index=raw.get("index"),
            mode=ViewMode(mode) if mode is not None else None,
        )


@dataclass(frozen=True)
class ListCard:
    index: int
    title: str
    mmsi: str
    gap_duration: str
    risk_score: str
    position: str
    selected: bool


@dataclass(frozen=True)
class DetailCard:
    index: int
    label: str
    title: str
    status_badge: str
    status_text: str
    status_color: str
    confidence_pct: str
    badge_tier: str
    mmsi: str
    gap_start: str | None
    gap_end: str | None
    gap_distance: str | None
    assessment: str
    coordinates: str
    zoom: int
    visual: MarkerVisual


@dataclass(frozen=True)
class LegendEntry:
    tier: str
    label: str
    color: str


@dataclass(frozen=True)
class MapInfo:
    region: str
    ships_detected: int
    coverage: str


@dataclass(frozen=True)
class LayerToggle:
    key: str
    label: str
    active: bool
    enabled: bool
    hint: str = ""


@dataclass(frozen=True)
class MarkerVariants:
    """Both selection variants, so a renderer can swap without recomputing rules."""

    unselected: MarkerVisual
    selected: MarkerVisual


@dataclass(frozen=True)
class MapLayer:
    center: tuple[float, float]
    zoom: int
    markers: tuple[MarkerVisual, ...]
    variants: tuple[MarkerVariants, ...]
    legend: tuple[LegendEntry, ...]
    info: MapInfo
    toggles: tuple[LayerToggle, ...]


@dataclass(frozen=True)
class StatCard:
    title: str
    value: str
    caption: str


@dataclass(frozen=True)
class StatusItem:
    label: str
    value: str
    active: bool


@dataclass(frozen=True)
class GapBar:
    index: int
    target_vessel: str
    gap_hours: float
    color: str


@dataclass(frozen=True)
class TrackerView:
    title: str
    heading: str
    cards: tuple[ListCard, ...]
    map: MapLayer
    detail: DetailCard | None
    empty_message: str | None
    kind: str = field(default="tracker", init=False)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DashboardView:
    title: str
    heading: str
    metrics: DashboardMetrics
    stat_cards: tuple[StatCard, ...]
    system_status: tuple[StatusItem, ...]
    gap_bars: tuple[GapBar, ...]
    kind: str = field(default="dashboard", init=False)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LoadingView:
    title: str
    message: str = LOADING_MESSAGE
    kind: str = field(default="loading", init=False)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ErrorView:
    title: str
    message: str
    heading: str = ERROR_TITLE
    retry_label: str = RETRY_LABEL
    kind: str = field(default="error", init=False)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


View = Union[TrackerView, DashboardView, LoadingView, ErrorView]

_LOGGER = get_logger("arctic_watch.views")


def list_card(record: DetectionRecord, index: int, selected: bool) -> ListCard:
    return ListCard(
        index=index,
        title=record.target_vessel,
        mmsi=format_mmsi(record.target_mmsi),
        gap_duration=format_gap_duration(record),
        risk_score=format_risk_score(record.confidence),
        position=format_position(record.lat, record.lon),
        selected=selected,
    )


def detail_card(record: DetectionRecord, index: int) -> DetailCard:
    return DetailCard(
        index=index,
        label=format_target_label(index),
        title=record.target_vessel,
        status_badge=STATUS_BADGES[record.status],
        status_text=STATUS_TEXT[record.status],
        status_color=STATUS_COLORS[record.status],
        confidence_pct=format_confidence_pct(record.confidence),
        badge_tier=confidence_tier(record.confidence),
        mmsi=format_mmsi(record.target_mmsi),
        gap_start=format_timestamp(record.gap_start_time) if record.gap_start_time is not None else None,
        gap_end=format_timestamp(record.gap_end_time) if record.gap_end_time is not None else None,
        gap_distance=format_distance_km(record.distance_km) if record.distance_km is not None else None,
        assessment=record.reason,
        coordinates=format_hemisphere_coordinates(record.lat, record.lon),
        zoom=detail_zoom(record),
        visual=derive_visual(record, is_selected=True, index=index),
    )


def legend_entries() -> tuple[LegendEntry, ...]:
    return tuple(
        LegendEntry(tier=tier, label=label, color=CONFIDENCE_TIER_COLORS[tier])
        for tier, label in LEGEND_LABELS
    )


def layer_toggles() -> tuple[LayerToggle, ...]:
    return (
        LayerToggle(key="AIS", label="\U0001F4E1 AIS TRACKING", active=True, enabled=True),
        LayerToggle(
            key="SAR",
            label="\U0001F6F0\ufe0f SAR",
            active=False,
            enabled=False,
            hint="SAR imagery not available",
        ),
        LayerToggle(
            key="SATELLITE",
            label="\U0001F4F8 SATELLITE",
            active=False,
            enabled=False,
            hint="Satellite imagery not available",
        ),
    )


def system_status() -> tuple[StatusItem, ...]:
    return (
        StatusItem(label="AIS Data Feed", value="Online", active=True),
        StatusItem(label="SAR Imagery", value="Offline", active=False),
        StatusItem(label="Satellite Feed", value="Offline", active=False),
    )


def stat_cards(metrics: DashboardMetrics) -> tuple[StatCard, ...]:
    return (
        StatCard(title="Total Threats", value=str(metrics.total_count), caption="Active dark ships"),
        StatCard(title="High Risk", value=str(metrics.high_risk_count), caption="Confidence > 80%"),
        StatCard(title="Coverage Area", value="Arctic", caption="Northwest Passage"),
        StatCard(
            title="Avg Gap Time",
            value=f"{metrics.average_gap_hours}h",
            caption="AIS silence duration",
        ),
    )


def gap_bars(snapshot: Snapshot) -> tuple[GapBar, ...]:
    bars = []
    for idx, record in enumerate(snapshot):
        hours = record.gap_hours
        if hours is None:
            continue
        bars.append(
            GapBar(
                index=idx,
                target_vessel=record.target_vessel,
                gap_hours=round(hours, 2),
                color=marker_color(record),
            )
        )
    return tuple(bars)


class ViewComposer:
    def __init__(
        self,
        coordinator: SelectionCoordinator,
        loader: SnapshotLoader | None = None,
        title: str = DEFAULT_TITLE,
    ) -> None:
        self.coordinator = coordinator
        self.loader = loader
        self.title = title
        self.status = LoadStatus.LOADING
        self.error: str | None = None

    def begin_load(self) -> None:
        self.status = LoadStatus.LOADING
        self.error = None

    def apply_load_result(self, result: LoadResult) -> None:
        self.coordinator.replace_snapshot(result.snapshot)
        if result.ok:
            self.status = LoadStatus.READY
            self.error = None
        else:
            self.status = LoadStatus.FAILED
            self.error = result.error

    def reload(self) -> LoadResult:
        if self.loader is None:
            raise RuntimeError("No snapshot loader configured; cannot retry.")
        self.begin_load()
        result = self.loader.load()
        self.apply_load_result(result)
        return result

    async def reload_async(self) -> LoadResult:
        if self.loader is None:
            raise RuntimeError("No snapshot loader configured; cannot retry.")
        self.begin_load()
        result = await self.loader.load_async()
        self.apply_load_result(result)
        return result

    def compose(self) -> View:
        if self.status is LoadStatus.LOADING:
            return LoadingView(title=self.title)
        if self.status is LoadStatus.FAILED:
            return ErrorView(title=self.title, message=self.error or "")
        if self.coordinator.view_mode is ViewMode.DASHBOARD:
            return self.compose_dashboard()
        return self.compose_tracker()

    def compose_tracker(self) -> TrackerView:
        snapshot = self.coordinator.snapshot
        selected_index = self.coordinator.selected_index

        cards = []
        markers = []
        variants = []
        for idx, record in enumerate(snapshot):
            is_selected = idx == selected_index
            cards.append(list_card(record, idx, is_selected))
            unselected = derive_visual(record, is_selected=False, index=idx)
            selected = derive_visual(record, is_selected=True, index=idx)
            variants.append(MarkerVariants(unselected=unselected, selected=selected))
            markers.append(selected if is_selected else unselected)

        selected_record = self.coordinator.selected_record()
        detail = None
        if selected_record is not None and selected_index is not None:
            detail = detail_card(selected_record, selected_index)

        return TrackerView(
            title=self.title,
            heading=VIEW_TITLES[ViewMode.TRACKER],
            cards=tuple(cards),
            map=MapLayer(
                center=DEFAULT_MAP_CENTER,
                zoom=DEFAULT_MAP_ZOOM,
                markers=tuple(markers),
                variants=tuple(variants),
                legend=legend_entries(),
                info=MapInfo(
                    region=MAP_REGION,
                    ships_detected=len(snapshot),
                    coverage=MAP_COVERAGE,
                ),
                toggles=layer_toggles(),
            ),
            detail=detail,
            empty_message=None if snapshot.records else EMPTY_LIST_MESSAGE,
        )

    def compose_dashboard(self) -> DashboardView:
        snapshot = self.coordinator.snapshot
        metrics = compute_metrics(snapshot)
        return DashboardView(
            title=self.title,
            heading=VIEW_TITLES[ViewMode.DASHBOARD],
            metrics=metrics,
            stat_cards=stat_cards(metrics),
            system_status=system_status(),
            gap_bars=gap_bars(snapshot),
        )

    def dispatch(self, event: InteractionEvent) -> View:
        """Route one interaction into the coordinator and return the recomposed view."""
        if event.kind is EventKind.VIEW_MODE:
            if event.mode is None:
                raise ValueError("view_mode events require a mode.")
            self.coordinator.set_view_mode(event.mode)
        elif event.kind is EventKind.RETRY:
            self.reload()
        elif event.kind in (EventKind.LIST_CLICK, EventKind.MARKER_CLICK):
            self._route_click(event)
        return self.compose()

    def _route_click(self, event: InteractionEvent) -> None:
        if self.status is not LoadStatus.READY:
            log_event(_LOGGER, "debug", "click_ignored", kind=event.kind.value, status=self.status.value)
            return
        try:
            if event.kind is EventKind.LIST_CLICK:
                self.coordinator.select_from_list(event.index)
            else:
                self.coordinator.select_from_map(event.index)
        except SelectionError as exc:
            log_event(
                _LOGGER,
                "warning",
                "click_rejected",
                kind=event.kind.value,
                index=event.index,
                error=str(exc),
            )
