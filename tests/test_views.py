from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from arctic_watch.records import Snapshot
from arctic_watch.selection import UNSELECTED, CameraInstruction, Selected, SelectionCoordinator, ViewMode
from arctic_watch.sources import FIXTURE_SOURCE_NAME, LoadResult, SnapshotLoader, build_source_chain
from arctic_watch.views import (
    ERROR_TITLE,
    LOADING_MESSAGE,
    DashboardView,
    ErrorView,
    EventKind,
    InteractionEvent,
    LoadingView,
    LoadStatus,
    TrackerView,
    ViewComposer,
    detail_card,
    list_card,
)


@pytest.fixture
def composer(coordinator: SelectionCoordinator, fixture_snapshot: Snapshot) -> ViewComposer:
    view_composer = ViewComposer(coordinator)
    view_composer.apply_load_result(LoadResult(snapshot=fixture_snapshot, source="test-fixture"))
    return view_composer


def test_initial_view_is_loading(coordinator: SelectionCoordinator) -> None:
    view = ViewComposer(coordinator).compose()
    assert isinstance(view, LoadingView)
    assert view.message == LOADING_MESSAGE


def test_failed_load_renders_error_with_retry(coordinator: SelectionCoordinator) -> None:
    composer = ViewComposer(coordinator)
    composer.apply_load_result(LoadResult(snapshot=Snapshot(), source=None, error="All detection sources failed."))
    view = composer.compose()
    assert isinstance(view, ErrorView)
    assert view.heading == ERROR_TITLE
    assert view.message == "All detection sources failed."
    assert view.retry_label == "Retry"
    assert len(coordinator.snapshot) == 0


def test_tracker_view_lists_every_record(composer: ViewComposer) -> None:
    view = composer.compose()
    assert isinstance(view, TrackerView)
    assert view.heading == "Vessel Tracker"
    assert len(view.cards) == 6
    assert len(view.map.markers) == 6
    assert len(view.map.variants) == 6
    assert view.detail is None
    assert view.empty_message is None
    assert not any(card.selected for card in view.cards)
    assert view.map.center == (69.5, -105.0)
    assert view.map.zoom == 5
    assert view.map.info.ships_detected == 6


def test_list_card_content(fixture_snapshot: Snapshot) -> None:
    card = list_card(fixture_snapshot[0], 0, selected=False)
    assert card.title == "ARCTIC SHADOW"
    assert card.mmsi == "316054321"
    assert card.gap_duration == "3d 0h"
    assert card.risk_score == "94/100"
    assert card.position == "69.235°, -105.456°"

    orphan = list_card(fixture_snapshot[2], 2, selected=True)
    assert orphan.mmsi == "Unknown"
    assert orphan.gap_duration == "N/A"
    assert orphan.selected


def test_detail_card_content(fixture_snapshot: Snapshot) -> None:
    card = detail_card(fixture_snapshot[0], 0)
    assert card.label == "TARGET #000"
    assert card.status_badge == "THREAT CONFIRMED"
    assert card.confidence_pct == "94.3%"
    assert card.badge_tier == "high"
    assert card.gap_start == "Sep 18, 02:35 PM"
    assert card.gap_distance == "185.4 km"
    assert card.coordinates == "69.234800°N, 105.456200°W"
    assert card.zoom == 6
    assert card.visual.selected

    orphan = detail_card(fixture_snapshot[2], 2)
    assert orphan.status_badge == "ORPHAN CONTACT"
    assert orphan.gap_start is None
    assert orphan.gap_distance is None
    assert orphan.zoom == 7


def test_list_click_selects_and_composes_detail(
    composer: ViewComposer,
    camera_log: list[CameraInstruction],
) -> None:
    view = composer.dispatch(InteractionEvent(kind=EventKind.LIST_CLICK, index=4))
    assert isinstance(view, TrackerView)
    assert [card.selected for card in view.cards] == [False, False, False, False, True, False]
    assert view.map.markers[4].selected
    assert view.map.markers[4].size == 24
    assert view.map.markers[4].halo is not None
    assert view.detail is not None
    assert view.detail.title == "PHANTOM FISHER"
    assert len(camera_log) == 1


def test_marker_click_matches_list_click(composer: ViewComposer) -> None:
    view = composer.dispatch(InteractionEvent(kind=EventKind.MARKER_CLICK, index=1))
    assert composer.coordinator.selection == Selected(1)
    assert isinstance(view, TrackerView)
    assert view.detail is not None and view.detail.index == 1


def test_out_of_range_click_is_ignored(composer: ViewComposer) -> None:
    composer.dispatch(InteractionEvent(kind=EventKind.LIST_CLICK, index=0))
    view = composer.dispatch(InteractionEvent(kind=EventKind.MARKER_CLICK, index=42))
    assert composer.coordinator.selection == Selected(0)
    assert isinstance(view, TrackerView)


def test_click_while_loading_is_ignored(coordinator: SelectionCoordinator) -> None:
    composer = ViewComposer(coordinator)
    composer.dispatch(InteractionEvent(kind=EventKind.LIST_CLICK, index=0))
    assert coordinator.selection == UNSELECTED


def test_view_mode_switch_keeps_selection(composer: ViewComposer) -> None:
    composer.dispatch(InteractionEvent(kind=EventKind.LIST_CLICK, index=3))
    view = composer.dispatch(InteractionEvent(kind=EventKind.VIEW_MODE, mode=ViewMode.DASHBOARD))
    assert isinstance(view, DashboardView)
    assert composer.coordinator.selection == Selected(3)

    back = composer.dispatch(InteractionEvent(kind=EventKind.VIEW_MODE, mode=ViewMode.TRACKER))
    assert isinstance(back, TrackerView)
    assert back.detail is not None and back.detail.index == 3


def test_view_mode_event_requires_mode(composer: ViewComposer) -> None:
    with pytest.raises(ValueError):
        composer.dispatch(InteractionEvent(kind=EventKind.VIEW_MODE))


def test_dashboard_view_content(composer: ViewComposer) -> None:
    composer.coordinator.set_view_mode(ViewMode.DASHBOARD)
    view = composer.compose()
    assert isinstance(view, DashboardView)
    assert [(c.title, c.value, c.caption) for c in view.stat_cards] == [
        ("Total Threats", "6", "Active dark ships"),
        ("High Risk", "4", "Confidence > 80%"),
        ("Coverage Area", "Arctic", "Northwest Passage"),
        ("Avg Gap Time", "58h", "AIS silence duration"),
    ]
    assert [(s.label, s.value, s.active) for s in view.system_status] == [
        ("AIS Data Feed", "Online", True),
        ("SAR Imagery", "Offline", False),
        ("Satellite Feed", "Offline", False),
    ]
    assert len(view.metrics.recent_threats) == 3
    assert [bar.target_vessel for bar in view.gap_bars] == [
        "ARCTIC SHADOW",
        "NORTHERN GHOST",
        "ICE RUNNER",
        "PHANTOM FISHER",
        "ARCTIC WANDERER",
    ]
    assert view.gap_bars[0].color == "#dc2626"


def test_empty_snapshot_tracker_message(coordinator: SelectionCoordinator) -> None:
    composer = ViewComposer(coordinator)
    composer.apply_load_result(LoadResult(snapshot=Snapshot(), source="empty"))
    view = composer.compose()
    assert isinstance(view, TrackerView)
    assert view.cards == ()
    assert view.empty_message == "No vessels detected"


def test_snapshot_replacement_clears_selected_detail(composer: ViewComposer, fixture_snapshot: Snapshot) -> None:
    composer.dispatch(InteractionEvent(kind=EventKind.LIST_CLICK, index=2))
    composer.apply_load_result(LoadResult(snapshot=fixture_snapshot, source="refresh"))
    view = composer.compose()
    assert isinstance(view, TrackerView)
    assert view.detail is None


def test_retry_reloads_through_loader(coordinator: SelectionCoordinator, tmp_path: Path) -> None:
    primary = tmp_path / "ships.json"
    loader = SnapshotLoader(build_source_chain(str(primary), None, use_fixture=False))
    composer = ViewComposer(coordinator, loader=loader)

    composer.reload()
    assert composer.status is LoadStatus.FAILED
    assert isinstance(composer.compose(), ErrorView)

    primary.write_text(json.dumps({"dark_ships": [{"lat": 70.0, "lon": -120.0, "confidence": 0.9}]}), encoding="utf-8")
    view = composer.dispatch(InteractionEvent(kind=EventKind.RETRY))
    assert composer.status is LoadStatus.READY
    assert isinstance(view, TrackerView)
    assert len(view.cards) == 1


def test_retry_without_loader_raises(composer: ViewComposer) -> None:
    with pytest.raises(RuntimeError):
        composer.dispatch(InteractionEvent(kind=EventKind.RETRY))


def test_interaction_event_from_dict() -> None:
    event = InteractionEvent.from_dict({"kind": "view_mode", "mode": "dashboard"})
    assert event.kind is EventKind.VIEW_MODE
    assert event.mode is ViewMode.DASHBOARD
    click = InteractionEvent.from_dict({"kind": "marker_click", "index": 2})
    assert click.index == 2 and click.mode is None


def test_reload_async_uses_fixture(coordinator: SelectionCoordinator, tmp_path: Path) -> None:
    loader = SnapshotLoader(build_source_chain(str(tmp_path / "absent.json"), None))
    composer = ViewComposer(coordinator, loader=loader)
    result = asyncio.run(composer.reload_async())
    assert result.source == FIXTURE_SOURCE_NAME
    assert composer.status is LoadStatus.READY


def test_views_serialize(composer: ViewComposer) -> None:
    composer.dispatch(InteractionEvent(kind=EventKind.LIST_CLICK, index=0))
    payload = composer.compose().to_dict()
    assert payload["kind"] == "tracker"
    assert payload["detail"]["label"] == "TARGET #000"
    json.dumps(payload, default=str)
