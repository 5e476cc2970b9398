"""Tests for rendering module: marker defaults, DashboardBuilder and chart helpers."""
from __future__ import annotations

import json
from pathlib import Path

import plotly.graph_objects as go
import pytest

from arctic_watch import rendering
from arctic_watch.records import Snapshot
from arctic_watch.rendering import (
    DEFAULT_MARKER_DEFAULTS,
    DashboardBuilder,
    MarkerDefaults,
    MarkerDefaultsError,
    _axis,
    _json_for_script,
    _layout,
    configure_marker_defaults,
)
from arctic_watch.selection import SelectionCoordinator, ViewMode
from arctic_watch.sources import LoadResult
from arctic_watch.views import ViewComposer, gap_bars


@pytest.fixture(autouse=True)
def _fresh_marker_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(rendering, "_marker_defaults", None)


@pytest.fixture
def ready_composer(fixture_snapshot: Snapshot) -> ViewComposer:
    composer = ViewComposer(SelectionCoordinator())
    composer.apply_load_result(LoadResult(snapshot=fixture_snapshot, source="test-fixture"))
    return composer


# ── Marker defaults ───────────────────────────────────────────────────────────


def test_configure_marker_defaults_is_set_once() -> None:
    first = configure_marker_defaults()
    assert first == DEFAULT_MARKER_DEFAULTS
    assert configure_marker_defaults(MarkerDefaults()) is first


def test_configure_marker_defaults_rejects_different_values() -> None:
    configure_marker_defaults()
    with pytest.raises(MarkerDefaultsError):
        configure_marker_defaults(MarkerDefaults(icon_url="https://tiles.example/icon.png"))


def test_marker_defaults_leaflet_options() -> None:
    options = DEFAULT_MARKER_DEFAULTS.to_leaflet_options()
    assert set(options) == {"iconUrl", "iconRetinaUrl", "shadowUrl"}
    assert options["iconUrl"].endswith("marker-icon.png")


# ── Helpers ───────────────────────────────────────────────────────────────────


def test_layout_and_axis_merge_overrides() -> None:
    layout = _layout(height=200)
    assert layout["height"] == 200
    assert layout["template"] == "plotly_dark"
    axis = _axis(title="Hours")
    assert axis["title"] == "Hours"
    assert axis["showgrid"] is True


def test_json_for_script_escapes_closing_tags() -> None:
    text = _json_for_script({"reason": "</script><b>x</b>"})
    assert "</script>" not in text
    assert json.loads(text) == {"reason": "</script><b>x</b>"}


# ── DashboardBuilder ──────────────────────────────────────────────────────────


def test_gap_chart_has_one_bar_per_gap(ready_composer: ViewComposer, fixture_snapshot: Snapshot) -> None:
    builder = DashboardBuilder(ready_composer)
    fig = builder._chart_gap_durations(gap_bars(fixture_snapshot))
    assert isinstance(fig, go.Figure)
    assert len(fig.data) == 1
    assert list(fig.data[0].x) == [
        "ARCTIC SHADOW",
        "NORTHERN GHOST",
        "ICE RUNNER",
        "PHANTOM FISHER",
        "ARCTIC WANDERER",
    ]
    assert fig.data[0].y[0] == pytest.approx(72.31)


def test_save_report_tracker(ready_composer: ViewComposer, tmp_path: Path) -> None:
    out = DashboardBuilder(ready_composer, metadata={"run_id": "render-test"}).save_report(
        tmp_path / "report.html"
    )
    html = out.read_text(encoding="utf-8")
    assert html.startswith("<!DOCTYPE html>")
    assert "render-test" in html
    assert "Vessel Risk Assessment" in html
    assert "ARCTIC SHADOW" in html
    assert "MMSI: Unknown" in html
    assert "3d 0h" in html
    assert "Recent Threat Activity" in html
    assert "58h" in html
    assert "L.Icon.Default.mergeOptions" in html
    assert "leaflet@1.9.4" in html
    assert "var CAMERA = null;" in html
    assert "var selected = null;" in html


def test_save_report_honors_camera_from_selection(ready_composer: ViewComposer, tmp_path: Path) -> None:
    builder = DashboardBuilder(ready_composer)
    ready_composer.coordinator.select_from_list(1)
    assert builder.camera is not None
    assert builder.camera.zoom == 8

    html = builder.save_report(tmp_path / "selected.html").read_text(encoding="utf-8")
    assert "var selected = 1;" in html
    assert '"lat": 70.1234' in html
    assert "<div class=\"vessel-card selected\" data-idx=\"1\">" in html


def test_save_report_dashboard_mode(ready_composer: ViewComposer, tmp_path: Path) -> None:
    ready_composer.coordinator.set_view_mode(ViewMode.DASHBOARD)
    html = DashboardBuilder(ready_composer).save_report(tmp_path / "dash.html").read_text(encoding="utf-8")
    assert 'id="view-dashboard" data-heading="Dashboard"' in html
    assert "dashboard-layout active" in html
    assert "AIS Data Feed" in html


def test_save_report_error_view(tmp_path: Path) -> None:
    composer = ViewComposer(SelectionCoordinator())
    composer.apply_load_result(LoadResult(snapshot=Snapshot(), source=None, error="All detection sources failed."))
    html = DashboardBuilder(composer).save_report(tmp_path / "error.html").read_text(encoding="utf-8")
    assert "Error Loading Dark Ship Data" in html
    assert "All detection sources failed." in html
    assert "Retry: re-run <code>arctic-watch report</code>" in html
    assert "window.location.reload" not in html
    assert "L.map" not in html


def test_error_view_shows_supplied_rerun_command(tmp_path: Path) -> None:
    composer = ViewComposer(SelectionCoordinator())
    composer.apply_load_result(LoadResult(snapshot=Snapshot(), source=None, error="All detection sources failed."))
    builder = DashboardBuilder(composer, metadata={"rerun_command": "arctic-watch report --no-fixture"})
    html = builder.save_report(tmp_path / "error.html").read_text(encoding="utf-8")
    assert "<code>arctic-watch report --no-fixture</code>" in html


def test_save_report_escapes_record_text(tmp_path: Path) -> None:
    snapshot = Snapshot.from_payload(
        {
            "dark_ships": [
                {"lat": 70.0, "lon": -120.0, "confidence": 0.5, "target_vessel": "<img src=x onerror=alert(1)>"}
            ]
        }
    )
    composer = ViewComposer(SelectionCoordinator())
    composer.apply_load_result(LoadResult(snapshot=snapshot, source="test"))
    html = DashboardBuilder(composer).save_report(tmp_path / "escaped.html").read_text(encoding="utf-8")
    assert "<h3>&lt;img src=x onerror=alert(1)&gt;</h3>" in html
    assert "<img src=x" not in html.split("<script>")[0]
    assert "m.bindPopup('<strong>' + esc(DETAILS[idx].title) + '</strong><br>' + esc(v.popup_title));" in html
    assert "DETAILS[idx].title + " not in html
    assert "parts.push(esc(p.timestamp));" in html
    assert "'Gap distance: ' + esc(p.distance)" in html
    assert "'<strong>' + esc(p.label) + '</strong>'" in html
