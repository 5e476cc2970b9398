"""Self-contained HTML rendering of the composed Arctic Watch views.

Generates a single ``arctic_watch.html`` with:
  - Leaflet map of detections, confidence circles, AIS gap overlays and a selection halo
  - Vessel list cards and a detail card kept in sync with the map selection
  - Dashboard stat cards, recent threats, system status and a Plotly gap-duration chart

All marker visuals are precomputed in Python (unselected and selected variants);
the page only swaps between them and applies camera instructions.
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

try:
    from jinja2 import Template
except ImportError as exc:
    raise ImportError(
        "jinja2 is required for report generation: pip install jinja2"
    ) from exc

try:
    import plotly.graph_objects as go
except ImportError as exc:
    raise ImportError(
        "plotly is required for report generation: pip install plotly"
    ) from exc

from .logging_config import get_logger, log_event
from .selection import CameraInstruction, ViewMode
from .views import DashboardView, ErrorView, GapBar, TrackerView, ViewComposer, detail_card


LEAFLET_VERSION = "1.9.4"
_LEAFLET_IMAGES = f"https://unpkg.com/leaflet@{LEAFLET_VERSION}/dist/images"

THEME = {
    "bg_primary": "#0b1220",
    "bg_surface": "#111a2e",
    "bg_elevated": "#1a2640",
    "border": "rgba(148, 197, 255, 0.14)",
    "grid": "rgba(148, 197, 255, 0.08)",
    "text": "#e5edf7",
    "text_dim": "#8fa3bf",
    "accent": "#38bdf8",
}

CHART_GAP_HEIGHT = 320
DEFAULT_RERUN_COMMAND = "arctic-watch report"

_LOGGER = get_logger("arctic_watch.rendering")


class MarkerDefaultsError(RuntimeError):
    """Raised when the process-wide marker defaults are reconfigured with other values."""


@dataclass(frozen=True)
class MarkerDefaults:
    icon_url: str = f"{_LEAFLET_IMAGES}/marker-icon.png"
    icon_retina_url: str = f"{_LEAFLET_IMAGES}/marker-icon-2x.png"
    shadow_url: str = f"{_LEAFLET_IMAGES}/marker-shadow.png"

    def to_leaflet_options(self) -> dict[str, str]:
        return {
            "iconUrl": self.icon_url,
            "iconRetinaUrl": self.icon_retina_url,
            "shadowUrl": self.shadow_url,
        }


DEFAULT_MARKER_DEFAULTS = MarkerDefaults()

_marker_defaults: MarkerDefaults | None = None


def configure_marker_defaults(defaults: MarkerDefaults | None = None) -> MarkerDefaults:
    """Set the Leaflet default-icon options once per process.

    Repeating the call with equal values is a no-op; different values raise
    ``MarkerDefaultsError``.
    """
    global _marker_defaults
    resolved = defaults if defaults is not None else DEFAULT_MARKER_DEFAULTS
    if _marker_defaults is None:
        _marker_defaults = resolved
        log_event(_LOGGER, "debug", "marker_defaults_configured", icon_url=resolved.icon_url)
        return resolved
    if _marker_defaults != resolved:
        raise MarkerDefaultsError(
            "Marker defaults are already configured with different values."
        )
    return _marker_defaults


def _fmt_hours(value: float) -> str:
    return f"{value:.1f} h"


def _json_for_script(payload: Any) -> str:
    # keep embedded strings from closing the surrounding <script> element
    return json.dumps(payload, default=str).replace("</", "<\\/")


# ── Plotly helpers ────────────────────────────────────────────────────────────


def _axis(**kw: Any) -> dict[str, Any]:
    base: dict[str, Any] = {
        "gridcolor": THEME["grid"],
        "zerolinecolor": THEME["border"],
        "showgrid": True,
        "gridwidth": 1,
    }
    base.update(kw)
    return base


def _layout(**kw: Any) -> dict[str, Any]:
    base: dict[str, Any] = {
        "template": "plotly_dark",
        "paper_bgcolor": THEME["bg_surface"],
        "plot_bgcolor": THEME["bg_surface"],
        "font": dict(
            family="'Inter','Segoe UI',system-ui,sans-serif",
            color=THEME["text_dim"],
            size=13,
        ),
        "hoverlabel": dict(
            bgcolor=THEME["bg_elevated"],
            bordercolor=THEME["border"],
            font=dict(family="'IBM Plex Mono','Consolas',monospace", size=13, color=THEME["text"]),
        ),
        "showlegend": False,
        "margin": dict(l=55, r=20, t=35, b=90),
    }
    base.update(kw)
    return base


class DashboardBuilder:
    """Render the composer's views into one interactive HTML page.

    The builder attaches itself as the camera sink of the composer's
    coordinator, so a selection made before rendering frames the map.
    """

    def __init__(
        self,
        composer: ViewComposer,
        metadata: dict[str, Any] | None = None,
        marker_defaults: MarkerDefaults | None = None,
    ) -> None:
        self.composer = composer
        self.metadata = metadata or {}
        self.marker_defaults = configure_marker_defaults(marker_defaults)
        self.camera: CameraInstruction | None = None
        composer.coordinator.camera.attach(self._receive_camera)

    # ── Public API ────────────────────────────────────────────────────────

    def save_report(self, output_path: str | Path) -> Path:
        out = Path(output_path)
        out.write_text(self._render(), encoding="utf-8")
        return out

    # ── Private rendering ─────────────────────────────────────────────────

    def _receive_camera(self, instruction: CameraInstruction) -> None:
        self.camera = instruction

    def _render(self) -> str:
        coordinator = self.composer.coordinator
        view = self.composer.compose()
        ctx: dict[str, Any] = {
            "title": self.metadata.get("title", self.composer.title),
            "run_id": self.metadata.get("run_id", "arctic-watch"),
            "source": self.metadata.get("source") or "n/a",
            "generated_at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
            "kind": view.kind,
            "view": view,
            "rerun_command": self.metadata.get("rerun_command", DEFAULT_RERUN_COMMAND),
        }
        if isinstance(view, ErrorView) or view.kind == "loading":
            return Template(_TEMPLATE, autoescape=True).render(**ctx)

        # Both views are embedded so the page can switch modes without losing selection.
        tracker = view if isinstance(view, TrackerView) else self.composer.compose_tracker()
        dashboard = view if isinstance(view, DashboardView) else self.composer.compose_dashboard()
        snapshot = coordinator.snapshot
        details = [asdict(detail_card(record, idx)) for idx, record in enumerate(snapshot)]
        ctx.update(
            {
                "tracker": tracker,
                "dashboard": dashboard,
                "initial_mode": coordinator.view_mode.value,
                "tracker_mode": ViewMode.TRACKER.value,
                "dashboard_mode": ViewMode.DASHBOARD.value,
                "variants_json": _json_for_script([asdict(v) for v in tracker.map.variants]),
                "details_json": _json_for_script(details),
                "map_json": _json_for_script(
                    {"center": list(tracker.map.center), "zoom": tracker.map.zoom}
                ),
                "camera_json": _json_for_script(self.camera.to_dict() if self.camera else None),
                "selected_json": _json_for_script(coordinator.selected_index),
                "selection_zoom": int(coordinator.zoom),
                "marker_defaults_json": _json_for_script(self.marker_defaults.to_leaflet_options()),
                "gap_chart_json": self._chart_gap_durations(dashboard.gap_bars).to_json(),
            }
        )
        return Template(_TEMPLATE, autoescape=True).render(**ctx)

    # ── Chart: AIS gap durations ─────────────────────────────────────────

    def _chart_gap_durations(self, bars: tuple[GapBar, ...]) -> go.Figure:
        fig = go.Figure()
        fig.add_trace(
            go.Bar(
                x=[bar.target_vessel for bar in bars],
                y=[bar.gap_hours for bar in bars],
                marker=dict(color=[bar.color for bar in bars], line=dict(width=0)),
                text=[_fmt_hours(bar.gap_hours) for bar in bars],
                textposition="outside",
                customdata=[bar.index for bar in bars],
                hovertemplate="%{x}<br>AIS silence: %{y:.1f} h<extra></extra>",
                name="AIS gap",
            )
        )
        fig.update_layout(
            **_layout(
                height=CHART_GAP_HEIGHT,
                title=dict(text="AIS Gap Duration by Vessel", font=dict(size=14, color=THEME["text"])),
                xaxis=_axis(title="", tickangle=-25),
                yaxis=_axis(title="Hours", rangemode="tozero"),
            )
        )
        return fig


_TEMPLATE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<title>{{ title }}</title>
<link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css" crossorigin="">
<style>
:root{
  --bg:#0b1220;--surface:#111a2e;--elevated:#1a2640;
  --border:rgba(148,197,255,0.14);--tx:#e5edf7;--tx-dim:#8fa3bf;--tx-mut:#5b6b84;
  --accent:#38bdf8;--red:#dc2626;--orange:#ea580c;--amber:#f59e0b;--green:#10b981;
  --sans:'Inter','Segoe UI',system-ui,sans-serif;--mono:'IBM Plex Mono','Consolas',monospace;
}
*,*::before,*::after{box-sizing:border-box}
body{margin:0;background:var(--bg);color:var(--tx);font-family:var(--sans);height:100vh;overflow:hidden}
.top-header{height:56px;display:flex;align-items:center;justify-content:space-between;padding:0 20px;border-bottom:1px solid var(--border)}
.top-header h1{margin:0;font-size:1.15rem;letter-spacing:0.12em;text-transform:uppercase}
.meta{font-family:var(--mono);font-size:0.75rem;color:var(--tx-dim);text-align:right}
.meta span{display:block}
.app-layout{display:flex;height:calc(100vh - 56px)}
.left-sidebar{width:56px;border-right:1px solid var(--border);display:flex;flex-direction:column;align-items:center;padding-top:12px;gap:8px}
.nav-item{width:40px;height:40px;display:flex;align-items:center;justify-content:center;border-radius:8px;cursor:pointer;font-size:1.2rem}
.nav-item.active{background:var(--elevated);box-shadow:inset 0 0 0 1px var(--accent)}
.main-content{flex:1;display:flex;flex-direction:column;overflow:hidden;padding:12px 16px}
.content-header h1{margin:0 0 10px;font-size:1.05rem;color:var(--tx-dim);font-weight:600}
.view{display:none;flex:1;overflow:hidden}
.view.active{display:flex}
.content-layout{gap:14px}
.vessel-panel{width:360px;display:flex;flex-direction:column;overflow:hidden}
.vessel-panel h2,.map-header h2{font-size:0.95rem;margin:0 0 8px}
.vessel-list{overflow-y:auto;display:flex;flex-direction:column;gap:8px;padding-right:4px}
.vessel-card{background:var(--surface);border:1px solid var(--border);border-radius:8px;padding:10px 12px;cursor:pointer}
.vessel-card.selected{border-color:var(--accent);box-shadow:0 0 0 1px var(--accent)}
.vessel-header{display:flex;justify-content:space-between;align-items:baseline}
.vessel-header h3{margin:0;font-size:0.9rem}
.mmsi,.stat-label{font-size:0.72rem;color:var(--tx-dim)}
.vessel-stats{display:flex;gap:18px;margin-top:6px}
.stat{display:flex;flex-direction:column}
.stat-value,.risk-score{font-family:var(--mono);font-size:0.85rem}
.vessel-position h4{margin:8px 0 2px;font-size:0.72rem;color:var(--tx-dim);font-weight:500}
.vessel-position p{margin:0;font-family:var(--mono);font-size:0.8rem}
.no-vessels{color:var(--tx-mut);padding:20px;text-align:center}
.map-panel{flex:1;display:flex;flex-direction:column;overflow:hidden}
.map-header{display:flex;justify-content:space-between;align-items:center}
.toggle-btn{background:var(--surface);color:var(--tx);border:1px solid var(--border);border-radius:6px;padding:4px 10px;font-size:0.75rem;margin-left:4px}
.toggle-btn.active{border-color:var(--accent);color:var(--accent)}
.toggle-btn:disabled{opacity:0.4;cursor:not-allowed}
.map-wrapper{position:relative;flex:1;min-height:300px;border-radius:8px;overflow:hidden;border:1px solid var(--border)}
#map{position:absolute;inset:0}
.map-legend,.map-info{position:absolute;z-index:500;background:rgba(17,26,46,0.9);border:1px solid var(--border);border-radius:6px;padding:8px 10px;font-size:0.72rem}
.map-legend{bottom:12px;left:12px}
.map-legend h4{margin:0 0 4px;font-size:0.75rem}
.legend-item{display:flex;align-items:center;gap:6px;margin:2px 0}
.legend-marker{width:10px;height:10px;border-radius:50%;border:1px solid #fff}
.map-info{top:12px;right:12px}
.map-info div{margin:1px 0}
.dark-ship-marker div.ship-dot{border-radius:50%;display:flex;align-items:center;justify-content:center;color:#fff;position:relative}
.ship-dot.selected{animation:pulse 2s infinite}
.sel-badge{position:absolute;top:-2px;right:-2px;width:8px;height:8px;background:#10b981;border-radius:50%;border:1px solid #fff}
@keyframes pulse{0%{box-shadow:0 0 0 0 rgba(56,189,248,0.6)}70%{box-shadow:0 0 0 12px rgba(56,189,248,0)}100%{box-shadow:0 0 0 0 rgba(56,189,248,0)}}
.detail-card{margin-top:10px;background:var(--surface);border:1px solid var(--border);border-radius:8px;padding:10px 12px;font-size:0.8rem}
.detail-card h2{margin:0;font-size:0.9rem}
.ship-number{font-family:var(--mono);color:var(--accent)}
.status-badge{display:inline-block;padding:2px 8px;border-radius:4px;font-size:0.68rem;font-weight:700;letter-spacing:0.06em;color:#fff}
.confidence-badge.high{color:#fca5a5}.confidence-badge.medium{color:#fdba74}.confidence-badge.low{color:#cbd5e1}
.details-grid{display:grid;grid-template-columns:1fr 1fr;gap:4px 12px;margin-top:8px}
.details-grid label{color:var(--tx-dim);margin-right:4px}
.reason-text{margin-top:4px;color:var(--tx)}
.dashboard-layout{flex-direction:column;gap:14px;overflow-y:auto}
.stats-grid{display:grid;grid-template-columns:repeat(4,1fr);gap:12px}
.stat-card{background:var(--surface);border:1px solid var(--border);border-radius:8px;padding:12px}
.stat-card h3{margin:0;font-size:0.8rem;color:var(--tx-dim)}
.stat-number{font-family:var(--mono);font-size:1.6rem;font-weight:600;margin:4px 0}
.dashboard-content{display:grid;grid-template-columns:2fr 1fr;gap:12px}
.panel{background:var(--surface);border:1px solid var(--border);border-radius:8px;padding:12px}
.panel h3{margin:0 0 8px;font-size:0.9rem}
.threat-item{display:flex;align-items:center;gap:10px;padding:6px 0;border-bottom:1px solid var(--border)}
.threat-details{flex:1}
.threat-vessel{font-weight:600;font-size:0.85rem}
.threat-reason{font-size:0.75rem;color:var(--tx-dim)}
.threat-confidence{font-family:var(--mono)}
.status-item{display:flex;align-items:center;gap:8px;padding:4px 0;font-size:0.85rem}
.status-indicator{width:8px;height:8px;border-radius:50%;background:var(--tx-mut)}
.status-indicator.active{background:var(--green);box-shadow:0 0 6px var(--green)}
.status-value{margin-left:auto;color:var(--tx-dim)}
.centered{flex:1;display:flex;flex-direction:column;align-items:center;justify-content:center;gap:10px}
.retry-hint{color:var(--tx-dim)}
.retry-hint code{font-family:var(--mono);color:var(--accent);background:var(--elevated);padding:2px 6px;border-radius:4px}
</style>
</head>
<body>
<header class="top-header">
  <h1>{{ title }}</h1>
  <div class="meta"><span>{{ run_id }}</span><span>source: {{ source }}</span><span>{{ generated_at }}</span></div>
</header>

{% if kind == "error" %}
<div class="centered">
  <h1>{{ view.heading }}</h1>
  <p>{{ view.message }}</p>
  <p class="retry-hint">{{ view.retry_label }}: re-run <code>{{ rerun_command }}</code> to query the sources again.</p>
</div>
{% elif kind == "loading" %}
<div class="centered"><p>{{ view.message }}</p></div>
{% else %}
<div class="app-layout">
  <aside class="left-sidebar">
    <div class="nav-item{% if initial_mode == tracker_mode %} active{% endif %}" data-mode="{{ tracker_mode }}" title="Vessel Tracker">&#x1F6A2;</div>
    <div class="nav-item{% if initial_mode == dashboard_mode %} active{% endif %}" data-mode="{{ dashboard_mode }}" title="Dashboard">&#x1F4CA;</div>
  </aside>
  <main class="main-content">
    <div class="content-header"><h1 id="view-heading">{% if initial_mode == dashboard_mode %}{{ dashboard.heading }}{% else %}{{ tracker.heading }}{% endif %}</h1></div>

    <section class="view content-layout{% if initial_mode == tracker_mode %} active{% endif %}" id="view-{{ tracker_mode }}" data-heading="{{ tracker.heading }}">
      <div class="vessel-panel">
        <h2>Vessel Risk Assessment</h2>
        <div class="vessel-list">
          {% for card in tracker.cards %}
          <div class="vessel-card{% if card.selected %} selected{% endif %}" data-idx="{{ card.index }}">
            <div class="vessel-header">
              <h3>{{ card.title }}</h3>
              <span class="mmsi">MMSI: {{ card.mmsi }}</span>
            </div>
            <div class="vessel-stats">
              <div class="stat"><span class="stat-label">Gap Duration</span><span class="stat-value">{{ card.gap_duration }}</span></div>
              <div class="stat"><span class="stat-label">Risk Score</span><span class="risk-score">{{ card.risk_score }}</span></div>
            </div>
            <div class="vessel-position">
              <h4>Last Known Position</h4>
              <p>{{ card.position }}</p>
            </div>
          </div>
          {% else %}
          <div class="no-vessels"><p>{{ tracker.empty_message }}</p></div>
          {% endfor %}
        </div>
        <div class="detail-card" id="detail-card" {% if tracker.detail is none %}hidden{% endif %}></div>
      </div>

      <div class="map-panel">
        <div class="map-header">
          <h2>Maritime Map</h2>
          <div class="view-toggles">
            {% for toggle in tracker.map.toggles %}
            <button class="toggle-btn{% if toggle.active %} active{% endif %}" {% if not toggle.enabled %}disabled title="{{ toggle.hint }}"{% endif %}>{{ toggle.label }}</button>
            {% endfor %}
          </div>
        </div>
        <div class="map-wrapper">
          <div id="map"></div>
          <div class="map-legend">
            <h4>Legend</h4>
            {% for entry in tracker.map.legend %}
            <div class="legend-item"><div class="legend-marker" style="background:{{ entry.color }}"></div><span>{{ entry.label }}</span></div>
            {% endfor %}
          </div>
          <div class="map-info">
            <div><strong>Region:</strong> {{ tracker.map.info.region }}</div>
            <div><strong>Ships Detected:</strong> {{ tracker.map.info.ships_detected }}</div>
            <div><strong>Coverage:</strong> {{ tracker.map.info.coverage }}</div>
          </div>
        </div>
      </div>
    </section>

    <section class="view dashboard-layout{% if initial_mode == dashboard_mode %} active{% endif %}" id="view-{{ dashboard_mode }}" data-heading="{{ dashboard.heading }}">
      <div class="stats-grid">
        {% for card in dashboard.stat_cards %}
        <div class="stat-card">
          <h3>{{ card.title }}</h3>
          <div class="stat-number">{{ card.value }}</div>
          <div class="stat-label">{{ card.caption }}</div>
        </div>
        {% endfor %}
      </div>
      <div class="dashboard-content">
        <div class="panel">
          <h3>Recent Threat Activity</h3>
          {% for threat in dashboard.metrics.recent_threats %}
          <div class="threat-item" data-idx="{{ threat.index }}">
            <div class="threat-icon">{{ threat.glyph }}</div>
            <div class="threat-details">
              <div class="threat-vessel">{{ threat.target_vessel }}</div>
              <div class="threat-reason">{{ threat.reason }}</div>
            </div>
            <div class="threat-confidence">{{ threat.confidence_pct }}</div>
          </div>
          {% endfor %}
        </div>
        <div class="panel">
          <h3>System Status</h3>
          {% for item in dashboard.system_status %}
          <div class="status-item">
            <span class="status-indicator{% if item.active %} active{% endif %}"></span>
            <span>{{ item.label }}</span>
            <span class="status-value">{{ item.value }}</span>
          </div>
          {% endfor %}
        </div>
      </div>
      <div class="panel"><div id="chart-gaps"></div></div>
    </section>
  </main>
</div>

<script src="https://cdn.plot.ly/plotly-2.35.2.min.js" charset="utf-8"></script>
<script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js" crossorigin=""></script>
<script>
(function(){
  /* ── Data ── */
  var VARIANTS = {{ variants_json | safe }};
  var DETAILS = {{ details_json | safe }};
  var MAP = {{ map_json | safe }};
  var CAMERA = {{ camera_json | safe }};
  var SELECTION_ZOOM = {{ selection_zoom }};
  var selected = {{ selected_json | safe }};
  var cfg = {responsive:true, displayModeBar:false};

  L.Icon.Default.mergeOptions({{ marker_defaults_json | safe }});

  /* ── Leaflet Map ── */
  var lmap = L.map('map', {zoomControl:true, scrollWheelZoom:true}).setView(MAP.center, MAP.zoom);
  L.tileLayer('https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png', {
    attribution:'&copy; OpenStreetMap contributors'
  }).addTo(lmap);
  L.tileLayer('https://server.arcgisonline.com/ArcGIS/rest/services/Ocean/World_Ocean_Base/MapServer/tile/{z}/{y}/{x}', {
    attribution:'ESRI', opacity:0.3
  }).addTo(lmap);

  function shipIcon(v){
    var html = '<div class="ship-dot' + (v.selected ? ' selected' : '') + '" style="background:' + v.color +
      ';width:' + v.size + 'px;height:' + v.size + 'px;border:' + v.border_px + 'px solid #ffffff;font-size:' +
      Math.floor(v.size * 0.5) + 'px">' + v.glyph + (v.selected ? '<span class="sel-badge"></span>' : '') + '</div>';
    return L.divIcon({className:'dark-ship-marker', html:html, iconSize:[v.size, v.size],
      iconAnchor:[v.size / 2, v.size / 2], popupAnchor:[0, -v.size / 2]});
  }
  function circle(c){
    return L.circle([c.lat, c.lon], {radius:c.radius_m, color:c.color, fillColor:c.color,
      fillOpacity:c.fill_opacity, weight:c.weight, opacity:c.opacity});
  }
  function gapLayer(g){
    var group = L.layerGroup();
    [g.lost, g.restored].forEach(function(p){
      var parts = ['<strong>' + esc(p.label) + '</strong>'];
      if (p.timestamp) parts.push(esc(p.timestamp));
      if (p.distance) parts.push('Gap distance: ' + esc(p.distance));
      L.circleMarker([p.lat, p.lon], {radius:p.size / 2, color:'#ffffff', weight:2, fillColor:p.color, fillOpacity:1})
        .bindPopup(parts.join('<br>')).addTo(group);
    });
    L.polyline(g.path, {color:g.color, weight:g.weight, opacity:g.opacity, dashArray:g.dash_array}).addTo(group);
    return group;
  }

  var markers = [];
  var halo = null;
  VARIANTS.forEach(function(pair, idx){
    var v = idx === selected ? pair.selected : pair.unselected;
    circle(v.confidence_circle).addTo(lmap);
    if (v.gap_overlay) gapLayer(v.gap_overlay).addTo(lmap);
    var m = L.marker([v.lat, v.lon], {icon:shipIcon(v)}).addTo(lmap);
    m.bindPopup('<strong>' + esc(DETAILS[idx].title) + '</strong><br>' + esc(v.popup_title));
    m.on('click', function(){ select(idx); });
    markers.push(m);
  });

  function esc(s){
    return String(s == null ? '' : s).replace(/[&<>"]/g, function(ch){
      return {'&':'&amp;','<':'&lt;','>':'&gt;','"':'&quot;'}[ch];
    });
  }
  function renderDetail(idx){
    var el = document.getElementById('detail-card');
    if (idx === null) { el.hidden = true; return; }
    var d = DETAILS[idx];
    var rows = ['<div><label>MMSI:</label>' + esc(d.mmsi) + '</div>',
                '<div><label>Detection Confidence:</label><span class="confidence-badge ' + d.badge_tier + '">' + esc(d.confidence_pct) + '</span></div>'];
    if (d.gap_start) rows.push('<div><label>AIS Gap Start:</label>' + esc(d.gap_start) + '</div>');
    if (d.gap_end) rows.push('<div><label>AIS Gap End:</label>' + esc(d.gap_end) + '</div>');
    if (d.gap_distance) rows.push('<div><label>Gap Distance:</label>' + esc(d.gap_distance) + '</div>');
    el.innerHTML = '<h2><span class="ship-number">' + esc(d.label) + '</span> &bull; ' + esc(d.title) + '</h2>' +
      '<span class="status-badge" style="background:' + d.status_color + '">' + esc(d.status_badge) + '</span> ' +
      '<span>' + esc(d.status_text) + '</span>' +
      '<div class="details-grid">' + rows.join('') + '</div>' +
      '<div><label>&#x26A0;&#xFE0F; THREAT ASSESSMENT:</label><div class="reason-text">' + esc(d.assessment) + '</div></div>' +
      '<div class="mmsi">&#x1F4CD; ' + esc(d.coordinates) + '</div>';
    el.hidden = false;
  }

  /* ── Selection (mirrors the coordinator: idempotent, camera on change only) ── */
  function applyCamera(c){
    lmap.setView([c.lat, c.lon], c.zoom, {animate:c.animated});
  }
  function select(idx){
    if (idx === selected || idx < 0 || idx >= VARIANTS.length) return;
    var prev = selected;
    selected = idx;
    if (prev !== null) markers[prev].setIcon(shipIcon(VARIANTS[prev].unselected));
    var v = VARIANTS[idx].selected;
    markers[idx].setIcon(shipIcon(v));
    if (halo) lmap.removeLayer(halo);
    halo = circle(v.halo).addTo(lmap);
    document.querySelectorAll('.vessel-card').forEach(function(el){
      el.classList.toggle('selected', Number(el.dataset.idx) === idx);
    });
    renderDetail(idx);
    applyCamera({lat:v.lat, lon:v.lon, zoom:SELECTION_ZOOM, animated:true});
  }
  document.querySelectorAll('.vessel-card').forEach(function(el){
    el.addEventListener('click', function(){ select(Number(el.dataset.idx)); });
  });

  if (selected !== null) {
    halo = circle(VARIANTS[selected].selected.halo).addTo(lmap);
    renderDetail(selected);
  }
  if (CAMERA) applyCamera(CAMERA);

  /* ── Plotly: gap durations ── */
  var gapData = {{ gap_chart_json | safe }};
  var gapEl = document.getElementById('chart-gaps');
  Plotly.newPlot(gapEl, gapData.data, gapData.layout, cfg);

  /* ── View mode (never touches selection) ── */
  document.querySelectorAll('.nav-item').forEach(function(nav){
    nav.addEventListener('click', function(){
      var mode = nav.dataset.mode;
      document.querySelectorAll('.nav-item').forEach(function(n){ n.classList.toggle('active', n === nav); });
      document.querySelectorAll('.view').forEach(function(v){
        var on = v.id === 'view-' + mode;
        v.classList.toggle('active', on);
        if (on) document.getElementById('view-heading').textContent = v.dataset.heading;
      });
      setTimeout(function(){ lmap.invalidateSize(); Plotly.Plots.resize(gapEl); }, 50);
    });
  });
})();
</script>
{% endif %}
</body>
</html>
"""
