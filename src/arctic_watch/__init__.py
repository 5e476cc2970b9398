"""arctic_watch package."""

from .config import RuntimeConfig, load_runtime_config
from .metrics import DashboardMetrics, compute_metrics
from .records import DetectionRecord, DetectionStatus, InvalidRecord, Snapshot, parse_record
from .selection import (
    CameraChannel,
    CameraInstruction,
    Selected,
    SelectionCoordinator,
    SelectionError,
    Unselected,
    ViewMode,
)
from .sources import (
    ARCTIC_FIXTURE,
    FileSource,
    FixtureSource,
    LoadResult,
    SnapshotLoader,
    SourceUnavailable,
    UrlSource,
    build_source_chain,
)
from .views import InteractionEvent, ViewComposer
from .visuals import MarkerVisual, derive_visual

__all__ = [
    "ARCTIC_FIXTURE",
    "CameraChannel",
    "CameraInstruction",
    "DashboardBuilder",
    "DashboardMetrics",
    "DetectionRecord",
    "DetectionStatus",
    "FileSource",
    "FixtureSource",
    "InteractionEvent",
    "InvalidRecord",
    "LoadResult",
    "MarkerVisual",
    "RuntimeConfig",
    "Selected",
    "SelectionCoordinator",
    "SelectionError",
    "Snapshot",
    "SnapshotLoader",
    "SourceUnavailable",
    "Unselected",
    "UrlSource",
    "ViewComposer",
    "ViewMode",
    "build_source_chain",
    "compute_metrics",
    "derive_visual",
    "load_runtime_config",
    "parse_record",
]


def __getattr__(name: str) -> object:
    if name == "DashboardBuilder":
        try:
            from .rendering import DashboardBuilder as _DashboardBuilder
        except ImportError as exc:
            raise ImportError(
                "DashboardBuilder requires report dependencies. "
                "Install with: pip install arctic-watch[report]"
            ) from exc
        return _DashboardBuilder
    raise AttributeError(name)
