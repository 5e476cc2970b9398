from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .logging_config import get_logger, log_event
from .records import DetectionRecord, Snapshot


DEFAULT_SELECTION_ZOOM = 8

_LOGGER = get_logger("arctic_watch.selection")


class SelectionError(IndexError):
    """Raised when a click references a position outside the current snapshot."""


class ViewMode(str, Enum):
    TRACKER = "tracker"
    DASHBOARD = "dashboard"


class SelectionOrigin(str, Enum):
    LIST = "list"
    MAP = "map"


@dataclass(frozen=True)
class Unselected:
    def to_dict(self) -> dict[str, Any]:
        return {"state": "unselected"}


@dataclass(frozen=True)
class Selected:
    index: int

    def to_dict(self) -> dict[str, Any]:
        return {"state": "selected", "index": self.index}


UNSELECTED = Unselected()


@dataclass(frozen=True)
class CameraInstruction:
    lat: float
    lon: float
    zoom: int
    animated: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"lat": self.lat, "lon": self.lon, "zoom": self.zoom, "animated": self.animated}


class CameraChannel:
    """Fire-and-forget delivery of camera instructions to the map renderer.

    Instructions emitted while no sink is attached are dropped, not queued.
    """

    def __init__(self) -> None:
        self._sink: Callable[[CameraInstruction], None] | None = None
        self.last_delivered: CameraInstruction | None = None

    @property
    def ready(self) -> bool:
        return self._sink is not None

    def attach(self, sink: Callable[[CameraInstruction], None]) -> None:
        self._sink = sink

    def detach(self) -> None:
        self._sink = None

    def emit(self, instruction: CameraInstruction) -> bool:
        if self._sink is None:
            log_event(
                _LOGGER,
                "debug",
                "camera_instruction_dropped",
                lat=instruction.lat,
                lon=instruction.lon,
            )
            return False
        try:
            self._sink(instruction)
        except Exception as exc:
            log_event(
                _LOGGER,
                "warning",
                "camera_sink_failed",
                lat=instruction.lat,
                lon=instruction.lon,
                error=str(exc),
            )
            return False
        self.last_delivered = instruction
        return True


@dataclass(frozen=True)
class DashboardState:
    snapshot: Snapshot = field(default_factory=Snapshot)
    selection: Unselected | Selected = UNSELECTED
    view_mode: ViewMode = ViewMode.TRACKER

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshot": self.snapshot.to_payload(),
            "selection": self.selection.to_dict(),
            "view_mode": self.view_mode.value,
        }


class SelectionCoordinator:
    def __init__(
        self,
        snapshot: Snapshot | None = None,
        camera: CameraChannel | None = None,
        zoom: int = DEFAULT_SELECTION_ZOOM,
    ) -> None:
        if zoom <= 0:
            raise ValueError("zoom must be > 0.")
        self.camera = camera if camera is not None else CameraChannel()
        self.zoom = int(zoom)
        self._state = DashboardState(snapshot=snapshot if snapshot is not None else Snapshot())

    @property
    def state(self) -> DashboardState:
        return self._state

    @property
    def snapshot(self) -> Snapshot:
        return self._state.snapshot

    @property
    def selection(self) -> Unselected | Selected:
        return self._state.selection

    @property
    def view_mode(self) -> ViewMode:
        return self._state.view_mode

    @property
    def selected_index(self) -> int | None:
        selection = self._state.selection
        return selection.index if isinstance(selection, Selected) else None

    def selected_record(self) -> DetectionRecord | None:
        index = self.selected_index
        return None if index is None else self.snapshot[index]

    def is_selected(self, index: int) -> bool:
        return self.selected_index == index

    def select_from_list(self, index: int) -> Unselected | Selected:
        return self._select(index, SelectionOrigin.LIST)

    def select_from_map(self, index: int) -> Unselected | Selected:
        return self._select(index, SelectionOrigin.MAP)

    def replace_snapshot(self, snapshot: Snapshot) -> None:
        previous = self.selected_index
        self._state = DashboardState(
            snapshot=snapshot,
            selection=UNSELECTED,
            view_mode=self._state.view_mode,
        )
        log_event(
            _LOGGER,
            "info",
            "snapshot_replaced",
            records=len(snapshot),
            source=snapshot.source,
            cleared_selection=previous,
        )

    def set_view_mode(self, mode: ViewMode | str) -> ViewMode:
        resolved = ViewMode(mode)
        self._state = DashboardState(
            snapshot=self._state.snapshot,
            selection=self._state.selection,
            view_mode=resolved,
        )
        return resolved

    def _select(self, index: int, origin: SelectionOrigin) -> Unselected | Selected:
        if isinstance(index, bool) or not isinstance(index, int):
            raise SelectionError(f"Selection index must be an integer, got {index!r}.")
        if not self.snapshot.is_valid_index(index):
            raise SelectionError(
                f"Selection index {index} outside snapshot of {len(self.snapshot)} records."
            )

        if self.selected_index == index:
            return self._state.selection

        selection = Selected(index)
        self._state = DashboardState(
            snapshot=self._state.snapshot,
            selection=selection,
            view_mode=self._state.view_mode,
        )
        record = self.snapshot[index]
        log_event(
            _LOGGER,
            "info",
            "selection_changed",
            index=index,
            origin=origin.value,
            target_vessel=record.target_vessel,
        )
        self.camera.emit(CameraInstruction(lat=record.lat, lon=record.lon, zoom=self.zoom))
        return selection
