from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, Mapping

import numpy as np


UNKNOWN_VESSEL = "UNKNOWN VESSEL"
PAYLOAD_KEY = "dark_ships"

LAT_RANGE = (-90.0, 90.0)
LON_RANGE = (-180.0, 180.0)
CONFIDENCE_RANGE = (0.0, 1.0)

GAP_TIME_FIELDS = ("gap_start_time", "gap_end_time")
GAP_POSITION_FIELDS = ("last_lat", "last_lon", "next_lat", "next_lon")


class InvalidRecord(ValueError):
    """Raised when a raw detection object cannot be turned into a DetectionRecord."""


class DetectionStatus(str, Enum):
    DARK_SHIP_CONFIRMED = "DARK_SHIP_CONFIRMED"
    ORPHAN_DETECTION = "ORPHAN_DETECTION"
    SUSPICIOUS = "SUSPICIOUS"

    @classmethod
    def parse(cls, value: Any) -> "DetectionStatus":
        normalized = str(value).strip().upper() if value is not None else ""
        try:
            return cls(normalized)
        except ValueError:
            return cls.SUSPICIOUS


@dataclass(frozen=True)
class DetectionRecord:
    lat: float
    lon: float
    confidence: float
    status: DetectionStatus = DetectionStatus.SUSPICIOUS
    target_vessel: str = UNKNOWN_VESSEL
    target_mmsi: int | None = None
    reason: str = ""
    gap_start_time: datetime | None = None
    gap_end_time: datetime | None = None
    last_lat: float | None = None
    last_lon: float | None = None
    next_lat: float | None = None
    next_lon: float | None = None
    distance_km: float | None = None

    @property
    def is_confirmed(self) -> bool:
        return self.status is DetectionStatus.DARK_SHIP_CONFIRMED

    @property
    def is_orphan(self) -> bool:
        return self.status is DetectionStatus.ORPHAN_DETECTION

    @property
    def has_gap_window(self) -> bool:
        return self.gap_start_time is not None and self.gap_end_time is not None

    @property
    def has_gap_endpoints(self) -> bool:
        return all(getattr(self, name) is not None for name in GAP_POSITION_FIELDS)

    @property
    def gap_hours(self) -> float | None:
        if self.gap_start_time is None or self.gap_end_time is None:
            return None
        return (self.gap_end_time - self.gap_start_time).total_seconds() / 3600.0

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the wire shape consumed by ``parse_record``."""
        payload: dict[str, Any] = {
            "lat": self.lat,
            "lon": self.lon,
            "confidence": self.confidence,
            "target_vessel": self.target_vessel,
            "target_mmsi": self.target_mmsi if self.target_mmsi is not None else 0,
            "reason": self.reason,
            "status": self.status.value,
            "gap_start_time": _format_timestamp(self.gap_start_time),
            "gap_end_time": _format_timestamp(self.gap_end_time),
        }
        if self.has_gap_endpoints:
            payload.update(
                last_lat=self.last_lat,
                last_lon=self.last_lon,
                next_lat=self.next_lat,
                next_lon=self.next_lon,
            )
        if self.distance_km is not None:
            payload["distance_km"] = self.distance_km
        return payload


def parse_record(raw: Mapping[str, Any]) -> DetectionRecord:
    if not isinstance(raw, Mapping):
        raise InvalidRecord(f"Detection must be an object, got {type(raw).__name__}.")

    lat = _required_float(raw, "lat", LAT_RANGE)
    lon = _required_float(raw, "lon", LON_RANGE)
    confidence = _required_float(raw, "confidence", CONFIDENCE_RANGE)

    present = [name for name in GAP_TIME_FIELDS + GAP_POSITION_FIELDS if raw.get(name) is not None]
    if present and len(present) != len(GAP_TIME_FIELDS) + len(GAP_POSITION_FIELDS):
        missing = [name for name in GAP_TIME_FIELDS + GAP_POSITION_FIELDS if name not in present]
        raise InvalidRecord(f"Gap tuple partially populated; missing {missing}.")

    gap_start = _optional_timestamp(raw, "gap_start_time")
    gap_end = _optional_timestamp(raw, "gap_end_time")
    if gap_start is not None and gap_end is not None and gap_end < gap_start:
        raise InvalidRecord("gap_end_time must not precede gap_start_time.")

    distance_km = _optional_float(raw, "distance_km")
    if distance_km is not None and distance_km < 0:
        raise InvalidRecord(f"distance_km must be >= 0, got {distance_km}.")

    vessel = raw.get("target_vessel")
    vessel_name = str(vessel).strip() if vessel is not None else ""
    reason = raw.get("reason")

    return DetectionRecord(
        lat=lat,
        lon=lon,
        confidence=confidence,
        status=DetectionStatus.parse(raw.get("status")),
        target_vessel=vessel_name or UNKNOWN_VESSEL,
        target_mmsi=_optional_mmsi(raw.get("target_mmsi")),
        reason=str(reason) if reason is not None else "",
        gap_start_time=gap_start,
        gap_end_time=gap_end,
        last_lat=_optional_float(raw, "last_lat", LAT_RANGE),
        last_lon=_optional_float(raw, "last_lon", LON_RANGE),
        next_lat=_optional_float(raw, "next_lat", LAT_RANGE),
        next_lon=_optional_float(raw, "next_lon", LON_RANGE),
        distance_km=distance_km,
    )


@dataclass(frozen=True)
class Snapshot:
    """Ordered, immutable collection of records; position is the selection index."""

    records: tuple[DetectionRecord, ...] = ()
    rejected: int = 0
    source: str | None = None

    @classmethod
    def from_records(
        cls,
        records: Iterable[DetectionRecord],
        source: str | None = None,
    ) -> "Snapshot":
        return cls(records=tuple(records), source=source)

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        source: str | None = None,
        on_reject: Callable[[int, InvalidRecord], None] | None = None,
    ) -> "Snapshot":
        raw_items = payload.get(PAYLOAD_KEY)
        if raw_items is None:
            raw_items = []
        if not isinstance(raw_items, list):
            raise InvalidRecord(f"'{PAYLOAD_KEY}' must be a list.")

        records: list[DetectionRecord] = []
        rejected = 0
        for idx, item in enumerate(raw_items):
            try:
                records.append(parse_record(item))
            except InvalidRecord as exc:
                rejected += 1
                if on_reject is not None:
                    on_reject(idx, exc)
        return cls(records=tuple(records), rejected=rejected, source=source)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[DetectionRecord]:
        return iter(self.records)

    def __getitem__(self, index: int) -> DetectionRecord:
        return self.records[index]

    def is_valid_index(self, index: int) -> bool:
        return 0 <= index < len(self.records)

    def to_payload(self) -> dict[str, Any]:
        return {PAYLOAD_KEY: [record.to_dict() for record in self.records]}


def _coerce_finite(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not np.isfinite(parsed):
        return None
    return parsed


def _check_range(name: str, value: float, bounds: tuple[float, float] | None) -> float:
    if bounds is not None and not bounds[0] <= value <= bounds[1]:
        raise InvalidRecord(f"{name}={value} outside [{bounds[0]}, {bounds[1]}].")
    return value


def _required_float(
    raw: Mapping[str, Any],
    name: str,
    bounds: tuple[float, float] | None = None,
) -> float:
    if raw.get(name) is None:
        raise InvalidRecord(f"Missing required field '{name}'.")
    parsed = _coerce_finite(raw[name])
    if parsed is None:
        raise InvalidRecord(f"Field '{name}' must be a finite number, got {raw[name]!r}.")
    return _check_range(name, parsed, bounds)


def _optional_float(
    raw: Mapping[str, Any],
    name: str,
    bounds: tuple[float, float] | None = None,
) -> float | None:
    if raw.get(name) is None:
        return None
    parsed = _coerce_finite(raw[name])
    if parsed is None:
        raise InvalidRecord(f"Field '{name}' must be a finite number, got {raw[name]!r}.")
    return _check_range(name, parsed, bounds)


def _optional_mmsi(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        mmsi = int(value)
    except (TypeError, ValueError):
        return None
    return mmsi if mmsi > 0 else None


def _optional_timestamp(raw: Mapping[str, Any], name: str) -> datetime | None:
    value = raw.get(name)
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidRecord(f"Field '{name}' is not an ISO-8601 timestamp: {value!r}.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
