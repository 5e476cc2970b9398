from __future__ import annotations

import asyncio
import copy
import json
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol, Sequence

from .logging_config import get_logger, log_event
from .records import InvalidRecord, Snapshot


DEFAULT_PRIMARY_SOURCE = "data/arctic_dark_ships.json"
DEFAULT_SECONDARY_SOURCE = "data/dark_ship_report.json"
DEFAULT_TIMEOUT_SEC = 10.0
FIXTURE_SOURCE_NAME = "builtin:arctic-fixture"
EXHAUSTED_MESSAGE = "All detection sources failed."

_LOGGER = get_logger("arctic_watch.sources")


# Canonical demo dataset: Canadian Arctic / Northwest Passage.
ARCTIC_FIXTURE: dict[str, Any] = {
    "dark_ships": [
        {
            "lat": 69.2348,
            "lon": -105.4562,
            "confidence": 0.943,
            "target_vessel": "ARCTIC SHADOW",
            "target_mmsi": 316054321,
            "reason": "Gap: 72.3 hours in Northwest Passage shipping lane",
            "status": "DARK_SHIP_CONFIRMED",
            "gap_start_time": "2025-09-18T14:35:02Z",
            "gap_end_time": "2025-09-21T14:53:47Z",
            "last_lat": 69.8234,
            "last_lon": -107.2341,
            "next_lat": 69.2348,
            "next_lon": -105.4562,
            "distance_km": 185.4,
        },
        {
            "lat": 70.1234,
            "lon": -108.7865,
            "confidence": 0.887,
            "target_vessel": "NORTHERN GHOST",
            "target_mmsi": 316098765,
            "reason": "Distance jump: 450.7 km, Transponder disabled in Beaufort Sea",
            "status": "DARK_SHIP_CONFIRMED",
            "gap_start_time": "2025-09-19T08:22:15Z",
            "gap_end_time": "2025-09-20T19:45:33Z",
            "last_lat": 71.4567,
            "last_lon": -112.3456,
            "next_lat": 70.1234,
            "next_lon": -108.7865,
            "distance_km": 450.7,
        },
        {
            "lat": 68.7654,
            "lon": -140.2341,
            "confidence": 0.812,
            "target_vessel": "UNKNOWN VESSEL",
            "target_mmsi": 0,
            "reason": "Unidentified vessel detected in Beaufort Sea, no AIS response",
            "status": "ORPHAN_DETECTION",
            "gap_start_time": None,
            "gap_end_time": None,
        },
        {
            "lat": 69.4567,
            "lon": -133.8901,
            "confidence": 0.756,
            "target_vessel": "ICE RUNNER",
            "target_mmsi": 316012345,
            "reason": "Gap: 48.7 hours, last seen near Tuktoyaktuk shipping lanes",
            "status": "DARK_SHIP_CONFIRMED",
            "gap_start_time": "2025-09-17T23:12:44Z",
            "gap_end_time": "2025-09-20T00:05:18Z",
            "last_lat": 69.1234,
            "last_lon": -135.6789,
            "next_lat": 69.4567,
            "next_lon": -133.8901,
            "distance_km": 215.3,
        },
        {
            "lat": 74.0123,
            "lon": -110.5678,
            "confidence": 0.923,
            "target_vessel": "PHANTOM FISHER",
            "target_mmsi": 316087654,
            "reason": "Gap: 96.2 hours, impossible speed through Northwest Passage",
            "status": "DARK_SHIP_CONFIRMED",
            "gap_start_time": "2025-09-16T12:45:22Z",
            "gap_end_time": "2025-09-20T12:57:11Z",
            "last_lat": 72.8765,
            "last_lon": -115.4321,
            "next_lat": 74.0123,
            "next_lon": -110.5678,
            "distance_km": 523.8,
        },
        {
            "lat": 68.3456,
            "lon": -125.6789,
            "confidence": 0.689,
            "target_vessel": "ARCTIC WANDERER",
            "target_mmsi": 316065432,
            "reason": "Transponder disabled for 38.4 hours in Amundsen Gulf",
            "status": "DARK_SHIP_CONFIRMED",
            "gap_start_time": "2025-09-19T16:33:55Z",
            "gap_end_time": "2025-09-21T06:57:12Z",
            "last_lat": 68.9876,
            "last_lon": -128.3456,
            "next_lat": 68.3456,
            "next_lon": -125.6789,
            "distance_km": 287.6,
        },
    ]
}


class SourceUnavailable(RuntimeError):
    """Raised when a record source cannot produce a structurally valid payload."""


class RecordSource(Protocol):
    name: str

    def fetch(self) -> Mapping[str, Any]:
        ...


def _decode_payload(raw: bytes | str, name: str) -> dict[str, Any]:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SourceUnavailable(f"{name}: invalid JSON ({exc}).") from exc
    if not isinstance(payload, dict):
        raise SourceUnavailable(
            f"{name}: expected a JSON object, got {type(payload).__name__}."
        )
    return payload


class FileSource:
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        self.name = str(self.path)

    def fetch(self) -> Mapping[str, Any]:
        try:
            raw = self.path.read_bytes()
        except OSError as exc:
            raise SourceUnavailable(f"{self.name}: {exc}") from exc
        return _decode_payload(raw, self.name)


class UrlSource:
    def __init__(self, url: str, timeout_sec: float = DEFAULT_TIMEOUT_SEC) -> None:
        if timeout_sec <= 0:
            raise ValueError("timeout_sec must be > 0.")
        self.url = url
        self.name = url
        self.timeout_sec = float(timeout_sec)

    def fetch(self) -> Mapping[str, Any]:
        request = urllib.request.Request(
            self.url,
            headers={"Accept": "application/json"},
            method="GET",
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout_sec) as response:
                status = getattr(response, "status", 200)
                if not 200 <= int(status) < 300:
                    raise SourceUnavailable(f"{self.name}: HTTP {status}.")
                body = response.read()
        except urllib.error.HTTPError as exc:
            raise SourceUnavailable(f"{self.name}: HTTP {exc.code}.") from exc
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            raise SourceUnavailable(f"{self.name}: {exc}") from exc
        return _decode_payload(body, self.name)


class FixtureSource:
    def __init__(self, payload: Mapping[str, Any] | None = None) -> None:
        self.payload = payload if payload is not None else ARCTIC_FIXTURE
        self.name = FIXTURE_SOURCE_NAME

    def fetch(self) -> Mapping[str, Any]:
        return copy.deepcopy(dict(self.payload))


def source_from_location(location: str, timeout_sec: float = DEFAULT_TIMEOUT_SEC) -> RecordSource:
    stripped = str(location).strip()
    if not stripped:
        raise ValueError("Source location must not be empty.")
    if stripped.lower().startswith(("http://", "https://")):
        return UrlSource(stripped, timeout_sec=timeout_sec)
    return FileSource(stripped)


def build_source_chain(
    primary: str | None = DEFAULT_PRIMARY_SOURCE,
    secondary: str | None = DEFAULT_SECONDARY_SOURCE,
    use_fixture: bool = True,
    timeout_sec: float = DEFAULT_TIMEOUT_SEC,
) -> list[RecordSource]:
    chain: list[RecordSource] = []
    for location in (primary, secondary):
        if location is not None and str(location).strip():
            chain.append(source_from_location(location, timeout_sec=timeout_sec))
    if use_fixture:
        chain.append(FixtureSource())
    return chain


@dataclass(frozen=True)
class LoadResult:
    snapshot: Snapshot
    source: str | None
    error: str | None = None
    attempts: tuple[str, ...] = field(default_factory=tuple)
    elapsed_sec: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


def _rejection_logger(source_name: str) -> Callable[[int, InvalidRecord], None]:
    def _log(index: int, exc: InvalidRecord) -> None:
        log_event(
            _LOGGER,
            "warning",
            "record_rejected",
            source=source_name,
            index=index,
            reason=str(exc),
        )

    return _log


class SnapshotLoader:
    """Walk the source chain in order; the first structurally valid payload wins."""

    def __init__(self, sources: Sequence[RecordSource]) -> None:
        self.sources = list(sources)

    def load(self) -> LoadResult:
        started = time.perf_counter()
        attempts: list[str] = []
        for source in self.sources:
            try:
                payload = source.fetch()
                snapshot = Snapshot.from_payload(
                    payload,
                    source=source.name,
                    on_reject=_rejection_logger(source.name),
                )
            except (SourceUnavailable, InvalidRecord) as exc:
                attempts.append(f"{source.name}: {exc}")
                log_event(_LOGGER, "warning", "source_failed", source=source.name, error=str(exc))
                continue

            elapsed = time.perf_counter() - started
            log_event(
                _LOGGER,
                "info",
                "snapshot_loaded",
                source=source.name,
                records=len(snapshot),
                rejected=snapshot.rejected,
                fallbacks=len(attempts),
                elapsed_sec=round(elapsed, 3),
            )
            return LoadResult(
                snapshot=snapshot,
                source=source.name,
                attempts=tuple(attempts),
                elapsed_sec=elapsed,
            )

        elapsed = time.perf_counter() - started
        log_event(
            _LOGGER,
            "error",
            "sources_exhausted",
            attempts=len(attempts),
            elapsed_sec=round(elapsed, 3),
        )
        return LoadResult(
            snapshot=Snapshot(),
            source=None,
            error=EXHAUSTED_MESSAGE,
            attempts=tuple(attempts),
            elapsed_sec=elapsed,
        )

    async def load_async(self) -> LoadResult:
        return await asyncio.to_thread(self.load)
