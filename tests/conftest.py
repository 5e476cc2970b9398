from __future__ import annotations

import copy
import shutil
import uuid
from pathlib import Path
from typing import Any

import pytest

from arctic_watch.records import Snapshot
from arctic_watch.selection import CameraChannel, CameraInstruction, SelectionCoordinator
from arctic_watch.sources import ARCTIC_FIXTURE


@pytest.fixture
def tmp_path() -> Path:
    """Repo-local temporary dirs with explicit mkdir avoid host tmp ACL issues."""
    root = Path.cwd() / ".pytest-local"
    root.mkdir(parents=True, exist_ok=True)
    path = root / f"case-{uuid.uuid4().hex}"
    path.mkdir(parents=False, exist_ok=False)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def fixture_payload() -> dict[str, Any]:
    return copy.deepcopy(ARCTIC_FIXTURE)


@pytest.fixture
def fixture_snapshot(fixture_payload: dict[str, Any]) -> Snapshot:
    return Snapshot.from_payload(fixture_payload, source="test-fixture")


@pytest.fixture
def raw_record() -> dict[str, Any]:
    """ARCTIC SHADOW: confirmed, full gap tuple, 72.3 h of AIS silence."""
    return copy.deepcopy(ARCTIC_FIXTURE["dark_ships"][0])


@pytest.fixture
def camera_log() -> list[CameraInstruction]:
    return []


@pytest.fixture
def camera(camera_log: list[CameraInstruction]) -> CameraChannel:
    channel = CameraChannel()
    channel.attach(camera_log.append)
    return channel


@pytest.fixture
def coordinator(fixture_snapshot: Snapshot, camera: CameraChannel) -> SelectionCoordinator:
    return SelectionCoordinator(snapshot=fixture_snapshot, camera=camera)
