"""Shared fixtures: frozen clock, temp sqlite store, temp media folders."""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

os.environ.setdefault("HOMEWATCH_LOG_DIR", tempfile.mkdtemp(prefix="homewatch-logs-"))

import pytest

from homewatch.store import DetectionStore

NOW = datetime(2024, 5, 10, 15, 30, tzinfo=timezone.utc)


def write_media(folder: Path, name: str, data: bytes, mtime: datetime) -> Path:
    folder.mkdir(parents=True, exist_ok=True)
    p = folder / name
    p.write_bytes(data)
    ts = mtime.timestamp()
    os.utime(p, (ts, ts))
    return p


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
async def store(tmp_path):
    s = DetectionStore(f"sqlite+aiosqlite:///{tmp_path / 'detections.db'}")
    await s.init()
    yield s
    await s.dispose()


@pytest.fixture
def output_root(tmp_path):
    root = tmp_path / "output"
    root.mkdir()
    return root
