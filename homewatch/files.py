# homewatch/files.py
from __future__ import annotations
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Sequence

import aiofiles
import aiofiles.os

from homewatch.clock import as_utc
from homewatch.errors import DirectoryUnreadable, EmptyDirectory, FileReadFailure, InvalidLabel
from homewatch.logging import get_logger

log = get_logger("files")


@dataclass(frozen=True)
class MediaFile:
    file_name: str
    mtime: datetime  # aware UTC


# ---------------- selectors ----------------
def _chronological(files: Sequence[MediaFile]) -> List[MediaFile]:
    return sorted(files, key=lambda f: f.mtime)

def select_newest(files: Sequence[MediaFile]) -> MediaFile:
    if not files:
        raise EmptyDirectory()
    return _chronological(files)[-1]

def select_not_older_than(files: Sequence[MediaFile], age_threshold_s: float, now: datetime) -> List[MediaFile]:
    """
    Files modified within age_threshold_s of now, oldest first.
    A threshold of 0 disables the filter and returns every file.
    """
    ordered = _chronological(files)
    if not age_threshold_s:
        return ordered
    now = as_utc(now)
    return [f for f in ordered if (now - f.mtime).total_seconds() <= age_threshold_s]


# ---------------- file store ----------------
class FileStore:
    """Folders of media under one output root, e.g. output/object_detection/, output/person/."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def folder(self, name: str) -> Path:
        # one path segment only; labels come straight from request bodies
        if not name or name in (".", "..") or "/" in name or "\\" in name or "\x00" in name:
            raise InvalidLabel(f"Invalid folder name: {name!r}")
        return self.root / name

    async def list(self, name: str) -> List[MediaFile]:
        path = self.folder(name)
        try:
            names = await aiofiles.os.listdir(path)
        except OSError as e:
            raise DirectoryUnreadable(f"Cannot list {path}: {e}") from e

        out: List[MediaFile] = []
        for fname in names:
            try:
                st = await aiofiles.os.stat(path / fname)
            except OSError as e:
                # vanished between listdir and stat
                log.warning(f"stat failed for {path / fname}: {e}")
                continue
            if not stat.S_ISREG(st.st_mode):
                continue
            out.append(MediaFile(file_name=fname, mtime=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)))
        log.debug(f"listed {len(out)} files in {path}")
        return out

    async def read(self, name: str, file_name: str) -> bytes:
        path = self.folder(name) / file_name
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except OSError as e:
            raise FileReadFailure(f"Cannot read {path}: {e}") from e
