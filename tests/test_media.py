"""Ordered, bounded media retrieval."""

from __future__ import annotations

import asyncio
import base64
from datetime import timedelta

import pytest

from homewatch.errors import FileReadFailure
from homewatch.files import FileStore, MediaFile
from homewatch.media import MediaRetriever, data_uri
from homewatch.schemas import EncodedMedia

from conftest import NOW, write_media


class SlowStore:
    """FileStore stand-in: later files finish first; tracks reads in flight."""

    def __init__(self, payloads, fail=()):
        self.payloads = payloads
        self.fail = set(fail)
        self.in_flight = 0
        self.max_in_flight = 0

    async def read(self, folder, file_name):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # reverse completion order
            await asyncio.sleep(0.01 * (len(self.payloads) - list(self.payloads).index(file_name)))
            if file_name in self.fail:
                raise FileReadFailure(f"cannot read {file_name}")
            return self.payloads[file_name]
        finally:
            self.in_flight -= 1


def _items(names):
    return [MediaFile(file_name=n, mtime=NOW + timedelta(minutes=i)) for i, n in enumerate(names)]


def test_data_uri():
    assert data_uri(b"abc") == "data:image/png;base64,YWJj"
    assert data_uri(b"", "image/jpeg") == "data:image/jpeg;base64,"


async def test_failed_read_becomes_sentinel_in_place(output_root):
    folder = output_root / "person"
    write_media(folder, "a.png", b"AAA", NOW)
    write_media(folder, "c.png", b"CCC", NOW)
    items = _items(["a.png", "b.png", "c.png"])  # b.png does not exist

    out = await MediaRetriever(FileStore(output_root), date_time_format="%H:%M").retrieve("person", items)

    assert len(out) == 3
    assert out[0] == EncodedMedia(title="15:30", image="data:image/png;base64," + base64.b64encode(b"AAA").decode())
    assert out[1].is_sentinel
    assert out[1] == EncodedMedia.sentinel()
    assert out[2].title == "15:32"
    assert base64.b64decode(out[2].image.split(",", 1)[1]) == b"CCC"


async def test_empty_file_is_not_a_sentinel(output_root):
    write_media(output_root / "car", "empty.png", b"", NOW)
    out = await MediaRetriever(FileStore(output_root), date_time_format="%H:%M").retrieve(
        "car", _items(["empty.png"]))

    assert out == [EncodedMedia(title="15:30", image="data:image/png;base64,")]
    assert not out[0].is_sentinel
    assert EncodedMedia.sentinel("image/jpeg").is_sentinel


async def test_sequential_by_default():
    store = SlowStore({"a": b"1", "b": b"2", "c": b"3"})
    out = await MediaRetriever(store).retrieve("x", _items(["a", "b", "c"]))
    assert store.max_in_flight == 1
    assert [base64.b64decode(o.image.split(",", 1)[1]) for o in out] == [b"1", b"2", b"3"]


async def test_bounded_concurrency_preserves_order():
    names = [f"f{i}" for i in range(6)]
    store = SlowStore({n: n.encode() for n in names}, fail={"f2"})
    out = await MediaRetriever(store, concurrency=3).retrieve("x", _items(names))

    assert store.max_in_flight <= 3
    assert store.max_in_flight > 1
    assert out[2].is_sentinel
    decoded = [base64.b64decode(o.image.split(",", 1)[1]) for o in out]
    assert decoded == [b"f0", b"f1", b"", b"f3", b"f4", b"f5"]


async def test_empty_batch():
    assert await MediaRetriever(SlowStore({})).retrieve("x", []) == []


def test_rejects_zero_concurrency():
    with pytest.raises(ValueError):
        MediaRetriever(SlowStore({}), concurrency=0)
