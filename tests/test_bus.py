"""EventBus reply shaping over a stubbed redis client."""

from __future__ import annotations

import json

from homewatch.bus import EventBus


class StubRedis:
    def __init__(self, xreadgroup=None, xautoclaim=None):
        self._xreadgroup = xreadgroup
        self._xautoclaim = xautoclaim
        self.calls = []

    async def xreadgroup(self, group, consumer, streams, count=None, block=None):
        self.calls.append(("xreadgroup", group, consumer, streams, count, block))
        return self._xreadgroup

    async def xautoclaim(self, name, groupname, consumername, min_idle_time, start_id="0-0", count=None):
        self.calls.append(("xautoclaim", name, groupname, consumername, min_idle_time, start_id, count))
        return self._xautoclaim

    async def xadd(self, name, fields, maxlen=None, approximate=True):
        self.calls.append(("xadd", name, fields, maxlen))
        return "1-0"


def _bus(stub):
    bus = EventBus("redis://unused")
    bus._redis = stub
    return bus


async def test_read_group_flattens_stream_reply():
    stub = StubRedis(xreadgroup=[["detections.classified", [("1-0", {"json": "{}"}), ("2-0", {"json": "[]"})]]])
    msgs = await _bus(stub).read_group("detections.classified", "g", "c", last_id="0", count=2)

    assert msgs == [("1-0", {"json": "{}"}), ("2-0", {"json": "[]"})]
    assert stub.calls == [("xreadgroup", "g", "c", {"detections.classified": "0"}, 2, None)]


async def test_read_group_timeout_is_empty():
    stub = StubRedis(xreadgroup=None)
    assert await _bus(stub).read_group("s", "g", "c", block_ms=100) == []


async def test_autoclaim_drops_deleted_entries():
    # redis 7 reply: cursor, claimed entries (trimmed ones have no fields), deleted ids
    stub = StubRedis(xautoclaim=["9-0", [("3-0", {"json": "{}"}), ("4-0", None)], ["4-0"]])
    cursor, claimed = await _bus(stub).autoclaim("s", "g", "c", 5000, cursor="2-0", count=4)

    assert cursor == "9-0"
    assert claimed == [("3-0", {"json": "{}"})]
    assert stub.calls == [("xautoclaim", "s", "g", "c", 5000, "2-0", 4)]


async def test_xadd_json_wraps_payload():
    stub = StubRedis()
    assert await _bus(stub).xadd_json("dlq", {"id": "1-0", "error": "boom"}) == "1-0"
    _, name, fields, maxlen = stub.calls[0]
    assert name == "dlq"
    assert json.loads(fields["json"]) == {"id": "1-0", "error": "boom"}
    assert maxlen == 10000
