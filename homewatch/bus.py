# homewatch/bus.py
from __future__ import annotations
import json
from typing import Any, Dict, List, Tuple
from redis import asyncio as aioredis
from homewatch.logging import get_logger

log = get_logger("bus")

Message = Tuple[str, Dict[str, str]]


class EventBus:
    """Redis streams carrying detection events as {"json": "<payload>"} entries."""

    def __init__(self, redis_url: str, maxlen: int = 10000):
        self._redis_url = redis_url
        self._maxlen = maxlen
        self._redis = None

    async def connect(self):
        if self._redis is None:
            log.info(f"Connecting to Redis: {self._redis_url}")
            self._redis = aioredis.from_url(self._redis_url, encoding="utf-8", decode_responses=True)
            try:
                pong = await self._redis.ping()
                log.info(f"Redis ping: {pong}")
            except Exception as e:
                log.error(f"Redis connection failed: {e}")
                raise
        return self

    async def close(self):
        if self._redis is not None:
            log.info("Closing Redis connection")
            await self._redis.aclose()
            self._redis = None

    async def xadd_json(self, stream: str, payload: Dict[str, Any]) -> str:
        assert self._redis is not None, "Call connect() first"
        data = {"json": json.dumps(payload, separators=(",", ":"), default=str)}
        msg_id = await self._redis.xadd(stream, data, maxlen=self._maxlen, approximate=True)
        log.debug(f"XADD stream={stream} id={msg_id}")
        return msg_id

    async def ensure_group(self, stream: str, group: str, start_id: str = "0-0"):
        """Create group at start_id ("0-0" = backlog visible); ignore BUSYGROUP."""
        assert self._redis is not None, "Call connect() first"
        try:
            await self._redis.xgroup_create(stream, group, id=start_id, mkstream=True)
            log.info(f"Created consumer group '{group}' at {start_id} on stream '{stream}'")
        except Exception as e:
            if "BUSYGROUP" in str(e):
                log.info(f"Consumer group '{group}' already exists on '{stream}'")
            else:
                raise

    async def read_group(self, stream: str, group: str, consumer: str, *,
                         last_id: str = ">", count: int = 8, block_ms: int | None = None) -> List[Message]:
        """XREADGROUP flattened to [(msg_id, fields)]; last_id "0" re-reads own pending history."""
        assert self._redis is not None, "Call connect() first"
        resp = await self._redis.xreadgroup(group, consumer, streams={stream: last_id}, count=count, block=block_ms)
        out: List[Message] = []
        for _stream, messages in resp or []:
            out.extend(messages)
        return out

    async def autoclaim(self, stream: str, group: str, consumer: str, min_idle_ms: int,
                        cursor: str = "0-0", count: int = 8) -> Tuple[str, List[Message]]:
        assert self._redis is not None, "Call connect() first"
        resp = await self._redis.xautoclaim(stream, group, consumer, min_idle_ms, start_id=cursor, count=count)
        # redis >= 7 appends a list of deleted ids
        next_cursor, claimed = resp[0], resp[1]
        return next_cursor, [m for m in claimed if m and m[1] is not None]

    async def ack(self, stream: str, group: str, msg_id: str) -> int:
        assert self._redis is not None, "Call connect() first"
        return await self._redis.xack(stream, group, msg_id)
