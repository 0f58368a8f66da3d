# services/detection_ingest/main.py
from __future__ import annotations
import asyncio
from typing import Any, Dict, Optional

from pydantic import ValidationError

from homewatch.bus import EventBus
from homewatch.config import load_config, section, store_url
from homewatch.errors import StoreQueryFailure
from homewatch.logging import get_logger, quiet_third_party
from homewatch.schemas import DetectionEvent
from homewatch.store import DetectionStore

log = get_logger("detection_ingest")

GROUP    = "detection-ingest"
CONSUMER = "di-01"

# ---------- Payload helpers ----------
def parse_event(kv: Dict[str, Any]) -> Optional[DetectionEvent]:
    """Stream entry {"json": "..."} -> DetectionEvent, or None if it is not one."""
    raw = kv.get("json")
    if not raw:
        return None
    try:
        return DetectionEvent.model_validate_json(raw)
    except ValidationError as e:
        log.warning(f"[ingest] schema mismatch: {e.error_count()} error(s)")
        return None

async def _dead_letter(bus: EventBus, dlq: str, stream_in: str, msg_id: str, error: Any):
    await bus.xadd_json(dlq, {"source": stream_in, "id": msg_id, "error": error})

# ---------- Core processing ----------
async def handle_message(bus: EventBus, store: DetectionStore, stream_in: str, group: str, dlq: str,
                         msg_id: str, kv: Dict[str, Any], phase: str) -> bool:
    """Insert one detection; bad payloads and store failures go to the DLQ. Always acks."""
    ok = False
    try:
        event = parse_event(kv)
        if event is None:
            await _dead_letter(bus, dlq, stream_in, msg_id, {"reason": "schema_mismatch"})
        else:
            row = await store.add_event(event)
            log.info(f"[{phase}] stored id={row.id} label={event.label} file={event.file_name}")
            ok = True
    except StoreQueryFailure as e:
        log.error(f"[{phase}] msg_id={msg_id} store error={e}")
        await _dead_letter(bus, dlq, stream_in, msg_id, str(e))
    await bus.ack(stream_in, group, msg_id)
    return ok

# ---------- Backlog phases ----------
async def _drain_history(bus, store, stream_in, group, consumer, batch, dlq):
    log.info("Phase 1: draining never-acked history...")
    while True:
        msgs = await bus.read_group(stream_in, group, consumer, last_id="0", count=batch)
        if not msgs:
            break
        for msg_id, kv in msgs:
            await handle_message(bus, store, stream_in, group, dlq, msg_id, kv, "history")

async def _recover_pending(bus, store, stream_in, group, consumer, batch, min_idle_ms, dlq):
    log.info("Phase 2: recovering stale pending entries (min_idle_ms=%d)...", min_idle_ms)
    cursor = "0-0"
    while True:
        try:
            next_cursor, claimed = await bus.autoclaim(stream_in, group, consumer, min_idle_ms,
                                                       cursor=cursor, count=batch)
        except Exception as e:
            log.warning(f"XAUTOCLAIM failed ({e}); skipping pending recovery.")
            return
        for msg_id, kv in claimed:
            await handle_message(bus, store, stream_in, group, dlq, msg_id, kv, "pending")
        if next_cursor == "0-0":
            return
        cursor = next_cursor

async def _live_loop(bus, store, stream_in, group, consumer, batch, block_ms, dlq):
    log.info("Phase 3: live consumption (ID='>')...")
    while True:
        msgs = await bus.read_group(stream_in, group, consumer, last_id=">", count=batch, block_ms=block_ms)
        for msg_id, kv in msgs:
            await handle_message(bus, store, stream_in, group, dlq, msg_id, kv, "live")

# ---------- Main ----------
async def main(config_path: str | None = None):
    log.info("detection_ingest starting…")
    cfg = load_config(config_path)

    runtime = section(cfg, "runtime")
    ing     = section(cfg, "ingest")

    redis_url = runtime.get("redis_url", "redis://127.0.0.1:6379/0")
    stream_in = runtime.get("stream_detections", "detections.classified")
    group     = ing.get("group", GROUP)
    consumer  = ing.get("consumer", CONSUMER)
    batch     = int(ing.get("batch_size", 8))
    block_ms  = int(ing.get("block_ms", 5000))
    min_idle  = int(ing.get("min_idle_ms", 5000))
    dlq       = ing.get("dlq_stream", "detections.ingest.dlq")
    drain     = bool(ing.get("drain_history", True))

    store = DetectionStore(store_url(cfg), echo=bool(section(cfg, "store").get("echo", False)))
    await store.init()
    bus = await EventBus(redis_url).connect()
    await bus.ensure_group(stream_in, group)

    log.info(f"Consuming stream_in={stream_in} → store group={group} consumer={consumer} dlq={dlq}")
    try:
        if drain:
            await _drain_history(bus, store, stream_in, group, consumer, batch, dlq)
        await _recover_pending(bus, store, stream_in, group, consumer, batch, min_idle, dlq)
        await _live_loop(bus, store, stream_in, group, consumer, batch, block_ms, dlq)
    finally:
        await bus.close()
        await store.dispose()

if __name__ == "__main__":
    quiet_third_party()
    asyncio.run(main())
