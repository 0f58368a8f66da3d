# scripts/publish_detection.py
import argparse, asyncio
from datetime import datetime, timezone

from homewatch.bus import EventBus
from homewatch.config import load_config, section
from homewatch.logging import get_logger
from homewatch.schemas import DetectionEvent

log = get_logger("publish_detection")

async def main(args):
    runtime = section(load_config(), "runtime")
    stream = args.stream or runtime.get("stream_detections", "detections.classified")
    redis_url = args.redis_url or runtime.get("redis_url", "redis://127.0.0.1:6379/0")

    captured = datetime.fromisoformat(args.captured) if args.captured else datetime.now(timezone.utc)
    event = DetectionEvent(
        label=args.label,
        file_name=args.file,
        file_create_date=captured,
        detection_result=args.result,
        name=args.name,
    )
    bus = await EventBus(redis_url).connect()
    try:
        for _ in range(args.count):
            msg_id = await bus.xadd_json(stream, event.model_dump(mode="json"))
            log.info(f"published {msg_id} label={event.label} file={event.file_name}")
    finally:
        await bus.close()

if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Publish a test detection event to the ingest stream.")
    ap.add_argument("label")
    ap.add_argument("file")
    ap.add_argument("--captured", default=None, help="ISO8601 capture time (default: now, UTC)")
    ap.add_argument("--result", default="", help="detection result text, e.g. a plate number")
    ap.add_argument("--name", default="")
    ap.add_argument("--count", type=int, default=1)
    ap.add_argument("--stream", default=None)
    ap.add_argument("--redis-url", default=None)
    asyncio.run(main(ap.parse_args()))
