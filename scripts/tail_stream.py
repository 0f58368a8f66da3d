# scripts/tail_stream.py
import argparse, asyncio, json

from homewatch.bus import EventBus
from homewatch.config import load_config, section
from homewatch.logging import get_logger

GROUP = "dev"
CONSUMER = "tail01"

log = get_logger("tail_stream")

async def main(stream: str | None, redis_url: str | None):
    runtime = section(load_config(), "runtime")
    stream = stream or runtime.get("stream_detections", "detections.classified")
    redis_url = redis_url or runtime.get("redis_url", "redis://127.0.0.1:6379/0")

    log.info(f"Tailing stream={stream} as group={GROUP} consumer={CONSUMER}")
    bus = await EventBus(redis_url).connect()
    # "$": only entries published from now on
    await bus.ensure_group(stream, GROUP, start_id="$")
    try:
        while True:
            for msg_id, kv in await bus.read_group(stream, GROUP, CONSUMER, count=10, block_ms=5000):
                payload = json.loads(kv.get("json", "{}"))
                log.info(f"{msg_id} {json.dumps(payload, ensure_ascii=False)}")
                await bus.ack(stream, GROUP, msg_id)
    finally:
        await bus.close()

if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Print detection events as they are published.")
    ap.add_argument("--stream", default=None)
    ap.add_argument("--redis-url", default=None)
    args = ap.parse_args()
    asyncio.run(main(args.stream, args.redis_url))
