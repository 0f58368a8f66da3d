# services/intel_dashboard/main.py
from __future__ import annotations
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from homewatch.activity import daily_activity, weekly_activity
from homewatch.clock import Clock, previous_week_range, system_clock, today_range
from homewatch.config import date_time_format, load_config, output_dir, section, store_url
from homewatch.errors import HomewatchError
from homewatch.files import FileStore, select_newest, select_not_older_than
from homewatch.labels import label_counts
from homewatch.logging import get_logger, quiet_third_party
from homewatch.media import MediaRetriever, data_uri
from homewatch.schemas import (
    DailyIntelligence, LabelImages, LabelImagesRequest, LatestImage,
    VoiceIntelligence, WeeklyIntelligence,
)
from homewatch.store import DetectionStore
from homewatch.voice import VoiceSummarizer

# ----------------------- config & logging -----------------------
cfg: Dict[str, Any] = load_config()

rt = section(cfg, "runtime")
LOG_LEVEL = rt.get("log_level", "INFO")
LOG_DIR = rt.get("log_dir", "logs")

dash = section(cfg, "dashboard")
DASH_HOST = dash.get("host", "0.0.0.0")
DASH_PORT = int(dash.get("port", 3000))

log = get_logger("intel_dashboard", log_dir=LOG_DIR, level=LOG_LEVEL)


@dataclass
class DashboardContext:
    store: DetectionStore
    files: FileStore
    retriever: MediaRetriever
    voice: VoiceSummarizer
    clock: Clock
    latest_folder: str
    mime_type: str


def build_context(cfg: Dict[str, Any], *, store: Optional[DetectionStore] = None,
                  files: Optional[FileStore] = None, clock: Optional[Clock] = None) -> DashboardContext:
    files_cfg = section(cfg, "files")
    media_cfg = section(cfg, "media")
    voice_cfg = section(cfg, "voice")

    clock = clock or system_clock
    store = store or DetectionStore(store_url(cfg), echo=bool(section(cfg, "store").get("echo", False)))
    files = files or FileStore(output_dir(cfg))
    mime_type = media_cfg.get("mime_type", "image/png")

    retriever = MediaRetriever(
        files,
        concurrency=int(media_cfg.get("concurrency", 1)),
        date_time_format=date_time_format(cfg),
        mime_type=mime_type,
    )
    voice = VoiceSummarizer(
        store,
        clock=clock,
        verbosity_threshold=int(voice_cfg.get("verbosity_threshold", 10)),
        time_format=voice_cfg.get("time_format", "%H:%M"),
        commit_mode=voice_cfg.get("commit_mode", "filter"),
    )
    return DashboardContext(
        store=store, files=files, retriever=retriever, voice=voice, clock=clock,
        latest_folder=files_cfg.get("latest_folder", "object_detection"), mime_type=mime_type,
    )


# ----------------------- helpers -----------------------
def get_ctx(request: Request) -> DashboardContext:
    return request.app.state.ctx

def _error(e: HomewatchError) -> JSONResponse:
    return JSONResponse({"error": str(e)}, status_code=e.status_code)


router = APIRouter()

# ----------------------- activity & labels -----------------------
@router.get("/get/intelligence", response_class=JSONResponse)
async def daily_intelligence(ctx: DashboardContext = Depends(get_ctx)):
    start, end = today_range(ctx.clock())
    try:
        rows = await ctx.store.captures(start, end)
    except HomewatchError as e:
        log.error("intelligence error: %s", e)
        return _error(e)
    body = DailyIntelligence(
        activity=daily_activity((r.file_create_date for r in rows), start, end),
        donut=label_counts(rows),
    )
    return JSONResponse(body.model_dump())

@router.get("/get/weekly/intelligence", response_class=JSONResponse)
async def weekly_intelligence(ctx: DashboardContext = Depends(get_ctx)):
    start, end = previous_week_range(ctx.clock())
    try:
        times = await ctx.store.capture_times(start, end)
    except HomewatchError as e:
        log.error("weekly intelligence error: %s", e)
        return _error(e)
    return JSONResponse(WeeklyIntelligence(activityWeek=weekly_activity(times, start, end)).model_dump())

# ----------------------- media -----------------------
@router.get("/get/latest/object/detection/image", response_class=JSONResponse)
async def latest_detection_image(ctx: DashboardContext = Depends(get_ctx)):
    folder = ctx.latest_folder
    try:
        newest = select_newest(await ctx.files.list(folder))
        payload = await ctx.files.read(folder, newest.file_name)
    except HomewatchError as e:
        log.error("latest image error folder=%s: %s", folder, e)
        return _error(e)
    return JSONResponse(LatestImage(data=data_uri(payload, ctx.mime_type)).model_dump())

@router.post("/get/label/images", response_class=JSONResponse)
async def label_images(req: LabelImagesRequest, ctx: DashboardContext = Depends(get_ctx)):
    try:
        listing = await ctx.files.list(req.label)
    except HomewatchError as e:
        log.error("label images error label=%s: %s", req.label, e)
        return _error(e)
    selected = select_not_older_than(listing, req.max_age_s, ctx.clock())
    images = await ctx.retriever.retrieve(req.label, selected)
    return JSONResponse(LabelImages(images=images).model_dump())

# ----------------------- voice -----------------------
@router.get("/get/voice/intelligence", response_class=JSONResponse)
async def voice_intelligence(ctx: DashboardContext = Depends(get_ctx)):
    try:
        message = await ctx.voice.summarize()
    except HomewatchError as e:
        log.error("voice intelligence error: %s", e)
        return _error(e)
    return JSONResponse(VoiceIntelligence(message=message).model_dump())

@router.get("/healthz", response_class=JSONResponse)
async def healthz():
    return {"status": "ok"}


# ----------------------- app -----------------------
def create_app(cfg: Dict[str, Any], **overrides) -> FastAPI:
    ctx = build_context(cfg, **overrides)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await ctx.store.init()
        yield
        await ctx.store.dispose()

    app = FastAPI(title="Homewatch Intelligence Dashboard", lifespan=lifespan)
    app.state.ctx = ctx
    app.include_router(router)
    return app


app = create_app(cfg)

# ----------------------- main -----------------------
if __name__ == "__main__":
    quiet_third_party()
    log.info("Homewatch intelligence dashboard starting on %s:%d (output=%s)", DASH_HOST, DASH_PORT, output_dir(cfg))
    uvicorn.run("services.intel_dashboard.main:app",
                host=DASH_HOST, port=DASH_PORT,
                reload=False, log_level=LOG_LEVEL.lower())
