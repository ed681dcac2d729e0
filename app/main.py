import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from app.config import get_settings
from app.database import SessionLocal
from app.routers import videos
from app.services.transcode_worker import TranscodeWorker
from app.services.video_upload import videos_dir

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Multipart boundaries and the conversation_id field on top of the file itself
MULTIPART_OVERHEAD_BYTES = 64 * 1024


@asynccontextmanager
async def lifespan(app: FastAPI):
    videos_dir().mkdir(parents=True, exist_ok=True)
    transcoder = TranscodeWorker.from_settings(settings, SessionLocal)
    app.state.transcoder = transcoder
    logger.info("Transcode worker started (%s workers)", settings.transcode_workers)
    try:
        yield
    finally:
        # Running conversions are not cancelled; wait for them to record their status
        transcoder.shutdown(wait=True)
        logger.info("Transcode worker stopped")


app = FastAPI(title="Video Share API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def reject_oversized_uploads(request: Request, call_next):
    """Refuse an upload by its declared size before the body is read."""
    if request.method == "POST" and request.url.path == "/api/upload":
        declared = request.headers.get("content-length")
        limit = get_settings().max_upload_bytes + MULTIPART_OVERHEAD_BYTES
        if declared and declared.isdigit() and int(declared) > limit:
            logger.warning("Rejected upload with Content-Length %s", declared)
            return PlainTextResponse("request too large", status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)
    return await call_next(request)


app.include_router(videos.router)


@app.get("/")
def root():
    return {"message": "Video Share API", "docs": "/docs"}
