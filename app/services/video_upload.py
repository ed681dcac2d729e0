"""Format gate and durable intake for member uploads (used by the videos router)."""
import logging
import secrets
from pathlib import Path
from fastapi import UploadFile, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.config import get_settings
from app.models.video import Video
from app.repositories import video_repository

logger = logging.getLogger(__name__)

# Containers ffmpeg decodes reliably
ALLOWED_EXTENSIONS = {".mp4", ".mov", ".avi", ".mkv"}
CANONICAL_EXTENSION = ".mp4"
ORIGINAL_PREFIX = "original_"
CHUNK_SIZE = 1024 * 1024  # 1 MB


class UploadTooLarge(Exception):
    pass


def videos_dir() -> Path:
    settings = get_settings()
    if settings.videos_dir:
        return Path(settings.videos_dir)
    return Path(__file__).resolve().parent.parent.parent / "uploads" / "videos"


def conversation_dir(conversation_id: str) -> Path:
    return videos_dir() / conversation_id


def video_extension(filename: str | None) -> str:
    return Path(filename or "").suffix.lower()


def check_video_format(filename: str | None) -> str:
    """Return the lower-cased extension or reject with 400. No I/O."""
    ext = video_extension(filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"unsupported file type: {ext or '(none)'}",
        )
    return ext


def new_video_id() -> str:
    """128 random bits as 32 hex chars."""
    return secrets.token_hex(16)


def video_paths(conversation_id: str, video_id: str, ext: str) -> tuple[Path, Path]:
    """(original, canonical) paths; the original carries a prefix and its source extension."""
    base = conversation_dir(conversation_id)
    return base / f"{ORIGINAL_PREFIX}{video_id}{ext}", base / f"{video_id}{CANONICAL_EXTENSION}"


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.error("Failed to remove %s: %s", path, e)


def _write_stream(src, dest: Path, max_bytes: int) -> int:
    written = 0
    with dest.open("wb") as f:
        while chunk := src.read(CHUNK_SIZE):
            written += len(chunk)
            if written > max_bytes:
                raise UploadTooLarge(written)
            f.write(chunk)
        f.flush()
    return written


def save_video_upload(
    file: UploadFile,
    conversation_id: str,
    uploader: str,
    db: Session,
) -> tuple[Video, Path]:
    """
    Write the upload to its original path, then record it as pending.
    Nothing survives a failure: a partial file is removed when the write fails,
    and the written file is removed when the record cannot be created.
    Caller must already have checked membership.
    """
    ext = check_video_format(file.filename)
    settings = get_settings()

    target_dir = conversation_dir(conversation_id)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error("Failed to create conversation directory %s: %s", target_dir, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal error")

    video_id = new_video_id()
    original_path, canonical_path = video_paths(conversation_id, video_id, ext)

    logger.info("Saving original upload %s for %s", original_path, uploader)
    try:
        size = _write_stream(file.file, original_path, settings.max_upload_bytes)
    except UploadTooLarge:
        _remove_quietly(original_path)
        logger.warning("Upload from %s exceeded %s bytes", uploader, settings.max_upload_bytes)
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="request too large",
        )
    except OSError as e:
        _remove_quietly(original_path)
        logger.error("Failed to save uploaded file %s: %s", original_path, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal error")

    try:
        video = video_repository.create_pending(
            db,
            video_id,
            conversation_id,
            uploader,
            str(canonical_path),
            original_filename=file.filename,
        )
    except (SQLAlchemyError, video_repository.UnknownConversationError) as e:
        db.rollback()
        _remove_quietly(original_path)
        logger.error("Failed to create video record %s: %s", video_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal error")

    logger.info("Stored %s bytes for video %s", size, video_id)
    return video, original_path
