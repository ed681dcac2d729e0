"""
Member upload, conversation feed and playback.
Every route checks conversation membership before touching metadata or files.
Uploads return 202 right after the original is stored; conversion to the canonical
720p mp4 runs on the transcode worker pool.
"""
import logging
import re
from pathlib import Path
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from fastapi.responses import Response, StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.auth import get_current_username, require_membership
from app.database import get_db
from app.models.video import VideoStatus
from app.repositories import video_repository
from app.repositories.conversation_repository import is_member
from app.schemas.video import UploadAccepted, VideoItem
from app.services.transcode_worker import TranscodeJob, TranscodeQueueFull, TranscodeWorker
from app.services.video_upload import check_video_format, save_video_upload, CHUNK_SIZE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["videos"])


def get_transcoder(request: Request) -> TranscodeWorker:
    return request.app.state.transcoder


def _require_conversation_id(conversation_id: str | None) -> str:
    conversation_id = (conversation_id or "").strip()
    if not conversation_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="'conversation_id' is required")
    return conversation_id


def _stream_file_range(path: Path, request: Request, content_type: str):
    """Handle Range request for video streaming. Returns Response with 206 or 200."""
    file_size = path.stat().st_size
    range_header = request.headers.get("range")
    if not range_header:
        def full_stream():
            with open(path, "rb") as f:
                while chunk := f.read(CHUNK_SIZE):
                    yield chunk

        return StreamingResponse(
            full_stream(),
            status_code=200,
            media_type=content_type,
            headers={
                "Accept-Ranges": "bytes",
                "Content-Length": str(file_size),
                "Content-Disposition": "inline",
            },
        )

    # Parse Range: bytes=start-end
    m = re.match(r"bytes=(\d*)-(\d*)", range_header.strip())
    if not m:
        return Response(status_code=416, headers={"Content-Range": f"bytes */{file_size}"})
    start_s, end_s = m.groups()
    if not start_s:
        # Suffix range bytes=-N: the last N bytes
        suffix = int(end_s) if end_s else 0
        if suffix == 0:
            return Response(status_code=416, headers={"Content-Range": f"bytes */{file_size}"})
        start = max(file_size - suffix, 0)
        end = file_size - 1
    else:
        start = int(start_s)
        end = int(end_s) if end_s else file_size - 1
    if start > end or start >= file_size:
        return Response(status_code=416, headers={"Content-Range": f"bytes */{file_size}"})
    end = min(end, file_size - 1)
    length = end - start + 1

    def range_stream():
        with open(path, "rb") as f:
            f.seek(start)
            remaining = length
            while remaining > 0:
                data = f.read(min(CHUNK_SIZE, remaining))
                if not data:
                    break
                remaining -= len(data)
                yield data

    return StreamingResponse(
        range_stream(),
        status_code=206,
        media_type=content_type,
        headers={
            "Accept-Ranges": "bytes",
            "Content-Range": f"bytes {start}-{end}/{file_size}",
            "Content-Length": str(length),
            "Content-Disposition": "inline",
        },
    )


@router.post("/upload", status_code=status.HTTP_202_ACCEPTED, response_model=UploadAccepted)
def upload_video(
    conversation_id: str | None = Form(None),
    file: UploadFile | None = File(None),
    username: str = Depends(get_current_username),
    db: Session = Depends(get_db),
    transcoder: TranscodeWorker = Depends(get_transcoder),
):
    """
    Member: upload a video (mp4, mov, avi, mkv) to a conversation.
    Returns {id, status: "pending"}; poll the feed for ready/error.
    """
    conversation_id = _require_conversation_id(conversation_id)
    try:
        require_membership(db, conversation_id, username)
    except HTTPException as e:
        if e.status_code == status.HTTP_403_FORBIDDEN:
            logger.warning("Upload attempted by non-member %s to %s", username, conversation_id)
        raise
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="file is required")
    check_video_format(file.filename)
    if not transcoder.has_capacity():
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Too many videos processing, try again later.")

    video, original_path = save_video_upload(file, conversation_id, username, db)
    job = TranscodeJob(video.id, original_path, Path(video.canonical_path))
    try:
        transcoder.submit(job)
    except TranscodeQueueFull:
        logger.error("Transcode queue filled before video %s could be queued", video.id)
        try:
            video_repository.set_status(db, video.id, VideoStatus.ERROR)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to update video %s status to error: %s", video.id, e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Too many videos processing, try again later.")

    logger.info("Upload accepted, transcoding queued: video %s by %s", video.id, username)
    return UploadAccepted(id=video.id, status=VideoStatus.PENDING)


@router.get("/videos", response_model=list[VideoItem])
def list_videos(
    conversation_id: str | None = Query(None),
    username: str = Depends(get_current_username),
    db: Session = Depends(get_db),
):
    """Member: all videos of a conversation, newest first, including pending and error."""
    conversation_id = _require_conversation_id(conversation_id)
    require_membership(db, conversation_id, username)
    videos = video_repository.list_by_conversation(db, conversation_id)
    logger.debug("Listed %s videos for conversation %s", len(videos), conversation_id)
    return [VideoItem.model_validate(v) for v in videos]


@router.get("/videos/{video_id}/stream")
def stream_video(
    video_id: str,
    request: Request,
    username: str = Depends(get_current_username),
    db: Session = Depends(get_db),
):
    """
    Member: play a converted video. Supports Range requests for seeking.
    409 while the video is still pending or after conversion failed.
    """
    video = video_repository.get_video(db, video_id)
    # Non-members get the same 404, so ids from other conversations stay hidden
    if not video or not is_member(db, video.conversation_id, username):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found.")
    if video.status != VideoStatus.READY.value:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Video is {video.status}.")
    path = Path(video.canonical_path)
    if not path.is_file():
        logger.error("Video %s is ready but %s is missing", video_id, path)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video file not found.")
    return _stream_file_range(path, request, "video/mp4")
