"""
Video metadata persistence. Records are created as pending right after the original
file is on disk and change status exactly once afterwards (ready or error).
All operations are sync and commit on success; callers own the session.
"""
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.models.conversation import Conversation
from app.models.video import Video, VideoStatus

# Forward-only transitions; ready and error are terminal
ALLOWED_TRANSITIONS = {
    VideoStatus.PENDING: {VideoStatus.READY, VideoStatus.ERROR},
    VideoStatus.READY: set(),
    VideoStatus.ERROR: set(),
}


class VideoNotFoundError(LookupError):
    pass


class UnknownConversationError(LookupError):
    pass


class InvalidStatusTransitionError(ValueError):
    pass


def create_pending(
    db: Session,
    video_id: str,
    conversation_id: str,
    uploader: str,
    canonical_path: str,
    *,
    original_filename: str | None = None,
) -> Video:
    """Insert a pending record. Duplicate ids surface as IntegrityError from the commit."""
    if db.get(Conversation, conversation_id) is None:
        raise UnknownConversationError(conversation_id)
    video = Video(
        id=video_id,
        conversation_id=conversation_id,
        uploader=uploader,
        canonical_path=canonical_path,
        original_filename=original_filename,
        status=VideoStatus.PENDING.value,
    )
    db.add(video)
    db.commit()
    db.refresh(video)
    return video


def set_status(db: Session, video_id: str, status: VideoStatus) -> Video:
    video = db.get(Video, video_id)
    if video is None:
        raise VideoNotFoundError(video_id)
    current = VideoStatus(video.status)
    target = VideoStatus(status)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(f"{video_id}: {current.value} -> {target.value}")
    video.status = target.value
    db.commit()
    db.refresh(video)
    return video


def get_video(db: Session, video_id: str) -> Video | None:
    return db.get(Video, video_id)


def list_by_conversation(db: Session, conversation_id: str) -> list[Video]:
    """All videos of a conversation in every status, newest upload first."""
    return (
        db.query(Video)
        .filter(Video.conversation_id == conversation_id)
        .order_by(desc(Video.uploaded_at), desc(Video.id))
        .all()
    )
