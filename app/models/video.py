"""Uploaded video owned by one conversation. Status moves forward once: pending -> ready | error."""
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, ForeignKey
from app.database import Base


class VideoStatus(str, enum.Enum):
    PENDING = "pending"
    READY = "ready"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Video(Base):
    __tablename__ = "videos"

    id = Column(String(32), primary_key=True)  # 128-bit hex, generated at intake
    conversation_id = Column(String(64), ForeignKey("conversations.id"), nullable=False, index=True)
    uploader = Column(String(100), nullable=False)
    canonical_path = Column(String(512), nullable=False)  # converted mp4; exists only once ready
    original_filename = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=VideoStatus.PENDING.value)
    uploaded_at = Column(DateTime, nullable=False, default=_utcnow, index=True)
