from datetime import datetime
from pydantic import BaseModel
from app.models.video import VideoStatus


class TokenPayload(BaseModel):
    sub: str  # username
    exp: int
    type: str = "access"


class VideoItem(BaseModel):
    """One entry of the conversation feed. Pending/error rows are included for placeholders."""
    id: str
    uploader: str
    status: VideoStatus
    uploaded_at: datetime

    class Config:
        from_attributes = True


class UploadAccepted(BaseModel):
    id: str
    status: VideoStatus = VideoStatus.PENDING
