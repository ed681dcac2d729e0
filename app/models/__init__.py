from app.models.conversation import Conversation, Member
from app.models.video import Video, VideoStatus

__all__ = ["Conversation", "Member", "Video", "VideoStatus"]
