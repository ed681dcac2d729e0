from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./app.db"

    # JWT
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Cookie fallback for browsers (same JWT as the Bearer token)
    session_cookie_name: str = "session"

    # Frontend URL for CORS
    frontend_url: str = "http://localhost:3000"

    # Video storage root: one sub-folder per conversation (empty = backend/uploads/videos)
    videos_dir: str = ""

    # Upload ceiling in bytes (500 MB)
    max_upload_bytes: int = 500 * 1024 * 1024

    # FFmpeg conversion to the canonical 720p mp4
    ffmpeg_binary: str = "ffmpeg"
    transcode_max_attempts: int = 3
    transcode_retry_delay_seconds: float = 2.0
    transcode_timeout_seconds: int = 3600

    # Background worker pool
    transcode_workers: int = 2
    transcode_max_pending: int = 64

    log_level: str = "INFO"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
