"""
Background conversion of accepted uploads.

Each job runs once on a bounded thread pool: up to ``max_attempts`` FFmpeg runs with a
constant delay between them. Output goes to a temporary sibling file and is moved onto
the canonical path only after a successful run, so a failed or interrupted attempt never
leaves a partial canonical file. The original is deleted only after that move.
The job ends with exactly one status write (ready or error); it is the only writer of
that video's status.
"""
import logging
import os
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.config import Settings
from app.models.video import VideoStatus
from app.repositories import video_repository
from app.services.ffmpeg_transcode import TranscodeResult, transcode_to_canonical

logger = logging.getLogger(__name__)

Converter = Callable[[Path, Path], TranscodeResult]


@dataclass(frozen=True)
class TranscodeJob:
    video_id: str
    original_path: Path
    canonical_path: Path

    @property
    def partial_path(self) -> Path:
        return self.canonical_path.with_name(f"{self.video_id}.part{self.canonical_path.suffix}")


class TranscodeQueueFull(RuntimeError):
    pass


class TranscodeWorker:
    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        max_workers: int = 2,
        max_pending: int = 64,
        max_attempts: int = 3,
        retry_delay: float = 2.0,
        converter: Converter | None = None,
    ):
        self._session_factory = session_factory
        self._max_pending = max_pending
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._converter = converter or transcode_to_canonical
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="transcode")
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._outstanding: set[Future] = set()

    @classmethod
    def from_settings(cls, settings: Settings, session_factory: sessionmaker) -> "TranscodeWorker":
        converter = partial(
            transcode_to_canonical,
            timeout=settings.transcode_timeout_seconds,
            ffmpeg_binary=settings.ffmpeg_binary,
        )
        return cls(
            session_factory,
            max_workers=settings.transcode_workers,
            max_pending=settings.transcode_max_pending,
            max_attempts=settings.transcode_max_attempts,
            retry_delay=settings.transcode_retry_delay_seconds,
            converter=converter,
        )

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._outstanding)

    def has_capacity(self) -> bool:
        return self.pending_count < self._max_pending

    def submit(self, job: TranscodeJob) -> Future:
        """Queue a job. Raises TranscodeQueueFull when max_pending jobs are outstanding."""
        with self._lock:
            if len(self._outstanding) >= self._max_pending:
                raise TranscodeQueueFull(job.video_id)
            future = self._executor.submit(self.run, job)
            self._outstanding.add(future)
        future.add_done_callback(self._job_done)
        logger.info("Transcode queued for video %s", job.video_id)
        return future

    def _job_done(self, future: Future) -> None:
        with self._idle:
            self._outstanding.discard(future)
            self._idle.notify_all()

    def join(self, timeout: float | None = None) -> None:
        """Block until every job queued so far has finished and left the pending set."""
        with self._idle:
            queued = set(self._outstanding)
            self._idle.wait_for(lambda: not (queued & self._outstanding), timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def run(self, job: TranscodeJob) -> VideoStatus:
        logger.info("Starting transcode for video %s: %s -> %s", job.video_id, job.original_path, job.canonical_path)

        for attempt in range(1, self._max_attempts + 1):
            logger.info("Transcode attempt %s/%s for video %s", attempt, self._max_attempts, job.video_id)
            diagnostics = self._attempt(job)
            if diagnostics is None:
                logger.info("Transcode succeeded for video %s on attempt %s", job.video_id, attempt)
                self._delete_original(job.original_path)
                self._record_status(job.video_id, VideoStatus.READY)
                return VideoStatus.READY

            logger.warning(
                "Transcode attempt %s/%s failed for video %s: %s",
                attempt, self._max_attempts, job.video_id, diagnostics,
            )
            if attempt < self._max_attempts:
                time.sleep(self._retry_delay)

        logger.error(
            "Transcode failed after %s attempts for video %s; original kept at %s",
            self._max_attempts, job.video_id, job.original_path,
        )
        self._record_status(job.video_id, VideoStatus.ERROR)
        return VideoStatus.ERROR

    def _attempt(self, job: TranscodeJob) -> str | None:
        """One conversion. Returns None on success, otherwise the failure diagnostics."""
        partial_path = job.partial_path
        _discard(partial_path)
        try:
            result = self._converter(job.original_path, partial_path)
        except Exception as e:
            logger.exception("Converter raised for video %s", job.video_id)
            result = TranscodeResult(ok=False, diagnostics=repr(e))

        if result.ok and not partial_path.is_file():
            result = TranscodeResult(ok=False, diagnostics=f"converter reported success but wrote no {partial_path.name}")
        if result.ok:
            try:
                os.replace(partial_path, job.canonical_path)
                return None
            except OSError as e:
                result = TranscodeResult(ok=False, diagnostics=f"failed to move output into place: {e}")

        _discard(partial_path)
        return result.diagnostics or "conversion failed"

    def _delete_original(self, path: Path) -> None:
        # Canonical output is already in place; a leftover original is only wasted space
        try:
            path.unlink()
            logger.info("Original file deleted: %s", path)
        except OSError as e:
            logger.error("Failed to delete original file %s: %s", path, e)

    def _record_status(self, video_id: str, status: VideoStatus) -> None:
        db = self._session_factory()
        try:
            video_repository.set_status(db, video_id, status)
        except (
            SQLAlchemyError,
            video_repository.VideoNotFoundError,
            video_repository.InvalidStatusTransitionError,
        ) as e:
            db.rollback()
            logger.error("Failed to update video %s status to %s: %s", video_id, status.value, e)
        finally:
            db.close()


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.error("Failed to remove partial output %s: %s", path, e)
