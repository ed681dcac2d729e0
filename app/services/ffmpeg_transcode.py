"""
Convert an uploaded video to the canonical playable format with FFmpeg:
720p height (aspect preserved), H.264 video, AAC audio, mp4 container.
"""
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

TARGET_HEIGHT = 720


@dataclass
class TranscodeResult:
    ok: bool
    diagnostics: str = ""


def build_transcode_command(input_path: Path, output_path: Path, ffmpeg_binary: str = "ffmpeg") -> list[str]:
    return [
        ffmpeg_binary,
        "-i", str(input_path),
        # -2 keeps the width even, which libx264 requires
        "-vf", f"scale=-2:{TARGET_HEIGHT}",
        "-c:v", "libx264",
        "-c:a", "aac",
        "-f", "mp4",
        "-y",
        str(output_path),
    ]


def transcode_to_canonical(
    input_path: Path,
    output_path: Path,
    timeout: float | None = 3600,
    ffmpeg_binary: str = "ffmpeg",
) -> TranscodeResult:
    """Run one blocking conversion. Failures are returned, not raised."""
    cmd = build_transcode_command(input_path, output_path, ffmpeg_binary)

    try:
        subprocess.run(cmd, check=True, capture_output=True, timeout=timeout)
        logger.info("Transcode completed for %s", input_path)
        return TranscodeResult(ok=True)
    except subprocess.CalledProcessError as e:
        output = e.stderr.decode(errors="replace") if e.stderr else str(e)
        return TranscodeResult(ok=False, diagnostics=f"exit status {e.returncode}: {output}")
    except subprocess.TimeoutExpired:
        return TranscodeResult(ok=False, diagnostics=f"timed out after {timeout}s")
    except FileNotFoundError:
        logger.error("ffmpeg not found; install FFmpeg to enable video conversion")
        return TranscodeResult(ok=False, diagnostics=f"{ffmpeg_binary} not found")
