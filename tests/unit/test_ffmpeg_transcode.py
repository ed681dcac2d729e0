"""Unit tests for the FFmpeg invocation."""

import subprocess
from pathlib import Path
from unittest.mock import patch

from app.services.ffmpeg_transcode import build_transcode_command, transcode_to_canonical

IN = Path("/videos/conv-1/original_abc.mov")
OUT = Path("/videos/conv-1/abc.part.mp4")


class TestBuildCommand:
    """Tests for the fixed 720p profile."""

    def test_profile(self):
        cmd = build_transcode_command(IN, OUT)
        assert cmd[0] == "ffmpeg"
        assert cmd[cmd.index("-i") + 1] == str(IN)
        assert cmd[cmd.index("-vf") + 1] == "scale=-2:720"
        assert cmd[cmd.index("-c:v") + 1] == "libx264"
        assert cmd[cmd.index("-c:a") + 1] == "aac"
        assert "-y" in cmd
        assert cmd[-1] == str(OUT)

    def test_custom_binary(self):
        assert build_transcode_command(IN, OUT, "/opt/ffmpeg/bin/ffmpeg")[0] == "/opt/ffmpeg/bin/ffmpeg"


class TestTranscodeToCanonical:
    """Tests for result mapping of the blocking call."""

    def test_success(self):
        with patch("app.services.ffmpeg_transcode.subprocess.run") as run:
            result = transcode_to_canonical(IN, OUT, timeout=30)
        assert result.ok
        assert run.call_args.kwargs["timeout"] == 30
        assert run.call_args.kwargs["capture_output"] is True

    def test_non_zero_exit_keeps_stderr(self):
        error = subprocess.CalledProcessError(1, ["ffmpeg"], stderr=b"moov atom not found")
        with patch("app.services.ffmpeg_transcode.subprocess.run", side_effect=error):
            result = transcode_to_canonical(IN, OUT)
        assert not result.ok
        assert "moov atom not found" in result.diagnostics

    def test_timeout(self):
        with patch(
            "app.services.ffmpeg_transcode.subprocess.run",
            side_effect=subprocess.TimeoutExpired(["ffmpeg"], 5),
        ):
            result = transcode_to_canonical(IN, OUT, timeout=5)
        assert not result.ok
        assert "timed out" in result.diagnostics

    def test_missing_binary(self):
        with patch("app.services.ffmpeg_transcode.subprocess.run", side_effect=FileNotFoundError()):
            result = transcode_to_canonical(IN, OUT)
        assert not result.ok
        assert "not found" in result.diagnostics
