"""Test doubles shared across test modules."""

from pathlib import Path

from app.services.ffmpeg_transcode import TranscodeResult


class FakeConverter:
    """Stands in for FFmpeg.

    ``outcomes`` is consumed one entry per call (the last entry repeats).
    A successful call writes ``payload`` to the output path; a failed call
    leaves ``partial`` bytes behind, like an interrupted encoder would.
    """

    def __init__(self, outcomes=(True,), payload=b"canonical-mp4", partial=b"trunc", gate=None):
        self.outcomes = list(outcomes)
        self.payload = payload
        self.partial = partial
        self.gate = gate
        self.calls: list[tuple[Path, Path]] = []

    def __call__(self, input_path: Path, output_path: Path) -> TranscodeResult:
        if self.gate is not None:
            self.gate.wait(timeout=10)
        self.calls.append((input_path, output_path))
        index = min(len(self.calls) - 1, len(self.outcomes) - 1)
        if self.outcomes[index]:
            output_path.write_bytes(self.payload)
            return TranscodeResult(ok=True)
        if self.partial:
            output_path.write_bytes(self.partial)
        return TranscodeResult(ok=False, diagnostics="Invalid data found when processing input")
