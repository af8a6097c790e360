# src/reelextract/frames/ffmpeg_extractor.py — v1
"""ffmpeg/ffprobe implementation of the frame-extraction collaborator."""

from __future__ import annotations

import asyncio
import json
import logging
from fractions import Fraction
from pathlib import Path
from typing import Any

from reelextract.core.errors import FrameMaterializationFailure, VideoProbeFailure
from reelextract.core.models import VideoProbe
from reelextract.frames.base_extractor import BaseFrameExtractor

logger = logging.getLogger(__name__)


async def _run(cmd: list[str]) -> tuple[int, str, str]:
    """Run a subprocess and return (returncode, stdout, stderr)."""
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    return (
        proc.returncode if proc.returncode is not None else -1,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


def _parse_frame_rate(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(Fraction(value))
    except (ValueError, ZeroDivisionError):
        return None


def parse_probe_output(data: dict[str, Any]) -> VideoProbe:
    """Build a VideoProbe from ffprobe JSON output.

    Raises:
        VideoProbeFailure: If the duration is missing or invalid.
    """
    streams = data.get("streams") or []
    video = next((s for s in streams if s.get("codec_type") == "video"), {})
    has_audio = any(s.get("codec_type") == "audio" for s in streams)
    fmt = data.get("format") or {}

    try:
        duration = float(fmt["duration"])
    except (KeyError, TypeError, ValueError) as exc:
        raise VideoProbeFailure(f"Missing or invalid duration in probe output: {exc}") from exc

    size = fmt.get("size")
    return VideoProbe(
        duration_s=duration,
        width=video.get("width"),
        height=video.get("height"),
        frame_rate=_parse_frame_rate(video.get("r_frame_rate")),
        has_audio=has_audio,
        size_bytes=int(size) if size is not None else None,
    )


class FFmpegFrameExtractor(BaseFrameExtractor):
    """Frame extraction backed by the ffmpeg and ffprobe binaries."""

    def __init__(self, ffmpeg_binary: str = "ffmpeg", ffprobe_binary: str = "ffprobe") -> None:
        self._ffmpeg = ffmpeg_binary
        self._ffprobe = ffprobe_binary

    async def probe(self, video_path: str | Path) -> VideoProbe:
        if not Path(video_path).exists():
            raise VideoProbeFailure(f"Video file not found: {video_path}")

        cmd = [
            self._ffprobe,
            "-v", "error",
            "-show_entries", "stream=codec_type,width,height,r_frame_rate",
            "-show_entries", "format=duration,size",
            "-print_format", "json",
            str(video_path),
        ]
        try:
            code, stdout, stderr = await _run(cmd)
        except OSError as exc:
            raise VideoProbeFailure(f"Cannot run ffprobe: {exc}") from exc
        if code != 0:
            raise VideoProbeFailure(f"FFprobe error: {stderr.strip()}")

        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as exc:
            raise VideoProbeFailure(f"Error parsing FFprobe output: {exc}") from exc
        return parse_probe_output(data)

    async def extract_frame_at(
        self, video_path: str | Path, timestamp_s: float, output_path: str | Path,
    ) -> str:
        out = Path(output_path)
        try:
            out.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FrameMaterializationFailure(timestamp_s, f"cannot create {out.parent}: {exc}") from exc
        cmd = [
            self._ffmpeg,
            "-y",
            "-loglevel", "error",
            "-ss", f"{max(timestamp_s, 0.0):.3f}",
            "-i", str(video_path),
            "-frames:v", "1",
            str(out),
        ]
        try:
            code, _, stderr = await _run(cmd)
        except OSError as exc:
            raise FrameMaterializationFailure(timestamp_s, f"cannot run ffmpeg: {exc}") from exc
        if code != 0 or not out.exists():
            raise FrameMaterializationFailure(timestamp_s, stderr.strip() or f"exit code {code}")
        return str(out)
