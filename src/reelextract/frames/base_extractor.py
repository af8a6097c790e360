# src/reelextract/frames/base_extractor.py — v1
"""Abstract frame-extraction collaborator."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from pathlib import Path

from reelextract.core.errors import FrameMaterializationFailure
from reelextract.core.models import SampledFrame, VideoProbe


class BaseFrameExtractor(ABC):
    """Turn timestamps of a local video into image files."""

    @abstractmethod
    async def probe(self, video_path: str | Path) -> VideoProbe:
        """Return duration, dimensions, frame rate, audio presence and size.

        Raises:
            VideoProbeFailure: If the video cannot be probed.
        """

    @abstractmethod
    async def extract_frame_at(
        self, video_path: str | Path, timestamp_s: float, output_path: str | Path,
    ) -> str:
        """Write the frame at ``timestamp_s`` to ``output_path``.

        Raises:
            FrameMaterializationFailure: If this timestamp cannot be extracted.
        """

    async def sample_frames(
        self,
        video_path: str | Path,
        output_dir: str | Path,
        interval_s: float = 2.0,
        max_frames: int = 25,
    ) -> list[SampledFrame]:
        """Extract one frame every ``interval_s`` seconds, up to ``max_frames``.

        Failed timestamps are skipped.
        """
        probe = await self.probe(video_path)
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)

        count = min(max(1, math.ceil(probe.duration_s / interval_s)), max_frames)
        sampled: list[SampledFrame] = []
        for i in range(count):
            ts = i * interval_s
            target = out / f"frame_{i + 1:04d}.jpg"
            try:
                path = await self.extract_frame_at(video_path, ts, target)
            except FrameMaterializationFailure:
                continue
            sampled.append(SampledFrame(timestamp=ts, path=path))
        return sampled
