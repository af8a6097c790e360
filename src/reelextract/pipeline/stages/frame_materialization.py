# src/reelextract/pipeline/stages/frame_materialization.py — v1
"""Turn selected frame candidates into image files on local storage.

Extraction fans out under a semaphore. Results keep the candidate order.
A timestamp that cannot be extracted, whatever the error, is listed as a
failure on the step and dropped from the result.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from reelextract.core.errors import FrameMaterializationFailure
from reelextract.core.models import FrameCandidate, FrameFailure, SelectedFrame
from reelextract.frames.base_extractor import BaseFrameExtractor
from reelextract.ledger.run_ledger import RunTracker
from reelextract.logging.context import set_stage_context

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4


def frame_filename(candidate: FrameCandidate) -> str:
    """``food_12.5`` -> ``food_12_5.jpg``."""
    return f"{candidate.category}_{candidate.timestamp:.1f}".replace(".", "_") + ".jpg"


async def materialize_frames(
    run: RunTracker,
    extractor: BaseFrameExtractor,
    video_path: str | Path,
    candidates: list[FrameCandidate],
    output_dir: str | Path,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> list[SelectedFrame]:
    """Extract every candidate to ``output_dir``.

    Returns:
        Materialized frames in candidate order. Never raises for individual
        timestamp failures.
    """
    set_stage_context("frame_materialization")
    out = Path(output_dir)
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _one(candidate: FrameCandidate) -> SelectedFrame | FrameFailure:
        target = out / frame_filename(candidate)
        async with semaphore:
            try:
                path = await extractor.extract_frame_at(video_path, candidate.timestamp, target)
            except FrameMaterializationFailure as exc:
                logger.warning("Skipping frame at %.2fs: %s", candidate.timestamp, exc)
                return FrameFailure(
                    timestamp=candidate.timestamp, category=candidate.category, error=str(exc),
                )
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Skipping frame at %.2fs after unexpected %s: %s",
                    candidate.timestamp, type(exc).__name__, exc, exc_info=True,
                )
                return FrameFailure(
                    timestamp=candidate.timestamp,
                    category=candidate.category,
                    error=f"{type(exc).__name__}: {exc}",
                )
        return SelectedFrame(**candidate.model_dump(), path=path)

    with run.track_step(
        "extract_frames",
        input={
            "video_path": str(video_path),
            "output_dir": str(out),
            "frame_count": len(candidates),
        },
    ) as step:
        out.mkdir(parents=True, exist_ok=True)
        outcomes = await asyncio.gather(*(_one(c) for c in candidates))

        frames = [o for o in outcomes if isinstance(o, SelectedFrame)]
        failures = [o for o in outcomes if isinstance(o, FrameFailure)]
        for failure in failures:
            step.add_warning(f"Frame at {failure.timestamp:.2f}s failed: {failure.error}")

        step.complete({
            "requested_frames": len(candidates),
            "extracted_frames": len(frames),
            "failures": [f.model_dump() for f in failures],
            "frame_types": sorted({f.category for f in frames}),
        })
        logger.info("Materialized %d/%d frames into %s", len(frames), len(candidates), out)
        return frames
