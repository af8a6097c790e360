# src/reelextract/pipeline/stages/frame_selection.py — v1
"""Frame selection: ask the precise tier for 10-15 photo-worthy moments.

On a parse failure the stage substitutes evenly spaced timestamps so the
pipeline always has frames to materialize.
"""

from __future__ import annotations

import logging

from reelextract.core.errors import ResponseParseFailure
from reelextract.core.models import FrameCandidate, FrameSelectionPayload
from reelextract.llm.response_parser import parse_model
from reelextract.logging.context import set_stage_context
from reelextract.media.models import MediaHandle
from reelextract.pipeline.stages.base import StageContext, call_analysis

logger = logging.getLogger(__name__)

STAGE = "frame_selection"
FALLBACK_FRAME_COUNT = 10

_PROMPT = """You are analyzing a restaurant walkthrough video to select the best frames for a website.

VIDEO DURATION: {duration:.1f} seconds

TASK: Identify 10-15 key moments that would make great photos for a restaurant website.

For each frame, identify:
1. TYPE: exterior | interior | food | menu | signage | ambiance | staff | kitchen
2. TIMESTAMP: The exact second in the video
3. DESCRIPTION: What makes this frame good

PRIORITIZE:
- Sharp, well-lit shots (avoid motion blur)
- Appetizing food close-ups
- Inviting interior/exterior views
- Clear menu/signage shots
- Unique or signature elements

Return JSON only:
{{
  "frames": [
    {{
      "timestamp": <seconds as number>,
      "type": "<frame type>",
      "description": "<why this frame is good>",
      "priority": "high" | "medium" | "low"
    }}
  ]
}}

IMPORTANT:
- Timestamps must be between 0 and {duration:.1f}
- Include at least one of each type if visible in video
- Prioritize variety over quantity"""


def build_prompt(duration_s: float) -> str:
    return _PROMPT.format(duration=duration_s)


def fallback_frames(duration_s: float, count: int = FALLBACK_FRAME_COUNT) -> list[FrameCandidate]:
    """Evenly spaced timestamps strictly inside (0, duration)."""
    interval = duration_s / (count + 1)
    return [
        FrameCandidate(
            timestamp=interval * (i + 1),
            category="unknown",
            description="Auto-selected frame",
            priority="medium",
        )
        for i in range(count)
    ]


async def select_key_frames(
    ctx: StageContext, handle: MediaHandle, duration_s: float,
) -> list[FrameCandidate]:
    """Propose timestamped frame candidates.

    Raises:
        RemoteCallFailure: If the analysis call fails.
    """
    set_stage_context(STAGE)
    prompt = build_prompt(duration_s)

    with ctx.run.track_step(
        "select_key_frames",
        prompt=prompt,
        input={"media_uri": handle.uri, "duration_s": duration_s},
    ) as step:
        response = await call_analysis(ctx, STAGE, step, prompt, handle=handle)

        try:
            payload = parse_model(response.content, FrameSelectionPayload)
        except ResponseParseFailure as exc:
            step.add_warning(str(exc))
            logger.warning("Frame selection parse failed, using evenly spaced frames: %s", exc)
            frames = fallback_frames(duration_s)
            step.complete({
                "raw_response": response.content,
                "parse_error": str(exc),
                "used_fallback": True,
                "parsed_frames": [f.model_dump() for f in frames],
            })
            return frames

        frames = payload.frames
        out_of_range = [f.timestamp for f in frames if not 0 <= f.timestamp <= duration_s]
        if out_of_range:
            step.add_warning(
                f"{len(out_of_range)} timestamp(s) outside [0, {duration_s:.1f}]: {out_of_range}"
            )
        step.complete({
            "raw_response": response.content,
            "parsed_frames": [f.model_dump() for f in frames],
            "frame_count": len(frames),
            "frame_types": sorted({f.category for f in frames}),
        })
        logger.info("Selected %d key frames", len(frames))
        return frames
