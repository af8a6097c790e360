# src/reelextract/pipeline/stages/style_extraction.py — v1
"""Visual style extraction (fast tier), primed with the restaurant context."""

from __future__ import annotations

import logging

from reelextract.core.errors import ResponseParseFailure
from reelextract.core.models import RestaurantInfo, StyleProfile
from reelextract.llm.response_parser import parse_model
from reelextract.logging.context import set_stage_context
from reelextract.media.models import MediaHandle
from reelextract.pipeline.stages.base import StageContext, call_analysis

logger = logging.getLogger(__name__)

STAGE = "style"

_PROMPT = """Analyze this restaurant video for visual branding and style.

Restaurant context: {cuisine} - {ambiance}

TASK: Determine the visual style for this restaurant's website.

Return JSON only:
{{
  "theme": "modern" | "rustic" | "elegant" | "vibrant" | "minimalist" | "traditional",
  "primaryColor": "#hexcode (dominant brand color you see)",
  "secondaryColor": "#hexcode (accent color)",
  "mood": "warm" | "cool" | "neutral",
  "fontStyle": "serif" | "sans-serif" | "display",
  "designNotes": "Brief notes on the restaurant's visual identity"
}}"""


def build_prompt(info: RestaurantInfo) -> str:
    return _PROMPT.format(
        cuisine=info.cuisine_type or "Restaurant",
        ambiance=info.ambiance or "casual",
    )


async def extract_style(
    ctx: StageContext, handle: MediaHandle, info: RestaurantInfo,
) -> StyleProfile:
    """Extract the brand style; an unparseable answer yields the default profile.

    Raises:
        RemoteCallFailure: If the analysis call fails.
    """
    set_stage_context(STAGE)
    prompt = build_prompt(info)
    with ctx.run.track_step(
        "extract_style",
        prompt=prompt,
        input={"media_uri": handle.uri, "restaurant_context": info.cuisine_type},
    ) as step:
        response = await call_analysis(ctx, STAGE, step, prompt, handle=handle)
        try:
            style = parse_model(response.content, StyleProfile)
        except ResponseParseFailure as exc:
            style = StyleProfile()
            step.add_warning(str(exc))
            step.complete({
                "raw_response": response.content,
                "parse_error": str(exc),
                "used_fallback": True,
                "parsed": style.model_dump(by_alias=True),
            })
            logger.warning("Style parse failed, using default styling: %s", exc)
            return style

        step.complete({
            "raw_response": response.content,
            "parsed": style.model_dump(by_alias=True),
            "theme": style.theme,
            "primary_color": style.primary_color,
        })
        return style
