# src/reelextract/pipeline/stages/restaurant_info.py — v1
"""Restaurant identity extraction (precise tier)."""

from __future__ import annotations

import logging

from reelextract.core.errors import ResponseParseFailure
from reelextract.core.models import RestaurantInfo, default_restaurant_info
from reelextract.llm.response_parser import parse_model
from reelextract.logging.context import set_stage_context
from reelextract.media.models import MediaHandle
from reelextract.pipeline.stages.base import StageContext, call_analysis

logger = logging.getLogger(__name__)

STAGE = "restaurant_info"

_PROMPT = """Analyze this restaurant video and extract key information.

TASK: Identify restaurant details visible or inferable from the video.

Return JSON only:
{
  "name": "Restaurant name if visible on signage (null if not visible)",
  "cuisineType": "The type of cuisine (Italian, Mexican, Asian Fusion, etc.)",
  "description": "A 2-3 sentence description of the restaurant vibe and offerings",
  "tagline": "A catchy one-liner for the restaurant (generate if not visible)",
  "ambiance": "casual | fine-dining | fast-casual | cafe | bar | family",
  "priceRange": "$ | $$ | $$$ | $$$$",
  "features": ["outdoor seating", "bar", "private dining", etc.],
  "confidence": {
    "name": 0.0-1.0,
    "cuisineType": 0.0-1.0,
    "description": 0.0-1.0
  }
}"""


async def extract_restaurant_info(ctx: StageContext, handle: MediaHandle) -> RestaurantInfo:
    """Extract name, cuisine, description and related facts.

    An unparseable answer yields the neutral default record.

    Raises:
        RemoteCallFailure: If the analysis call fails.
    """
    set_stage_context(STAGE)
    with ctx.run.track_step(
        "extract_restaurant_info", prompt=_PROMPT, input={"media_uri": handle.uri},
    ) as step:
        response = await call_analysis(ctx, STAGE, step, _PROMPT, handle=handle)
        try:
            info = parse_model(response.content, RestaurantInfo)
        except ResponseParseFailure as exc:
            info = default_restaurant_info()
            step.add_warning(str(exc))
            step.complete({
                "raw_response": response.content,
                "parse_error": str(exc),
                "used_fallback": True,
                "parsed": info.model_dump(by_alias=True),
            })
            logger.warning("Restaurant info parse failed, using defaults: %s", exc)
            return info

        step.complete({
            "raw_response": response.content,
            "parsed": info.model_dump(by_alias=True),
            "has_name": info.name is not None,
            "cuisine_type": info.cuisine_type,
            "ambiance": info.ambiance,
        })
        logger.info("Restaurant identified as %r (%s)", info.name, info.cuisine_type)
        return info
