# src/reelextract/pipeline/stages/fallback.py — v1
"""Image-based fallback extraction.

Used when the native video pipeline fails. Frames are sampled at a fixed
interval, an evenly distributed subset is sent to the fast tier as images,
and a single combined answer is mapped onto an ExtractionResult. Everything
produced here is unverified: menu items carry a fixed confidence and are
flagged for review.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from reelextract.core.errors import ResponseParseFailure
from reelextract.core.models import (
    ExtractionResult,
    FallbackPayload,
    MenuExtraction,
    MenuItem,
    RestaurantInfo,
    SampledFrame,
    SelectedFrame,
    StyleProfile,
)
from reelextract.frames.base_extractor import BaseFrameExtractor
from reelextract.llm.models import ImageInput
from reelextract.llm.response_parser import parse_model
from reelextract.logging.context import set_stage_context
from reelextract.pipeline.stages.base import StageContext, call_analysis

logger = logging.getLogger(__name__)

STAGE = "fallback"
FALLBACK_CONFIDENCE = 0.7
FALLBACK_MENU_CATEGORY = "Main Dishes"

_PROMPT = """You are analyzing frames from a video of a restaurant. Please extract the following information in JSON format:

{
  "restaurantName": "string or null - any visible signage or name",
  "cuisineType": "string or null - type of cuisine (Italian, Japanese, Mexican, etc.)",
  "description": "string - a brief description of the restaurant based on what you see",
  "tagline": "string or null - suggest a catchy tagline based on the atmosphere",
  "styleTheme": "modern | rustic | vibrant - choose based on decor and atmosphere",
  "primaryColor": "string - hex color that matches the restaurant's aesthetic",
  "menuItems": [
    {
      "name": "string - dish name if visible",
      "description": "string - description based on appearance",
      "category": "string - appetizers, mains, desserts, drinks, etc.",
      "estimatedPrice": "number or null"
    }
  ],
  "photos": [
    {
      "frameIndex": "number - which frame (0-indexed)",
      "type": "food | interior | exterior | menu",
      "description": "string - what's shown in this frame"
    }
  ],
  "detectedText": ["array of any text visible in the frames - menu text, signs, etc."],
  "ambiance": "string - describe the overall ambiance",
  "features": ["array of notable features - outdoor seating, bar, live music, etc."]
}

Analyze all frames carefully. Look for:
1. Restaurant name on signs, menus, or decor
2. Food dishes that could be menu items
3. Interior/exterior shots for atmosphere
4. Any visible menu boards or price lists
5. Style and decor elements

Return ONLY valid JSON, no markdown formatting."""


def select_distributed(frames: list[SampledFrame], max_count: int) -> list[SampledFrame]:
    """Pick ``max_count`` frames spread evenly across ``frames``."""
    if len(frames) <= max_count:
        return list(frames)
    step = len(frames) / max_count
    return [frames[int(i * step)] for i in range(max_count)]


async def _load_images(frames: list[SampledFrame]) -> list[ImageInput]:
    payloads = await asyncio.gather(
        *(asyncio.to_thread(Path(frame.path).read_bytes) for frame in frames)
    )
    return [
        ImageInput(data=data, media_type="image/jpeg", source_id=frame.path)
        for frame, data in zip(frames, payloads)
    ]


def map_payload(payload: FallbackPayload, analyzed: list[SampledFrame]) -> ExtractionResult:
    """Map the combined fallback answer onto an ExtractionResult.

    ``photo.frame_index`` refers to the analyzed subset, in the order the
    images were sent. Photos pointing outside it are dropped.
    """
    frames: list[SelectedFrame] = []
    for photo in payload.photos:
        if not 0 <= photo.frame_index < len(analyzed):
            logger.debug("Dropping photo with frame index %d", photo.frame_index)
            continue
        source = analyzed[photo.frame_index]
        frames.append(SelectedFrame(
            timestamp=source.timestamp,
            category=photo.category,
            description=photo.description,
            priority="medium",
            path=source.path,
        ))

    items = [
        MenuItem(
            name=item.name,
            description=item.description,
            category=item.category or FALLBACK_MENU_CATEGORY,
            price=item.estimated_price,
            dietary_tags=[],
            confidence=FALLBACK_CONFIDENCE,
            needs_review=True,
        )
        for item in payload.menu_items
    ]

    defaults = RestaurantInfo()
    info = RestaurantInfo(
        name=payload.restaurant_name,
        cuisine_type=payload.cuisine_type or defaults.cuisine_type,
        description=payload.description or defaults.description,
        tagline=payload.tagline or defaults.tagline,
        ambiance="casual",
        price_range="$$",
        features=list(payload.features),
    )

    return ExtractionResult(
        frames=frames,
        menu=MenuExtraction(items=items, verified=False),
        restaurant_info=info,
        style=_style_from(payload),
    )


def _style_from(payload: FallbackPayload) -> StyleProfile:
    theme = payload.style_theme or StyleProfile().theme
    if payload.primary_color:
        try:
            return StyleProfile(theme=theme, primary_color=payload.primary_color)
        except ValueError:
            logger.warning("Ignoring invalid primary colour %r", payload.primary_color)
    return StyleProfile(theme=theme)


def default_result(sampled: list[SampledFrame]) -> ExtractionResult:
    """Result used when the fallback answer cannot be parsed."""
    return ExtractionResult(
        frames=[
            SelectedFrame(
                timestamp=frame.timestamp,
                category="unknown",
                description="Auto-selected frame",
                priority="medium",
                path=frame.path,
            )
            for frame in sampled
        ],
        menu=MenuExtraction(items=[], verified=False),
        restaurant_info=RestaurantInfo(),
        style=StyleProfile(),
    )


async def run_fallback_pipeline(
    ctx: StageContext,
    extractor: BaseFrameExtractor,
    video_path: str | Path,
    output_dir: str | Path,
) -> ExtractionResult:
    """Sample, analyze as images, and map to an ExtractionResult.

    Raises:
        RemoteCallFailure: If the image analysis call fails.
        VideoProbeFailure: If the video cannot be probed for sampling.
    """
    settings = ctx.settings
    set_stage_context(STAGE, step="sample_frames")

    with ctx.run.track_step(
        "sample_frames",
        input={
            "video_path": str(video_path),
            "interval_s": settings.fallback_sample_interval_s,
            "max_frames": settings.fallback_max_frames,
        },
    ) as step:
        sampled = await extractor.sample_frames(
            video_path,
            output_dir,
            interval_s=settings.fallback_sample_interval_s,
            max_frames=settings.fallback_max_frames,
        )
        step.complete({"sampled_frames": len(sampled)})

    if not sampled:
        logger.warning("Fallback sampled no frames from %s", video_path)
        return default_result(sampled)

    analyzed = select_distributed(sampled, settings.fallback_max_analysis_frames)
    set_stage_context(STAGE, step="analyze_frames")

    with ctx.run.track_step(
        "analyze_frames",
        prompt=_PROMPT,
        input={"frame_paths": [frame.path for frame in analyzed]},
    ) as step:
        images = await _load_images(analyzed)
        response = await call_analysis(ctx, STAGE, step, _PROMPT, images=images)
        try:
            payload = parse_model(response.content, FallbackPayload)
        except ResponseParseFailure as exc:
            step.add_warning(str(exc))
            step.complete({
                "raw_response": response.content,
                "parse_error": str(exc),
                "used_fallback": True,
            })
            logger.warning("Fallback analysis parse failed, using defaults: %s", exc)
            return default_result(sampled)

        result = map_payload(payload, analyzed)
        step.complete({
            "raw_response": response.content,
            "menu_item_count": len(result.menu.items),
            "photo_count": len(result.frames),
            "detected_text": payload.detected_text,
            "has_name": result.restaurant_info.name is not None,
        })
        logger.info(
            "Fallback extracted %d menu items and %d photos",
            len(result.menu.items), len(result.frames),
        )
        return result
