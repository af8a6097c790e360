# src/reelextract/pipeline/stages/menu_extraction.py — v1
"""Two-pass menu extraction.

Pass 1 lists every visible item. Pass 2 re-reads the video with the pass-1
list in the prompt and attaches confidence and review flags. A failed or
unparseable pass 2 degrades to the pass-1 items, each marked for review.
"""

from __future__ import annotations

import json
import logging

from reelextract.core.errors import RemoteCallFailure, ResponseParseFailure
from reelextract.core.models import (
    MenuExtraction,
    MenuItem,
    MenuPass1Payload,
    MenuPass2Payload,
)
from reelextract.llm.response_parser import parse_model
from reelextract.logging.context import set_stage_context
from reelextract.media.models import MediaHandle
from reelextract.pipeline.stages.base import StageContext, call_analysis

logger = logging.getLogger(__name__)

UNVERIFIED_CONFIDENCE = 0.7

_PASS1_PROMPT = """You are analyzing a restaurant video to extract menu information.

TASK: Find ALL menu items visible in this video. Look carefully at:
- Physical menus (printed, chalkboard, digital displays)
- Menu boards on walls
- Food being prepared or served
- Plates with visible dishes

For each item found, extract:
- name: The dish name exactly as shown/heard
- description: Any description visible or inferable
- category: Appetizers | Mains | Desserts | Drinks | Sides | Specials
- price: The price if visible (null if not)
- dietaryTags: Any visible dietary indicators [vegetarian, vegan, gluten-free, spicy, etc.]
- source: Where you saw this (menu board, printed menu, plate, etc.)
- timestamp: When in the video you saw this

Return JSON only:
{
  "items": [
    {
      "name": "string",
      "description": "string or null",
      "category": "string",
      "price": number or null,
      "dietaryTags": ["string"],
      "source": "string",
      "timestamp": number
    }
  ],
  "menuStyleNotes": "Description of how menus are displayed in this restaurant"
}"""

_PASS2_PROMPT = """You previously extracted these menu items from a restaurant video:

{items_json}

TASK: Verify each item by reviewing the video again. For each item:
1. Confirm it actually exists in the video
2. Correct any spelling or detail errors
3. Add a confidence score (0.0-1.0) based on how clearly you can see/read it
4. Flag items that need human review

Also look for any items you may have missed in the first pass.

Return JSON only:
{{
  "items": [
    {{
      "name": "string",
      "description": "string or null",
      "category": "string",
      "price": number or null,
      "dietaryTags": ["string"],
      "confidence": number (0.0-1.0),
      "needsReview": boolean
    }}
  ]
}}

Set needsReview: true if:
- Name is partially obscured or unclear
- Price is hard to read
- You're not confident about the category
- The item might be a special/seasonal item"""


def build_pass2_prompt(items: list[MenuItem]) -> str:
    items_json = json.dumps(
        [item.model_dump(by_alias=True, exclude={"confidence", "needs_review"}) for item in items],
        indent=2,
        ensure_ascii=False,
    )
    return _PASS2_PROMPT.format(items_json=items_json)


def mark_unverified(items: list[MenuItem]) -> list[MenuItem]:
    """Pass-1 items carried forward without verification."""
    return [
        item.model_copy(update={"confidence": UNVERIFIED_CONFIDENCE, "needs_review": True})
        for item in items
    ]


async def extract_menu_two_pass(ctx: StageContext, handle: MediaHandle) -> MenuExtraction:
    """Run both menu passes against one media handle.

    Raises:
        RemoteCallFailure: If pass 1 fails. A pass-2 failure is absorbed.
    """
    set_stage_context("menu_pass1")
    with ctx.run.track_step(
        "menu_extraction_pass1",
        prompt=_PASS1_PROMPT,
        input={"media_uri": handle.uri},
    ) as step:
        response = await call_analysis(ctx, "menu_pass1", step, _PASS1_PROMPT, handle=handle)
        try:
            pass1 = parse_model(response.content, MenuPass1Payload)
        except ResponseParseFailure as exc:
            step.add_warning(str(exc))
            step.complete({"raw_response": response.content, "parse_error": str(exc)})
            logger.warning("Menu pass 1 parse failed: %s", exc)
            return MenuExtraction(items=[], verified=False)

        step.complete({
            "raw_response": response.content,
            "item_count": len(pass1.items),
            "categories": sorted({item.category for item in pass1.items}),
            "menu_style_notes": pass1.menu_style_notes,
        })

    if not pass1.items:
        logger.info("Menu pass 1 found no items, skipping verification")
        return MenuExtraction(items=[], verified=True, menu_style_notes=pass1.menu_style_notes)

    return await _verify(ctx, handle, pass1)


async def _verify(
    ctx: StageContext, handle: MediaHandle, pass1: MenuPass1Payload,
) -> MenuExtraction:
    set_stage_context("menu_pass2")
    prompt = build_pass2_prompt(pass1.items)
    unverified = MenuExtraction(
        items=mark_unverified(pass1.items),
        verified=False,
        menu_style_notes=pass1.menu_style_notes,
    )

    with ctx.run.track_step(
        "menu_extraction_pass2",
        prompt=prompt,
        input={"media_uri": handle.uri, "pass1_item_count": len(pass1.items)},
    ) as step:
        try:
            response = await call_analysis(ctx, "menu_pass2", step, prompt, handle=handle)
        except RemoteCallFailure as exc:
            step.fail(exc)
            logger.warning("Menu pass 2 failed, keeping %d unverified items", len(pass1.items))
            return unverified

        try:
            pass2 = parse_model(response.content, MenuPass2Payload)
        except ResponseParseFailure as exc:
            step.add_warning(str(exc))
            step.complete({
                "raw_response": response.content,
                "parse_error": str(exc),
                "used_pass1_fallback": True,
            })
            logger.warning("Menu pass 2 parse failed, keeping pass 1 items: %s", exc)
            return unverified

        menu = MenuExtraction(
            items=list(pass2.items),
            verified=True,
            menu_style_notes=pass1.menu_style_notes,
        )
        step.complete({
            "raw_response": response.content,
            "item_count": len(menu.items),
            "needs_review_count": menu.needs_review_count,
            "avg_confidence": round(menu.avg_confidence, 2),
            "items_added": len(menu.items) - len(pass1.items),
        })
        logger.info(
            "Menu verified: %d items, %d need review", len(menu.items), menu.needs_review_count,
        )
        return menu
