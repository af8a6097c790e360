# tests/unit/pipeline/test_info_and_style.py — v1
"""Tests for pipeline/stages/restaurant_info.py and style_extraction.py."""

from __future__ import annotations

import json

import pytest

from reelextract.core.errors import RemoteCallFailure
from reelextract.core.models import RestaurantInfo
from reelextract.pipeline.stages.restaurant_info import extract_restaurant_info
from reelextract.pipeline.stages.style_extraction import build_prompt, extract_style


class TestExtractRestaurantInfo:
    @pytest.mark.asyncio
    async def test_parsed(self, stage_ctx, media_handle):
        info = await extract_restaurant_info(stage_ctx, media_handle)
        assert info.name == "Luigi's"
        assert info.cuisine_type == "Italian"
        assert info.confidence["name"] == 0.95
        step = stage_ctx.run.record.steps[0]
        assert step.name == "extract_restaurant_info"
        assert step.output["has_name"] is True

    @pytest.mark.asyncio
    async def test_parse_failure_neutral_record(self, stage_ctx, media_handle, script):
        script(info="The restaurant appears to be Italian.")
        info = await extract_restaurant_info(stage_ctx, media_handle)
        assert info.name is None
        assert info.cuisine_type == "Restaurant"
        assert info.tagline == "Great food, great experience."
        assert info.confidence == {"name": 0.0, "cuisineType": 0.5, "description": 0.5}
        assert stage_ctx.run.record.steps[0].output["used_fallback"] is True

    @pytest.mark.asyncio
    async def test_remote_failure(self, stage_ctx, media_handle, script):
        script(info=RemoteCallFailure("generate_content", "unavailable"))
        with pytest.raises(RemoteCallFailure):
            await extract_restaurant_info(stage_ctx, media_handle)


class TestExtractStyle:
    def test_prompt_uses_info_context(self):
        prompt = build_prompt(RestaurantInfo(cuisine_type="Thai", ambiance="cafe"))
        assert "Restaurant context: Thai - cafe" in prompt

    @pytest.mark.asyncio
    async def test_fast_tier(self, stage_ctx, media_handle, script):
        script(style=json.dumps({
            "theme": "rustic", "primaryColor": "#8B0000", "secondaryColor": "#F5DEB3",
            "mood": "warm", "fontStyle": "serif", "designNotes": "Brick and wood",
        }))
        style = await extract_style(stage_ctx, media_handle, RestaurantInfo(cuisine_type="Italian"))
        assert style.theme == "rustic"
        assert style.primary_color == "#8b0000"
        assert not style.is_default

        step = stage_ctx.run.record.steps[0]
        assert step.tier == "fast"
        assert step.model == "gemini-3-flash-preview"
        assert step.input["restaurant_context"] == "Italian"

    @pytest.mark.asyncio
    async def test_parse_failure_default_style(self, stage_ctx, media_handle, script):
        script(style='{"theme": "rustic", "primaryColor": "dark red"}')
        style = await extract_style(stage_ctx, media_handle, RestaurantInfo())
        assert style.is_default
        assert style.design_notes == "Default styling applied"
        assert stage_ctx.run.record.steps[0].warnings
