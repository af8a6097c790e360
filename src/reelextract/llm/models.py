# src/reelextract/llm/models.py — v1
"""LLM-specific types: Tier, ImageInput, LLMResponse."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel

Tier = Literal["precise", "fast"]


class ImageInput(BaseModel):
    """Image payload for image-based analysis (fallback pipeline)."""

    data: bytes
    media_type: str
    source_id: str | None = None


class LLMResponse(BaseModel):
    """Normalized response from the analysis provider."""

    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str
    provider: str
    tier: Tier
    latency_ms: int
    raw_response: Any = None
