# src/reelextract/tracking/models.py — v1
"""Tracking domain models: LLMCallRecord, CallSummary."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class LLMCallRecord(BaseModel):
    """Individual analysis call log entry."""

    call_id: str
    timestamp: datetime
    stage: str
    provider: str
    model: str
    tier: str
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    latency_ms: int = 0
    status: Literal["success", "failed"] = "success"
    error: str | None = None


class CallSummary(BaseModel):
    """Per-run aggregate stored in run metadata."""

    total_calls: int = 0
    failed_calls: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_tokens: int = 0
    total_latency_ms: int = 0
    by_stage: dict[str, int] = Field(default_factory=dict)
