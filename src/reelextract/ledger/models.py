# src/reelextract/ledger/models.py — v1
"""Ledger domain models: StepRecord, RunRecord, RunSummary."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from reelextract.core.models import ExtractionResult
from reelextract.scoring.models import QualityReport

Status = Literal["running", "completed", "failed"]


class StepRecord(BaseModel):
    """One logged unit of work within a run."""

    step_id: str
    name: str
    status: Status = "running"
    started_at: datetime
    ended_at: datetime | None = None
    duration_ms: int | None = None
    prompt: str | None = None
    model: str | None = None
    tier: str | None = None
    input: Any = None
    output: Any = None
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None


class RunRecord(BaseModel):
    """Full record of one pipeline run, persisted as <run_id>.json."""

    run_id: str
    status: Status = "running"
    started_at: datetime
    ended_at: datetime | None = None
    duration_ms: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    steps: list[StepRecord] = Field(default_factory=list)
    result: ExtractionResult | None = None
    quality: QualityReport | None = None
    error: str | None = None


class QualitySummary(BaseModel):
    rating: str
    overall: float
    issue_count: int


class RunSummary(BaseModel):
    """Entry of the recent-runs index."""

    run_id: str
    status: Status
    started_at: datetime
    duration_ms: int | None = None
    video_path: str | None = None
    step_count: int = 0
    failed_steps: int = 0
    used_fallback: bool = False
    quality: QualitySummary | None = None
    error: str | None = None

    @classmethod
    def from_run(cls, run: RunRecord) -> RunSummary:
        quality = None
        if run.quality is not None:
            quality = QualitySummary(
                rating=run.quality.rating,
                overall=run.quality.overall,
                issue_count=len(run.quality.issues),
            )
        video = run.metadata.get("video_path")
        return cls(
            run_id=run.run_id,
            status=run.status,
            started_at=run.started_at,
            duration_ms=run.duration_ms,
            video_path=str(video) if video is not None else None,
            step_count=len(run.steps),
            failed_steps=sum(1 for s in run.steps if s.status == "failed"),
            used_fallback=bool(run.metadata.get("used_fallback", False)),
            quality=quality,
            error=run.error,
        )
