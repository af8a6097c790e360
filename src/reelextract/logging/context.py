# src/reelextract/logging/context.py — v1
"""Contextual logging support: attach run_id, video, stage and step to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass

# Set once per run by the orchestrator, then per stage.
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_video: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "video", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass(frozen=True)
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    video: str | None = None
    stage: str | None = None
    step: str | None = None


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        video=_video.get(),
        stage=_stage.get(),
        step=_step.get(),
    )


def set_run_context(run_id: str, video: str | None = None) -> None:
    """Set run-level context (called once per run)."""
    _run_id.set(run_id)
    _video.set(video)


def set_stage_context(stage: str, step: str | None = None) -> None:
    """Set stage-level context.

    Each concurrent stage runs in its own asyncio task, which copies the
    context on creation, so sibling stages never see each other's values.
    """
    _stage.set(stage)
    _step.set(step)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _video.set(None)
    _stage.set(None)
    _step.set(None)
