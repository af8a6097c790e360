# src/reelextract/pipeline/stages/base.py — v1
"""Shared stage plumbing: the per-run StageContext and the tracked analysis call."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from reelextract.config.settings import Settings
from reelextract.core.errors import RemoteCallFailure
from reelextract.llm.config import resolve_stage
from reelextract.llm.models import ImageInput, LLMResponse
from reelextract.tracking.call_logger import CallLogger

if TYPE_CHECKING:
    from reelextract.ledger.run_ledger import RunTracker, StepTracker
    from reelextract.llm.base_client import BaseAnalysisClient
    from reelextract.media.models import MediaHandle

logger = logging.getLogger(__name__)


@dataclass
class StageContext:
    """Collaborators shared by every stage of one run."""

    client: BaseAnalysisClient
    run: RunTracker
    settings: Settings
    call_logger: CallLogger = field(default_factory=CallLogger)


async def call_analysis(
    ctx: StageContext,
    stage: str,
    step: StepTracker,
    prompt: str,
    handle: MediaHandle | None = None,
    images: list[ImageInput] | None = None,
) -> LLMResponse:
    """Issue one tracked analysis call for ``stage``.

    Records the resolved model on the step and the call in the CallLogger.
    The raw response is attached to the step as provisional output so it
    survives a later parse failure.

    Raises:
        RemoteCallFailure: Propagated unchanged from the client.
    """
    assignment = resolve_stage(stage, ctx.settings)
    step.set_model(assignment.model, assignment.tier)
    try:
        if images is not None:
            response = await ctx.client.analyze_images(
                images, prompt, assignment.tier, model=assignment.model,
            )
        elif handle is not None:
            response = await ctx.client.analyze(
                handle, prompt, assignment.tier, model=assignment.model,
            )
        else:
            raise ValueError("call_analysis needs a media handle or images")
    except RemoteCallFailure as exc:
        ctx.call_logger.record_failure(
            stage, assignment.provider, assignment.model, assignment.tier, exc,
        )
        logger.error("Stage '%s' remote call failed: %s", stage, exc)
        raise

    ctx.call_logger.record(stage, response)
    step.set_output({"raw_response": response.content})
    logger.debug(
        "Stage '%s' answered by %s in %dms", stage, response.model, response.latency_ms,
    )
    return response
