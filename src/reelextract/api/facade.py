# src/reelextract/api/facade.py — v1
"""Public API facade: single entry point for video extraction.

Usage:
    from reelextract.api.facade import extract
    outcome = await extract("walkthrough.mp4")
"""

from __future__ import annotations

import logging
from pathlib import Path

from reelextract.api.models import ExtractionOutcome, ExtractOptions
from reelextract.config.settings import Settings
from reelextract.frames.base_extractor import BaseFrameExtractor
from reelextract.frames.ffmpeg_extractor import FFmpegFrameExtractor
from reelextract.ledger import layout
from reelextract.ledger.models import RunRecord, RunSummary
from reelextract.ledger.run_ledger import RunLedger
from reelextract.llm.base_client import BaseAnalysisClient, BaseMediaService
from reelextract.llm.client_factory import create_analysis_client, create_media_service
from reelextract.media.uploader import MediaUploader
from reelextract.pipeline.orchestrator import ExtractionOrchestrator

logger = logging.getLogger(__name__)


def build_orchestrator(
    settings: Settings,
    client: BaseAnalysisClient | None = None,
    media_service: BaseMediaService | None = None,
    frame_extractor: BaseFrameExtractor | None = None,
    ledger: RunLedger | None = None,
) -> ExtractionOrchestrator:
    """Wire an orchestrator from settings; any collaborator can be injected."""
    uploader = MediaUploader(
        media_service or create_media_service(settings),
        poll_interval_s=settings.media_poll_interval_s,
        max_polls=settings.media_max_polls,
        display_name=settings.media_display_name,
    )
    return ExtractionOrchestrator(
        settings=settings,
        client=client or create_analysis_client(settings),
        uploader=uploader,
        frame_extractor=frame_extractor or FFmpegFrameExtractor(
            ffmpeg_binary=settings.ffmpeg_binary,
            ffprobe_binary=settings.ffprobe_binary,
        ),
        ledger=ledger or open_ledger(settings),
    )


def open_ledger(settings: Settings) -> RunLedger:
    return RunLedger(settings.ledger_root, index_size=settings.ledger_index_size)


async def extract(
    video_path: str | Path,
    options: ExtractOptions | None = None,
    settings: Settings | None = None,
    client: BaseAnalysisClient | None = None,
    media_service: BaseMediaService | None = None,
    frame_extractor: BaseFrameExtractor | None = None,
    ledger: RunLedger | None = None,
) -> ExtractionOutcome:
    """Extract menu, identity, style and photos from a restaurant video.

    Runs the native pipeline and, on a remote failure, the image-based
    fallback. Both attempts are persisted to the ledger.

    Args:
        video_path: Local video file.
        options: Per-video options (frame output dir, fallback toggle).
        settings: Global settings. Loaded from .env if None.
        client: Analysis client. Built from settings if None.
        media_service: Media service. Built from settings if None.
        frame_extractor: Frame collaborator. ffmpeg if None.
        ledger: Run ledger. Built from settings if None.

    Returns:
        ExtractionOutcome for the run that completed.

    Raises:
        FileNotFoundError: If ``video_path`` does not exist.
        PipelineExhausted: If native and fallback attempts both failed.
    """
    path = Path(video_path)
    if not path.is_file():
        raise FileNotFoundError(f"Video not found: {path}")

    settings = settings or Settings()
    options = options or ExtractOptions()
    ledger = ledger or open_ledger(settings)
    orchestrator = build_orchestrator(
        settings,
        client=client,
        media_service=media_service,
        frame_extractor=frame_extractor,
        ledger=ledger,
    )

    logger.info("Starting extraction: video=%s", path)
    run = await orchestrator.extract(
        path, output_dir=options.output_dir, use_fallback=options.use_fallback,
    )
    outcome = ExtractionOutcome.from_run(run, layout.run_path(ledger.root, run.run_id))
    logger.info(
        "Extraction complete: run_id=%s rating=%s fallback=%s",
        outcome.run_id, outcome.quality.rating, outcome.used_fallback,
    )
    return outcome


async def load_run(run_id: str, settings: Settings | None = None) -> RunRecord:
    """Load a persisted run record.

    Raises:
        RunNotFoundError: If the run does not exist.
    """
    return await open_ledger(settings or Settings()).load_run(run_id)


async def list_recent_runs(settings: Settings | None = None) -> list[RunSummary]:
    """Recent run summaries, most recent first."""
    return await open_ledger(settings or Settings()).list_recent_runs()
