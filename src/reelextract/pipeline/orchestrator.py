# src/reelextract/pipeline/orchestrator.py — v1
"""Extraction orchestrator.

Drives one video through the pipeline:
  1. upload_video        register the video remotely (released on every exit)
  2. get_metadata        probe duration and size locally
  3. frame selection, two-pass menu and restaurant info, concurrently
  4. extract_style       primed with the restaurant info
  5. extract_frames      materialize the selected frames
  6. finalize            assemble, score, persist

A remote failure, a rejected upload or a failed probe aborts the attempt.
The failed run is persisted, then the image-based fallback runs as a new,
separate run.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable

from reelextract.config.settings import Settings
from reelextract.core.errors import (
    MediaRejected,
    PipelineExhausted,
    RemoteCallFailure,
    VideoProbeFailure,
)
from reelextract.core.models import ExtractionResult
from reelextract.frames.base_extractor import BaseFrameExtractor
from reelextract.ledger import layout
from reelextract.ledger.models import RunRecord
from reelextract.ledger.run_ledger import RunLedger
from reelextract.llm.base_client import BaseAnalysisClient
from reelextract.llm.config import resolve_all, resolve_stage
from reelextract.logging.context import set_run_context, set_stage_context
from reelextract.media.models import MediaHandle
from reelextract.media.uploader import MediaUploader, guess_mime_type
from reelextract.pipeline.stages.base import StageContext
from reelextract.pipeline.stages.fallback import run_fallback_pipeline
from reelextract.pipeline.stages.frame_materialization import materialize_frames
from reelextract.pipeline.stages.frame_selection import select_key_frames
from reelextract.pipeline.stages.menu_extraction import extract_menu_two_pass
from reelextract.pipeline.stages.restaurant_info import extract_restaurant_info
from reelextract.pipeline.stages.style_extraction import extract_style
from reelextract.scoring.models import ScoringConfig
from reelextract.scoring.quality_scorer import score_extraction
from reelextract.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

# Errors that abort the native attempt and hand over to the fallback.
FALLBACK_TRIGGERS: tuple[type[Exception], ...] = (
    RemoteCallFailure,
    MediaRejected,
    VideoProbeFailure,
)

_PRIMARY_STAGES = ("frame_selection", "menu_pass1", "menu_pass2", "restaurant_info", "style")


async def gather_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """Like asyncio.gather, but cancels and awaits the siblings of a failure."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class ExtractionOrchestrator:
    """Run the native pipeline, with the image-based fallback on failure.

    Args:
        settings: Application settings.
        client: Analysis client for both tiers.
        uploader: Media registration on the analysis service.
        frame_extractor: Local video probe and frame extraction.
        ledger: Run registry and persistence.
        scoring_config: Quality scoring policy (from settings by default).
    """

    def __init__(
        self,
        settings: Settings,
        client: BaseAnalysisClient,
        uploader: MediaUploader,
        frame_extractor: BaseFrameExtractor,
        ledger: RunLedger,
        scoring_config: ScoringConfig | None = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._uploader = uploader
        self._extractor = frame_extractor
        self._ledger = ledger
        self._scoring = scoring_config or ScoringConfig.from_settings(settings)
        self._run_id: str | None = None
        self._call_logger: CallLogger | None = None

    @property
    def run_id(self) -> str | None:
        """Id of the most recently started run."""
        return self._run_id

    @property
    def call_logger(self) -> CallLogger | None:
        """Call log of the most recently started run."""
        return self._call_logger

    async def extract(
        self,
        video_path: str | Path,
        output_dir: str | Path | None = None,
        use_fallback: bool | None = None,
    ) -> RunRecord:
        """Extract facts from a local video.

        Args:
            video_path: Local video file.
            output_dir: Frame output directory (``frames_output_root/<run_id>``
                by default).
            use_fallback: Override ``settings.fallback_enabled``.

        Returns:
            The completed RunRecord: native, or fallback with
            ``metadata['used_fallback']`` set.

        Raises:
            PipelineExhausted: Native and fallback attempts both failed.
            RemoteCallFailure: Native attempt failed with fallback disabled.
        """
        fallback_enabled = self._settings.fallback_enabled if use_fallback is None else use_fallback
        try:
            return await self.extract_native(video_path, output_dir)
        except FALLBACK_TRIGGERS as native_error:
            if not fallback_enabled:
                raise
            logger.warning(
                "Native extraction failed, falling back to frame-based: %s", native_error,
            )
            try:
                return await self.extract_fallback(video_path, output_dir, native_error)
            except FALLBACK_TRIGGERS as fallback_error:
                raise PipelineExhausted(native_error, fallback_error) from fallback_error

    async def extract_native(
        self, video_path: str | Path, output_dir: str | Path | None = None,
    ) -> RunRecord:
        """Run the native video pipeline as one run; raises on failure."""
        ctx = self._start_run(
            video_path,
            models={stage: a.key for stage, a in resolve_all(self._settings).items()
                    if stage in _PRIMARY_STAGES},
            used_fallback=False,
        )
        out = self._output_dir(output_dir, ctx.run.run_id)
        return await self._finish(ctx, self._native(ctx, video_path, out))

    async def extract_fallback(
        self,
        video_path: str | Path,
        output_dir: str | Path | None = None,
        native_error: BaseException | None = None,
    ) -> RunRecord:
        """Run the image-based fallback as its own run; raises on failure."""
        ctx = self._start_run(
            video_path,
            models={"fallback": resolve_stage("fallback", self._settings).key},
            used_fallback=True,
            native_error=str(native_error) if native_error is not None else None,
        )
        out = self._output_dir(output_dir, ctx.run.run_id)
        return await self._finish(
            ctx, run_fallback_pipeline(ctx, self._extractor, video_path, out),
        )

    # --- internals ---

    def _start_run(self, video_path: str | Path, **metadata: Any) -> StageContext:
        tracker = self._ledger.start_run(metadata={"video_path": str(video_path), **metadata})
        self._run_id = tracker.run_id
        self._call_logger = CallLogger()
        set_run_context(tracker.run_id, video=Path(video_path).name)
        logger.info("Run %s started for %s", tracker.run_id, video_path)
        return StageContext(
            client=self._client,
            run=tracker,
            settings=self._settings,
            call_logger=self._call_logger,
        )

    def _output_dir(self, output_dir: str | Path | None, run_id: str) -> Path:
        if output_dir is not None:
            return Path(output_dir)
        return Path(self._settings.frames_output_root) / run_id

    async def _finish(
        self, ctx: StageContext, work: Awaitable[ExtractionResult],
    ) -> RunRecord:
        """Await the run's work, then finalize and persist it either way."""
        tracker = ctx.run
        try:
            result = await work
        except Exception as exc:
            tracker.fail(exc)
            logger.error("Run %s failed: %s", tracker.run_id, exc)
            await self._save(ctx)
            raise

        set_stage_context("finalize")
        report = tracker.complete(result, lambda r: score_extraction(r, self._scoring))
        logger.info(
            "Run %s completed: rating=%s overall=%.2f issues=%d",
            tracker.run_id, report.rating, report.overall, len(report.issues),
        )
        await self._save(ctx)
        return tracker.record

    async def _save(self, ctx: StageContext) -> None:
        ctx.run.set_metadata(
            llm_calls=ctx.call_logger.summary().model_dump(),
            total_tokens=ctx.call_logger.total_tokens,
        )
        await self._ledger.save(ctx.run)
        if ctx.call_logger.total_calls:
            await asyncio.to_thread(
                ctx.call_logger.save, layout.calls_path(self._ledger.root, ctx.run.run_id),
            )

    async def _native(
        self, ctx: StageContext, video_path: str | Path, output_dir: Path,
    ) -> ExtractionResult:
        set_stage_context("upload")
        upload = ctx.run.start_step(
            "upload_video",
            input={"video_path": str(video_path), "mime_type": guess_mime_type(video_path)},
        )
        try:
            async with self._uploader.registered(video_path) as handle:
                upload.complete({
                    "reference": handle.reference,
                    "uri": handle.uri,
                    "state": handle.readiness_state,
                    "poll_count": handle.poll_count,
                })
                return await self._analyze(ctx, handle, video_path, output_dir)
        except BaseException as exc:
            if upload.is_running:
                upload.fail(exc)
            raise

    async def _analyze(
        self,
        ctx: StageContext,
        handle: MediaHandle,
        video_path: str | Path,
        output_dir: Path,
    ) -> ExtractionResult:
        set_stage_context("metadata")
        with ctx.run.track_step("get_metadata", input={"video_path": str(video_path)}) as step:
            probe = await self._extractor.probe(video_path)
            step.complete(probe.model_dump())
        ctx.run.set_metadata(video_duration=probe.duration_s, video_size=probe.size_bytes)

        candidates, menu, info = await gather_or_cancel(
            select_key_frames(ctx, handle, probe.duration_s),
            extract_menu_two_pass(ctx, handle),
            extract_restaurant_info(ctx, handle),
        )
        style = await extract_style(ctx, handle, info)

        frames = await materialize_frames(
            ctx.run,
            self._extractor,
            video_path,
            candidates,
            output_dir,
            concurrency=self._settings.frame_extraction_concurrency,
        )
        return ExtractionResult(frames=frames, menu=menu, restaurant_info=info, style=style)
