# tests/unit/pipeline/test_orchestrator.py — v1
"""Tests for pipeline/orchestrator.py."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from reelextract.core.errors import (
    PipelineExhausted,
    RemoteCallFailure,
    VideoProbeFailure,
)
from reelextract.ledger import layout
from reelextract.media.models import RemoteFile
from reelextract.media.uploader import MediaUploader
from reelextract.pipeline.orchestrator import ExtractionOrchestrator, gather_or_cancel

_FALLBACK_JSON = json.dumps({
    "restaurantName": "Luigi's",
    "cuisineType": "Italian",
    "description": "Trattoria with a wood-fired oven and long tables.",
    "styleTheme": "rustic",
    "primaryColor": "#8B0000",
    "menuItems": [
        {"name": "Margherita", "category": "mains", "estimatedPrice": 12},
        {"name": "Tiramisu", "category": "desserts", "estimatedPrice": 7},
    ],
    "photos": [{"frameIndex": 0, "type": "exterior", "description": "Storefront"}],
    "detectedText": [],
    "features": [],
})


@pytest.fixture
def orchestrator(settings, mock_client, mock_media_service, frame_extractor, ledger):
    uploader = MediaUploader(mock_media_service, poll_interval_s=0.001)
    return ExtractionOrchestrator(settings, mock_client, uploader, frame_extractor, ledger)


@pytest.fixture
def fallback_answer(mock_client, response_factory):
    mock_client.analyze_images.return_value = response_factory(_FALLBACK_JSON, tier="fast")
    return mock_client


class TestGatherOrCancel:
    @pytest.mark.asyncio
    async def test_results_in_order(self):
        async def value(v):
            await asyncio.sleep(0)
            return v

        assert await gather_or_cancel(value(1), value(2), value(3)) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_failure_cancels_siblings(self):
        cancelled: list[str] = []

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append("slow")
                raise

        async def boom():
            await asyncio.sleep(0)
            raise RemoteCallFailure("generate_content", "boom")

        with pytest.raises(RemoteCallFailure):
            await gather_or_cancel(slow(), boom())
        assert cancelled == ["slow"]


class TestNativeRun:
    @pytest.mark.asyncio
    async def test_end_to_end(self, orchestrator, video_file, ledger, settings, mock_media_service):
        run = await orchestrator.extract(video_file)

        assert run.status == "completed"
        assert run.result.restaurant_info.name == "Luigi's"
        assert len(run.result.menu.items) == 3
        assert run.result.menu.verified is True
        assert len(run.result.frames) == 9
        assert run.result.style.is_default
        assert run.quality.rating == "fair"

        names = [s.name for s in run.steps]
        assert names[:2] == ["upload_video", "get_metadata"]
        assert names[-2:] == ["extract_style", "extract_frames"]
        assert set(names) == {
            "upload_video", "get_metadata", "select_key_frames",
            "menu_extraction_pass1", "menu_extraction_pass2",
            "extract_restaurant_info", "extract_style", "extract_frames",
        }
        assert all(s.status == "completed" for s in run.steps)
        assert run.steps[0].output["reference"] == "files/abc123"

        assert run.metadata["video_duration"] == 30.0
        assert run.metadata["video_size"] == 4096
        assert run.metadata["total_tokens"] == 5 * 150
        assert set(run.metadata["models"]) == {
            "frame_selection", "menu_pass1", "menu_pass2", "restaurant_info", "style",
        }
        assert run.metadata["used_fallback"] is False

        frame_dir = Path(settings.frames_output_root) / run.run_id
        assert Path(run.result.frames[0].path).parent == frame_dir

        mock_media_service.delete.assert_awaited_once_with("files/abc123")
        saved = await ledger.load_run(run.run_id)
        assert saved.status == "completed"
        assert saved.metadata["used_fallback"] is False
        assert layout.calls_path(ledger.root, run.run_id).exists()
        assert orchestrator.run_id == run.run_id
        assert orchestrator.call_logger.total_calls == 5

    @pytest.mark.asyncio
    async def test_explicit_output_dir(self, orchestrator, video_file, tmp_path):
        run = await orchestrator.extract(video_file, output_dir=tmp_path / "frames_here")
        assert all(Path(f.path).parent == tmp_path / "frames_here" for f in run.result.frames)


class TestFallback:
    @pytest.mark.asyncio
    async def test_remote_failure_triggers_fallback(
        self, orchestrator, video_file, ledger, script, fallback_answer, mock_media_service,
    ):
        script(frames=RemoteCallFailure("generate_content", "503 overloaded"))

        run = await orchestrator.extract(video_file)

        assert run.status == "completed"
        assert run.metadata["used_fallback"] is True
        assert "503" in run.metadata["native_error"]
        assert set(run.metadata["models"]) == {"fallback"}
        assert [s.name for s in run.steps] == ["sample_frames", "analyze_frames"]
        assert all(i.confidence == 0.7 and i.needs_review for i in run.result.menu.items)

        recent = await ledger.list_recent_runs()
        assert len(recent) == 2
        assert recent[0].run_id == run.run_id
        assert recent[0].used_fallback is True

        native = await ledger.load_run(recent[1].run_id)
        assert native.status == "failed"
        assert native.metadata["used_fallback"] is False
        assert recent[1].used_fallback is False
        assert "503" in native.error
        steps = {s.name: s for s in native.steps}
        assert steps["select_key_frames"].status == "failed"
        assert all(s.status != "running" for s in native.steps)
        mock_media_service.delete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_media_rejected_triggers_fallback(
        self, orchestrator, video_file, ledger, mock_media_service, fallback_answer,
    ):
        mock_media_service.upload.return_value = RemoteFile(
            name="files/abc123", uri="", mime_type="video/mp4", state="failed",
        )

        run = await orchestrator.extract(video_file)

        assert run.metadata["used_fallback"] is True
        native = (await ledger.list_recent_runs())[1]
        record = await ledger.load_run(native.run_id)
        assert record.steps[0].name == "upload_video"
        assert record.steps[0].status == "failed"
        assert "rejected" in record.steps[0].error

    @pytest.mark.asyncio
    async def test_disabled_reraises(self, orchestrator, video_file, ledger, script):
        script(info=RemoteCallFailure("generate_content", "quota"))

        with pytest.raises(RemoteCallFailure):
            await orchestrator.extract(video_file, use_fallback=False)

        recent = await ledger.list_recent_runs()
        assert len(recent) == 1
        assert recent[0].status == "failed"

    @pytest.mark.asyncio
    async def test_both_attempts_fail(self, orchestrator, video_file, ledger, frame_extractor):
        frame_extractor.probe = AsyncMock(side_effect=VideoProbeFailure("moov atom not found"))

        with pytest.raises(PipelineExhausted) as exc_info:
            await orchestrator.extract(video_file)

        assert isinstance(exc_info.value.__cause__, VideoProbeFailure)
        recent = await ledger.list_recent_runs()
        assert [r.status for r in recent] == ["failed", "failed"]
        assert recent[0].used_fallback is True

    @pytest.mark.asyncio
    async def test_unrelated_errors_propagate(self, orchestrator, video_file, frame_extractor):
        frame_extractor.probe = AsyncMock(side_effect=RuntimeError("bug"))
        with pytest.raises(RuntimeError):
            await orchestrator.extract(video_file)
