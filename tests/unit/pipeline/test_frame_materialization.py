# tests/unit/pipeline/test_frame_materialization.py — v1
"""Tests for pipeline/stages/frame_materialization.py."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from reelextract.core.models import FrameCandidate
from reelextract.pipeline.stages.frame_materialization import frame_filename, materialize_frames


def _candidates() -> list[FrameCandidate]:
    return [
        FrameCandidate(timestamp=1.0, category="exterior", priority="high"),
        FrameCandidate(timestamp=12.5, category="food", priority="high", description="Pizza"),
        FrameCandidate(timestamp=20.25, category="interior"),
    ]


class TestFrameFilename:
    def test_format(self):
        assert frame_filename(FrameCandidate(timestamp=12.5, category="food")) == "food_12_5.jpg"
        assert frame_filename(FrameCandidate(timestamp=3.04, category="menu")) == "menu_3_0.jpg"


class TestMaterializeFrames:
    @pytest.mark.asyncio
    async def test_all_extracted_in_order(self, run_tracker, extractor_factory, video_file, tmp_path):
        extractor = extractor_factory()
        frames = await materialize_frames(run_tracker, extractor, video_file, _candidates(), tmp_path / "out")

        assert [f.timestamp for f in frames] == [1.0, 12.5, 20.25]
        assert frames[1].description == "Pizza"
        assert Path(frames[1].path).name == "food_12_5.jpg"
        assert all(Path(f.path).exists() for f in frames)

        step = run_tracker.record.steps[0]
        assert step.name == "extract_frames"
        assert step.output["requested_frames"] == 3
        assert step.output["extracted_frames"] == 3
        assert step.output["frame_types"] == ["exterior", "food", "interior"]

    @pytest.mark.asyncio
    async def test_failures_listed_not_raised(self, run_tracker, extractor_factory, video_file, tmp_path):
        extractor = extractor_factory(fail_at={12.5})
        frames = await materialize_frames(run_tracker, extractor, video_file, _candidates(), tmp_path / "out")

        assert [f.timestamp for f in frames] == [1.0, 20.25]
        step = run_tracker.record.steps[0]
        assert step.status == "completed"
        assert step.output["failures"][0]["timestamp"] == 12.5
        assert step.output["failures"][0]["category"] == "food"
        assert len(step.warnings) == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_isolated_to_its_frame(self, run_tracker, extractor_factory, video_file, tmp_path):
        extractor = extractor_factory()
        real_extract = extractor.extract_frame_at

        async def disk_full_at_twelve(video_path, timestamp_s, output_path):
            if timestamp_s == 12.5:
                raise OSError("disk full")
            return await real_extract(video_path, timestamp_s, output_path)

        extractor.extract_frame_at = disk_full_at_twelve
        frames = await materialize_frames(run_tracker, extractor, video_file, _candidates(), tmp_path / "out")

        assert [f.timestamp for f in frames] == [1.0, 20.25]
        step = run_tracker.record.steps[0]
        assert step.status == "completed"
        assert step.output["failures"] == [
            {"timestamp": 12.5, "category": "food", "error": "OSError: disk full"},
        ]

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self, run_tracker, extractor_factory, video_file, tmp_path):
        extractor = extractor_factory()
        active = 0
        peak = 0
        real_extract = extractor.extract_frame_at

        async def tracked(video_path, timestamp_s, output_path):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            try:
                return await real_extract(video_path, timestamp_s, output_path)
            finally:
                active -= 1

        extractor.extract_frame_at = tracked
        candidates = [FrameCandidate(timestamp=float(i), category="food") for i in range(8)]
        frames = await materialize_frames(
            run_tracker, extractor, video_file, candidates, tmp_path / "out", concurrency=2,
        )
        assert len(frames) == 8
        assert peak <= 2

    @pytest.mark.asyncio
    async def test_empty_candidates(self, run_tracker, extractor_factory, video_file, tmp_path):
        frames = await materialize_frames(run_tracker, extractor_factory(), video_file, [], tmp_path / "out")
        assert frames == []
        assert run_tracker.record.steps[0].output["requested_frames"] == 0
