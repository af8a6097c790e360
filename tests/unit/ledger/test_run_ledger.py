# tests/unit/ledger/test_run_ledger.py — v1
"""Tests for ledger/run_ledger.py."""

from __future__ import annotations

import asyncio
import json
import re

import pytest

from reelextract.core.models import ExtractionResult
from reelextract.ledger import layout
from reelextract.ledger.run_ledger import (
    InvalidTransition,
    RunLedger,
    RunNotFoundError,
    RunTracker,
    generate_run_id,
    is_valid_run_id,
)
from reelextract.scoring.quality_scorer import score_extraction


class TestGenerateRunId:
    def test_format(self):
        assert re.fullmatch(r"\d{8}_\d{6}_[0-9a-f]{8}", generate_run_id())

    def test_unique(self):
        assert generate_run_id() != generate_run_id()

    @pytest.mark.parametrize("run_id,valid", [
        ("20260101_120000_abcd1234", True),
        ("../../etc/passwd", False),
        ("20260101_120000_abcd1234/../x", False),
        ("20260101_120000_ABCD1234", False),
        ("", False),
    ])
    def test_is_valid_run_id(self, run_id, valid):
        assert is_valid_run_id(run_id) is valid


class TestStepTracker:
    def test_complete_with_output(self):
        run = RunTracker("r1")
        step = run.start_step("select_key_frames", prompt="p", model="m", tier="precise")
        step.complete({"frame_count": 3})
        rec = step.record
        assert rec.status == "completed"
        assert rec.output == {"frame_count": 3}
        assert rec.duration_ms is not None
        assert rec.ended_at >= rec.started_at

    def test_fail_discards_output(self):
        step = RunTracker("r1").start_step("extract_style")
        step.set_output({"raw_response": "partial"})
        step.fail(RuntimeError("quota"))
        assert step.record.status == "failed"
        assert step.record.output is None
        assert step.record.error == "quota"

    def test_no_double_finish(self):
        step = RunTracker("r1").start_step("x")
        step.complete()
        with pytest.raises(InvalidTransition):
            step.fail("late")

    def test_steps_keep_start_order(self):
        run = RunTracker("r1")
        for name in ("upload_video", "get_metadata", "select_key_frames"):
            run.start_step(name)
        assert [s.name for s in run.record.steps] == ["upload_video", "get_metadata", "select_key_frames"]


class TestTrackStep:
    def test_completes_on_exit(self):
        run = RunTracker("r1")
        with run.track_step("get_metadata") as step:
            pass
        assert step.record.status == "completed"

    def test_fails_on_exception(self):
        run = RunTracker("r1")
        with pytest.raises(ValueError):
            with run.track_step("get_metadata"):
                raise ValueError("probe exploded")
        assert run.record.steps[0].status == "failed"
        assert run.record.steps[0].error == "probe exploded"

    def test_explicit_completion_kept(self):
        run = RunTracker("r1")
        with run.track_step("x") as step:
            step.complete({"done": True})
        assert step.record.output == {"done": True}


class TestRunTracker:
    def test_complete_scores_once(self):
        run = RunTracker("r1", {"video_path": "v.mp4"})
        report = run.complete(ExtractionResult(), score_extraction)
        assert run.record.status == "completed"
        assert run.record.quality == report
        assert report.rating == "poor"

    def test_fail_then_complete_rejected(self):
        run = RunTracker("r1")
        run.fail("remote down")
        with pytest.raises(InvalidTransition):
            run.complete(ExtractionResult(), score_extraction)
        assert run.record.error == "remote down"
        assert run.record.result is None


class TestRunLedger:
    @pytest.mark.asyncio
    async def test_save_and_load(self, tmp_path):
        ledger = RunLedger(tmp_path)
        run = ledger.start_run({"video_path": "v.mp4"})
        run.start_step("upload_video").complete()
        run.complete(ExtractionResult(), score_extraction)

        path = await ledger.save(run)
        assert path == layout.run_path(tmp_path, run.run_id)
        loaded = await ledger.load_run(run.run_id)
        assert loaded.status == "completed"
        assert loaded.steps[0].name == "upload_video"
        assert loaded.quality.rating == "poor"
        assert run.run_id not in ledger.active_run_ids

    @pytest.mark.asyncio
    async def test_load_missing(self, tmp_path):
        with pytest.raises(RunNotFoundError):
            await RunLedger(tmp_path).load_run("nope")

    @pytest.mark.asyncio
    async def test_load_rejects_path_outside_root(self, tmp_path):
        root = tmp_path / "ledger"
        ledger = RunLedger(root)
        run = ledger.start_run()
        run.fail("x")
        await ledger.save(run)
        (tmp_path / "secret.json").write_text(run.record.model_dump_json())
        with pytest.raises(RunNotFoundError):
            await ledger.load_run("../secret")

    def test_start_run_rejects_malformed_id(self, tmp_path):
        with pytest.raises(ValueError, match="Invalid run id"):
            RunLedger(tmp_path).start_run(run_id="../escape")
        run = RunLedger(tmp_path).start_run(run_id="20260101_120000_abcd1234")
        assert run.run_id == "20260101_120000_abcd1234"

    @pytest.mark.asyncio
    async def test_index_most_recent_first(self, tmp_path):
        ledger = RunLedger(tmp_path)
        ids = []
        for _ in range(3):
            run = ledger.start_run({"video_path": "v.mp4"})
            run.fail("x")
            await ledger.save(run)
            ids.append(run.run_id)
        recent = await ledger.list_recent_runs()
        assert [r.run_id for r in recent] == list(reversed(ids))
        assert recent[0].status == "failed"

    @pytest.mark.asyncio
    async def test_index_bounded(self, tmp_path):
        ledger = RunLedger(tmp_path, index_size=2)
        for _ in range(4):
            run = ledger.start_run()
            run.fail("x")
            await ledger.save(run)
        data = json.loads(layout.index_path(tmp_path).read_text())
        assert len(data) == 2

    @pytest.mark.asyncio
    async def test_concurrent_saves_not_lost(self, tmp_path):
        ledger = RunLedger(tmp_path)
        runs = [ledger.start_run({"video_path": f"v{i}.mp4"}) for i in range(10)]
        for run in runs:
            run.fail("x")
        await asyncio.gather(*(ledger.save(r) for r in runs))
        recent = await ledger.list_recent_runs()
        assert {r.run_id for r in recent} == {r.run_id for r in runs}

    def test_saves_across_event_loops(self, tmp_path):
        async def save_batch() -> None:
            ledger = RunLedger(tmp_path)
            runs = [ledger.start_run() for _ in range(5)]
            for run in runs:
                run.fail("x")
            await asyncio.gather(*(ledger.save(r) for r in runs))

        asyncio.run(save_batch())
        asyncio.run(save_batch())
        assert len(json.loads(layout.index_path(tmp_path).read_text())) == 10

    @pytest.mark.asyncio
    async def test_two_ledgers_same_root(self, tmp_path):
        ledgers = [RunLedger(tmp_path), RunLedger(tmp_path)]
        runs = [(lg, lg.start_run()) for lg in ledgers for _ in range(4)]
        for _, run in runs:
            run.fail("x")
        await asyncio.gather(*(lg.save(run) for lg, run in runs))
        recent = await RunLedger(tmp_path).list_recent_runs()
        assert {r.run_id for r in recent} == {run.run_id for _, run in runs}

    @pytest.mark.asyncio
    async def test_fallback_flag_in_summary(self, tmp_path):
        ledger = RunLedger(tmp_path)
        run = ledger.start_run({"video_path": "v.mp4", "used_fallback": True})
        run.complete(ExtractionResult(), score_extraction)
        await ledger.save(run)
        (summary,) = await ledger.list_recent_runs()
        assert summary.used_fallback is True
        assert summary.quality.rating == "poor"
        assert summary.video_path == "v.mp4"

    @pytest.mark.asyncio
    async def test_corrupt_index_rebuilt(self, tmp_path):
        tmp_path.mkdir(exist_ok=True)
        layout.index_path(tmp_path).write_text("{not json")
        ledger = RunLedger(tmp_path)
        assert await ledger.list_recent_runs() == []
        run = ledger.start_run()
        run.fail("x")
        await ledger.save(run)
        assert len(await ledger.list_recent_runs()) == 1
