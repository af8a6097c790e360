# src/reelextract/ledger/run_ledger.py — v1
"""Run ledger: per-run step log, finalization, persistence and recent-runs index.

A RunLedger is the explicit registry of runs: the orchestrator asks it for a
RunTracker, records steps through it, and saves it once finalized. Only the
tracker's owner mutates a run; a saved run is never written again.

Index updates are read-modify-write and are serialized twice over: an
asyncio.Lock per RunLedger (same instance) and an exclusive flock on
index.lock (other ledgers and processes).
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator

from reelextract.core.models import ExtractionResult
from reelextract.ledger import layout
from reelextract.ledger.base_output_writer import BaseOutputWriter
from reelextract.ledger.local_writer import LocalWriter
from reelextract.ledger.models import RunRecord, RunSummary, StepRecord
from reelextract.scoring.models import QualityReport

try:
    import fcntl
except ImportError:  # non-POSIX: in-process lock only
    fcntl = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

DEFAULT_INDEX_SIZE = 100

_RUN_ID_RE = re.compile(r"^\d{8}_\d{6}_[0-9a-f]{8}$")


class InvalidTransition(RuntimeError):
    """Raised when a finished run or step is finished again."""


class RunNotFoundError(KeyError):
    """Raised when a run id has no persisted record."""


def generate_run_id(timestamp: datetime | None = None) -> str:
    """Generate a run_id: yyyymmdd_hhmmss_{uuid4_short}."""
    ts = timestamp or datetime.now(timezone.utc)
    return f"{ts.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


def is_valid_run_id(run_id: str) -> bool:
    """True if ``run_id`` has the generate_run_id() shape and is safe as a file name."""
    return _RUN_ID_RE.fullmatch(run_id) is not None


def _error_text(error: BaseException | str) -> str:
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return str(error)


class StepTracker:
    """Mutator for one StepRecord."""

    def __init__(self, record: StepRecord) -> None:
        self._record = record
        self._t0 = time.monotonic()

    @property
    def record(self) -> StepRecord:
        return self._record

    @property
    def name(self) -> str:
        return self._record.name

    @property
    def is_running(self) -> bool:
        return self._record.status == "running"

    def set_prompt(self, prompt: str) -> None:
        self._record.prompt = prompt

    def set_model(self, model: str, tier: str | None = None) -> None:
        self._record.model = model
        if tier is not None:
            self._record.tier = tier

    def set_output(self, output: Any) -> None:
        """Attach a provisional payload (e.g. a raw response) before completion."""
        self._record.output = output

    def add_warning(self, warning: str) -> None:
        self._record.warnings.append(warning)

    def complete(self, output: Any = None) -> None:
        self._finish("completed")
        if output is not None:
            self._record.output = output

    def fail(self, error: BaseException | str) -> None:
        self._finish("failed")
        self._record.output = None
        self._record.error = _error_text(error)

    def _finish(self, status: str) -> None:
        if self._record.status != "running":
            raise InvalidTransition(
                f"Step '{self._record.name}' already {self._record.status}"
            )
        self._record.status = status  # type: ignore[assignment]
        self._record.ended_at = datetime.now(timezone.utc)
        self._record.duration_ms = int((time.monotonic() - self._t0) * 1000)


class RunTracker:
    """Owner-side handle on one RunRecord."""

    def __init__(self, run_id: str, metadata: dict[str, Any] | None = None) -> None:
        self._record = RunRecord(
            run_id=run_id,
            started_at=datetime.now(timezone.utc),
            metadata=dict(metadata or {}),
        )
        self._t0 = time.monotonic()

    @property
    def run_id(self) -> str:
        return self._record.run_id

    @property
    def record(self) -> RunRecord:
        return self._record

    @property
    def is_finished(self) -> bool:
        return self._record.status != "running"

    def set_metadata(self, **data: Any) -> None:
        self._record.metadata.update(data)

    def start_step(
        self,
        name: str,
        *,
        prompt: str | None = None,
        model: str | None = None,
        tier: str | None = None,
        input: Any = None,  # noqa: A002
    ) -> StepTracker:
        """Append a new running step; steps keep the order they started in."""
        record = StepRecord(
            step_id=str(uuid.uuid4()),
            name=name,
            started_at=datetime.now(timezone.utc),
            prompt=prompt,
            model=model,
            tier=tier,
            input=input,
        )
        self._record.steps.append(record)
        return StepTracker(record)

    @contextmanager
    def track_step(self, name: str, **details: Any) -> Iterator[StepTracker]:
        """Run a block as a step: fail it on exception, complete it otherwise."""
        step = self.start_step(name, **details)
        try:
            yield step
        except BaseException as exc:
            if step.is_running:
                step.fail(exc)
            raise
        if step.is_running:
            step.complete()

    def complete(
        self,
        result: ExtractionResult,
        scorer: Callable[[ExtractionResult], QualityReport],
    ) -> QualityReport:
        """Mark the run completed, then score its result exactly once."""
        self._finish("completed")
        self._record.result = result
        self._record.quality = scorer(result)
        return self._record.quality

    def fail(self, error: BaseException | str) -> None:
        self._finish("failed")
        self._record.error = _error_text(error)

    def _finish(self, status: str) -> None:
        if self.is_finished:
            raise InvalidTransition(
                f"Run {self.run_id} already {self._record.status}"
            )
        self._record.status = status  # type: ignore[assignment]
        self._record.ended_at = datetime.now(timezone.utc)
        self._record.duration_ms = int((time.monotonic() - self._t0) * 1000)


class RunLedger:
    """Registry and persistence for pipeline runs.

    Args:
        root: Ledger directory.
        writer: Storage backend for run records (local filesystem by default).
        index_size: Number of runs kept in the recent-runs index.
    """

    def __init__(
        self,
        root: str | Path,
        writer: BaseOutputWriter | None = None,
        index_size: int = DEFAULT_INDEX_SIZE,
    ) -> None:
        self._root = Path(root).expanduser()
        self._writer = writer or LocalWriter()
        self._index_size = index_size
        self._active: dict[str, RunTracker] = {}
        self._index_lock = asyncio.Lock()

    @property
    def root(self) -> Path:
        return self._root

    def start_run(
        self,
        metadata: dict[str, Any] | None = None,
        run_id: str | None = None,
    ) -> RunTracker:
        """Create and register a new running run.

        Raises:
            ValueError: If ``run_id`` is given but not a generate_run_id() value.
        """
        if run_id is not None and not is_valid_run_id(run_id):
            raise ValueError(f"Invalid run id {run_id!r}")
        tracker = RunTracker(run_id or generate_run_id(), metadata)
        self._active[tracker.run_id] = tracker
        logger.debug("Run %s started", tracker.run_id)
        return tracker

    def get_active(self, run_id: str) -> RunTracker | None:
        return self._active.get(run_id)

    @property
    def active_run_ids(self) -> list[str]:
        return list(self._active)

    async def save(self, tracker: RunTracker) -> Path:
        """Persist a run record and refresh the index.

        A finished run leaves the active registry once saved.
        """
        path = layout.run_path(self._root, tracker.run_id)
        await self._writer.write(str(path), tracker.record.model_dump_json(indent=2))

        summary = RunSummary.from_run(tracker.record)
        async with self._index_lock:
            await asyncio.to_thread(_update_index, self._root, summary, self._index_size)

        if tracker.is_finished:
            self._active.pop(tracker.run_id, None)
        logger.info("Run %s saved (%s) to %s", tracker.run_id, tracker.record.status, path)
        return path

    async def load_run(self, run_id: str) -> RunRecord:
        """Load a persisted run.

        Raises:
            RunNotFoundError: If no record exists for ``run_id``, or ``run_id``
                is malformed (the ledger is never read outside its root).
        """
        if not is_valid_run_id(run_id):
            raise RunNotFoundError(run_id)
        path = layout.run_path(self._root, run_id)
        if not await self._writer.exists(str(path)):
            raise RunNotFoundError(run_id)
        data = json.loads(await self._writer.read(str(path)))
        return RunRecord.model_validate(data)

    async def list_recent_runs(self) -> list[RunSummary]:
        """Recent run summaries, most recent first."""
        entries = await asyncio.to_thread(_read_index, layout.index_path(self._root))
        return [RunSummary.model_validate(e) for e in entries[: self._index_size]]


def _read_index(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        logger.warning("Ledger index %s is corrupt, rebuilding: %s", path, exc)
        return []
    return data if isinstance(data, list) else []


def _update_index(root: Path, summary: RunSummary, limit: int) -> None:
    """Insert ``summary`` at the head of the index under an exclusive file lock."""
    root.mkdir(parents=True, exist_ok=True)
    index = layout.index_path(root)
    with open(layout.index_lock_path(root), "a+", encoding="utf-8") as lock_handle:
        if fcntl is not None:
            fcntl.flock(lock_handle.fileno(), fcntl.LOCK_EX)
        try:
            entries = [e for e in _read_index(index) if e.get("run_id") != summary.run_id]
            entries.insert(0, summary.model_dump(mode="json"))
            tmp = index.with_name(f".{index.name}.tmp")
            tmp.write_text(json.dumps(entries[:limit], indent=2), encoding="utf-8")
            os.replace(tmp, index)
        finally:
            if fcntl is not None:
                fcntl.flock(lock_handle.fileno(), fcntl.LOCK_UN)
