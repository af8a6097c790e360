# src/reelextract/api/models.py — v1
"""API-level models: ExtractOptions, ExtractionOutcome."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

from reelextract.core.models import ExtractionResult
from reelextract.ledger.models import RunRecord
from reelextract.scoring.models import QualityReport


class ExtractOptions(BaseModel):
    """Per-video options provided by the caller."""

    output_dir: Path | None = None
    use_fallback: bool | None = None


class ExtractionOutcome(BaseModel):
    """Return value of facade.extract()."""

    run_id: str
    result: ExtractionResult
    quality: QualityReport
    used_fallback: bool = False
    native_error: str | None = None
    ledger_path: Path

    @classmethod
    def from_run(cls, run: RunRecord, ledger_path: Path) -> ExtractionOutcome:
        """Build from a completed run.

        Raises:
            ValueError: If the run has no result or quality report.
        """
        if run.result is None or run.quality is None:
            raise ValueError(f"Run {run.run_id} is not completed ({run.status})")
        return cls(
            run_id=run.run_id,
            result=run.result,
            quality=run.quality,
            used_fallback=bool(run.metadata.get("used_fallback", False)),
            native_error=run.metadata.get("native_error"),
            ledger_path=ledger_path,
        )
