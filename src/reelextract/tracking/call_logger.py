# src/reelextract/tracking/call_logger.py — v1
"""Analysis call logging: records every remote call for token/latency tracking."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from reelextract.llm.models import LLMResponse
from reelextract.tracking.models import CallSummary, LLMCallRecord

logger = logging.getLogger(__name__)


class CallLogger:
    """Accumulates analysis call records during a pipeline run."""

    def __init__(self) -> None:
        self._records: list[LLMCallRecord] = []

    def record(self, stage: str, response: LLMResponse) -> LLMCallRecord:
        """Record a successful call.

        Args:
            stage: Stage name (e.g. "menu_pass1").
            response: Provider response with token usage.
        """
        record = LLMCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            stage=stage,
            provider=response.provider,
            model=response.model,
            tier=response.tier,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            total_tokens=response.input_tokens + response.output_tokens,
            latency_ms=response.latency_ms,
        )
        self._records.append(record)
        return record

    def record_failure(
        self, stage: str, provider: str, model: str, tier: str, error: BaseException,
    ) -> LLMCallRecord:
        """Record a call that raised before returning a response."""
        record = LLMCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            stage=stage,
            provider=provider,
            model=model,
            tier=tier,
            status="failed",
            error=str(error),
        )
        self._records.append(record)
        return record

    @property
    def records(self) -> list[LLMCallRecord]:
        return list(self._records)

    @property
    def total_tokens(self) -> int:
        return sum(r.total_tokens for r in self._records)

    @property
    def total_calls(self) -> int:
        return len(self._records)

    def summary(self) -> CallSummary:
        by_stage: dict[str, int] = {}
        for r in self._records:
            by_stage[r.stage] = by_stage.get(r.stage, 0) + 1
        return CallSummary(
            total_calls=len(self._records),
            failed_calls=sum(1 for r in self._records if r.status == "failed"),
            total_input_tokens=sum(r.input_tokens for r in self._records),
            total_output_tokens=sum(r.output_tokens for r in self._records),
            total_tokens=self.total_tokens,
            total_latency_ms=sum(r.latency_ms for r in self._records),
            by_stage=by_stage,
        )

    def save(self, path: Path) -> None:
        """Save all records to a JSON Lines file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            for record in self._records:
                f.write(json.dumps(record.model_dump(mode="json")) + "\n")
