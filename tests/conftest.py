# tests/conftest.py — v1
"""Shared test fixtures for all unit tests.

Provides settings rooted in tmp_path, a scripted analysis client, a mock
media service and an in-memory frame extractor. No network, no ffmpeg.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from reelextract.config.settings import Settings
from reelextract.core.errors import FrameMaterializationFailure
from reelextract.core.models import VideoProbe
from reelextract.frames.base_extractor import BaseFrameExtractor
from reelextract.ledger.run_ledger import RunLedger, RunTracker
from reelextract.llm.base_client import BaseAnalysisClient, BaseMediaService
from reelextract.llm.models import LLMResponse
from reelextract.media.models import MediaHandle, RemoteFile
from reelextract.pipeline.stages.base import StageContext


def make_response(content: str, tier: str = "precise") -> LLMResponse:
    return LLMResponse(
        content=content,
        input_tokens=100,
        output_tokens=50,
        model="gemini-3-pro-preview" if tier == "precise" else "gemini-3-flash-preview",
        provider="google",
        tier=tier,
        latency_ms=120,
    )


class FakeFrameExtractor(BaseFrameExtractor):
    """Writes placeholder JPEG bytes instead of decoding video."""

    def __init__(self, duration_s: float = 30.0, fail_at: set[float] | None = None) -> None:
        self.duration_s = duration_s
        self.fail_at = fail_at or set()
        self.extracted: list[float] = []

    async def probe(self, video_path):
        return VideoProbe(duration_s=self.duration_s, width=1920, height=1080, size_bytes=4096)

    async def extract_frame_at(self, video_path, timestamp_s, output_path):
        if timestamp_s in self.fail_at:
            raise FrameMaterializationFailure(timestamp_s, "decode error")
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\xff\xd8\xff\xe0fake")
        self.extracted.append(timestamp_s)
        return str(path)


# === FIXTURES: Canned model answers ===


FRAMES_JSON = json.dumps({
    "frames": [
        {"timestamp": 1.0, "type": "exterior", "description": "Storefront", "priority": "high"},
        {"timestamp": 3.5, "type": "signage", "description": "Sign", "priority": "medium"},
        {"timestamp": 6.0, "type": "interior", "description": "Dining room", "priority": "high"},
        {"timestamp": 9.0, "type": "ambiance", "description": "Candles", "priority": "low"},
        {"timestamp": 12.0, "type": "menu", "description": "Menu board", "priority": "medium"},
        {"timestamp": 15.5, "type": "food", "description": "Margherita", "priority": "high"},
        {"timestamp": 18.0, "type": "food", "description": "Carbonara", "priority": "medium"},
        {"timestamp": 22.0, "type": "kitchen", "description": "Wood oven", "priority": "medium"},
        {"timestamp": 26.0, "type": "staff", "description": "Chef", "priority": "low"},
    ]
})

PASS1_JSON = json.dumps({
    "items": [
        {"name": "Margherita", "category": "Mains", "price": 12.5, "source": "menu board",
         "timestamp": 12.0},
        {"name": "Carbonara", "category": "Mains", "price": "$14", "timestamp": 12.5},
        {"name": "Tiramisu", "category": "Desserts", "price": 7, "timestamp": 13.0},
    ],
    "menuStyleNotes": "Chalkboard by the entrance",
})

PASS2_JSON = json.dumps({
    "items": [
        {"name": "Margherita", "category": "Mains", "price": 12.5, "confidence": 0.9,
         "needsReview": False},
        {"name": "Carbonara", "category": "Mains", "price": 14, "confidence": 0.4,
         "needsReview": True},
        {"name": "Tiramisu", "category": "Desserts", "price": 7, "confidence": 0.8,
         "needsReview": False},
    ]
})

INFO_JSON = json.dumps({
    "name": "Luigi's",
    "cuisineType": "Italian",
    "description": "A family-run trattoria serving wood-fired pizza and fresh pasta.",
    "tagline": "Pizza like nonna made",
    "ambiance": "family",
    "priceRange": "$$",
    "features": ["outdoor seating"],
    "confidence": {"name": 0.95, "cuisineType": 0.9, "description": 0.8},
})

DEFAULT_STYLE_JSON = json.dumps({
    "theme": "modern",
    "primaryColor": "#2563eb",
    "secondaryColor": "#f59e0b",
    "mood": "warm",
    "fontStyle": "sans-serif",
    "designNotes": "Nothing distinctive",
})


def scripted_analyze(answers: dict[str, str | BaseException]):
    """Build an ``analyze`` side effect that answers by prompt keyword."""

    async def _analyze(handle, instruction, tier, model=None):
        for keyword, answer in answers.items():
            if keyword in instruction:
                if isinstance(answer, BaseException):
                    raise answer
                return make_response(answer, tier)
        raise AssertionError(f"Unscripted prompt: {instruction[:60]!r}")

    return _analyze


DEFAULT_ANSWERS: dict[str, str | BaseException] = {
    "select the best frames": FRAMES_JSON,
    "extract menu information": PASS1_JSON,
    "You previously extracted": PASS2_JSON,
    "extract key information": INFO_JSON,
    "visual branding": DEFAULT_STYLE_JSON,
}


# === FIXTURES: Collaborators ===


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        google_api_key="test-key",
        frames_output_root=tmp_path / "frames",
        ledger_root=tmp_path / "ledger",
        media_poll_interval_s=0.001,
    )


@pytest.fixture
def media_handle() -> MediaHandle:
    return MediaHandle(
        reference="files/abc123",
        uri="https://generativelanguage.googleapis.com/v1beta/files/abc123",
        mime_type="video/mp4",
        readiness_state="active",
    )


@pytest.fixture
def mock_client() -> AsyncMock:
    client = AsyncMock(spec=BaseAnalysisClient)
    client.analyze.side_effect = scripted_analyze(DEFAULT_ANSWERS)
    client.provider_name = "google"
    return client


@pytest.fixture
def mock_media_service() -> AsyncMock:
    service = AsyncMock(spec=BaseMediaService)
    service.upload.return_value = RemoteFile(
        name="files/abc123",
        uri="https://generativelanguage.googleapis.com/v1beta/files/abc123",
        mime_type="video/mp4",
        state="active",
    )
    return service


@pytest.fixture
def frame_extractor() -> FakeFrameExtractor:
    return FakeFrameExtractor()


@pytest.fixture
def ledger(settings: Settings) -> RunLedger:
    return RunLedger(settings.ledger_root)


@pytest.fixture
def run_tracker(ledger: RunLedger) -> RunTracker:
    return ledger.start_run(metadata={"video_path": "video.mp4"})


@pytest.fixture
def stage_ctx(mock_client: AsyncMock, run_tracker: RunTracker, settings: Settings) -> StageContext:
    return StageContext(client=mock_client, run=run_tracker, settings=settings)


@pytest.fixture
def video_file(tmp_path: Path) -> Path:
    path = tmp_path / "walkthrough.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
    return path


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def extractor_factory():
    return FakeFrameExtractor


@pytest.fixture
def script(mock_client: AsyncMock):
    """Re-script ``mock_client.analyze``; overrides replace default answers by keyword."""

    def _script(**overrides: str | BaseException) -> AsyncMock:
        answers = dict(DEFAULT_ANSWERS)
        for key, value in overrides.items():
            answers[_ANSWER_KEYS[key]] = value
        mock_client.analyze.side_effect = scripted_analyze(answers)
        return mock_client

    return _script


_ANSWER_KEYS = {
    "frames": "select the best frames",
    "pass1": "extract menu information",
    "pass2": "You previously extracted",
    "info": "extract key information",
    "style": "visual branding",
}
