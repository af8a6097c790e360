# src/reelextract/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings: provider keys,
model tiers, polling bounds, frame sampling, ledger storage, logging and
the quality-scoring policy thresholds.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from reelextract.logging.handlers import parse_size


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === ANALYSIS PROVIDER ===
    llm_provider: str = "google"
    google_api_key: str = ""
    llm_max_output_tokens: int = 8192

    # Tier defaults
    llm_precise_model: str = "gemini-3-pro-preview"
    llm_fast_model: str = "gemini-3-flash-preview"

    # Per-stage override (highest priority), "provider:model"
    llm_stage_frame_selection: str = ""
    llm_stage_menu_pass1: str = ""
    llm_stage_menu_pass2: str = ""
    llm_stage_restaurant_info: str = ""
    llm_stage_style: str = ""
    llm_stage_fallback: str = ""

    # === Media upload ===
    media_poll_interval_s: float = 2.0
    media_max_polls: int = 300
    media_display_name: str = "restaurant-video"

    # === Frames ===
    frames_output_root: Path = Path("./output/frames")
    frame_extraction_concurrency: int = 4
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"

    # === Fallback pipeline ===
    fallback_enabled: bool = True
    fallback_sample_interval_s: float = 2.0
    fallback_max_frames: int = 25
    fallback_max_analysis_frames: int = 15

    # === Ledger ===
    ledger_root: Path = Path("./output/extraction-logs")
    ledger_index_size: int = 100

    # === Quality scoring policy ===
    quality_expected_menu_items: int = 5
    quality_min_menu_items: int = 3
    quality_low_confidence: float = 0.6
    quality_name_confidence: float = 0.7
    quality_expected_frames: int = 8
    quality_min_frames: int = 5
    quality_expected_high_priority: int = 3
    quality_good_threshold: float = 0.8
    quality_fair_threshold: float = 0.6
    quality_weight_menu: float = 0.35
    quality_weight_info: float = 0.25
    quality_weight_frames: float = 0.25
    quality_weight_style: float = 0.15

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("media_poll_interval_s", "fallback_sample_interval_s")
    @classmethod
    def validate_positive_interval(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("interval must be > 0")
        return v

    @field_validator("frame_extraction_concurrency", "media_max_polls", "ledger_index_size")
    @classmethod
    def validate_positive_count(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("value must be >= 1")
        return v

    @field_validator("log_rotation")
    @classmethod
    def validate_log_rotation(cls, v: str) -> str:  # noqa: N805
        parse_size(v)
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.quality_fair_threshold > self.quality_good_threshold:
            errors.append("QUALITY_FAIR_THRESHOLD must be <= QUALITY_GOOD_THRESHOLD")

        weights = (
            self.quality_weight_menu
            + self.quality_weight_info
            + self.quality_weight_frames
            + self.quality_weight_style
        )
        if abs(weights - 1.0) > 1e-6:
            errors.append(f"QUALITY_WEIGHT_* must sum to 1.0 (got {weights:.3f})")

        if self.quality_min_menu_items > self.quality_expected_menu_items:
            errors.append("QUALITY_MIN_MENU_ITEMS must be <= QUALITY_EXPECTED_MENU_ITEMS")

        if self.fallback_max_analysis_frames > self.fallback_max_frames:
            errors.append("FALLBACK_MAX_ANALYSIS_FRAMES must be <= FALLBACK_MAX_FRAMES")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
