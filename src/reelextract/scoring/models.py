# src/reelextract/scoring/models.py — v1
"""Quality scoring models: ScoringConfig, QualityIssue, QualityReport."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from reelextract.config.settings import Settings

Rating = Literal["good", "fair", "poor"]
Severity = Literal["critical", "warning"]


class ScoringConfig(BaseModel):
    """Scoring policy: thresholds and dimension weights.

    These are hand-tuned heuristics, kept configurable through Settings.
    """

    model_config = ConfigDict(frozen=True)

    expected_menu_items: int = 5
    min_menu_items: int = 3
    low_confidence: float = 0.6
    name_confidence: float = 0.7
    expected_frames: int = 8
    min_frames: int = 5
    expected_high_priority: int = 3
    good_threshold: float = 0.8
    fair_threshold: float = 0.6
    weight_menu: float = 0.35
    weight_info: float = 0.25
    weight_frames: float = 0.25
    weight_style: float = 0.15

    @classmethod
    def from_settings(cls, settings: Settings) -> ScoringConfig:
        """Build the policy from the quality_* settings."""
        prefix = "quality_"
        values = {
            name: getattr(settings, f"{prefix}{name}")
            for name in cls.model_fields
            if hasattr(settings, f"{prefix}{name}")
        }
        return cls(**values)


class QualityIssue(BaseModel):
    """A single issue detected in an extraction result."""

    model_config = ConfigDict(frozen=True)

    severity: Severity
    category: Literal["menu", "info", "frames", "style"]
    message: str


class DimensionScores(BaseModel):
    model_config = ConfigDict(frozen=True)

    menu: float
    restaurant_info: float
    frames: float
    style: float


class QualityReport(BaseModel):
    """Derived quality assessment of one run's result."""

    model_config = ConfigDict(frozen=True)

    rating: Rating
    overall: float
    scores: DimensionScores
    issues: list[QualityIssue] = Field(default_factory=list)
    summary: dict[str, Any] = Field(default_factory=dict)

    @property
    def has_critical(self) -> bool:
        return any(issue.severity == "critical" for issue in self.issues)
