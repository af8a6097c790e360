# src/reelextract/llm/config.py — v1
"""Per-stage model routing with cascade resolution.

Resolution order:
  1. Per-stage env var (LLM_STAGE_MENU_PASS1=google:gemini-2.5-pro)
  2. Tier default (LLM_PRECISE_MODEL / LLM_FAST_MODEL)
  3. Hardcoded fallback per tier
"""

from __future__ import annotations

from dataclasses import dataclass

from reelextract.config.settings import Settings
from reelextract.llm.models import Tier

# Stage name -> tier it runs on.
STAGE_TIERS: dict[str, Tier] = {
    "frame_selection": "precise",
    "menu_pass1": "precise",
    "menu_pass2": "precise",
    "restaurant_info": "precise",
    "style": "fast",
    "fallback": "fast",
}

_FALLBACK_PROVIDER = "google"
_FALLBACK_MODELS: dict[Tier, str] = {
    "precise": "gemini-3-pro-preview",
    "fast": "gemini-3-flash-preview",
}


@dataclass(frozen=True)
class LLMAssignment:
    """Resolved provider:model for a stage."""

    provider: str
    model: str
    tier: Tier
    source: str  # "stage", "tier", or "fallback"

    @property
    def key(self) -> str:
        """Return 'provider:model' string."""
        return f"{self.provider}:{self.model}"


def _parse_assignment(value: str) -> tuple[str, str] | None:
    """Parse 'provider:model' string. Returns None if empty."""
    if not value or ":" not in value:
        return None
    provider, model = value.split(":", 1)
    return (provider.strip(), model.strip())


def tier_model(tier: Tier, settings: Settings) -> LLMAssignment:
    """Resolve the default model for a tier."""
    configured = settings.llm_precise_model if tier == "precise" else settings.llm_fast_model
    if configured:
        return LLMAssignment(
            provider=settings.llm_provider, model=configured, tier=tier, source="tier"
        )
    return LLMAssignment(
        provider=_FALLBACK_PROVIDER,
        model=_FALLBACK_MODELS[tier],
        tier=tier,
        source="fallback",
    )


def resolve_stage(stage: str, settings: Settings) -> LLMAssignment:
    """Resolve the LLM assignment for a pipeline stage.

    Args:
        stage: Stage name (see STAGE_TIERS).
        settings: Application settings.

    Raises:
        KeyError: If the stage is unknown.
    """
    tier = STAGE_TIERS[stage]
    parsed = _parse_assignment(getattr(settings, f"llm_stage_{stage}", ""))
    if parsed:
        return LLMAssignment(provider=parsed[0], model=parsed[1], tier=tier, source="stage")
    return tier_model(tier, settings)


def resolve_all(settings: Settings) -> dict[str, LLMAssignment]:
    """Resolve assignments for every known stage."""
    return {stage: resolve_stage(stage, settings) for stage in sorted(STAGE_TIERS)}
