# src/reelextract/core/models.py — v1
"""Core domain models: frames, menu, restaurant info, style, extraction result.

Model responses use camelCase keys; every record accepts both the camelCase
alias and the snake_case field name so ledger files round-trip either way.
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Priority = Literal["high", "medium", "low"]

FRAME_CATEGORIES: tuple[str, ...] = (
    "exterior",
    "interior",
    "food",
    "menu",
    "signage",
    "ambiance",
    "staff",
    "kitchen",
)

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")
_PRICE_RE = re.compile(r"(\d+(?:[.,]\d+)?)")


class CamelModel(BaseModel):
    """Base model accepting camelCase aliases and snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Frames ===


class FrameCandidate(CamelModel):
    """A timestamped moment proposed by frame selection."""

    timestamp: float
    category: str = Field(default="unknown", alias="type")
    description: str = ""
    priority: Priority = "medium"

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> str:
        if not v:
            return "unknown"
        return str(v).strip().lower()

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, v: Any) -> str:
        value = str(v or "medium").strip().lower()
        return value if value in ("high", "medium", "low") else "medium"

    @field_validator("description", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)


class SelectedFrame(FrameCandidate):
    """A frame candidate materialized as an image file."""

    path: str


class FrameFailure(BaseModel):
    """A timestamp the frame collaborator could not materialize."""

    timestamp: float
    category: str
    error: str


class SampledFrame(BaseModel):
    """A frame sampled at a fixed interval (fallback pipeline)."""

    timestamp: float
    path: str


class VideoProbe(BaseModel):
    """Local video metadata returned by the frame collaborator."""

    duration_s: float
    width: int | None = None
    height: int | None = None
    frame_rate: float | None = None
    has_audio: bool = False
    size_bytes: int | None = None


# === Menu ===


class MenuItem(CamelModel):
    """A single menu item.

    ``confidence`` stays None until the verification pass has scored it.
    """

    name: str
    description: str | None = None
    category: str = "Mains"
    price: float | None = None
    dietary_tags: list[str] = Field(default_factory=list)
    source: str | None = None
    timestamp: float | None = None
    confidence: float | None = None
    needs_review: bool = False

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: Any) -> float | None:
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, (int, float)):
            return float(v)
        match = _PRICE_RE.search(str(v))
        if match is None:
            return None
        return float(match.group(1).replace(",", "."))

    @field_validator("dietary_tags", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> list[str]:
        return [] if v is None else v

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v: Any) -> str:
        return str(v) if v else "Mains"

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, v: float | None) -> float | None:
        if v is None:
            return None
        return max(0.0, min(1.0, v))


class MenuExtraction(CamelModel):
    """Menu extraction outcome for a run."""

    items: list[MenuItem] = Field(default_factory=list)
    verified: bool = False
    menu_style_notes: str = ""

    @property
    def needs_review_count(self) -> int:
        return sum(1 for item in self.items if item.needs_review)

    @property
    def avg_confidence(self) -> float:
        """Average item confidence; unscored items count as 0."""
        if not self.items:
            return 0.0
        return sum(item.confidence or 0.0 for item in self.items) / len(self.items)


# === Restaurant info ===


class RestaurantInfo(CamelModel):
    """Identity facts about the business."""

    name: str | None = None
    cuisine_type: str = "Restaurant"
    description: str = "A local restaurant."
    tagline: str = "Great food, great experience."
    ambiance: str = "casual"
    price_range: str = "$$"
    features: list[str] = Field(default_factory=list)
    confidence: dict[str, float] = Field(default_factory=dict)

    @field_validator("name", mode="before")
    @classmethod
    def blank_name_to_none(cls, v: Any) -> str | None:
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @field_validator("features", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> list[str]:
        return [] if v is None else v

    @field_validator("confidence", mode="before")
    @classmethod
    def none_to_dict(cls, v: Any) -> dict[str, float]:
        return {} if v is None else v


def default_restaurant_info() -> RestaurantInfo:
    """Neutral record substituted when restaurant info cannot be parsed."""
    return RestaurantInfo(
        confidence={"name": 0.0, "cuisineType": 0.5, "description": 0.5},
    )


# === Style ===


class StyleProfile(CamelModel):
    """Visual brand profile."""

    theme: str = "modern"
    primary_color: str = "#2563eb"
    secondary_color: str = "#f59e0b"
    mood: str = "warm"
    font_style: str = "sans-serif"
    design_notes: str = "Default styling applied"

    @field_validator("primary_color", "secondary_color", mode="before")
    @classmethod
    def normalize_hex(cls, v: Any) -> str:
        text = str(v or "").strip()
        match = _HEX_RE.match(text)
        if match is None:
            raise ValueError(f"not a hex colour: {v!r}")
        return f"#{match.group(1).lower()}"

    @field_validator("design_notes", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    def style_key(self) -> tuple[str, str, str, str, str]:
        """Tuple compared against the default profile (design notes excluded)."""
        return (
            self.theme,
            self.primary_color,
            self.secondary_color,
            self.mood,
            self.font_style,
        )

    @property
    def is_default(self) -> bool:
        return self.style_key() == DEFAULT_STYLE.style_key()


DEFAULT_STYLE = StyleProfile()


# === Result ===


class ExtractionResult(CamelModel):
    """Assembled facts for one run."""

    frames: list[SelectedFrame] = Field(default_factory=list)
    menu: MenuExtraction = Field(default_factory=MenuExtraction)
    restaurant_info: RestaurantInfo = Field(default_factory=RestaurantInfo)
    style: StyleProfile = Field(default_factory=StyleProfile)


# === Model response payloads (validated once at the parse boundary) ===


class FrameSelectionPayload(CamelModel):
    frames: list[FrameCandidate] = Field(default_factory=list)


class MenuPass1Payload(CamelModel):
    items: list[MenuItem] = Field(default_factory=list)
    menu_style_notes: str = ""

    @field_validator("menu_style_notes", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)


class VerifiedMenuItem(MenuItem):
    """Pass-2 item: a missing confidence counts as 0."""

    confidence: float | None = 0.0

    @field_validator("confidence", mode="before")
    @classmethod
    def none_to_zero(cls, v: Any) -> float:
        return 0.0 if v is None else v


class MenuPass2Payload(CamelModel):
    items: list[VerifiedMenuItem] = Field(default_factory=list)


class FallbackMenuItem(CamelModel):
    name: str
    description: str | None = None
    category: str | None = None
    estimated_price: Any = None


class FallbackPhoto(CamelModel):
    frame_index: int
    category: str = Field(default="unknown", alias="type")
    description: str = ""

    @field_validator("frame_index", mode="before")
    @classmethod
    def coerce_index(cls, v: Any) -> int:
        return int(v)


class FallbackPayload(CamelModel):
    """Combined single-pass response of the image-based fallback."""

    restaurant_name: str | None = None
    cuisine_type: str | None = None
    description: str | None = None
    tagline: str | None = None
    style_theme: str | None = None
    primary_color: str | None = None
    menu_items: list[FallbackMenuItem] = Field(default_factory=list)
    photos: list[FallbackPhoto] = Field(default_factory=list)
    detected_text: list[str] = Field(default_factory=list)
    ambiance: str | None = None
    features: list[str] = Field(default_factory=list)
