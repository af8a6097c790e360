# src/reelextract/scoring/quality_scorer.py — v1
"""Deterministic quality scoring of an ExtractionResult.

Pure functions: no I/O, no clock, no randomness. The same result and
config always produce an identical QualityReport.

Dimension formulas (weights and thresholds come from ScoringConfig):
  menu   = 0.4*min(1, n/expected) + 0.3*(1 - review/max(n,1)) + 0.3*avg_conf
  info   = 0.4*has_name + 0.3*specific_cuisine + 0.3*(description > 20 chars)
  frames = 0.3*min(1, n/expected) + 0.2*food + 0.15*exterior + 0.15*interior
           + 0.2*min(1, high/expected_high)
  style  = 0.3 if the profile equals the default, else 1.0
"""

from __future__ import annotations

from reelextract.core.models import (
    ExtractionResult,
    MenuExtraction,
    RestaurantInfo,
    SelectedFrame,
    StyleProfile,
)
from reelextract.scoring.models import (
    DimensionScores,
    QualityIssue,
    QualityReport,
    Rating,
    ScoringConfig,
)

_DEFAULT_CONFIG = ScoringConfig()
_GENERIC_CUISINE = "Restaurant"
_MIN_DESCRIPTION_CHARS = 20
DEFAULT_STYLE_SCORE = 0.3


def score_menu(menu: MenuExtraction, config: ScoringConfig = _DEFAULT_CONFIG) -> tuple[float, list[QualityIssue]]:
    """Score menu completeness and confidence."""
    count = len(menu.items)
    review = menu.needs_review_count
    avg_conf = menu.avg_confidence
    with_price = sum(1 for item in menu.items if item.price is not None)

    score = (
        0.4 * min(1.0, count / config.expected_menu_items)
        + 0.3 * (1 - review / max(count, 1))
        + 0.3 * avg_conf
    )

    issues: list[QualityIssue] = []
    if count == 0:
        issues.append(QualityIssue(severity="critical", category="menu", message="No menu items found"))
    elif count < config.min_menu_items:
        issues.append(QualityIssue(
            severity="warning", category="menu", message=f"Only {count} menu items found",
        ))
    if count > 0 and review == count:
        issues.append(QualityIssue(severity="warning", category="menu", message="All menu items need review"))
    if count > 0 and avg_conf < config.low_confidence:
        issues.append(QualityIssue(
            severity="warning", category="menu",
            message=f"Low average confidence: {avg_conf * 100:.0f}%",
        ))
    if count > 0 and with_price == 0:
        issues.append(QualityIssue(
            severity="warning", category="menu", message="No prices detected on any items",
        ))
    return score, issues


def score_info(info: RestaurantInfo, config: ScoringConfig = _DEFAULT_CONFIG) -> tuple[float, list[QualityIssue]]:
    """Score restaurant identity completeness."""
    has_name = bool(info.name)
    name_conf = float(info.confidence.get("name", 0.0) or 0.0)
    has_cuisine = bool(info.cuisine_type) and info.cuisine_type != _GENERIC_CUISINE
    has_description = bool(info.description) and len(info.description) > _MIN_DESCRIPTION_CHARS

    score = (0.4 if has_name else 0.0) + (0.3 if has_cuisine else 0.0) + (0.3 if has_description else 0.0)

    issues: list[QualityIssue] = []
    if not has_name:
        issues.append(QualityIssue(severity="warning", category="info", message="Restaurant name not detected"))
    elif name_conf < config.name_confidence:
        issues.append(QualityIssue(
            severity="warning", category="info",
            message=f"Low confidence on restaurant name: {name_conf * 100:.0f}%",
        ))
    if not has_cuisine:
        issues.append(QualityIssue(severity="warning", category="info", message="Cuisine type not identified"))
    return score, issues


def score_frames(frames: list[SelectedFrame], config: ScoringConfig = _DEFAULT_CONFIG) -> tuple[float, list[QualityIssue]]:
    """Score frame coverage and variety."""
    count = len(frames)
    categories = {frame.category for frame in frames}
    has_food = "food" in categories
    has_exterior = "exterior" in categories
    has_interior = "interior" in categories
    high = sum(1 for frame in frames if frame.priority == "high")

    score = (
        0.3 * min(1.0, count / config.expected_frames)
        + (0.2 if has_food else 0.0)
        + (0.15 if has_exterior else 0.0)
        + (0.15 if has_interior else 0.0)
        + 0.2 * min(1.0, high / config.expected_high_priority)
    )

    issues: list[QualityIssue] = []
    if count == 0:
        issues.append(QualityIssue(severity="critical", category="frames", message="No frames extracted"))
    elif count < config.min_frames:
        issues.append(QualityIssue(
            severity="warning", category="frames", message=f"Only {count} frames extracted",
        ))
    if not has_food:
        issues.append(QualityIssue(severity="warning", category="frames", message="No food photos detected"))
    if not has_exterior and not has_interior:
        issues.append(QualityIssue(
            severity="warning", category="frames", message="No exterior or interior shots",
        ))
    return score, issues


def score_style(style: StyleProfile) -> tuple[float, list[QualityIssue]]:
    """Default styling is a legitimate outcome, scored as 'no brand detected'."""
    if style.is_default:
        return DEFAULT_STYLE_SCORE, [QualityIssue(
            severity="warning", category="style",
            message="Using default styling (no brand colors detected)",
        )]
    return 1.0, []


def rate(overall: float, issues: list[QualityIssue], config: ScoringConfig = _DEFAULT_CONFIG) -> Rating:
    """Derive the rating; any critical issue forces 'poor'."""
    if any(issue.severity == "critical" for issue in issues):
        return "poor"
    if overall >= config.good_threshold and not issues:
        return "good"
    if overall >= config.fair_threshold:
        return "fair"
    return "poor"


def score_extraction(result: ExtractionResult, config: ScoringConfig = _DEFAULT_CONFIG) -> QualityReport:
    """Compute the QualityReport for an extraction result.

    Args:
        result: Assembled extraction result.
        config: Scoring policy.

    Returns:
        QualityReport with per-dimension scores, weighted overall, issues
        and rating. Scores are rounded to 2 decimals; the rating is derived
        from the unrounded overall.
    """
    menu_score, menu_issues = score_menu(result.menu, config)
    info_score, info_issues = score_info(result.restaurant_info, config)
    frames_score, frames_issues = score_frames(result.frames, config)
    style_score, style_issues = score_style(result.style)

    overall = (
        config.weight_menu * menu_score
        + config.weight_info * info_score
        + config.weight_frames * frames_score
        + config.weight_style * style_score
    )
    issues = menu_issues + info_issues + frames_issues + style_issues

    return QualityReport(
        rating=rate(overall, issues, config),
        overall=round(overall, 2),
        scores=DimensionScores(
            menu=round(menu_score, 2),
            restaurant_info=round(info_score, 2),
            frames=round(frames_score, 2),
            style=round(style_score, 2),
        ),
        issues=issues,
        summary={
            "menu_items": len(result.menu.items),
            "menu_needs_review": result.menu.needs_review_count,
            "menu_avg_confidence": round(result.menu.avg_confidence, 2),
            "menu_verified": result.menu.verified,
            "frames_extracted": len(result.frames),
            "frame_types": sorted({frame.category for frame in result.frames}),
            "has_restaurant_name": bool(result.restaurant_info.name),
            "is_default_style": result.style.is_default,
        },
    )
