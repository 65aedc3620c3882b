from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..config import DEFAULT_CALIBRATION, AttributeThresholds, Calibration
from ..types import AttributeProfile, Clarity, Depth, LightingBias, RobustStats, Undertone

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _shaped_confidence(distance: float, shape: Tuple[float, float, float, float]) -> float:
    base, scale, low, high = shape
    return _clamp(base + distance / scale, low, high)


def warmth_axis(a: float, b: float) -> float:
    """Yellow-versus-red balance ``b - 0.5 * a``; higher reads warmer."""
    return b - 0.5 * a


def classify_undertone_value(
    warmth: float,
    thresholds: AttributeThresholds,
) -> Tuple[Undertone, Optional[str], float]:
    """Category, neutral lean and distance to the nearest breakpoint for a warmth value."""
    if warmth < thresholds.cool_below:
        return "cool", None, thresholds.cool_below - warmth
    if warmth > thresholds.warm_above:
        return "warm", None, warmth - thresholds.warm_above

    midpoint = (thresholds.cool_below + thresholds.warm_above) / 2.0
    lean: Optional[str] = None
    if warmth >= midpoint + thresholds.lean_dead_zone:
        lean = "warm"
    elif warmth <= midpoint - thresholds.lean_dead_zone:
        lean = "cool"
    distance = min(warmth - thresholds.cool_below, thresholds.warm_above - warmth)
    return "neutral", lean, distance


def classify_depth_value(lightness: float, thresholds: AttributeThresholds) -> Tuple[Depth, float]:
    if lightness <= thresholds.deep_at_or_below:
        return "deep", thresholds.deep_at_or_below - lightness
    if lightness > thresholds.light_above:
        return "light", lightness - thresholds.light_above
    distance = min(lightness - thresholds.deep_at_or_below, thresholds.light_above - lightness)
    return "medium", distance


def classify_clarity_value(chroma_value: float, thresholds: AttributeThresholds) -> Tuple[Clarity, float]:
    if chroma_value < thresholds.muted_below:
        return "muted", thresholds.muted_below - chroma_value
    if chroma_value >= thresholds.vivid_at_or_above:
        return "vivid", chroma_value - thresholds.vivid_at_or_above
    distance = min(chroma_value - thresholds.muted_below, thresholds.vivid_at_or_above - chroma_value)
    return "clear", distance


def classify_attributes(
    corrected: RobustStats,
    raw: RobustStats,
    lighting: LightingBias,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> AttributeProfile:
    """
    Turn robust Lab statistics into undertone, depth and clarity.

    Parameters
    ----------
    corrected:
        Statistics of the illumination-corrected samples. Depth and clarity are
        always read from here.
    raw:
        Statistics of the samples before correction. The warmth axis is read
        from here when ``attributes.undertone_source`` is ``"raw"``.
    lighting:
        Whole-image warm-cast signal; a strong cast lowers undertone confidence.
    """
    thresholds = calibration.attributes

    undertone_stats = raw if thresholds.undertone_source == "raw" else corrected
    warmth = warmth_axis(undertone_stats.median_lab.a, undertone_stats.median_lab.b)
    undertone, lean, undertone_distance = classify_undertone_value(warmth, thresholds)
    undertone_confidence = _shaped_confidence(undertone_distance, thresholds.undertone_confidence)
    if lighting.severity > thresholds.lighting_severity_limit:
        undertone_confidence -= thresholds.lighting_penalty

    depth, depth_distance = classify_depth_value(corrected.median_lab.L, thresholds)
    depth_confidence = _shaped_confidence(depth_distance, thresholds.depth_confidence)
    if corrected.mad_lab.L > calibration.stats.noisy_mad_l:
        depth_confidence -= thresholds.depth_noise_penalty

    clarity, clarity_distance = classify_clarity_value(corrected.percentile_chroma, thresholds)
    clarity_confidence = _shaped_confidence(clarity_distance, thresholds.clarity_confidence)
    if corrected.mad_lab.b > calibration.stats.noisy_mad_b:
        clarity_confidence -= thresholds.clarity_noise_penalty

    profile = AttributeProfile(
        undertone=undertone,
        undertone_lean=lean,  # type: ignore[arg-type]
        depth=depth,
        clarity=clarity,
        undertone_confidence=_clamp(undertone_confidence, 0.0, 1.0),
        depth_confidence=_clamp(depth_confidence, 0.0, 1.0),
        clarity_confidence=_clamp(clarity_confidence, 0.0, 1.0),
        warmth=warmth,
    )
    logger.debug(
        "Attributes: undertone=%s(%s) w=%.2f depth=%s clarity=%s conf=(%.2f, %.2f, %.2f)",
        undertone,
        lean,
        warmth,
        depth,
        clarity,
        profile.undertone_confidence,
        profile.depth_confidence,
        profile.clarity_confidence,
    )
    return profile
