"""
Garment color compatibility against a user's season.

The rating starts from the smallest perceptual distance to the season palette
and then passes through ordered adjustments. Every adjustment that changes the
rating is recorded by name in ``caps_applied``:

1. ``undertone_hard_fail``: a true warm/cool opposition forces ``risky``.
2. Clarity caps for colors that are too vivid or too soft for the user.
3. ``palette_match_upgrade_good``: near-exact palette colors never fall below ``good``.
4. ``undertone_protection_ok``: allowed undertones within the ok tier stay ``ok``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ..analysis.attributes import (
    classify_clarity_value,
    classify_depth_value,
    classify_undertone_value,
    warmth_axis,
)
from ..analysis.season import determine_micro_season
from ..color_math import DeltaEMethod, chroma, delta_e_array, hex_to_rgb, hue_angle, rgb_to_hex, rgb_to_lab
from ..config import DEFAULT_CALIBRATION, Calibration, GarmentThresholds
from ..types import LAB_PRECISION, SCORE_PRECISION, SEASONS, LabColor
from .explanations import Explanation, ExplanationContext, build_explanation
from .palettes import CROSSOVER_SEASONS, SEASON_PALETTES, SEASON_PROFILES, PaletteColor

logger = logging.getLogger(__name__)

GarmentColorInput = Union[str, Sequence[int], None]

RATING_ORDER: Tuple[str, ...] = ("risky", "ok", "good", "great")

ALLOWED_UNDERTONES: Mapping[str, Tuple[str, ...]] = {
    "warm": ("warm", "neutral", "olive"),
    "cool": ("cool", "neutral"),
    "neutral": ("warm", "cool", "neutral", "olive"),
}

_DEPTH_INDEX = {"light": 0, "medium": 1, "deep": 2}
_CLARITY_INDEX = {"muted": 0, "clear": 1, "vivid": 2}

_PALETTE_LAB: Mapping[str, np.ndarray] = {
    season: np.array([color.lab.as_tuple() for color in colors], dtype=np.float64)
    for season, colors in SEASON_PALETTES.items()
}


@dataclass(frozen=True, slots=True)
class GarmentAttributes:
    undertone: str
    depth: str
    clarity: str
    chroma: float
    hue_angle: float

    def as_dict(self) -> Dict[str, object]:
        return {
            "undertone": self.undertone,
            "depth": self.depth,
            "clarity": self.clarity,
            "chroma": round(self.chroma, LAB_PRECISION),
            "hue_angle": round(self.hue_angle, LAB_PRECISION),
        }


@dataclass(frozen=True, slots=True)
class CompatibilityBreakdown:
    undertone_score: float
    clarity_score: float
    depth_score: float
    allowed: bool
    true_conflict: bool
    reasons: Tuple[str, ...]

    @property
    def total(self) -> float:
        return self.undertone_score + self.clarity_score + self.depth_score

    def as_dict(self) -> Dict[str, object]:
        return {
            "undertone_score": self.undertone_score,
            "clarity_score": self.clarity_score,
            "depth_score": self.depth_score,
            "total": round(self.total, SCORE_PRECISION),
            "allowed": self.allowed,
            "true_conflict": self.true_conflict,
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True, slots=True)
class UserColoring:
    season: str
    undertone: str
    depth: str
    clarity: str
    micro_season: str


@dataclass(frozen=True, slots=True)
class GarmentColorScore:
    rating: str
    explanation: Explanation
    base_rating: Optional[str] = None
    delta_e: Optional[float] = None
    garment_hex: Optional[str] = None
    garment_lab: Optional[LabColor] = None
    garment_attributes: Optional[GarmentAttributes] = None
    compatibility: Optional[CompatibilityBreakdown] = None
    chroma_level: Optional[str] = None
    near_face: bool = True
    caps_applied: Tuple[str, ...] = ()
    closest_color: Optional[PaletteColor] = None
    delta_e_by_season: Mapping[str, float] = field(default_factory=dict)
    user: Optional[UserColoring] = None

    def as_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "rating": self.rating,
            "explanation": self.explanation.as_dict(),
        }
        if self.garment_attributes is None or self.compatibility is None:
            return payload
        payload.update(
            {
                "base_rating": self.base_rating,
                "delta_e": round(self.delta_e or 0.0, SCORE_PRECISION),
                "garment": {
                    "hex": self.garment_hex,
                    "lab": self.garment_lab.as_dict() if self.garment_lab else None,
                    **self.garment_attributes.as_dict(),
                },
                "compatibility": self.compatibility.as_dict(),
                "chroma_level": self.chroma_level,
                "near_face": self.near_face,
                "caps_applied": list(self.caps_applied),
                "closest_color": self.closest_color.as_dict() if self.closest_color else None,
                "delta_e_by_season": {
                    season: round(value, SCORE_PRECISION) for season, value in self.delta_e_by_season.items()
                },
                "user": {
                    "season": self.user.season,
                    "undertone": self.user.undertone,
                    "depth": self.user.depth,
                    "clarity": self.user.clarity,
                    "micro_season": self.user.micro_season,
                }
                if self.user
                else None,
            }
        )
        return payload


def _cap(rating: str, ceiling: str) -> str:
    return rating if RATING_ORDER.index(rating) <= RATING_ORDER.index(ceiling) else ceiling


def _to_lab(garment_color: GarmentColorInput) -> Tuple[str, LabColor]:
    if isinstance(garment_color, str):
        rgb = hex_to_rgb(garment_color)
    else:
        values = tuple(int(channel) for channel in garment_color)  # type: ignore[union-attr]
        if len(values) != 3 or any(not 0 <= channel <= 255 for channel in values):
            raise ValueError(f"Invalid RGB color: {garment_color!r}")
        rgb = values
    return rgb_to_hex(*rgb), rgb_to_lab(*rgb)


def chroma_level(chroma_value: float, thresholds: GarmentThresholds) -> str:
    if chroma_value >= thresholds.neon_chroma:
        return "neon"
    if chroma_value >= thresholds.very_vivid_chroma:
        return "very_vivid"
    if chroma_value >= thresholds.vivid_chroma:
        return "vivid"
    if chroma_value >= thresholds.mild_chroma:
        return "mild"
    return "soft"


def classify_garment_attributes(lab: LabColor, calibration: Calibration = DEFAULT_CALIBRATION) -> GarmentAttributes:
    """Undertone, depth and clarity of a garment color on the skin breakpoints, plus an olive bucket."""
    thresholds = calibration.attributes
    garments = calibration.garments
    chroma_value = chroma(lab)
    olive_low, olive_high = garments.olive_a_range

    if chroma_value < garments.achromatic_chroma:
        undertone = "neutral"
    elif lab.b > garments.olive_min_b and olive_low <= lab.a < olive_high:
        undertone = "olive"
    else:
        undertone, _, _ = classify_undertone_value(warmth_axis(lab.a, lab.b), thresholds)

    depth, _ = classify_depth_value(lab.L, thresholds)
    clarity, _ = classify_clarity_value(chroma_value, thresholds)
    return GarmentAttributes(
        undertone=undertone,
        depth=depth,
        clarity=clarity,
        chroma=chroma_value,
        hue_angle=hue_angle(lab),
    )


def is_true_conflict(garment_undertone: str, user_undertone: str) -> bool:
    if user_undertone == "cool":
        return garment_undertone in ("warm", "olive")
    if user_undertone == "warm":
        return garment_undertone == "cool"
    return False


def check_compatibility(garment: GarmentAttributes, user: UserColoring) -> CompatibilityBreakdown:
    """
    Attribute-level agreement between a garment and the user.

    Conflicts are always decided on the garment's own classified undertone,
    however close it sits to a palette color.
    """
    reasons: List[str] = []
    garment_undertone = garment.undertone
    allowed = garment_undertone in ALLOWED_UNDERTONES[user.undertone]
    conflict = is_true_conflict(garment_undertone, user.undertone)

    if garment_undertone == user.undertone:
        undertone_score = 1.0
        reasons.append("undertone_match")
    elif garment_undertone == "olive" and user.undertone == "warm":
        undertone_score = 0.8
        reasons.append("undertone_olive_warm_compatible")
    elif garment_undertone == "neutral":
        undertone_score = 0.5
        reasons.append("undertone_neutral")
    elif allowed:
        undertone_score = 0.3
        reasons.append("undertone_compatible")
    elif conflict:
        undertone_score = -2.0
        reasons.append("undertone_true_conflict")
    else:
        undertone_score = -0.5
        reasons.append("undertone_mismatch")

    clarity_gap = abs(_CLARITY_INDEX[garment.clarity] - _CLARITY_INDEX[user.clarity])
    if clarity_gap == 0:
        clarity_score = 1.0
        reasons.append("clarity_match")
    elif clarity_gap == 1:
        clarity_score = 0.0
        reasons.append("clarity_adjacent")
    else:
        clarity_score = -1.5
        reasons.append("clarity_mismatch")

    depth_gap = abs(_DEPTH_INDEX[garment.depth] - _DEPTH_INDEX[user.depth])
    if depth_gap == 0:
        depth_score = 0.5
        reasons.append("depth_match")
    elif depth_gap == 1:
        depth_score = 0.25
        reasons.append("depth_adjacent")
    else:
        depth_score = -1.0
        reasons.append("depth_mismatch")

    return CompatibilityBreakdown(
        undertone_score=undertone_score,
        clarity_score=clarity_score,
        depth_score=depth_score,
        allowed=allowed,
        true_conflict=conflict,
        reasons=tuple(reasons),
    )


def season_from_attributes(undertone: str, depth: str, clarity: str) -> Optional[str]:
    """Season implied by a full warm or cool profile; neutral profiles imply none."""
    if undertone == "warm":
        if depth == "light" or (depth == "medium" and clarity != "muted"):
            return "spring"
        return "autumn"
    if undertone == "cool":
        if depth == "deep" or (depth == "medium" and clarity == "vivid"):
            return "winter"
        return "summer"
    return None


def _resolve_user(
    season: Optional[str],
    undertone: Optional[str],
    depth: Optional[str],
    clarity: Optional[str],
    micro_season: Optional[str],
) -> Optional[UserColoring]:
    if season is None and undertone and depth and clarity:
        season = season_from_attributes(undertone, depth, clarity)
    if season is None:
        return None
    if season not in SEASON_PROFILES:
        raise ValueError(f"Unknown season: {season}")
    profile = SEASON_PROFILES[season]
    resolved_depth = depth or profile.depth
    resolved_clarity = clarity or profile.clarity
    return UserColoring(
        season=season,
        undertone=undertone or profile.undertone,
        depth=resolved_depth,
        clarity=resolved_clarity,
        micro_season=micro_season or determine_micro_season(season, resolved_depth, resolved_clarity),
    )


def _distances(lab: LabColor, method: DeltaEMethod) -> Dict[str, np.ndarray]:
    point = np.array(lab.as_tuple(), dtype=np.float64)
    return {season: delta_e_array(point, palette, method) for season, palette in _PALETTE_LAB.items()}


def _base_rating(distance: float, lab: LabColor, thresholds: GarmentThresholds) -> str:
    great, good, ok = thresholds.deep_tiers if lab.L < thresholds.deep_color_cutoff else thresholds.standard_tiers
    if distance <= great:
        return "great"
    if distance <= good:
        return "good"
    if distance <= ok:
        return "ok"
    return "risky"


def score_garment_color(
    garment_color: GarmentColorInput,
    season: Optional[str],
    *,
    undertone: Optional[str] = None,
    depth: Optional[str] = None,
    clarity: Optional[str] = None,
    near_face: bool = True,
    micro_season: Optional[str] = None,
    include_crossover: bool = False,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> GarmentColorScore:
    """
    Rate how well a garment color suits a user.

    Parameters
    ----------
    garment_color:
        Hex string or ``(r, g, b)`` triple. ``None`` yields ``insufficient_data``.
    season:
        The user's season. When ``None`` a full warm or cool attribute profile
        implies one; otherwise the result is ``insufficient_data``. The scorer
        never guesses a season.
    undertone, depth, clarity:
        Measured user attributes. Missing values come from the season profile.
    near_face:
        Whether the garment is worn next to the face. Very saturated colors are
        capped harder there.
    include_crossover:
        Also compare against the crossover season palette of the micro-season.
    """
    user = _resolve_user(season, undertone, depth, clarity, micro_season)
    if garment_color is None or (isinstance(garment_color, str) and not garment_color.strip()) or user is None:
        logger.debug("Garment score skipped: color=%r season=%r", garment_color, season)
        return GarmentColorScore(rating="insufficient_data", explanation=build_explanation("insufficient_data", None))

    thresholds = calibration.garments
    garment_hex, lab = _to_lab(garment_color)
    garment = classify_garment_attributes(lab, calibration)
    level = chroma_level(garment.chroma, thresholds)

    distances = _distances(lab, calibration.delta_e_method)
    delta_e_by_season = {name: float(distances[name].min()) for name in SEASONS}
    compared = [user.season]
    if include_crossover:
        crossover = CROSSOVER_SEASONS.get(user.micro_season)
        if crossover and crossover not in compared:
            compared.append(crossover)

    closest: Optional[PaletteColor] = None
    distance = float("inf")
    for name in compared:
        index = int(np.argmin(distances[name]))
        if float(distances[name][index]) < distance:
            distance = float(distances[name][index])
            closest = SEASON_PALETTES[name][index]

    palette_match = distance <= thresholds.palette_match_delta_e
    compatibility = check_compatibility(garment, user)
    base_rating = _base_rating(distance, lab, thresholds)
    ok_ceiling = (thresholds.deep_tiers if lab.L < thresholds.deep_color_cutoff else thresholds.standard_tiers)[2]

    too_vivid = user.clarity == "muted" and garment.clarity == "vivid"
    too_soft = user.clarity == "vivid" and garment.clarity == "muted"
    rating = base_rating
    caps: List[str] = []

    if compatibility.true_conflict:
        rating = "risky"
        caps.append("undertone_hard_fail")
    else:
        capped = rating
        if too_vivid:
            if near_face and level == "neon":
                capped, cap_name = _cap(rating, "ok"), "neon_nearface_cap_ok"
            elif near_face and level in ("very_vivid", "vivid"):
                capped, cap_name = _cap(rating, "good"), "vivid_nearface_cap_good"
            else:
                capped, cap_name = _cap(rating, "good"), "clarity_mismatch_cap_good"
        elif too_soft:
            capped, cap_name = _cap(rating, "good"), "too_soft_cap_good"
        if capped != rating:
            rating = capped
            caps.append(cap_name)

        if compatibility.allowed and palette_match and rating in ("ok", "risky"):
            rating = "good"
            caps.append("palette_match_upgrade_good")
        if compatibility.allowed and rating == "risky" and distance <= ok_ceiling:
            rating = "ok"
            caps.append("undertone_protection_ok")

    context = ExplanationContext(
        user_undertone=user.undertone,
        chroma_level=level,
        too_vivid=too_vivid,
        too_soft=too_soft,
        clarity_capped=any(name.endswith("_cap_ok") for name in caps),
        true_conflict=compatibility.true_conflict,
        clarity_opposed=compatibility.clarity_score < 0,
    )
    logger.debug(
        "Garment %s for %s: dE=%.2f base=%s final=%s caps=%s",
        garment_hex,
        user.season,
        distance,
        base_rating,
        rating,
        caps,
    )
    return GarmentColorScore(
        rating=rating,
        explanation=build_explanation(rating, context),
        base_rating=base_rating,
        delta_e=distance,
        garment_hex=garment_hex,
        garment_lab=lab,
        garment_attributes=garment,
        compatibility=compatibility,
        chroma_level=level,
        near_face=near_face,
        caps_applied=tuple(caps),
        closest_color=closest,
        delta_e_by_season=delta_e_by_season,
        user=user,
    )


@dataclass(frozen=True, slots=True)
class ColorClassification:
    status: str
    closest: PaletteColor
    delta_e: float
    runner_up: Optional[PaletteColor] = None
    runner_up_delta_e: Optional[float] = None

    def as_dict(self) -> Dict[str, object]:
        return {
            "status": self.status,
            "closest": self.closest.as_dict(),
            "delta_e": round(self.delta_e, SCORE_PRECISION),
            "runner_up": self.runner_up.as_dict() if self.runner_up else None,
            "runner_up_delta_e": round(self.runner_up_delta_e, SCORE_PRECISION)
            if self.runner_up_delta_e is not None
            else None,
        }


def classify_garment_color(
    garment_color: GarmentColorInput,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> ColorClassification:
    """Nearest named palette color across every season."""
    thresholds = calibration.garments
    _, lab = _to_lab(garment_color)
    distances = _distances(lab, calibration.delta_e_method)

    ranked: List[Tuple[float, PaletteColor]] = []
    for season in SEASONS:
        for color, value in zip(SEASON_PALETTES[season], distances[season]):
            ranked.append((float(value), color))
    ranked.sort(key=lambda item: item[0])

    best_distance, best = ranked[0]
    runner_distance, runner = ranked[1]
    if best_distance > thresholds.unclassified_delta_e:
        status = "unclassified"
    elif runner_distance - best_distance <= thresholds.ambiguous_margin:
        status = "ambiguous"
    else:
        status = "ok"
    return ColorClassification(
        status=status,
        closest=best,
        delta_e=best_distance,
        runner_up=runner,
        runner_up_delta_e=runner_distance,
    )
