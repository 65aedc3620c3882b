"""
Season decision for a single request.

The flow is a small state machine that always terminates in ``DECIDED``::

    NO_DECISION -> GATED -> SCORED ----------------> DECIDED
                        \\-> LOW_CHROMA_NEUTRAL --/

``LOW_CHROMA_NEUTRAL`` replaces formula scoring when the skin reading is nearly
achromatic and the undertone is neutral; lightness alone then separates summer
from autumn and the neutral lean breaks near-ties.
"""
from __future__ import annotations

import enum
import logging
from typing import Dict, List, Tuple

from ..config import DEFAULT_CALIBRATION, Calibration
from ..types import (
    SEASONS,
    AttributeProfile,
    Depth,
    RobustStats,
    SeasonCandidate,
    SeasonDecision,
)

logger = logging.getLogger(__name__)

UNDERTONE_PAIRS: Dict[str, Tuple[str, str]] = {
    "warm": ("spring", "autumn"),
    "cool": ("summer", "winter"),
}

SEASON_TRAITS: Dict[str, str] = {
    "spring": "warm, light and clear",
    "summer": "cool, light and soft",
    "autumn": "warm, deep and muted",
    "winter": "cool, deep and vivid",
}


class DecisionState(str, enum.Enum):
    NO_DECISION = "no_decision"
    GATED = "gated"
    SCORED = "scored"
    LOW_CHROMA_NEUTRAL = "low_chroma_neutral"
    DECIDED = "decided"


def ramp(value: float, low: float, high: float) -> float:
    """Linear 0→1 ramp between ``low`` and ``high``."""
    if high <= low:
        return 1.0 if value >= high else 0.0
    return max(0.0, min(1.0, (value - low) / (high - low)))


def sub_scores(warmth: float, lightness: float, chroma_value: float, calibration: Calibration) -> Dict[str, float]:
    settings = calibration.seasons
    light = ramp(lightness, *settings.light_ramp)
    return {
        "warm": ramp(warmth, *settings.warm_ramp),
        "cool": 1.0 - ramp(warmth, *settings.cool_ramp),
        "light": light,
        "not_light": 1.0 - light,
        "deep": 1.0 - ramp(lightness, *settings.deep_ramp),
        "vivid": ramp(chroma_value, *settings.vivid_ramp),
        "muted": 1.0 - ramp(chroma_value, *settings.muted_ramp),
    }


class SeasonDecider:
    """Score the four seasons from an attribute profile and pick one."""

    def __init__(self, calibration: Calibration = DEFAULT_CALIBRATION) -> None:
        self._calibration = calibration
        self._settings = calibration.seasons
        self.state = DecisionState.NO_DECISION

    def decide(
        self,
        profile: AttributeProfile,
        stats: RobustStats,
        *,
        gains_clamped: bool = False,
    ) -> SeasonDecision:
        self.state = DecisionState.NO_DECISION
        eligible = self._gate(profile)

        lightness = stats.median_lab.L
        chroma_value = stats.percentile_chroma
        if profile.undertone == "neutral" and chroma_value < self._settings.low_chroma_limit:
            self.state = DecisionState.LOW_CHROMA_NEUTRAL
            raw_scores, reasons = self._low_chroma_neutral_scores(profile, lightness)
            eligible = SEASONS
        else:
            raw_scores, reasons = self._formula_scores(profile.warmth, lightness, chroma_value)
            self.state = DecisionState.SCORED
        branch = self.state.value

        ranked = self._rank(raw_scores, eligible, reasons)
        confidence, penalties = self._confidence(profile, stats, ranked, gains_clamped)
        needs_confirmation = confidence < self._settings.confirmation_bar or bool(penalties)

        self.state = DecisionState.DECIDED
        decision = SeasonDecision(
            season=ranked[0].season,
            alternate=ranked[1],
            candidates=tuple(ranked),
            confidence=confidence,
            needs_confirmation=needs_confirmation,
            branch=branch,
            penalties=tuple(penalties),
        )
        logger.info(
            "Season %s (alt %s) confidence=%.2f confirm=%s branch=%s",
            decision.season,
            decision.alternate.season,
            confidence,
            needs_confirmation,
            branch,
        )
        return decision

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def _gate(self, profile: AttributeProfile) -> Tuple[str, ...]:
        self.state = DecisionState.GATED
        pair = UNDERTONE_PAIRS.get(profile.undertone)
        if pair and profile.undertone_confidence >= self._settings.high_undertone_confidence:
            return pair
        return SEASONS

    def _formula_scores(
        self, warmth: float, lightness: float, chroma_value: float
    ) -> Tuple[Dict[str, float], Dict[str, str]]:
        parts = sub_scores(warmth, lightness, chroma_value, self._calibration)
        scores: Dict[str, float] = {}
        reasons: Dict[str, str] = {}
        for season in SEASONS:
            weights = self._settings.weights[season]
            scores[season] = sum(weight * parts[name] for name, weight in weights.items())
            leading = max(weights, key=lambda name: weights[name] * parts[name])
            reasons[season] = f"{SEASON_TRAITS[season]}; strongest signal: {leading.replace('_', ' ')}"
        logger.debug("Sub-scores %s -> season scores %s", parts, scores)
        return scores, reasons

    def _low_chroma_neutral_scores(
        self, profile: AttributeProfile, lightness: float
    ) -> Tuple[Dict[str, float], Dict[str, str]]:
        lean = profile.undertone_lean
        band: Depth
        if lightness > self._settings.low_chroma_light_above:
            band = "light"
            summer, autumn = 1.0, 0.80 if lean == "warm" else 0.65
        elif lightness < self._settings.low_chroma_dark_below:
            band = "deep"
            autumn, summer = 1.0, 0.80 if lean == "cool" else 0.65
        else:
            band = "medium"
            if lean == "warm":
                autumn, summer = 1.0, 0.75
            elif lean == "cool":
                summer, autumn = 1.0, 0.75
            else:
                summer = autumn = 0.90

        reason = f"near-achromatic neutral skin, {band} lightness"
        if lean:
            reason += f", leans {lean}"
        scores = {"spring": 0.15, "summer": summer, "autumn": autumn, "winter": 0.15}
        reasons = {season: reason for season in SEASONS}
        return scores, reasons

    def _rank(
        self,
        raw_scores: Dict[str, float],
        eligible: Tuple[str, ...],
        reasons: Dict[str, str],
    ) -> List[SeasonCandidate]:
        gated = {season: (raw_scores[season] if season in eligible else 0.0) for season in SEASONS}
        top = max(gated.values())
        if top > 0.0:
            normalized = {season: score / top for season, score in gated.items()}
        else:
            normalized = {season: 1.0 for season in SEASONS}

        candidates = [
            SeasonCandidate(
                season=season,  # type: ignore[arg-type]
                score=normalized[season],
                reason=reasons[season] if season in eligible else "excluded by undertone gate",
            )
            for season in SEASONS
        ]
        return sorted(candidates, key=lambda candidate: -candidate.score)

    def _confidence(
        self,
        profile: AttributeProfile,
        stats: RobustStats,
        ranked: List[SeasonCandidate],
        gains_clamped: bool,
    ) -> Tuple[float, List[str]]:
        settings = self._settings
        undertone_weight, depth_weight, clarity_weight = settings.confidence_weights
        confidence = (
            undertone_weight * profile.undertone_confidence
            + depth_weight * profile.depth_confidence
            + clarity_weight * profile.clarity_confidence
        )

        penalties: List[str] = []
        if stats.noisy:
            confidence -= settings.noisy_penalty
            penalties.append("noisy_samples")
        if gains_clamped:
            confidence -= settings.clamped_gain_penalty
            penalties.append("gains_clamped")
        if profile.undertone_confidence < settings.high_undertone_confidence:
            confidence -= settings.low_undertone_penalty
            penalties.append("low_undertone_confidence")
        if ranked[0].score - ranked[1].score < settings.close_margin:
            confidence -= settings.close_scores_penalty
            penalties.append("close_top_candidates")

        return max(0.0, min(settings.max_confidence, confidence)), penalties


def decide_season(
    profile: AttributeProfile,
    stats: RobustStats,
    *,
    gains_clamped: bool = False,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> SeasonDecision:
    return SeasonDecider(calibration).decide(profile, stats, gains_clamped=gains_clamped)


MICRO_SEASONS: Dict[str, Tuple[str, str, str]] = {
    "spring": ("light_spring", "clear_spring", "warm_spring"),
    "summer": ("light_summer", "soft_summer", "cool_summer"),
    "autumn": ("deep_autumn", "soft_autumn", "warm_autumn"),
    "winter": ("deep_winter", "clear_winter", "cool_winter"),
}


def determine_micro_season(season: str, depth: str, clarity: str) -> str:
    """Refine a season into the twelve-season vocabulary: depth first, then clarity."""
    by_depth, by_clarity, by_undertone = MICRO_SEASONS[season]
    depth_match = {"spring": "light", "summer": "light", "autumn": "deep", "winter": "deep"}[season]
    clarity_match = {"spring": "vivid", "summer": "muted", "autumn": "muted", "winter": "vivid"}[season]
    if depth == depth_match:
        return by_depth
    if clarity == clarity_match:
        return by_clarity
    return by_undertone
