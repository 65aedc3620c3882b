from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

Undertone = Literal["warm", "cool", "neutral"]
Lean = Literal["warm", "cool"]
Depth = Literal["light", "medium", "deep"]
Clarity = Literal["muted", "clear", "vivid"]
Season = Literal["spring", "summer", "autumn", "winter"]
Rating = Literal["great", "good", "ok", "risky", "insufficient_data"]

SEASONS: Tuple[str, ...] = ("spring", "summer", "autumn", "winter")

LAB_PRECISION = 1
SCORE_PRECISION = 2


@dataclass(frozen=True, slots=True)
class PixelSample:
    """Observed sRGB pixel, 0..255 per channel."""

    r: int
    g: int
    b: int

    def as_tuple(self) -> Tuple[int, int, int]:
        return self.r, self.g, self.b


@dataclass(frozen=True, slots=True)
class LabColor:
    L: float
    a: float
    b: float

    def as_tuple(self) -> Tuple[float, float, float]:
        return self.L, self.a, self.b

    def as_dict(self) -> Dict[str, float]:
        return {
            "L": round(self.L, LAB_PRECISION),
            "a": round(self.a, LAB_PRECISION),
            "b": round(self.b, LAB_PRECISION),
        }


@dataclass(frozen=True, slots=True)
class Region:
    """Pixel rectangle in source-image coordinates."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px < self.right and self.y <= py < self.bottom

    def as_box(self) -> Tuple[int, int, int, int]:
        """PIL-style ``(left, upper, right, lower)`` box."""
        return self.x, self.y, self.right, self.bottom

    def as_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True, slots=True)
class RegionSelection:
    region: Region
    method: Literal["crop_box", "face_box", "heuristic"]
    skin_ratio: Optional[float] = None
    skin_pixels: Optional[int] = None


@dataclass(frozen=True, slots=True)
class SkinSampleSet:
    """Filtered skin candidates for one request plus how they were obtained."""

    samples: Tuple[PixelSample, ...]
    total_in_shape: int
    total_after_exclusion: int
    candidate_count: int
    rejections: Mapping[str, int]
    zone_counts: Mapping[str, int]
    trim_range: Tuple[float, float]

    @property
    def kept_count(self) -> int:
        return len(self.samples)

    def diagnostics(self) -> Dict[str, object]:
        return {
            "total_in_shape": self.total_in_shape,
            "total_after_exclusion": self.total_after_exclusion,
            "candidate_count": self.candidate_count,
            "kept_count": self.kept_count,
            "rejections": dict(self.rejections),
            "zones": dict(self.zone_counts),
            "trim_l_range": [round(value, LAB_PRECISION) for value in self.trim_range],
        }


@dataclass(frozen=True, slots=True)
class IlluminationGains:
    r: float
    g: float
    b: float
    clamped: bool
    estimated: bool = True

    def as_dict(self) -> Dict[str, object]:
        return {
            "r": round(self.r, 3),
            "g": round(self.g, 3),
            "b": round(self.b, 3),
            "clamped": self.clamped,
            "estimated": self.estimated,
        }


@dataclass(frozen=True, slots=True)
class LightingBias:
    warm_index: float
    is_warm: bool
    severity: float

    def as_dict(self) -> Dict[str, object]:
        return {
            "warm_index": round(self.warm_index, 3),
            "is_warm": self.is_warm,
            "severity": round(self.severity, SCORE_PRECISION),
        }


@dataclass(frozen=True, slots=True)
class RobustStats:
    median_lab: LabColor
    mad_lab: LabColor
    median_chroma: float
    percentile_chroma: float
    sample_count: int
    noisy: bool

    def as_dict(self) -> Dict[str, object]:
        return {
            "median_lab": self.median_lab.as_dict(),
            "mad_lab": self.mad_lab.as_dict(),
            "median_chroma": round(self.median_chroma, LAB_PRECISION),
            "percentile_chroma": round(self.percentile_chroma, LAB_PRECISION),
            "sample_count": self.sample_count,
            "noisy": self.noisy,
        }


@dataclass(frozen=True, slots=True)
class AttributeProfile:
    undertone: Undertone
    depth: Depth
    clarity: Clarity
    undertone_confidence: float
    depth_confidence: float
    clarity_confidence: float
    undertone_lean: Optional[Lean] = None
    warmth: float = 0.0

    def as_dict(self) -> Dict[str, object]:
        return {
            "undertone": self.undertone,
            "undertone_lean": self.undertone_lean,
            "depth": self.depth,
            "clarity": self.clarity,
            "confidences": {
                "undertone": round(self.undertone_confidence, SCORE_PRECISION),
                "depth": round(self.depth_confidence, SCORE_PRECISION),
                "clarity": round(self.clarity_confidence, SCORE_PRECISION),
            },
            "warmth": round(self.warmth, LAB_PRECISION),
        }


@dataclass(frozen=True, slots=True)
class SeasonCandidate:
    season: Season
    score: float
    reason: str

    def as_dict(self) -> Dict[str, object]:
        return {"season": self.season, "score": round(self.score, SCORE_PRECISION), "reason": self.reason}


@dataclass(frozen=True, slots=True)
class SeasonDecision:
    season: Season
    alternate: SeasonCandidate
    candidates: Tuple[SeasonCandidate, ...]
    confidence: float
    needs_confirmation: bool
    branch: str
    penalties: Tuple[str, ...] = ()

    @property
    def top_candidates(self) -> Tuple[SeasonCandidate, ...]:
        return self.candidates[:2]


@dataclass(frozen=True, slots=True)
class SkinToneResult:
    """Everything a caller needs from one classification request."""

    attributes: AttributeProfile
    decision: SeasonDecision
    micro_season: str
    skin_hex: str
    skin_lab: LabColor
    quality_issues: Tuple[str, ...]
    quality_messages: Tuple[str, ...]
    season_profile: Mapping[str, Any] = field(default_factory=dict)
    trait_explanations: Tuple[Mapping[str, Any], ...] = ()
    diagnostics: Mapping[str, Any] = field(default_factory=dict)

    @property
    def season(self) -> Season:
        return self.decision.season

    @property
    def confidence(self) -> float:
        return self.decision.confidence

    @property
    def needs_confirmation(self) -> bool:
        return self.decision.needs_confirmation

    def as_dict(self) -> Dict[str, Any]:
        attributes = self.attributes.as_dict()
        return {
            "undertone": attributes["undertone"],
            "undertone_lean": attributes["undertone_lean"],
            "depth": attributes["depth"],
            "clarity": attributes["clarity"],
            "confidences": attributes["confidences"],
            "season": self.decision.season,
            "alternate_season": self.decision.alternate.season,
            "season_candidates": [candidate.as_dict() for candidate in self.decision.top_candidates],
            "micro_season": self.micro_season,
            "confidence": round(self.decision.confidence, SCORE_PRECISION),
            "needs_confirmation": self.decision.needs_confirmation,
            "hex": self.skin_hex,
            "lab": self.skin_lab.as_dict(),
            "quality": {
                "issues": list(self.quality_issues),
                "messages": list(self.quality_messages),
            },
            "season_profile": dict(self.season_profile),
            "traits": [dict(card) for card in self.trait_explanations],
            "diagnostics": dict(self.diagnostics),
        }
