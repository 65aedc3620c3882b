from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from PIL import Image

from ..color_math import rgb_to_hex
from ..config import AppConfig, Calibration
from ..imaging import Fetcher, load_image
from ..schemas import AnalyzeRequest
from ..types import (
    IlluminationGains,
    LightingBias,
    PixelSample,
    RegionSelection,
    RobustStats,
    SkinSampleSet,
    SkinToneResult,
)
from ..garments.palettes import SEASON_PROFILES
from .attributes import classify_attributes
from .illumination import apply_gains, detect_lighting_bias, estimate_gains
from .region import locate_region
from .robust_stats import compute_robust_stats, trimmed_mean_rgb
from .sampler import sample_skin
from .season import SeasonDecider, determine_micro_season
from .traits import describe_traits

logger = logging.getLogger(__name__)

QUALITY_MESSAGES: Tuple[str, ...] = (
    "Try daylight near a window",
    "Avoid heavy shadows",
    "Disable beauty filters / HDR if possible",
)


@dataclass
class IlluminationArtifacts:
    gains: IlluminationGains
    corrected: Tuple[PixelSample, ...]
    lighting: LightingBias


@dataclass
class StatisticsArtifacts:
    raw: RobustStats
    corrected: RobustStats


class SkinToneAnalyzer:
    """
    Classify the skin in one photo into undertone, depth, clarity and a season.

    Steps run in a fixed order and each one is deterministic, so the same image
    and calibration always give the same result:

    0. decode the image (bytes, base64 or URL through ``fetcher``)
    1. locate the skin region
    2. sample and filter skin pixels
    3. estimate and apply illumination gains; measure the warm cast
    4. robust statistics on raw and corrected samples
    5. classify attributes
    6. decide the season and micro-season
    """

    def __init__(self, config: Optional[AppConfig] = None, fetcher: Optional[Fetcher] = None) -> None:
        self._config = config or AppConfig()
        self._calibration: Calibration = self._config.calibration
        self._fetcher = fetcher

    @property
    def calibration(self) -> Calibration:
        return self._calibration

    def analyze(self, request: Union[AnalyzeRequest, Mapping[str, Any]]) -> SkinToneResult:
        if not isinstance(request, AnalyzeRequest):
            request = AnalyzeRequest.model_validate(request)

        image = self._load_step0_image(request)
        return self.analyze_image(
            image,
            crop_box=request.crop_box.as_tuple() if request.crop_box else None,
            face_box=request.face_box.as_tuple() if request.face_box else None,
        )

    def analyze_image(
        self,
        image: Image.Image,
        *,
        crop_box: Optional[Sequence[float]] = None,
        face_box: Optional[Sequence[float]] = None,
    ) -> SkinToneResult:
        """Run steps 1-6 on an already decoded image."""
        selection = self._run_step1_region(image, crop_box, face_box)
        sample_set = self._run_step2_sampling(image, selection)
        illumination = self._run_step3_illumination(image, sample_set)
        statistics = self._run_step4_statistics(sample_set, illumination)
        profile = classify_attributes(
            statistics.corrected, statistics.raw, illumination.lighting, self._calibration
        )
        decision = SeasonDecider(self._calibration).decide(
            profile, statistics.corrected, gains_clamped=illumination.gains.clamped
        )
        micro_season = determine_micro_season(decision.season, profile.depth, profile.clarity)

        issues = self._quality_issues(sample_set, statistics, illumination)
        if issues:
            logger.warning("Photo quality issues: %s", ", ".join(issues))

        display_rgb = trimmed_mean_rgb(sample_set.samples)
        return SkinToneResult(
            attributes=profile,
            decision=decision,
            micro_season=micro_season,
            skin_hex=rgb_to_hex(*display_rgb),
            skin_lab=statistics.raw.median_lab,
            quality_issues=tuple(issues),
            quality_messages=QUALITY_MESSAGES if issues else (),
            season_profile=SEASON_PROFILES[decision.season].as_dict(),
            trait_explanations=tuple(card.as_dict() for card in describe_traits(profile)),
            diagnostics=self._diagnostics(selection, sample_set, illumination, statistics, decision),
        )

    def _load_step0_image(self, request: AnalyzeRequest) -> Image.Image:
        """Step 0: Decode the single image source."""
        source = request.image
        return load_image(
            image_bytes=source.image_bytes,
            image_base64=source.image_base64,
            image_url=source.image_url,
            fetcher=self._fetcher,
        )

    def _run_step1_region(
        self,
        image: Image.Image,
        crop_box: Optional[Sequence[float]],
        face_box: Optional[Sequence[float]],
    ) -> RegionSelection:
        """Step 1: Locate the skin region."""
        selection = locate_region(image, crop_box=crop_box, face_box=face_box, calibration=self._calibration)
        logger.debug("Region via %s: %s", selection.method, selection.region.as_dict())
        return selection

    def _run_step2_sampling(self, image: Image.Image, selection: RegionSelection) -> SkinSampleSet:
        """Step 2: Sample and filter skin pixels."""
        return sample_skin(image, selection.region, self._calibration)

    def _run_step3_illumination(self, image: Image.Image, sample_set: SkinSampleSet) -> IlluminationArtifacts:
        """Step 3: Correct the samples and measure the whole-image cast."""
        gains = estimate_gains(sample_set.samples, self._calibration)
        corrected = apply_gains(sample_set.samples, gains)
        lighting = detect_lighting_bias(image, self._calibration)
        return IlluminationArtifacts(gains=gains, corrected=corrected, lighting=lighting)

    def _run_step4_statistics(
        self,
        sample_set: SkinSampleSet,
        illumination: IlluminationArtifacts,
    ) -> StatisticsArtifacts:
        """Step 4: Robust statistics before and after correction."""
        return StatisticsArtifacts(
            raw=compute_robust_stats(sample_set.samples, self._calibration),
            corrected=compute_robust_stats(illumination.corrected, self._calibration),
        )

    def _quality_issues(
        self,
        sample_set: SkinSampleSet,
        statistics: StatisticsArtifacts,
        illumination: IlluminationArtifacts,
    ) -> List[str]:
        settings = self._calibration.seasons
        issues: List[str] = []
        if sample_set.kept_count < settings.min_stable_samples:
            issues.append("low_sample_count")
        if statistics.corrected.noisy:
            issues.append("uneven_lighting")
        if illumination.lighting.severity > settings.strong_cast_severity:
            issues.append("strong_warm_cast")
        return issues

    def _diagnostics(
        self,
        selection: RegionSelection,
        sample_set: SkinSampleSet,
        illumination: IlluminationArtifacts,
        statistics: StatisticsArtifacts,
        decision,
    ) -> Dict[str, Any]:
        region: Dict[str, Any] = {"method": selection.method, "box": selection.region.as_dict()}
        if selection.skin_ratio is not None:
            region["skin_ratio"] = round(selection.skin_ratio, 3)
            region["skin_pixels"] = selection.skin_pixels
        return {
            "calibration_version": self._calibration.version,
            "delta_e_method": self._calibration.delta_e_method,
            "region": region,
            "sampling": sample_set.diagnostics(),
            "gains": illumination.gains.as_dict(),
            "lighting": illumination.lighting.as_dict(),
            "raw_stats": statistics.raw.as_dict(),
            "corrected_stats": statistics.corrected.as_dict(),
            "decision": {
                "branch": decision.branch,
                "penalties": list(decision.penalties),
                "candidates": [candidate.as_dict() for candidate in decision.candidates],
            },
        }
