from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Literal, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

SeasonName = Literal["spring", "summer", "autumn", "winter"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class FetchConfig(BaseModel):
    """Settings for fetching images referenced by URL."""

    timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="Connect/read timeout applied to every image download",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts made for transient network failures before giving up",
    )
    user_agent: str = Field(
        default="skin-season/0.3 (+image-fetch)",
        description="User-Agent header sent with image downloads",
    )
    max_bytes: int = Field(
        default=15 * 1024 * 1024,
        ge=1024,
        description="Largest accepted image payload in bytes",
    )


class SkinGateThresholds(_Frozen):
    """Multi-gate skin-candidate filter shared by the region scan and the sampler."""

    min_value: float = Field(default=0.22, ge=0.0, le=1.0)
    max_value: float = Field(default=0.95, ge=0.0, le=1.0)
    min_saturation: float = Field(default=0.12, ge=0.0, le=1.0)
    max_saturation: float = Field(default=0.65, ge=0.0, le=1.0)
    hue_ranges: Tuple[Tuple[float, float], ...] = Field(
        default=((0.0, 55.0), (320.0, 360.0)),
        description="Accepted hue windows in degrees; the second wraps towards 360",
    )
    min_red_green_gap: int = Field(default=8, ge=0)
    min_red_blue_gap: int = Field(default=18, ge=0)
    near_white: int = Field(default=245, ge=0, le=255)
    near_black: int = Field(default=25, ge=0, le=255)
    lab_l_range: Tuple[float, float] = (18.0, 92.0)
    lab_a_range: Tuple[float, float] = (-8.0, 35.0)
    lab_b_range: Tuple[float, float] = (-5.0, 45.0)


class RegionSettings(_Frozen):
    """Region locator limits and heuristic scan parameters."""

    min_region_size: int = Field(default=220, ge=32, description="Minimum width and height in pixels")
    scan_size: int = Field(default=160, ge=32, description="Longest side of the downsampled scan image")
    min_skin_ratio: float = Field(default=0.35, ge=0.0, le=1.0)
    min_skin_pixels: int = Field(default=50, ge=1)
    aspect_range: Tuple[float, float] = (0.5, 1.5)
    padding: float = Field(default=0.20, ge=0.0, le=1.0, description="Padding added to each side of the winner")
    box_scales: Tuple[float, ...] = (0.30, 0.40, 0.50, 0.60)
    box_aspects: Tuple[float, ...] = (1.0, 1.3)


class SamplingSettings(_Frozen):
    """Working tile, sampling shape and exclusion zones for the skin sampler."""

    working_size: int = Field(default=220, ge=32)
    stride: int = Field(default=3, ge=1)
    ellipse_rx: float = Field(default=0.42, gt=0.0, le=0.5)
    ellipse_ry: float = Field(default=0.48, gt=0.0, le=0.5)
    nose_strip_x: Tuple[float, float] = (0.42, 0.58)
    nose_strip_y: Tuple[float, float] = (0.18, 0.78)
    mouth_band_y: float = Field(default=0.62, ge=0.0, le=1.0)
    forehead_max_y: float = Field(default=0.30, ge=0.0, le=1.0)
    min_candidates: int = Field(default=140, ge=1)
    trim_percentiles: Tuple[float, float] = (0.05, 0.97)


class IlluminationSettings(_Frozen):
    """Shades-of-gray correction and the secondary warm-cast signal."""

    p_norm: float = Field(default=6.0, ge=1.0, le=32.0)
    gain_range: Tuple[float, float] = (0.70, 1.45)
    min_channel_mean: float = Field(default=10.0, ge=0.0)
    bias_thumbnail: int = Field(default=64, ge=4)
    warm_bias_threshold: float = Field(default=0.08)
    warm_bias_span: float = Field(default=0.18, gt=0.0)


class StatsSettings(_Frozen):
    chroma_percentile: float = Field(default=0.70, ge=0.0, le=1.0)
    noisy_mad_l: float = Field(default=10.0, gt=0.0)
    noisy_mad_b: float = Field(default=4.5, gt=0.0)


class AttributeThresholds(_Frozen):
    """Breakpoints and confidence shaping for undertone, depth and clarity."""

    undertone_source: Literal["raw", "corrected"] = Field(
        default="raw",
        description="Statistics the warmth axis is read from; corrected a/b collapse towards zero",
    )
    cool_below: float = 4.0
    warm_above: float = 8.0
    lean_dead_zone: float = Field(default=0.75, ge=0.0)
    undertone_confidence: Tuple[float, float, float, float] = (0.55, 8.0, 0.50, 0.95)
    lighting_penalty: float = 0.08
    lighting_severity_limit: float = 0.35

    deep_at_or_below: float = 45.0
    light_above: float = 57.0
    depth_confidence: Tuple[float, float, float, float] = (0.60, 12.0, 0.50, 0.92)
    depth_noise_penalty: float = 0.06

    muted_below: float = 10.0
    vivid_at_or_above: float = 18.0
    clarity_confidence: Tuple[float, float, float, float] = (0.55, 10.0, 0.50, 0.90)
    clarity_noise_penalty: float = 0.06


class SeasonSettings(_Frozen):
    """Ramps, weights and decision penalties for the season decider."""

    high_undertone_confidence: float = 0.70
    warm_ramp: Tuple[float, float] = (6.0, 10.0)
    cool_ramp: Tuple[float, float] = (2.0, 6.0)
    light_ramp: Tuple[float, float] = (54.0, 60.0)
    deep_ramp: Tuple[float, float] = (42.0, 48.0)
    vivid_ramp: Tuple[float, float] = (14.0, 22.0)
    muted_ramp: Tuple[float, float] = (6.0, 14.0)
    weights: Dict[str, Dict[str, float]] = Field(
        default_factory=lambda: {
            "spring": {"warm": 0.45, "light": 0.35, "vivid": 0.20},
            "summer": {"cool": 0.45, "light": 0.30, "muted": 0.25},
            "autumn": {"warm": 0.45, "not_light": 0.30, "muted": 0.25},
            "winter": {"cool": 0.45, "deep": 0.35, "vivid": 0.20},
        },
        description="Per-season weights over the warm/cool/light/not_light/deep/vivid/muted sub-scores",
    )
    low_chroma_limit: float = 7.0
    low_chroma_light_above: float = 52.0
    low_chroma_dark_below: float = 48.0
    confidence_weights: Tuple[float, float, float] = (0.45, 0.30, 0.25)
    close_margin: float = 0.08
    confirmation_bar: float = 0.72
    noisy_penalty: float = 0.08
    clamped_gain_penalty: float = 0.06
    low_undertone_penalty: float = 0.05
    close_scores_penalty: float = 0.05
    max_confidence: float = 0.95
    min_stable_samples: int = 260
    strong_cast_severity: float = 0.45


class GarmentThresholds(_Frozen):
    """Garment-specific limits layered on the shared attribute breakpoints."""

    achromatic_chroma: float = 10.0
    olive_min_b: float = 8.0
    olive_a_range: Tuple[float, float] = (-12.0, 0.0)
    deep_color_cutoff: float = 40.0
    standard_tiers: Tuple[float, float, float] = (6.0, 12.0, 22.0)
    deep_tiers: Tuple[float, float, float] = (8.0, 16.0, 30.0)
    mild_chroma: float = 30.0
    vivid_chroma: float = 45.0
    very_vivid_chroma: float = 55.0
    neon_chroma: float = 70.0
    palette_match_delta_e: float = 4.5
    unclassified_delta_e: float = 12.0
    ambiguous_margin: float = 2.0


class Calibration(_Frozen):
    """Single versioned threshold set used by every analysis step."""

    version: str = "v1"
    delta_e_method: Literal["ciede2000", "cie76"] = "ciede2000"
    skin_gate: SkinGateThresholds = Field(default_factory=SkinGateThresholds)
    region: RegionSettings = Field(default_factory=RegionSettings)
    sampling: SamplingSettings = Field(default_factory=SamplingSettings)
    illumination: IlluminationSettings = Field(default_factory=IlluminationSettings)
    stats: StatsSettings = Field(default_factory=StatsSettings)
    attributes: AttributeThresholds = Field(default_factory=AttributeThresholds)
    seasons: SeasonSettings = Field(default_factory=SeasonSettings)
    garments: GarmentThresholds = Field(default_factory=GarmentThresholds)

    @model_validator(mode="after")
    def _validate_breakpoints(self) -> "Calibration":
        attrs = self.attributes
        if attrs.cool_below >= attrs.warm_above:
            raise ValueError("attributes.cool_below must be lower than attributes.warm_above")
        if attrs.deep_at_or_below >= attrs.light_above:
            raise ValueError("attributes.deep_at_or_below must be lower than attributes.light_above")
        if attrs.muted_below >= attrs.vivid_at_or_above:
            raise ValueError("attributes.muted_below must be lower than attributes.vivid_at_or_above")
        low, high = self.illumination.gain_range
        if not low <= 1.0 <= high:
            raise ValueError("illumination.gain_range must bracket 1.0")
        missing = {"spring", "summer", "autumn", "winter"} - set(self.seasons.weights)
        if missing:
            raise ValueError(f"seasons.weights is missing: {', '.join(sorted(missing))}")
        return self


DEFAULT_CALIBRATION = Calibration()


class AppConfig(BaseModel):
    """Top-level configuration consumed by the analyzer and the scripts."""

    fetch: FetchConfig = Field(default_factory=FetchConfig)
    calibration: Calibration = Field(default_factory=Calibration)
    include_crossover: bool = Field(
        default=False,
        description="Also compare garments against the crossover season palette of the micro-season",
    )
    log_level: str = Field(default="INFO", description="Root log level used by the scripts")

    @model_validator(mode="after")
    def _validate_log_level(self) -> "AppConfig":
        if logging.getLevelName(self.log_level.upper()) not in (
            logging.DEBUG,
            logging.INFO,
            logging.WARNING,
            logging.ERROR,
            logging.CRITICAL,
        ):
            raise ValueError(f"Unknown log level: {self.log_level}")
        self.log_level = self.log_level.upper()
        return self


def _bool_from_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _float_from_env(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid float value: {value}") from exc


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer value: {value}") from exc


def _calibration_overrides(path_value: Optional[str]) -> dict[str, object]:
    if not path_value:
        return {}
    path = Path(path_value)
    if not path.exists():
        raise RuntimeError(f"Calibration file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"Calibration file is not valid JSON: {path}") from exc
    if not isinstance(data, dict):
        raise RuntimeError(f"Calibration file must contain a JSON object: {path}")
    return data


def load_config(dotenv_path: str | Path | None = None) -> AppConfig:
    """
    Load configuration from environment variables (optionally seeded by a .env file).

    Parameters
    ----------
    dotenv_path:
        Optional override for the .env file location. Defaults to ``.env`` in the
        working directory.

    Raises
    ------
    RuntimeError
        If a value cannot be parsed or fails validation.
    """
    env_path = Path(dotenv_path) if dotenv_path else Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    calibration_data = _calibration_overrides(os.getenv("SKIN_SEASON_CALIBRATION_FILE"))
    delta_e_method = os.getenv("DELTA_E_METHOD")
    if delta_e_method:
        calibration_data["delta_e_method"] = delta_e_method.strip().lower()

    data = {
        "fetch": {
            "timeout_seconds": _float_from_env(os.getenv("FETCH_TIMEOUT_SECONDS"), 10.0),
            "max_attempts": _int_from_env(os.getenv("FETCH_MAX_ATTEMPTS"), 3),
            "user_agent": os.getenv("FETCH_USER_AGENT", "skin-season/0.3 (+image-fetch)"),
            "max_bytes": _int_from_env(os.getenv("FETCH_MAX_BYTES"), 15 * 1024 * 1024),
        },
        "calibration": calibration_data,
        "include_crossover": _bool_from_env(os.getenv("INCLUDE_CROSSOVER_PALETTE"), False),
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
    }

    try:
        config = AppConfig.model_validate(data)
    except ValidationError as exc:
        invalid = {"/".join(str(part) for part in err["loc"]) for err in exc.errors()}
        invalid_str = ", ".join(sorted(invalid))
        raise RuntimeError(f"Invalid configuration values: {invalid_str}") from exc

    return config
