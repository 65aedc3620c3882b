"""
Skin sampling over a located face region.

The region is resized to a fixed working tile so the grid, the exclusion zones
and therefore the sample set are identical for identical inputs. Grid points
inside the sampling ellipse, outside the nose-bridge strip and above the mouth
band go through the multi-gate skin filter; the first gate a pixel fails is
recorded as its rejection reason.
"""
from __future__ import annotations

import logging
from typing import Dict, Tuple

import numpy as np
from PIL import Image

from ..color_math import rgb_array_to_hsv, rgb_array_to_lab
from ..config import DEFAULT_CALIBRATION, Calibration, SkinGateThresholds
from ..errors import LowQualitySamplesError
from ..types import PixelSample, Region, SkinSampleSet
from .robust_stats import percentile

logger = logging.getLogger(__name__)

GATE_ORDER: Tuple[str, ...] = (
    "brightness",
    "saturation",
    "hue",
    "rgb_order",
    "rgb_separation",
    "near_white",
    "near_black",
    "lab_bounds",
)

PASSED = -1


def classify_skin_pixels(rgb: np.ndarray, gate: SkinGateThresholds) -> np.ndarray:
    """
    Run the skin gates over an ``(N, 3)`` array of 0-255 pixels.

    Returns an ``(N,)`` int array holding the index into :data:`GATE_ORDER` of
    the first failed gate, or :data:`PASSED`.
    """
    pixels = np.asarray(rgb).reshape(-1, 3)
    if pixels.shape[0] == 0:
        return np.zeros(0, dtype=np.int16)

    channels = pixels.astype(np.int32)
    red, green, blue = channels[:, 0], channels[:, 1], channels[:, 2]
    hsv = rgb_array_to_hsv(pixels)
    hue, saturation, value = hsv[:, 0], hsv[:, 1], hsv[:, 2]
    lab = rgb_array_to_lab(pixels)

    hue_ok = np.zeros(pixels.shape[0], dtype=bool)
    for low, high in gate.hue_ranges:
        hue_ok |= (hue >= low) & (hue <= high)

    l_low, l_high = gate.lab_l_range
    a_low, a_high = gate.lab_a_range
    b_low, b_high = gate.lab_b_range

    failures = (
        (value < gate.min_value) | (value > gate.max_value),
        (saturation < gate.min_saturation) | (saturation > gate.max_saturation),
        ~hue_ok,
        ~((red > green) & (green >= blue)),
        ((red - green) < gate.min_red_green_gap) | ((red - blue) < gate.min_red_blue_gap),
        (red > gate.near_white) & (green > gate.near_white) & (blue > gate.near_white),
        (red < gate.near_black) & (green < gate.near_black) & (blue < gate.near_black),
        (lab[:, 0] < l_low)
        | (lab[:, 0] > l_high)
        | (lab[:, 1] < a_low)
        | (lab[:, 1] > a_high)
        | (lab[:, 2] < b_low)
        | (lab[:, 2] > b_high),
    )

    reasons = np.full(pixels.shape[0], PASSED, dtype=np.int16)
    for index, failed in enumerate(failures):
        reasons = np.where((reasons == PASSED) & failed, index, reasons)
    return reasons


def skin_mask(rgb: np.ndarray, gate: SkinGateThresholds) -> np.ndarray:
    """Boolean mask of pixels passing every skin gate, shaped like ``rgb[..., 0]``."""
    array = np.asarray(rgb)
    reasons = classify_skin_pixels(array.reshape(-1, 3), gate)
    return (reasons == PASSED).reshape(array.shape[:-1])


def _count_rejections(reasons: np.ndarray) -> Dict[str, int]:
    return {name: int(np.count_nonzero(reasons == index)) for index, name in enumerate(GATE_ORDER)}


def sample_skin(
    image: Image.Image,
    region: Region,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> SkinSampleSet:
    """
    Draw skin candidates from ``region`` of ``image``.

    Raises
    ------
    LowQualitySamplesError
        When fewer than ``sampling.min_candidates`` grid points pass the gates.
    """
    settings = calibration.sampling
    size = settings.working_size
    tile = image.crop(region.as_box()).resize((size, size), Image.Resampling.BILINEAR)
    pixels = np.asarray(tile.convert("RGB"), dtype=np.uint8)

    ys, xs = np.mgrid[0:size : settings.stride, 0:size : settings.stride]
    center = (size - 1) / 2.0
    rx = settings.ellipse_rx * size
    ry = settings.ellipse_ry * size
    in_shape = ((xs - center) / rx) ** 2 + ((ys - center) / ry) ** 2 <= 1.0

    strip_x0, strip_x1 = (bound * size for bound in settings.nose_strip_x)
    strip_y0, strip_y1 = (bound * size for bound in settings.nose_strip_y)
    nose_strip = (xs > strip_x0) & (xs < strip_x1) & (ys > strip_y0) & (ys < strip_y1)
    mouth_band = ys > settings.mouth_band_y * size
    usable = in_shape & ~nose_strip & ~mouth_band

    grid_x = xs[usable]
    grid_y = ys[usable]
    points = pixels[grid_y, grid_x]

    reasons = classify_skin_pixels(points, calibration.skin_gate)
    passed = reasons == PASSED
    rejections = _count_rejections(reasons)
    candidate_count = int(np.count_nonzero(passed))

    logger.debug(
        "Sampling grid: %d in shape, %d after exclusions, %d candidates, rejections=%s",
        int(np.count_nonzero(in_shape)),
        int(points.shape[0]),
        candidate_count,
        rejections,
    )

    if candidate_count < settings.min_candidates:
        raise LowQualitySamplesError(
            f"Only {candidate_count} skin pixels found (need {settings.min_candidates}); "
            "retake the photo in even light without filters",
            candidate_count=candidate_count,
            rejections=rejections,
        )

    forehead = grid_y < settings.forehead_max_y * size
    left = grid_x < center
    zone_counts = {
        "forehead": int(np.count_nonzero(passed & forehead)),
        "left_cheek": int(np.count_nonzero(passed & ~forehead & left)),
        "right_cheek": int(np.count_nonzero(passed & ~forehead & ~left)),
    }

    candidates = points[passed]
    lightness = rgb_array_to_lab(candidates)[:, 0]
    low_fraction, high_fraction = settings.trim_percentiles
    low_l = percentile(lightness, low_fraction)
    high_l = percentile(lightness, high_fraction)
    kept = candidates[(lightness >= low_l) & (lightness <= high_l)]

    samples = tuple(PixelSample(int(r), int(g), int(b)) for r, g, b in kept)
    return SkinSampleSet(
        samples=samples,
        total_in_shape=int(np.count_nonzero(in_shape)),
        total_after_exclusion=int(points.shape[0]),
        candidate_count=candidate_count,
        rejections=rejections,
        zone_counts=zone_counts,
        trim_range=(low_l, high_l),
    )
