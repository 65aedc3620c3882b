from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

from ..color_math import rgb_array_to_lab
from ..config import DEFAULT_CALIBRATION, Calibration
from ..types import LabColor, PixelSample, RobustStats

logger = logging.getLogger(__name__)


def median(values: Sequence[float] | np.ndarray) -> float:
    array = np.asarray(values, dtype=np.float64)
    if array.size == 0:
        return 0.0
    return float(np.median(array))


def mad(values: Sequence[float] | np.ndarray) -> float:
    """Median absolute deviation around the median."""
    array = np.asarray(values, dtype=np.float64)
    if array.size == 0:
        return 0.0
    center = np.median(array)
    return float(np.median(np.abs(array - center)))


def percentile(values: Sequence[float] | np.ndarray, fraction: float) -> float:
    """Nearest-rank percentile: ``sorted[floor(fraction * (n - 1))]``."""
    array = np.sort(np.asarray(values, dtype=np.float64), axis=None)
    if array.size == 0:
        return 0.0
    fraction = min(max(fraction, 0.0), 1.0)
    return float(array[int(math.floor(fraction * (array.size - 1)))])


def samples_to_array(samples: Sequence[PixelSample]) -> np.ndarray:
    return np.array([sample.as_tuple() for sample in samples], dtype=np.float64).reshape(-1, 3)


def compute_robust_stats(
    samples: Sequence[PixelSample],
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> RobustStats:
    """Median/MAD summary of a sample set in Lab, with percentile chroma and a noise flag."""
    settings = calibration.stats
    lab = rgb_array_to_lab(samples_to_array(samples))
    lightness, green_red, blue_yellow = lab[:, 0], lab[:, 1], lab[:, 2]
    chroma_values = np.hypot(green_red, blue_yellow)

    median_lab = LabColor(L=median(lightness), a=median(green_red), b=median(blue_yellow))
    mad_lab = LabColor(L=mad(lightness), a=mad(green_red), b=mad(blue_yellow))
    noisy = mad_lab.L > settings.noisy_mad_l or mad_lab.b > settings.noisy_mad_b

    stats = RobustStats(
        median_lab=median_lab,
        mad_lab=mad_lab,
        median_chroma=median(chroma_values),
        percentile_chroma=percentile(chroma_values, settings.chroma_percentile),
        sample_count=int(lab.shape[0]),
        noisy=noisy,
    )
    logger.debug(
        "Robust stats over %d samples: L=%.1f a=%.1f b=%.1f C%.0f=%.1f noisy=%s",
        stats.sample_count,
        median_lab.L,
        median_lab.a,
        median_lab.b,
        settings.chroma_percentile * 100,
        stats.percentile_chroma,
        noisy,
    )
    return stats


def trimmed_mean_rgb(samples: Sequence[PixelSample], trim: float = 0.15) -> tuple[float, float, float]:
    """Mean RGB after dropping the darkest and brightest ``trim`` share (ranked by r+g+b)."""
    array = samples_to_array(samples)
    if array.shape[0] == 0:
        return 0.0, 0.0, 0.0
    order = np.argsort(array.sum(axis=1), kind="stable")
    cut = int(math.floor(array.shape[0] * trim))
    kept = array[order[cut : array.shape[0] - cut]] if array.shape[0] > 2 * cut else array
    mean = kept.mean(axis=0)
    return float(mean[0]), float(mean[1]), float(mean[2])
