from __future__ import annotations

import logging
from typing import Sequence, Tuple

import numpy as np
from PIL import Image

from ..config import DEFAULT_CALIBRATION, Calibration
from ..types import IlluminationGains, LightingBias, PixelSample
from .robust_stats import samples_to_array

logger = logging.getLogger(__name__)


def _p_norm_means(array: np.ndarray, p: float) -> Tuple[float, float, float]:
    powered = np.power(array, p).mean(axis=0)
    means = np.power(powered, 1.0 / p)
    return float(means[0]), float(means[1]), float(means[2])


def estimate_gains(
    samples: Sequence[PixelSample],
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> IlluminationGains:
    """
    Shades-of-gray gains from the skin samples alone.

    Each channel's p-norm mean is pulled to the mean of the three, and every
    gain is clamped to ``illumination.gain_range``. When a channel carries too
    little signal to estimate a cast the gains stay at 1.0.
    """
    settings = calibration.illumination
    array = samples_to_array(samples)
    if array.shape[0] == 0:
        return IlluminationGains(1.0, 1.0, 1.0, clamped=False, estimated=False)

    means = _p_norm_means(array, settings.p_norm)
    if min(means) < settings.min_channel_mean:
        logger.debug("Channel means %s too low for a cast estimate; gains left at 1.0", means)
        return IlluminationGains(1.0, 1.0, 1.0, clamped=False, estimated=False)

    gray = sum(means) / 3.0
    low, high = settings.gain_range
    raw_gains = [gray / mean for mean in means]
    gains = [min(max(gain, low), high) for gain in raw_gains]
    clamped = any(abs(gain - raw) > 1e-9 for gain, raw in zip(gains, raw_gains))
    if clamped:
        logger.warning("Illumination gains clamped: raw=%s clamped=%s", raw_gains, gains)
    else:
        logger.debug("Illumination gains: %s", gains)
    return IlluminationGains(gains[0], gains[1], gains[2], clamped=clamped)


def apply_gains(samples: Sequence[PixelSample], gains: IlluminationGains) -> Tuple[PixelSample, ...]:
    """Scale every sample by the gains, rounding and clamping to 0..255."""
    array = samples_to_array(samples)
    scaled = np.clip(np.rint(array * np.array([gains.r, gains.g, gains.b])), 0, 255).astype(np.int32)
    return tuple(PixelSample(int(r), int(g), int(b)) for r, g, b in scaled)


def detect_lighting_bias(
    image: Image.Image,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> LightingBias:
    """Whole-image warm-cast signal; feeds undertone confidence only."""
    settings = calibration.illumination
    thumb_size = settings.bias_thumbnail
    thumbnail = image.convert("RGB").resize((thumb_size, thumb_size), Image.Resampling.BILINEAR)
    average = np.asarray(thumbnail, dtype=np.float64).reshape(-1, 3).mean(axis=0) / 255.0
    red, green, blue = (float(value) for value in average)

    warm_index = (red + green) / 2.0 - blue
    is_warm = warm_index > settings.warm_bias_threshold
    severity = (warm_index - settings.warm_bias_threshold) / settings.warm_bias_span
    severity = min(max(severity, 0.0), 1.0) if is_warm else 0.0
    return LightingBias(warm_index=warm_index, is_warm=is_warm, severity=severity)
