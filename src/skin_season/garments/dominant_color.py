from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np
from PIL import Image

from ..color_math import rgb_to_hex
from ..config import DEFAULT_CALIBRATION, Calibration
from .scoring import classify_garment_color

logger = logging.getLogger(__name__)

ANALYSIS_SIZE = 200
QUANT_STEP = 15
SAMPLE_STEP = 2
SATURATION_WEIGHT = 1.2
CONTRAST_BONUS = 0.3
MIN_SAMPLES = 100


@dataclass(frozen=True, slots=True)
class DominantColor:
    hex: str
    rgb: Tuple[int, int, int]
    share: float
    sampled: int
    name: Optional[str] = None

    def as_dict(self) -> Dict[str, object]:
        return {
            "hex": self.hex,
            "rgb": list(self.rgb),
            "share": round(self.share, 3),
            "sampled": self.sampled,
            "name": self.name,
        }


@dataclass(frozen=True, slots=True)
class PickedColor:
    hex: str
    rgb: Tuple[int, int, int]
    center: Tuple[int, int]
    radius: int
    sample_count: int

    def as_dict(self) -> Dict[str, object]:
        return {
            "hex": self.hex,
            "rgb": list(self.rgb),
            "center": list(self.center),
            "radius": self.radius,
            "sample_count": self.sample_count,
        }


def _approximate_saturation(pixels: np.ndarray) -> np.ndarray:
    max_channel = pixels.max(axis=-1)
    min_channel = pixels.min(axis=-1)
    denom = np.where(max_channel == 0, 1.0, max_channel)
    return (max_channel - min_channel) / denom


def _garment_pixels(pixels: np.ndarray, *, relaxed: bool) -> np.ndarray:
    """Drop background-like pixels: near white, near black and bright greys."""
    brightness = pixels.mean(axis=-1)
    if relaxed:
        keep = (brightness <= 250) & (brightness >= 15)
    else:
        saturation = _approximate_saturation(pixels)
        keep = (
            (brightness <= 235)
            & (brightness >= 25)
            & ~((saturation < 0.15) & (brightness > 180))
            & ~((brightness > 220) & (saturation < 0.2))
        )
    return pixels[keep]


def detect_dominant_color(
    image: Image.Image,
    *,
    name_colors: bool = True,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> Optional[DominantColor]:
    """
    Most prominent garment color in a product photo.

    The image is shrunk to fit 200 px, a border margin is skipped, background
    pixels are dropped and the rest is quantised into 15-level bins. Bins are
    ranked by ``count * (1 + 1.2 * saturation + contrast bonus)``; the winning
    bin's mean color is returned. ``None`` when nothing survives filtering.
    """
    working = image.convert("RGB")
    working.thumbnail((ANALYSIS_SIZE, ANALYSIS_SIZE), Image.Resampling.BILINEAR)
    array = np.asarray(working, dtype=np.float64)
    height, width = array.shape[:2]
    margin = min(20, int(min(width, height) * 0.1))
    grid = array[margin : height - margin : SAMPLE_STEP, margin : width - margin : SAMPLE_STEP].reshape(-1, 3)

    pixels = _garment_pixels(grid, relaxed=False)
    quantised = np.rint(pixels / QUANT_STEP).astype(np.int32)
    if pixels.shape[0] == 0 or (
        pixels.shape[0] < MIN_SAMPLES and np.unique(quantised, axis=0).shape[0] < 3
    ):
        logger.debug("Only %d garment pixels; relaxing background filters", pixels.shape[0])
        pixels = _garment_pixels(grid, relaxed=True)
        quantised = np.rint(pixels / QUANT_STEP).astype(np.int32)
    if pixels.shape[0] == 0:
        logger.info("No garment pixels survived filtering")
        return None

    bins, inverse, counts = np.unique(quantised, axis=0, return_inverse=True, return_counts=True)
    inverse = inverse.reshape(-1)
    saturation = _approximate_saturation(pixels)
    brightness = pixels.mean(axis=-1)

    best_index = -1
    best_score = -1.0
    for index in range(bins.shape[0]):
        members = inverse == index
        bin_brightness = float(brightness[members].mean())
        bonus = CONTRAST_BONUS if 50 < bin_brightness < 200 else 0.0
        score = counts[index] * (1.0 + SATURATION_WEIGHT * float(saturation[members].max()) + bonus)
        if score > best_score:
            best_index, best_score = index, score

    members = inverse == best_index
    mean = pixels[members].mean(axis=0)
    rgb = (int(round(mean[0])), int(round(mean[1])), int(round(mean[2])))
    hex_value = rgb_to_hex(*rgb)
    name = classify_garment_color(hex_value, calibration).closest.name if name_colors else None
    logger.debug("Dominant color %s from %d of %d pixels", hex_value, int(counts[best_index]), pixels.shape[0])
    return DominantColor(
        hex=hex_value,
        rgb=rgb,
        share=float(counts[best_index]) / float(pixels.shape[0]),
        sampled=int(pixels.shape[0]),
        name=name,
    )


def _edge_radius(base_radius: int, distance_to_edge: int) -> int:
    """Shrink the sampling circle near the frame so background is not picked up."""
    if distance_to_edge >= 30:
        return base_radius
    if distance_to_edge < 10:
        return max(2, int(base_radius * (distance_to_edge / 10.0) * 0.5))
    return max(6, int(base_radius * ((distance_to_edge - 10) / 20.0) + 6))


def _trimmed_channel_mean(samples: np.ndarray, trim: float = 0.15) -> Tuple[int, int, int]:
    ordered = np.sort(samples, axis=0)
    count = ordered.shape[0]
    cut = int(count * trim)
    if count - 2 * cut <= 0:
        middle = ordered[count // 2]
        return int(middle[0]), int(middle[1]), int(middle[2])
    mean = ordered[cut : count - cut].mean(axis=0)
    return int(round(mean[0])), int(round(mean[1])), int(round(mean[2]))


def pick_color(
    image: Image.Image,
    x: float,
    y: float,
    radius: int = 12,
    *,
    display_size: Optional[Tuple[int, int]] = None,
) -> PickedColor:
    """
    Color under a tap at ``(x, y)``: a per-channel 15% trimmed mean over a circle.

    ``display_size`` maps coordinates from a resized preview back to the image.
    """
    rgb_image = image.convert("RGB")
    width, height = rgb_image.size
    if display_size and display_size[0] > 0 and display_size[1] > 0:
        x = x * width / display_size[0]
        y = y * height / display_size[1]
    center_x = min(max(int(round(x)), 0), width - 1)
    center_y = min(max(int(round(y)), 0), height - 1)

    edge_distance = min(center_x, width - 1 - center_x, center_y, height - 1 - center_y)
    effective_radius = _edge_radius(radius, edge_distance)

    left = max(0, center_x - effective_radius)
    top = max(0, center_y - effective_radius)
    right = min(width - 1, center_x + effective_radius)
    bottom = min(height - 1, center_y + effective_radius)
    patch = np.asarray(rgb_image.crop((left, top, right + 1, bottom + 1)), dtype=np.float64)

    ys, xs = np.mgrid[top : bottom + 1, left : right + 1]
    inside = (xs - center_x) ** 2 + (ys - center_y) ** 2 <= effective_radius**2
    samples = patch[inside]
    rgb = _trimmed_channel_mean(samples)
    return PickedColor(
        hex=rgb_to_hex(*rgb),
        rgb=rgb,
        center=(center_x, center_y),
        radius=effective_radius,
        sample_count=int(samples.shape[0]),
    )
