"""
Color-space helpers shared by the skin pipeline and the garment scorer.

All conversions assume sRGB input with a D65 white point and the 2° observer.
``lab_to_rgb`` exists for display swatches only: it clips out-of-gamut values
and rounds to integers, so ``rgb_to_lab`` followed by ``lab_to_rgb`` is not
guaranteed to return the exact starting triple.
"""
from __future__ import annotations

import math
import re
from typing import Literal, Tuple

import numpy as np
from skimage import color as skcolor

from .types import LabColor

DeltaEMethod = Literal["ciede2000", "cie76"]

_HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def _as_unit_rgb(rgb: np.ndarray) -> np.ndarray:
    return np.clip(np.asarray(rgb, dtype=np.float64), 0.0, 255.0) / 255.0


def rgb_array_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert an ``(..., 3)`` array of 0-255 RGB values to Lab."""
    lab = skcolor.rgb2lab(_as_unit_rgb(rgb), illuminant="D65", observer="2", channel_axis=-1)
    lab[..., 0] = np.clip(lab[..., 0], 0.0, 100.0)
    return lab


def rgb_array_to_hsv(rgb: np.ndarray) -> np.ndarray:
    """Convert an ``(..., 3)`` array of 0-255 RGB values to HSV (h in degrees, s/v in 0..1)."""
    hsv = skcolor.rgb2hsv(_as_unit_rgb(rgb), channel_axis=-1)
    hsv[..., 0] = np.mod(hsv[..., 0] * 360.0, 360.0)
    return hsv


def rgb_to_lab(r: float, g: float, b: float) -> LabColor:
    lab = rgb_array_to_lab(np.array([[[r, g, b]]], dtype=np.float64))[0, 0]
    return LabColor(L=float(lab[0]), a=float(lab[1]), b=float(lab[2]))


def lab_to_rgb(lab: LabColor) -> Tuple[int, int, int]:
    """Approximate inverse of :func:`rgb_to_lab`, clipped to the sRGB gamut."""
    array = np.array([[[lab.L, lab.a, lab.b]]], dtype=np.float64)
    rgb = skcolor.lab2rgb(array, illuminant="D65", observer="2", channel_axis=-1)[0, 0]
    r, g, b = (int(round(float(channel) * 255.0)) for channel in np.clip(rgb, 0.0, 1.0))
    return r, g, b


def rgb_to_hsv(r: float, g: float, b: float) -> Tuple[float, float, float]:
    hsv = rgb_array_to_hsv(np.array([[[r, g, b]]], dtype=np.float64))[0, 0]
    return float(hsv[0]), float(hsv[1]), float(hsv[2])


def chroma(lab: LabColor) -> float:
    return math.hypot(lab.a, lab.b)


def hue_angle(lab: LabColor) -> float:
    """Hue angle of ``atan2(b, a)`` in degrees, normalised to [0, 360)."""
    angle = math.degrees(math.atan2(lab.b, lab.a))
    return angle % 360.0


def delta_e_array(lab1: np.ndarray, lab2: np.ndarray, method: DeltaEMethod = "ciede2000") -> np.ndarray:
    """Vectorised perceptual distance between broadcastable ``(..., 3)`` Lab arrays."""
    first, second = np.broadcast_arrays(
        np.asarray(lab1, dtype=np.float64), np.asarray(lab2, dtype=np.float64)
    )
    if method == "ciede2000":
        distance = skcolor.deltaE_ciede2000(first, second, channel_axis=-1)
    elif method == "cie76":
        distance = skcolor.deltaE_cie76(first, second, channel_axis=-1)
    else:
        raise ValueError(f"Unsupported delta E method: {method}")
    return np.maximum(np.asarray(distance, dtype=np.float64), 0.0)


def delta_e(lab1: LabColor, lab2: LabColor, method: DeltaEMethod = "ciede2000") -> float:
    distance = delta_e_array(
        np.array([lab1.as_tuple()], dtype=np.float64),
        np.array([lab2.as_tuple()], dtype=np.float64),
        method,
    )
    return float(distance[0])


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    match = _HEX_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid hex color: {value!r}")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def rgb_to_hex(r: float, g: float, b: float) -> str:
    channels = (max(0, min(255, int(round(value)))) for value in (r, g, b))
    return "#" + "".join(f"{channel:02X}" for channel in channels)


def hex_to_lab(value: str) -> LabColor:
    return rgb_to_lab(*hex_to_rgb(value))
