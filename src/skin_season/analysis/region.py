from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from ..config import DEFAULT_CALIBRATION, Calibration
from ..errors import FaceNotDetectedError, InvalidCropBoxError
from ..types import Region, RegionSelection
from .sampler import skin_mask

logger = logging.getLogger(__name__)

# (x, y) centres as fractions of the scan image: centre, upper and middle weighted.
SCAN_ANCHORS: Tuple[Tuple[float, float], ...] = ((0.5, 0.45), (0.5, 0.33), (0.5, 0.55))

Box = Tuple[float, float, float, float]


def _clamped_region(x0: float, y0: float, x1: float, y1: float, width: int, height: int) -> Region:
    left = int(round(max(0.0, x0)))
    top = int(round(max(0.0, y0)))
    right = int(round(min(float(width), x1)))
    bottom = int(round(min(float(height), y1)))
    return Region(left, top, max(0, right - left), max(0, bottom - top))


def _require_min_size(region: Region, min_size: int, source: str) -> Region:
    if region.width < min_size or region.height < min_size:
        raise InvalidCropBoxError(
            f"{source} is {region.width}x{region.height} after clamping to the image; "
            f"both sides must be at least {min_size}px"
        )
    return region


def region_from_crop_box(box: Sequence[float], image_size: Tuple[int, int], min_size: int) -> Region:
    """Pixel ``(x, y, width, height)`` box, clamped to the image."""
    x, y, box_width, box_height = box
    width, height = image_size
    region = _clamped_region(x, y, x + box_width, y + box_height, width, height)
    return _require_min_size(region, min_size, "Crop box")


def region_from_face_box(box: Sequence[float], image_size: Tuple[int, int], min_size: int) -> Region:
    """Normalised ``(x, y, width, height)`` box in 0..1, converted with the image size."""
    x, y, box_width, box_height = box
    width, height = image_size
    region = _clamped_region(
        x * width,
        y * height,
        (x + box_width) * width,
        (y + box_height) * height,
        width,
        height,
    )
    return _require_min_size(region, min_size, "Face box")


def _box_sum(integral: np.ndarray, box: Tuple[int, int, int, int]) -> int:
    x0, y0, x1, y1 = box
    return int(integral[y1, x1] - integral[y0, x1] - integral[y1, x0] + integral[y0, x0])


def _candidate_boxes(scan_width: int, scan_height: int, calibration: Calibration):
    settings = calibration.region
    low_aspect, high_aspect = settings.aspect_range
    min_side = min(scan_width, scan_height)
    for anchor_x, anchor_y in SCAN_ANCHORS:
        for scale in settings.box_scales:
            for aspect in settings.box_aspects:
                box_width = max(1, int(round(scale * min_side)))
                box_height = max(1, min(scan_height, int(round(box_width * aspect))))
                if not low_aspect <= box_width / box_height <= high_aspect:
                    continue
                x0 = int(round(anchor_x * scan_width - box_width / 2))
                y0 = int(round(anchor_y * scan_height - box_height / 2))
                x0 = min(max(0, x0), scan_width - box_width)
                y0 = min(max(0, y0), scan_height - box_height)
                yield x0, y0, x0 + box_width, y0 + box_height


def _expand_to_minimum(box: Box, min_size: int, width: int, height: int) -> Box:
    x0, y0, x1, y1 = box
    if x1 - x0 < min_size:
        center = (x0 + x1) / 2.0
        x0, x1 = center - min_size / 2.0, center + min_size / 2.0
    if y1 - y0 < min_size:
        center = (y0 + y1) / 2.0
        y0, y1 = center - min_size / 2.0, center + min_size / 2.0
    # Shift back inside the frame before clamping so the minimum survives.
    if x0 < 0:
        x0, x1 = 0.0, x1 - x0
    if x1 > width:
        x0, x1 = x0 - (x1 - width), float(width)
    if y0 < 0:
        y0, y1 = 0.0, y1 - y0
    if y1 > height:
        y0, y1 = y0 - (y1 - height), float(height)
    return x0, y0, x1, y1


def scan_for_face(image: Image.Image, calibration: Calibration = DEFAULT_CALIBRATION) -> RegionSelection:
    """
    Heuristic face search over a downsampled copy of ``image``.

    Candidate boxes around three anchors are scored by ``skin_ratio * skin_count``
    with the sampler's skin gates. The best box is padded, mapped back to full
    resolution and grown to the minimum region size.

    Raises
    ------
    FaceNotDetectedError
        When the image is smaller than the minimum region or no box holds enough skin.
    """
    settings = calibration.region
    width, height = image.size
    if width < settings.min_region_size or height < settings.min_region_size:
        raise FaceNotDetectedError(
            f"Image is {width}x{height}; at least {settings.min_region_size}px per side is needed"
        )

    factor = min(1.0, settings.scan_size / float(max(width, height)))
    scan_width = max(1, int(round(width * factor)))
    scan_height = max(1, int(round(height * factor)))
    scan = image.convert("RGB")
    if factor < 1.0:
        scan = scan.resize((scan_width, scan_height), Image.Resampling.BILINEAR)

    mask = skin_mask(np.asarray(scan, dtype=np.uint8), calibration.skin_gate)
    integral = np.zeros((scan_height + 1, scan_width + 1), dtype=np.int64)
    integral[1:, 1:] = np.cumsum(np.cumsum(mask.astype(np.int64), axis=0), axis=1)

    best: Optional[Tuple[int, int, int, int]] = None
    best_score = -1.0
    best_ratio = 0.0
    best_count = 0
    for box in _candidate_boxes(scan_width, scan_height, calibration):
        count = _box_sum(integral, box)
        area = (box[2] - box[0]) * (box[3] - box[1])
        ratio = count / area if area else 0.0
        score = ratio * count
        if score > best_score:
            best, best_score, best_ratio, best_count = box, score, ratio, count

    if best is None or best_ratio < settings.min_skin_ratio or best_count < settings.min_skin_pixels:
        logger.info(
            "No face-like region: best skin ratio %.2f with %d skin pixels", best_ratio, best_count
        )
        raise FaceNotDetectedError(
            "No face-like region found; supply a crop box or a photo with the face centred"
        )

    x0, y0, x1, y1 = (value / factor for value in best)
    pad_x = (x1 - x0) * settings.padding
    pad_y = (y1 - y0) * settings.padding
    padded = (x0 - pad_x, y0 - pad_y, x1 + pad_x, y1 + pad_y)
    grown = _expand_to_minimum(padded, settings.min_region_size, width, height)
    region = _clamped_region(*grown, width, height)
    logger.debug(
        "Heuristic region %s (skin ratio %.2f, %d skin pixels in scan)", region.as_dict(), best_ratio, best_count
    )
    return RegionSelection(region=region, method="heuristic", skin_ratio=best_ratio, skin_pixels=best_count)


def locate_region(
    image: Image.Image,
    crop_box: Optional[Sequence[float]] = None,
    face_box: Optional[Sequence[float]] = None,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> RegionSelection:
    """Pick the skin region: explicit crop first, then a normalised face box, then the heuristic scan."""
    min_size = calibration.region.min_region_size
    if crop_box is not None:
        return RegionSelection(region=region_from_crop_box(crop_box, image.size, min_size), method="crop_box")
    if face_box is not None:
        return RegionSelection(region=region_from_face_box(face_box, image.size, min_size), method="face_box")
    return scan_for_face(image, calibration)
