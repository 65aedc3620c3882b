from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from typing import Callable, Optional

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import ImageFetchError, MalformedImageError

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], bytes]

_DATA_URL_PREFIX = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,", re.IGNORECASE)


def decode_image(data: bytes) -> Image.Image:
    """Decode image bytes into an RGB image with EXIF orientation applied."""
    if not data:
        raise MalformedImageError("Image payload is empty")
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            oriented = ImageOps.exif_transpose(image)
            rgb = oriented.convert("RGB")
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise MalformedImageError(f"Could not decode image data: {exc}") from exc

    if rgb.width == 0 or rgb.height == 0:
        raise MalformedImageError("Image has no pixels")
    logger.debug("Decoded image %sx%s", rgb.width, rgb.height)
    return rgb


def decode_base64_image(text: str) -> bytes:
    """Decode raw base64 or a ``data:image/...;base64,`` URL into bytes."""
    payload = _DATA_URL_PREFIX.sub("", text.strip(), count=1)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedImageError("Image base64 payload is invalid") from exc


def load_image(
    *,
    image_bytes: Optional[bytes] = None,
    image_base64: Optional[str] = None,
    image_url: Optional[str] = None,
    fetcher: Optional[Fetcher] = None,
) -> Image.Image:
    """Resolve exactly one image source into a decoded RGB image."""
    if image_bytes is not None:
        return decode_image(image_bytes)
    if image_base64 is not None:
        return decode_image(decode_base64_image(image_base64))
    if image_url is not None:
        if fetcher is None:
            raise ImageFetchError(
                f"No fetcher configured to download {image_url}", retryable=False
            )
        logger.info("Fetching image from %s", image_url)
        return decode_image(fetcher(image_url))
    raise MalformedImageError("No image source provided")


def image_to_array(image: Image.Image) -> np.ndarray:
    return np.asarray(image.convert("RGB"), dtype=np.uint8)
