from __future__ import annotations

from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .color_math import hex_to_rgb
from .config import SeasonName


class PixelBox(BaseModel):
    """
    Crop rectangle in source-image pixels.

    Values are not range-checked here: the region locator clamps the box to the
    image and rejects it with ``INVALID_CROP_BOX`` when too little remains.
    """

    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    width: int
    height: int

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return self.x, self.y, self.width, self.height


class FaceBox(BaseModel):
    """Face rectangle from an external detector, normalised to 0..1 and clamped like a crop box."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height


class ImageSource(BaseModel):
    """Exactly one of raw bytes, base64 text or a URL."""

    image_bytes: Optional[bytes] = Field(default=None, repr=False)
    image_base64: Optional[str] = Field(default=None, repr=False)
    image_url: Optional[str] = Field(default=None, description="http(s) URL fetched by the image client")

    @field_validator("image_url")
    @classmethod
    def _validate_url(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.lower().startswith(("http://", "https://")):
            raise ValueError("image_url must be an http(s) URL")
        return value

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "ImageSource":
        provided = [
            name
            for name, value in (
                ("image_bytes", self.image_bytes),
                ("image_base64", self.image_base64),
                ("image_url", self.image_url),
            )
            if value
        ]
        if len(provided) != 1:
            raise ValueError("Provide exactly one of image_bytes, image_base64 or image_url")
        return self


class AnalyzeRequest(BaseModel):
    image: ImageSource
    crop_box: Optional[PixelBox] = Field(default=None, description="Takes precedence over face_box")
    face_box: Optional[FaceBox] = None


class GarmentScoreRequest(BaseModel):
    """Garment color plus the user's season or measured attributes."""

    hex: Optional[str] = Field(default=None, description="Garment color as #RRGGBB or #RGB")
    rgb: Optional[Tuple[int, int, int]] = Field(default=None, description="Garment color as an RGB triple")
    season: Optional[SeasonName] = None
    undertone: Optional[Literal["warm", "cool", "neutral"]] = None
    depth: Optional[Literal["light", "medium", "deep"]] = None
    clarity: Optional[Literal["muted", "clear", "vivid"]] = None
    micro_season: Optional[str] = None
    near_face: bool = True
    include_crossover: Optional[bool] = Field(
        default=None,
        description="Overrides INCLUDE_CROSSOVER_PALETTE for this request",
    )

    @field_validator("hex")
    @classmethod
    def _validate_hex(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        hex_to_rgb(value)
        return value.strip()

    @field_validator("rgb")
    @classmethod
    def _validate_rgb(cls, value: Optional[Tuple[int, int, int]]) -> Optional[Tuple[int, int, int]]:
        if value is not None and any(not 0 <= channel <= 255 for channel in value):
            raise ValueError("rgb channels must lie in 0..255")
        return value

    @model_validator(mode="after")
    def _single_color(self) -> "GarmentScoreRequest":
        if self.hex is not None and self.rgb is not None:
            raise ValueError("Provide either hex or rgb, not both")
        return self

    def garment_color(self) -> Optional[str | Tuple[int, int, int]]:
        return self.hex if self.hex is not None else self.rgb
