from __future__ import annotations

from typing import Mapping


class SkinSeasonError(RuntimeError):
    """Base class for failures surfaced to callers with a stable error code."""

    code = "SKIN_SEASON_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def as_dict(self) -> dict[str, object]:
        return {"code": self.code, "message": self.message}


class InvalidCropBoxError(SkinSeasonError):
    """Caller-supplied crop or face box is out of bounds or too small."""

    code = "INVALID_CROP_BOX"


class FaceNotDetectedError(SkinSeasonError):
    """Heuristic scan found no region dense enough in skin pixels."""

    code = "FACE_NOT_DETECTED"


class LowQualitySamplesError(SkinSeasonError):
    """Too few skin candidates survived filtering to classify reliably."""

    code = "LOW_QUALITY_SAMPLES"

    def __init__(
        self,
        message: str,
        *,
        candidate_count: int = 0,
        rejections: Mapping[str, int] | None = None,
    ) -> None:
        super().__init__(message)
        self.candidate_count = candidate_count
        self.rejections = dict(rejections or {})

    def as_dict(self) -> dict[str, object]:
        payload = super().as_dict()
        payload["candidate_count"] = self.candidate_count
        payload["rejections"] = dict(self.rejections)
        return payload


class ImageFetchError(SkinSeasonError):
    """Network fetch of a referenced image failed."""

    code = "IMAGE_FETCH_FAILED"

    def __init__(self, message: str, *, retryable: bool = True, status_code: int | None = None) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code

    def as_dict(self) -> dict[str, object]:
        payload = super().as_dict()
        payload["retryable"] = self.retryable
        if self.status_code is not None:
            payload["status_code"] = self.status_code
        return payload


class MalformedImageError(SkinSeasonError):
    """Image payload could not be decoded."""

    code = "MALFORMED_IMAGE"
