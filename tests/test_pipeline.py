"""
End-to-end tests for the skin tone analyzer.

Tests cover:
- Warm light, cool deep and low-chroma neutral swatches
- Quality issues and retake messages
- Image sources: bytes, base64, data URLs, URLs through a fetcher, mappings
- Region selection through crop box, face box and the heuristic scan
- Error codes for bad input
- Determinism
"""
import base64
from unittest.mock import Mock

import pytest

from skin_season.analysis.pipeline import QUALITY_MESSAGES, SkinToneAnalyzer
from skin_season.config import AppConfig
from skin_season.errors import (
    ImageFetchError,
    InvalidCropBoxError,
    LowQualitySamplesError,
    MalformedImageError,
)
from skin_season.schemas import AnalyzeRequest, FaceBox, ImageSource, PixelBox

from .conftest import WARM_LIGHT_SKIN, full_crop_request, make_png


class TestScenarios:
    """Test the three reference swatches."""

    def test_warm_light_is_spring(self, analyzer, warm_light_png):
        """Test a warm light swatch under its own warm cast."""
        result = analyzer.analyze(full_crop_request(warm_light_png))
        payload = result.as_dict()

        assert payload["undertone"] == "warm"
        assert payload["depth"] == "light"
        assert payload["clarity"] == "muted"
        assert payload["season"] == "spring"
        assert payload["alternate_season"] == "autumn"
        assert payload["micro_season"] == "light_spring"
        assert payload["needs_confirmation"] is False
        assert payload["confidence"] >= 0.72
        assert payload["hex"] == "#B98C77"
        assert payload["quality"]["issues"] == ["strong_warm_cast"]
        assert payload["quality"]["messages"] == list(QUALITY_MESSAGES)

    def test_cool_deep_is_winter(self, analyzer, cool_deep_png):
        """Test a cool deep swatch is confidently winter."""
        result = analyzer.analyze(full_crop_request(cool_deep_png))

        assert result.season == "winter"
        assert result.decision.alternate.season == "summer"
        assert result.attributes.undertone == "cool"
        assert result.attributes.depth == "deep"
        assert result.micro_season == "deep_winter"
        assert result.confidence == pytest.approx(0.907, abs=0.02)
        assert result.needs_confirmation is False
        assert result.quality_issues == ()
        assert result.quality_messages == ()

    def test_low_chroma_neutral_asks_for_confirmation(self, analyzer, neutral_png):
        """Test a near-achromatic neutral swatch ties summer and autumn."""
        result = analyzer.analyze(full_crop_request(neutral_png))

        assert result.attributes.undertone == "neutral"
        assert result.attributes.undertone_lean is None
        assert result.diagnostics["decision"]["branch"] == "low_chroma_neutral"
        assert result.season == "summer"
        assert result.decision.alternate.season == "autumn"
        assert "close_top_candidates" in result.decision.penalties
        assert result.needs_confirmation is True

    def test_payload_carries_profile_traits_and_diagnostics(self, analyzer, warm_light_png):
        """Test the season profile, trait cards and diagnostics are included."""
        payload = analyzer.analyze(full_crop_request(warm_light_png)).as_dict()

        assert payload["season_profile"]["season"] == "spring"
        assert [card["trait"] for card in payload["traits"]] == ["undertone", "depth", "clarity"]
        assert len(payload["season_candidates"]) == 2
        diagnostics = payload["diagnostics"]
        assert diagnostics["calibration_version"] == "v1"
        assert diagnostics["delta_e_method"] == "ciede2000"
        assert diagnostics["region"]["method"] == "crop_box"
        assert diagnostics["gains"]["clamped"] is False
        assert diagnostics["sampling"]["kept_count"] >= 260
        assert len(diagnostics["decision"]["candidates"]) == 4

    def test_same_input_same_result(self, analyzer, neutral_png):
        """Test repeated analysis of one image is identical."""
        first = analyzer.analyze(full_crop_request(neutral_png)).as_dict()
        second = analyzer.analyze(full_crop_request(neutral_png)).as_dict()
        assert first == second


class TestImageSources:
    """Test every supported way of passing the photo."""

    def test_base64_source(self, analyzer, warm_light_png):
        """Test raw base64 text."""
        request = AnalyzeRequest(
            image=ImageSource(image_base64=base64.b64encode(warm_light_png).decode("ascii")),
            crop_box=PixelBox(x=0, y=0, width=300, height=300),
        )
        assert analyzer.analyze(request).season == "spring"

    def test_data_url_source(self, analyzer, warm_light_png):
        """Test a data URL prefix is stripped."""
        encoded = "data:image/png;base64," + base64.b64encode(warm_light_png).decode("ascii")
        request = AnalyzeRequest(
            image=ImageSource(image_base64=encoded),
            crop_box=PixelBox(x=0, y=0, width=300, height=300),
        )
        assert analyzer.analyze(request).season == "spring"

    def test_url_source_uses_fetcher(self, cool_deep_png):
        """Test URLs are resolved through the injected fetcher."""
        fetcher = Mock(return_value=cool_deep_png)
        analyzer = SkinToneAnalyzer(AppConfig(), fetcher=fetcher)
        request = AnalyzeRequest(
            image=ImageSource(image_url="https://example.com/face.png"),
            crop_box=PixelBox(x=0, y=0, width=300, height=300),
        )

        assert analyzer.analyze(request).season == "winter"
        fetcher.assert_called_once_with("https://example.com/face.png")

    def test_url_without_fetcher_raises(self, analyzer):
        """Test a URL cannot be analysed without a fetcher."""
        request = AnalyzeRequest(image=ImageSource(image_url="https://example.com/face.png"))
        with pytest.raises(ImageFetchError) as exc_info:
            analyzer.analyze(request)
        assert exc_info.value.retryable is False

    def test_mapping_request(self, analyzer, warm_light_png):
        """Test plain mappings are validated into requests."""
        result = analyzer.analyze(
            {
                "image": {"image_bytes": warm_light_png},
                "crop_box": {"x": 0, "y": 0, "width": 300, "height": 300},
            }
        )
        assert result.season == "spring"


class TestRegionSelection:
    """Test how the analyzer finds the skin."""

    def test_face_box(self, analyzer, warm_light_png):
        """Test a normalised detector box."""
        request = AnalyzeRequest(
            image=ImageSource(image_bytes=warm_light_png),
            face_box=FaceBox(x=0.0, y=0.0, width=1.0, height=1.0),
        )
        result = analyzer.analyze(request)
        assert result.diagnostics["region"]["method"] == "face_box"

    def test_heuristic_scan(self, analyzer):
        """Test the scan is used when no box is supplied."""
        request = AnalyzeRequest(image=ImageSource(image_bytes=make_png(WARM_LIGHT_SKIN, (400, 400))))
        result = analyzer.analyze(request)
        assert result.diagnostics["region"]["method"] == "heuristic"
        assert result.diagnostics["region"]["skin_ratio"] == pytest.approx(1.0)
        assert result.season == "spring"

    def test_negative_crop_origin_is_clamped(self, analyzer):
        """Test a crop hanging off the left edge is clamped and still used."""
        result = analyzer.analyze(
            {
                "image": {"image_bytes": make_png(WARM_LIGHT_SKIN, (400, 400))},
                "crop_box": {"x": -50, "y": 0, "width": 400, "height": 400},
            }
        )
        assert result.diagnostics["region"]["method"] == "crop_box"
        assert result.diagnostics["region"]["box"] == {"x": 0, "y": 0, "width": 350, "height": 400}
        assert result.season == "spring"


class TestErrors:
    """Test failures surface with stable codes."""

    def test_malformed_bytes(self, analyzer):
        """Test undecodable bytes."""
        request = AnalyzeRequest(image=ImageSource(image_bytes=b"definitely not a png"))
        with pytest.raises(MalformedImageError) as exc_info:
            analyzer.analyze(request)
        assert exc_info.value.as_dict()["code"] == "MALFORMED_IMAGE"

    def test_invalid_base64(self, analyzer):
        """Test base64 text that does not decode."""
        request = AnalyzeRequest(image=ImageSource(image_base64="***not base64***"))
        with pytest.raises(MalformedImageError, match="base64"):
            analyzer.analyze(request)

    def test_crop_box_too_small(self, analyzer, warm_light_png):
        """Test a crop box that clamps below the minimum size."""
        request = AnalyzeRequest(
            image=ImageSource(image_bytes=warm_light_png),
            crop_box=PixelBox(x=100, y=100, width=300, height=300),
        )
        with pytest.raises(InvalidCropBoxError) as exc_info:
            analyzer.analyze(request)
        assert exc_info.value.code == "INVALID_CROP_BOX"

    @pytest.mark.parametrize(
        "crop_box",
        [
            {"x": 10, "y": 10, "width": 0, "height": 300},
            {"x": 10, "y": 10, "width": -300, "height": 300},
            {"x": 500, "y": 0, "width": 300, "height": 300},
        ],
    )
    def test_degenerate_crop_box_has_error_code(self, analyzer, crop_box):
        """Test empty, inverted and off-image crops are rejected as INVALID_CROP_BOX."""
        request = {"image": {"image_bytes": make_png(WARM_LIGHT_SKIN, (400, 400))}, "crop_box": crop_box}
        with pytest.raises(InvalidCropBoxError) as exc_info:
            analyzer.analyze(request)
        assert exc_info.value.as_dict()["code"] == "INVALID_CROP_BOX"

    def test_empty_face_box_has_error_code(self, analyzer, warm_light_png):
        """Test a zero-size detector box is rejected like a crop box."""
        request = {
            "image": {"image_bytes": warm_light_png},
            "face_box": {"x": 0.1, "y": 0.1, "width": 0.0, "height": 0.5},
        }
        with pytest.raises(InvalidCropBoxError, match="Face box"):
            analyzer.analyze(request)

    def test_no_skin_in_crop(self, analyzer, blue_png):
        """Test a crop without skin reports low-quality samples."""
        with pytest.raises(LowQualitySamplesError):
            analyzer.analyze(full_crop_request(blue_png))
