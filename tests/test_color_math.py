"""
Unit tests for the color-space helpers.

Tests cover:
- Hex parsing and formatting
- sRGB to Lab and HSV conversion
- Chroma and hue angle
- CIEDE2000 and CIE76 distances
"""
import pytest

from skin_season.color_math import (
    chroma,
    delta_e,
    hex_to_lab,
    hex_to_rgb,
    hue_angle,
    lab_to_rgb,
    rgb_to_hex,
    rgb_to_hsv,
    rgb_to_lab,
)
from skin_season.types import LabColor


class TestHexHelpers:
    """Test hex parsing and formatting."""

    def test_parses_six_digit_hex(self):
        """Test a #RRGGBB value with and without the hash."""
        assert hex_to_rgb("#B98C77") == (185, 140, 119)
        assert hex_to_rgb("b98c77") == (185, 140, 119)

    def test_expands_short_hex(self):
        """Test #RGB shorthand doubles every digit."""
        assert hex_to_rgb("#abc") == (170, 187, 204)

    def test_rejects_invalid_hex(self):
        """Test malformed values raise ValueError."""
        with pytest.raises(ValueError, match="Invalid hex color"):
            hex_to_rgb("#12345")
        with pytest.raises(ValueError, match="Invalid hex color"):
            hex_to_rgb("not-a-color")

    def test_formats_uppercase_and_clamps(self):
        """Test output is uppercase and channels are clamped to 0..255."""
        assert rgb_to_hex(185, 140, 119) == "#B98C77"
        assert rgb_to_hex(300, -5, 127.6) == "#FF0080"


class TestConversions:
    """Test sRGB conversions."""

    def test_white_and_black_lightness(self):
        """Test the ends of the lightness axis."""
        white = rgb_to_lab(255, 255, 255)
        black = rgb_to_lab(0, 0, 0)
        assert white.L == pytest.approx(100.0, abs=0.05)
        assert white.a == pytest.approx(0.0, abs=0.05)
        assert white.b == pytest.approx(0.0, abs=0.05)
        assert black.L == pytest.approx(0.0, abs=1e-6)

    def test_warm_skin_tone_lab(self):
        """Test a warm light skin swatch lands where the thresholds expect it."""
        lab = rgb_to_lab(185, 140, 119)
        assert lab.L == pytest.approx(62.0, abs=0.5)
        assert lab.a == pytest.approx(14.2, abs=0.5)
        assert lab.b == pytest.approx(17.9, abs=0.5)

    def test_hex_to_lab_matches_rgb_to_lab(self):
        """Test the hex shortcut goes through the same conversion."""
        assert hex_to_lab("#B98C77") == rgb_to_lab(185, 140, 119)

    def test_lab_to_rgb_recovers_display_color(self):
        """Test the display inverse lands within one step per channel."""
        r, g, b = lab_to_rgb(rgb_to_lab(185, 140, 119))
        assert abs(r - 185) <= 1
        assert abs(g - 140) <= 1
        assert abs(b - 119) <= 1

    def test_hsv_uses_degrees(self):
        """Test hue in degrees and saturation/value in 0..1."""
        assert rgb_to_hsv(255, 0, 0) == pytest.approx((0.0, 1.0, 1.0))
        hue, saturation, value = rgb_to_hsv(0, 0, 255)
        assert hue == pytest.approx(240.0)
        assert saturation == pytest.approx(1.0)
        assert value == pytest.approx(1.0)


class TestChromaAndHue:
    """Test polar Lab helpers."""

    def test_chroma_is_ab_magnitude(self):
        """Test chroma of a 3-4-5 triangle."""
        assert chroma(LabColor(50.0, 3.0, 4.0)) == pytest.approx(5.0)

    def test_hue_angle_is_normalised(self):
        """Test hue angles stay in [0, 360)."""
        assert hue_angle(LabColor(50.0, 0.0, 5.0)) == pytest.approx(90.0)
        assert hue_angle(LabColor(50.0, 0.0, -5.0)) == pytest.approx(270.0)


class TestDeltaE:
    """Test perceptual distances."""

    def test_identical_colors_have_zero_distance(self):
        """Test identity for both methods."""
        lab = LabColor(62.0, 14.0, 18.0)
        assert delta_e(lab, lab) == pytest.approx(0.0, abs=1e-9)
        assert delta_e(lab, lab, "cie76") == pytest.approx(0.0, abs=1e-9)

    def test_cie76_is_euclidean(self):
        """Test CIE76 against a hand-computed distance."""
        assert delta_e(LabColor(50.0, 0.0, 0.0), LabColor(50.0, 3.0, 4.0), "cie76") == pytest.approx(5.0)

    def test_ciede2000_reference_pair(self):
        """Test CIEDE2000 against the first published reference pair."""
        first = LabColor(50.0, 2.6772, -79.7751)
        second = LabColor(50.0, 0.0, -82.7485)
        assert delta_e(first, second) == pytest.approx(2.0425, abs=1e-3)

    def test_unknown_method_raises(self):
        """Test an unsupported method name is rejected."""
        with pytest.raises(ValueError, match="Unsupported delta E method"):
            delta_e(LabColor(50.0, 0.0, 0.0), LabColor(50.0, 1.0, 1.0), "cmc")  # type: ignore[arg-type]
