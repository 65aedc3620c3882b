"""
Unit tests for garment color extraction from photos.

Tests cover:
- Dominant color detection on a product shot
- Background-only images
- Tap-to-pick sampling, edge shrinking and display coordinate mapping
"""
from PIL import Image, ImageDraw

from skin_season.garments.dominant_color import detect_dominant_color, pick_color


def product_shot(garment_rgb=(200, 30, 40)):
    image = Image.new("RGB", (200, 200), (255, 255, 255))
    ImageDraw.Draw(image).rectangle((40, 40, 159, 159), fill=garment_rgb)
    return image


class TestDetectDominantColor:
    """Test detect_dominant_color."""

    def test_garment_on_white_background(self):
        """Test the garment color wins over the white backdrop."""
        result = detect_dominant_color(product_shot())
        assert result is not None
        assert result.hex == "#C81E28"
        assert result.rgb == (200, 30, 40)
        assert result.share == 1.0
        assert result.name is not None

    def test_naming_can_be_skipped(self):
        """Test palette naming is optional."""
        result = detect_dominant_color(product_shot(), name_colors=False)
        assert result.name is None

    def test_background_only(self):
        """Test a blank white photo has no garment color."""
        assert detect_dominant_color(Image.new("RGB", (200, 200), (255, 255, 255))) is None

    def test_large_image_is_downsized(self):
        """Test big photos still resolve to the garment color bin."""
        large = product_shot().resize((800, 800), Image.Resampling.NEAREST)
        result = detect_dominant_color(large)
        assert all(abs(actual - expected) <= 8 for actual, expected in zip(result.rgb, (200, 30, 40)))


class TestPickColor:
    """Test pick_color."""

    def test_center_pick(self):
        """Test a tap away from the edges uses the full radius."""
        image = Image.new("RGB", (100, 100), (10, 120, 200))
        picked = pick_color(image, 50, 50)
        assert picked.hex == "#0A78C8"
        assert picked.radius == 12
        assert picked.center == (50, 50)

    def test_corner_pick_shrinks_radius(self):
        """Test the sampling circle shrinks at the frame edge."""
        image = Image.new("RGB", (100, 100), (10, 120, 200))
        picked = pick_color(image, 0, 0)
        assert picked.radius == 2
        assert picked.sample_count == 6

    def test_display_coordinates_are_mapped(self):
        """Test taps on a resized preview map back to image pixels."""
        image = Image.new("RGB", (100, 100), (10, 120, 200))
        picked = pick_color(image, 25, 25, display_size=(50, 50))
        assert picked.center == (50, 50)

    def test_trimmed_mean_ignores_stray_pixels(self):
        """Test a few outlier pixels inside the circle do not shift the color."""
        image = Image.new("RGB", (100, 100), (10, 120, 200))
        image.putpixel((50, 50), (255, 255, 255))
        image.putpixel((51, 50), (0, 0, 0))
        assert pick_color(image, 50, 50).hex == "#0A78C8"
