"""
Unit tests for illumination correction and robust statistics.

Tests cover:
- Shades-of-gray gain estimation, clamping and the low-signal fallback
- Applying gains with rounding and clipping
- The whole-image warm-cast signal
- Median, MAD, nearest-rank percentile and the trimmed display mean
"""
import pytest

from skin_season.analysis.illumination import apply_gains, detect_lighting_bias, estimate_gains
from skin_season.analysis.robust_stats import (
    compute_robust_stats,
    mad,
    median,
    percentile,
    trimmed_mean_rgb,
)
from skin_season.types import IlluminationGains, PixelSample

from .conftest import COOL_DEEP_SKIN, WARM_LIGHT_SKIN, make_image


def _samples(rgb, count=50):
    return [PixelSample(*rgb) for _ in range(count)]


class TestEstimateGains:
    """Test shades-of-gray gains."""

    def test_gains_pull_channels_to_gray(self):
        """Test a uniform sample set is mapped onto its gray mean."""
        gains = estimate_gains(_samples(WARM_LIGHT_SKIN))
        assert gains.r == pytest.approx(148 / 185)
        assert gains.g == pytest.approx(148 / 140)
        assert gains.b == pytest.approx(148 / 119)
        assert gains.clamped is False
        assert gains.estimated is True

    def test_extreme_cast_is_clamped(self):
        """Test gains outside the allowed range are clamped and flagged."""
        gains = estimate_gains(_samples((200, 100, 60)))
        assert gains.r == pytest.approx(0.70)
        assert gains.g == pytest.approx(1.20)
        assert gains.b == pytest.approx(1.45)
        assert gains.clamped is True

    def test_dark_channel_skips_estimate(self):
        """Test a channel below the minimum mean leaves gains at 1.0."""
        gains = estimate_gains(_samples((100, 50, 5)))
        assert (gains.r, gains.g, gains.b) == (1.0, 1.0, 1.0)
        assert gains.estimated is False

    def test_empty_samples(self):
        """Test no samples means no correction."""
        assert estimate_gains([]).estimated is False


class TestApplyGains:
    """Test sample correction."""

    def test_corrected_samples_become_gray(self):
        """Test the uniform swatch corrects to a neutral gray."""
        samples = _samples(WARM_LIGHT_SKIN, 3)
        corrected = apply_gains(samples, estimate_gains(samples))
        assert all(sample.as_tuple() == (148, 148, 148) for sample in corrected)

    def test_values_are_clipped(self):
        """Test scaled channels never leave 0..255."""
        gains = IlluminationGains(1.45, 1.0, 1.0, clamped=False)
        (corrected,) = apply_gains([PixelSample(250, 10, 10)], gains)
        assert corrected.as_tuple() == (255, 10, 10)


class TestLightingBias:
    """Test the warm-cast signal."""

    def test_warm_image(self):
        """Test a warm swatch reports a warm cast with its severity."""
        bias = detect_lighting_bias(make_image(WARM_LIGHT_SKIN))
        assert bias.warm_index == pytest.approx(43.5 / 255, abs=1e-3)
        assert bias.is_warm is True
        assert bias.severity == pytest.approx((43.5 / 255 - 0.08) / 0.18, abs=1e-2)

    def test_gray_image(self):
        """Test a neutral image has no cast."""
        bias = detect_lighting_bias(make_image((128, 128, 128)))
        assert bias.warm_index == pytest.approx(0.0, abs=1e-9)
        assert bias.is_warm is False
        assert bias.severity == 0.0


class TestRobustStats:
    """Test robust summaries."""

    def test_median_and_mad(self):
        """Test MAD ignores a single outlier."""
        values = [1, 2, 3, 4, 100]
        assert median(values) == 3.0
        assert mad(values) == 1.0

    def test_nearest_rank_percentile(self):
        """Test the percentile picks sorted[floor(p * (n - 1))]."""
        values = list(range(10, 0, -1))
        assert percentile(values, 0.70) == 7.0
        assert percentile(values, 0.0) == 1.0
        assert percentile(values, 1.0) == 10.0

    def test_empty_inputs(self):
        """Test empty inputs summarise to zero."""
        assert median([]) == 0.0
        assert mad([]) == 0.0
        assert percentile([], 0.5) == 0.0

    def test_uniform_samples(self):
        """Test a uniform set has zero spread and is not noisy."""
        stats = compute_robust_stats(_samples(WARM_LIGHT_SKIN))
        assert stats.median_lab.L == pytest.approx(62.0, abs=0.5)
        assert stats.mad_lab.L == pytest.approx(0.0, abs=1e-9)
        assert stats.sample_count == 50
        assert stats.noisy is False

    def test_split_samples_are_noisy(self):
        """Test two lightness clusters push MAD(L) over the noise limit."""
        stats = compute_robust_stats(_samples(WARM_LIGHT_SKIN) + _samples(COOL_DEEP_SKIN))
        assert stats.mad_lab.L > 10.0
        assert stats.noisy is True

    def test_trimmed_mean_drops_extremes(self):
        """Test the darkest and brightest shares are excluded."""
        samples = _samples((100, 100, 100), 10) + [PixelSample(0, 0, 0), PixelSample(255, 255, 255)]
        assert trimmed_mean_rgb(samples) == pytest.approx((100.0, 100.0, 100.0))
