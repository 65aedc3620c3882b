"""
Pytest configuration and fixtures for testing.
"""
import io

import pytest
from PIL import Image

from skin_season.analysis.pipeline import SkinToneAnalyzer
from skin_season.config import AppConfig
from skin_season.schemas import AnalyzeRequest, ImageSource, PixelBox

# Uniform skin swatches with hand-checked Lab values.
WARM_LIGHT_SKIN = (185, 140, 119)  # Lab ~ (62, 14, 18): warm, light
COOL_DEEP_SKIN = (102, 86, 83)  # Lab ~ (38, 6, 4): cool, deep
NEUTRAL_SKIN = (128, 120, 110)  # Lab ~ (51, 1.2, 6.6): neutral, low chroma
NON_SKIN_BLUE = (40, 80, 200)

IMAGE_SIZE = (300, 300)
FULL_CROP = PixelBox(x=0, y=0, width=300, height=300)

_ENV_KEYS = (
    "FETCH_TIMEOUT_SECONDS",
    "FETCH_MAX_ATTEMPTS",
    "FETCH_USER_AGENT",
    "FETCH_MAX_BYTES",
    "DELTA_E_METHOD",
    "INCLUDE_CROSSOVER_PALETTE",
    "LOG_LEVEL",
    "SKIN_SEASON_CALIBRATION_FILE",
)


def make_image(rgb, size=IMAGE_SIZE) -> Image.Image:
    return Image.new("RGB", size, rgb)


def make_png(rgb, size=IMAGE_SIZE) -> bytes:
    buffer = io.BytesIO()
    make_image(rgb, size).save(buffer, format="PNG")
    return buffer.getvalue()


def full_crop_request(png: bytes) -> AnalyzeRequest:
    return AnalyzeRequest(image=ImageSource(image_bytes=png), crop_box=FULL_CROP)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate configuration tests from the developer's environment and .env file."""
    # setenv first so teardown also removes anything load_dotenv wrote.
    for key in _ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def analyzer():
    """Analyzer with default calibration and no network access."""
    return SkinToneAnalyzer(AppConfig())


@pytest.fixture
def warm_light_png():
    return make_png(WARM_LIGHT_SKIN)


@pytest.fixture
def cool_deep_png():
    return make_png(COOL_DEEP_SKIN)


@pytest.fixture
def neutral_png():
    return make_png(NEUTRAL_SKIN)


@pytest.fixture
def blue_png():
    return make_png(NON_SKIN_BLUE)
