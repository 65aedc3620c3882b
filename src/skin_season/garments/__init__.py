"""
Garment color scoring, palettes and color extraction.
"""
from .dominant_color import detect_dominant_color, pick_color
from .palettes import SEASON_PALETTES, SEASON_PROFILES, palette_for
from .scoring import classify_garment_color, score_garment_color

__all__ = [
    "detect_dominant_color",
    "pick_color",
    "SEASON_PALETTES",
    "SEASON_PROFILES",
    "palette_for",
    "classify_garment_color",
    "score_garment_color",
]
