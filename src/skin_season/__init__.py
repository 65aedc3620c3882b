"""
Skin-tone season classification and garment color compatibility.
"""
from .analysis.pipeline import SkinToneAnalyzer
from .config import load_config
from .garments.scoring import classify_garment_color, score_garment_color

__all__ = ["load_config", "SkinToneAnalyzer", "score_garment_color", "classify_garment_color"]
