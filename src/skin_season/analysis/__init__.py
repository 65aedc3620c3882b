"""
Skin analysis steps: region, sampling, illumination, statistics, attributes and season.
"""
from .pipeline import SkinToneAnalyzer
from .region import locate_region
from .sampler import sample_skin
from .season import SeasonDecider, decide_season, determine_micro_season

__all__ = [
    "SkinToneAnalyzer",
    "locate_region",
    "sample_skin",
    "SeasonDecider",
    "decide_season",
    "determine_micro_season",
]
