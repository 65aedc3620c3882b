"""
Network clients used at the edge of the analyzer.
"""
from .image_fetch import ImageFetcher

__all__ = ["ImageFetcher"]
