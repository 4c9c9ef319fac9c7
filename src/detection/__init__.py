"""
Juggle Counter - Detection Module

Color classification, pixel clustering and blob detection in video frames.
"""

from .color import ColorMatcher, color_matches, rgb_to_hsv, hsv_distance
from .clustering import BlobClusterer, cluster_pixels, estimate_circularity, find_components
from .detector import ColorBlobDetector

__all__ = [
    'ColorMatcher',
    'color_matches',
    'rgb_to_hsv',
    'hsv_distance',
    'BlobClusterer',
    'cluster_pixels',
    'estimate_circularity',
    'find_components',
    'ColorBlobDetector',
]
