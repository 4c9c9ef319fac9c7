"""
HSV color matching.

The scalar functions define the metric; ``ColorMatcher.match_mask`` applies
the same arithmetic to a whole sampled frame with numpy so the two agree
pixel for pixel.
"""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from models.color import Color, HsvColor


def rgb_to_hsv(r: int, g: int, b: int) -> HsvColor:
    """Convert 0-255 RGB channels to HSV (h in degrees, s/v in [0, 1])."""
    r, g, b = r / 255.0, g / 255.0, b / 255.0
    mx = max(r, g, b)
    mn = min(r, g, b)
    diff = mx - mn

    h = 0.0
    s = 0.0 if mx == 0 else diff / mx
    v = mx

    if mx != mn:
        if mx == r:
            h = (g - b) / diff + (6.0 if g < b else 0.0)
        elif mx == g:
            h = (b - r) / diff + 2.0
        else:
            h = (r - g) / diff + 4.0
        h /= 6.0

    return HsvColor(h * 360.0, s, v)


def hsv_distance(hsv1: HsvColor, hsv2: HsvColor, hue_weight: float) -> float:
    """Weighted distance with circular hue normalised to [0, 1]."""
    dh = abs(hsv1.h - hsv2.h)
    hue = min(dh, 360.0 - dh) / 180.0
    sat = abs(hsv1.s - hsv2.s)
    val = abs(hsv1.v - hsv2.v)
    return math.sqrt(hue * hue * hue_weight + sat * sat + val * val)


def color_matches(
    sample: Color,
    target: Color,
    tolerance_percent: float,
    hue_weight: float,
) -> bool:
    """True if ``sample`` is within ``tolerance_percent`` of ``target``."""
    distance = hsv_distance(rgb_to_hsv(*sample), rgb_to_hsv(*target), hue_weight)
    return distance <= tolerance_percent / 100.0


def rgb_array_to_hsv(rgb: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Vectorised ``rgb_to_hsv`` over an (..., 3) uint8 array."""
    rgb = rgb.astype(np.float64) / 255.0
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    mx = np.maximum(np.maximum(r, g), b)
    mn = np.minimum(np.minimum(r, g), b)
    diff = mx - mn

    safe_mx = np.where(mx == 0, 1.0, mx)
    s = np.where(mx == 0, 0.0, diff / safe_mx)
    v = mx

    safe_diff = np.where(diff == 0, 1.0, diff)
    h_r = (g - b) / safe_diff + np.where(g < b, 6.0, 0.0)
    h_g = (b - r) / safe_diff + 2.0
    h_b = (r - g) / safe_diff + 4.0
    # Same precedence as the scalar branch: red, then green, then blue
    h = np.where(mx == r, h_r, np.where(mx == g, h_g, h_b))
    h = np.where(diff == 0, 0.0, h / 6.0)

    return h * 360.0, s, v


class ColorMatcher:
    """
    Classifies pixels against a target color.

    The target's HSV is computed once per matcher; build a new matcher when
    the target, tolerance or hue weight changes.
    """

    def __init__(self, target: Color, tolerance_percent: float = 30.0, hue_weight: float = 4.0):
        self.target = target
        self.tolerance_percent = tolerance_percent
        self.hue_weight = hue_weight
        self._target_hsv = rgb_to_hsv(*target)

    def matches(self, sample: Color) -> bool:
        distance = hsv_distance(rgb_to_hsv(*sample), self._target_hsv, self.hue_weight)
        return distance <= self.tolerance_percent / 100.0

    def match_mask(self, rgb: np.ndarray) -> np.ndarray:
        """
        Boolean mask of matching pixels for an (H, W, 3) RGB array.
        """
        h, s, v = rgb_array_to_hsv(rgb)
        th, ts, tv = self._target_hsv

        dh = np.abs(h - th)
        hue = np.minimum(dh, 360.0 - dh) / 180.0
        sat = np.abs(s - ts)
        val = np.abs(v - tv)
        distance = np.sqrt(hue * hue * self.hue_weight + sat * sat + val * val)
        return distance <= self.tolerance_percent / 100.0
