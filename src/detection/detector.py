"""
Color blob detector.

Samples the frame on a stride grid, classifies the samples with the
ColorMatcher, and turns the matches into BlobCandidates: clustered and
shape-filtered in multi-object mode, or reduced to one centroid in
single-object mode.
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np

from models.blob import BlobCandidate
from models.config import PipelineConfig
from models.frame import COLOR_ORDER_BGR, to_rgb
from .clustering import BlobClusterer
from .color import ColorMatcher


class ColorBlobDetector:
    """Finds blobs of the target color in a frame."""

    def __init__(
        self,
        matcher: ColorMatcher,
        clusterer: BlobClusterer,
        min_blob_size: int = 10,
        sample_stride: int = 2,
    ):
        self.matcher = matcher
        self.clusterer = clusterer
        self.min_blob_size = min_blob_size
        self.sample_stride = max(1, int(sample_stride))

    @classmethod
    def from_pipeline_config(cls, config: PipelineConfig) -> "ColorBlobDetector":
        matcher = ColorMatcher(
            config.target_color,
            tolerance_percent=config.color_tolerance_percent,
            hue_weight=config.hue_weight,
        )
        clusterer = BlobClusterer(
            cluster_radius=config.cluster_radius,
            min_size=config.min_blob_size,
            circularity_threshold=config.circularity_threshold,
            step=config.sample_stride,
            method=config.circularity_method,
        )
        return cls(matcher, clusterer, min_blob_size=config.min_blob_size, sample_stride=config.sample_stride)

    def find_matching_pixels(self, frame: np.ndarray, color_order: str = COLOR_ORDER_BGR) -> np.ndarray:
        """
        Return an (N, 2) int array of (x, y) frame coordinates whose sampled
        color matches the target. Rows come out in scan order.
        """
        stride = self.sample_stride
        sampled = to_rgb(frame, color_order)[::stride, ::stride]
        mask = self.matcher.match_mask(sampled)
        ys, xs = np.nonzero(mask)
        return np.stack([xs * stride, ys * stride], axis=1).astype(np.int64)

    def detect(self, frame: np.ndarray, color_order: str = COLOR_ORDER_BGR) -> List[BlobCandidate]:
        """Multi-object detection: clustered, size and circularity filtered."""
        pixels = self.find_matching_pixels(frame, color_order)
        if len(pixels) == 0:
            return []
        return self.clusterer.cluster(pixels)

    def detect_single(self, frame: np.ndarray, color_order: str = COLOR_ORDER_BGR) -> Optional[BlobCandidate]:
        """
        Single-object detection: centroid of every matching sample, or None
        when fewer than ``min_blob_size`` samples match.
        """
        pixels = self.find_matching_pixels(frame, color_order)
        if len(pixels) < self.min_blob_size or len(pixels) == 0:
            return None
        cx, cy = pixels.mean(axis=0)
        return BlobCandidate(x=float(cx), y=float(cy), size=int(len(pixels)))
