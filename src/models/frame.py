"""
FrameData model for captured video frames.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


# Channel layouts understood by the color matcher
COLOR_ORDER_BGR = "bgr"
COLOR_ORDER_RGB = "rgb"
COLOR_ORDER_RGBA = "rgba"
COLOR_ORDERS = (COLOR_ORDER_BGR, COLOR_ORDER_RGB, COLOR_ORDER_RGBA)


@dataclass
class FrameData:
    """
    Metadata and payload for a captured video frame.

    Attributes:
        frame: The raw frame data as a numpy array (H x W x C, uint8).
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when frame was captured.
        frame_index: Sequential frame number since start.
        source: Identifier for the camera/video source.
        color_order: Channel layout of ``frame`` ("bgr" for OpenCV captures).
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None
    color_order: str = COLOR_ORDER_BGR

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
        color_order: str = COLOR_ORDER_BGR,
    ) -> "FrameData":
        """Create FrameData from a numpy array."""
        h, w = frame.shape[:2]
        return cls(
            frame=frame,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
            color_order=color_order,
        )

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Return (height, width, channels)."""
        return self.frame.shape

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)


def to_rgb(frame: np.ndarray, color_order: str = COLOR_ORDER_BGR) -> np.ndarray:
    """Return an H x W x 3 RGB view of ``frame``."""
    if color_order not in COLOR_ORDERS:
        raise ValueError(f"Unknown color order: {color_order}")
    if frame.ndim != 3 or frame.shape[2] < 3:
        raise ValueError(f"Expected H x W x 3/4 frame, got shape {frame.shape}")
    if color_order == COLOR_ORDER_BGR:
        return frame[..., 2::-1]
    return frame[..., :3]


def to_bgr(frame: np.ndarray, color_order: str = COLOR_ORDER_BGR) -> np.ndarray:
    """Return a contiguous H x W x 3 BGR copy of ``frame`` for OpenCV drawing."""
    if color_order == COLOR_ORDER_BGR:
        return np.ascontiguousarray(frame[..., :3]).copy()
    return np.ascontiguousarray(to_rgb(frame, color_order)[..., ::-1])
