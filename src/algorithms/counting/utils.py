"""
Counting utilities.

Shared helpers for the reference line.
"""

from __future__ import annotations

from typing import List, Tuple


def compute_line_y(line_height_percent: float, frame_height: int) -> float:
    """
    Convert a line height percentage into a pixel row.

    Args:
        line_height_percent: 0 (top) to 100 (bottom).
        frame_height: Height of the frame in pixels.
    """
    return (float(line_height_percent) / 100.0) * frame_height


def line_endpoints(line_y: float, frame_width: int) -> List[Tuple[int, int]]:
    """Horizontal line across the frame as two (x, y) pixel endpoints."""
    y = int(round(line_y))
    return [(0, y), (frame_width, y)]
