"""
Per-frame detection models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple


class PixelCoord(NamedTuple):
    """Integer frame coordinate of a color-matching sample."""
    x: int
    y: int


@dataclass(frozen=True)
class BlobCandidate:
    """
    A cluster of matching pixels that survived the size and shape filters.

    Attributes:
        x: Centroid x (mean of member x coordinates).
        y: Centroid y (mean of member y coordinates).
        size: Number of member pixels.
        circularity: 4*pi*area/perimeter^2 estimate, 0.0 when not measured
                     (single-object mode reduces all matches to one centroid).
    """
    x: float
    y: float
    size: int
    circularity: float = 0.0

    @property
    def center(self):
        return (self.x, self.y)

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "size": self.size,
            "circularity": self.circularity,
        }
