"""
CrossingEvent model for line-crossing events.
"""

from __future__ import annotations

from dataclasses import dataclass


CROSSING_CATCH = "catch"
CROSSING_THROW = "throw"


@dataclass(frozen=True)
class CrossingEvent:
    """
    An event emitted when a tracked object crosses the reference line.

    Attributes:
        track_id: ID of the object that crossed.
        kind: "catch" (downward) or "throw" (upward).
        count_delta: Amount added to the count (0 for throws).
        count: Count after the event was applied.
        frame_index: Frame on which the crossing was detected.
        y: Object centroid y on this frame.
        last_y: Object centroid y on the previous frame.
        line_y: Reference line position in pixels.
        timestamp: Unix timestamp of the event.
    """
    track_id: int
    kind: str
    count_delta: int
    count: int
    frame_index: int
    y: float
    last_y: float
    line_y: float
    timestamp: float

    @property
    def is_catch(self) -> bool:
        return self.kind == CROSSING_CATCH

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "track_id": self.track_id,
            "kind": self.kind,
            "count_delta": self.count_delta,
            "count": self.count,
            "frame_index": self.frame_index,
            "y": self.y,
            "last_y": self.last_y,
            "line_y": self.line_y,
            "timestamp": self.timestamp,
        }
