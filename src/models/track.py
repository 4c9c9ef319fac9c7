"""
Track models for object tracking state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple

from .blob import BlobCandidate


@dataclass(frozen=True)
class TrackedObject:
    """
    A tracked object across video frames.

    Attributes:
        object_id: Unique identifier, allocated monotonically by the tracker.
        x: Current centroid x.
        y: Current centroid y.
        size: Pixel count of the most recent matching blob.
        last_y: Centroid y on the previous frame (equal to y on the first frame,
                so a new object never crosses on its first observation).
        matched_this_frame: Whether a blob was assigned this frame.
        missed_frames: Consecutive frames without a match.
        age: Number of frames this object has existed.
    """
    object_id: int
    x: float
    y: float
    size: int
    last_y: float
    matched_this_frame: bool = True
    missed_frames: int = 0
    age: int = 1

    @classmethod
    def spawn(cls, object_id: int, blob: BlobCandidate) -> "TrackedObject":
        """Create a new object from an unclaimed blob."""
        return cls(
            object_id=object_id,
            x=blob.x,
            y=blob.y,
            size=blob.size,
            last_y=blob.y,
        )

    def matched(self, blob: BlobCandidate) -> "TrackedObject":
        """Return the object moved onto ``blob``."""
        return replace(
            self,
            last_y=self.y,
            x=blob.x,
            y=blob.y,
            size=blob.size,
            matched_this_frame=True,
            missed_frames=0,
            age=self.age + 1,
        )

    def missed(self) -> "TrackedObject":
        """Return the object held in place for a frame without a match."""
        return replace(
            self,
            last_y=self.y,
            matched_this_frame=False,
            missed_frames=self.missed_frames + 1,
            age=self.age + 1,
        )

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def to_dict(self) -> dict:
        return {
            "id": self.object_id,
            "x": self.x,
            "y": self.y,
            "size": self.size,
            "last_y": self.last_y,
            "matched_this_frame": self.matched_this_frame,
        }
