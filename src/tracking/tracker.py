"""
Object tracking module for following blobs across video frames.

This module implements nearest-centroid association. Each frame's blobs are
matched to the objects from the previous frame; matched objects move onto
their blob (remembering the previous y for crossing detection), unmatched
blobs become new objects, and unmatched objects are dropped once they exceed
the grace window (immediately, by default).

Note: Counting is NOT done here. Use `algorithms.counting.CrossingDetector`.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy.optimize import linear_sum_assignment

from models.blob import BlobCandidate
from models.config import MATCHING_GREEDY, MATCHING_HUNGARIAN, MATCHING_METHODS
from models.track import TrackedObject


@dataclass(frozen=True)
class TrackUpdate:
    """Result of associating one frame of blobs with the existing objects."""
    tracks: Tuple[TrackedObject, ...]
    next_object_id: int
    removed_ids: Tuple[int, ...] = ()
    spawned_ids: Tuple[int, ...] = ()


def _distance(track: TrackedObject, blob: BlobCandidate) -> float:
    return math.hypot(track.x - blob.x, track.y - blob.y)


class ObjectTracker:
    """
    Associates detected blobs with tracked objects.

    The tracker holds only its parameters; the object set and id counter are
    passed in and returned so callers can thread them through an explicit
    pipeline state.
    """

    def __init__(
        self,
        max_tracking_distance: float = 50.0,
        max_missed_frames: int = 0,
        matching: str = MATCHING_GREEDY,
    ):
        """
        Initialize the object tracker.

        Args:
            max_tracking_distance: Blobs at or beyond this centroid distance
                                   never match an existing object.
            max_missed_frames: Consecutive unmatched frames an object survives
                               (0 removes it on the first miss).
            matching: "greedy" (per object, in order) or "hungarian"
                      (global minimum total distance).
        """
        if matching not in MATCHING_METHODS:
            raise ValueError(f"Unknown matching method: {matching}")
        self.max_tracking_distance = max_tracking_distance
        self.max_missed_frames = max_missed_frames
        self.matching = matching

    def update(
        self,
        tracks: Sequence[TrackedObject],
        blobs: Sequence[BlobCandidate],
        next_object_id: int,
    ) -> TrackUpdate:
        """
        Match this frame's blobs to the existing objects.

        Args:
            tracks: Objects from the previous frame, in processing order.
            blobs: Blobs detected this frame.
            next_object_id: Id to give the next new object.

        Returns:
            TrackUpdate with surviving objects first (input order), then new ones.
        """
        if self.matching == MATCHING_HUNGARIAN:
            assignment = self._match_hungarian(tracks, blobs)
        else:
            assignment = self._match_greedy(tracks, blobs)

        updated: List[TrackedObject] = []
        removed: List[int] = []
        for idx, track in enumerate(tracks):
            blob_idx = assignment.get(idx)
            if blob_idx is not None:
                updated.append(track.matched(blobs[blob_idx]))
                continue
            held = track.missed()
            if held.missed_frames > self.max_missed_frames:
                removed.append(track.object_id)
            else:
                updated.append(held)

        claimed = set(assignment.values())
        spawned: List[int] = []
        for blob_idx, blob in enumerate(blobs):
            if blob_idx in claimed:
                continue
            updated.append(TrackedObject.spawn(next_object_id, blob))
            spawned.append(next_object_id)
            next_object_id += 1

        if removed:
            logging.debug(f"[TRACK] removed ids={removed}")

        return TrackUpdate(
            tracks=tuple(updated),
            next_object_id=next_object_id,
            removed_ids=tuple(removed),
            spawned_ids=tuple(spawned),
        )

    def update_single(
        self,
        track: Optional[TrackedObject],
        blob: Optional[BlobCandidate],
        object_id: int = 0,
    ) -> Optional[TrackedObject]:
        """
        Advance the implicit single-object track.

        The last known position is kept across frames without a detection,
        so a reappearing object is compared against where it was last seen.
        """
        if blob is None:
            return track
        if track is None:
            return TrackedObject.spawn(object_id, blob)
        return track.matched(blob)

    def _match_greedy(
        self,
        tracks: Sequence[TrackedObject],
        blobs: Sequence[BlobCandidate],
    ) -> Dict[int, int]:
        """Each object, in order, claims its nearest unclaimed blob within range."""
        assignment: Dict[int, int] = {}
        claimed = set()

        for track_idx, track in enumerate(tracks):
            best_idx = None
            best_distance = math.inf

            for blob_idx, blob in enumerate(blobs):
                if blob_idx in claimed:
                    continue
                distance = _distance(track, blob)
                if distance < self.max_tracking_distance and distance < best_distance:
                    best_idx = blob_idx
                    best_distance = distance

            if best_idx is not None:
                assignment[track_idx] = best_idx
                claimed.add(best_idx)

        return assignment

    def _match_hungarian(
        self,
        tracks: Sequence[TrackedObject],
        blobs: Sequence[BlobCandidate],
    ) -> Dict[int, int]:
        """Minimum total distance assignment; out-of-range pairs are discarded."""
        if not tracks or not blobs:
            return {}

        cost = np.array([[_distance(t, b) for b in blobs] for t in tracks], dtype=np.float64)
        gated = cost >= self.max_tracking_distance
        # Large finite cost keeps the solver feasible when whole rows are gated
        big = float(cost.max()) * (len(tracks) + len(blobs)) + self.max_tracking_distance + 1.0
        rows, cols = linear_sum_assignment(np.where(gated, big, cost))

        return {
            int(r): int(c)
            for r, c in zip(rows, cols)
            if not gated[r, c]
        }
