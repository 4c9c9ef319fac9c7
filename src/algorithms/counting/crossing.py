"""
Line-crossing detection with cooldown debounce.

A downward crossing of the reference line is a catch and adds the catch
multiplier to the count; an upward crossing is a throw and only starts the
cooldown. While the cooldown is running no crossing is evaluated.

Cooldown scope:
- "shared": one counter for every object, so a crossing by one object
  suppresses crossings by all objects for the window.
- "per_track": one counter per object id.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from models.config import COOLDOWN_PER_TRACK, COOLDOWN_SCOPES, COOLDOWN_SHARED
from models.count_event import CROSSING_CATCH, CROSSING_THROW, CrossingEvent
from models.track import TrackedObject


@dataclass(frozen=True)
class CrossingResult:
    """Outcome of evaluating one object against the line."""
    kind: Optional[str]
    count_delta: int
    cooldown: int


@dataclass(frozen=True)
class CooldownState:
    """Remaining cooldown frames, shared or keyed by object id."""
    shared: int = 0
    per_track: Dict[int, int] = field(default_factory=dict)

    def remaining(self, object_id: int, scope: str) -> int:
        if scope == COOLDOWN_PER_TRACK:
            return self.per_track.get(object_id, 0)
        return self.shared

    @property
    def active(self) -> bool:
        return self.shared > 0 or any(v > 0 for v in self.per_track.values())


@dataclass(frozen=True)
class CrossingOutcome:
    """Count and cooldown after evaluating a frame's objects."""
    count: int
    cooldown: CooldownState
    events: List[CrossingEvent]


class CrossingDetector:
    """
    Evaluates tracked objects' vertical motion against a horizontal line.

    This detector does NOT modify track objects.
    """

    def __init__(
        self,
        cooldown_frames: int = 15,
        catch_multiplier: int = 1,
        scope: str = COOLDOWN_SHARED,
    ):
        if scope not in COOLDOWN_SCOPES:
            raise ValueError(f"Unknown cooldown scope: {scope}")
        self.cooldown_frames = cooldown_frames
        self.catch_multiplier = catch_multiplier
        self.scope = scope

    def evaluate(
        self,
        track: TrackedObject,
        line_y: float,
        cooldown: int,
        catch_multiplier: Optional[int] = None,
    ) -> CrossingResult:
        """
        Classify the object's move from ``last_y`` to ``y``.

        Returns the count delta and the cooldown that should follow.
        """
        multiplier = self.catch_multiplier if catch_multiplier is None else catch_multiplier
        last_y = track.last_y
        current_y = track.y

        if cooldown == 0:
            if last_y < line_y <= current_y:
                return CrossingResult(CROSSING_CATCH, multiplier, self.cooldown_frames)
            if last_y > line_y >= current_y:
                return CrossingResult(CROSSING_THROW, 0, self.cooldown_frames)
        return CrossingResult(None, 0, cooldown)

    def process(
        self,
        tracks: Sequence[TrackedObject],
        line_y: float,
        count: int,
        cooldown: CooldownState,
        frame_index: int = 0,
    ) -> CrossingOutcome:
        """
        Evaluate every object once, in order, then tick the cooldown.

        Args:
            tracks: Objects to evaluate this frame.
            line_y: Reference line in pixels.
            count: Count before this frame.
            cooldown: Cooldown before this frame.
            frame_index: Frame index recorded on events.
        """
        shared = cooldown.shared
        per_track = dict(cooldown.per_track)
        events: List[CrossingEvent] = []

        for track in tracks:
            if self.scope == COOLDOWN_PER_TRACK:
                remaining = per_track.get(track.object_id, 0)
            else:
                remaining = shared

            result = self.evaluate(track, line_y, remaining)
            if result.kind is None:
                continue

            count += result.count_delta
            if self.scope == COOLDOWN_PER_TRACK:
                per_track[track.object_id] = result.cooldown
            else:
                shared = result.cooldown

            events.append(CrossingEvent(
                track_id=track.object_id,
                kind=result.kind,
                count_delta=result.count_delta,
                count=count,
                frame_index=frame_index,
                y=track.y,
                last_y=track.last_y,
                line_y=line_y,
                timestamp=time.time(),
            ))

        return CrossingOutcome(
            count=count,
            cooldown=self.tick(CooldownState(shared=shared, per_track=per_track)),
            events=events,
        )

    @staticmethod
    def tick(cooldown: CooldownState) -> CooldownState:
        """Decrement once per processed frame; expired per-object entries are dropped."""
        return CooldownState(
            shared=max(0, cooldown.shared - 1),
            per_track={k: v - 1 for k, v in cooldown.per_track.items() if v > 1},
        )
