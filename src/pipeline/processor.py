"""
Per-frame processing over an explicit pipeline state.

``FrameProcessor.process(state, frame)`` runs detection, tracking and
crossing detection for one frame and returns the next state together with
what the frame produced. Nothing is mutated in place, so a sequence of
frames can be replayed against a known state in tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

import numpy as np

from algorithms.counting import CooldownState, CrossingDetector, compute_line_y
from detection.detector import ColorBlobDetector
from models.blob import BlobCandidate
from models.config import PipelineConfig, TrackingMode
from models.count_event import CrossingEvent
from models.frame import COLOR_ORDER_BGR
from models.track import TrackedObject
from tracking.tracker import ObjectTracker


@dataclass(frozen=True)
class PipelineState:
    """
    Everything that persists from one frame to the next.

    Attributes:
        mode: Active tracking mode.
        tracks: Multi-mode objects, in matching order.
        single_track: Single-mode implicit object (last known position).
        next_object_id: Next id handed to a new multi-mode object.
        count: Running catch count.
        cooldown: Remaining debounce frames.
        frame_index: Number of frames processed.
    """
    mode: TrackingMode = TrackingMode.SINGLE
    tracks: Tuple[TrackedObject, ...] = ()
    single_track: Optional[TrackedObject] = None
    next_object_id: int = 0
    count: int = 0
    cooldown: CooldownState = field(default_factory=CooldownState)
    frame_index: int = 0

    @classmethod
    def initial(cls, config: PipelineConfig) -> "PipelineState":
        return cls(mode=config.mode, next_object_id=config.initial_object_id)

    @property
    def active_tracks(self) -> Tuple[TrackedObject, ...]:
        """Objects of the active mode."""
        if self.mode == TrackingMode.SINGLE:
            return (self.single_track,) if self.single_track is not None else ()
        return self.tracks

    def with_mode(self, mode: TrackingMode, initial_object_id: int = 0) -> "PipelineState":
        """Switch modes: tracking state and id allocation reset, count kept."""
        return replace(
            self,
            mode=mode,
            tracks=(),
            single_track=None,
            next_object_id=initial_object_id,
        )

    def reset(self, initial_object_id: int = 0) -> "PipelineState":
        """Zero the count and drop all tracking state; a running cooldown keeps ticking."""
        return replace(
            self,
            tracks=(),
            single_track=None,
            next_object_id=initial_object_id,
            count=0,
        )


@dataclass(frozen=True)
class FrameResult:
    """What one frame produced, for overlays, sinks and status."""
    frame_index: int
    count: int
    count_changed: bool
    line_y: float
    blobs: List[BlobCandidate]
    tracks: Tuple[TrackedObject, ...]
    events: List[CrossingEvent]
    status: Optional[str] = None

    @property
    def catches(self) -> List[CrossingEvent]:
        return [e for e in self.events if e.is_catch]


class FrameProcessor:
    """Runs detection, tracking and crossing detection for one config snapshot."""

    def __init__(self, config: PipelineConfig):
        self.config = config
        self.detector = ColorBlobDetector.from_pipeline_config(config)
        self.tracker = ObjectTracker(
            max_tracking_distance=config.max_tracking_distance,
            max_missed_frames=config.max_missed_frames,
            matching=config.matching,
        )
        self.crossing = CrossingDetector(
            cooldown_frames=config.cooldown_frames,
            catch_multiplier=config.catch_multiplier,
            scope=config.cooldown_scope,
        )

    def process(
        self,
        state: PipelineState,
        frame: np.ndarray,
        color_order: str = COLOR_ORDER_BGR,
    ) -> Tuple[PipelineState, FrameResult]:
        """
        Process one frame.

        Args:
            state: State after the previous frame.
            frame: H x W x 3/4 pixel buffer.
            color_order: Channel layout of ``frame``.

        Returns:
            (next_state, result)
        """
        frame_index = state.frame_index + 1
        line_y = compute_line_y(self.config.line_height_percent, frame.shape[0])

        if state.mode == TrackingMode.MULTI:
            blobs = self.detector.detect(frame, color_order)
            update = self.tracker.update(state.tracks, blobs, state.next_object_id)
            next_state = replace(state, tracks=update.tracks, next_object_id=update.next_object_id)
            evaluated = update.tracks
        else:
            blob = self.detector.detect_single(frame, color_order)
            blobs = [blob] if blob is not None else []
            single = self.tracker.update_single(state.single_track, blob, self.config.initial_object_id)
            next_state = replace(state, single_track=single)
            # The implicit object is only checked on frames where it is seen
            evaluated = (single,) if blob is not None else ()

        outcome = self.crossing.process(
            evaluated,
            line_y,
            state.count,
            state.cooldown,
            frame_index=frame_index,
        )

        status = None
        for event in outcome.events:
            if event.is_catch:
                status = f"Catch detected! Count: {event.count}"
                logging.info(
                    f"Catch by object {event.track_id}: +{event.count_delta}, total={event.count}"
                )

        next_state = replace(
            next_state,
            count=outcome.count,
            cooldown=outcome.cooldown,
            frame_index=frame_index,
        )
        result = FrameResult(
            frame_index=frame_index,
            count=outcome.count,
            count_changed=outcome.count != state.count,
            line_y=line_y,
            blobs=blobs,
            tracks=next_state.active_tracks,
            events=outcome.events,
            status=status,
        )
        return next_state, result
