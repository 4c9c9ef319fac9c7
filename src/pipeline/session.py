"""
Operator-facing session around the frame processor.

The session owns the current PipelineConfig snapshot and PipelineState, the
counter sink and the status message. Setters and frame processing share one
lock: a frame runs to completion before any setter is applied, so a change
always takes effect from the next frame on.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional, Union

from models.color import Color
from models.config import (
    CIRCULARITY_METHODS,
    COOLDOWN_SCOPES,
    MATCHING_METHODS,
    PipelineConfig,
    TrackingMode,
)
from models.frame import FrameData, to_rgb
from storage.count_sink import CountFileSink
from .processor import FrameProcessor, FrameResult, PipelineState


# name -> (minimum, maximum, type); values outside are clamped
NUMERIC_SETTINGS: Dict[str, tuple] = {
    "color_tolerance_percent": (0.0, 100.0, float),
    "circularity_threshold": (0.0, 1.0, float),
    "line_height_percent": (0.0, 100.0, float),
    "hue_weight": (0.0, 10.0, float),
    "catch_multiplier": (1, 10, int),
    "min_blob_size": (1, 1000, int),
    "cluster_radius": (1.0, 500.0, float),
    "max_tracking_distance": (1.0, 2000.0, float),
    "cooldown_frames": (0, 600, int),
    "sample_stride": (1, 16, int),
    "max_missed_frames": (0, 300, int),
}

CHOICE_SETTINGS: Dict[str, tuple] = {
    "cooldown_scope": COOLDOWN_SCOPES,
    "matching": MATCHING_METHODS,
    "circularity_method": CIRCULARITY_METHODS,
}


def coerce_setting(name: str, value: Any) -> Any:
    """
    Validate one operator setting.

    Numeric values (or numeric strings, as sliders send them) are clamped to
    their range. Raises ValueError for unknown names, wrong types and
    unknown choices.
    """
    if name in NUMERIC_SETTINGS:
        lo, hi, kind = NUMERIC_SETTINGS[name]
        if isinstance(value, bool):
            raise ValueError(f"{name} must be a number")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"{name} must be a number, got {value!r}")
        if number != number:
            raise ValueError(f"{name} must be a number, got NaN")
        clamped = min(max(number, lo), hi)
        if clamped != number:
            logging.warning(f"Setting {name}={value} clamped to {clamped}")
        return kind(clamped) if kind is float else int(round(clamped))

    if name in CHOICE_SETTINGS:
        if value not in CHOICE_SETTINGS[name]:
            raise ValueError(f"{name} must be one of: {', '.join(CHOICE_SETTINGS[name])}")
        return value

    raise ValueError(f"Unknown setting: {name}")


class JuggleSession:
    """
    Holds config and state for one counting session.

    Example:
        session = JuggleSession(PipelineConfig(), sink=CountFileSink("juggle_count.txt"))
        session.set_mode("multi")
        result = session.process_frame(frame_data)
    """

    def __init__(self, config: PipelineConfig, sink: Optional[CountFileSink] = None):
        self._lock = threading.Lock()
        self._config = config
        self._processor = FrameProcessor(config)
        self._state = PipelineState.initial(config)
        self._sink = sink
        self._status = "Ready to start camera"
        self._last_frame: Optional[FrameData] = None
        self._last_result: Optional[FrameResult] = None

        if self._sink is not None and not self._sink.initialize():
            self._status = "Failed to initialize counter file"

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def count(self) -> int:
        return self._state.count

    @property
    def mode(self) -> TrackingMode:
        return self._state.mode

    @property
    def status(self) -> str:
        return self._status

    @property
    def last_result(self) -> Optional[FrameResult]:
        return self._last_result

    @property
    def sink(self) -> Optional[CountFileSink]:
        return self._sink

    @property
    def last_frame(self) -> Optional[FrameData]:
        return self._last_frame

    def process_frame(self, frame_data: FrameData) -> FrameResult:
        """Run one frame through the pipeline and publish the new count."""
        with self._lock:
            self._state, result = self._processor.process(
                self._state, frame_data.frame, frame_data.color_order
            )
            self._last_frame = frame_data
            self._last_result = result
            if result.status:
                self._status = result.status
            if result.count_changed:
                self._publish_count()
            return result

    def update_settings(self, **changes: Any) -> Dict[str, Any]:
        """
        Apply validated setting changes for the next frame.

        All changes are validated first; if any is rejected none is applied,
        the status message reports it, and ValueError is raised.

        Returns:
            The values actually applied (after clamping).
        """
        try:
            applied = {name: coerce_setting(name, value) for name, value in changes.items()}
        except ValueError as e:
            logging.warning(f"Rejected settings {changes}: {e}")
            self._status = f"Invalid setting: {e}"
            raise

        with self._lock:
            self._swap_config(self._config.with_changes(**applied))
        logging.info(f"Settings updated: {applied}")
        return applied

    def set_target_color(self, value: str) -> bool:
        """
        Calibrate from ``rgb(r, g, b)`` or ``#rrggbb`` text.

        Malformed input is ignored and the previous target kept.
        """
        color = Color.parse(value)
        if color is None:
            logging.warning(f"Ignoring malformed color: {value!r}")
            self._status = f"Invalid color: {value}"
            return False
        with self._lock:
            self._swap_config(self._config.with_changes(target_color=color))
        self._status = f"Target color set to {color.to_hex()}"
        logging.info(f"Target color calibrated: {color.to_rgb_string()}")
        return True

    def calibrate_from_frame(self, x: int, y: int) -> Optional[Color]:
        """Take the target color from a pixel of the last processed frame."""
        with self._lock:
            frame_data = self._last_frame
        if frame_data is None:
            self._status = "Start camera first to calibrate color"
            return None
        if not (0 <= x < frame_data.width and 0 <= y < frame_data.height):
            self._status = f"Calibration point ({x}, {y}) is outside the frame"
            return None

        r, g, b = (int(c) for c in to_rgb(frame_data.frame, frame_data.color_order)[y, x])
        color = Color(r, g, b)
        self.set_target_color(color.to_rgb_string())
        self._status = "Color calibrated from video"
        return color

    def set_mode(self, mode: Union[str, TrackingMode]) -> TrackingMode:
        """Switch tracking mode; tracks and ids reset, the count is kept."""
        try:
            new_mode = TrackingMode(mode)
        except ValueError:
            self._status = f"Unknown mode: {mode}"
            raise ValueError("mode must be one of: single, multi")

        with self._lock:
            self._swap_config(self._config.with_changes(mode=new_mode))
            self._state = self._state.with_mode(new_mode, self._config.initial_object_id)
        label = "Multi" if new_mode == TrackingMode.MULTI else "Single"
        self._status = f"{label}-ball tracking enabled"
        logging.info(self._status)
        return new_mode

    def reset_count(self) -> None:
        """Zero the count and clear tracking."""
        with self._lock:
            self._state = self._state.reset(self._config.initial_object_id)
            self._publish_count()
        self._status = "Count reset to 0"
        logging.info("Count reset")

    def report_status(self, message: str) -> None:
        """Surface a collaborator's message (e.g. camera errors) to the operator."""
        self._status = message

    def snapshot(self) -> Dict[str, Any]:
        """Current count, tracks and status for display collaborators."""
        with self._lock:
            state = self._state
            result = self._last_result
            config = self._config
        return {
            "count": state.count,
            "mode": state.mode.value,
            "status": self._status,
            "frame_index": state.frame_index,
            "cooldown": state.cooldown.shared,
            "line_y": result.line_y if result is not None else None,
            "tracks": [t.to_dict() for t in state.active_tracks],
            "blobs": [b.to_dict() for b in result.blobs] if result is not None else [],
            "target_color": config.target_color.to_hex(),
        }

    def _swap_config(self, config: PipelineConfig) -> None:
        """Install a new snapshot; caller holds the lock."""
        self._config = config
        self._processor = FrameProcessor(config)

    def _publish_count(self) -> None:
        """Write the count to the sink; caller holds the lock."""
        if self._sink is None:
            return
        if not self._sink.write(self._state.count):
            self._status = "Failed to write count to file"
