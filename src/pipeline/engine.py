"""
Pipeline engine for the juggle counter.

This module provides the main processing loop: frames are read from an
observation source and handed to the session one at a time; the optional
display window shows the reference line, detections and the count.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

import cv2
import numpy as np

from algorithms.counting import line_endpoints
from models.frame import FrameData, to_bgr
from observation import ObservationSource, create_source_from_config
from .processor import FrameResult
from .session import JuggleSession


@dataclass
class EngineConfig:
    """
    Configuration for the pipeline engine.

    Attributes:
        max_consecutive_failures: Max frame read failures before stopping.
        stats_log_interval: Seconds between status log messages.
        display: Enable cv2 display window.
        window_name: Title of the display window.
    """
    max_consecutive_failures: int = 10
    stats_log_interval: float = 60.0
    display: bool = False
    window_name: str = "Juggle Counter"


@dataclass
class EngineStats:
    """Runtime statistics for the engine."""
    frame_count: int = 0
    catch_events: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)
    consecutive_failures: int = 0

    @property
    def fps(self) -> float:
        elapsed = time.time() - self.start_time
        return self.frame_count / elapsed if elapsed > 0 else 0.0


def draw_overlays(frame: np.ndarray, result: FrameResult) -> np.ndarray:
    """Draw the reference line, tracked objects and count on a BGR frame."""
    COLOR_LINE = (0, 255, 255)  # Yellow
    COLOR_OBJECT = (0, 255, 0)  # Green
    COLOR_TEXT = (255, 255, 255)

    p1, p2 = line_endpoints(result.line_y, frame.shape[1])
    cv2.line(frame, p1, p2, COLOR_LINE, 2)

    for track in result.tracks:
        center = (int(track.x), int(track.y))
        radius = int(np.sqrt(track.size)) + 5
        cv2.circle(frame, center, radius, COLOR_OBJECT, 3)
        cv2.putText(frame, f"#{track.object_id}", (center[0] + radius, center[1]),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, COLOR_OBJECT, 1)

    cv2.putText(frame, f"Count: {result.count}", (10, 30),
                cv2.FONT_HERSHEY_SIMPLEX, 1.0, COLOR_TEXT, 2)
    return frame


class PipelineEngine:
    """
    Main processing engine using ObservationSource for frame input.

    This engine:
    - Reads frames from any ObservationSource
    - Runs each frame through the session (detection, tracking, counting)
    - Notifies registered callbacks with the frame result
    - Draws overlays when the display is enabled

    Example:
        source = OpenCVSource(OpenCVSourceConfig(device_id=0))
        engine = PipelineEngine(source, session, EngineConfig(display=True))
        engine.run()
    """

    def __init__(
        self,
        source: ObservationSource,
        session: JuggleSession,
        config: EngineConfig,
    ):
        self.source = source
        self.session = session
        self.config = config
        self.stats = EngineStats()
        self._running = False
        self._callbacks: List[Callable[[FrameData, FrameResult], None]] = []

    def add_callback(self, callback: Callable[[FrameData, FrameResult], None]) -> None:
        """
        Add a callback to be called after each frame is processed.

        Args:
            callback: Function taking (frame_data, result) as arguments.
        """
        self._callbacks.append(callback)

    @property
    def is_running(self) -> bool:
        return self._running

    def run(self) -> None:
        """
        Run the main processing loop.

        Opens the observation source, processes frames until stopped or
        exhausted, then closes resources.
        """
        self._running = True
        self.stats = EngineStats()

        try:
            self.source.open()
            logging.info(f"Pipeline started: source={self.source.source_id}")

            while self._running:
                frame_data = self.source.read()

                if frame_data is None:
                    self.stats.consecutive_failures += 1
                    if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                        logging.error(
                            f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping"
                        )
                        break
                    logging.warning(
                        f"Frame read failed ({self.stats.consecutive_failures}/"
                        f"{self.config.max_consecutive_failures})"
                    )
                    time.sleep(0.5)
                    continue

                self.stats.consecutive_failures = 0
                result = self._process_frame(frame_data)

                for callback in self._callbacks:
                    try:
                        callback(frame_data, result)
                    except Exception as e:
                        logging.warning(f"Callback error: {e}")

                if self.config.display:
                    if not self._handle_display(frame_data, result):
                        break  # User pressed 'q'

                self._handle_periodic_tasks()

        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
        except RuntimeError as e:
            logging.error(f"Pipeline error: {e}")
            self.session.report_status(f"Camera unavailable: {e}")
        except Exception as e:
            logging.exception(f"Pipeline error: {e}")
        finally:
            self._cleanup()

    def stop(self) -> None:
        """Signal the pipeline to stop after the current frame."""
        self._running = False

    def _process_frame(self, frame_data: FrameData) -> FrameResult:
        """Process a single frame and accumulate statistics."""
        self.stats.frame_count += 1
        result = self.session.process_frame(frame_data)
        self.stats.catch_events += len(result.catches)

        if self.stats.frame_count % 30 == 0 and result.tracks:
            track_ids = [t.object_id for t in result.tracks]
            logging.debug(f"[TRACK] frame={self.stats.frame_count} active_ids={track_ids}")

        return result

    def _handle_display(self, frame_data: FrameData, result: FrameResult) -> bool:
        """
        Handle cv2 display window.

        Returns False if user pressed 'q' to quit.
        """
        annotated = draw_overlays(to_bgr(frame_data.frame, frame_data.color_order), result)
        cv2.imshow(self.config.window_name, annotated)
        key = cv2.waitKey(1) & 0xFF
        if key == ord('r'):
            self.session.reset_count()
        elif key == ord('m'):
            other = "single" if self.session.mode.value == "multi" else "multi"
            self.session.set_mode(other)
        return key != ord('q')

    def _handle_periodic_tasks(self) -> None:
        """Log statistics periodically."""
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Pipeline stats: frames={self.stats.frame_count}, "
                f"fps={self.stats.fps:.1f}, "
                f"catches={self.stats.catch_events}, "
                f"count={self.session.count}"
            )
            self.stats.last_stats_log_time = now

    def _cleanup(self) -> None:
        """Clean up resources."""
        self._running = False

        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

        if self.config.display:
            cv2.destroyAllWindows()

        logging.info(f"Pipeline stopped: frames={self.stats.frame_count}, count={self.session.count}")


def create_engine_from_config(
    config: Dict[str, Any],
    session: JuggleSession,
    display: bool = False,
) -> PipelineEngine:
    """
    Factory function to create a PipelineEngine from the config dict.

    Args:
        config: Full application config dict.
        session: Session the engine feeds.
        display: Enable display window.
    """
    camera_cfg = config.get("camera", {})
    source = create_source_from_config(camera_cfg, source_id="main-camera")
    return PipelineEngine(source, session, EngineConfig(display=display))
