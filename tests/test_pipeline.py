"""
Tests for the pipeline engine.
"""

import numpy as np
import pytest
from unittest.mock import MagicMock, patch

from models.config import PipelineConfig
from observation import ArraySource
from observation.base import ObservationSource, ObservationConfig
from pipeline.engine import EngineConfig, PipelineEngine, create_engine_from_config, draw_overlays
from pipeline.session import JuggleSession


class FailingSource(ObservationSource):
    """Source whose camera cannot be opened."""

    def __init__(self):
        super().__init__(ObservationConfig(source_id="broken"))
        self.closed = False

    def open(self) -> None:
        raise RuntimeError("permission denied")

    def read(self):
        return None

    def close(self) -> None:
        self.closed = True


def juggle_frames(make_ball_frame):
    """Ball above the line, then below it: one catch."""
    return [make_ball_frame([(80, 40)]), make_ball_frame([(80, 80)])]


class TestPipelineEngine:
    def test_processes_all_frames(self, make_ball_frame):
        session = JuggleSession(PipelineConfig())
        source = ArraySource(juggle_frames(make_ball_frame))
        engine = PipelineEngine(source, session, EngineConfig(max_consecutive_failures=1))

        engine.run()

        assert engine.stats.frame_count == 2
        assert engine.stats.catch_events == 1
        assert session.count == 1
        assert not engine.is_running
        assert not source.is_open

    def test_stops_after_consecutive_failures(self):
        """Exhausted sources are retried until the failure limit."""
        session = JuggleSession(PipelineConfig())
        source = ArraySource([])
        engine = PipelineEngine(source, session, EngineConfig(max_consecutive_failures=3))

        with patch("time.sleep") as sleep:
            engine.run()

        assert engine.stats.consecutive_failures == 3
        assert sleep.call_count == 2

    def test_open_failure_reported_to_session(self):
        session = JuggleSession(PipelineConfig())
        source = FailingSource()
        engine = PipelineEngine(source, session, EngineConfig())

        engine.run()

        assert session.status == "Camera unavailable: permission denied"
        assert source.closed

    def test_callbacks_receive_results(self, make_ball_frame):
        session = JuggleSession(PipelineConfig())
        engine = PipelineEngine(
            ArraySource(juggle_frames(make_ball_frame)), session, EngineConfig(max_consecutive_failures=1)
        )
        seen = []
        engine.add_callback(lambda fd, result: seen.append((fd.frame_index, result.count)))

        engine.run()

        assert seen == [(1, 0), (2, 1)]

    def test_callback_errors_do_not_stop_engine(self, make_ball_frame):
        session = JuggleSession(PipelineConfig())
        engine = PipelineEngine(
            ArraySource(juggle_frames(make_ball_frame)), session, EngineConfig(max_consecutive_failures=1)
        )
        engine.add_callback(MagicMock(side_effect=ValueError("overlay crashed")))

        engine.run()

        assert engine.stats.frame_count == 2
        assert session.count == 1

    def test_stop_from_callback(self, make_ball_frame):
        session = JuggleSession(PipelineConfig())
        engine = PipelineEngine(
            ArraySource(juggle_frames(make_ball_frame)), session, EngineConfig()
        )
        engine.add_callback(lambda fd, result: engine.stop())

        engine.run()

        assert engine.stats.frame_count == 1


class TestDrawOverlays:
    def test_draws_line_and_count(self, make_ball_frame):
        session = JuggleSession(PipelineConfig())
        with ArraySource([make_ball_frame([(80, 40)])]) as source:
            result = session.process_frame(source.read())
        canvas = np.zeros((120, 160, 3), dtype=np.uint8)
        out = draw_overlays(canvas, result)

        assert out is canvas
        # Yellow reference line across row 60
        assert tuple(out[60, 150]) == (0, 255, 255)
        assert out[:40, :].any()


class TestCreateEngineFromConfig:
    def test_builds_opencv_source(self, valid_config):
        session = JuggleSession(PipelineConfig())
        engine = create_engine_from_config(valid_config, session, display=False)

        assert engine.source.source_id == "main-camera"
        assert engine.config.display is False
        assert engine.session is session
