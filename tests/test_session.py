"""
Tests for JuggleSession settings, calibration and counter publishing.
"""

import time

import pytest

from models.color import Color
from models.config import PipelineConfig, TrackingMode
from models.frame import FrameData
from pipeline.session import JuggleSession, coerce_setting
from storage.count_sink import CountFileSink


def frame_data(frame, index=0, color_order="bgr"):
    return FrameData.from_numpy(frame, timestamp=time.time(), frame_index=index, color_order=color_order)


@pytest.fixture
def sink(tmp_path):
    return CountFileSink(str(tmp_path / "juggle_count.txt"))


class TestCoerceSetting:
    def test_clamps_out_of_range(self):
        assert coerce_setting("color_tolerance_percent", 150) == 100.0
        assert coerce_setting("circularity_threshold", -0.5) == 0.0
        assert coerce_setting("catch_multiplier", 0) == 1
        assert coerce_setting("hue_weight", 11) == 10.0
        assert coerce_setting("min_blob_size", 5000) == 1000

    def test_numeric_strings_accepted(self):
        assert coerce_setting("line_height_percent", "65") == 65.0

    def test_integers_rounded(self):
        assert coerce_setting("catch_multiplier", 2.6) == 3

    @pytest.mark.parametrize("value", [True, "abc", None, [1], float("nan")])
    def test_wrong_types_rejected(self, value):
        with pytest.raises(ValueError):
            coerce_setting("color_tolerance_percent", value)

    def test_choices(self):
        assert coerce_setting("cooldown_scope", "per_track") == "per_track"
        with pytest.raises(ValueError, match="cooldown_scope must be one of"):
            coerce_setting("cooldown_scope", "global")

    def test_unknown_setting(self):
        with pytest.raises(ValueError, match="Unknown setting"):
            coerce_setting("frame_rate", 30)


class TestSettings:
    def test_update_applies_clamped_values(self):
        session = JuggleSession(PipelineConfig())
        applied = session.update_settings(color_tolerance_percent=150, catch_multiplier=3)
        assert applied == {"color_tolerance_percent": 100.0, "catch_multiplier": 3}
        assert session.config.color_tolerance_percent == 100.0
        assert session.config.catch_multiplier == 3

    def test_rejection_is_all_or_nothing(self):
        session = JuggleSession(PipelineConfig())
        with pytest.raises(ValueError):
            session.update_settings(color_tolerance_percent=40, matching="auction")
        assert session.config.color_tolerance_percent == 30.0
        assert session.status.startswith("Invalid setting")

    def test_change_takes_effect_on_next_frame(self, make_ball_frame):
        """A higher multiplier applies to the crossing after the change."""
        session = JuggleSession(PipelineConfig())
        session.process_frame(frame_data(make_ball_frame([(80, 40)])))
        session.update_settings(catch_multiplier=4)
        result = session.process_frame(frame_data(make_ball_frame([(80, 80)])))
        assert result.count == 4


class TestTargetColor:
    def test_rgb_string(self):
        session = JuggleSession(PipelineConfig())
        assert session.set_target_color("rgb(0, 255, 0)")
        assert session.config.target_color == Color(0, 255, 0)
        assert session.status == "Target color set to #00ff00"

    def test_malformed_keeps_previous(self):
        session = JuggleSession(PipelineConfig())
        assert not session.set_target_color("greenish")
        assert session.config.target_color == Color(255, 0, 0)

    def test_calibrate_requires_a_frame(self):
        session = JuggleSession(PipelineConfig())
        assert session.calibrate_from_frame(1, 1) is None
        assert session.status == "Start camera first to calibrate color"

    def test_calibrate_samples_last_frame(self, make_blank_frame):
        frame = make_blank_frame()
        frame[10, 20] = (255, 0, 0)  # blue in BGR
        session = JuggleSession(PipelineConfig())
        session.process_frame(frame_data(frame))

        assert session.calibrate_from_frame(20, 10) == Color(0, 0, 255)
        assert session.config.target_color == Color(0, 0, 255)
        assert session.status == "Color calibrated from video"

    def test_calibrate_outside_frame(self, make_blank_frame):
        session = JuggleSession(PipelineConfig())
        session.process_frame(frame_data(make_blank_frame()))
        assert session.calibrate_from_frame(500, 10) is None
        assert session.config.target_color == Color(255, 0, 0)


class TestModeAndReset:
    def test_set_mode(self):
        session = JuggleSession(PipelineConfig())
        assert session.set_mode("multi") == TrackingMode.MULTI
        assert session.mode == TrackingMode.MULTI
        assert session.config.mode == TrackingMode.MULTI
        assert session.status == "Multi-ball tracking enabled"
        session.set_mode(TrackingMode.SINGLE)
        assert session.status == "Single-ball tracking enabled"

    def test_unknown_mode(self):
        session = JuggleSession(PipelineConfig())
        with pytest.raises(ValueError, match="mode must be one of"):
            session.set_mode("triple")
        assert session.mode == TrackingMode.SINGLE

    def test_mode_switch_keeps_count(self, make_ball_frame):
        session = JuggleSession(PipelineConfig())
        session.process_frame(frame_data(make_ball_frame([(80, 40)])))
        session.process_frame(frame_data(make_ball_frame([(80, 80)])))
        session.set_mode("multi")
        assert session.count == 1
        assert session.state.tracks == ()
        assert session.state.single_track is None

    def test_reset(self, sink, make_ball_frame):
        session = JuggleSession(PipelineConfig(), sink=sink)
        session.process_frame(frame_data(make_ball_frame([(80, 40)])))
        session.process_frame(frame_data(make_ball_frame([(80, 80)])))
        assert sink.read() == 1

        session.reset_count()
        assert session.count == 0
        assert sink.read() == 0
        assert session.status == "Count reset to 0"


class TestCounterFile:
    def test_initialized_to_zero(self, sink):
        JuggleSession(PipelineConfig(), sink=sink)
        with open(sink.path) as f:
            assert f.read() == "0"

    def test_written_only_when_count_changes(self, sink, make_ball_frame, make_blank_frame):
        session = JuggleSession(PipelineConfig(catch_multiplier=2), sink=sink)
        session.process_frame(frame_data(make_ball_frame([(80, 40)])))
        session.process_frame(frame_data(make_blank_frame()))
        assert sink.last_written == 0

        session.process_frame(frame_data(make_ball_frame([(80, 80)])))
        assert sink.read() == 2
        assert session.status == "Catch detected! Count: 2"

    def test_write_failure_sets_status(self, tmp_path, make_ball_frame):
        sink = CountFileSink(str(tmp_path / "counter"))
        session = JuggleSession(PipelineConfig(), sink=sink)
        (tmp_path / "counter").unlink()
        (tmp_path / "counter").mkdir()

        session.process_frame(frame_data(make_ball_frame([(80, 40)])))
        session.process_frame(frame_data(make_ball_frame([(80, 80)])))
        assert session.count == 1
        assert session.status == "Failed to write count to file"


class TestSnapshot:
    def test_snapshot_fields(self, make_ball_frame):
        session = JuggleSession(PipelineConfig())
        session.process_frame(frame_data(make_ball_frame([(80, 40)])))
        snap = session.snapshot()
        assert snap["count"] == 0
        assert snap["mode"] == "single"
        assert snap["frame_index"] == 1
        assert snap["line_y"] == 60.0
        assert snap["target_color"] == "#ff0000"
        assert len(snap["tracks"]) == 1
        assert snap["tracks"][0]["id"] == 0
        assert len(snap["blobs"]) == 1

    def test_snapshot_before_frames(self):
        snap = JuggleSession(PipelineConfig()).snapshot()
        assert snap["line_y"] is None
        assert snap["tracks"] == []
        assert snap["status"] == "Ready to start camera"
