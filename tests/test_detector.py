"""
Tests for the color blob detector on synthetic frames.
"""

import cv2
import numpy as np
import pytest

from detection.detector import ColorBlobDetector
from models.color import Color
from models.config import PipelineConfig


def make_detector(**changes):
    return ColorBlobDetector.from_pipeline_config(PipelineConfig().with_changes(**changes))


class TestFindMatchingPixels:
    def test_coordinates_are_in_frame_space(self, make_blank_frame):
        frame = make_blank_frame()
        frame[10, 20] = (0, 0, 255)
        frame[11, 21] = (0, 0, 255)  # off the stride-2 lattice
        pixels = make_detector(sample_stride=2).find_matching_pixels(frame)
        assert pixels.tolist() == [[20, 10]]

    def test_stride_one_sees_every_pixel(self, make_blank_frame):
        frame = make_blank_frame()
        frame[11, 21] = (0, 0, 255)
        pixels = make_detector(sample_stride=1).find_matching_pixels(frame)
        assert pixels.tolist() == [[21, 11]]

    def test_rgb_frames(self, make_blank_frame):
        frame = make_blank_frame()
        frame[4, 4] = (255, 0, 0)  # red in RGB order, blue if read as BGR
        detector = make_detector(sample_stride=1)
        assert len(detector.find_matching_pixels(frame, "rgb")) == 1
        assert len(detector.find_matching_pixels(frame, "bgr")) == 0


class TestDetectMulti:
    def test_single_ball(self, make_ball_frame):
        blobs = make_detector().detect(make_ball_frame([(80, 60)], radius=12))
        assert len(blobs) == 1
        assert blobs[0].x == pytest.approx(80, abs=1.5)
        assert blobs[0].y == pytest.approx(60, abs=1.5)
        assert blobs[0].circularity > 0.6

    def test_two_balls(self, make_ball_frame):
        blobs = make_detector().detect(make_ball_frame([(40, 60), (120, 60)], radius=10))
        assert sorted(round(b.x / 10) for b in blobs) == [4, 12]

    def test_stripe_is_rejected(self, make_blank_frame):
        frame = make_blank_frame()
        cv2.line(frame, (20, 60), (140, 60), (0, 0, 255), 2)
        assert make_detector().detect(frame) == []

    def test_empty_frame(self, make_blank_frame):
        assert make_detector().detect(make_blank_frame()) == []

    def test_other_color_ignored(self, make_ball_frame):
        frame = make_ball_frame([(80, 60)], radius=12, color=(0, 255, 0))
        assert make_detector().detect(frame) == []
        assert len(make_detector(target_color=Color(0, 255, 0)).detect(frame)) == 1


class TestDetectSingle:
    def test_centroid_of_all_matches(self, make_ball_frame):
        blob = make_detector().detect_single(make_ball_frame([(40, 30), (120, 90)], radius=8))
        assert blob is not None
        assert blob.x == pytest.approx(80, abs=1.5)
        assert blob.y == pytest.approx(60, abs=1.5)

    def test_below_minimum_is_none(self, make_blank_frame):
        frame = make_blank_frame()
        frame[0:4, 0:4] = (0, 0, 255)  # 4 samples at stride 2
        assert make_detector(min_blob_size=10).detect_single(frame) is None
        assert make_detector(min_blob_size=4).detect_single(frame) is not None

    def test_no_shape_filter_in_single_mode(self, make_blank_frame):
        frame = make_blank_frame()
        cv2.line(frame, (20, 60), (140, 60), (0, 0, 255), 2)
        blob = make_detector().detect_single(frame)
        assert blob is not None
        assert blob.y == pytest.approx(60, abs=1.0)
