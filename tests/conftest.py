"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import cv2
import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

RED_BGR = (0, 0, 255)


def blank_frame(width=160, height=120):
    """Black BGR frame."""
    return np.zeros((height, width, 3), dtype=np.uint8)


def ball_frame(centers, radius=10, width=160, height=120, color=RED_BGR):
    """BGR frame with filled disks at ``centers`` ((x, y) pairs)."""
    frame = blank_frame(width, height)
    for cx, cy in centers:
        cv2.circle(frame, (int(cx), int(cy)), radius, color, -1)
    return frame


def disk_pixels(cx, cy, r, step=1):
    """Lattice points of a filled disk, as (x, y) tuples."""
    return [
        (x, y)
        for x in range(cx - r, cx + r + 1, step)
        for y in range(cy - r, cy + r + 1, step)
        if (x - cx) ** 2 + (y - cy) ** 2 <= r * r
    ]


@pytest.fixture
def make_ball_frame():
    return ball_frame


@pytest.fixture
def make_blank_frame():
    return blank_frame


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  backend: "opencv"
  device_id: 0
  resolution: [640, 480]
  fps: 30

detection:
  target_color: "#ff0000"
  color_tolerance_percent: 30
  hue_weight: 4
  min_blob_size: 10
  circularity_threshold: 0.6
  cluster_radius: 25
  sample_stride: 2

tracking:
  mode: "single"
  max_tracking_distance: 50

counting:
  line_height_percent: 50
  catch_multiplier: 1
  cooldown_frames: 15

sink:
  enabled: true
  count_file_path: "juggle_count.txt"

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "backend": "opencv",
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "detection": {
            "target_color": "#ff0000",
            "color_tolerance_percent": 30,
            "hue_weight": 4,
            "min_blob_size": 10,
            "circularity_threshold": 0.6,
            "cluster_radius": 25,
            "sample_stride": 2,
        },
        "tracking": {
            "mode": "single",
            "max_tracking_distance": 50,
        },
        "counting": {
            "line_height_percent": 50,
            "catch_multiplier": 1,
            "cooldown_frames": 15,
        },
        "sink": {
            "enabled": True,
            "count_file_path": "juggle_count.txt",
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
