"""
Typed models for the juggle counter.

Frame, color, detection and tracking values passed between pipeline stages,
plus the YAML-backed configuration models.
"""

from .frame import FrameData
from .color import Color, HsvColor, hex_to_rgb, rgb_to_hex
from .blob import BlobCandidate, PixelCoord
from .track import TrackedObject
from .count_event import CrossingEvent, CROSSING_CATCH, CROSSING_THROW
from .config import (
    Config,
    CameraConfig,
    DetectionConfig,
    TrackingConfig,
    CountingConfig,
    SinkConfig,
    WebConfig,
    PipelineConfig,
    TrackingMode,
)

__all__ = [
    # Frame
    "FrameData",
    # Color
    "Color",
    "HsvColor",
    "hex_to_rgb",
    "rgb_to_hex",
    # Detection
    "BlobCandidate",
    "PixelCoord",
    # Tracking
    "TrackedObject",
    # Counting
    "CrossingEvent",
    "CROSSING_CATCH",
    "CROSSING_THROW",
    # Config
    "Config",
    "CameraConfig",
    "DetectionConfig",
    "TrackingConfig",
    "CountingConfig",
    "SinkConfig",
    "WebConfig",
    "PipelineConfig",
    "TrackingMode",
]
