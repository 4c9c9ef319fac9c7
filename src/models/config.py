"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, List, Union

from .color import Color


class TrackingMode(str, Enum):
    """Exactly one tracking mode is active at a time."""
    SINGLE = "single"
    MULTI = "multi"


COOLDOWN_SHARED = "shared"
COOLDOWN_PER_TRACK = "per_track"
COOLDOWN_SCOPES = (COOLDOWN_SHARED, COOLDOWN_PER_TRACK)

MATCHING_GREEDY = "greedy"
MATCHING_HUNGARIAN = "hungarian"
MATCHING_METHODS = (MATCHING_GREEDY, MATCHING_HUNGARIAN)

CIRCULARITY_CONTOUR = "contour"
CIRCULARITY_EDGE = "edge"
CIRCULARITY_METHODS = (CIRCULARITY_CONTOUR, CIRCULARITY_EDGE)

DEFAULT_TARGET_COLOR = "#ff0000"


@dataclass
class CameraConfig:
    """Camera configuration."""
    backend: str = "opencv"
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [640, 480])
    fps: int = 30
    swap_rb: bool = False
    flip_horizontal: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            backend=d.get("backend", "opencv"),
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [640, 480]),
            fps=d.get("fps", 30),
            swap_rb=d.get("swap_rb", False),
            flip_horizontal=d.get("flip_horizontal", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "swap_rb": self.swap_rb,
            "flip_horizontal": self.flip_horizontal,
        }


@dataclass
class DetectionConfig:
    """Color matching and blob filtering."""
    target_color: str = DEFAULT_TARGET_COLOR
    color_tolerance_percent: float = 30.0
    hue_weight: float = 4.0
    min_blob_size: int = 10
    circularity_threshold: float = 0.6
    cluster_radius: float = 25.0
    sample_stride: int = 2
    circularity_method: str = CIRCULARITY_CONTOUR

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            target_color=d.get("target_color", DEFAULT_TARGET_COLOR),
            color_tolerance_percent=d.get("color_tolerance_percent", 30.0),
            hue_weight=d.get("hue_weight", 4.0),
            min_blob_size=d.get("min_blob_size", 10),
            circularity_threshold=d.get("circularity_threshold", 0.6),
            cluster_radius=d.get("cluster_radius", 25.0),
            sample_stride=d.get("sample_stride", 2),
            circularity_method=d.get("circularity_method", CIRCULARITY_CONTOUR),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_color": self.target_color,
            "color_tolerance_percent": self.color_tolerance_percent,
            "hue_weight": self.hue_weight,
            "min_blob_size": self.min_blob_size,
            "circularity_threshold": self.circularity_threshold,
            "cluster_radius": self.cluster_radius,
            "sample_stride": self.sample_stride,
            "circularity_method": self.circularity_method,
        }


@dataclass
class TrackingConfig:
    """Tracking configuration."""
    mode: str = TrackingMode.SINGLE.value
    max_tracking_distance: float = 50.0
    max_missed_frames: int = 0
    initial_object_id: int = 0
    matching: str = MATCHING_GREEDY

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TrackingConfig":
        return cls(
            mode=d.get("mode", TrackingMode.SINGLE.value),
            max_tracking_distance=d.get("max_tracking_distance", 50.0),
            max_missed_frames=d.get("max_missed_frames", 0),
            initial_object_id=d.get("initial_object_id", 0),
            matching=d.get("matching", MATCHING_GREEDY),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "max_tracking_distance": self.max_tracking_distance,
            "max_missed_frames": self.max_missed_frames,
            "initial_object_id": self.initial_object_id,
            "matching": self.matching,
        }


@dataclass
class CountingConfig:
    """Reference line and debounce."""
    line_height_percent: float = 50.0
    catch_multiplier: int = 1
    cooldown_frames: int = 15
    cooldown_scope: str = COOLDOWN_SHARED

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CountingConfig":
        return cls(
            line_height_percent=d.get("line_height_percent", 50.0),
            catch_multiplier=d.get("catch_multiplier", 1),
            cooldown_frames=d.get("cooldown_frames", 15),
            cooldown_scope=d.get("cooldown_scope", COOLDOWN_SHARED),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line_height_percent": self.line_height_percent,
            "catch_multiplier": self.catch_multiplier,
            "cooldown_frames": self.cooldown_frames,
            "cooldown_scope": self.cooldown_scope,
        }


@dataclass
class SinkConfig:
    """Plain-text counter file read by broadcast overlays."""
    enabled: bool = True
    count_file_path: str = "juggle_count.txt"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SinkConfig":
        return cls(
            enabled=d.get("enabled", True),
            count_file_path=d.get("count_file_path", "juggle_count.txt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "count_file_path": self.count_file_path,
        }


@dataclass
class WebConfig:
    """Control API server."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", False),
            host=d.get("host", "127.0.0.1"),
            port=d.get("port", 8000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "host": self.host,
            "port": self.port,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    counting: CountingConfig = field(default_factory=CountingConfig)
    sink: SinkConfig = field(default_factory=SinkConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/juggle_counter.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera") or {}),
            detection=DetectionConfig.from_dict(d.get("detection") or {}),
            tracking=TrackingConfig.from_dict(d.get("tracking") or {}),
            counting=CountingConfig.from_dict(d.get("counting") or {}),
            sink=SinkConfig.from_dict(d.get("sink") or {}),
            web=WebConfig.from_dict(d.get("web") or {}),
            log_path=d.get("log_path", "logs/juggle_counter.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "camera": self.camera.to_dict(),
            "detection": self.detection.to_dict(),
            "tracking": self.tracking.to_dict(),
            "counting": self.counting.to_dict(),
            "sink": self.sink.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }


@dataclass(frozen=True)
class PipelineConfig:
    """
    Immutable snapshot of the tunable parameters read during one frame.

    Operator changes never mutate a snapshot; the session builds a new one
    with ``with_changes`` and swaps it in between frames.
    """
    target_color: Color = Color(255, 0, 0)
    color_tolerance_percent: float = 30.0
    min_blob_size: int = 10
    circularity_threshold: float = 0.6
    hue_weight: float = 4.0
    line_height_percent: float = 50.0
    catch_multiplier: int = 1
    max_tracking_distance: float = 50.0
    cluster_radius: float = 25.0
    mode: TrackingMode = TrackingMode.SINGLE
    sample_stride: int = 2
    cooldown_frames: int = 15
    cooldown_scope: str = COOLDOWN_SHARED
    max_missed_frames: int = 0
    matching: str = MATCHING_GREEDY
    circularity_method: str = CIRCULARITY_CONTOUR
    initial_object_id: int = 0

    @classmethod
    def from_config(cls, config: Config) -> "PipelineConfig":
        """Flatten the YAML sections into a per-frame snapshot."""
        target = Color.parse(config.detection.target_color)
        if target is None:
            raise ValueError(f"Invalid detection.target_color: {config.detection.target_color!r}")
        return cls(
            target_color=target,
            color_tolerance_percent=float(config.detection.color_tolerance_percent),
            min_blob_size=int(config.detection.min_blob_size),
            circularity_threshold=float(config.detection.circularity_threshold),
            hue_weight=float(config.detection.hue_weight),
            line_height_percent=float(config.counting.line_height_percent),
            catch_multiplier=int(config.counting.catch_multiplier),
            max_tracking_distance=float(config.tracking.max_tracking_distance),
            cluster_radius=float(config.detection.cluster_radius),
            mode=TrackingMode(config.tracking.mode),
            sample_stride=int(config.detection.sample_stride),
            cooldown_frames=int(config.counting.cooldown_frames),
            cooldown_scope=config.counting.cooldown_scope,
            max_missed_frames=int(config.tracking.max_missed_frames),
            matching=config.tracking.matching,
            circularity_method=config.detection.circularity_method,
            initial_object_id=int(config.tracking.initial_object_id),
        )

    def with_changes(self, **changes: Any) -> "PipelineConfig":
        """Return a copy with ``changes`` applied (no validation)."""
        return replace(self, **changes)

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def to_dict(self) -> Dict[str, Any]:
        d = {name: getattr(self, name) for name in self.field_names()}
        d["target_color"] = self.target_color.to_hex()
        d["mode"] = self.mode.value
        return d
