from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class TrackResponse(BaseModel):
    id: int
    x: float
    y: float
    size: int
    last_y: float
    matched_this_frame: bool


class BlobResponse(BaseModel):
    x: float
    y: float
    size: int
    circularity: float


class StatusResponse(BaseModel):
    """
    Session status optimized for frontend polling.
    Mirrors JuggleSession.snapshot().
    """
    count: int = Field(..., description="Current juggle count")
    mode: str = Field(..., description="single|multi")
    status: str = Field(..., description="Last operator-facing status message")
    frame_index: int = Field(0, description="Frames processed this session")
    cooldown: int = Field(0, description="Remaining shared cooldown frames")
    line_y: Optional[float] = Field(None, description="Reference line row of the last frame")
    tracks: List[TrackResponse] = Field(default_factory=list)
    blobs: List[BlobResponse] = Field(default_factory=list)
    target_color: str = Field(..., description="Target color as #rrggbb")


class ConfigPatchRequest(BaseModel):
    """
    Partial settings update. Values outside their range are clamped;
    wrong types and unknown choices are rejected with 400.
    """
    color_tolerance_percent: Optional[Any] = None
    circularity_threshold: Optional[Any] = None
    line_height_percent: Optional[Any] = None
    hue_weight: Optional[Any] = None
    catch_multiplier: Optional[Any] = None
    min_blob_size: Optional[Any] = None
    cluster_radius: Optional[Any] = None
    max_tracking_distance: Optional[Any] = None
    cooldown_frames: Optional[Any] = None
    sample_stride: Optional[Any] = None
    max_missed_frames: Optional[Any] = None
    cooldown_scope: Optional[str] = None
    matching: Optional[str] = None
    circularity_method: Optional[str] = None
    target_color: Optional[str] = Field(None, description="rgb(r, g, b) or #rrggbb")


class ConfigResponse(BaseModel):
    config: Dict[str, Any]
    applied: Dict[str, Any] = Field(default_factory=dict)


class ModeRequest(BaseModel):
    mode: str = Field(..., description="single|multi")


class CalibrateRequest(BaseModel):
    """Either a color string or a pixel of the last processed frame."""
    color: Optional[str] = Field(None, description="rgb(r, g, b) or #rrggbb")
    x: Optional[int] = Field(None, ge=0)
    y: Optional[int] = Field(None, ge=0)


class CalibrateResponse(BaseModel):
    target_color: str
    status: str


class HealthResponse(BaseModel):
    timestamp: float
    uptime_seconds: float
    platform: str
    python: str
    frames_processed: int
    last_frame_age_s: Optional[float] = None
    count_file_path: Optional[str] = None
