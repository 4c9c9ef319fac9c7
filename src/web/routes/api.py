from __future__ import annotations

import logging
import platform
import time
from typing import Any, Dict, Optional

import cv2
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from models.color import Color
from models.frame import FrameData, to_bgr
from pipeline.engine import draw_overlays
from pipeline.session import JuggleSession
from ..api_models import (
    CalibrateRequest,
    CalibrateResponse,
    ConfigPatchRequest,
    ConfigResponse,
    HealthResponse,
    ModeRequest,
    StatusResponse,
)

router = APIRouter()


def _session(request: Request) -> JuggleSession:
    return request.app.state.session


def _split_patch(patch: Dict[str, Any]) -> tuple[Dict[str, Any], Optional[str]]:
    """
    Separate numeric/choice settings from the target color.

    Fields left out of the request body are not touched.
    """
    changes = {k: v for k, v in patch.items() if v is not None}
    color = changes.pop("target_color", None)
    return changes, color


def _last_frame_age(frame_data: Optional[FrameData], now: float) -> Optional[float]:
    if frame_data is None:
        return None
    return max(0.0, now - frame_data.timestamp)


@router.get("/status", response_model=StatusResponse)
def status(request: Request):
    """Count, mode, status message, tracks and blobs of the last frame."""
    return _session(request).snapshot()


@router.get("/config", response_model=ConfigResponse)
def get_config(request: Request):
    return {"config": _session(request).config.to_dict()}


@router.patch("/config", response_model=ConfigResponse)
def patch_config(req: ConfigPatchRequest, request: Request):
    """
    Stage setting changes for the next frame.

    Out-of-range numbers are clamped; a wrong type or unknown choice rejects
    the whole request and keeps the previous settings.
    """
    session = _session(request)
    changes, color = _split_patch(req.model_dump())

    if color is not None and Color.parse(color) is None:
        session.report_status(f"Invalid color: {color}")
        raise HTTPException(status_code=400, detail=f"Invalid color: {color}")

    applied: Dict[str, Any] = {}
    try:
        if changes:
            applied = session.update_settings(**changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if color is not None:
        session.set_target_color(color)
        applied["target_color"] = session.config.target_color.to_hex()

    return {"config": session.config.to_dict(), "applied": applied}


@router.post("/mode", response_model=StatusResponse)
def set_mode(req: ModeRequest, request: Request):
    session = _session(request)
    try:
        session.set_mode(req.mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.snapshot()


@router.post("/calibrate", response_model=CalibrateResponse)
def calibrate(req: CalibrateRequest, request: Request):
    """Set the target color from a color string or from a pixel of the last frame."""
    session = _session(request)

    if req.color is not None:
        if not session.set_target_color(req.color):
            raise HTTPException(status_code=400, detail=f"Invalid color: {req.color}")
    elif req.x is not None and req.y is not None:
        if session.calibrate_from_frame(req.x, req.y) is None:
            raise HTTPException(status_code=409, detail=session.status)
    else:
        raise HTTPException(status_code=400, detail="Provide either color or x and y")

    return {"target_color": session.config.target_color.to_hex(), "status": session.status}


@router.post("/reset", response_model=StatusResponse)
def reset(request: Request):
    session = _session(request)
    session.reset_count()
    return session.snapshot()


@router.get("/health", response_model=HealthResponse)
def health(request: Request):
    session = _session(request)
    now = time.time()
    sink = session.sink
    return {
        "timestamp": now,
        "uptime_seconds": now - request.app.state.started_at,
        "platform": platform.platform(),
        "python": platform.python_version(),
        "frames_processed": session.state.frame_index,
        "last_frame_age_s": _last_frame_age(session.last_frame, now),
        "count_file_path": sink.path if sink is not None else None,
    }


@router.get("/snapshot.jpg")
def snapshot(request: Request):
    """Last processed frame with the reference line and tracks drawn on it."""
    session = _session(request)
    frame_data = session.last_frame
    result = session.last_result
    if frame_data is None or result is None:
        raise HTTPException(status_code=503, detail="No frame processed yet")

    annotated = draw_overlays(to_bgr(frame_data.frame, frame_data.color_order), result)
    ok, buf = cv2.imencode(".jpg", annotated)
    if not ok:
        logging.error("JPEG encoding of snapshot failed")
        raise HTTPException(status_code=500, detail="Failed to encode snapshot")

    return StreamingResponse(
        iter([buf.tobytes()]),
        media_type="image/jpeg",
        headers={"Cache-Control": "no-store"},
    )
