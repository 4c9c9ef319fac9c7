"""
Pipeline module for the juggle counter.

The pipeline orchestrates the full processing flow:
- Frame acquisition from observation sources (PipelineEngine)
- Detection, tracking and crossing detection over explicit state (FrameProcessor)
- Operator settings, counter file and status (JuggleSession)
"""

from .processor import FrameProcessor, FrameResult, PipelineState
from .session import JuggleSession, coerce_setting
from .engine import PipelineEngine, EngineConfig, create_engine_from_config, draw_overlays

__all__ = [
    "FrameProcessor",
    "FrameResult",
    "PipelineState",
    "JuggleSession",
    "coerce_setting",
    "PipelineEngine",
    "EngineConfig",
    "create_engine_from_config",
    "draw_overlays",
]
