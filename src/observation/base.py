"""
ObservationSource interface for pluggable frame sources.

The juggle pipeline only needs a stream of frames; where they come from
(a webcam, a recorded clip, frames held in memory) is hidden behind this
contract.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Sequence

import numpy as np

from models.frame import COLOR_ORDER_BGR, FrameData


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.

    Attributes:
        source_id: Identifier for this source (e.g., "main-camera").
        resolution: Target resolution as (width, height). None = use source default.
        fps: Target frames per second. None = use source default.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    resolution: Optional[tuple[int, int]] = None
    fps: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObservationSource(ABC):
    """
    Abstract base class for observation sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source
        3. Call read() repeatedly to get frames
        4. Call close() to release resources

    Can also be used as a context manager:
        with OpenCVSource(config) as source:
            for frame_data in source:
                session.process_frame(frame_data)
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames read since open."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open the observation source. Must be called before read().

        Raises:
            RuntimeError: If the source cannot be opened (e.g., no camera permission).
        """

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """
        Read the next frame.

        Returns:
            FrameData, or None if no frame is available (end of clip, camera error).
        """

    @abstractmethod
    def close(self) -> None:
        """Release the source. Safe to call multiple times."""

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        """Yield frames until the source is exhausted. The source must be open."""
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while True:
            frame_data = self.read()
            if frame_data is None:
                break
            yield frame_data


class ArraySource(ObservationSource):
    """
    Replays frames held in memory.

    Used for offline runs over decoded clips and for driving the pipeline
    with synthetic frames.
    """

    def __init__(
        self,
        frames: Sequence[np.ndarray],
        config: Optional[ObservationConfig] = None,
        color_order: str = COLOR_ORDER_BGR,
    ):
        super().__init__(config or ObservationConfig(source_id="array"))
        self._frames = list(frames)
        self._color_order = color_order

    def open(self) -> None:
        self._is_open = True
        self._frame_index = 0

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._frame_index >= len(self._frames):
            return None
        frame = self._frames[self._frame_index]
        self._frame_index += 1
        return FrameData.from_numpy(
            frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
            color_order=self._color_order,
        )

    def close(self) -> None:
        self._is_open = False
