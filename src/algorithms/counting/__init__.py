"""
Counting algorithms for the juggle counter.

This module turns tracked objects into crossing events and a running count.
The tracking layer remains independent - the detector does not modify track state.

Available detectors:
- CrossingDetector: horizontal reference line with cooldown debounce
"""

from .crossing import CooldownState, CrossingDetector, CrossingOutcome, CrossingResult
from .utils import compute_line_y, line_endpoints

__all__ = [
    "CooldownState",
    "CrossingDetector",
    "CrossingOutcome",
    "CrossingResult",
    "compute_line_y",
    "line_endpoints",
]
