"""
Tracking module.

The canonical tracker implementation is in tracking.tracker.
"""

from .tracker import ObjectTracker, TrackUpdate

__all__ = ["ObjectTracker", "TrackUpdate"]
