"""
Recording Controllers Package

High-level recording controllers that orchestrate video capture.
"""

from recording.controllers.camera_manager import CameraManager
from recording.controllers.segment_recorder import SegmentRecorder

# Public API
__all__ = [
    "CameraManager",
    "SegmentRecorder",
]
