"""
Recording Module

Segmented video recording: camera lifecycle, overlay burn-in and the
segment recorder state machine.

Provides automatic detection and graceful fallback between real FFmpeg
capture and mock implementations for testing.

Public API:
    - SegmentRecorder: Record -> rollover -> finalize state machine
    - CameraManager: Camera lifecycle and health tracking
    - RecordingFactory: Factory for capture/overlay/location implementations
    - RecordingState / RecordingPhase: Recorder state types
    - register_recorder / lookup_recorder: Process-wide recorder lookup

Usage:
    from recording import CameraManager, SegmentRecorder, create_capture

    camera = CameraManager(create_capture())
    recorder = SegmentRecorder(camera, storage, quota, settings_store,
                               create_overlay(), create_location_provider())
    recorder.request_start()
"""

from recording.constants import RecordingPhase, RecordingState
from recording.controllers.camera_manager import CameraManager
from recording.controllers.segment_recorder import SegmentRecorder
from recording.factory import (
    RecordingFactory,
    create_capture,
    create_location_provider,
    create_overlay,
)
from recording.interfaces.video_capture_interface import (
    CaptureError,
    VideoCaptureInterface,
)
from recording.registry import lookup_recorder, register_recorder, unregister_recorder

__all__ = [
    "CameraManager",
    "CaptureError",
    "RecordingFactory",
    "RecordingPhase",
    "RecordingState",
    "SegmentRecorder",
    "VideoCaptureInterface",
    "create_capture",
    "create_location_provider",
    "create_overlay",
    "lookup_recorder",
    "register_recorder",
    "unregister_recorder",
]
