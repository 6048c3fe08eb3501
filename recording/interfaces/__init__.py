"""
Recording Interfaces Package

Exposes abstract interfaces for the recorder's collaborators.
"""

from recording.interfaces.location_interface import (
    LocationFix,
    LocationProviderInterface,
)
from recording.interfaces.overlay_interface import (
    OverlayError,
    OverlayInterface,
    OverlayResult,
)
from recording.interfaces.video_capture_interface import (
    CameraBusyError,
    CameraNotFoundError,
    CaptureError,
    CaptureHandle,
    CaptureProcessError,
    CaptureResult,
    VideoCaptureInterface,
)

# Public API
__all__ = [
    "CameraBusyError",
    "CameraNotFoundError",
    # Exceptions
    "CaptureError",
    "CaptureHandle",
    "CaptureProcessError",
    "CaptureResult",
    "LocationFix",
    "LocationProviderInterface",
    "OverlayError",
    "OverlayInterface",
    "OverlayResult",
    # Interface
    "VideoCaptureInterface",
]
