"""
Recording Implementations Package

Exposes concrete implementations of recording interfaces.
"""

from recording.implementations.ffmpeg_capture import FFmpegCapture
from recording.implementations.ffmpeg_overlay import FFmpegOverlay
from recording.implementations.mock_capture import MockCapture
from recording.implementations.mock_location import MockLocationProvider
from recording.implementations.mock_overlay import MockOverlay
from recording.implementations.static_location import StaticLocationProvider

# Public API
__all__ = [
    "FFmpegCapture",
    "FFmpegOverlay",
    "MockCapture",
    "MockLocationProvider",
    "MockOverlay",
    "StaticLocationProvider",
]
