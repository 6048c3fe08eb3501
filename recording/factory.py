"""
Recording Factory

Factory pattern for creating recording implementations.
Automatically selects real or mock implementations based on availability.
"""

import logging
from typing import Literal, Optional

from recording.implementations.ffmpeg_capture import FFmpegCapture
from recording.implementations.ffmpeg_overlay import FFmpegOverlay
from recording.implementations.mock_capture import MockCapture
from recording.implementations.mock_location import MockLocationProvider
from recording.implementations.mock_overlay import MockOverlay
from recording.implementations.static_location import StaticLocationProvider
from recording.interfaces.location_interface import LocationProviderInterface
from recording.interfaces.overlay_interface import OverlayInterface
from recording.interfaces.video_capture_interface import VideoCaptureInterface

# Type alias for better type hints
CaptureMode = Literal["auto", "real", "mock"]


class RecordingFactory:
    """
    Factory for creating capture, overlay and location implementations.

    Usage:
        # Auto-detect (uses FFmpeg if available, mock otherwise)
        capture = RecordingFactory.create_capture()

        # Force mock mode (useful for testing)
        capture = RecordingFactory.create_capture(mode="mock")

        # Force real capture (raises error if not available)
        capture = RecordingFactory.create_capture(mode="real")
    """

    _logger = logging.getLogger(__name__)

    @classmethod
    def create_capture(
        cls,
        mode: CaptureMode = "auto",
        camera_device: Optional[str] = None,
    ) -> VideoCaptureInterface:
        """
        Create a video capture instance.

        Raises:
            RuntimeError: If mode="real" but FFmpeg or the camera is missing
        """
        if mode == "mock":
            cls._logger.info("Creating Mock Capture")
            return MockCapture()

        capture = FFmpegCapture(camera_device) if camera_device else FFmpegCapture()

        if mode == "real":
            if not capture.is_available():
                raise RuntimeError(
                    "Real capture requested but FFmpeg or camera not available"
                )
            cls._logger.info("Creating FFmpeg Capture (forced)")
            return capture

        # mode == "auto"
        if capture.is_available():
            cls._logger.info("Creating FFmpeg Capture (auto-detected)")
            return capture

        cls._logger.warning("FFmpeg or camera not available, using Mock Capture")
        return MockCapture()

    @classmethod
    def create_overlay(cls, mode: CaptureMode = "auto") -> OverlayInterface:
        if mode == "mock":
            return MockOverlay()

        overlay = FFmpegOverlay()
        if mode == "real" or overlay.is_available():
            return overlay

        cls._logger.warning("FFmpeg not available, overlays disabled (mock)")
        return MockOverlay()

    @classmethod
    def create_location_provider(
        cls,
        mode: CaptureMode = "auto",
    ) -> LocationProviderInterface:
        if mode == "mock":
            return MockLocationProvider()
        return StaticLocationProvider()

    @classmethod
    def is_real_capture_available(cls) -> dict[str, bool]:
        """
        Check if real video capture is available.

        Returns:
            {'ffmpeg': bool, 'camera': bool}
        """
        capture = FFmpegCapture()
        overlay = FFmpegOverlay()
        return {
            'ffmpeg': overlay.is_available(),
            'camera': capture.is_available(),
        }


# Convenience functions for quick creation

def create_capture(force_mock: bool = False) -> VideoCaptureInterface:
    """
    Quick capture creation.

    Example:
        capture = create_capture()
        capture = create_capture(force_mock=True)
    """
    return RecordingFactory.create_capture(mode="mock" if force_mock else "auto")


def create_overlay(force_mock: bool = False) -> OverlayInterface:
    return RecordingFactory.create_overlay(mode="mock" if force_mock else "auto")


def create_location_provider(force_mock: bool = False) -> LocationProviderInterface:
    return RecordingFactory.create_location_provider(
        mode="mock" if force_mock else "auto"
    )
