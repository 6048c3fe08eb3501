"""
Video Capture Interface

Abstract interface for the capture collaborator.

The segment recorder only needs three things from a capture system: bind a
device, start writing into a file, and stop (blocking until the file is
finalized). Everything about codecs and devices stays behind this contract.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from config.app_settings import VideoQuality


@dataclass
class CaptureHandle:
    """Token for one running capture, returned by start_capture()"""

    output_file: Path
    started_at: float  # time.monotonic() at start
    audio_enabled: bool = True


@dataclass
class CaptureResult:
    """
    Outcome of finalizing a capture.

    Attributes:
        file: Path of the written file
        duration_hint_ms: Capture's own estimate of the length, if any
        error: Set when the file could not be finalized
    """

    file: Path
    duration_hint_ms: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class VideoCaptureInterface(ABC):
    """
    Abstract base class for video capture systems.

    Implementations:
    - FFmpegCapture: ffmpeg subprocess reading a V4L2 device
    - MockCapture: writes fake files for tests
    """

    @abstractmethod
    def open(self, quality: VideoQuality) -> None:
        """
        Bind the capture device for a session.

        Raises:
            CaptureError: If the device is missing or unusable
        """
        pass

    @abstractmethod
    def start_capture(
        self,
        output_file: Path,
        audio_enabled: bool = True,
    ) -> CaptureHandle:
        """
        Start capturing video to file.

        NON-BLOCKING beyond device warm-up: capture runs in the background.

        Raises:
            CaptureError: If capture cannot start
        """
        pass

    @abstractmethod
    def stop_capture(self, handle: CaptureHandle) -> CaptureResult:
        """
        Stop a capture and wait for its file to be finalized.

        Never raises for finalize problems; they are reported in
        CaptureResult.error.
        """
        pass

    @abstractmethod
    def is_capturing(self) -> bool:
        pass

    @abstractmethod
    def check_health(self) -> dict:
        """
        Check health of the running capture.

        Returns:
            {
                'is_healthy': bool,
                'error_message': str or None,
                'file_size_mb': float,
            }
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if capture software and device are present"""
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """
        Stop any capture and release the device.

        Safe to call repeatedly. Should never raise exceptions.
        """
        pass


class CaptureError(Exception):
    """
    Exception raised for video capture errors.

    Examples:
    - Camera not found
    - FFmpeg not installed
    - Camera already in use
    """
    pass


class CameraNotFoundError(CaptureError):
    """Camera device not found or not accessible"""
    pass


class CameraBusyError(CaptureError):
    """Camera is already in use by another process"""
    pass


class CaptureProcessError(CaptureError):
    """Error in capture process (FFmpeg crashed, file not finalized, etc.)"""
    pass
