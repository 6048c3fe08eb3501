"""
Camera Manager

Camera lifecycle for segmented recording: bind the device for a session,
hand out one capture per segment, and watch capture health.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from config.app_settings import VideoQuality
from config.settings import MAX_HEALTH_FAILURES
from recording.interfaces.video_capture_interface import (
    CaptureError,
    CaptureHandle,
    CaptureResult,
    VideoCaptureInterface,
)


class CameraManager:
    """
    Manages camera lifecycle and health monitoring.

    Thin wrapper around VideoCaptureInterface that adds:
    - Session binding (open/close)
    - Consecutive health failure tracking
    - Status reporting

    Usage:
        camera = CameraManager(capture)
        camera.open(VideoQuality.HD)
        handle = camera.start_segment(Path("seg1.mp4"), audio_enabled=True)
        result = camera.finish_segment(handle)
        camera.close()
    """

    def __init__(
        self,
        capture: VideoCaptureInterface,
        max_health_failures: int = MAX_HEALTH_FAILURES,
    ):
        """
        Initialize camera manager.

        Args:
            capture: Video capture implementation
            max_health_failures: Consecutive failed checks before the
                capture is reported as critical
        """
        self.logger = logging.getLogger(__name__)
        self.capture = capture
        self.max_health_failures = max_health_failures

        self.quality: Optional[VideoQuality] = None
        self._active: Optional[CaptureHandle] = None
        self._consecutive_health_failures = 0
        self._last_health_check: Optional[Dict[str, Any]] = None

        self.logger.info("Camera Manager initialized")

    # =========================================================================
    # SESSION
    # =========================================================================

    def open(self, quality: VideoQuality) -> None:
        """
        Bind the camera for a recording session.

        Raises:
            CaptureError: If the device is missing or busy
        """
        self.capture.open(quality)
        self.quality = quality
        self._consecutive_health_failures = 0
        self._last_health_check = None
        self.logger.info(f"Camera opened ({quality.label})")

    def is_open(self) -> bool:
        return self.quality is not None

    def close(self) -> None:
        """Release the device. Aborts a segment still in progress."""
        if self._active is not None:
            self.abort_segment(self._active)

        try:
            self.capture.cleanup()
        except CaptureError as e:
            self.logger.error(f"Error during capture cleanup: {e}")

        self.quality = None
        self.logger.info("Camera closed")

    # Alias used at shutdown
    cleanup = close

    # =========================================================================
    # SEGMENTS
    # =========================================================================

    def start_segment(self, output_file: Path, audio_enabled: bool) -> CaptureHandle:
        """
        Start capturing one segment.

        Raises:
            CaptureError: If the camera is not open or capture fails to start
        """
        if self.quality is None:
            raise CaptureError("Camera not opened")

        handle = self.capture.start_capture(output_file, audio_enabled)
        self._active = handle
        self._consecutive_health_failures = 0
        self._last_health_check = None

        self.logger.info(
            f"Segment capture started: {output_file.name} "
            f"(audio: {'on' if audio_enabled else 'off'})"
        )
        return handle

    def finish_segment(self, handle: CaptureHandle) -> CaptureResult:
        """Stop capture and wait for the file to be finalized"""
        try:
            result = self.capture.stop_capture(handle)
        finally:
            if self._active is handle:
                self._active = None

        if result.ok:
            self.logger.info(f"Segment capture finished: {result.file.name}")
        else:
            self.logger.error(f"Segment finalize failed: {result.error}")
        return result

    def abort_segment(self, handle: CaptureHandle) -> None:
        """Stop capture, ignoring the outcome. Used on the error path."""
        try:
            self.capture.stop_capture(handle)
        except CaptureError as e:
            self.logger.warning(f"Error aborting segment: {e}")
        finally:
            if self._active is handle:
                self._active = None

    def is_recording(self) -> bool:
        return self._active is not None and self.capture.is_capturing()

    # =========================================================================
    # HEALTH
    # =========================================================================

    def check_health(self) -> Dict[str, Any]:
        """
        Check capture health.

        Failures only count while a segment is active. After
        max_health_failures consecutive failures 'critical' is True.

        Returns:
            {
                'is_healthy': bool,
                'error_message': str or None,
                'consecutive_failures': int,
                'critical': bool,
                ...
            }
        """
        health = self.capture.check_health()

        if self._active is not None:
            if not health["is_healthy"]:
                self._consecutive_health_failures += 1
                self.logger.warning(
                    f"Camera health check failed "
                    f"(failures: {self._consecutive_health_failures}): "
                    f"{health.get('error_message') or 'Unknown error'}"
                )
            else:
                if self._consecutive_health_failures > 0:
                    self.logger.info("Camera health recovered")
                self._consecutive_health_failures = 0

        health["consecutive_failures"] = self._consecutive_health_failures
        health["critical"] = (
            self._consecutive_health_failures >= self.max_health_failures
        )

        self._last_health_check = health
        return health

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_available": self.capture.is_available(),
            "is_open": self.is_open(),
            "quality": self.quality.label if self.quality else None,
            "is_recording": self.is_recording(),
            "output_file": str(self._active.output_file) if self._active else None,
            "health": self._last_health_check,
        }
