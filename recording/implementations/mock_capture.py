"""
Mock Video Capture Implementation

Simulated video capture for testing without real camera/FFmpeg.
Writes small fake MP4 files so file handling logic runs for real.
"""

import logging
import threading
import time
from pathlib import Path
from typing import List, Optional

from config.app_settings import VideoQuality
from recording.interfaces.video_capture_interface import (
    CaptureError,
    CaptureHandle,
    CaptureResult,
    VideoCaptureInterface,
)

FAKE_MP4_HEADER = b'\x00\x00\x00\x20ftypmp42'


class MockCapture(VideoCaptureInterface):
    """
    Mock video capture for testing.

    Usage:
        capture = MockCapture(file_size_bytes=1024)
        capture.open(VideoQuality.HD)
        handle = capture.start_capture(Path("test.mp4"))
        result = capture.stop_capture(handle)
    """

    def __init__(
        self,
        file_size_bytes: int = 64 * 1024,
        duration_hint_ms: Optional[int] = None,
    ):
        """
        Initialize mock capture.

        Args:
            file_size_bytes: Size of every fake file written at stop
            duration_hint_ms: Hint returned at stop (None = no hint)
        """
        self.logger = logging.getLogger(__name__)
        self.file_size_bytes = file_size_bytes
        self.duration_hint_ms = duration_hint_ms

        # State tracking
        self.quality: Optional[VideoQuality] = None
        self._handle: Optional[CaptureHandle] = None

        # Verification helpers
        self.started_files: List[Path] = []
        self.finalized_files: List[Path] = []
        self.open_count = 0
        self.cleanup_count = 0

        # Configuration for test scenarios
        self._should_fail_open = False
        self._should_fail_start = False
        self._finalize_error: Optional[str] = None
        self._is_healthy = True
        self._stop_gate: Optional[threading.Event] = None

        # Set once stop_capture() has been entered
        self.stop_entered = threading.Event()

        self.logger.info("Mock Capture initialized")

    def open(self, quality: VideoQuality) -> None:
        if self._should_fail_open:
            self.logger.error("[MOCK] Simulated device bind failure")
            raise CaptureError("Simulated camera not available")

        self.quality = quality
        self.open_count += 1
        self.logger.debug(f"[MOCK] Camera bound at {quality.resolution}")

    def start_capture(
        self,
        output_file: Path,
        audio_enabled: bool = True,
    ) -> CaptureHandle:
        if self.quality is None:
            raise CaptureError("Capture device not opened")

        if self._handle is not None:
            raise CaptureError("[MOCK] Already capturing")

        if self._should_fail_start:
            self.logger.error("[MOCK] Simulated start failure")
            raise CaptureError("Simulated camera failure")

        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.touch()

        self._handle = CaptureHandle(
            output_file=output_file,
            started_at=time.monotonic(),
            audio_enabled=audio_enabled,
        )
        self._is_healthy = True
        self.started_files.append(output_file)

        self.logger.info(f"[MOCK] Capture started: {output_file}")
        return self._handle

    def stop_capture(self, handle: CaptureHandle) -> CaptureResult:
        self.stop_entered.set()
        if self._stop_gate is not None:
            self.logger.debug("[MOCK] Finalize held until gate opens")
            self._stop_gate.wait()

        if handle is not self._handle:
            return CaptureResult(
                file=handle.output_file,
                error="No matching capture is running",
            )

        self._handle = None

        if self._finalize_error:
            self.logger.error(f"[MOCK] Simulated finalize error: {self._finalize_error}")
            return CaptureResult(file=handle.output_file, error=self._finalize_error)

        self._finalize_file(handle.output_file)
        self.finalized_files.append(handle.output_file)

        return CaptureResult(
            file=handle.output_file,
            duration_hint_ms=self.duration_hint_ms,
        )

    def _finalize_file(self, output_file: Path) -> None:
        """Write fake data to output file."""
        padding = max(0, self.file_size_bytes - len(FAKE_MP4_HEADER))
        with open(output_file, 'wb') as f:
            f.write(FAKE_MP4_HEADER)
            f.write(b'\x00' * padding)

        self.logger.info(f"[MOCK] Segment saved: {output_file.name}")

    def is_capturing(self) -> bool:
        return self._handle is not None

    def check_health(self) -> dict:
        capturing = self._handle is not None
        return {
            'is_healthy': self._is_healthy and capturing,
            'error_message': (
                None if self._is_healthy and capturing
                else "Simulated capture crash" if capturing
                else "Capture not running"
            ),
            'file_size_mb': 0.0,
        }

    def is_available(self) -> bool:
        """Mock capture is always available"""
        return True

    def cleanup(self) -> None:
        self.cleanup_count += 1
        self._handle = None
        self.quality = None
        self.logger.debug("[MOCK] Cleanup")

    # =========================================================================
    # TESTING HELPER METHODS (not part of VideoCaptureInterface)
    # =========================================================================

    def simulate_open_failure(self) -> None:
        """Make the next open() raise CaptureError"""
        self._should_fail_open = True

    def simulate_start_failure(self) -> None:
        """Make every start_capture() raise CaptureError"""
        self._should_fail_start = True

    def simulate_finalize_error(self, message: str = "Simulated finalize error") -> None:
        """Make stop_capture() report a finalize error"""
        self._finalize_error = message

    def simulate_crash(self) -> None:
        """Report unhealthy from now until the next start_capture()"""
        self._is_healthy = False

    def hold_finalize(self, gate: threading.Event) -> None:
        """Make stop_capture() wait until gate is set (slow finalize)"""
        self.stop_entered.clear()
        self._stop_gate = gate

    def reset_test_config(self) -> None:
        """Reset test configuration to normal operation."""
        self._should_fail_open = False
        self._should_fail_start = False
        self._finalize_error = None
        self._is_healthy = True
        self._stop_gate = None
