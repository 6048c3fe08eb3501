"""
FFmpeg Video Capture Implementation

Real video capture using an FFmpeg subprocess per segment.
Captures from a V4L2 camera (plus PulseAudio microphone) into MP4 files.
"""

import logging
import shutil
import subprocess
import time
from pathlib import Path
from typing import Optional, Union

from config.app_settings import VideoQuality
from config.settings import (
    CAMERA_WARMUP_TIME,
    CAPTURE_STOP_TIMEOUT,
    DEFAULT_CAMERA_DEVICE,
    VIDEO_FPS,
)
from recording.constants import get_ffmpeg_command, validate_camera_device
from recording.interfaces.video_capture_interface import (
    CameraBusyError,
    CameraNotFoundError,
    CaptureError,
    CaptureHandle,
    CaptureProcessError,
    CaptureResult,
    VideoCaptureInterface,
)


class FFmpegCapture(VideoCaptureInterface):
    """
    Video capture using FFmpeg.

    One FFmpeg process runs per segment. Stopping sends SIGTERM so FFmpeg
    can flush and close the file, then waits for it to exit.

    Usage:
        capture = FFmpegCapture(camera_device="/dev/video0")
        capture.open(VideoQuality.HD)
        handle = capture.start_capture(Path("segment.mp4"))
        # ... recording happens in background ...
        result = capture.stop_capture(handle)
        capture.cleanup()
    """

    def __init__(
        self,
        camera_device: str = DEFAULT_CAMERA_DEVICE,
        fps: int = VIDEO_FPS,
    ):
        """
        Initialize FFmpeg capture.

        Args:
            camera_device: Path to camera device (e.g., /dev/video0)
            fps: Frame rate
        """
        self.logger = logging.getLogger(__name__)

        self.camera_device = camera_device
        self.fps = fps
        self.quality: Optional[VideoQuality] = None

        self._process: Optional[subprocess.Popen] = None
        self._handle: Optional[CaptureHandle] = None

        self.logger.info(
            f"FFmpeg Capture initialized (camera: {camera_device}, fps: {fps})"
        )

    def open(self, quality: VideoQuality) -> None:
        if not shutil.which("ffmpeg"):
            raise CaptureError(
                "FFmpeg not found. Install with: sudo apt-get install ffmpeg"
            )
        if not validate_camera_device(self.camera_device):
            raise CameraNotFoundError(
                f"Camera device not found: {self.camera_device}"
            )

        self.quality = quality
        self.logger.info(f"Camera bound: {self.camera_device} at {quality.resolution}")

    def start_capture(
        self,
        output_file: Path,
        audio_enabled: bool = True,
    ) -> CaptureHandle:
        if self.quality is None:
            raise CaptureError("Capture device not opened")

        if self.is_capturing():
            raise CaptureError("Already capturing, cannot start new capture")

        output_file.parent.mkdir(parents=True, exist_ok=True)

        command = get_ffmpeg_command(
            input_device=self.camera_device,
            output_file=str(output_file),
            quality=self.quality,
            audio_enabled=audio_enabled,
            fps=self.fps,
        )

        self.logger.info(f"Starting FFmpeg capture to: {output_file}")
        self.logger.debug(f"FFmpeg command: {' '.join(command)}")

        try:
            # stdin closed so FFmpeg never waits for keyboard input;
            # stderr kept for error reporting
            self._process = subprocess.Popen(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
            )
        except FileNotFoundError as e:
            raise CaptureError(
                "FFmpeg not found. Install with: sudo apt-get install ffmpeg"
            ) from e
        except OSError as e:
            raise CaptureProcessError(f"Failed to launch FFmpeg: {e}") from e

        # Give FFmpeg time to initialize
        time.sleep(CAMERA_WARMUP_TIME)

        if self._process.poll() is not None:
            _, stderr = self._process.communicate()
            error_msg = stderr.decode("utf-8", errors="ignore")
            self._process = None

            if "Device or resource busy" in error_msg:
                raise CameraBusyError(f"Camera is busy: {self.camera_device}")
            raise CaptureProcessError(f"FFmpeg failed to start: {error_msg}")

        self._handle = CaptureHandle(
            output_file=output_file,
            started_at=time.monotonic(),
            audio_enabled=audio_enabled,
        )
        self.logger.info(f"Capture started (PID: {self._process.pid})")
        return self._handle

    def stop_capture(self, handle: CaptureHandle) -> CaptureResult:
        if self._process is None or handle is not self._handle:
            return CaptureResult(
                file=handle.output_file,
                error="No matching capture is running",
            )

        process = self._process
        duration_hint_ms = int((time.monotonic() - handle.started_at) * 1000)
        error: Optional[str] = None

        self.logger.info("Stopping capture...")

        try:
            # SIGTERM lets FFmpeg write the trailer; SIGKILL would corrupt the file
            process.terminate()
            try:
                _, stderr = process.communicate(timeout=CAPTURE_STOP_TIMEOUT)
                if process.returncode not in (0, 255):
                    self.logger.warning(
                        f"FFmpeg exited with code {process.returncode}: "
                        f"{stderr.decode('utf-8', errors='ignore')}"
                    )
            except subprocess.TimeoutExpired:
                self.logger.warning("FFmpeg didn't stop gracefully, force killing")
                process.kill()
                process.wait()
        finally:
            self._process = None
            self._handle = None

        output = handle.output_file
        if not output.exists():
            error = f"Output file was not created: {output}"
        elif output.stat().st_size == 0:
            error = f"Output file is empty: {output}"

        if error:
            self.logger.error(error)
        else:
            self.logger.info(
                f"Segment finalized: {output.name} "
                f"({output.stat().st_size / (1024 * 1024):.1f} MB)"
            )

        return CaptureResult(file=output, duration_hint_ms=duration_hint_ms, error=error)

    def is_capturing(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def check_health(self) -> dict:
        health: dict[str, Union[bool, str, float, None]] = {
            "is_healthy": True,
            "error_message": None,
            "file_size_mb": 0.0,
        }

        if self._process is None or self._handle is None:
            health["is_healthy"] = False
            health["error_message"] = "Capture not running"
            return health

        if self._process.poll() is not None:
            health["is_healthy"] = False
            health["error_message"] = (
                f"FFmpeg exited unexpectedly (code {self._process.returncode})"
            )
            return health

        output = self._handle.output_file
        if output.exists():
            health["file_size_mb"] = output.stat().st_size / (1024 * 1024)

        elapsed = time.monotonic() - self._handle.started_at
        if health["file_size_mb"] == 0.0 and elapsed > 5.0:
            health["is_healthy"] = False
            health["error_message"] = "No data being written to file"

        return health

    def is_available(self) -> bool:
        if not shutil.which("ffmpeg"):
            self.logger.warning("FFmpeg not found in PATH")
            return False

        if not validate_camera_device(self.camera_device):
            self.logger.warning(f"Camera not found: {self.camera_device}")
            return False

        return True

    def cleanup(self) -> None:
        if self._process is not None:
            try:
                self._process.kill()
                self._process.wait(timeout=1.0)
            except (OSError, subprocess.TimeoutExpired) as e:
                self.logger.error(f"Error killing FFmpeg: {e}")
            self._process = None
            self._handle = None

        self.quality = None
        self.logger.debug("FFmpeg Capture released")
