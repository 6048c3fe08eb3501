"""
FFmpeg Overlay Implementation

Burns a timestamp and position into a finalized segment with FFmpeg's
drawtext filter. The overlaid copy replaces the original on success.
"""

import logging
import shutil
import subprocess
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional

from config.settings import OVERLAY_SUFFIX, OVERLAY_TIMEOUT
from recording.constants import get_overlay_command
from recording.interfaces.location_interface import LocationFix
from recording.interfaces.overlay_interface import OverlayInterface, OverlayResult
from recording.utils.recording_utils import build_overlay_text


class FFmpegOverlay(OverlayInterface):
    """
    Overlay renderer backed by FFmpeg.

    Re-encodes the video stream, so it is slow on a Pi; the recorder runs it
    once per finalized segment.
    """

    def __init__(self, timeout: float = OVERLAY_TIMEOUT):
        self.logger = logging.getLogger(__name__)
        self.timeout = timeout

    def is_available(self) -> bool:
        return shutil.which("ffmpeg") is not None

    def burn_overlay(
        self,
        video_file: Path,
        timestamp: datetime,
        location: Optional[LocationFix] = None,
    ) -> OverlayResult:
        if not video_file.exists():
            return OverlayResult(video_file, False, f"File not found: {video_file}")

        if not self.is_available():
            return OverlayResult(video_file, False, "FFmpeg not found")

        output_file = video_file.with_name(
            f"{video_file.stem}{OVERLAY_SUFFIX}{video_file.suffix}"
        )
        text = build_overlay_text(timestamp, location)

        # drawtext reads from a file so the text needs no filter escaping
        with tempfile.NamedTemporaryFile(
            "w", suffix=".txt", delete=False, encoding="utf-8"
        ) as text_file:
            text_file.write(text)
            text_path = Path(text_file.name)

        try:
            command = get_overlay_command(video_file, output_file, text_path)
            self.logger.debug(f"Overlay command: {' '.join(command)}")

            result = subprocess.run(
                command,
                capture_output=True,
                timeout=self.timeout,
            )

            if result.returncode != 0:
                error = result.stderr.decode("utf-8", errors="ignore").strip()
                return self._failed(video_file, output_file, f"FFmpeg failed: {error}")

            if not output_file.exists() or output_file.stat().st_size == 0:
                return self._failed(video_file, output_file, "Overlay output is empty")

            # Atomic: the original stays in place until the overlay lands on it
            output_file.replace(video_file)

            self.logger.info(f"Overlay applied: {video_file.name}")
            return OverlayResult(video_file, True)

        except subprocess.TimeoutExpired:
            return self._failed(
                video_file, output_file, f"Overlay timed out after {self.timeout}s"
            )
        except OSError as e:
            return self._failed(video_file, output_file, f"Overlay error: {e}")
        finally:
            text_path.unlink(missing_ok=True)

    def _failed(self, original: Path, partial: Path, error: str) -> OverlayResult:
        """Drop partial output and hand back the untouched original"""
        self.logger.warning(f"Overlay skipped for {original.name}: {error}")
        if not original.exists():
            # Never delete the last surviving copy of the recording
            self.logger.error(f"Original {original.name} missing, keeping {partial.name}")
            if partial.exists():
                return OverlayResult(partial, False, error)
            return OverlayResult(original, False, error)
        try:
            partial.unlink(missing_ok=True)
        except OSError as e:
            self.logger.error(f"Could not remove partial overlay {partial}: {e}")
        return OverlayResult(original, False, error)
