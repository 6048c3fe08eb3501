"""
Validation Utilities

Functions for inspecting finalized segment files.
Uses ffprobe to read the container duration.
"""

import json
import logging
import subprocess
from pathlib import Path
from typing import Callable, Optional

from config.settings import FFPROBE_TIMEOUT_SECONDS


logger = logging.getLogger(__name__)


def probe_duration_ms(file_path: Path) -> Optional[int]:
    """
    Get video duration in milliseconds using ffprobe.

    Args:
        file_path: Path to video file

    Returns:
        Duration in ms, or None if ffprobe is missing or cannot read the file

    Example:
        duration = probe_duration_ms(Path("/path/to/video.mp4"))
        if duration:
            print(f"Video is {duration / 1000:.1f} seconds long")
    """
    try:
        result = subprocess.run(
            [
                'ffprobe',
                '-v', 'error',
                '-show_entries', 'format=duration',
                '-of', 'json',
                str(file_path)
            ],
            capture_output=True,
            timeout=FFPROBE_TIMEOUT_SECONDS,
            text=True,
            check=False
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"Error running ffprobe on {file_path.name}: {e}")
        return None

    if result.returncode != 0:
        logger.warning(f"Failed to get duration for {file_path.name}")
        return None

    try:
        data = json.loads(result.stdout)
        duration_str = data.get('format', {}).get('duration')
        if duration_str:
            return int(float(duration_str) * 1000)
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning(f"Unreadable ffprobe output for {file_path.name}: {e}")

    return None


def resolve_duration_ms(
    file_path: Path,
    duration_hint_ms: Optional[int],
    configured_ms: int,
    probe: Callable[[Path], Optional[int]] = probe_duration_ms,
) -> int:
    """
    Pick the best known duration for a finalized segment.

    Order: measured from the file, then the capture's hint, then the
    configured segment length.
    """
    measured = probe(file_path)
    if measured:
        return measured
    if duration_hint_ms:
        logger.debug(f"Using capture duration hint for {file_path.name}")
        return duration_hint_ms
    logger.debug(f"Using configured duration for {file_path.name}")
    return configured_ms
