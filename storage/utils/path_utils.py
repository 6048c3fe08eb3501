"""
Path Utilities

Helper functions for segment file naming and directory operations.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List

from config.settings import SEGMENT_FILENAME_EXTENSION, SEGMENT_FILENAME_PATTERN


logger = logging.getLogger(__name__)


def generate_segment_filename(recorded_at: datetime) -> str:
    """
    Build the file name for a segment starting at recorded_at.

    Example:
        generate_segment_filename(datetime(2025, 10, 4, 14, 30, 25))
        # Returns: "EvidenceCam_2025-10-04_14-30-25.mp4"
    """
    return recorded_at.strftime(SEGMENT_FILENAME_PATTERN)


def unique_path(directory: Path, filename: str) -> Path:
    """
    Return directory/filename, suffixed with _1, _2, ... if it exists.

    Two segments can start within the same second (a rollover right after
    a start), so the timestamp alone is not unique.
    """
    candidate = directory / filename
    stem, suffix = candidate.stem, candidate.suffix
    counter = 1

    while candidate.exists():
        candidate = directory / f"{stem}_{counter}{suffix}"
        counter += 1

    return candidate


def ensure_directory(path: Path, create: bool = True) -> bool:
    """
    Ensure directory exists.

    Args:
        path: Directory path
        create: If True, create if doesn't exist

    Returns:
        True if directory exists or was created
    """
    try:
        if path.exists():
            if not path.is_dir():
                logger.error(f"Path exists but is not a directory: {path}")
                return False
            return True

        if create:
            path.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Created directory: {path}")
            return True

        return False

    except OSError as e:
        logger.error(f"Failed to create directory {path}: {e}")
        return False


def list_segment_files(directory: Path) -> List[Path]:
    """List segment files in a directory, oldest name first"""
    if not directory.is_dir():
        return []
    return sorted(directory.glob(f"*{SEGMENT_FILENAME_EXTENSION}"))


def format_size(bytes: int) -> str:
    """
    Format byte size as human-readable string.

    Example:
        print(format_size(1_500_000_000))  # "1.40 GB"
    """
    size = float(bytes)
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} PB"
