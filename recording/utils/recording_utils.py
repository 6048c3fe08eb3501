"""
Recording Utilities

Shared formatting helpers for the recorder and the overlay renderers.
"""

from datetime import datetime
from typing import Optional

from recording.interfaces.location_interface import LocationFix

OVERLAY_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
NO_LOCATION_TEXT = "GPS: N/A"


def format_coordinates(location: Optional[LocationFix]) -> str:
    """
    Format a position with hemisphere letters.

    Example:
        format_coordinates(LocationFix(48.8584, -2.2945))
        # Returns: "48.858400 N 2.294500 W"
    """
    if location is None:
        return NO_LOCATION_TEXT

    lat_dir = "N" if location.latitude >= 0 else "S"
    lon_dir = "E" if location.longitude >= 0 else "W"
    return (
        f"{abs(location.latitude):.6f} {lat_dir} "
        f"{abs(location.longitude):.6f} {lon_dir}"
    )


def build_overlay_text(timestamp: datetime, location: Optional[LocationFix]) -> str:
    """
    Build the two-line overlay text: time, then position.

    Example:
        build_overlay_text(datetime(2025, 10, 4, 14, 30, 25), None)
        # Returns: "2025-10-04 14:30:25\\nGPS: N/A"
    """
    return f"{timestamp.strftime(OVERLAY_TIME_FORMAT)}\n{format_coordinates(location)}"


def format_duration(seconds: float) -> str:
    """
    Format duration in seconds to human-readable string.

    Example:
        format_duration(630) -> "10:30"
        format_duration(3725) -> "1:02:05"
    """
    total = int(seconds)
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
