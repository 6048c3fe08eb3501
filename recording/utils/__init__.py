"""
Recording Utilities Package

Exposes shared utility functions for recording operations.
"""

from recording.utils.recording_utils import (
    build_overlay_text,
    format_coordinates,
    format_duration,
)

# Public API
__all__ = [
    "build_overlay_text",
    "format_coordinates",
    "format_duration",
]
