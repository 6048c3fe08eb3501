"""
Overlay Interface

Abstract interface for the overlay renderer that burns a timestamp and
location into a finalized segment.

Overlay is cosmetic: a failed burn-in must hand back the original file
untouched so the recording is never lost.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from recording.interfaces.location_interface import LocationFix


@dataclass
class OverlayResult:
    """
    Outcome of an overlay pass.

    Attributes:
        file: File to keep (overlaid file on success, original otherwise)
        applied: True if the overlay was burned in
        error: Failure description when applied is False
    """

    file: Path
    applied: bool
    error: Optional[str] = None


class OverlayInterface(ABC):
    """Contract for overlay renderers"""

    @abstractmethod
    def burn_overlay(
        self,
        video_file: Path,
        timestamp: datetime,
        location: Optional[LocationFix] = None,
    ) -> OverlayResult:
        """
        Burn overlay text into a video file.

        Args:
            video_file: Finalized segment
            timestamp: Segment start time shown in the overlay
            location: Position shown in the overlay, if known

        Returns:
            OverlayResult; on failure `file` is the untouched original
        """
        pass


class OverlayError(Exception):
    """Overlay renderer failure. Always contained by the recorder."""
    pass
