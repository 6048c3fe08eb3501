"""
Mock Overlay Implementation

Records overlay requests without touching the video files.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from recording.interfaces.location_interface import LocationFix
from recording.interfaces.overlay_interface import (
    OverlayError,
    OverlayInterface,
    OverlayResult,
)


class MockOverlay(OverlayInterface):
    """
    Mock overlay renderer for testing.

    Usage:
        overlay = MockOverlay()
        overlay.burn_overlay(Path("seg.mp4"), datetime.now())
        assert overlay.calls[0][0] == Path("seg.mp4")
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.calls: List[Tuple[Path, datetime, Optional[LocationFix]]] = []
        self._failure: Optional[str] = None
        self._raise = False

    def burn_overlay(
        self,
        video_file: Path,
        timestamp: datetime,
        location: Optional[LocationFix] = None,
    ) -> OverlayResult:
        self.calls.append((video_file, timestamp, location))

        if self._raise:
            raise OverlayError("Simulated overlay crash")

        if self._failure:
            self.logger.warning(f"[MOCK] Overlay failed: {self._failure}")
            return OverlayResult(video_file, False, self._failure)

        self.logger.debug(f"[MOCK] Overlay applied: {video_file.name}")
        return OverlayResult(video_file, True)

    # =========================================================================
    # TESTING HELPER METHODS
    # =========================================================================

    def simulate_failure(self, message: str = "Simulated overlay failure") -> None:
        self._failure = message

    def simulate_exception(self) -> None:
        self._raise = True

    def reset_test_config(self) -> None:
        self._failure = None
        self._raise = False
