"""
Mock Location Provider

Test double whose position can be changed at any time.
"""

import logging
from typing import Optional

from recording.interfaces.location_interface import (
    LocationFix,
    LocationProviderInterface,
)


class MockLocationProvider(LocationProviderInterface):
    """Settable location source with call counters"""

    def __init__(self, location: Optional[LocationFix] = None):
        self.logger = logging.getLogger(__name__)
        self._location = location
        self._active = False
        self.start_count = 0
        self.stop_count = 0

    def start_updates(self) -> None:
        self._active = True
        self.start_count += 1

    def stop_updates(self) -> None:
        self._active = False
        self.stop_count += 1

    def current_location(self) -> Optional[LocationFix]:
        return self._location

    def is_active(self) -> bool:
        return self._active

    def set_location(self, latitude: float, longitude: float) -> None:
        self._location = LocationFix(latitude=latitude, longitude=longitude)
        self.logger.debug(f"[MOCK] Location set: {latitude}, {longitude}")

    def clear_location(self) -> None:
        self._location = None
