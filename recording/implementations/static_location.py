"""
Static Location Provider

Reports a fixed position configured through the environment
(STATIC_LATITUDE / STATIC_LONGITUDE). Suitable for a parked camera.
"""

import logging
from typing import Optional

from config.settings import STATIC_LATITUDE, STATIC_LONGITUDE
from recording.interfaces.location_interface import (
    LocationFix,
    LocationProviderInterface,
)


def _parse_coordinate(raw: str, limit: float) -> Optional[float]:
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if -limit <= value <= limit else None


class StaticLocationProvider(LocationProviderInterface):
    """Fixed-position provider. Returns None when nothing is configured."""

    def __init__(
        self,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ):
        self.logger = logging.getLogger(__name__)

        if latitude is None and longitude is None:
            latitude = _parse_coordinate(STATIC_LATITUDE, 90.0)
            longitude = _parse_coordinate(STATIC_LONGITUDE, 180.0)

        self._fix: Optional[LocationFix] = None
        if latitude is not None and longitude is not None:
            self._fix = LocationFix(latitude=latitude, longitude=longitude)
            self.logger.info(f"Static location: {latitude}, {longitude}")
        else:
            self.logger.info("No static location configured")

        self._active = False

    def start_updates(self) -> None:
        self._active = True

    def stop_updates(self) -> None:
        self._active = False

    def current_location(self) -> Optional[LocationFix]:
        return self._fix

    def is_active(self) -> bool:
        return self._active
