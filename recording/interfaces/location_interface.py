"""
Location Interface

Read-only source of the current best-known position.
Acquisition itself (GPS hardware, gpsd, phone) is outside this project.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class LocationFix:
    """One position sample"""

    latitude: float
    longitude: float
    accuracy_m: Optional[float] = None
    timestamp: datetime = field(default_factory=datetime.now)


class LocationProviderInterface(ABC):
    """
    Best-effort location source.

    The recorder calls start_updates() when a session starts and
    stop_updates() when it ends; current_location() may return None at
    any time.
    """

    @abstractmethod
    def start_updates(self) -> None:
        pass

    @abstractmethod
    def stop_updates(self) -> None:
        pass

    @abstractmethod
    def current_location(self) -> Optional[LocationFix]:
        pass

    @abstractmethod
    def is_active(self) -> bool:
        pass
