"""
Space Manager

Reports disk usage for the filesystem holding the recordings.
Single responsibility: Disk space measurement only.
"""

import logging
import shutil
from pathlib import Path
from typing import Callable, Optional, Tuple

from storage.interfaces.ledger_interface import StorageError

# (total_bytes, used_bytes, free_bytes)
DiskUsage = Tuple[int, int, int]


class SpaceManager:
    """
    Measures disk space.

    The usage source is injectable so quota behaviour can be tested
    against a simulated disk.

    Usage:
        space = SpaceManager(Path("/home/pi/recordings"))
        total, used, free = space.get_disk_usage()
    """

    def __init__(
        self,
        storage_base: Path,
        usage_provider: Optional[Callable[[], DiskUsage]] = None,
    ):
        """
        Initialize space manager.

        Args:
            storage_base: Base storage directory
            usage_provider: Returns (total, used, free); None = shutil.disk_usage
        """
        self.logger = logging.getLogger(__name__)
        self.storage_base = Path(storage_base)
        self._usage_provider = usage_provider

        self.logger.info(f"Space manager initialized (path: {self.storage_base})")

    def get_disk_usage(self) -> DiskUsage:
        """
        Get disk usage statistics.

        Returns:
            Tuple of (total_bytes, used_bytes, free_bytes)

        Raises:
            StorageError: If unable to get disk stats
        """
        if self._usage_provider is not None:
            return self._usage_provider()

        try:
            usage = shutil.disk_usage(self.storage_base)
            return usage.total, usage.used, usage.free

        except OSError as e:
            raise StorageError(f"Failed to get disk usage: {e}") from e

    def get_used_percent(self) -> float:
        """
        Percentage of the filesystem in use.

        Returns:
            0.0 - 100.0 (0.0 when total size is unknown)
        """
        total, used, _ = self.get_disk_usage()
        if total <= 0:
            return 0.0
        return used / total * 100

    def get_free_space(self) -> int:
        """Free space in bytes"""
        _, _, free = self.get_disk_usage()
        return free
