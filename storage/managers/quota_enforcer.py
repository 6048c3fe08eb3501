"""
Quota Enforcer

Keeps disk usage below a percentage threshold by evicting the oldest
finalized segments.
Single responsibility: Eviction policy only.
"""

import logging
from typing import TYPE_CHECKING, Callable, List, Optional

from storage.models.segment import Segment

if TYPE_CHECKING:
    from storage.controllers.storage_controller import StorageController


class QuotaEnforcer:
    """
    Deletes oldest segments until used space is under the threshold.

    Only ledger-resident segments are candidates, so the file currently
    being recorded is never touched. Segments that are mid-upload are
    skipped as well (see PROTECTED_STATUSES).

    The threshold is trusted as given; clamping happens in the settings
    layer.

    Usage:
        quota = QuotaEnforcer(storage_controller)
        deleted = quota.enforce(max_storage_percent=90)
    """

    def __init__(self, storage: "StorageController"):
        """
        Initialize quota enforcer.

        Args:
            storage: Controller used to measure usage and delete segments
        """
        self.logger = logging.getLogger(__name__)
        self.storage = storage

        # Event callbacks
        self.on_segment_evicted: Optional[Callable[[Segment], None]] = None

        self.logger.info("Quota enforcer initialized")

    def enforce(self, max_storage_percent: float) -> int:
        """
        Evict oldest segments until used percent < max_storage_percent.

        Runs synchronously in the caller's thread.

        Args:
            max_storage_percent: Threshold in percent (e.g. 90)

        Returns:
            Number of segments deleted

        Raises:
            StorageError: If disk usage or the ledger cannot be read
        """
        evicted: List[Segment] = []

        while True:
            used_percent = self.storage.space.get_used_percent()
            if used_percent < max_storage_percent:
                break

            segment = self.storage.delete_oldest_segment()
            if segment is None:
                self.logger.warning(
                    f"Storage at {used_percent:.1f}% (limit {max_storage_percent}%) "
                    f"but no evictable segments remain"
                )
                break

            evicted.append(segment)
            self.logger.info(
                f"Evicted {segment.file_name} "
                f"(usage was {used_percent:.1f}%, limit {max_storage_percent}%)"
            )
            self._trigger_evicted(segment)

        if evicted:
            self.logger.info(f"Quota enforcement deleted {len(evicted)} segment(s)")

        return len(evicted)

    def _trigger_evicted(self, segment: Segment) -> None:
        if self.on_segment_evicted:
            try:
                self.on_segment_evicted(segment)
            except Exception as e:
                self.logger.error(f"Error in eviction callback: {e}")
