"""
Storage Controller

High-level storage coordination for segments.
Owns the rule that a segment's file and its ledger row are deleted together,
and publishes storage statistics through an observable holder.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from config.settings import STORAGE_BASE_PATH
from core.observable import ObservableValue
from storage.constants import PROTECTED_STATUSES, UploadStatus
from storage.implementations.sqlite_ledger import SQLiteLedger
from storage.interfaces.ledger_interface import SegmentLedgerInterface, StorageError
from storage.managers.space_manager import SpaceManager
from storage.models.segment import Segment, StorageInfo
from storage.utils.path_utils import (
    ensure_directory,
    generate_segment_filename,
    unique_path,
)


class StorageController:
    """
    High-level storage controller.

    This class:
    - Allocates paths for new segment files
    - Records finalized segments in the ledger
    - Deletes segments (file + row as one unit)
    - Reports storage statistics

    Usage:
        storage = StorageController()
        storage.on_segment_deleted = lambda segment: print(segment.file_name)

        path = storage.new_segment_path(datetime.now())
        # ... record into path ...
        storage.save_segment(Segment.create(path, started, 30000, destination))
    """

    def __init__(
        self,
        ledger: Optional[SegmentLedgerInterface] = None,
        storage_base: Optional[Path] = None,
        space: Optional[SpaceManager] = None,
    ):
        """
        Initialize storage controller.

        Args:
            ledger: Segment ledger (None = SQLiteLedger in storage_base)
            storage_base: Directory for segment files (None = STORAGE_BASE_PATH)
            space: Disk usage source (None = SpaceManager on storage_base)
        """
        self.logger = logging.getLogger(__name__)

        self.storage_base = Path(storage_base or STORAGE_BASE_PATH)
        ensure_directory(self.storage_base)

        self.ledger = ledger or SQLiteLedger(self.storage_base)
        self.space = space or SpaceManager(self.storage_base)

        # Observable statistics (None until first refresh)
        self.storage_info: ObservableValue[Optional[StorageInfo]] = ObservableValue(
            None, name="storage info"
        )

        # Event callbacks
        self.on_segment_saved: Optional[Callable[[Segment], None]] = None
        self.on_segment_deleted: Optional[Callable[[Segment], None]] = None
        self.on_storage_error: Optional[Callable[[str], None]] = None

        self.logger.info(f"Storage controller initialized (path: {self.storage_base})")

    # =========================================================================
    # SEGMENT OPERATIONS
    # =========================================================================

    def new_segment_path(self, recorded_at: datetime) -> Path:
        """
        Allocate a file path for a segment starting at recorded_at.

        The file is not created here.
        """
        ensure_directory(self.storage_base)
        return unique_path(self.storage_base, generate_segment_filename(recorded_at))

    def save_segment(self, segment: Segment) -> Segment:
        """
        Record a finalized segment in the ledger.

        Args:
            segment: Segment whose file is complete on disk

        Returns:
            The stored segment

        Raises:
            StorageError: If the ledger write fails
        """
        try:
            self.ledger.insert(segment)
        except StorageError as e:
            self.logger.error(f"Failed to save segment {segment.file_name}: {e}")
            self._trigger_error(str(e))
            raise

        self.logger.info(
            f"Segment saved: {segment.file_name} "
            f"({segment.file_size_bytes / (1024**2):.2f} MB, "
            f"{segment.duration_ms} ms, {segment.upload_status.value})"
        )
        self._trigger_saved(segment)
        self.refresh_storage_info()
        return segment

    def delete_segment(
        self,
        segment: Segment,
        exclude_statuses: Iterable[UploadStatus] = (),
    ) -> bool:
        """
        Delete a segment's ledger row, then its file.

        The file is only touched once the row is gone. If the file cannot
        be removed the row stays deleted; the file is left orphaned and the
        ledger stays authoritative.

        Args:
            segment: Segment to delete
            exclude_statuses: Leave the segment alone if its current
                status is one of these

        Returns:
            True if the ledger row was removed

        Raises:
            StorageError: If the ledger delete fails
        """
        if not self.ledger.delete(segment.id, exclude_statuses=exclude_statuses):
            self.logger.warning(f"Segment row not deleted (gone or protected): {segment.id}")
            return False

        try:
            segment.file_path.unlink()
            self.logger.debug(f"Deleted file: {segment.file_path}")
        except FileNotFoundError:
            self.logger.warning(f"File already gone: {segment.file_path}")
        except OSError as e:
            self.logger.error(f"Failed to delete file {segment.file_path}: {e}")

        self.logger.info(f"Segment deleted: {segment.file_name}")
        self._trigger_deleted(segment)
        self.refresh_storage_info()
        return True

    def delete_oldest_segment(self) -> Optional[Segment]:
        """
        Delete the oldest evictable segment.

        Segments with a protected status (mid-upload) are skipped, including
        one claimed by an upload pass after it was selected here.

        Returns:
            The deleted segment, or None if nothing was evictable
        """
        while True:
            segment = self.ledger.oldest(exclude_statuses=PROTECTED_STATUSES)
            if segment is None:
                return None

            if self.delete_segment(segment, exclude_statuses=PROTECTED_STATUSES):
                return segment

            self.logger.debug(f"Eviction candidate {segment.id} changed, picking next")

    def get_segment(self, segment_id: str) -> Optional[Segment]:
        return self.ledger.get(segment_id)

    def list_segments(self, limit: Optional[int] = None) -> List[Segment]:
        """List segments newest first (display order)"""
        return self.ledger.list_segments(newest_first=True, limit=limit)

    def list_pending(self, limit: Optional[int] = None) -> List[Segment]:
        """List PENDING segments oldest first (upload order)"""
        return self.ledger.list_by_status(UploadStatus.PENDING, limit=limit)

    # =========================================================================
    # STATISTICS
    # =========================================================================

    def get_storage_info(self) -> StorageInfo:
        """
        Get current disk and ledger statistics.

        Raises:
            StorageError: If disk usage or the ledger cannot be read
        """
        total, used, free = self.space.get_disk_usage()
        return StorageInfo(
            total_bytes=total,
            used_bytes=used,
            available_bytes=free,
            segment_count=self.ledger.count(),
            segments_size_bytes=self.ledger.total_size(),
        )

    def refresh_storage_info(self) -> Optional[StorageInfo]:
        """Recompute statistics and publish them to subscribers"""
        try:
            info = self.get_storage_info()
        except StorageError as e:
            self.logger.warning(f"Could not refresh storage info: {e}")
            return None

        self.storage_info.set(info)
        if info.is_near_full:
            self.logger.warning(f"Storage nearly full: {info.used_percent:.1f}%")
        return info

    # =========================================================================
    # EVENT TRIGGERS
    # =========================================================================

    def _trigger_saved(self, segment: Segment) -> None:
        if self.on_segment_saved:
            try:
                self.on_segment_saved(segment)
            except Exception as e:
                self.logger.error(f"Error in segment saved callback: {e}")

    def _trigger_deleted(self, segment: Segment) -> None:
        if self.on_segment_deleted:
            try:
                self.on_segment_deleted(segment)
            except Exception as e:
                self.logger.error(f"Error in segment deleted callback: {e}")

    def _trigger_error(self, message: str) -> None:
        if self.on_storage_error:
            try:
                self.on_storage_error(message)
            except Exception as e:
                self.logger.error(f"Error in storage error callback: {e}")

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def cleanup(self) -> None:
        """Close the ledger"""
        self.logger.info("Cleaning up storage controller")
        self.ledger.close()
