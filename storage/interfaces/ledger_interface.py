"""
Segment Ledger Interface

Abstract interface for the durable record of every segment and its upload
state. Both the segment recorder (insert) and the upload pipeline (status
changes) write to the same ledger, so every operation is atomic at the row
level and safe to call from several threads.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional

from storage.constants import UploadStatus
from storage.models.segment import Segment


class SegmentLedgerInterface(ABC):
    """
    Abstract base class for segment ledgers.

    Implementations:
    - SQLiteLedger: Real persistence (sqlite3)
    - MemoryLedger: In-memory ledger for tests
    """

    # =========================================================================
    # ROW OPERATIONS
    # =========================================================================

    @abstractmethod
    def insert(self, segment: Segment) -> Segment:
        """
        Insert a segment row.

        Upsert semantics: a row with the same id is replaced.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def update(self, segment: Segment) -> None:
        """
        Overwrite an existing row with the segment's fields.

        Raises:
            StorageError: If the row does not exist or the write fails
        """
        pass

    @abstractmethod
    def delete(
        self,
        segment_id: str,
        exclude_statuses: Iterable[UploadStatus] = (),
    ) -> bool:
        """
        Delete a row.

        The status check and the delete are one atomic step: a row whose
        current status is in exclude_statuses is left alone.

        Returns:
            True if a row was removed, False if it did not exist or its
            status is excluded
        """
        pass

    @abstractmethod
    def get(self, segment_id: str) -> Optional[Segment]:
        """Get a segment by id, or None"""
        pass

    # =========================================================================
    # QUERIES
    # =========================================================================

    @abstractmethod
    def list_segments(
        self,
        newest_first: bool = True,
        limit: Optional[int] = None,
    ) -> List[Segment]:
        """
        List segments ordered by recorded_at.

        Newest-first for display, oldest-first for eviction and upload order.
        """
        pass

    @abstractmethod
    def list_by_status(
        self,
        status: UploadStatus,
        limit: Optional[int] = None,
    ) -> List[Segment]:
        """List segments with a given status, oldest first"""
        pass

    @abstractmethod
    def oldest(
        self,
        exclude_statuses: Iterable[UploadStatus] = (),
    ) -> Optional[Segment]:
        """Get the oldest segment whose status is not excluded"""
        pass

    @abstractmethod
    def count(self) -> int:
        pass

    @abstractmethod
    def total_size(self) -> int:
        """Sum of file_size_bytes over all rows"""
        pass

    # =========================================================================
    # ATOMIC STATUS OPERATIONS
    # =========================================================================

    @abstractmethod
    def transition_status(
        self,
        segment_id: str,
        from_status: UploadStatus,
        to_status: UploadStatus,
        error: Optional[str] = None,
        increment_retry: bool = False,
    ) -> bool:
        """
        Compare-and-set the upload status of one row.

        The row changes only if its current status equals from_status.

        Args:
            segment_id: Row id
            from_status: Expected current status
            to_status: New status
            error: Stored as last_error
            increment_retry: Add one to retry_count in the same write

        Returns:
            True if the row was changed

        Raises:
            ValueError: If from_status -> to_status is not an allowed edge
        """
        pass

    @abstractmethod
    def mark_uploaded(
        self,
        segment_id: str,
        remote_url: str,
        uploaded_at: Optional[datetime] = None,
    ) -> bool:
        """
        Move an UPLOADING row to COMPLETED, storing the URL and clearing
        last_error.

        Returns:
            True if the row was changed
        """
        pass

    @abstractmethod
    def reset_stuck_uploads(self) -> int:
        """
        Force every UPLOADING row back to PENDING.

        retry_count is not touched.

        Returns:
            Number of rows reset
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release resources. Never raises."""
        pass


class StorageError(Exception):
    """
    Exception raised for ledger and storage errors.

    Examples:
    - Database cannot be opened
    - Write failed
    - Updating a row that does not exist
    """
    pass
