"""
In-Memory Segment Ledger

Ledger implementation for testing without a database.
Stores copies of segments so callers cannot mutate rows behind its back.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from storage.constants import UploadStatus, can_transition
from storage.interfaces.ledger_interface import SegmentLedgerInterface, StorageError
from storage.models.segment import Segment


class MemoryLedger(SegmentLedgerInterface):
    """
    Mock ledger for testing.

    Same contract as SQLiteLedger, kept in a dict guarded by one lock.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

        # id -> Segment
        self._rows: Dict[str, Segment] = {}
        self._lock = threading.Lock()

        # Test configuration
        self._fail_writes = False

        # Track operations for test verification
        self.operation_log: List[str] = []

        self.logger.info("[MOCK] Ledger initialized (in memory)")

    def _log_operation(self, operation: str) -> None:
        self.operation_log.append(operation)
        self.logger.debug(f"[MOCK] {operation}")

    def _check_writable(self) -> None:
        if self._fail_writes:
            raise StorageError("Simulated ledger write failure")

    # =========================================================================
    # ROW OPERATIONS
    # =========================================================================

    def insert(self, segment: Segment) -> Segment:
        with self._lock:
            self._check_writable()
            self._rows[segment.id] = replace(segment)
        self._log_operation(f"insert:{segment.id}")
        return segment

    def update(self, segment: Segment) -> None:
        with self._lock:
            self._check_writable()
            if segment.id not in self._rows:
                raise StorageError(f"Segment not found: id={segment.id}")
            self._rows[segment.id] = replace(segment)
        self._log_operation(f"update:{segment.id}")

    def delete(
        self,
        segment_id: str,
        exclude_statuses: Iterable[UploadStatus] = (),
    ) -> bool:
        excluded = set(exclude_statuses)
        with self._lock:
            self._check_writable()
            row = self._rows.get(segment_id)
            removed = row is not None and row.upload_status not in excluded
            if removed:
                del self._rows[segment_id]
        self._log_operation(f"delete:{segment_id}")
        return removed

    def get(self, segment_id: str) -> Optional[Segment]:
        with self._lock:
            row = self._rows.get(segment_id)
            return replace(row) if row else None

    # =========================================================================
    # QUERIES
    # =========================================================================

    def _sorted(self, newest_first: bool = False) -> List[Segment]:
        return sorted(
            (replace(row) for row in self._rows.values()),
            key=lambda row: row.recorded_at,
            reverse=newest_first,
        )

    def list_segments(
        self,
        newest_first: bool = True,
        limit: Optional[int] = None,
    ) -> List[Segment]:
        with self._lock:
            rows = self._sorted(newest_first)
        return rows[:limit] if limit else rows

    def list_by_status(
        self,
        status: UploadStatus,
        limit: Optional[int] = None,
    ) -> List[Segment]:
        with self._lock:
            rows = [row for row in self._sorted() if row.upload_status == status]
        return rows[:limit] if limit else rows

    def oldest(
        self,
        exclude_statuses: Iterable[UploadStatus] = (),
    ) -> Optional[Segment]:
        excluded = set(exclude_statuses)
        with self._lock:
            for row in self._sorted():
                if row.upload_status not in excluded:
                    return row
        return None

    def count(self) -> int:
        with self._lock:
            return len(self._rows)

    def total_size(self) -> int:
        with self._lock:
            return sum(row.file_size_bytes for row in self._rows.values())

    # =========================================================================
    # ATOMIC STATUS OPERATIONS
    # =========================================================================

    def transition_status(
        self,
        segment_id: str,
        from_status: UploadStatus,
        to_status: UploadStatus,
        error: Optional[str] = None,
        increment_retry: bool = False,
    ) -> bool:
        if not can_transition(from_status, to_status):
            raise ValueError(
                f"Illegal upload status change: "
                f"{from_status.value} -> {to_status.value}"
            )

        with self._lock:
            self._check_writable()
            row = self._rows.get(segment_id)
            if row is None or row.upload_status != from_status:
                return False

            row.upload_status = to_status
            row.last_error = error
            if increment_retry:
                row.retry_count += 1

        self._log_operation(f"status:{segment_id}:{to_status.value}")
        return True

    def mark_uploaded(
        self,
        segment_id: str,
        remote_url: str,
        uploaded_at: Optional[datetime] = None,
    ) -> bool:
        with self._lock:
            self._check_writable()
            row = self._rows.get(segment_id)
            if row is None or row.upload_status != UploadStatus.UPLOADING:
                return False

            row.upload_status = UploadStatus.COMPLETED
            row.remote_url = remote_url
            row.uploaded_at = uploaded_at or datetime.now()
            row.last_error = None

        self._log_operation(f"uploaded:{segment_id}")
        return True

    def reset_stuck_uploads(self) -> int:
        with self._lock:
            self._check_writable()
            stuck = [
                row for row in self._rows.values()
                if row.upload_status == UploadStatus.UPLOADING
            ]
            for row in stuck:
                row.upload_status = UploadStatus.PENDING

        self._log_operation(f"reset_stuck:{len(stuck)}")
        return len(stuck)

    def close(self) -> None:
        self._log_operation("close")

    # =========================================================================
    # TESTING HELPER METHODS
    # =========================================================================

    def simulate_write_failure(self, enabled: bool = True) -> None:
        """Make every write raise StorageError"""
        self._fail_writes = enabled

    def force_status(self, segment_id: str, status: UploadStatus) -> None:
        """Set a status directly, bypassing transition rules (test setup)"""
        with self._lock:
            self._rows[segment_id].upload_status = status

    def get_operation_log(self) -> List[str]:
        return self.operation_log.copy()
