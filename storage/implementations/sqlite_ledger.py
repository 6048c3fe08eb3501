"""
SQLite Segment Ledger

Persists segment rows in a SQLite database next to the recordings.

Thread Safety:
- One connection shared across threads (check_same_thread=False)
- All writes are serialized by a single write lock and committed
  immediately, so each operation is one atomic row-level change
- Status changes are compare-and-set (`WHERE upload_status = ?`), which
  makes them linearizable with respect to each other
"""

import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

from config.settings import METADATA_DB_NAME
from storage.constants import UploadStatus, can_transition
from storage.interfaces.ledger_interface import SegmentLedgerInterface, StorageError
from storage.models.segment import Segment

_COLUMNS = (
    "id",
    "file_name",
    "file_path",
    "file_size_bytes",
    "duration_ms",
    "recorded_at",
    "upload_destination",
    "upload_status",
    "uploaded_at",
    "remote_url",
    "retry_count",
    "last_error",
)


class SQLiteLedger(SegmentLedgerInterface):
    """
    Segment ledger backed by sqlite3.

    Usage:
        ledger = SQLiteLedger(Path("/home/pi/recordings"))
        ledger.insert(segment)
        pending = ledger.list_by_status(UploadStatus.PENDING, limit=5)
        ledger.close()
    """

    def __init__(self, storage_base: Path, db_name: str = METADATA_DB_NAME):
        """
        Initialize ledger.

        Args:
            storage_base: Directory holding the database file
            db_name: Database file name

        Raises:
            StorageError: If the database cannot be created
        """
        self.logger = logging.getLogger(__name__)
        self.db_path = Path(storage_base) / db_name
        self._connection: Optional[sqlite3.Connection] = None
        self._write_lock = threading.Lock()

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()

        self.logger.info(f"Segment ledger initialized (db: {self.db_path})")

    def _initialize_db(self) -> None:
        """Create database and tables if they don't exist"""
        try:
            conn = self._get_connection()
            cursor = conn.cursor()

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS segments (
                    id TEXT PRIMARY KEY,
                    file_name TEXT NOT NULL,
                    file_path TEXT NOT NULL,
                    file_size_bytes INTEGER NOT NULL DEFAULT 0,
                    duration_ms INTEGER NOT NULL DEFAULT 0,
                    recorded_at TEXT NOT NULL,
                    upload_destination TEXT NOT NULL,
                    upload_status TEXT NOT NULL,
                    uploaded_at TEXT,
                    remote_url TEXT,
                    retry_count INTEGER NOT NULL DEFAULT 0,
                    last_error TEXT
                )
            """,
            )

            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_upload_status
                ON segments(upload_status)
            """,
            )

            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_recorded_at
                ON segments(recorded_at)
            """,
            )

            conn.commit()
            self.logger.debug("Database schema initialized")

        except sqlite3.Error as e:
            raise StorageError(f"Failed to initialize database: {e}") from e

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection (reuses existing or creates new)"""
        if self._connection is None:
            try:
                self._connection = sqlite3.connect(
                    str(self.db_path),
                    check_same_thread=False,  # Recorder and uploader threads
                )
                self._connection.row_factory = sqlite3.Row
            except sqlite3.Error as e:
                raise StorageError(f"Failed to connect to database: {e}") from e

        return self._connection

    def _execute_write(self, query: str, params: tuple) -> int:
        """Run one write statement under the write lock, return rowcount"""
        with self._write_lock:
            try:
                conn = self._get_connection()
                cursor = conn.execute(query, params)
                conn.commit()
                return cursor.rowcount
            except sqlite3.Error as e:
                raise StorageError(f"Ledger write failed: {e}") from e

    def _select(self, query: str, params: Union[tuple, list] = ()) -> List[Segment]:
        try:
            rows = self._get_connection().execute(query, params).fetchall()
            return [Segment.from_dict(dict(row)) for row in rows]
        except sqlite3.Error as e:
            raise StorageError(f"Ledger query failed: {e}") from e

    # =========================================================================
    # ROW OPERATIONS
    # =========================================================================

    def insert(self, segment: Segment) -> Segment:
        data = segment.to_dict()
        placeholders = ", ".join("?" for _ in _COLUMNS)

        self._execute_write(
            f"INSERT OR REPLACE INTO segments ({', '.join(_COLUMNS)}) "
            f"VALUES ({placeholders})",
            tuple(data[column] for column in _COLUMNS),
        )

        self.logger.debug(f"Inserted segment: {segment.file_name} (id={segment.id})")
        return segment

    def update(self, segment: Segment) -> None:
        data = segment.to_dict()
        columns = [column for column in _COLUMNS if column != "id"]
        assignments = ", ".join(f"{column} = ?" for column in columns)

        rowcount = self._execute_write(
            f"UPDATE segments SET {assignments} WHERE id = ?",
            tuple(data[column] for column in columns) + (segment.id,),
        )

        if rowcount == 0:
            raise StorageError(f"Segment not found: id={segment.id}")

        self.logger.debug(f"Updated segment: {segment.file_name} (id={segment.id})")

    def delete(
        self,
        segment_id: str,
        exclude_statuses: Iterable[UploadStatus] = (),
    ) -> bool:
        excluded = [status.value for status in exclude_statuses]
        query = "DELETE FROM segments WHERE id = ?"
        if excluded:
            query += (
                " AND upload_status NOT IN ("
                + ", ".join("?" for _ in excluded)
                + ")"
            )

        rowcount = self._execute_write(query, (segment_id, *excluded))
        if rowcount:
            self.logger.debug(f"Deleted segment row: id={segment_id}")
        return rowcount > 0

    def get(self, segment_id: str) -> Optional[Segment]:
        rows = self._select("SELECT * FROM segments WHERE id = ?", (segment_id,))
        return rows[0] if rows else None

    # =========================================================================
    # QUERIES
    # =========================================================================

    def list_segments(
        self,
        newest_first: bool = True,
        limit: Optional[int] = None,
    ) -> List[Segment]:
        query = "SELECT * FROM segments ORDER BY recorded_at "
        query += "DESC" if newest_first else "ASC"
        params: List[int] = []

        if limit:
            query += " LIMIT ?"
            params.append(limit)

        return self._select(query, params)

    def list_by_status(
        self,
        status: UploadStatus,
        limit: Optional[int] = None,
    ) -> List[Segment]:
        query = "SELECT * FROM segments WHERE upload_status = ? ORDER BY recorded_at ASC"
        params: List[Union[str, int]] = [status.value]

        if limit:
            query += " LIMIT ?"
            params.append(limit)

        return self._select(query, params)

    def oldest(
        self,
        exclude_statuses: Iterable[UploadStatus] = (),
    ) -> Optional[Segment]:
        excluded = [status.value for status in exclude_statuses]
        query = "SELECT * FROM segments"

        if excluded:
            query += (
                " WHERE upload_status NOT IN ("
                + ", ".join("?" for _ in excluded)
                + ")"
            )

        query += " ORDER BY recorded_at ASC LIMIT 1"
        rows = self._select(query, excluded)
        return rows[0] if rows else None

    def count(self) -> int:
        try:
            row = self._get_connection().execute(
                "SELECT COUNT(*) FROM segments"
            ).fetchone()
            return row[0]
        except sqlite3.Error as e:
            raise StorageError(f"Failed to count segments: {e}") from e

    def total_size(self) -> int:
        try:
            row = self._get_connection().execute(
                "SELECT COALESCE(SUM(file_size_bytes), 0) FROM segments"
            ).fetchone()
            return row[0]
        except sqlite3.Error as e:
            raise StorageError(f"Failed to sum segment sizes: {e}") from e

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

        retry_clause = ", retry_count = retry_count + 1" if increment_retry else ""
        rowcount = self._execute_write(
            f"UPDATE segments SET upload_status = ?, last_error = ?{retry_clause} "
            f"WHERE id = ? AND upload_status = ?",
            (to_status.value, error, segment_id, from_status.value),
        )

        if rowcount == 0:
            self.logger.debug(
                f"Status change {from_status.value} -> {to_status.value} "
                f"skipped for {segment_id} (row missing or status changed)"
            )
        return rowcount > 0

    def mark_uploaded(
        self,
        segment_id: str,
        remote_url: str,
        uploaded_at: Optional[datetime] = None,
    ) -> bool:
        uploaded_at = uploaded_at or datetime.now()
        rowcount = self._execute_write(
            "UPDATE segments SET upload_status = ?, remote_url = ?, "
            "uploaded_at = ?, last_error = NULL "
            "WHERE id = ? AND upload_status = ?",
            (
                UploadStatus.COMPLETED.value,
                remote_url,
                uploaded_at.isoformat(),
                segment_id,
                UploadStatus.UPLOADING.value,
            ),
        )
        return rowcount > 0

    def reset_stuck_uploads(self) -> int:
        rowcount = self._execute_write(
            "UPDATE segments SET upload_status = ? WHERE upload_status = ?",
            (UploadStatus.PENDING.value, UploadStatus.UPLOADING.value),
        )
        if rowcount:
            self.logger.info(f"Reset {rowcount} stuck upload(s) to pending")
        return rowcount

    def close(self) -> None:
        if self._connection:
            try:
                self._connection.close()
                self.logger.debug("Database connection closed")
            except sqlite3.Error as e:
                self.logger.error(f"Error closing database: {e}")
            finally:
                self._connection = None
