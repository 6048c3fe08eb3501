"""
Segment Models

Data classes representing recorded segments and storage statistics.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from config.settings import NEAR_FULL_PERCENT
from storage.constants import UploadDestination, UploadStatus


def new_segment_id() -> str:
    """Generate an opaque segment identifier"""
    return uuid.uuid4().hex


@dataclass
class Segment:
    """
    One finalized video file plus its upload bookkeeping.

    A Segment is only created once its file is fully written (after the
    overlay pass), so every ledger row points at a complete file.

    Lifecycle of upload_status:
        PENDING -> UPLOADING -> COMPLETED
                            -> PENDING (transient failure, retry_count + 1)
                            -> FAILED (permanent)
        PENDING -> FAILED
        SKIPPED (local-only, fixed at creation)
    """

    # File identification
    file_name: str  # EvidenceCam_2025-10-04_14-30-25.mp4
    file_path: Path  # Full path to file

    # Measured at finalize time
    file_size_bytes: int
    duration_ms: int

    # Wall-clock start of the segment
    recorded_at: datetime

    # Upload tracking
    upload_destination: UploadDestination = UploadDestination.LOCAL_ONLY
    upload_status: UploadStatus = UploadStatus.PENDING
    uploaded_at: Optional[datetime] = None
    remote_url: Optional[str] = None
    retry_count: int = 0
    last_error: Optional[str] = None

    id: str = field(default_factory=new_segment_id)

    def __post_init__(self):
        """Ensure file_path is a Path object"""
        if not isinstance(self.file_path, Path):
            self.file_path = Path(self.file_path)

    @classmethod
    def create(
        cls,
        file_path: Path,
        recorded_at: datetime,
        duration_ms: int,
        destination: UploadDestination,
    ) -> "Segment":
        """
        Build a segment for a finalized file.

        File size is read from disk. Local-only segments start as SKIPPED,
        everything else as PENDING.

        Raises:
            OSError: If the file cannot be stat'ed
        """
        file_path = Path(file_path)
        status = (
            UploadStatus.SKIPPED
            if destination == UploadDestination.LOCAL_ONLY
            else UploadStatus.PENDING
        )
        return cls(
            file_name=file_path.name,
            file_path=file_path,
            file_size_bytes=file_path.stat().st_size,
            duration_ms=duration_ms,
            recorded_at=recorded_at,
            upload_destination=destination,
            upload_status=status,
        )

    @property
    def exists(self) -> bool:
        """Check if file still exists on disk"""
        return self.file_path.exists()

    @property
    def is_pending(self) -> bool:
        return self.upload_status == UploadStatus.PENDING

    @property
    def is_completed(self) -> bool:
        return self.upload_status == UploadStatus.COMPLETED

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000

    def to_dict(self) -> dict:
        """Convert to dictionary for database storage"""
        return {
            "id": self.id,
            "file_name": self.file_name,
            "file_path": str(self.file_path),
            "file_size_bytes": self.file_size_bytes,
            "duration_ms": self.duration_ms,
            "recorded_at": self.recorded_at.isoformat(),
            "upload_destination": self.upload_destination.value,
            "upload_status": self.upload_status.value,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
            "remote_url": self.remote_url,
            "retry_count": self.retry_count,
            "last_error": self.last_error,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Segment":
        """Create Segment from dictionary (database row)"""
        return cls(
            id=data["id"],
            file_name=data["file_name"],
            file_path=Path(data["file_path"]),
            file_size_bytes=data.get("file_size_bytes") or 0,
            duration_ms=data.get("duration_ms") or 0,
            recorded_at=datetime.fromisoformat(data["recorded_at"]),
            upload_destination=UploadDestination(data["upload_destination"]),
            upload_status=UploadStatus(data["upload_status"]),
            uploaded_at=(
                datetime.fromisoformat(data["uploaded_at"])
                if data.get("uploaded_at")
                else None
            ),
            remote_url=data.get("remote_url"),
            retry_count=data.get("retry_count", 0),
            last_error=data.get("last_error"),
        )

    def __repr__(self) -> str:
        return (
            f"Segment(file_name='{self.file_name}', "
            f"status={self.upload_status.value}, "
            f"retries={self.retry_count})"
        )


@dataclass
class StorageInfo:
    """
    Disk and ledger statistics for display and quota decisions.
    """

    # Disk space (filesystem holding the storage directory)
    total_bytes: int
    used_bytes: int
    available_bytes: int

    # Ledger totals
    segment_count: int = 0
    segments_size_bytes: int = 0

    @property
    def used_percent(self) -> float:
        """Percentage of the filesystem in use"""
        if self.total_bytes == 0:
            return 0.0
        return (self.used_bytes / self.total_bytes) * 100

    @property
    def is_near_full(self) -> bool:
        return self.used_percent >= NEAR_FULL_PERCENT

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/display"""
        return {
            "total_gb": round(self.total_bytes / (1024**3), 2),
            "used_gb": round(self.used_bytes / (1024**3), 2),
            "available_gb": round(self.available_bytes / (1024**3), 2),
            "used_percent": round(self.used_percent, 2),
            "segment_count": self.segment_count,
            "segments_size_mb": round(self.segments_size_bytes / (1024**2), 1),
            "is_near_full": self.is_near_full,
        }

    def __repr__(self) -> str:
        return (
            f"StorageInfo(used={self.used_percent:.1f}%, "
            f"segments={self.segment_count})"
        )
