"""
Storage Module Enums

Type definitions for the segment ledger.
Configuration values live in config/settings.py.
"""

from enum import Enum
from typing import Dict, FrozenSet

from config.app_settings import UploadDestination

# =============================================================================
# ENUMS
# =============================================================================


class UploadStatus(Enum):
    """Segment upload status states"""

    PENDING = "pending"  # Waiting for upload
    UPLOADING = "uploading"  # Claimed by an upload pass
    COMPLETED = "completed"  # Uploaded, remote URL known
    FAILED = "failed"  # Permanent failure, never retried
    SKIPPED = "skipped"  # Local-only destination, never uploaded


# =============================================================================
# UPLOAD STATUS TRANSITIONS
# =============================================================================

# Statuses only move forward along these edges. SKIPPED is assigned at
# creation and never changes; COMPLETED and FAILED are terminal.
ALLOWED_STATUS_TRANSITIONS: Dict[UploadStatus, FrozenSet[UploadStatus]] = {
    UploadStatus.PENDING: frozenset({UploadStatus.UPLOADING, UploadStatus.FAILED}),
    UploadStatus.UPLOADING: frozenset({
        UploadStatus.COMPLETED,
        UploadStatus.PENDING,
        UploadStatus.FAILED,
    }),
    UploadStatus.COMPLETED: frozenset(),
    UploadStatus.FAILED: frozenset(),
    UploadStatus.SKIPPED: frozenset(),
}

# Segments in these statuses are never evicted by the quota enforcer
PROTECTED_STATUSES = (UploadStatus.UPLOADING,)


def can_transition(current: UploadStatus, target: UploadStatus) -> bool:
    """Check if a status change is allowed."""
    return target in ALLOWED_STATUS_TRANSITIONS[current]


__all__ = [
    "ALLOWED_STATUS_TRANSITIONS",
    "PROTECTED_STATUSES",
    "UploadDestination",
    "UploadStatus",
    "can_transition",
]
