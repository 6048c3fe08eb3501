"""
Storage Module

Segment ledger and storage quota management for the segment recorder.

Architecture:
- interfaces/: Ledger contract and StorageError
- implementations/: SQLite ledger and in-memory ledger
- controllers/: StorageController (paths, save, delete, statistics)
- managers/: SpaceManager (disk usage) and QuotaEnforcer (eviction)
- models/: Segment and StorageInfo
- utils/: File naming and ffprobe helpers
"""

from storage.constants import (
    PROTECTED_STATUSES,
    UploadDestination,
    UploadStatus,
)
from storage.controllers.storage_controller import StorageController
from storage.factory import StorageFactory, create_storage
from storage.interfaces.ledger_interface import SegmentLedgerInterface, StorageError
from storage.managers.quota_enforcer import QuotaEnforcer
from storage.managers.space_manager import SpaceManager
from storage.models.segment import Segment, StorageInfo

# Public API - what users import
__all__ = [
    "PROTECTED_STATUSES",
    "QuotaEnforcer",
    "Segment",
    "SegmentLedgerInterface",
    "SpaceManager",
    "StorageController",
    "StorageError",
    "StorageFactory",
    "StorageInfo",
    "UploadDestination",
    "UploadStatus",
    "create_storage",
]
