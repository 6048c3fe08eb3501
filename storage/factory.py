"""
Storage Factory

Factory pattern for creating segment ledgers and the storage controller.
Follows the same pattern as recording/factory.py and upload/factory.py.
"""

import logging
from pathlib import Path
from typing import Literal, Optional

from config.settings import STORAGE_BASE_PATH
from storage.controllers.storage_controller import StorageController
from storage.implementations.memory_ledger import MemoryLedger
from storage.implementations.sqlite_ledger import SQLiteLedger
from storage.interfaces.ledger_interface import SegmentLedgerInterface

# Type alias for better type hints
StorageMode = Literal["auto", "real", "mock"]


class StorageFactory:
    """
    Factory for creating ledger implementations.

    Usage:
        # SQLite ledger in the configured storage directory
        ledger = StorageFactory.create_ledger()

        # In-memory ledger (useful for testing)
        ledger = StorageFactory.create_ledger(mode="mock")
    """

    _logger = logging.getLogger(__name__)

    @classmethod
    def create_ledger(
        cls,
        mode: StorageMode = "auto",
        storage_base: Optional[Path] = None,
    ) -> SegmentLedgerInterface:
        """
        Create a segment ledger.

        Args:
            mode: "auto"/"real" (SQLite), "mock" (in memory)
            storage_base: Directory for the database (None = STORAGE_BASE_PATH)

        Returns:
            SegmentLedgerInterface implementation
        """
        if mode == "mock":
            cls._logger.info("Creating in-memory ledger (forced)")
            return MemoryLedger()

        # SQLite is always available, so "auto" needs no fallback
        base = Path(storage_base or STORAGE_BASE_PATH)
        cls._logger.info(f"Creating SQLite ledger in {base}")
        return SQLiteLedger(base)


# Convenience functions for quick creation


def create_storage(
    force_mock: bool = False,
    storage_base: Optional[Path] = None,
) -> StorageController:
    """
    Quick storage controller creation with simple mock override.

    Args:
        force_mock: If True, use the in-memory ledger
        storage_base: Directory for segment files

    Returns:
        StorageController

    Example:
        storage = create_storage()
        storage = create_storage(force_mock=True, storage_base=tmp_path)
    """
    mode = "mock" if force_mock else "auto"
    base = Path(storage_base or STORAGE_BASE_PATH)
    ledger = StorageFactory.create_ledger(mode=mode, storage_base=base)
    return StorageController(ledger=ledger, storage_base=base)
