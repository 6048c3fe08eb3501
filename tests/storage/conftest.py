"""
Storage Test Configuration and Fixtures

This file contains pytest fixtures shared across storage tests.

To use pytest:
    pip install -e ".[test]"
    pytest tests/storage/
"""

from datetime import datetime, timedelta

import pytest

from storage import (
    QuotaEnforcer,
    Segment,
    SpaceManager,
    StorageController,
    UploadDestination,
    UploadStatus,
)
from storage.implementations.memory_ledger import MemoryLedger
from storage.implementations.sqlite_ledger import SQLiteLedger

BASE_TIME = datetime(2025, 10, 4, 14, 0, 0)


# =============================================================================
# LEDGER FIXTURES
# =============================================================================


@pytest.fixture
def temp_storage_dir(tmp_path):
    """Provide an empty storage directory."""
    storage_dir = tmp_path / "recordings"
    storage_dir.mkdir()
    return storage_dir


@pytest.fixture
def memory_ledger():
    """Provide a fresh in-memory ledger."""
    ledger = MemoryLedger()
    yield ledger
    ledger.close()


@pytest.fixture
def sqlite_ledger(temp_storage_dir):
    """Provide a SQLite ledger in a temporary directory."""
    ledger = SQLiteLedger(temp_storage_dir)
    yield ledger
    ledger.close()


@pytest.fixture(params=["memory", "sqlite"])
def ledger(request, temp_storage_dir):
    """
    Provide each ledger implementation in turn.

    Usage:
        def test_contract(ledger):
            ledger.insert(segment)   # runs once per implementation
    """
    if request.param == "memory":
        instance = MemoryLedger()
    else:
        instance = SQLiteLedger(temp_storage_dir)
    yield instance
    instance.close()


# =============================================================================
# SEGMENT FACTORY
# =============================================================================


@pytest.fixture
def make_segment(temp_storage_dir):
    """
    Build segments backed by real files.

    Usage:
        def test_x(make_segment):
            seg = make_segment(minutes=1, size=100, status=UploadStatus.PENDING)
    """
    counter = {"n": 0}

    def _make(
        minutes: int = 0,
        size: int = 100,
        status: UploadStatus = UploadStatus.PENDING,
        retry_count: int = 0,
        create_file: bool = True,
    ) -> Segment:
        counter["n"] += 1
        recorded_at = BASE_TIME + timedelta(minutes=minutes)
        file_path = temp_storage_dir / f"seg_{counter['n']:03d}.mp4"
        if create_file:
            file_path.write_bytes(b"\x00" * size)

        destination = (
            UploadDestination.LOCAL_ONLY
            if status == UploadStatus.SKIPPED
            else UploadDestination.YOUTUBE
        )
        return Segment(
            file_name=file_path.name,
            file_path=file_path,
            file_size_bytes=size,
            duration_ms=30_000,
            recorded_at=recorded_at,
            upload_destination=destination,
            upload_status=status,
            retry_count=retry_count,
        )

    return _make


# =============================================================================
# SIMULATED DISK
# =============================================================================


class SimulatedDisk:
    """
    Disk whose usage is a fixed baseline plus the ledger's total size.

    Deleting a segment through the controller frees its bytes.
    """

    def __init__(self, total: int = 1000, baseline: int = 0):
        self.total = total
        self.baseline = baseline
        self.ledger = None

    def usage(self):
        used = self.baseline + (self.ledger.total_size() if self.ledger else 0)
        return self.total, used, self.total - used


@pytest.fixture
def simulated_disk():
    return SimulatedDisk()


@pytest.fixture
def storage_controller(temp_storage_dir, memory_ledger, simulated_disk):
    """StorageController on a memory ledger and a simulated disk."""
    simulated_disk.ledger = memory_ledger
    space = SpaceManager(temp_storage_dir, usage_provider=simulated_disk.usage)
    controller = StorageController(
        ledger=memory_ledger,
        storage_base=temp_storage_dir,
        space=space,
    )
    yield controller
    controller.cleanup()


@pytest.fixture
def quota_enforcer(storage_controller):
    return QuotaEnforcer(storage_controller)


@pytest.fixture
def evicted_tracker(quota_enforcer):
    """Record segments evicted by the quota enforcer."""
    evicted = []
    quota_enforcer.on_segment_evicted = evicted.append
    return evicted


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """
    Configure pytest with custom markers.

    Same markers as the other test packages for consistency.
    """
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "unit_integration: Unit integration tests")
    config.addinivalue_line("markers", "integration: Full integration tests")
    config.addinivalue_line("markers", "slow: Slow tests (use sparingly)")
