"""
Upload Test Configuration and Fixtures

Shared fixtures for the upload pipeline, controller and transports.
"""

from datetime import datetime, timedelta

import pytest

from config.app_settings import SettingsStore, UploadDestination
from core.event_bus import EventBus, EventType
from storage import Segment, StorageController, UploadStatus
from storage.implementations.memory_ledger import MemoryLedger
from upload.controllers.upload_pipeline import UploadPipeline
from upload.implementations.mock_uploader import MockUploader

BASE_TIME = datetime(2025, 10, 4, 9, 0, 0)


class RetryTimer:
    """threading.Timer stand-in for the controller's backoff timer"""

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function()


@pytest.fixture
def retry_timers():
    """Timer factory that records every timer it builds"""
    timers = []

    def factory(interval, function):
        timer = RetryTimer(interval, function)
        timers.append(timer)
        return timer

    factory.timers = timers
    return factory


@pytest.fixture
def storage(tmp_path):
    controller = StorageController(ledger=MemoryLedger(), storage_base=tmp_path)
    yield controller
    controller.cleanup()


@pytest.fixture
def ledger(storage):
    return storage.ledger


@pytest.fixture
def settings_store(tmp_path):
    store = SettingsStore(tmp_path / "settings.yaml", persist=False)
    store.update(upload_destination=UploadDestination.YOUTUBE)
    return store


@pytest.fixture
def mock_uploader():
    return MockUploader()


@pytest.fixture
def wifi():
    """Mutable Wi-Fi link state read by the pipeline"""
    return {"up": True}


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def notifications(event_bus):
    """UPLOAD_NOTIFICATION events, in order"""
    received = []
    event_bus.subscribe(EventType.UPLOAD_NOTIFICATION, received.append)
    return received


@pytest.fixture
def pipeline(storage, mock_uploader, settings_store, event_bus, wifi):
    return UploadPipeline(
        storage=storage,
        uploader=mock_uploader,
        settings_store=settings_store,
        event_bus=event_bus,
        wifi_check=lambda: wifi["up"],
        batch_size=5,
        max_retries=3,
    )


@pytest.fixture
def add_segment(storage, tmp_path):
    """
    Insert a PENDING segment backed by a real file.

    Usage:
        def test_x(add_segment):
            segment = add_segment(retry_count=2)
    """
    counter = {"n": 0}

    def _add(
        status: UploadStatus = UploadStatus.PENDING,
        retry_count: int = 0,
        create_file: bool = True,
    ) -> Segment:
        counter["n"] += 1
        file_path = tmp_path / f"EvidenceCam_{counter['n']:03d}.mp4"
        if create_file:
            file_path.write_bytes(b"\x00" * 256)
        segment = Segment(
            file_name=file_path.name,
            file_path=file_path,
            file_size_bytes=256,
            duration_ms=30_000,
            recorded_at=BASE_TIME + timedelta(minutes=counter["n"]),
            upload_destination=UploadDestination.YOUTUBE,
            upload_status=status,
            retry_count=retry_count,
        )
        storage.ledger.insert(segment)
        return segment

    return _add
