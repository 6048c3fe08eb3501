"""
Recording Test Configuration and Fixtures

Shared fixtures for recording module tests.

The segment recorder is built with a manual timer and a fake clock, so
rollovers happen exactly when a test fires the timer.
"""

from datetime import datetime, timedelta

import pytest

from config.app_settings import SegmentDuration, SettingsStore, UploadDestination
from core.event_bus import EventBus
from core.keep_awake import NullKeepAwake
from recording.controllers.camera_manager import CameraManager
from recording.controllers.segment_recorder import SegmentRecorder
from recording.implementations.mock_capture import MockCapture
from recording.implementations.mock_location import MockLocationProvider
from recording.implementations.mock_overlay import MockOverlay
from storage import QuotaEnforcer, SpaceManager, StorageController
from storage.implementations.memory_ledger import MemoryLedger

# =============================================================================
# TIME CONTROL
# =============================================================================


class ManualTimer:
    """threading.Timer stand-in that only runs when fire() is called"""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        """Run the callback, even if cancelled (a fire racing a cancel)"""
        self.function(*self.args, **self.kwargs)


class ManualTimerFactory:
    """Builds ManualTimers and remembers them"""

    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = ManualTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    @property
    def latest(self) -> ManualTimer:
        return self.timers[-1]


class FakeClock:
    """Wall clock advancing by a fixed step on every call"""

    def __init__(self, start=datetime(2025, 10, 4, 14, 0, 0), step_seconds=30):
        self.current = start
        self.step = timedelta(seconds=step_seconds)
        self.calls = []

    def __call__(self):
        now = self.current
        self.calls.append(now)
        self.current = now + self.step
        return now


@pytest.fixture
def timer_factory():
    return ManualTimerFactory()


@pytest.fixture
def fake_clock():
    return FakeClock()


# =============================================================================
# COLLABORATOR FIXTURES
# =============================================================================


@pytest.fixture
def mock_capture():
    capture = MockCapture(file_size_bytes=1024)
    yield capture
    capture.cleanup()


@pytest.fixture
def camera_manager(mock_capture):
    manager = CameraManager(capture=mock_capture)
    yield manager
    if manager.is_open():
        manager.close()


@pytest.fixture
def mock_overlay():
    return MockOverlay()


@pytest.fixture
def mock_location():
    return MockLocationProvider()


@pytest.fixture
def keep_awake():
    return NullKeepAwake()


@pytest.fixture
def disk_usage():
    """Mutable (total, used) pair read by the storage SpaceManager"""
    return {"total": 100_000_000, "used": 10_000_000}


@pytest.fixture
def storage(tmp_path, disk_usage):
    ledger = MemoryLedger()
    space = SpaceManager(
        tmp_path,
        usage_provider=lambda: (
            disk_usage["total"],
            disk_usage["used"],
            disk_usage["total"] - disk_usage["used"],
        ),
    )
    controller = StorageController(ledger=ledger, storage_base=tmp_path, space=space)
    yield controller
    controller.cleanup()


@pytest.fixture
def quota(storage):
    return QuotaEnforcer(storage)


@pytest.fixture
def settings_store(tmp_path):
    """In-memory settings: 30 s segments uploaded to YouTube"""
    store = SettingsStore(tmp_path / "settings.yaml", persist=False)
    store.update(
        segment_duration=SegmentDuration.SEC_30,
        upload_destination=UploadDestination.YOUTUBE,
    )
    return store


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def event_tracker(event_bus):
    """
    Record every published event.

    Usage:
        def test_x(recorder, event_tracker):
            recorder.request_start()
            assert event_tracker.types()[0] == EventType.RECORDING_STARTED
    """

    class Tracker:
        def __init__(self):
            self.events = []

        def types(self):
            return [event.type for event in self.events]

        def of_type(self, event_type):
            return [event for event in self.events if event.type == event_type]

    tracker = Tracker()
    event_bus.subscribe(None, tracker.events.append)
    return tracker


# =============================================================================
# SEGMENT RECORDER
# =============================================================================


@pytest.fixture
def recorder(
    camera_manager,
    storage,
    quota,
    settings_store,
    mock_overlay,
    mock_location,
    keep_awake,
    event_bus,
    timer_factory,
    fake_clock,
):
    """
    SegmentRecorder with manual timers, no ticker and no ffprobe.

    Usage:
        def test_rollover(recorder, timer_factory):
            recorder.request_start()
            timer_factory.latest.fire()
    """
    instance = SegmentRecorder(
        camera=camera_manager,
        storage=storage,
        quota=quota,
        settings_store=settings_store,
        overlay=mock_overlay,
        location=mock_location,
        keep_awake=keep_awake,
        event_bus=event_bus,
        timer_factory=timer_factory,
        clock=fake_clock,
        probe_duration=lambda path: None,
        tick_interval=None,
    )
    yield instance
    instance.cleanup()
