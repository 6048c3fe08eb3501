"""
Segment Recorder Tests

Scenario tests for the record -> rollover -> finalize state machine:
- Start, rollover and stop
- Failure paths (start, finalize, ledger, camera health)
- Overlay fallback
- Stale timer fires
- Settings snapshots per segment

To run these tests:
    pytest tests/recording/test_segment_recorder.py -v
"""

import threading
import time
from datetime import datetime

import pytest

from config.app_settings import SegmentDuration, UploadDestination
from core.event_bus import EventType
from recording.constants import RecordingPhase
from recording.controllers.segment_recorder import SegmentRecorder
from storage.constants import UploadStatus
from storage.models.segment import Segment

# =============================================================================
# START / STOP
# =============================================================================


@pytest.mark.unit
def test_start_enters_recording_segment_one(
    recorder, timer_factory, keep_awake, mock_location, event_tracker
):
    """
    Test starting a session.

    Should:
    - Reach RECORDING with segment index 1
    - Arm a 30 s timer
    - Hold keep-awake and start location updates
    - Publish RECORDING_STARTED after SEGMENT_STARTED
    """
    assert recorder.request_start() is True

    state = recorder.current_state
    assert state.phase == RecordingPhase.RECORDING
    assert state.segment_index == 1
    assert state.total_start_time == state.segment_start_time
    assert timer_factory.latest.interval == 30
    assert timer_factory.latest.daemon is True
    assert keep_awake.is_held()
    assert mock_location.is_active()
    assert event_tracker.types() == [
        EventType.SEGMENT_STARTED,
        EventType.RECORDING_STARTED,
    ]


@pytest.mark.unit
def test_state_stream_sequence(recorder):
    """Subscribers see IDLE, STARTING, RECORDING(1), STOPPING, IDLE."""
    phases = []
    recorder.state.subscribe(lambda state: phases.append(state.phase))

    recorder.request_start()
    recorder.request_stop()

    assert phases == [
        RecordingPhase.IDLE,
        RecordingPhase.STARTING,
        RecordingPhase.RECORDING,
        RecordingPhase.STOPPING,
        RecordingPhase.IDLE,
    ]


@pytest.mark.unit
def test_start_while_recording_is_rejected(recorder, mock_capture):
    recorder.request_start()

    assert recorder.request_start() is False
    assert mock_capture.open_count == 1


@pytest.mark.unit
def test_stop_while_idle_is_rejected(recorder):
    assert recorder.request_stop() is False
    assert recorder.phase == RecordingPhase.IDLE


@pytest.mark.unit
def test_stop_finalizes_current_segment(
    recorder, storage, keep_awake, mock_location, mock_capture, event_tracker
):
    """
    Test stopping mid-segment.

    Should:
    - Write the partial segment to the ledger
    - Return to IDLE and release resources
    - Publish RECORDING_STOPPED with the segment count
    """
    recorder.request_start()

    assert recorder.request_stop() is True

    segments = storage.list_segments()
    assert len(segments) == 1
    assert segments[0].file_path.exists()
    assert recorder.phase == RecordingPhase.IDLE
    assert recorder.elapsed.value == 0.0
    assert not keep_awake.is_held()
    assert not mock_location.is_active()
    assert mock_capture.cleanup_count >= 1

    stopped = event_tracker.of_type(EventType.RECORDING_STOPPED)
    assert stopped[0].get("segments") == 1


# =============================================================================
# ROLLOVER
# =============================================================================


@pytest.mark.unit
def test_rollover_creates_next_segment(recorder, storage, timer_factory, fake_clock):
    """
    Test a 30 s rollover.

    Should:
    - Finalize segment 1 with a 30000 ms duration (configured fallback)
    - Open segment 2 under the same total start time
    - Arm a fresh timer
    """
    recorder.request_start()
    first_state = recorder.current_state
    first_timer = timer_factory.latest

    first_timer.fire()

    state = recorder.current_state
    assert state.phase == RecordingPhase.RECORDING
    assert state.segment_index == 2
    assert state.total_start_time == first_state.total_start_time
    assert state.segment_start_time > first_state.segment_start_time
    assert timer_factory.latest is not first_timer

    segments = storage.list_segments()
    assert len(segments) == 1
    assert segments[0].duration_ms == 30_000
    assert segments[0].recorded_at == first_state.segment_start_time
    assert segments[0].upload_status == UploadStatus.PENDING


@pytest.mark.unit
def test_rollover_publishes_segment_completed(recorder, timer_factory, event_tracker):
    completed = []
    recorder.on_segment_completed = completed.append
    recorder.request_start()

    timer_factory.latest.fire()
    timer_factory.latest.fire()

    events = event_tracker.of_type(EventType.SEGMENT_COMPLETED)
    assert len(events) == 2
    assert [e.get("segment") for e in events] == completed
    assert recorder.segments_completed == 2
    assert recorder.current_state.segment_index == 3


@pytest.mark.unit
def test_local_only_segments_are_skipped(recorder, storage, settings_store, timer_factory):
    """Local-only destination inserts rows as SKIPPED."""
    settings_store.update(upload_destination=UploadDestination.LOCAL_ONLY)
    recorder.request_start()

    timer_factory.latest.fire()

    assert storage.list_segments()[0].upload_status == UploadStatus.SKIPPED


@pytest.mark.unit
def test_settings_change_applies_to_next_segment(
    recorder, storage, settings_store, timer_factory
):
    """
    Test snapshot semantics.

    A duration change mid-segment does not touch the running segment.
    """
    recorder.request_start()
    settings_store.update(segment_duration=SegmentDuration.SEC_15)

    timer_factory.latest.fire()

    assert storage.list_segments()[0].duration_ms == 30_000
    assert timer_factory.latest.interval == 15


@pytest.mark.unit
def test_measured_duration_wins(
    camera_manager, storage, quota, settings_store, mock_overlay, mock_location,
    timer_factory, fake_clock,
):
    recorder = SegmentRecorder(
        camera=camera_manager,
        storage=storage,
        quota=quota,
        settings_store=settings_store,
        overlay=mock_overlay,
        location=mock_location,
        timer_factory=timer_factory,
        clock=fake_clock,
        probe_duration=lambda path: 29_876,
        tick_interval=None,
    )
    recorder.request_start()
    recorder.request_stop()

    assert storage.list_segments()[0].duration_ms == 29_876


@pytest.mark.unit
def test_capture_duration_hint_used_without_probe(recorder, storage, mock_capture):
    mock_capture.duration_hint_ms = 12_345
    recorder.request_start()
    recorder.request_stop()

    assert storage.list_segments()[0].duration_ms == 12_345


# =============================================================================
# STALE TIMERS
# =============================================================================


@pytest.mark.unit
def test_timer_fire_after_stop_is_ignored(recorder, storage, timer_factory):
    recorder.request_start()
    timer = timer_factory.latest
    recorder.request_stop()

    timer.fire()

    assert timer.cancelled
    assert recorder.phase == RecordingPhase.IDLE
    assert len(storage.list_segments()) == 1


@pytest.mark.unit
def test_old_session_timer_is_ignored_after_restart(recorder, storage, timer_factory):
    """
    Test a timer from a previous session firing late.

    The token check makes it a no-op: the new session stays on segment 1.
    """
    recorder.request_start()
    old_timer = timer_factory.latest
    recorder.request_stop()
    recorder.request_start()

    old_timer.fire()

    assert recorder.current_state.segment_index == 1
    assert len(storage.list_segments()) == 1


@pytest.mark.unit
def test_superseded_timer_is_ignored(recorder, timer_factory):
    recorder.request_start()
    first = timer_factory.latest
    first.fire()

    first.fire()

    assert recorder.current_state.segment_index == 2


def _wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.01)


@pytest.mark.unit
def test_stop_during_rollover_finalize_wins(
    recorder, storage, mock_capture, timer_factory, event_tracker
):
    """
    Test a stop request arriving while a rollover is finalizing.

    The timer fires on one thread and blocks inside the capture stop; the
    stop request arrives on another before the finalize completes.

    Should:
    - Write exactly one ledger row
    - End IDLE
    - Never start a second segment
    """
    recorder.request_start()
    gate = threading.Event()
    mock_capture.hold_finalize(gate)

    rollover = threading.Thread(target=timer_factory.latest.fire, daemon=True)
    rollover.start()
    assert mock_capture.stop_entered.wait(timeout=5.0)

    stop_result = {}
    stopper = threading.Thread(
        target=lambda: stop_result.update(ok=recorder.request_stop()),
        daemon=True,
    )
    stopper.start()
    _wait_until(recorder._stop_requested.is_set)

    gate.set()
    rollover.join(timeout=5.0)
    stopper.join(timeout=5.0)

    assert not rollover.is_alive()
    assert not stopper.is_alive()
    assert stop_result["ok"] is True
    assert len(storage.list_segments()) == 1
    assert recorder.phase == RecordingPhase.IDLE
    assert len(mock_capture.started_files) == 1
    assert len(event_tracker.of_type(EventType.SEGMENT_STARTED)) == 1


# =============================================================================
# FAILURES
# =============================================================================


@pytest.mark.unit
def test_start_failure_enters_error_and_releases(
    recorder, mock_capture, keep_awake, mock_location, event_tracker
):
    """
    Test a camera that cannot be opened.

    Should:
    - Return False and park in ERROR with a message
    - Release keep-awake and stop location updates
    - Publish RECORDING_ERROR
    """
    mock_capture.simulate_open_failure()

    assert recorder.request_start() is False

    state = recorder.current_state
    assert state.phase == RecordingPhase.ERROR
    assert "camera not available" in state.message
    assert not keep_awake.is_held()
    assert mock_location.stop_count == 1
    assert event_tracker.of_type(EventType.RECORDING_ERROR)


@pytest.mark.unit
def test_start_from_error_is_a_retry(recorder, mock_capture):
    mock_capture.simulate_open_failure()
    recorder.request_start()
    mock_capture.reset_test_config()

    assert recorder.request_start() is True
    assert recorder.current_state.segment_index == 1


@pytest.mark.unit
def test_finalize_failure_enters_error(
    recorder, storage, mock_capture, timer_factory, keep_awake
):
    """A file that cannot be finalized is not inserted and stops the session."""
    errors = []
    recorder.on_error = errors.append
    recorder.request_start()
    mock_capture.simulate_finalize_error("moov atom not written")

    timer_factory.latest.fire()

    assert recorder.phase == RecordingPhase.ERROR
    assert "moov atom not written" in recorder.current_state.message
    assert storage.list_segments() == []
    assert not keep_awake.is_held()
    assert errors and errors[0] == recorder.current_state.message


@pytest.mark.unit
def test_ledger_failure_enters_error(recorder, storage, timer_factory):
    recorder.request_start()
    storage.ledger.simulate_write_failure()

    timer_factory.latest.fire()

    assert recorder.phase == RecordingPhase.ERROR


@pytest.mark.unit
def test_next_segment_start_failure_enters_error(recorder, mock_capture, timer_factory):
    recorder.request_start()
    mock_capture.simulate_start_failure()

    timer_factory.latest.fire()

    assert recorder.phase == RecordingPhase.ERROR
    assert recorder.segments_completed == 1


@pytest.mark.unit
def test_critical_camera_health_enters_error(recorder, mock_capture):
    """
    Test health monitoring.

    Three consecutive failed checks declare the camera dead.
    """
    recorder.request_start()
    mock_capture.simulate_crash()

    recorder.check_device_health()
    recorder.check_device_health()
    assert recorder.phase == RecordingPhase.RECORDING

    recorder.check_device_health()
    assert recorder.phase == RecordingPhase.ERROR
    assert recorder.current_state.message.startswith("Camera failure")


@pytest.mark.unit
def test_health_tick_updates_elapsed(recorder):
    recorder.request_start()
    recorder.check_device_health()

    assert recorder.elapsed.value >= 0.0
    assert recorder.phase == RecordingPhase.RECORDING


# =============================================================================
# OVERLAY AND LOCATION
# =============================================================================


@pytest.mark.unit
def test_overlay_receives_start_time_and_location(recorder, mock_overlay, mock_location):
    mock_location.set_location(48.8584, 2.2945)
    recorder.request_start()
    started = recorder.current_state.segment_start_time

    recorder.request_stop()

    video_file, timestamp, location = mock_overlay.calls[0]
    assert timestamp == started
    assert location.latitude == 48.8584


@pytest.mark.unit
def test_location_sampled_at_finalize_when_missing_at_start(
    recorder, mock_overlay, mock_location
):
    recorder.request_start()
    mock_location.set_location(1.0, 2.0)

    recorder.request_stop()

    assert mock_overlay.calls[0][2].longitude == 2.0


@pytest.mark.unit
def test_overlay_failure_keeps_original(recorder, storage, mock_overlay):
    mock_overlay.simulate_failure("drawtext failed")
    recorder.request_start()
    recorder.request_stop()

    segment = storage.list_segments()[0]
    assert segment.file_path.exists()
    assert recorder.phase == RecordingPhase.IDLE


@pytest.mark.unit
def test_overlay_exception_is_contained(recorder, storage, mock_overlay):
    mock_overlay.simulate_exception()
    recorder.request_start()

    assert recorder.request_stop() is True
    assert len(storage.list_segments()) == 1


# =============================================================================
# QUOTA
# =============================================================================


@pytest.mark.unit
def test_quota_enforced_before_start(recorder, storage, disk_usage, tmp_path):
    """An over-quota disk is cleaned before the first segment opens."""
    old_file = tmp_path / "old.mp4"
    old_file.write_bytes(b"\x00" * 10)
    old = Segment.create(
        old_file, datetime(2025, 1, 1), 30_000, UploadDestination.LOCAL_ONLY
    )
    storage.save_segment(old)
    evicted = []
    recorder.quota.on_segment_evicted = evicted.append

    disk_usage["used"] = disk_usage["total"]  # 100%, drops once old is gone
    storage.on_segment_deleted = lambda segment: disk_usage.update(used=0)

    recorder.request_start()

    assert [s.id for s in evicted] == [old.id]
    assert not old_file.exists()
    assert recorder.phase == RecordingPhase.RECORDING


@pytest.mark.unit
def test_get_status(recorder):
    recorder.request_start()
    status = recorder.get_status()

    assert status["phase"] == "recording"
    assert status["segment_index"] == 1
    assert status["camera"]["is_open"] is True
