"""
Segment Recorder

Drives continuous recording as a sequence of fixed-length segments:

    IDLE -> STARTING -> RECORDING(1) -> RECORDING(2) -> ... -> STOPPING -> IDLE
                 \\            |                                  /
                  +------> ERROR(message) <--------------------+

Each rollover stops the current capture, waits for the file to be
finalized, burns in the overlay, measures the duration, writes the ledger
row, enforces the storage quota and opens the next segment.

All transitions run under one re-entrant lock, so a segment timer and a
stop request never execute at the same time. Every armed timer carries a
token; a timer that fires after it was superseded or cancelled is a no-op.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from config.app_settings import AppSettings, SettingsStore
from config.settings import DURATION_TICK_INTERVAL
from core.event_bus import EventBus, EventType
from core.keep_awake import KeepAwakeInterface, NullKeepAwake
from core.observable import ObservableValue
from core.state_machine import InvalidTransitionError, StateMachine
from recording.constants import RECORDER_TRANSITIONS, RecordingPhase, RecordingState
from recording.controllers.camera_manager import CameraManager
from recording.interfaces.location_interface import (
    LocationFix,
    LocationProviderInterface,
)
from recording.interfaces.overlay_interface import OverlayInterface
from recording.interfaces.video_capture_interface import (
    CaptureError,
    CaptureHandle,
    CaptureProcessError,
)
from storage.controllers.storage_controller import StorageController
from storage.interfaces.ledger_interface import StorageError
from storage.managers.quota_enforcer import QuotaEnforcer
from storage.models.segment import Segment
from storage.utils.validation_utils import probe_duration_ms, resolve_duration_ms

# Errors that put the recorder into ERROR
RECORDER_ERRORS = (CaptureError, StorageError, OSError, InvalidTransitionError)


@dataclass
class _ActiveSegment:
    """The segment currently being written. Never in the ledger."""

    handle: CaptureHandle
    file_path: Path
    started_at: datetime
    location: Optional[LocationFix]
    settings: AppSettings


class SegmentRecorder:
    """
    Segmented recording state machine.

    Usage:
        recorder = SegmentRecorder(camera, storage, quota, settings_store,
                                   overlay, location)
        recorder.state.subscribe(lambda s: print(s.phase.value))
        recorder.request_start()
        # ... segments roll over on their own ...
        recorder.request_stop()
    """

    def __init__(
        self,
        camera: CameraManager,
        storage: StorageController,
        quota: QuotaEnforcer,
        settings_store: SettingsStore,
        overlay: OverlayInterface,
        location: LocationProviderInterface,
        keep_awake: Optional[KeepAwakeInterface] = None,
        event_bus: Optional[EventBus] = None,
        timer_factory: Callable[..., Any] = threading.Timer,
        clock: Callable[[], datetime] = datetime.now,
        probe_duration: Callable[[Path], Optional[int]] = probe_duration_ms,
        tick_interval: Optional[float] = DURATION_TICK_INTERVAL,
    ):
        """
        Initialize segment recorder.

        Args:
            camera: Camera manager (capture collaborator)
            storage: Storage controller (ledger + files)
            quota: Quota enforcer run before and after each segment
            settings_store: Source of settings snapshots
            overlay: Overlay renderer
            location: Best-effort location source
            keep_awake: Keep-awake resource held while recording
            event_bus: Channel for recorder events
            timer_factory: Builds the segment timer; called like
                threading.Timer(interval, function, args=...)
            clock: Wall clock used for segment start times
            probe_duration: Reads the duration of a finalized file
            tick_interval: Seconds between elapsed/health ticks
                (None disables the ticker thread)
        """
        self.logger = logging.getLogger(__name__)

        self.camera = camera
        self.storage = storage
        self.quota = quota
        self.settings_store = settings_store
        self.overlay = overlay
        self.location = location
        self.keep_awake = keep_awake or NullKeepAwake()
        self.event_bus = event_bus

        self._timer_factory = timer_factory
        self._clock = clock
        self._probe_duration = probe_duration
        self._tick_interval = tick_interval

        self._machine: StateMachine[RecordingState] = StateMachine(
            RecordingState.idle(),
            RECORDER_TRANSITIONS,
            phase_of=lambda state: state.phase,
            name="Segment recorder",
        )

        # Observable streams
        self.state: ObservableValue[RecordingState] = self._machine.holder
        self.elapsed: ObservableValue[float] = ObservableValue(0.0, name="elapsed")

        self._lock = threading.RLock()
        self._stop_requested = threading.Event()

        self._active: Optional[_ActiveSegment] = None
        self._settings: Optional[AppSettings] = None
        self._session = 0
        self._session_started: Optional[float] = None
        self._segments_completed = 0

        # Segment timer
        self._timer: Optional[Any] = None
        self._timer_token = 0

        # Elapsed/health ticker
        self._ticker_thread: Optional[threading.Thread] = None
        self._ticker_stop_event: Optional[threading.Event] = None

        # Callbacks for events
        self.on_segment_completed: Optional[Callable[[Segment], None]] = None
        self.on_error: Optional[Callable[[str], None]] = None

        self.logger.info("Segment Recorder initialized")

    # =========================================================================
    # PUBLIC PROPERTIES
    # =========================================================================

    @property
    def current_state(self) -> RecordingState:
        return self._machine.state

    @property
    def phase(self) -> RecordingPhase:
        return self._machine.state.phase

    @property
    def is_recording(self) -> bool:
        return self.phase == RecordingPhase.RECORDING

    @property
    def segments_completed(self) -> int:
        """Segments finalized during the current or last session"""
        return self._segments_completed

    # =========================================================================
    # CONTROL
    # =========================================================================

    def request_start(self) -> bool:
        """
        Start a recording session.

        Allowed from IDLE, or from ERROR as an explicit retry.

        Returns:
            True if the recorder reached RECORDING
        """
        with self._lock:
            if self.phase not in (RecordingPhase.IDLE, RecordingPhase.ERROR):
                self.logger.warning(f"Cannot start - recorder is {self.phase.value}")
                return False

            self._stop_requested.clear()
            self._session += 1
            self._segments_completed = 0
            self._machine.transition_to(RecordingState.starting(), "start requested")

            try:
                self._settings = self.settings_store.snapshot()
                self.keep_awake.acquire()
                self.location.start_updates()

                evicted = self.quota.enforce(self._settings.max_storage_percent)
                if evicted:
                    self.logger.info(f"Freed space before start ({evicted} segments)")

                self.camera.open(self._settings.video_quality)
                self._session_started = time.monotonic()
                self._open_segment(first=True)
            except RECORDER_ERRORS as e:
                self._fail(f"Failed to start recording: {e}")
                return False

            self._start_ticker(self._session)
            self._publish(EventType.RECORDING_STARTED)
            return True

    def request_stop(self) -> bool:
        """
        Stop the session after finalizing the current segment.

        Cancels the segment timer first, then waits for any rollover in
        progress before finalizing.

        Returns:
            True if the recorder returned to IDLE
        """
        self._stop_requested.set()
        self._cancel_timer()

        with self._lock:
            if self.phase != RecordingPhase.RECORDING:
                self.logger.warning(f"Cannot stop - recorder is {self.phase.value}")
                return False

            self._machine.transition_to(RecordingState.stopping(), "stop requested")
            self._stop_ticker()

            try:
                self._finalize_active()
            except RECORDER_ERRORS as e:
                self._fail(f"Failed to finalize segment: {e}")
                return False

            self._release_resources()
            self._machine.transition_to(RecordingState.idle(), "stopped")
            self.elapsed.set(0.0)

            self.logger.info(
                f"Recording stopped ({self._segments_completed} segments)"
            )
            self._publish(
                EventType.RECORDING_STOPPED,
                segments=self._segments_completed,
            )
            return True

    def check_device_health(self) -> None:
        """Run one elapsed/health tick now"""
        self._tick(self._session, blocking=True)

    # =========================================================================
    # SEGMENT LIFECYCLE
    # =========================================================================

    def _open_segment(self, first: bool) -> None:
        """Open the next segment file and arm its timer. Caller holds the lock."""
        settings = self._settings
        started_at = self._clock()
        path = self.storage.new_segment_path(started_at)

        handle = self.camera.start_segment(path, settings.audio_enabled)
        location = self.location.current_location()

        previous = self._machine.state
        if first:
            index = 1
            total_start = started_at
        else:
            index = previous.segment_index + 1
            total_start = previous.total_start_time

        self._active = _ActiveSegment(
            handle=handle,
            file_path=path,
            started_at=started_at,
            location=location,
            settings=settings,
        )
        self._machine.transition_to(
            RecordingState.recording(index, started_at, total_start),
            f"segment {index}",
        )

        self._arm_timer(settings.segment_duration.seconds)
        self._publish(EventType.SEGMENT_STARTED, index=index, file_path=path)

    def _finalize_active(self) -> Optional[Segment]:
        """
        Finalize the active segment and write its ledger row.

        Caller holds the lock.

        Raises:
            CaptureProcessError: If the capture could not finalize the file
            StorageError: If the ledger write fails
        """
        active = self._active
        if active is None:
            return None
        self._active = None

        result = self.camera.finish_segment(active.handle)
        if not result.ok:
            raise CaptureProcessError(result.error or "Segment finalize failed")

        location = active.location or self.location.current_location()
        final_file = self._apply_overlay(result.file, active.started_at, location)

        duration_ms = resolve_duration_ms(
            final_file,
            result.duration_hint_ms,
            active.settings.segment_duration.millis,
            probe=self._probe_duration,
        )

        try:
            segment = Segment.create(
                final_file,
                recorded_at=active.started_at,
                duration_ms=duration_ms,
                destination=active.settings.upload_destination,
            )
        except OSError as e:
            raise CaptureProcessError(f"Finalized file unreadable: {e}") from e

        self.storage.save_segment(segment)
        self._segments_completed += 1

        self.logger.info(
            f"Segment completed: {segment.file_name} "
            f"({duration_ms / 1000:.1f}s, {segment.upload_status.value})"
        )

        self.quota.enforce(active.settings.max_storage_percent)

        self._publish(EventType.SEGMENT_COMPLETED, segment=segment)
        self._trigger_segment_completed(segment)
        return segment

    def _apply_overlay(
        self,
        video_file: Path,
        timestamp: datetime,
        location: Optional[LocationFix],
    ) -> Path:
        """Burn in the overlay, falling back to the untouched file"""
        try:
            result = self.overlay.burn_overlay(video_file, timestamp, location)
        except Exception as e:
            self.logger.warning(f"Overlay crashed, keeping original: {e}")
            return video_file

        if not result.applied:
            self.logger.warning(f"Overlay not applied: {result.error}")
            return video_file if video_file.exists() else result.file

        return result.file

    def _rollover(self, token: int) -> None:
        if self._stop_requested.is_set():
            return

        with self._lock:
            if token != self._timer_token or self.phase != RecordingPhase.RECORDING:
                self.logger.debug("Ignoring stale segment timer")
                return

            self._timer = None
            self.logger.info(
                f"Segment {self._machine.state.segment_index} duration reached, "
                f"rolling over"
            )

            try:
                self._finalize_active()

                # A stop that arrived during finalize wins
                if self._stop_requested.is_set():
                    return

                self._settings = self.settings_store.snapshot()
                self._open_segment(first=False)
            except RECORDER_ERRORS as e:
                self._fail(f"Rollover failed: {e}")

    # =========================================================================
    # TIMERS
    # =========================================================================

    def _arm_timer(self, seconds: float) -> None:
        self._cancel_timer()
        self._timer_token += 1
        timer = self._timer_factory(seconds, self._rollover, args=(self._timer_token,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _cancel_timer(self) -> None:
        """Cancel the segment timer and invalidate any in-flight fire"""
        with self._lock:
            self._timer_token += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _start_ticker(self, session: int) -> None:
        if not self._tick_interval:
            return

        stop_event = threading.Event()
        self._ticker_stop_event = stop_event
        self._ticker_thread = threading.Thread(
            target=self._ticker_worker,
            args=(session, stop_event),
            daemon=True,
            name="RecorderTicker",
        )
        self._ticker_thread.start()
        self.logger.debug("Ticker thread started")

    def _stop_ticker(self) -> None:
        # Signal only: the ticker may be waiting on the lock we hold
        if self._ticker_stop_event is not None:
            self._ticker_stop_event.set()
        self._ticker_stop_event = None
        self._ticker_thread = None

    def _ticker_worker(self, session: int, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._tick_interval):
            try:
                self._tick(session, blocking=False)
            except Exception as e:
                self.logger.error(f"Error in ticker thread: {e}")

    def _tick(self, session: int, blocking: bool) -> None:
        """Publish elapsed time and check the camera"""
        # Skip a tick rather than wait out a rollover
        if not self._lock.acquire(blocking=blocking):
            return

        try:
            if session != self._session or self.phase != RecordingPhase.RECORDING:
                return

            if self._session_started is not None:
                self.elapsed.set(time.monotonic() - self._session_started)

            if self._active is None:
                return

            health = self.camera.check_health()
            if health.get("critical"):
                self._fail(
                    f"Camera failure: {health.get('error_message') or 'unknown error'}"
                )
        finally:
            self._lock.release()

    # =========================================================================
    # ERROR HANDLING
    # =========================================================================

    def _fail(self, message: str) -> None:
        """Park in ERROR after releasing everything. Caller holds the lock."""
        self.logger.error(message)

        self._cancel_timer()
        self._stop_ticker()

        if self._active is not None:
            self.camera.abort_segment(self._active.handle)
            self.logger.warning(f"Discarded unfinalized segment: {self._active.file_path}")
            self._active = None

        self._release_resources()

        if self.phase != RecordingPhase.ERROR:
            self._machine.transition_to(RecordingState.error(message), "failure")
        self.elapsed.set(0.0)

        self._publish(EventType.RECORDING_ERROR, message=message)
        self._trigger_error(message)

    def _release_resources(self) -> None:
        try:
            if self.camera.is_open():
                self.camera.close()
        except CaptureError as e:
            self.logger.error(f"Error closing camera: {e}")

        try:
            self.keep_awake.release()
        except OSError as e:
            self.logger.error(f"Error releasing keep-awake: {e}")

        self.location.stop_updates()
        self._session_started = None

    # =========================================================================
    # CALLBACK TRIGGERS
    # =========================================================================

    def _publish(self, event_type: EventType, **data: Any) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(event_type, **data)

    def _trigger_segment_completed(self, segment: Segment) -> None:
        if self.on_segment_completed:
            try:
                self.on_segment_completed(segment)
            except Exception as e:
                self.logger.error(f"Error in segment completed callback: {e}")

    def _trigger_error(self, message: str) -> None:
        if self.on_error:
            try:
                self.on_error(message)
            except Exception as e:
                self.logger.error(f"Error in error callback: {e}")

    # =========================================================================
    # STATUS AND INFO
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        state = self._machine.state
        return {
            "phase": state.phase.value,
            "segment_index": state.segment_index,
            "segment_start_time": (
                state.segment_start_time.isoformat()
                if state.segment_start_time else None
            ),
            "total_start_time": (
                state.total_start_time.isoformat()
                if state.total_start_time else None
            ),
            "message": state.message,
            "elapsed_seconds": self.elapsed.value,
            "segments_completed": self._segments_completed,
            "camera": self.camera.get_status(),
        }

    def cleanup(self) -> None:
        """Stop any session and release resources. Call before shutdown."""
        self.logger.info("Cleaning up Segment Recorder")
        if self.is_recording:
            self.request_stop()

        with self._lock:
            self._cancel_timer()
            self._stop_ticker()
