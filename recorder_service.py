"""
Recorder Service

Main service coordinator for the segmented recorder.
Wires storage, quota, recorder and upload together and exposes the
control surface.

Flow:
    start -> upload pass (startup)
    each finalized PENDING segment -> upload pass
    network offline -> online -> upload pass
    RETRY outcome -> upload pass after backoff

Control:
- request_start() / request_stop() / trigger_upload_pass()
- state and elapsed_duration observables
- Control file: echo "START" > /tmp/segment_recorder_control.cmd
  (START, STOP, UPLOAD, STATUS)
"""

import argparse
import logging
import logging.handlers
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from config.app_settings import SettingsStore
from config.settings import (
    CONTROL_FILE,
    LOG_BACKUP_COUNT,
    LOG_DIR,
    LOG_SERVICE_FILE,
    NETWORK_CHECK_INTERVAL,
    SERVICE_LOOP_INTERVAL,
    YOUTUBE_CLIENT_SECRET_PATH,
    YOUTUBE_TOKEN_PATH,
)
from core.event_bus import Event, EventBus, EventType
from core.keep_awake import KeepAwakeInterface, create_keep_awake
from core.network import check_internet_connectivity
from core.observable import ObservableValue
from recording import (
    CameraManager,
    RecordingState,
    SegmentRecorder,
    create_capture,
    create_location_provider,
    create_overlay,
    register_recorder,
    unregister_recorder,
)
from recording.interfaces.location_interface import LocationProviderInterface
from recording.interfaces.overlay_interface import OverlayInterface
from recording.interfaces.video_capture_interface import VideoCaptureInterface
from storage import QuotaEnforcer, StorageController, create_storage
from storage.constants import UploadStatus
from storage.models.segment import Segment
from upload import UploadController, UploadPipeline, create_uploader
from upload.auth.oauth_manager import run_initial_auth
from upload.interfaces.uploader_interface import UploaderInterface


class RecorderService:
    """
    Main service coordinator.

    Wires together:
    - Settings snapshot store
    - Storage controller and quota enforcer
    - Segment recorder (camera, overlay, location, keep-awake)
    - Upload pipeline and its background controller
    - Event bus, network monitor and control file

    Usage:
        service = RecorderService()
        service.run()  # Blocks until shutdown
    """

    def __init__(
        self,
        settings_store: Optional[SettingsStore] = None,
        storage: Optional[StorageController] = None,
        capture: Optional[VideoCaptureInterface] = None,
        overlay: Optional[OverlayInterface] = None,
        location: Optional[LocationProviderInterface] = None,
        uploader: Optional[UploaderInterface] = None,
        keep_awake: Optional[KeepAwakeInterface] = None,
        event_bus: Optional[EventBus] = None,
        connectivity_check: Callable[[], bool] = check_internet_connectivity,
        control_file: Optional[Path] = None,
        recorder_options: Optional[Dict[str, Any]] = None,
        upload_options: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize all controllers and wire events.

        Every collaborator can be injected; anything omitted is created
        from configuration. recorder_options and upload_options are passed
        through to SegmentRecorder and UploadController.
        """
        self.logger = logging.getLogger(__name__)
        self.logger.info("Initializing Recorder Service...")

        self.running = False
        self.internet_connected: Optional[bool] = None
        self.control_file = Path(control_file or CONTROL_FILE)
        self._connectivity_check = connectivity_check
        self._stop_event = threading.Event()
        self.network_monitor_thread: Optional[threading.Thread] = None

        self.event_bus = event_bus or EventBus()
        self.settings_store = settings_store or SettingsStore()

        # Storage
        self.logger.info("Initializing storage...")
        self.storage = storage or create_storage()
        self.quota = QuotaEnforcer(self.storage)
        self.quota.on_segment_evicted = self._handle_segment_evicted

        # Recording
        self.logger.info("Initializing recording system...")
        self.camera = CameraManager(capture or create_capture())
        self.recorder = SegmentRecorder(
            camera=self.camera,
            storage=self.storage,
            quota=self.quota,
            settings_store=self.settings_store,
            overlay=overlay or create_overlay(),
            location=location or create_location_provider(),
            keep_awake=keep_awake or create_keep_awake(),
            event_bus=self.event_bus,
            **(recorder_options or {}),
        )

        # Upload
        self.logger.info("Initializing upload pipeline...")
        self.pipeline = UploadPipeline(
            storage=self.storage,
            uploader=uploader or create_uploader(),
            settings_store=self.settings_store,
            event_bus=self.event_bus,
        )
        self.uploads = UploadController(self.pipeline, **(upload_options or {}))

        self._setup_subscriptions()

        self.logger.info("Recorder Service initialized successfully")

    def _setup_subscriptions(self) -> None:
        self.event_bus.subscribe(EventType.SEGMENT_COMPLETED, self._handle_segment_completed)
        self.event_bus.subscribe(EventType.RECORDING_ERROR, self._handle_recording_error)
        self.event_bus.subscribe(
            EventType.UPLOAD_NOTIFICATION, self._handle_upload_notification
        )

    # =========================================================================
    # CONTROL SURFACE
    # =========================================================================

    @property
    def state(self) -> ObservableValue[RecordingState]:
        return self.recorder.state

    @property
    def elapsed_duration(self) -> ObservableValue[float]:
        return self.recorder.elapsed

    def request_start(self) -> bool:
        return self.recorder.request_start()

    def request_stop(self) -> bool:
        return self.recorder.request_stop()

    def trigger_upload_pass(self, reason: str = "manual") -> bool:
        return self.uploads.trigger_pass(reason)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """Start background work without blocking"""
        self.running = True
        self._stop_event.clear()

        register_recorder(self.recorder)
        self.storage.refresh_storage_info()
        self.trigger_upload_pass("startup")
        self._start_network_monitor()

    def run(self, auto_start: bool = False) -> None:
        """
        Main service loop.

        Runs until a shutdown signal is received.
        """
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        self.start()
        self.logger.info("Starting Recorder Service main loop...")

        if auto_start:
            self.request_start()

        try:
            while self.running:
                self._check_control_commands()
                self._stop_event.wait(SERVICE_LOOP_INTERVAL)
        except KeyboardInterrupt:
            self.logger.info("Keyboard interrupt received")
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        """
        Graceful shutdown.

        Finalizes the current segment, lets a running upload pass finish
        and closes the ledger.
        """
        self.logger.info("Shutting down Recorder Service...")
        self.running = False
        self._stop_event.set()

        self.recorder.cleanup()
        self.uploads.shutdown()

        if self.network_monitor_thread and self.network_monitor_thread.is_alive():
            self.logger.info("Waiting for network monitor to stop...")
            self.network_monitor_thread.join(timeout=5.0)
        self.network_monitor_thread = None

        unregister_recorder(recorder=self.recorder)
        self.storage.cleanup()

        self.logger.info("Recorder Service shutdown complete")

    def _signal_handler(self, signum, _frame):
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received signal {signal_name}, shutting down...")
        self.running = False
        self._stop_event.set()

    # =========================================================================
    # EVENT HANDLERS
    # =========================================================================

    def _handle_segment_completed(self, event: Event) -> None:
        segment: Optional[Segment] = event.get("segment")
        if segment is not None and segment.upload_status == UploadStatus.PENDING:
            self.trigger_upload_pass("segment completed")

    def _handle_segment_evicted(self, segment: Segment) -> None:
        self.event_bus.publish(EventType.SEGMENT_EVICTED, segment=segment)

    def _handle_recording_error(self, event: Event) -> None:
        self.logger.error(f"Recording error: {event.get('message')}")

    def _handle_upload_notification(self, event: Event) -> None:
        kind = event.get("kind")
        self.logger.warning(
            f"Upload notification [{kind.value if kind else 'max_retries'}] "
            f"segment {event.get('segment_id')}: {event.get('message')}"
        )

    # =========================================================================
    # NETWORK MONITORING
    # =========================================================================

    def _start_network_monitor(self) -> None:
        self.logger.info("Starting network monitor...")
        self.network_monitor_thread = threading.Thread(
            target=self._network_monitor_worker,
            daemon=True,
            name="NetworkMonitor",
        )
        self.network_monitor_thread.start()

    def _network_monitor_worker(self) -> None:
        self.logger.info("Network monitor thread started")

        while self.running:
            try:
                self.check_connectivity()
            except Exception as e:
                self.logger.error(f"Network monitor error: {e}", exc_info=True)

            if self._stop_event.wait(NETWORK_CHECK_INTERVAL):
                break

        self.logger.info("Network monitor thread stopped")

    def check_connectivity(self) -> bool:
        """
        Probe connectivity once; an offline -> online edge triggers a pass.

        Returns:
            Current connectivity
        """
        connected = self._connectivity_check()
        previous = self.internet_connected
        self.internet_connected = connected

        if previous is False and connected:
            self.logger.info("Internet: reconnected")
            self.trigger_upload_pass("network reconnected")
        elif previous and not connected:
            self.logger.info("Internet: lost")

        return connected

    # =========================================================================
    # REMOTE CONTROL
    # =========================================================================

    def _check_control_commands(self) -> None:
        """
        Check for and process a command left in the control file.

        Supported commands: START, STOP, UPLOAD, STATUS
        """
        if not self.control_file.exists():
            return

        try:
            command = self.control_file.read_text().strip().upper()
            # Delete immediately to prevent re-processing
            self.control_file.unlink()
        except OSError as e:
            self.logger.error(f"Failed to read control command: {e}")
            return

        self.logger.info(f"Remote command received: {command}")
        self._process_remote_command(command)

    def _process_remote_command(self, command: str) -> None:
        if command == "START":
            if not self.request_start():
                self.logger.warning(
                    f"Remote START ignored - recorder is {self.recorder.phase.value}"
                )

        elif command == "STOP":
            if not self.request_stop():
                self.logger.warning(
                    f"Remote STOP ignored - recorder is {self.recorder.phase.value}"
                )

        elif command == "UPLOAD":
            self.trigger_upload_pass("remote command")

        elif command == "STATUS":
            status = self.get_status()
            self.logger.info(
                f"Remote STATUS -> recorder: {status['recorder']['phase']}, "
                f"segment: {status['recorder']['segment_index']}, "
                f"upload: {status['upload']['last_outcome']}, "
                f"internet: {status['internet_connected']}"
            )

        else:
            self.logger.warning(f"Unknown remote command: {command}")

    def get_status(self) -> Dict[str, Any]:
        info = self.storage.storage_info.value
        return {
            "recorder": self.recorder.get_status(),
            "upload": self.uploads.get_status(),
            "storage": info.to_dict() if info else None,
            "internet_connected": self.internet_connected,
            "settings_version": self.settings_store.snapshot().version,
        }


def setup_logging(level: str = "INFO") -> None:
    """
    Setup logging with rotation.

    Logs to console and to LOG_DIR/LOG_SERVICE_FILE, rotated at midnight
    with LOG_BACKUP_COUNT days kept. Console only if LOG_DIR is not
    writable.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    log_format = logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s | %(name)s",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_format)
    logger.addHandler(console_handler)

    log_file = Path(LOG_DIR) / LOG_SERVICE_FILE
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.TimedRotatingFileHandler(
            str(log_file),
            when="midnight",
            interval=1,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(log_format)
        logger.addHandler(file_handler)
    except OSError as e:
        logger.warning(f"Cannot write to {log_file} ({e}), logging to console only")
        logger.info(
            f"To fix: sudo mkdir -p {LOG_DIR} && sudo chown $(whoami) {LOG_DIR}"
        )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Segmented video recorder service")
    parser.add_argument(
        "--authorize",
        action="store_true",
        help="Run the YouTube OAuth flow and write the token file, then exit",
    )
    parser.add_argument(
        "--auto-start",
        action="store_true",
        help="Start recording as soon as the service is up",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args(argv)


def main(argv=None):
    """
    Main entry point for the service.

    Sets up logging and runs the service.
    """
    args = parse_args(argv)
    setup_logging(args.log_level)

    logger = logging.getLogger(__name__)

    if args.authorize:
        ok = run_initial_auth(YOUTUBE_CLIENT_SECRET_PATH, YOUTUBE_TOKEN_PATH)
        sys.exit(0 if ok else 1)

    logger.info("=" * 60)
    logger.info("Segmented Video Recorder Service Starting")
    logger.info("=" * 60)

    try:
        service = RecorderService()
        service.run(auto_start=args.auto_start)
    except Exception as e:
        logger.critical(f"Fatal error in main: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
