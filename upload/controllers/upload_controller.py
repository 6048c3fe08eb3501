"""
Upload Controller

Runs upload passes on a background worker, one at a time.

- A trigger while a pass is running is coalesced into exactly one more
  pass after the current one.
- A RETRY outcome schedules the next pass with exponential backoff.
- SUCCESS or FAILURE resets the backoff.
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional

from core.observable import ObservableValue
from upload.backoff import ExponentialBackoff
from upload.constants import PassOutcome
from upload.controllers.upload_pipeline import PassReport, UploadPipeline


class UploadController:
    """
    High-level upload coordinator for the service.

    Usage:
        controller = UploadController(pipeline)
        controller.trigger_pass("segment completed")
        controller.wait_idle(timeout=30)
        print(controller.last_report.value)
        controller.shutdown()
    """

    def __init__(
        self,
        pipeline: UploadPipeline,
        backoff: Optional[ExponentialBackoff] = None,
        timer_factory: Callable[..., Any] = threading.Timer,
    ):
        """
        Initialize upload controller.

        Args:
            pipeline: Pass implementation
            backoff: Delay policy after RETRY outcomes
            timer_factory: Builds the retry timer; called like
                threading.Timer(interval, function)
        """
        self.logger = logging.getLogger(__name__)
        self.pipeline = pipeline
        self.backoff = backoff or ExponentialBackoff()
        self._timer_factory = timer_factory

        self.last_report: ObservableValue[Optional[PassReport]] = ObservableValue(
            None, name="last upload pass"
        )

        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._running = False
        self._rerun = False
        self._shutdown = False
        self._worker: Optional[threading.Thread] = None
        self._retry_timer: Optional[Any] = None

        self.passes_run = 0
        self.next_retry_delay: Optional[float] = None

        self.logger.info("Upload Controller initialized")

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def trigger_pass(self, reason: str = "manual") -> bool:
        """
        Request an upload pass.

        Returns:
            True if a new worker was started, False if the request was
            coalesced into the running pass or the controller is shut down
        """
        with self._lock:
            if self._shutdown:
                self.logger.debug(f"Ignoring upload trigger after shutdown ({reason})")
                return False

            self._cancel_retry_timer()

            if self._running:
                self._rerun = True
                self.logger.debug(f"Upload pass running, coalesced trigger ({reason})")
                return False

            self._running = True
            self._idle.clear()
            self._worker = threading.Thread(
                target=self._worker_loop,
                daemon=True,
                name="UploadWorker",
            )
            self._worker.start()

        self.logger.info(f"Upload pass triggered ({reason})")
        return True

    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no pass is running. Returns False on timeout."""
        return self._idle.wait(timeout)

    def shutdown(self, timeout: float = 10.0) -> None:
        """
        Stop scheduling passes and wait for the current one.

        An in-flight pass is not interrupted.
        """
        with self._lock:
            self._shutdown = True
            self._rerun = False
            self._cancel_retry_timer()

        if not self._idle.wait(timeout):
            self.logger.warning("Upload pass still running at shutdown")
        self.logger.info("Upload Controller shut down")

    # =========================================================================
    # WORKER
    # =========================================================================

    def _worker_loop(self) -> None:
        while True:
            report = self._run_one()

            with self._lock:
                if self._rerun and not self._shutdown:
                    self._rerun = False
                    continue

                self._running = False
                self._worker = None
                if not self._shutdown:
                    self._schedule_after(report)
                self._idle.set()
                return

    def _run_one(self) -> PassReport:
        try:
            report = self.pipeline.run_pass()
        except Exception as e:
            self.logger.error(f"Upload pass crashed: {e}", exc_info=True)
            report = PassReport(PassOutcome.RETRY, reason=str(e))

        self.passes_run += 1
        self.last_report.set(report)
        return report

    def _schedule_after(self, report: PassReport) -> None:
        """Arm the backoff timer after RETRY. Caller holds the lock."""
        if report.outcome != PassOutcome.RETRY:
            self.backoff.reset()
            self.next_retry_delay = None
            return

        delay = self.backoff.next_delay(report.backoff_multiplier)
        self.next_retry_delay = delay
        self.logger.info(f"Upload pass will be retried in {delay:.0f}s")

        timer = self._timer_factory(delay, self._on_retry_timer)
        timer.daemon = True
        self._retry_timer = timer
        timer.start()

    def _on_retry_timer(self) -> None:
        with self._lock:
            self._retry_timer = None
        self.trigger_pass("backoff retry")

    def _cancel_retry_timer(self) -> None:
        if self._retry_timer is not None:
            self._retry_timer.cancel()
            self._retry_timer = None

    # =========================================================================
    # STATUS
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        report = self.last_report.value
        return {
            "running": self.is_running(),
            "passes_run": self.passes_run,
            "last_outcome": report.outcome.value if report else None,
            "next_retry_delay": self.next_retry_delay,
            "uploader_type": type(self.pipeline.uploader).__name__,
        }
