"""
Upload Pipeline

One pass over a bounded batch of PENDING segments:

1. Wi-Fi-only and no Wi-Fi -> RETRY, nothing touched
2. Local-only destination -> SUCCESS, nothing touched
3. Reset stuck UPLOADING rows to PENDING
4. Take up to batch_size PENDING rows, oldest first
5. Upload each one and apply the retry policy for any failure

The pipeline never loops on its own; the Upload Controller decides when
the next pass runs.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from config.app_settings import SettingsStore
from config.settings import MAX_UPLOAD_RETRIES, SEGMENT_TITLE_PREFIX, UPLOAD_BATCH_SIZE
from core.event_bus import EventBus, EventType
from core.network import is_wifi_connected
from storage.constants import UploadStatus
from storage.controllers.storage_controller import StorageController
from storage.models.segment import Segment
from upload.constants import PassOutcome, UploadErrorKind
from upload.interfaces.uploader_interface import UploaderInterface
from upload.policy import classify_exception, policy_for


@dataclass
class PassReport:
    """Summary of one upload pass"""

    outcome: PassOutcome
    uploaded: int = 0
    retried: int = 0
    failed: int = 0
    skipped: int = 0
    backoff_multiplier: float = 1.0
    reason: Optional[str] = None

    @property
    def processed(self) -> int:
        return self.uploaded + self.retried + self.failed

    def __repr__(self) -> str:
        return (
            f"PassReport({self.outcome.value}, uploaded={self.uploaded}, "
            f"retried={self.retried}, failed={self.failed}, skipped={self.skipped})"
        )


class UploadPipeline:
    """
    Moves PENDING segments to COMPLETED or FAILED through a transport.

    Usage:
        pipeline = UploadPipeline(storage, uploader, settings_store, event_bus)
        report = pipeline.run_pass()
        if report.outcome == PassOutcome.RETRY:
            schedule_later()
    """

    def __init__(
        self,
        storage: StorageController,
        uploader: UploaderInterface,
        settings_store: SettingsStore,
        event_bus: Optional[EventBus] = None,
        wifi_check: Callable[[], bool] = is_wifi_connected,
        batch_size: int = UPLOAD_BATCH_SIZE,
        max_retries: int = MAX_UPLOAD_RETRIES,
    ):
        """
        Initialize upload pipeline.

        Args:
            storage: Storage controller (ledger + file deletion)
            uploader: Transport
            settings_store: Source of settings snapshots
            event_bus: Channel for UPLOAD_COMPLETED / UPLOAD_NOTIFICATION
            wifi_check: Returns True when a Wi-Fi link is up
            batch_size: Maximum segments per pass
            max_retries: retry_count at which a segment is forced to FAILED
        """
        self.logger = logging.getLogger(__name__)
        self.storage = storage
        self.ledger = storage.ledger
        self.uploader = uploader
        self.settings_store = settings_store
        self.event_bus = event_bus
        self.wifi_check = wifi_check
        self.batch_size = batch_size
        self.max_retries = max_retries

    def run_pass(self) -> PassReport:
        """
        Run one upload pass.

        Raises:
            StorageError: If the ledger cannot be read or written
        """
        settings = self.settings_store.snapshot()

        if settings.wifi_only and not self.wifi_check():
            self.logger.info("Wi-Fi only and no Wi-Fi, upload pass postponed")
            return PassReport(PassOutcome.RETRY, reason="waiting for Wi-Fi")

        if settings.is_local_only:
            self.logger.debug("Local-only destination, nothing to upload")
            return PassReport(PassOutcome.SUCCESS, reason="local only")

        reset = self.ledger.reset_stuck_uploads()
        if reset:
            self.logger.warning(f"Recovered {reset} stuck uploads")

        batch = self.storage.list_pending(limit=self.batch_size)
        if not batch:
            self.logger.debug("No pending segments")
            return PassReport(PassOutcome.SUCCESS, reason="nothing pending")

        self.logger.info(f"Upload pass: {len(batch)} pending segments")

        report = PassReport(PassOutcome.SUCCESS)
        for segment in batch:
            self._process(segment, settings.auto_delete_after_upload, report)

        report.outcome = self._outcome(report)
        self.logger.info(f"Upload pass finished: {report!r}")
        return report

    # =========================================================================
    # PER-SEGMENT
    # =========================================================================

    def _process(self, segment: Segment, auto_delete: bool, report: PassReport) -> None:
        if segment.upload_status != UploadStatus.PENDING:
            report.skipped += 1
            return

        if segment.retry_count >= self.max_retries:
            message = f"Max retries exceeded ({segment.retry_count})"
            if self.ledger.transition_status(
                segment.id, UploadStatus.PENDING, UploadStatus.FAILED, error=message
            ):
                report.failed += 1
                self._notify(segment, None, message)
            else:
                report.skipped += 1
            return

        if not segment.exists:
            message = f"File missing: {segment.file_path}"
            if self.ledger.transition_status(
                segment.id, UploadStatus.PENDING, UploadStatus.FAILED, error=message
            ):
                report.failed += 1
                self._notify(segment, UploadErrorKind.FILE, message)
            else:
                report.skipped += 1
            return

        if not self.ledger.transition_status(
            segment.id, UploadStatus.PENDING, UploadStatus.UPLOADING
        ):
            self.logger.debug(f"Segment {segment.id} changed before upload, skipping")
            report.skipped += 1
            return

        try:
            url = self.uploader.upload(segment.file_path, self._remote_name(segment))
        except Exception as e:
            self._handle_failure(segment, e, report)
            return

        self._handle_success(segment, url, auto_delete, report)

    def _handle_success(
        self,
        segment: Segment,
        url: str,
        auto_delete: bool,
        report: PassReport,
    ) -> None:
        report.uploaded += 1

        if not self.ledger.mark_uploaded(segment.id, url):
            self.logger.warning(
                f"Uploaded {segment.file_name} but its row changed meanwhile"
            )
            return

        self.logger.info(f"Uploaded {segment.file_name}: {url}")
        self._publish(EventType.UPLOAD_COMPLETED, segment_id=segment.id, url=url)

        if auto_delete:
            self._auto_delete(segment.id)

    def _auto_delete(self, segment_id: str) -> None:
        """Delete only if a fresh read still shows a confirmed upload"""
        current = self.storage.get_segment(segment_id)
        if (
            current is None
            or current.upload_status != UploadStatus.COMPLETED
            or not current.remote_url
        ):
            self.logger.warning(f"Auto-delete skipped for {segment_id}: not confirmed")
            return

        not_completed = [s for s in UploadStatus if s != UploadStatus.COMPLETED]
        if self.storage.delete_segment(current, exclude_statuses=not_completed):
            self.logger.info(f"Auto-deleted uploaded segment {current.file_name}")

    def _handle_failure(
        self,
        segment: Segment,
        error: Exception,
        report: PassReport,
    ) -> None:
        kind = classify_exception(error)
        policy = policy_for(kind)
        message = f"{kind.value}: {error}"

        if policy.permanent:
            self.ledger.transition_status(
                segment.id, UploadStatus.UPLOADING, UploadStatus.FAILED, error=message
            )
            report.failed += 1
            self.logger.error(f"Upload failed permanently for {segment.file_name}: {message}")
            if policy.notify:
                self._notify(segment, kind, message)
            return

        if segment.retry_count + 1 >= self.max_retries:
            self.ledger.transition_status(
                segment.id,
                UploadStatus.UPLOADING,
                UploadStatus.FAILED,
                error=f"Max retries exceeded, last error {message}",
                increment_retry=True,
            )
            report.failed += 1
            self.logger.error(f"Giving up on {segment.file_name} after retries: {message}")
            self._notify(segment, kind, message)
            return

        self.ledger.transition_status(
            segment.id,
            UploadStatus.UPLOADING,
            UploadStatus.PENDING,
            error=message,
            increment_retry=True,
        )
        report.retried += 1
        report.backoff_multiplier = max(report.backoff_multiplier, policy.backoff_multiplier)
        self.logger.warning(
            f"Upload will be retried for {segment.file_name} "
            f"(attempt {segment.retry_count + 1}/{self.max_retries}): {message}"
        )
        if policy.notify:
            self._notify(segment, kind, message)

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _outcome(report: PassReport) -> PassOutcome:
        if report.failed == 0 and report.retried == 0:
            return PassOutcome.SUCCESS
        if report.processed > 0 and report.failed == report.processed:
            return PassOutcome.FAILURE
        return PassOutcome.RETRY

    @staticmethod
    def _remote_name(segment: Segment) -> str:
        return f"{SEGMENT_TITLE_PREFIX} {segment.recorded_at:%Y-%m-%d %H:%M:%S}"

    def _notify(
        self,
        segment: Segment,
        kind: Optional[UploadErrorKind],
        message: str,
    ) -> None:
        self._publish(
            EventType.UPLOAD_NOTIFICATION,
            segment_id=segment.id,
            kind=kind,
            message=message,
        )

    def _publish(self, event_type: EventType, **data) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(event_type, **data)
