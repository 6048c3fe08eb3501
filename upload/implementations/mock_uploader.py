"""
Mock Uploader Implementation

Simulated transport for testing without the YouTube API.
Failures are scripted per call with queue_failure().
"""

import logging
import threading
import time
from collections import deque
from pathlib import Path
from typing import Deque, Dict, List, Optional, Tuple

from upload.constants import UploadErrorKind
from upload.interfaces.uploader_interface import TransportError, UploaderInterface

MOCK_URL = "https://www.youtube.com/watch?v=mock_{n}"


class MockUploader(UploaderInterface):
    """
    Mock uploader for testing.

    Usage:
        uploader = MockUploader()
        uploader.queue_failure(UploadErrorKind.NETWORK, "offline")
        uploader.upload(path, "title")   # raises TransportError(NETWORK)
        uploader.upload(path, "title")   # returns a mock URL
    """

    def __init__(self, upload_delay: float = 0.0, available: bool = True):
        """
        Initialize mock uploader.

        Args:
            upload_delay: Seconds each upload takes
            available: Value reported by is_available()
        """
        self.logger = logging.getLogger(__name__)
        self.upload_delay = upload_delay
        self.available = available

        # Track upload history for testing
        self.upload_history: List[Dict] = []
        self.attempts = 0

        self._failures: Deque[Tuple[UploadErrorKind, str]] = deque()
        self._lock = threading.Lock()
        self._counter = 0

        self.logger.info(f"Mock Uploader initialized (delay: {upload_delay}s)")

    def upload(self, local_file: Path, remote_name: str) -> str:
        with self._lock:
            self.attempts += 1
            failure = self._failures.popleft() if self._failures else None

        if self.upload_delay:
            time.sleep(self.upload_delay)

        if failure is not None:
            kind, message = failure
            self.logger.warning(f"[MOCK] Upload failed ({kind.value}): {message}")
            raise TransportError(message, kind)

        if not Path(local_file).is_file():
            raise TransportError(f"Video file not found: {local_file}", UploadErrorKind.FILE)

        with self._lock:
            self._counter += 1
            url = MOCK_URL.format(n=self._counter)
            self.upload_history.append(
                {
                    "file": Path(local_file),
                    "remote_name": remote_name,
                    "url": url,
                    "timestamp": time.time(),
                }
            )

        self.logger.info(f"[MOCK] Uploaded {Path(local_file).name}: {url}")
        return url

    def is_available(self) -> bool:
        return self.available

    # =========================================================================
    # TESTING HELPER METHODS
    # =========================================================================

    def queue_failure(self, kind: UploadErrorKind, message: Optional[str] = None) -> None:
        """Make the next upload() raise TransportError(kind)"""
        with self._lock:
            self._failures.append((kind, message or f"Simulated {kind.value} error"))

    def clear_failures(self) -> None:
        with self._lock:
            self._failures.clear()

    def get_upload_count(self) -> int:
        return len(self.upload_history)

    def get_last_upload(self) -> Optional[Dict]:
        return self.upload_history[-1] if self.upload_history else None
