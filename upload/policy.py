"""
Upload Retry Policy

Maps every UploadErrorKind to what the pipeline does about it, and
classifies arbitrary exceptions into the taxonomy.

    kind               retry   notify   backoff
    AUTH               no      yes      -
    CONFIG             no      yes      -
    FILE               no      yes      -
    QUOTA              yes     yes      4x
    FOLDER_NOT_FOUND   yes     yes      1x
    NETWORK            yes     no       1x
    SERVER             yes     no       1x
"""

import logging
import socket
from dataclasses import dataclass
from typing import Dict

from config.settings import QUOTA_BACKOFF_MULTIPLIER
from upload.constants import UploadErrorKind
from upload.interfaces.uploader_interface import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    What to do with a failed upload.

    Attributes:
        retry: Return the segment to PENDING (retry_count + 1)
        notify: Publish a user-visible notification
        backoff_multiplier: Scales the delay before the next pass
    """

    retry: bool
    notify: bool
    backoff_multiplier: float = 1.0

    @property
    def permanent(self) -> bool:
        return not self.retry


POLICIES: Dict[UploadErrorKind, RetryPolicy] = {
    UploadErrorKind.AUTH: RetryPolicy(retry=False, notify=True),
    UploadErrorKind.CONFIG: RetryPolicy(retry=False, notify=True),
    UploadErrorKind.FILE: RetryPolicy(retry=False, notify=True),
    UploadErrorKind.QUOTA: RetryPolicy(
        retry=True, notify=True, backoff_multiplier=QUOTA_BACKOFF_MULTIPLIER
    ),
    UploadErrorKind.FOLDER_NOT_FOUND: RetryPolicy(retry=True, notify=True),
    UploadErrorKind.NETWORK: RetryPolicy(retry=True, notify=False),
    UploadErrorKind.SERVER: RetryPolicy(retry=True, notify=False),
}

_unmapped = set(UploadErrorKind) - set(POLICIES)
if _unmapped:
    raise RuntimeError(f"No retry policy for: {sorted(k.value for k in _unmapped)}")


def policy_for(kind: UploadErrorKind) -> RetryPolicy:
    return POLICIES[kind]


_NETWORK_WORDS = ("network", "connection", "connect", "host", "unreachable", "dns")
_CONFIG_WORDS = ("config", "credential", "client secret", "token", "not configured")


def classify_exception(error: BaseException) -> UploadErrorKind:
    """
    Classify any exception raised during an upload.

    TransportError keeps the kind its transport gave it; everything else
    is mapped by type and message.

    Example:
        classify_exception(FileNotFoundError("seg.mp4"))  # UploadErrorKind.FILE
        classify_exception(ConnectionResetError())        # UploadErrorKind.NETWORK
    """
    if isinstance(error, TransportError):
        return error.kind

    message = str(error).lower()

    if isinstance(error, (FileNotFoundError, PermissionError, IsADirectoryError)):
        return UploadErrorKind.FILE

    if isinstance(error, (socket.timeout, TimeoutError, ConnectionError, socket.gaierror)):
        return UploadErrorKind.NETWORK

    if isinstance(error, OSError):
        if any(word in message for word in _NETWORK_WORDS):
            return UploadErrorKind.NETWORK
        return UploadErrorKind.FILE

    if isinstance(error, (ValueError, RuntimeError)):
        if any(word in message for word in _CONFIG_WORDS):
            return UploadErrorKind.CONFIG

    logger.debug(f"Unclassified upload error treated as server fault: {error!r}")
    return UploadErrorKind.SERVER
