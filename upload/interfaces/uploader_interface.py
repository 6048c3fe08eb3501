"""
Uploader Interface

Abstract interface for the upload transport.
High-level code depends on this abstraction, not on the YouTube API.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from upload.constants import UploadErrorKind


class UploaderInterface(ABC):
    """
    Abstract base class for upload transports.

    Implementations:
    - YouTubeUploader: YouTube Data API v3, playlist as the remote folder
    - MockUploader: in-memory, scriptable failures
    """

    @abstractmethod
    def upload(self, local_file: Path, remote_name: str) -> str:
        """
        Upload a file.

        Args:
            local_file: Finalized segment on local storage
            remote_name: Name (title) to give the remote copy

        Returns:
            Shareable URL of the uploaded file

        Raises:
            TransportError: On any failure, already classified

        Example:
            url = uploader.upload(Path("EvidenceCam_2025-10-04_14-30-25.mp4"),
                                  "EvidenceCam 2025-10-04 14:30:25")
        """

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if the transport is configured and authenticated.

        Returns:
            True if uploads can be attempted
        """


class TransportError(Exception):
    """
    Exception raised by transports.

    Attributes:
        kind: Classified error kind
        code: Vendor code or reason (HTTP status, API reason), if any
    """

    def __init__(
        self,
        message: str,
        kind: UploadErrorKind,
        code: Optional[Union[int, str]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.code = code

    def __repr__(self) -> str:
        return f"TransportError({self.kind.value}, code={self.code!r}, {str(self)!r})"
