"""
Implementations Package

Concrete uploader implementations.
"""

from upload.implementations.mock_uploader import MockUploader
from upload.implementations.youtube_uploader import YouTubeUploader

__all__ = [
    "MockUploader",
    "YouTubeUploader",
]
