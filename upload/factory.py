"""
Upload Factory

Factory pattern for creating transport implementations.
Reads YouTube credential paths from config/settings.py (.env overrides).
"""

import logging
from typing import Literal, Optional

from config.settings import YOUTUBE_CLIENT_SECRET_PATH, YOUTUBE_TOKEN_PATH
from upload.auth.oauth_manager import OAuthManager
from upload.implementations.mock_uploader import MockUploader
from upload.implementations.youtube_uploader import YouTubeUploader
from upload.interfaces.uploader_interface import UploaderInterface

# Type alias
UploaderMode = Literal["auto", "youtube", "mock"]


class UploaderFactory:
    """
    Factory for creating uploader implementations.

    Usage:
        # Auto-detect (YouTube when credentials exist, mock otherwise)
        uploader = UploaderFactory.create_uploader()

        # Force mock for testing
        uploader = UploaderFactory.create_uploader(mode="mock")
    """

    _logger = logging.getLogger(__name__)

    @classmethod
    def create_uploader(
        cls,
        mode: UploaderMode = "auto",
        playlist_id: Optional[str] = None,
    ) -> UploaderInterface:
        """
        Create an uploader instance.

        In "youtube" mode the uploader is returned even without credentials;
        uploads then fail with a CONFIG error, which the pipeline reports.
        """
        if mode == "mock":
            cls._logger.info("Creating Mock Uploader (forced)")
            return MockUploader()

        uploader = cls._create_youtube_uploader(playlist_id)

        if mode == "youtube":
            cls._logger.info("Creating YouTube Uploader (forced)")
            return uploader

        # mode == "auto"
        if uploader.is_available():
            cls._logger.info("Creating YouTube Uploader (auto-detected)")
            return uploader

        cls._logger.warning("YouTube credentials not found, using Mock Uploader")
        return MockUploader()

    @classmethod
    def _create_youtube_uploader(
        cls,
        playlist_id: Optional[str] = None,
    ) -> YouTubeUploader:
        oauth_manager = OAuthManager(
            client_secret_path=YOUTUBE_CLIENT_SECRET_PATH,
            token_path=YOUTUBE_TOKEN_PATH,
        )
        return YouTubeUploader(oauth_manager=oauth_manager, playlist_id=playlist_id)

    @classmethod
    def is_youtube_available(cls) -> bool:
        return cls._create_youtube_uploader().is_available()


# Convenience function for quick creation
def create_uploader(
    force_mock: bool = False,
    playlist_id: Optional[str] = None,
) -> UploaderInterface:
    """
    Quick uploader creation with simple mock override.

    Example:
        uploader = create_uploader()
        uploader = create_uploader(force_mock=True)
    """
    mode = "mock" if force_mock else "youtube"
    return UploaderFactory.create_uploader(mode=mode, playlist_id=playlist_id)
