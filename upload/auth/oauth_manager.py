"""
OAuth Manager

Handles Google OAuth 2.0 authentication for YouTube API.
Uses a refresh token for automated, long-lived authentication.

Flow:
1. Initial setup: run `recorder_service.py --authorize` once to create token.json
2. Runtime: this class loads token.json
3. Token refresh: happens automatically when needed
"""

import logging
import os
from typing import Optional

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from upload.constants import UploadErrorKind, YOUTUBE_SCOPES
from upload.interfaces.uploader_interface import TransportError

REAUTH_HINT = "Run 'python recorder_service.py --authorize' to re-authenticate"


class OAuthManager:
    """
    Manages Google OAuth 2.0 credentials.

    Credentials are loaded lazily so a missing or revoked token surfaces as
    a classified TransportError at upload time instead of at startup.
    """

    def __init__(
        self,
        client_secret_path: str,
        token_path: str,
    ):
        """
        Initialize OAuth manager.

        Args:
            client_secret_path: Path to client_secret.json from Google Cloud
            token_path: Path to token.json (created during initial auth)
        """
        self.logger = logging.getLogger(__name__)
        self.client_secret_path = client_secret_path
        self.token_path = token_path
        self.credentials: Optional[Credentials] = None

        self.logger.info("OAuth Manager initialized")

    def is_configured(self) -> bool:
        """Both credential files are present"""
        return os.path.exists(self.client_secret_path) and os.path.exists(
            self.token_path
        )

    def _load_credentials(self) -> Credentials:
        if not os.path.exists(self.client_secret_path):
            raise TransportError(
                f"Client secret file not found: {self.client_secret_path}",
                UploadErrorKind.CONFIG,
            )
        if not os.path.exists(self.token_path):
            raise TransportError(
                f"Token file not found: {self.token_path}. {REAUTH_HINT}",
                UploadErrorKind.CONFIG,
            )

        try:
            return Credentials.from_authorized_user_file(self.token_path, YOUTUBE_SCOPES)
        except (ValueError, OSError) as e:
            raise TransportError(
                f"Unreadable token file {self.token_path}: {e}",
                UploadErrorKind.CONFIG,
            ) from e

    def _save_credentials(self) -> None:
        """Save refreshed credentials back to token.json"""
        try:
            with open(self.token_path, "w") as token_file:
                token_file.write(self.credentials.to_json())
            self.logger.debug("Credentials saved to token file")
        except OSError as e:
            self.logger.warning(f"Failed to save credentials: {e}")

    def get_credentials(self) -> Credentials:
        """
        Get valid OAuth credentials, refreshing if expired.

        Raises:
            TransportError: CONFIG if files are missing, AUTH if the
                credentials are invalid and cannot be refreshed
        """
        if self.credentials is None:
            self.credentials = self._load_credentials()

        if (
            not self.credentials.valid
            and self.credentials.expired
            and self.credentials.refresh_token
        ):
            self.logger.info("Access token expired, refreshing...")
            try:
                self.credentials.refresh(Request())
            except RefreshError as e:
                self.credentials = None
                raise TransportError(
                    f"Token refresh rejected: {e}. {REAUTH_HINT}",
                    UploadErrorKind.AUTH,
                ) from e
            self._save_credentials()
            self.logger.info("Access token refreshed successfully")

        if not self.credentials.valid:
            self.credentials = None
            raise TransportError(
                f"Credentials invalid and cannot be refreshed. {REAUTH_HINT}",
                UploadErrorKind.AUTH,
            )

        return self.credentials

    def is_authenticated(self) -> bool:
        try:
            return self.get_credentials().valid
        except TransportError:
            return False


def run_initial_auth(
    client_secret_path: str,
    token_path: str,
    port: int = 8080,
) -> bool:
    """
    Run the installed-app OAuth flow and write token.json.

    Opens a browser for the user to grant permissions.

    Returns:
        True if authentication succeeded
    """
    logger = logging.getLogger(__name__)

    if not os.path.exists(client_secret_path):
        logger.error(f"Client secret file not found: {client_secret_path}")
        return False

    try:
        flow = InstalledAppFlow.from_client_secrets_file(
            client_secret_path,
            YOUTUBE_SCOPES,
        )

        logger.info(f"Starting OAuth flow on port {port}...")
        logger.info("A browser window will open for authentication")
        credentials = flow.run_local_server(port=port)

        token_dir = os.path.dirname(token_path)
        if token_dir:
            os.makedirs(token_dir, exist_ok=True)
        with open(token_path, "w") as token_file:
            token_file.write(credentials.to_json())

        logger.info(f"Authentication successful, token saved to: {token_path}")
        return True

    except Exception as e:
        logger.error(f"Authentication failed: {e}")
        return False
