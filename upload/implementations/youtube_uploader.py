"""
YouTube Uploader Implementation

Transport for YouTube Data API v3. Videos are uploaded with the resumable
protocol and collected in a playlist that plays the role of the remote
folder. Every failure leaves as a classified TransportError.
"""

import json
import logging
import socket
import time
from pathlib import Path
from typing import Any, Optional

import httplib2
from google.auth.exceptions import RefreshError, TransportError as GoogleTransportError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload

from config.settings import (
    DEFAULT_PRIVACY_STATUS,
    DEFAULT_VIDEO_TAGS,
    UPLOAD_CHUNK_SIZE,
    YOUTUBE_CATEGORY_ID,
    YOUTUBE_PLAYLIST_ID,
    YOUTUBE_PLAYLIST_TITLE,
)
from upload.auth.oauth_manager import OAuthManager
from upload.constants import (
    MAX_VIDEO_FILE_SIZE,
    QUOTA_ERROR_REASONS,
    SUPPORTED_VIDEO_FORMATS,
    UPLOAD_TIMEOUT,
    YOUTUBE_API_SERVICE_NAME,
    YOUTUBE_API_VERSION,
    YOUTUBE_WATCH_URL,
    UploadErrorKind,
)
from upload.interfaces.uploader_interface import TransportError, UploaderInterface

# Chunk-level retries for 5xx before giving the error back to the pipeline
MAX_CHUNK_RETRIES = 3
CHUNK_RETRY_DELAY = 5.0  # seconds

NETWORK_ERRORS = (
    socket.timeout,
    TimeoutError,
    ConnectionError,
    socket.gaierror,
    httplib2.HttpLib2Error,
    GoogleTransportError,
)


def http_error_reason(error: HttpError) -> str:
    """Extract the API reason (e.g. 'quotaExceeded') from an HttpError"""
    try:
        content = error.content
        if isinstance(content, bytes):
            content = content.decode("utf-8", errors="ignore")
        payload = json.loads(content)
        return payload["error"]["errors"][0].get("reason", "")
    except (ValueError, KeyError, IndexError, TypeError, AttributeError):
        return ""


def classify_http_error(error: HttpError, playlist_call: bool = False) -> TransportError:
    """
    Map a YouTube HttpError into the upload taxonomy.

    401 -> AUTH; 403 -> QUOTA for quota/rate reasons, AUTH otherwise;
    429 -> QUOTA; 404 on a playlist call -> FOLDER_NOT_FOUND;
    400 -> FILE; 5xx and anything else -> SERVER.
    """
    status = int(error.resp.status)
    reason = http_error_reason(error)
    detail = reason or getattr(error, "reason", "") or ""
    message = f"YouTube API error {status}" + (f": {detail}" if detail else "")
    code = reason or status

    if status == 401:
        kind = UploadErrorKind.AUTH
    elif status == 403:
        kind = UploadErrorKind.QUOTA if reason in QUOTA_ERROR_REASONS else UploadErrorKind.AUTH
    elif status == 429:
        kind = UploadErrorKind.QUOTA
    elif status == 404 and playlist_call:
        kind = UploadErrorKind.FOLDER_NOT_FOUND
    elif status == 400:
        kind = UploadErrorKind.FILE
    else:
        kind = UploadErrorKind.SERVER

    return TransportError(message, kind, code=code)


class YouTubeUploader(UploaderInterface):
    """
    YouTube video uploader using YouTube Data API v3.

    Features:
    - Resumable, chunked uploads
    - Playlist created on demand by title and cached
    - HTTP errors mapped to UploadErrorKind
    """

    def __init__(
        self,
        oauth_manager: OAuthManager,
        playlist_id: Optional[str] = None,
        playlist_title: str = YOUTUBE_PLAYLIST_TITLE,
    ):
        """
        Initialize YouTube uploader.

        Args:
            oauth_manager: OAuth manager for authentication
            playlist_id: Known playlist id (None = find or create by title)
            playlist_title: Title of the playlist collecting segments
        """
        self.logger = logging.getLogger(__name__)

        self.oauth_manager = oauth_manager
        self.playlist_id = playlist_id or YOUTUBE_PLAYLIST_ID or None
        self.playlist_title = playlist_title
        self.youtube_service: Optional[Any] = None

        self.logger.info("YouTube Uploader initialized")

    # =========================================================================
    # UPLOAD
    # =========================================================================

    def upload(self, local_file: Path, remote_name: str) -> str:
        local_file = Path(local_file)
        self._validate_video_file(local_file)
        file_size = local_file.stat().st_size
        start_time = time.time()

        try:
            service = self._get_service()
            playlist_id = self._ensure_playlist(service)

            self.logger.info(f"Starting upload: {local_file.name} ({file_size} bytes)")

            body = {
                "snippet": {
                    "title": remote_name,
                    "description": "",
                    "tags": DEFAULT_VIDEO_TAGS,
                    "categoryId": YOUTUBE_CATEGORY_ID,
                },
                "status": {
                    "privacyStatus": DEFAULT_PRIVACY_STATUS,
                },
            }
            media = MediaFileUpload(
                str(local_file),
                mimetype="video/mp4",
                chunksize=UPLOAD_CHUNK_SIZE,
                resumable=True,
            )
            request = service.videos().insert(
                part="snippet,status",
                body=body,
                media_body=media,
            )

            video_id = self._execute_upload(request)
            self._add_to_playlist(service, video_id, playlist_id)

        except TransportError:
            raise
        except HttpError as e:
            raise classify_http_error(e) from e
        except RefreshError as e:
            raise TransportError(f"Authentication refused: {e}", UploadErrorKind.AUTH) from e
        except NETWORK_ERRORS as e:
            raise TransportError(f"Network error: {e}", UploadErrorKind.NETWORK) from e
        except OSError as e:
            raise TransportError(f"I/O error during upload: {e}", UploadErrorKind.NETWORK) from e

        url = YOUTUBE_WATCH_URL.format(video_id=video_id)
        self.logger.info(
            f"Upload successful: {video_id} "
            f"({time.time() - start_time:.1f}s, {file_size} bytes)"
        )
        return url

    def _validate_video_file(self, local_file: Path) -> None:
        """
        Raises:
            TransportError: FILE if the file is missing, empty or unsupported
        """
        if not local_file.is_file():
            raise TransportError(f"Video file not found: {local_file}", UploadErrorKind.FILE)

        if local_file.suffix.lower() not in SUPPORTED_VIDEO_FORMATS:
            raise TransportError(
                f"Unsupported video format: {local_file.suffix}",
                UploadErrorKind.FILE,
            )

        size = local_file.stat().st_size
        if size == 0:
            raise TransportError(f"Video file is empty: {local_file}", UploadErrorKind.FILE)
        if size > MAX_VIDEO_FILE_SIZE:
            raise TransportError(
                f"Video file too large ({size} bytes)",
                UploadErrorKind.FILE,
            )

    def _execute_upload(self, request) -> str:
        """
        Drive the resumable upload to completion.

        Returns:
            Video ID of the uploaded video
        """
        response = None
        upload_start = time.time()
        last_progress = 0
        server_retries = 0

        while response is None:
            elapsed = time.time() - upload_start
            if elapsed > UPLOAD_TIMEOUT:
                raise TransportError(
                    f"Upload timeout after {elapsed:.1f}s",
                    UploadErrorKind.NETWORK,
                )

            try:
                status, response = request.next_chunk()
                if status:
                    progress = int(status.progress() * 100)
                    if progress >= last_progress + 10:
                        self.logger.info(f"Upload progress: {progress}%")
                        last_progress = progress

            except HttpError as e:
                if e.resp.status in (500, 502, 503, 504) and server_retries < MAX_CHUNK_RETRIES:
                    server_retries += 1
                    self.logger.warning(
                        f"Retryable error {e.resp.status}, "
                        f"retrying chunk ({server_retries}/{MAX_CHUNK_RETRIES})"
                    )
                    time.sleep(CHUNK_RETRY_DELAY)
                else:
                    raise

        if response and "id" in response:
            return response["id"]
        raise TransportError(
            "Upload completed but no video ID returned",
            UploadErrorKind.SERVER,
        )

    # =========================================================================
    # PLAYLIST (REMOTE FOLDER)
    # =========================================================================

    def _ensure_playlist(self, service) -> str:
        """
        Return the cached playlist id, creating the playlist if needed.

        Raises:
            TransportError: FOLDER_NOT_FOUND if the cached playlist is gone;
                the cache is cleared so the next attempt re-creates it
        """
        if self.playlist_id:
            try:
                response = service.playlists().list(part="id", id=self.playlist_id).execute()
            except HttpError as e:
                raise classify_http_error(e, playlist_call=True) from e

            if response.get("items"):
                return self.playlist_id

            stale = self.playlist_id
            self.playlist_id = None
            raise TransportError(
                f"Playlist {stale} no longer exists",
                UploadErrorKind.FOLDER_NOT_FOUND,
                code=404,
            )

        self.playlist_id = self._find_playlist(service) or self._create_playlist(service)
        return self.playlist_id

    def _find_playlist(self, service) -> Optional[str]:
        try:
            response = service.playlists().list(
                part="snippet", mine=True, maxResults=50
            ).execute()
        except HttpError as e:
            raise classify_http_error(e, playlist_call=True) from e

        for item in response.get("items", []):
            if item.get("snippet", {}).get("title") == self.playlist_title:
                self.logger.info(f"Using existing playlist '{self.playlist_title}'")
                return item["id"]
        return None

    def _create_playlist(self, service) -> str:
        try:
            response = service.playlists().insert(
                part="snippet,status",
                body={
                    "snippet": {"title": self.playlist_title},
                    "status": {"privacyStatus": DEFAULT_PRIVACY_STATUS},
                },
            ).execute()
        except HttpError as e:
            raise classify_http_error(e, playlist_call=True) from e

        self.logger.info(f"Created playlist '{self.playlist_title}': {response['id']}")
        return response["id"]

    def _add_to_playlist(self, service, video_id: str, playlist_id: str) -> None:
        """
        Add video to playlist.

        The video is already uploaded, so a failure here is logged and not
        raised; a 404 drops the cached playlist id.
        """
        try:
            service.playlistItems().insert(
                part="snippet",
                body={
                    "snippet": {
                        "playlistId": playlist_id,
                        "resourceId": {
                            "kind": "youtube#video",
                            "videoId": video_id,
                        },
                    },
                },
            ).execute()
            self.logger.info(f"Added video {video_id} to playlist {playlist_id}")

        except HttpError as e:
            if e.resp.status == 404:
                self.playlist_id = None
            self.logger.warning(f"Failed to add video to playlist: {e}")

    # =========================================================================
    # SERVICE
    # =========================================================================

    def _get_service(self):
        if self.youtube_service is None:
            credentials = self.oauth_manager.get_credentials()
            self.youtube_service = build(
                YOUTUBE_API_SERVICE_NAME,
                YOUTUBE_API_VERSION,
                credentials=credentials,
                cache_discovery=False,
            )
            self.logger.debug("YouTube API service initialized")
        return self.youtube_service

    def is_available(self) -> bool:
        return self.oauth_manager.is_configured()
