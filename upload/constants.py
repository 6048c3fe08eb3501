"""
Upload Constants

YouTube API settings and the upload error taxonomy.
Tunable values (batch size, retry cap, backoff) live in config/settings.py.
"""

from enum import Enum

# =============================================================================
# YOUTUBE API CONFIGURATION
# =============================================================================

# OAuth 2.0 scopes required for YouTube operations
# https://developers.google.com/youtube/v3/guides/authentication
YOUTUBE_SCOPES = [
    "https://www.googleapis.com/auth/youtube.upload",
    "https://www.googleapis.com/auth/youtube",
]

# YouTube API service details
YOUTUBE_API_SERVICE_NAME = "youtube"
YOUTUBE_API_VERSION = "v3"

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

# Maximum time to wait for one upload to complete (seconds)
UPLOAD_TIMEOUT = 600

# 403 reasons that mean "slow down", not "not allowed"
QUOTA_ERROR_REASONS = {
    "quotaExceeded",
    "uploadLimitExceeded",
    "rateLimitExceeded",
    "userRateLimitExceeded",
    "dailyLimitExceeded",
}

# =============================================================================
# FILE VALIDATION
# =============================================================================

SUPPORTED_VIDEO_FORMATS = [".mp4", ".avi", ".mov", ".mkv"]

# YouTube accepts up to 256 GB; a segment is far below that
MAX_VIDEO_FILE_SIZE = 2 * 1024 * 1024 * 1024  # 2 GB

# =============================================================================
# ERROR TAXONOMY
# =============================================================================


class UploadErrorKind(Enum):
    """Classified upload failure. Every kind has an entry in upload.policy."""

    AUTH = "auth"  # credentials invalid or expired
    NETWORK = "network"  # connectivity
    QUOTA = "quota"  # remote storage full or rate limited
    FILE = "file"  # local file missing or corrupt
    SERVER = "server"  # unexpected remote fault
    CONFIG = "config"  # destination not configured
    FOLDER_NOT_FOUND = "folder_not_found"  # cached remote folder is stale


class PassOutcome(Enum):
    """Result of one upload pass"""

    SUCCESS = "success"
    RETRY = "retry"  # run the whole pass again later
    FAILURE = "failure"  # every processed segment failed permanently
