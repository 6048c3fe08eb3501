"""
Central Configuration File

Process-level configuration lives here. User-facing recording options
(destination, quality, segment length, quota threshold) are NOT here:
they come from the settings snapshot in config/app_settings.py.

Guidelines:
- Secrets (API keys, credentials) should be in .env, NOT here
- Import these settings in modules: from config.settings import STORAGE_BASE_PATH
- Deploy-specific values can be overridden through environment variables
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# =============================================================================
# CAPTURE CONFIGURATION
# =============================================================================

# Camera Configuration
DEFAULT_CAMERA_DEVICE = os.getenv("CAMERA_DEVICE", "/dev/video0")
CAMERA_WARMUP_TIME = 1.0  # seconds
CAPTURE_STOP_TIMEOUT = 5.0  # seconds to wait for ffmpeg to finalize a file

# Video encoding (resolution and bitrate come from VideoQuality)
VIDEO_FPS = 30
VIDEO_CODEC = "libx264"
VIDEO_PRESET = "ultrafast"  # FFmpeg encoding preset

# Audio Input Configuration
AUDIO_INPUT_DEVICE = "default"  # PulseAudio default source
AUDIO_INPUT_FORMAT = "pulse"
AUDIO_CHANNELS = 1
AUDIO_SAMPLE_RATE = 44100  # Hz
AUDIO_CODEC = "aac"
AUDIO_BITRATE = "128k"

# Camera health: consecutive failed checks before the device is declared dead
MAX_HEALTH_FAILURES = 3

# Elapsed-duration ticker interval
DURATION_TICK_INTERVAL = 1.0  # seconds

# =============================================================================
# OVERLAY CONFIGURATION
# =============================================================================

OVERLAY_FONT_SIZE = 28
OVERLAY_FONT_FILE = os.getenv("OVERLAY_FONT_FILE", "")  # empty = ffmpeg default
OVERLAY_TIMEOUT = 300  # seconds, per segment
OVERLAY_SUFFIX = "_overlay"

# Location used by the static location provider (empty = no fix)
STATIC_LATITUDE = os.getenv("STATIC_LATITUDE", "")
STATIC_LONGITUDE = os.getenv("STATIC_LONGITUDE", "")

# =============================================================================
# STORAGE CONFIGURATION
# =============================================================================

# Storage Paths
STORAGE_BASE_PATH = Path(os.getenv("STORAGE_BASE_PATH", "./recordings"))

# Segment File Naming
SEGMENT_FILENAME_PREFIX = "EvidenceCam"
SEGMENT_FILENAME_EXTENSION = ".mp4"
SEGMENT_FILENAME_PATTERN = (
    f"{SEGMENT_FILENAME_PREFIX}_%Y-%m-%d_%H-%M-%S{SEGMENT_FILENAME_EXTENSION}"
)
METADATA_DB_NAME = os.getenv("METADATA_DB_NAME", "segments.db")

# Settings snapshot file (YAML)
APP_SETTINGS_FILE = Path(
    os.getenv("APP_SETTINGS_FILE", str(STORAGE_BASE_PATH / "settings.yaml")),
)

# Quota threshold bounds (percent of the filesystem)
MIN_STORAGE_PERCENT = 50
MAX_STORAGE_PERCENT = 95
NEAR_FULL_PERCENT = 90.0

# Duration probe
FFPROBE_TIMEOUT_SECONDS = 10

# =============================================================================
# UPLOAD CONFIGURATION
# =============================================================================

# Batch and retry limits
UPLOAD_BATCH_SIZE = int(os.getenv("UPLOAD_BATCH_SIZE", "5"))
MAX_UPLOAD_RETRIES = int(os.getenv("MAX_UPLOAD_RETRIES", "5"))

# Backoff between "retry later" passes
RETRY_BACKOFF_BASE_SECONDS = float(os.getenv("RETRY_BACKOFF_BASE_SECONDS", "60"))
RETRY_BACKOFF_MAX_SECONDS = float(os.getenv("RETRY_BACKOFF_MAX_SECONDS", "3600"))
QUOTA_BACKOFF_MULTIPLIER = 4.0

# Video Metadata
SEGMENT_TITLE_PREFIX = "EvidenceCam"
DEFAULT_VIDEO_TAGS = ["evidencecam", "dashcam"]
DEFAULT_PRIVACY_STATUS = "private"  # public, private, or unlisted
YOUTUBE_CATEGORY_ID = "22"  # 22 = People & Blogs

# Upload Settings
UPLOAD_CHUNK_SIZE = 10 * 1024 * 1024  # 10 MB chunks

# =============================================================================
# NETWORK CONFIGURATION
# =============================================================================

NETWORK_CHECK_INTERVAL = int(os.getenv("NETWORK_CHECK_INTERVAL", "30"))  # seconds
NETWORK_CHECK_TIMEOUT = 3  # seconds
NETWORK_CHECK_HOST = os.getenv("NETWORK_CHECK_HOST", "8.8.8.8")
NETWORK_CHECK_PORT = 53  # DNS port
SYS_CLASS_NET = Path("/sys/class/net")

# =============================================================================
# SERVICE CONFIGURATION
# =============================================================================

# Remote Control Configuration
# Commands: START, STOP, UPLOAD, STATUS
CONTROL_FILE = os.getenv(
    "CONTROL_FILE",
    "/tmp/segment_recorder_control.cmd",  # noqa: S108
)
SERVICE_LOOP_INTERVAL = 0.5  # seconds

# Logging Configuration
LOG_DIR = os.getenv("LOG_DIR", "/var/log/segment-recorder")
LOG_SERVICE_FILE = "service.log"
LOG_BACKUP_COUNT = 7

# =============================================================================
# SECRETS (loaded from .env)
# =============================================================================
# IMPORTANT: These should NEVER be committed to version control!

# YouTube OAuth Configuration (file-based)
YOUTUBE_CLIENT_SECRET_PATH = os.getenv(
    "YOUTUBE_CLIENT_SECRET_PATH",
    "credentials/client_secret.json",
)
YOUTUBE_TOKEN_PATH = os.getenv("YOUTUBE_TOKEN_PATH", "credentials/token.json")
YOUTUBE_PLAYLIST_ID = os.getenv("YOUTUBE_PLAYLIST_ID", "")  # cached playlist
YOUTUBE_PLAYLIST_TITLE = os.getenv("YOUTUBE_PLAYLIST_TITLE", "EvidenceCam")
