"""
Application Settings Snapshot

User-facing recording options stored in a YAML file.

The recorder and the upload pipeline never hold a live reference to the
settings: they ask SettingsStore for an immutable AppSettings snapshot at
the start of each segment or upload pass, so a change made mid-segment
only applies to the next one.
"""

import logging
import threading
from dataclasses import asdict, dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from config.settings import (
    APP_SETTINGS_FILE,
    MAX_STORAGE_PERCENT,
    MIN_STORAGE_PERCENT,
)


# =============================================================================
# ENUMS
# =============================================================================


class UploadDestination(Enum):
    """Where finalized segments are sent"""

    LOCAL_ONLY = "local_only"  # Never uploaded, inserted as SKIPPED
    YOUTUBE = "youtube"


class VideoQuality(Enum):
    """Capture resolution and target bitrate"""

    SD = ("480p", 854, 480, 2_000_000)
    HD = ("720p", 1280, 720, 5_000_000)
    FHD = ("1080p", 1920, 1080, 10_000_000)

    def __init__(self, label: str, width: int, height: int, bitrate: int):
        self.label = label
        self.width = width
        self.height = height
        self.bitrate = bitrate

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


class SegmentDuration(Enum):
    """Length of one recorded segment, in seconds"""

    SEC_15 = 15
    SEC_30 = 30
    MIN_1 = 60
    MIN_2 = 120
    MIN_5 = 300
    MIN_10 = 600

    @property
    def seconds(self) -> int:
        return self.value

    @property
    def millis(self) -> int:
        return self.value * 1000


# =============================================================================
# SNAPSHOT
# =============================================================================


def clamp_storage_percent(value: int) -> int:
    """Clamp a quota threshold into the supported range."""
    return max(MIN_STORAGE_PERCENT, min(MAX_STORAGE_PERCENT, int(value)))


@dataclass(frozen=True)
class AppSettings:
    """
    Immutable settings snapshot.

    Attributes:
        upload_destination: Target transport for new segments
        video_quality: Capture resolution/bitrate
        segment_duration: Rollover interval
        max_storage_percent: Quota threshold (already clamped)
        wifi_only: Only upload when a Wi-Fi interface is up
        audio_enabled: Capture microphone audio
        auto_delete_after_upload: Delete local file once upload is confirmed
        version: Incremented on every saved change
    """

    upload_destination: UploadDestination = UploadDestination.LOCAL_ONLY
    video_quality: VideoQuality = VideoQuality.HD
    segment_duration: SegmentDuration = SegmentDuration.MIN_2
    max_storage_percent: int = 90
    wifi_only: bool = False
    audio_enabled: bool = True
    auto_delete_after_upload: bool = False
    version: int = 0

    @property
    def is_local_only(self) -> bool:
        return self.upload_destination == UploadDestination.LOCAL_ONLY

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for YAML storage (enums stored by name)"""
        data = asdict(self)
        data['upload_destination'] = self.upload_destination.name
        data['video_quality'] = self.video_quality.name
        data['segment_duration'] = self.segment_duration.name
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppSettings':
        """
        Build a snapshot from stored values.

        Unknown keys are ignored and missing keys fall back to defaults.

        Raises:
            ValueError: If an enum value is not recognised
        """
        defaults = cls()
        try:
            return cls(
                upload_destination=UploadDestination[
                    data.get('upload_destination', defaults.upload_destination.name)
                ],
                video_quality=VideoQuality[
                    data.get('video_quality', defaults.video_quality.name)
                ],
                segment_duration=SegmentDuration[
                    data.get('segment_duration', defaults.segment_duration.name)
                ],
                max_storage_percent=clamp_storage_percent(
                    data.get('max_storage_percent', defaults.max_storage_percent)
                ),
                wifi_only=bool(data.get('wifi_only', defaults.wifi_only)),
                audio_enabled=bool(data.get('audio_enabled', defaults.audio_enabled)),
                auto_delete_after_upload=bool(
                    data.get('auto_delete_after_upload', defaults.auto_delete_after_upload)
                ),
                version=int(data.get('version', 0)),
            )
        except KeyError as e:
            raise ValueError(f"Unknown setting value: {e}") from e


class SettingsStore:
    """
    YAML-backed settings store handing out immutable snapshots.

    The file is re-read when its modification time changes, so edits made
    by another process are picked up at the next cycle boundary.

    Usage:
        store = SettingsStore(Path("settings.yaml"))
        settings = store.snapshot()
        store.update(segment_duration=SegmentDuration.SEC_30)
    """

    def __init__(self, config_path: Optional[Path] = None, persist: bool = True):
        """
        Initialize store.

        Args:
            config_path: YAML file path (None = APP_SETTINGS_FILE)
            persist: If False, keep changes in memory only (tests)
        """
        self.logger = logging.getLogger(__name__)
        self.config_path = Path(config_path or APP_SETTINGS_FILE)
        self.persist = persist

        self._lock = threading.Lock()
        self._mtime: Optional[float] = None
        self._current = self._load()

        self.logger.info(
            f"Settings loaded from {self.config_path} "
            f"(version {self._current.version})"
        )

    def _load(self) -> AppSettings:
        """Load settings from file, falling back to defaults"""
        if not self.persist or not self.config_path.exists():
            return AppSettings()

        try:
            with open(self.config_path, 'r') as f:
                data = yaml.safe_load(f) or {}
            self._mtime = self.config_path.stat().st_mtime
            return AppSettings.from_dict(data)
        except (OSError, yaml.YAMLError, ValueError) as e:
            self.logger.warning(
                f"Failed to load settings from {self.config_path}: {e}. "
                f"Using defaults."
            )
            return AppSettings()

    def _save(self, settings: AppSettings) -> None:
        """Write settings to YAML file"""
        if not self.persist:
            return

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, 'w') as f:
                yaml.safe_dump(
                    settings.to_dict(),
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    indent=2
                )
            self._mtime = self.config_path.stat().st_mtime
        except OSError as e:
            self.logger.error(f"Failed to save settings: {e}")

    def snapshot(self) -> AppSettings:
        """
        Get the current settings snapshot.

        Returns:
            Immutable AppSettings (reloaded if the file changed on disk)
        """
        with self._lock:
            if self.persist and self.config_path.exists():
                try:
                    mtime = self.config_path.stat().st_mtime
                except OSError:
                    mtime = self._mtime
                if mtime != self._mtime:
                    self._current = self._load()
            return self._current

    def update(self, **changes: Any) -> AppSettings:
        """
        Apply changes and return the new snapshot.

        max_storage_percent is clamped to the supported range.

        Args:
            **changes: AppSettings field values

        Returns:
            New snapshot with version incremented

        Raises:
            ValueError: If a field name is unknown

        Example:
            store.update(max_storage_percent=99)  # stored as 95
        """
        changes.pop('version', None)
        if 'max_storage_percent' in changes:
            changes['max_storage_percent'] = clamp_storage_percent(
                changes['max_storage_percent']
            )

        with self._lock:
            try:
                updated = replace(
                    self._current,
                    version=self._current.version + 1,
                    **changes
                )
            except TypeError as e:
                raise ValueError(f"Invalid setting: {e}") from e

            self._current = updated
            self._save(updated)

        self.logger.info(f"Settings updated to version {updated.version}: {changes}")
        return updated
