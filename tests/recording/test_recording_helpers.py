"""
Recording Helper Tests

Tests for overlay text formatting, the FFmpeg command builders, the FFmpeg
overlay renderer (with subprocess mocked), location providers, the
recorder registry and the factory.

To run these tests:
    pytest tests/recording/test_recording_helpers.py -v
"""

import subprocess
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from config.app_settings import VideoQuality
from recording.constants import get_ffmpeg_command
from recording.factory import RecordingFactory
from recording.implementations.ffmpeg_overlay import FFmpegOverlay
from recording.implementations.mock_capture import MockCapture
from recording.implementations.mock_location import MockLocationProvider
from recording.implementations.mock_overlay import MockOverlay
from recording.implementations.static_location import StaticLocationProvider
from recording.interfaces.location_interface import LocationFix
from recording.registry import (
    lookup_recorder,
    register_recorder,
    registered_names,
    unregister_recorder,
)
from recording.utils.recording_utils import (
    build_overlay_text,
    format_coordinates,
    format_duration,
)

# =============================================================================
# FORMATTING
# =============================================================================


@pytest.mark.unit
def test_format_coordinates_hemispheres():
    assert format_coordinates(LocationFix(48.8584, -2.2945)) == "48.858400 N 2.294500 W"
    assert format_coordinates(LocationFix(-33.8568, 151.2153)) == "33.856800 S 151.215300 E"


@pytest.mark.unit
def test_overlay_text_without_location():
    text = build_overlay_text(datetime(2025, 10, 4, 14, 30, 25), None)
    assert text == "2025-10-04 14:30:25\nGPS: N/A"


@pytest.mark.unit
@pytest.mark.parametrize("seconds,expected", [(5, "0:05"), (630, "10:30"), (3725, "1:02:05")])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


# =============================================================================
# FFMPEG COMMANDS
# =============================================================================


@pytest.mark.unit
def test_capture_command_with_audio():
    command = get_ffmpeg_command("/dev/video0", "out.mp4", VideoQuality.FHD, audio_enabled=True)

    assert command[0] == "ffmpeg"
    assert "1920x1080" in command
    assert "-c:a" in command
    assert command[-1] == "out.mp4"


@pytest.mark.unit
def test_capture_command_without_audio():
    command = get_ffmpeg_command("/dev/video0", "out.mp4", VideoQuality.SD, audio_enabled=False)

    assert "-an" in command
    assert "pulse" not in command


# =============================================================================
# FFMPEG OVERLAY
# =============================================================================


@pytest.fixture
def video_file(tmp_path):
    path = tmp_path / "seg.mp4"
    path.write_bytes(b"original")
    return path


@pytest.mark.unit
def test_overlay_missing_file(tmp_path):
    result = FFmpegOverlay().burn_overlay(tmp_path / "nope.mp4", datetime.now())

    assert not result.applied
    assert "not found" in result.error


@pytest.mark.unit
def test_overlay_failure_keeps_original_and_removes_partial(video_file):
    """
    Test an FFmpeg failure.

    Should:
    - Return the untouched original
    - Leave no partial output behind
    """
    def failing_run(command, **kwargs):
        with open(command[-1], "wb") as partial:
            partial.write(b"partial")
        return subprocess.CompletedProcess(command, 1, stdout=b"", stderr=b"drawtext error")

    with patch("recording.implementations.ffmpeg_overlay.shutil.which", return_value="/usr/bin/ffmpeg"), \
            patch("recording.implementations.ffmpeg_overlay.subprocess.run", side_effect=failing_run):
        result = FFmpegOverlay().burn_overlay(video_file, datetime.now())

    assert not result.applied
    assert "drawtext error" in result.error
    assert result.file == video_file
    assert video_file.read_bytes() == b"original"
    assert not (video_file.parent / "seg_overlay.mp4").exists()


@pytest.mark.unit
def test_overlay_success_replaces_original(video_file):
    def working_run(command, **kwargs):
        with open(command[-1], "wb") as output:
            output.write(b"with overlay")
        return subprocess.CompletedProcess(command, 0, stdout=b"", stderr=b"")

    with patch("recording.implementations.ffmpeg_overlay.shutil.which", return_value="/usr/bin/ffmpeg"), \
            patch("recording.implementations.ffmpeg_overlay.subprocess.run", side_effect=working_run):
        result = FFmpegOverlay().burn_overlay(
            video_file, datetime.now(), LocationFix(1.0, 2.0)
        )

    assert result.applied
    assert result.file == video_file
    assert video_file.read_bytes() == b"with overlay"


@pytest.mark.unit
def test_overlay_failed_swap_keeps_original(video_file):
    """
    Test a filesystem error while swapping the overlay into place.

    Should:
    - Report the overlay as not applied
    - Return a file that still exists
    - Leave the original recording intact
    """
    def working_run(command, **kwargs):
        with open(command[-1], "wb") as output:
            output.write(b"with overlay")
        return subprocess.CompletedProcess(command, 0, stdout=b"", stderr=b"")

    with patch("recording.implementations.ffmpeg_overlay.shutil.which", return_value="/usr/bin/ffmpeg"), \
            patch("recording.implementations.ffmpeg_overlay.subprocess.run", side_effect=working_run), \
            patch.object(Path, "replace", side_effect=OSError("read-only filesystem")):
        result = FFmpegOverlay().burn_overlay(video_file, datetime.now())

    assert not result.applied
    assert "read-only filesystem" in result.error
    assert result.file == video_file
    assert result.file.exists()
    assert video_file.read_bytes() == b"original"
    assert not (video_file.parent / "seg_overlay.mp4").exists()


@pytest.mark.unit
def test_overlay_keeps_output_when_original_vanished(video_file):
    """An overlay output is never deleted once it is the only copy left."""
    overlay_file = video_file.parent / "seg_overlay.mp4"

    def run_then_lose_original(command, **kwargs):
        with open(command[-1], "wb") as output:
            output.write(b"with overlay")
        video_file.unlink()
        return subprocess.CompletedProcess(command, 0, stdout=b"", stderr=b"")

    with patch("recording.implementations.ffmpeg_overlay.shutil.which", return_value="/usr/bin/ffmpeg"), \
            patch("recording.implementations.ffmpeg_overlay.subprocess.run", side_effect=run_then_lose_original), \
            patch.object(Path, "replace", side_effect=OSError("device busy")):
        result = FFmpegOverlay().burn_overlay(video_file, datetime.now())

    assert not result.applied
    assert result.file == overlay_file
    assert overlay_file.read_bytes() == b"with overlay"


@pytest.mark.unit
def test_overlay_timeout(video_file):
    with patch("recording.implementations.ffmpeg_overlay.shutil.which", return_value="/usr/bin/ffmpeg"), \
            patch(
                "recording.implementations.ffmpeg_overlay.subprocess.run",
                side_effect=subprocess.TimeoutExpired("ffmpeg", 1),
            ):
        result = FFmpegOverlay(timeout=1).burn_overlay(video_file, datetime.now())

    assert not result.applied
    assert video_file.read_bytes() == b"original"


# =============================================================================
# LOCATION PROVIDERS
# =============================================================================


@pytest.mark.unit
def test_static_location_explicit():
    provider = StaticLocationProvider(latitude=45.0, longitude=7.5)
    provider.start_updates()

    assert provider.is_active()
    assert provider.current_location().longitude == 7.5


@pytest.mark.unit
def test_static_location_from_environment(monkeypatch):
    monkeypatch.setattr("recording.implementations.static_location.STATIC_LATITUDE", "91")
    monkeypatch.setattr("recording.implementations.static_location.STATIC_LONGITUDE", "10")

    # Latitude out of range means no fix
    assert StaticLocationProvider().current_location() is None


@pytest.mark.unit
def test_mock_location_counts():
    provider = MockLocationProvider()
    provider.start_updates()
    provider.set_location(1.0, 2.0)
    provider.stop_updates()

    assert provider.start_count == 1
    assert provider.stop_count == 1
    assert provider.current_location().latitude == 1.0


# =============================================================================
# REGISTRY
# =============================================================================


@pytest.mark.unit
def test_registry_lookup_and_unregister(recorder):
    """
    Test the process-wide recorder lookup.

    Unregistering with a different instance leaves the entry alone.
    """
    register_recorder(recorder, name="test-cam")
    try:
        assert lookup_recorder("test-cam") is recorder
        assert "test-cam" in registered_names()
        assert unregister_recorder("test-cam", recorder=object()) is False
        assert unregister_recorder("test-cam", recorder=recorder) is True
        assert lookup_recorder("test-cam") is None
    finally:
        unregister_recorder("test-cam")


@pytest.mark.unit
def test_registry_lookup_missing():
    assert lookup_recorder("never-registered") is None


# =============================================================================
# FACTORY
# =============================================================================


@pytest.mark.unit
def test_factory_mock_mode():
    assert isinstance(RecordingFactory.create_capture(mode="mock"), MockCapture)
    assert isinstance(RecordingFactory.create_overlay(mode="mock"), MockOverlay)
    assert isinstance(
        RecordingFactory.create_location_provider(mode="mock"), MockLocationProvider
    )


@pytest.mark.unit
def test_factory_real_mode_without_camera(tmp_path):
    with pytest.raises(RuntimeError):
        RecordingFactory.create_capture(mode="real", camera_device=str(tmp_path / "video9"))
