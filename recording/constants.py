"""
Recording Constants

Recorder state types, the allowed-transition table and FFmpeg command
builders. Tunable values live in config/settings.py.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set

from config.app_settings import VideoQuality
from config.settings import (
    AUDIO_BITRATE,
    AUDIO_CHANNELS,
    AUDIO_CODEC,
    AUDIO_INPUT_DEVICE,
    AUDIO_INPUT_FORMAT,
    AUDIO_SAMPLE_RATE,
    OVERLAY_FONT_FILE,
    OVERLAY_FONT_SIZE,
    VIDEO_CODEC,
    VIDEO_FPS,
    VIDEO_PRESET,
)

# Video input format (Video4Linux2)
VIDEO_INPUT_FORMAT = "v4l2"

# FFmpeg log level
FFMPEG_LOG_LEVEL = "error"

# Input queue size, absorbs USB camera timing jitter
THREAD_QUEUE_SIZE = 512


# =============================================================================
# RECORDER STATE
# =============================================================================


class RecordingPhase(Enum):
    """
    Phases of the segment recorder.

    Lifecycle: IDLE -> STARTING -> RECORDING (-> RECORDING ...) -> STOPPING -> IDLE
    Any phase can fall into ERROR; ERROR leaves only through a new start.
    """

    IDLE = "idle"
    STARTING = "starting"
    RECORDING = "recording"
    STOPPING = "stopping"
    ERROR = "error"


@dataclass(frozen=True)
class RecordingState:
    """
    Recorder state with per-phase data.

    RECORDING carries the segment counter and start times; ERROR carries a
    message. Other phases carry nothing.
    """

    phase: RecordingPhase
    segment_index: int = 0
    segment_start_time: Optional[datetime] = None
    total_start_time: Optional[datetime] = None
    message: Optional[str] = None

    @classmethod
    def idle(cls) -> "RecordingState":
        return cls(RecordingPhase.IDLE)

    @classmethod
    def starting(cls) -> "RecordingState":
        return cls(RecordingPhase.STARTING)

    @classmethod
    def recording(
        cls,
        segment_index: int,
        segment_start_time: datetime,
        total_start_time: datetime,
    ) -> "RecordingState":
        return cls(
            RecordingPhase.RECORDING,
            segment_index=segment_index,
            segment_start_time=segment_start_time,
            total_start_time=total_start_time,
        )

    @classmethod
    def stopping(cls) -> "RecordingState":
        return cls(RecordingPhase.STOPPING)

    @classmethod
    def error(cls, message: str) -> "RecordingState":
        return cls(RecordingPhase.ERROR, message=message)

    @property
    def current_segment(self) -> int:
        return self.segment_index

    @property
    def is_recording(self) -> bool:
        return self.phase == RecordingPhase.RECORDING


RECORDER_TRANSITIONS: Dict[RecordingPhase, Set[RecordingPhase]] = {
    RecordingPhase.IDLE: {RecordingPhase.STARTING, RecordingPhase.ERROR},
    RecordingPhase.STARTING: {RecordingPhase.RECORDING, RecordingPhase.ERROR},
    RecordingPhase.RECORDING: {
        RecordingPhase.RECORDING,  # rollover
        RecordingPhase.STOPPING,
        RecordingPhase.ERROR,
    },
    RecordingPhase.STOPPING: {RecordingPhase.IDLE, RecordingPhase.ERROR},
    RecordingPhase.ERROR: {RecordingPhase.STARTING},
}


# =============================================================================
# FFMPEG COMMANDS
# =============================================================================


def get_ffmpeg_command(
    input_device: str,
    output_file: str,
    quality: VideoQuality = VideoQuality.HD,
    audio_enabled: bool = True,
    fps: int = VIDEO_FPS,
) -> List[str]:
    """
    Generate FFmpeg command for capturing one segment.

    Args:
        input_device: Camera device path (e.g., /dev/video0)
        output_file: Output filename with path
        quality: Resolution and target bitrate
        audio_enabled: Add the PulseAudio microphone input
        fps: Frame rate

    Returns:
        List of command arguments for subprocess

    Example:
        cmd = get_ffmpeg_command("/dev/video0", "segment.mp4", VideoQuality.FHD)
        subprocess.Popen(cmd)
    """
    command = [
        "ffmpeg",
        "-f", VIDEO_INPUT_FORMAT,
        "-input_format", "mjpeg",
        "-video_size", quality.resolution,
        "-framerate", str(fps),
        "-thread_queue_size", str(THREAD_QUEUE_SIZE),
        "-i", input_device,
    ]

    if audio_enabled:
        command.extend([
            "-f", AUDIO_INPUT_FORMAT,
            "-ac", str(AUDIO_CHANNELS),
            "-ar", str(AUDIO_SAMPLE_RATE),
            "-thread_queue_size", str(THREAD_QUEUE_SIZE),
            "-i", AUDIO_INPUT_DEVICE,
        ])

    command.extend([
        "-c:v", VIDEO_CODEC,
        "-preset", VIDEO_PRESET,
        "-b:v", str(quality.bitrate),
        "-maxrate", str(quality.bitrate),
        "-bufsize", str(quality.bitrate * 2),
        "-pix_fmt", "yuv420p",
    ])

    if audio_enabled:
        command.extend(["-c:a", AUDIO_CODEC, "-b:a", AUDIO_BITRATE])
    else:
        command.append("-an")

    command.extend([
        # Fragmented MP4 stays playable when ffmpeg is stopped with SIGTERM
        "-movflags", "+frag_keyframe+empty_moov",
        "-loglevel", FFMPEG_LOG_LEVEL,
        "-y",
        output_file,
    ])

    return command


def get_overlay_command(
    input_file: Path,
    output_file: Path,
    text_file: Path,
) -> List[str]:
    """
    Generate FFmpeg command that burns the text in text_file into a video.

    Text sits bottom-left on a translucent box. Audio is copied untouched.
    """
    drawtext = [
        f"textfile='{text_file}'",
        f"fontsize={OVERLAY_FONT_SIZE}",
        "fontcolor=white",
        "box=1",
        "boxcolor=black@0.5",
        "boxborderw=8",
        "x=16",
        "y=h-th-16",
    ]
    if OVERLAY_FONT_FILE:
        drawtext.insert(0, f"fontfile='{OVERLAY_FONT_FILE}'")

    return [
        "ffmpeg",
        "-i", str(input_file),
        "-vf", "drawtext=" + ":".join(drawtext),
        "-c:v", VIDEO_CODEC,
        "-preset", VIDEO_PRESET,
        "-c:a", "copy",
        "-loglevel", FFMPEG_LOG_LEVEL,
        "-y",
        str(output_file),
    ]


def validate_camera_device(device_path: str) -> bool:
    """
    Check if camera device exists and is a character device.

    Example:
        if validate_camera_device("/dev/video0"):
            print("Camera found!")
    """
    device = Path(device_path)
    return device.exists() and device.is_char_device()
