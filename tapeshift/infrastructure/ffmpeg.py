import subprocess
import logging
from pathlib import Path
from typing import List
from tapeshift.domain.models import AccelerationProfile, CaptureConfig, DetectedStandard, TrimBound
from tapeshift.infrastructure.logging import append_section

VIDEO_INPUT_FORMAT = "yuyv422"
AUDIO_CHANNELS = "2"
AUDIO_SAMPLE_RATE = "48000"
BUFFER_SIZE = "250k"


def _video_leg(config: CaptureConfig, detected: DetectedStandard) -> List[str]:
    cmd = ["-f", "v4l2"]
    if detected.resolution:
        cmd.extend(["-video_size", detected.resolution])
    cmd.extend([
        "-input_format", VIDEO_INPUT_FORMAT,
        "-use_wallclock_as_timestamps", "1",
        "-i", config.video_device,
    ])
    return cmd


def _audio_leg(config: CaptureConfig) -> List[str]:
    return [
        "-f", "alsa",
        "-ac", AUDIO_CHANNELS,
        "-ar", AUDIO_SAMPLE_RATE,
        "-use_wallclock_as_timestamps", "1",
        "-i", config.audio_device,
        # Absorbs drift between the independent audio and video clocks
        "-af", "aresample=async=1",
    ]


def _encode_options(config: CaptureConfig, detected: DetectedStandard, profile: AccelerationProfile) -> List[str]:
    cmd = ["-c:v", profile.codec]
    if detected.frame_rate:
        cmd.extend(["-r", detected.frame_rate, "-fps_mode", "cfr"])
    cmd.extend([profile.quality_option, str(config.crf)])
    if not profile.is_hardware:
        cmd.extend(["-preset", config.preset])
    cmd.extend([
        "-pix_fmt", profile.pixel_format,
        # VHS is interlaced, top field first
        "-vf", profile.video_filter,
        "-flags", "+ilme+ildct",
        "-weightp", "0",
        "-c:a", "aac",
        "-b:a", f"{config.audio_bitrate}k",
        "-buffer_size", BUFFER_SIZE,
        "-f", "mpegts",
        "-",
    ])
    return cmd


def build_software_command(config: CaptureConfig, detected: DetectedStandard, ffmpeg: str = "ffmpeg") -> List[str]:
    """libx264 capture writing MPEG-TS to stdout."""
    profile = AccelerationProfile.software()
    return (
        [ffmpeg, "-nostdin"]
        + _video_leg(config, detected)
        + _audio_leg(config)
        + _encode_options(config, detected, profile)
    )


def build_hardware_command(
    config: CaptureConfig, detected: DetectedStandard, device: Path, ffmpeg: str = "ffmpeg"
) -> List[str]:
    """h264_vaapi capture writing MPEG-TS to stdout; the preset has no VAAPI equivalent and is omitted."""
    profile = AccelerationProfile.vaapi(device)
    return (
        [ffmpeg, "-nostdin", "-hwaccel", "vaapi", "-vaapi_device", str(device)]
        + _video_leg(config, detected)
        + _audio_leg(config)
        + _encode_options(config, detected, profile)
    )


def build_capture_command(
    config: CaptureConfig, detected: DetectedStandard, profile: AccelerationProfile, ffmpeg: str = "ffmpeg"
) -> List[str]:
    """Constructs the capture command for the chosen acceleration profile."""
    if profile.is_hardware and profile.device is not None:
        return build_hardware_command(config, detected, profile.device, ffmpeg)
    return build_software_command(config, detected, ffmpeg)


def build_preview_command(source: Path, window_title: str, ffplay: str = "ffplay") -> List[str]:
    """Live preview reading the transient channel with minimal buffering."""
    return [
        ffplay,
        "-hide_banner",
        "-loglevel", "error",
        "-window_title", window_title,
        "-fflags", "nobuffer",
        str(source),
    ]


def build_viewer_command(source: Path, window_title: str, ffplay: str = "ffplay") -> List[str]:
    """Viewer used to find trim points in the finished capture."""
    return [
        ffplay,
        "-hide_banner",
        "-loglevel", "error",
        "-window_title", window_title,
        str(source),
    ]


class FFmpegAdapter:
    """Wrapper around ffmpeg for the short stream-copy stages after capture."""

    def __init__(self, ffmpeg: str = "ffmpeg"):
        self.ffmpeg = ffmpeg
        self.logger = logging.getLogger(__name__)

    def _build_remux_command(self, source: Path, target: Path) -> List[str]:
        return [
            self.ffmpeg, "-y", "-nostdin",
            "-i", str(source),
            "-c:a", "copy",
            "-c:v", "copy",
            str(target),
        ]

    def _build_trim_command(self, source: Path, target: Path, start: TrimBound, end: TrimBound) -> List[str]:
        return [
            self.ffmpeg, "-y", "-nostdin",
            "-ss", start.text,
            "-to", end.text,
            "-i", str(source),
            "-map", "0",
            "-c", "copy",
            str(target),
        ]

    def _run(self, cmd: List[str], log_file: Path, title: str) -> int:
        append_section(log_file, title)
        self.logger.debug(f"Running: {subprocess.list2cmdline(cmd)}")
        with open(log_file, "ab") as log:
            result = subprocess.run(cmd, stdin=subprocess.DEVNULL, stdout=log, stderr=subprocess.STDOUT)
        self.logger.info(f"{title}: ffmpeg exited with code {result.returncode}")
        return result.returncode

    def remux(self, source: Path, target: Path, log_file: Path) -> int:
        """Re-containerises source into target without re-encoding."""
        return self._run(self._build_remux_command(source, target), log_file, f"{source.suffix.upper()} TO {target.suffix.upper()}")

    def trim(self, source: Path, target: Path, start: TrimBound, end: TrimBound, log_file: Path) -> int:
        """Copies the [start, end] span of source into target without re-encoding."""
        return self._run(self._build_trim_command(source, target, start, end), log_file, f"TRIM {start.text} - {end.text}")
