import os
import re
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Protocol
from tapeshift.config.models import DefaultsConfig
from tapeshift.domain.errors import (
    NonexistentVideoDevice, NonexistentAudioDevice, InvalidAudioBitrate, InvalidQualityFactor,
    InvalidPreset, InvalidOutputDirectory, NoSuchHomeDirectory, DirectoryCreateFailed,
    DirectoryNotWritable, InvalidFilename, CancelledByUser,
)
from tapeshift.domain.events import StatusMessage, Level
from tapeshift.domain.models import CaptureConfig, CaptureRequest, H264_PRESETS, INTERMEDIATE_SUFFIX
from tapeshift.infrastructure.event_bus import EventBus
from tapeshift.ui.prompts import Prompter

ILLEGAL_DIRECTORY_CHARS = re.compile(r'[<>:"|?*]')
FILENAME_REGEX = re.compile(r"[0-9A-Za-z._-]+")
INTEGER_REGEX = re.compile(r"[0-9]+")


class DeviceCatalog(Protocol):
    def audio_device_exists(self, address: str) -> bool: ...


def default_filename(prefix: str, now: Optional[datetime] = None) -> str:
    """Example: 'VHS_20240927_220756.ts'."""
    now = now or datetime.now()
    return f"{prefix}_{now:%Y%m%d_%H%M%S}{INTERMEDIATE_SUFFIX}"


def _parse_bounded_int(value: str, low: int, high: int) -> Optional[int]:
    if not INTEGER_REGEX.fullmatch(value):
        return None
    number = int(value)
    return number if low <= number <= high else None


class InputValidator:
    """Turns raw field values into a CaptureConfig or raises the matching TapeShiftError."""

    def __init__(
        self,
        defaults: DefaultsConfig,
        devices: DeviceCatalog,
        prompter: Prompter,
        event_bus: EventBus,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.defaults = defaults
        self.devices = devices
        self.prompter = prompter
        self.event_bus = event_bus
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    def _warn(self, message: str, *details: str):
        self.logger.warning(message)
        self.event_bus.publish(StatusMessage(level=Level.WARN, message=message, details=list(details)))

    def validate_video_device(self, value: str) -> str:
        if not Path(value).exists():
            raise NonexistentVideoDevice(f"The video input device '{value}' does not exist!")
        return value

    def validate_audio_device(self, value: str) -> str:
        if not self.devices.audio_device_exists(value):
            raise NonexistentAudioDevice(
                f"The audio input device '{value}' does not exist!",
                ["Specify the device using 'hw:X,Y' syntax (e.g. hw:1,0)."],
            )
        return value

    def validate_audio_bitrate(self, value: str) -> int:
        bitrate = _parse_bounded_int(value, 32, 320)
        if bitrate is None:
            raise InvalidAudioBitrate(f"Invalid audio bitrate '{value}'!", ["Please enter a value between 32 and 320."])
        return bitrate

    def validate_crf(self, value: str) -> int:
        crf = _parse_bounded_int(value, 0, 51)
        if crf is None:
            raise InvalidQualityFactor(
                f"Invalid constant rate factor '{value}'!",
                ["Please enter an integer between 0 and 51 (inclusive)."],
            )
        return crf

    def validate_preset(self, value: str) -> str:
        if value not in H264_PRESETS:
            raise InvalidPreset(
                f"Invalid H.264 preset '{value}'!",
                ["Valid Presets:"] + [f"  - '{p}'" for p in H264_PRESETS],
            )
        return value

    def resolve_output_directory(self, value: str) -> Path:
        """Rejects illegal characters, expands '~'/'~user', then creates or checks the directory."""
        if ILLEGAL_DIRECTORY_CHARS.search(value):
            raise InvalidOutputDirectory(
                f"Output directory '{value}' contains illegal characters!",
                ['The following characters are not allowed: < > : " | ? *'],
            )

        directory = Path(value)
        if value.startswith("~"):
            try:
                directory = directory.expanduser()
            except RuntimeError:
                raise NoSuchHomeDirectory(f"Could not resolve the home directory in '{value}'!")

        if not directory.is_dir():
            self._warn(f"Output directory '{directory}' does not exist!", f"Creating: '{directory}'...")
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise DirectoryCreateFailed(f"Failed to create output directory '{directory}': {e}")
        elif not os.access(directory, os.W_OK):
            raise DirectoryNotWritable(f"Output directory '{directory}' exists, but is not writable!")

        return directory

    def validate_filename(self, value: str) -> str:
        if not FILENAME_REGEX.fullmatch(value):
            raise InvalidFilename(
                f"The output file name '{value}' contains illegal characters!",
                ["Only letters, numbers, underscores, hyphens and periods are allowed."],
            )
        if not value.endswith(INTERMEDIATE_SUFFIX):
            self._warn(f"The '{INTERMEDIATE_SUFFIX}' file extension will be appended to '{value}'!")
            value = f"{value}{INTERMEDIATE_SUFFIX}"
        return value

    def check_collisions(self, config: CaptureConfig):
        """Asks before overwriting artifacts of an earlier capture with the same name."""
        existing = config.artifacts.existing()
        if not existing:
            return
        self._warn(
            f"File(s) with the same name already exist at '{config.output_path}'!",
            *[str(p) for p in existing],
        )
        if not self.prompter.confirm("Do you want to overwrite them?"):
            raise CancelledByUser()
        self.logger.info(f"User agreed to overwrite: {', '.join(str(p) for p in existing)}")

    def validate(self, request: CaptureRequest, default_video: str, default_audio: str) -> CaptureConfig:
        """Validates all fields in order; the first failure is terminal."""
        d = self.defaults
        video = request.video_device.strip() or default_video
        audio = request.audio_device.strip() or default_audio
        bitrate = request.audio_bitrate.strip() or str(d.audio_bitrate)
        crf = request.crf.strip() or str(d.crf)
        preset = request.preset.strip() or d.preset
        directory = request.output_directory.strip() or d.output_directory
        filename = request.output_filename.strip() or default_filename(d.filename_prefix, self.clock())

        config = CaptureConfig(
            video_device=self.validate_video_device(video),
            audio_device=self.validate_audio_device(audio),
            audio_bitrate=self.validate_audio_bitrate(bitrate),
            crf=self.validate_crf(crf),
            preset=self.validate_preset(preset),
            output_directory=self.resolve_output_directory(directory),
            output_filename=self.validate_filename(filename),
        )
        self.check_collisions(config)
        self.logger.info(f"Capture configuration: {config.model_dump_json()}")
        return config
