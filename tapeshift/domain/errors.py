from enum import IntEnum
from pathlib import Path
from typing import List, Optional, Sequence


class ExitCode(IntEnum):
    """Process exit status, one per failure kind."""
    SUCCESS = 0
    MISSING_DEPENDENCIES = 1
    NONEXISTENT_VIDEO_DEVICE = 2
    NONEXISTENT_AUDIO_DEVICE = 3
    INVALID_AUDIO_BITRATE = 4
    INVALID_QUALITY_FACTOR = 5
    INVALID_PRESET = 6
    INVALID_OUTPUT_DIRECTORY = 7
    NO_SUCH_HOME_DIRECTORY = 8
    DIRECTORY_CREATE_FAILED = 9
    DIRECTORY_NOT_WRITABLE = 10
    INVALID_FILENAME = 11
    UNSUPPORTED_STANDARD = 12
    CANCELLED_BY_USER = 13
    CAPTURE_PROCESS_FAILED = 14
    FINALISE_FAILED = 15
    TRIM_FAILED = 16
    CHANNEL_CREATE_FAILED = 17
    PROCESS_START_FAILED = 18
    INVALID_CONFIG = 19
    INTERRUPTED = 130


class TapeShiftError(Exception):
    """Base class for all terminal failures of a run."""
    exit_code: ExitCode = ExitCode.SUCCESS

    def __init__(self, message: str, hints: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.message = message
        self.hints: List[str] = list(hints or [])


class MissingDependencies(TapeShiftError):
    exit_code = ExitCode.MISSING_DEPENDENCIES


class NonexistentVideoDevice(TapeShiftError):
    exit_code = ExitCode.NONEXISTENT_VIDEO_DEVICE


class NonexistentAudioDevice(TapeShiftError):
    exit_code = ExitCode.NONEXISTENT_AUDIO_DEVICE


class InvalidAudioBitrate(TapeShiftError):
    exit_code = ExitCode.INVALID_AUDIO_BITRATE


class InvalidQualityFactor(TapeShiftError):
    exit_code = ExitCode.INVALID_QUALITY_FACTOR


class InvalidPreset(TapeShiftError):
    exit_code = ExitCode.INVALID_PRESET


class InvalidOutputDirectory(TapeShiftError):
    exit_code = ExitCode.INVALID_OUTPUT_DIRECTORY


class NoSuchHomeDirectory(TapeShiftError):
    exit_code = ExitCode.NO_SUCH_HOME_DIRECTORY


class DirectoryCreateFailed(TapeShiftError):
    exit_code = ExitCode.DIRECTORY_CREATE_FAILED


class DirectoryNotWritable(TapeShiftError):
    exit_code = ExitCode.DIRECTORY_NOT_WRITABLE


class InvalidFilename(TapeShiftError):
    exit_code = ExitCode.INVALID_FILENAME


class UnsupportedStandard(TapeShiftError):
    exit_code = ExitCode.UNSUPPORTED_STANDARD


class CancelledByUser(TapeShiftError):
    exit_code = ExitCode.CANCELLED_BY_USER

    def __init__(self, message: str = "Operation cancelled by user!", hints: Optional[Sequence[str]] = None):
        super().__init__(message, hints)


class CaptureProcessFailed(TapeShiftError):
    exit_code = ExitCode.CAPTURE_PROCESS_FAILED

    def __init__(self, log_path: Path, returncode: Optional[int] = None):
        detail = f" (exit code {returncode})" if returncode is not None else ""
        super().__init__(
            f"The capture process stopped unexpectedly{detail}!",
            [f"See the log for details: {log_path}"],
        )
        self.log_path = log_path
        self.returncode = returncode


class FinaliseFailed(TapeShiftError):
    exit_code = ExitCode.FINALISE_FAILED


class TrimFailed(TapeShiftError):
    exit_code = ExitCode.TRIM_FAILED


class ChannelCreateFailed(TapeShiftError):
    exit_code = ExitCode.CHANNEL_CREATE_FAILED


class ProcessStartFailed(TapeShiftError):
    exit_code = ExitCode.PROCESS_START_FAILED


class InvalidConfig(TapeShiftError):
    exit_code = ExitCode.INVALID_CONFIG
