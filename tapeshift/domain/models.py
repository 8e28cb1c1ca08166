from enum import Enum
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

H264_PRESETS = (
    "ultrafast", "superfast", "veryfast", "faster", "fast",
    "medium", "slow", "slower", "veryslow", "placebo",
)

INTERMEDIATE_SUFFIX = ".ts"
FINAL_SUFFIX = ".mp4"
LOG_SUFFIX = ".log"


class VideoStandard(str, Enum):
    PAL = "PAL"
    NTSC = "NTSC"
    UNKNOWN = "UNKNOWN"


# (width, height, frame rate label) -> standard
KNOWN_STANDARDS = {
    (720, 576, "25"): VideoStandard.PAL,
    (720, 480, "29.97"): VideoStandard.NTSC,
}


class DetectedStandard(BaseModel):
    """Resolution and frame rate sampled from the capture device."""
    model_config = ConfigDict(frozen=True)

    width: int = 0
    height: int = 0
    frame_rate: str = ""
    standard: VideoStandard = VideoStandard.UNKNOWN

    @property
    def resolution(self) -> str:
        if not self.width or not self.height:
            return ""
        return f"{self.width}x{self.height}"

    def describe(self) -> str:
        resolution = self.resolution or "unknown resolution"
        rate = self.frame_rate or "?"
        return f"{self.standard.value} ({resolution}) [{rate} fps]"


class EncoderBackend(str, Enum):
    SOFTWARE = "software"
    VAAPI = "vaapi"


class AccelerationProfile(BaseModel):
    """Encoder parameter substitutions for software or VAAPI encoding."""
    model_config = ConfigDict(frozen=True)

    backend: EncoderBackend = EncoderBackend.SOFTWARE
    device: Optional[Path] = None
    codec: str = "libx264"
    pixel_format: str = "yuv420p"
    quality_option: str = "-crf"
    video_filter: str = "setfield=tff"

    @classmethod
    def software(cls) -> "AccelerationProfile":
        return cls()

    @classmethod
    def vaapi(cls, device: Path) -> "AccelerationProfile":
        return cls(
            backend=EncoderBackend.VAAPI,
            device=device,
            codec="h264_vaapi",
            pixel_format="nv12",
            quality_option="-qp",
            video_filter="format=nv12,hwupload,setfield=tff",
        )

    @property
    def is_hardware(self) -> bool:
        return self.backend is EncoderBackend.VAAPI


class CaptureRequest(BaseModel):
    """Raw, unvalidated field values as typed by the user (empty means default)."""
    video_device: str = ""
    audio_device: str = ""
    audio_bitrate: str = ""
    crf: str = ""
    preset: str = ""
    output_directory: str = ""
    output_filename: str = ""


class CaptureArtifacts(BaseModel):
    """On-disk files of one capture session, sharing a common base name."""
    model_config = ConfigDict(frozen=True)

    directory: Path
    stem: str

    @property
    def intermediate(self) -> Path:
        return self.directory / f"{self.stem}{INTERMEDIATE_SUFFIX}"

    @property
    def final(self) -> Path:
        return self.directory / f"{self.stem}{FINAL_SUFFIX}"

    @property
    def log(self) -> Path:
        return self.directory / f"{self.stem}{LOG_SUFFIX}"

    @property
    def trimmed(self) -> Path:
        return self.directory / f"{self.stem}_trimmed{FINAL_SUFFIX}"

    def existing(self) -> List[Path]:
        """Artifacts of a previous run that this session would overwrite."""
        return [p for p in (self.intermediate, self.final, self.log) if p.exists()]

    def prepare(self):
        """Clears leftovers of a previous run and starts an empty log."""
        for stale in (self.final, self.trimmed):
            if stale.exists():
                stale.unlink()
        self.log.write_text("")


class CaptureConfig(BaseModel):
    """Validated capture settings; every field is either user-supplied or a default."""
    model_config = ConfigDict(frozen=True)

    video_device: str
    audio_device: str
    audio_bitrate: int
    crf: int
    preset: str
    output_directory: Path
    output_filename: str

    @property
    def output_path(self) -> Path:
        return self.output_directory / self.output_filename

    @property
    def artifacts(self) -> CaptureArtifacts:
        return CaptureArtifacts(directory=self.output_directory, stem=Path(self.output_filename).stem)


class TrimBound(BaseModel):
    """A trim offset as typed (passed to ffmpeg verbatim) and its value in seconds."""
    model_config = ConfigDict(frozen=True)

    text: str
    seconds: float


class SessionOutcome(str, Enum):
    RUNNING = "running"
    USER_STOPPED = "user-stopped"
    FAILED = "failed"
