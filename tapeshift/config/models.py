from pydantic import BaseModel, Field, field_validator
from tapeshift.domain.models import H264_PRESETS

class GeneralConfig(BaseModel):
    debug: bool = False

class DefaultsConfig(BaseModel):
    audio_bitrate: int = Field(default=192, ge=32, le=320)
    crf: int = Field(default=20, ge=0, le=51)
    preset: str = "fast"
    output_directory: str = "."
    filename_prefix: str = Field(default="VHS", pattern=r"^[0-9A-Za-z._-]+$")
    fallback_video_device: str = "/dev/video2"
    fallback_audio_device: str = "hw:1,0"

    @field_validator('preset')
    @classmethod
    def validate_preset(cls, v: str) -> str:
        if v not in H264_PRESETS:
            raise ValueError(f"Invalid H.264 preset {v!r}. Must be one of: {', '.join(H264_PRESETS)}.")
        return v

class BinariesConfig(BaseModel):
    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"
    ffplay: str = "ffplay"
    arecord: str = "arecord"
    v4l2_ctl: str = "v4l2-ctl"
    udevadm: str = "udevadm"

class PreviewConfig(BaseModel):
    window_title: str = "VHS Digitisation Preview"
    trim_window_title: str = "VHS Trim Viewer"

class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    binaries: BinariesConfig = Field(default_factory=BinariesConfig)
    preview: PreviewConfig = Field(default_factory=PreviewConfig)
