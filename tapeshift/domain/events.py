from enum import Enum
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel
from .models import AccelerationProfile, DetectedStandard


class Event(BaseModel):
    """Base class for all domain events."""
    pass


class Level(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERR"
    DONE = "DONE"


class StatusMessage(Event):
    level: Level = Level.INFO
    message: str
    details: List[str] = []


class DevicesListed(Event):
    video_listing: str
    audio_listing: str


class StandardDetected(Event):
    detected: DetectedStandard


class AccelerationSelected(Event):
    profile: AccelerationProfile


class CaptureStarted(Event):
    intermediate: Path
    log: Path


class CaptureStopped(Event):
    intermediate: Path


class CaptureFailed(Event):
    log: Path
    returncode: Optional[int] = None


class StageStarted(Event):
    stage: str


class StageCompleted(Event):
    stage: str
    output: Path


class StageFailed(Event):
    stage: str
    log: Path


class CaptureFinished(Event):
    final: Path
    trimmed: bool = False


class CommandPreview(Event):
    command: str
