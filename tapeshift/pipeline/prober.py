import logging
from fractions import Fraction
from typing import Optional
from tapeshift.domain.errors import UnsupportedStandard
from tapeshift.domain.events import StatusMessage, StandardDetected, Level
from tapeshift.domain.models import DetectedStandard, VideoStandard, KNOWN_STANDARDS
from tapeshift.infrastructure.event_bus import EventBus
from tapeshift.infrastructure.ffprobe import FFprobeAdapter, format_frame_rate
from tapeshift.ui.prompts import Prompter


def classify(width: int, height: int, frame_rate: Optional[Fraction]) -> DetectedStandard:
    """Maps a resolution/frame-rate pair onto PAL, NTSC or UNKNOWN."""
    label = format_frame_rate(frame_rate)
    standard = KNOWN_STANDARDS.get((width, height, label), VideoStandard.UNKNOWN)
    return DetectedStandard(width=width, height=height, frame_rate=label, standard=standard)


class DeviceProber:
    """Detects the analog video standard delivered by the capture device."""

    def __init__(self, ffprobe: FFprobeAdapter, prompter: Prompter, event_bus: EventBus):
        self.ffprobe = ffprobe
        self.prompter = prompter
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)

    def probe(self, device: str) -> DetectedStandard:
        try:
            info = self.ffprobe.get_device_info(device)
        except (RuntimeError, ValueError) as e:
            self.logger.error(f"Probing {device} failed: {e}")
            return DetectedStandard()
        return classify(info["width"], info["height"], info["frame_rate"])

    def detect(self, device: str) -> DetectedStandard:
        """Probes once; an unrecognised standard needs the user's go-ahead."""
        self.event_bus.publish(StatusMessage(message="Detecting Video Standard (Resolution + Framerate)..."))
        detected = self.probe(device)
        self.logger.info(f"Detected video standard: {detected.describe()}")

        if detected.standard is VideoStandard.UNKNOWN:
            self.event_bus.publish(StatusMessage(
                level=Level.WARN,
                message=f"Unsupported video standard detected: {detected.describe()}",
            ))
            if not self.prompter.confirm("Continue anyway?"):
                raise UnsupportedStandard(f"Unsupported video standard: {detected.describe()}")

        self.event_bus.publish(StandardDetected(detected=detected))
        return detected
