import re
import subprocess
import logging
from typing import List, Optional, Tuple

VIDEO_DEVICE_REGEX = re.compile(r"^\s*(/dev/video\d+)\s*$", re.MULTILINE)
AUDIO_DEVICE_REGEX = re.compile(r"^card (\d+):.*, device (\d+):.*$", re.MULTILINE)
AUDIO_ADDRESS_REGEX = re.compile(r"^(?:plug)?hw:(\d+),(\d+)$")


def parse_audio_address(address: str) -> Optional[Tuple[int, int]]:
    """Splits 'hw:X,Y' into (card, device); None if the address is malformed."""
    match = AUDIO_ADDRESS_REGEX.match(address)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


class DeviceScanner:
    """Wrapper around v4l2-ctl and arecord for listing capture devices."""

    def __init__(self, v4l2_ctl: str = "v4l2-ctl", arecord: str = "arecord"):
        self.v4l2_ctl = v4l2_ctl
        self.arecord = arecord
        self.logger = logging.getLogger(__name__)

    def _run(self, cmd: List[str]) -> str:
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError as e:
            self.logger.warning(f"Device listing failed: {e}")
            return ""
        if result.returncode != 0:
            self.logger.debug(f"{cmd[0]} exited with code {result.returncode}: {result.stderr.strip()}")
        return result.stdout

    def video_listing(self) -> str:
        return self._run([self.v4l2_ctl, "--list-devices"])

    def audio_listing(self) -> str:
        return self._run([self.arecord, "--list-devices"])

    def video_devices(self) -> List[str]:
        return VIDEO_DEVICE_REGEX.findall(self.video_listing())

    def audio_devices(self) -> List[Tuple[int, int]]:
        """Returns (card, device) pairs as enumerated by ALSA."""
        return [(int(card), int(dev)) for card, dev in AUDIO_DEVICE_REGEX.findall(self.audio_listing())]

    def default_video_device(self, fallback: str) -> str:
        devices = self.video_devices()
        return devices[0] if devices else fallback

    def default_audio_device(self, fallback: str) -> str:
        devices = self.audio_devices()
        if not devices:
            return fallback
        card, dev = devices[0]
        return f"hw:{card},{dev}"

    def audio_device_exists(self, address: str) -> bool:
        parsed = parse_audio_address(address)
        return parsed is not None and parsed in self.audio_devices()
