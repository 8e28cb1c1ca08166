import subprocess
import json
from fractions import Fraction
from typing import Dict, Any, Optional

class FFprobeAdapter:
    """Wrapper around ffprobe to query the capture device's video stream."""

    def __init__(self, ffprobe: str = "ffprobe"):
        self.ffprobe = ffprobe

    def get_device_info(self, device: str) -> Dict[str, Any]:
        """Executes ffprobe against the device and parses JSON output."""
        cmd = [
            self.ffprobe,
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "stream=width,height,r_frame_rate",
            "-print_format", "json",
            device,
        ]

        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0:
            raise RuntimeError(f"ffprobe failed for {device}: {result.stderr.strip()}")

        data = json.loads(result.stdout or "{}")
        streams = data.get("streams", [])
        if not streams:
            raise ValueError(f"No video stream found on {device}")

        stream = streams[0]
        return {
            "width": int(stream.get("width", 0)),
            "height": int(stream.get("height", 0)),
            "frame_rate": parse_frame_rate(stream.get("r_frame_rate", "")),
        }


def parse_frame_rate(value: str) -> Optional[Fraction]:
    """Parses '25/1' or '29.97' into a Fraction; None when absent or degenerate."""
    if not value:
        return None
    try:
        if "/" in value:
            num, den = value.split("/", 1)
            if int(den) == 0:
                return None
            rate = Fraction(int(num), int(den))
        else:
            rate = Fraction(value)
    except ValueError:
        return None
    return rate if rate > 0 else None


def format_frame_rate(rate: Optional[Fraction]) -> str:
    """Renders a rate the way ffmpeg's -r expects it: '25', '29.97'."""
    if rate is None:
        return ""
    return f"{float(rate):.6g}"
