"""
Parsing of trim offsets in the two forms ffmpeg accepts for durations:

    [HH:]MM:SS[.frac]      e.g. '01:30:15', '1:30:15.5', '30:15'
    N[.frac][s|ms|us]      e.g. '55', '0.2', '200ms'

Both patterns are matched against the whole string.
"""
import re
from typing import Optional
from tapeshift.domain.models import TrimBound

CLOCK_REGEX = re.compile(r"(?:(\d+):)?(\d{1,2}):(\d{1,2})(\.\d+)?")
MAGNITUDE_REGEX = re.compile(r"(\d+(?:\.\d+)?)(s|ms|us)?")

UNIT_SCALE = {None: 1.0, "s": 1.0, "ms": 1e-3, "us": 1e-6}


def parse_offset(text: str) -> Optional[TrimBound]:
    """Returns the offset as a TrimBound, or None if text is in neither accepted form."""
    text = text.strip()

    match = CLOCK_REGEX.fullmatch(text)
    if match:
        hours, minutes, seconds, fraction = match.groups()
        if int(minutes) > 59 or int(seconds) > 59:
            return None
        total = int(hours or 0) * 3600 + int(minutes) * 60 + int(seconds) + float(fraction or 0)
        return TrimBound(text=text, seconds=total)

    match = MAGNITUDE_REGEX.fullmatch(text)
    if match:
        magnitude, unit = match.groups()
        return TrimBound(text=text, seconds=float(magnitude) * UNIT_SCALE[unit])

    return None
