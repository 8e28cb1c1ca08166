import shutil
from typing import Iterable, List
from tapeshift.config.models import BinariesConfig
from tapeshift.domain.errors import MissingDependencies


def required_binaries(binaries: BinariesConfig) -> List[str]:
    return [binaries.ffmpeg, binaries.ffprobe, binaries.ffplay, binaries.arecord, binaries.v4l2_ctl]


def check_dependencies(names: Iterable[str]):
    """Raises MissingDependencies naming every tool that is not on PATH."""
    missing = [name for name in names if shutil.which(name) is None]
    if missing:
        raise MissingDependencies(
            f"{', '.join(repr(m) for m in missing)} not installed!",
            ["Install the missing tools and make sure they are on PATH."],
        )
