import glob
import subprocess
import logging
from pathlib import Path
from typing import List, Optional

RENDER_NODE_GLOB = "/dev/dri/renderD*"

class VaapiProbe:
    """Detects VAAPI support in ffmpeg and resolves a GPU render node via udev."""

    def __init__(self, ffmpeg: str = "ffmpeg", udevadm: str = "udevadm", render_glob: str = RENDER_NODE_GLOB):
        self.ffmpeg = ffmpeg
        self.udevadm = udevadm
        self.render_glob = render_glob
        self.logger = logging.getLogger(__name__)

    def hwaccels(self) -> List[str]:
        """Acceleration methods reported by 'ffmpeg -hwaccels'."""
        try:
            result = subprocess.run([self.ffmpeg, "-hide_banner", "-hwaccels"], capture_output=True, text=True)
        except FileNotFoundError:
            return []
        if result.returncode != 0:
            return []
        methods = []
        for line in result.stdout.splitlines():
            line = line.strip()
            if not line or line.endswith(":"):
                continue
            methods.append(line)
        return methods

    def _is_gpu(self, node: str) -> bool:
        try:
            result = subprocess.run(
                [self.udevadm, "info", "--query=all", f"--name={node}"],
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            self.logger.debug("udevadm not available, cannot inspect render nodes")
            return False
        return result.returncode == 0 and "drm" in result.stdout.lower()

    def find_render_device(self) -> Optional[Path]:
        """First render node whose udev record relates it to the DRM subsystem."""
        for node in sorted(glob.glob(self.render_glob)):
            if self._is_gpu(node):
                return Path(node)
        return None

    def detect(self) -> Optional[Path]:
        """Returns a usable VAAPI render device, or None when VAAPI is unavailable."""
        if "vaapi" not in self.hwaccels():
            self.logger.info("VAAPI not reported by ffmpeg")
            return None
        device = self.find_render_device()
        self.logger.info(f"VAAPI render device: {device}")
        return device
