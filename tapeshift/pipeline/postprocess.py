import os
import subprocess
import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple
from tapeshift.domain.errors import FinaliseFailed, TrimFailed
from tapeshift.domain.events import StageStarted, StageCompleted, StageFailed, StatusMessage, CaptureFinished, Level
from tapeshift.domain.models import CaptureArtifacts, TrimBound
from tapeshift.domain.timecode import parse_offset
from tapeshift.infrastructure.event_bus import EventBus
from tapeshift.infrastructure.ffmpeg import FFmpegAdapter
from tapeshift.ui.prompts import Prompter

REMUX_STAGE = "Finalising capture"
TRIM_STAGE = "Trimming capture"
OFFSET_FORMATS = "[HH:]MM:SS[.frac] or N[.frac][s|ms|us]"


class PostProcessor:
    """
    Remux, then optional trim, after the capture session ends.

    A stage succeeds when its output file exists; ffmpeg's exit code alone is
    not trusted. A failed stage leaves its input untouched.
    """

    def __init__(
        self,
        ffmpeg: FFmpegAdapter,
        prompter: Prompter,
        event_bus: EventBus,
        viewer_command: Callable[[Path], List[str]],
    ):
        self.ffmpeg = ffmpeg
        self.prompter = prompter
        self.event_bus = event_bus
        self.viewer_command = viewer_command
        self.logger = logging.getLogger(__name__)

    def _warn(self, message: str):
        self.event_bus.publish(StatusMessage(level=Level.WARN, message=message))

    def finalise(self, artifacts: CaptureArtifacts) -> Path:
        """Stream-copies the intermediate .ts into the final .mp4 and drops the .ts."""
        source, target = artifacts.intermediate, artifacts.final
        self.event_bus.publish(StageStarted(stage=REMUX_STAGE))
        self.logger.info(f"Remux started: {source} -> {target}")

        if target.exists():
            target.unlink()
        returncode = self.ffmpeg.remux(source, target, artifacts.log)

        if not target.exists():
            self.logger.error(f"Remux produced no output (ffmpeg exit code {returncode})")
            self.event_bus.publish(StageFailed(stage=REMUX_STAGE, log=artifacts.log))
            raise FinaliseFailed(
                f"Failed to convert '{source.name}' to '{target.name}'!",
                [f"The capture has been kept at: {source}", f"See the log for details: {artifacts.log}"],
            )

        source.unlink()
        self.logger.info(f"Remux finished: {target} (ffmpeg exit code {returncode}), removed {source}")
        self.event_bus.publish(StageCompleted(stage=REMUX_STAGE, output=target))
        return target

    def ask_bound(self, label: str) -> TrimBound:
        """Re-prompts until the answer parses as a time offset."""
        while True:
            answer = self.prompter.ask(f"Enter the trim {label} time ({OFFSET_FORMATS})")
            bound = parse_offset(answer)
            if bound is not None:
                return bound
            self._warn(f"Invalid time '{answer}'! Use {OFFSET_FORMATS}.")

    def ask_bounds(self) -> Tuple[TrimBound, TrimBound]:
        while True:
            start = self.ask_bound("start")
            end = self.ask_bound("end")
            if end.seconds > start.seconds:
                return start, end
            self._warn(f"The end time '{end.text}' must come after the start time '{start.text}'!")

    def _open_viewer(self, path: Path) -> Optional[subprocess.Popen]:
        try:
            return subprocess.Popen(
                self.viewer_command(path),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            self.logger.warning(f"Could not open the trim viewer: {e}")
            self._warn(f"Could not open a viewer for '{path.name}', enter the times without it.")
            return None

    def _close_viewer(self, viewer: Optional[subprocess.Popen]):
        if viewer is None:
            return
        if viewer.poll() is None:
            viewer.terminate()
        viewer.wait()

    def trim(self, artifacts: CaptureArtifacts) -> bool:
        """Interactive trim of the final artifact; returns False if the user backs out."""
        final, trimmed = artifacts.final, artifacts.trimmed

        self.event_bus.publish(StatusMessage(message=f"Opening '{final.name}' so you can find the trim points..."))
        viewer = self._open_viewer(final)
        try:
            start, end = self.ask_bounds()
            approved = self.prompter.confirm(f"Trim '{final.name}' to {start.text} - {end.text}?")
        finally:
            self._close_viewer(viewer)

        if not approved:
            self.logger.info("Trim declined, keeping the untrimmed capture")
            return False

        self.event_bus.publish(StageStarted(stage=TRIM_STAGE))
        self.logger.info(f"Trim started: {final} [{start.text} - {end.text}] -> {trimmed}")

        if trimmed.exists():
            trimmed.unlink()
        returncode = self.ffmpeg.trim(final, trimmed, start, end, artifacts.log)

        if not trimmed.exists():
            self.logger.error(f"Trim produced no output (ffmpeg exit code {returncode})")
            self.event_bus.publish(StageFailed(stage=TRIM_STAGE, log=artifacts.log))
            raise TrimFailed(
                f"Failed to trim '{final.name}'!",
                [f"The untrimmed capture has been kept at: {final}", f"See the log for details: {artifacts.log}"],
            )

        os.replace(trimmed, final)
        self.logger.info(f"Trim finished: {final} (ffmpeg exit code {returncode})")
        self.event_bus.publish(StageCompleted(stage=TRIM_STAGE, output=final))
        return True

    def run(self, artifacts: CaptureArtifacts, trim: Optional[bool] = None) -> Path:
        final = self.finalise(artifacts)

        if trim is None:
            trim = self.prompter.confirm("Do you want to trim the capture?")
        trimmed = self.trim(artifacts) if trim else False

        if not trimmed:
            self.event_bus.publish(StatusMessage(
                message=f"To trim '{final}' later, use:",
                details=[
                    f'ffmpeg -ss [start_time] -to [end_time] -i "{final}" -map 0 -c copy "{artifacts.trimmed}"',
                    f"Both times accept {OFFSET_FORMATS}.",
                ],
            ))

        self.event_bus.publish(CaptureFinished(final=final, trimmed=trimmed))
        return final
