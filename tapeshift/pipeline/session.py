import shlex
import signal
import subprocess
import logging
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional
from tapeshift.domain.errors import CancelledByUser, CaptureProcessFailed, ProcessStartFailed
from tapeshift.domain.events import CaptureStarted, CaptureStopped, CaptureFailed, CommandPreview, StatusMessage, Level
from tapeshift.domain.models import CaptureArtifacts, DetectedStandard, SessionOutcome
from tapeshift.infrastructure.channel import StreamTee, TransientChannel
from tapeshift.infrastructure.event_bus import EventBus
from tapeshift.infrastructure.logging import append_section
from tapeshift.infrastructure.signals import CancellationToken
from tapeshift.ui.prompts import Prompter


class SessionState(str, Enum):
    IDLE = "idle"
    CONFIRMING = "confirming"
    RUNNING = "running"
    USER_STOPPED = "user-stopped"
    FAILED = "failed"
    REAPED = "reaped"


class SessionHandle:
    """The encoder/previewer pair of one capture session and how it ended."""

    def __init__(self):
        self.encoder: Optional[subprocess.Popen] = None
        self.previewer: Optional[subprocess.Popen] = None
        self.outcome = SessionOutcome.RUNNING
        # Stays True unless the encoder exits without being asked to
        self.expected_termination = True
        self.returncode: Optional[int] = None

    @property
    def processes(self) -> List[subprocess.Popen]:
        return [p for p in (self.encoder, self.previewer) if p is not None]

    def stop(self):
        """Asks every running child to finish gracefully (SIGINT, like Ctrl+C)."""
        for process in self.processes:
            if process.poll() is None:
                try:
                    process.send_signal(signal.SIGINT)
                except ProcessLookupError:
                    pass

    def wait(self):
        for process in self.processes:
            process.wait()


def describe_command(command: List[str], artifacts: CaptureArtifacts, channel: str = "<preview pipe>") -> str:
    """Shell-equivalent rendering of the capture, including the fan-out and log redirection."""
    return (
        f"{shlex.join(command)} "
        f"> >(tee {shlex.quote(str(artifacts.intermediate))} > {shlex.quote(channel)}) "
        f"2>>{shlex.quote(str(artifacts.log))}"
    )


class SessionSupervisor:
    """Runs the encoder and the live preview side by side until the user stops the capture."""

    def __init__(
        self,
        prompter: Prompter,
        event_bus: EventBus,
        token: CancellationToken,
        preview_command: Callable[[Path], List[str]],
    ):
        self.prompter = prompter
        self.event_bus = event_bus
        self.token = token
        self.preview_command = preview_command
        self.state = SessionState.IDLE
        self.logger = logging.getLogger(__name__)

    def confirm(self, command: List[str], artifacts: CaptureArtifacts):
        """Shows the assembled command; nothing is started unless the user approves it."""
        self.state = SessionState.CONFIRMING
        self.event_bus.publish(CommandPreview(command=describe_command(command, artifacts)))
        if not self.prompter.confirm("Do you want to proceed with this command?"):
            self.state = SessionState.IDLE
            raise CancelledByUser()

    def _write_header(self, command: List[str], artifacts: CaptureArtifacts, detected: DetectedStandard):
        append_section(artifacts.log, "VHS TO .TS")
        with open(artifacts.log, "a") as f:
            f.write(f"Detected standard: {detected.describe()}\n")
            f.write(f"Command: {describe_command(command, artifacts)}\n\n")

    def _start(self, handle: SessionHandle, command: List[str], channel: Path, log):
        try:
            handle.encoder = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=log,
                start_new_session=True,
            )
            handle.previewer = subprocess.Popen(
                self.preview_command(channel),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            handle.stop()
            handle.wait()
            raise ProcessStartFailed(f"FFMPEG and/or FFPLAY command failed to start: {e}")
        self.logger.info(f"Started encoder pid={handle.encoder.pid}, preview pid={handle.previewer.pid}")

    def _request_stop(self, handle: SessionHandle):
        self.logger.info("Stop requested, signalling encoder and preview")
        self.event_bus.publish(StatusMessage(level=Level.INFO, message="Stopping capture..."))
        handle.stop()

    def _settle(self, handle: SessionHandle, tee: StreamTee):
        if self.token.cancelled:
            handle.outcome = SessionOutcome.USER_STOPPED
        else:
            handle.expected_termination = False
            handle.outcome = SessionOutcome.FAILED

        if tee.error is not None:
            handle.outcome = SessionOutcome.FAILED

        self.logger.info(
            f"Session ended: outcome={handle.outcome.value} encoder_exit={handle.returncode} "
            f"bytes={tee.bytes_written} preview_dropped={tee.preview_dropped}"
        )

    def run(self, command: List[str], artifacts: CaptureArtifacts, detected: DetectedStandard) -> SessionHandle:
        """
        Blocks until the encoder exits. A stop request (SIGINT/SIGTERM routed through
        the cancellation token) ends the session as USER_STOPPED; any other exit is a
        failure. Both children are reaped and the pipe removed on every path.
        """
        if self.state is not SessionState.CONFIRMING:
            raise RuntimeError("The capture command must be confirmed before the session starts")

        self._write_header(command, artifacts, detected)
        handle = SessionHandle()

        try:
            with TransientChannel() as channel, \
                    open(artifacts.log, "ab") as log, \
                    open(artifacts.intermediate, "wb") as sink, \
                    self.token.on_cancel(lambda: self._request_stop(handle)):
                self._start(handle, command, channel, log)
                tee = StreamTee(
                    handle.encoder.stdout,
                    sink,
                    channel,
                    reader_alive=lambda: handle.previewer.poll() is None,
                )
                self.state = SessionState.RUNNING
                self.event_bus.publish(CaptureStarted(intermediate=artifacts.intermediate, log=artifacts.log))
                tee.start()
                if self.token.cancelled:
                    handle.stop()
                try:
                    handle.returncode = handle.encoder.wait()
                finally:
                    if not self.token.cancelled:
                        self.logger.warning(f"Encoder exited on its own with code {handle.encoder.returncode}")
                    handle.stop()
                    handle.wait()
                    tee.join()
                    handle.encoder.stdout.close()
                self._settle(handle, tee)
        finally:
            if handle.outcome is SessionOutcome.USER_STOPPED:
                self.state = SessionState.USER_STOPPED
            elif handle.outcome is SessionOutcome.FAILED:
                self.state = SessionState.FAILED
            self.logger.debug(f"Session {self.state.value}, children reaped and pipe removed")
            self.state = SessionState.REAPED

        if handle.outcome is SessionOutcome.FAILED:
            self.event_bus.publish(CaptureFailed(log=artifacts.log, returncode=handle.returncode))
            raise CaptureProcessFailed(artifacts.log, handle.returncode)

        self.event_bus.publish(CaptureStopped(intermediate=artifacts.intermediate))
        return handle
