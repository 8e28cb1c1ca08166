from typing import List
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from tapeshift.infrastructure.event_bus import EventBus
from tapeshift.domain.events import (
    StatusMessage, Level, DevicesListed, StandardDetected, AccelerationSelected,
    CaptureStarted, CaptureStopped, CaptureFailed, StageStarted, StageCompleted,
    StageFailed, CaptureFinished, CommandPreview,
)

LEVEL_STYLES = {
    Level.INFO: "bold blue",
    Level.WARN: "bold yellow",
    Level.ERROR: "bold red",
    Level.DONE: "bold green",
}


class ConsoleReporter:
    """Subscribes to EventBus and renders progress on the terminal."""

    def __init__(self, bus: EventBus, console: Console):
        self.bus = bus
        self.console = console
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(StatusMessage, self.on_status)
        self.bus.subscribe(DevicesListed, self.on_devices_listed)
        self.bus.subscribe(StandardDetected, self.on_standard_detected)
        self.bus.subscribe(AccelerationSelected, self.on_acceleration_selected)
        self.bus.subscribe(CaptureStarted, self.on_capture_started)
        self.bus.subscribe(CaptureStopped, self.on_capture_stopped)
        self.bus.subscribe(CaptureFailed, self.on_capture_failed)
        self.bus.subscribe(StageStarted, self.on_stage_started)
        self.bus.subscribe(StageCompleted, self.on_stage_completed)
        self.bus.subscribe(StageFailed, self.on_stage_failed)
        self.bus.subscribe(CaptureFinished, self.on_capture_finished)
        self.bus.subscribe(CommandPreview, self.on_command_preview)

    def line(self, level: Level, message: str, details: List[str] = ()):
        style = LEVEL_STYLES[level]
        self.console.print(f"[{style}]\\[{level.value}][/{style}] {escape(message)}")
        for detail in details:
            self.console.print(f"    {escape(detail)}")

    def on_command_preview(self, event: CommandPreview):
        self.console.print()
        self.line(Level.INFO, "The following command will be executed:")
        self.console.print(Panel(escape(event.command), border_style="grey50"))

    def on_status(self, event: StatusMessage):
        self.line(event.level, event.message, event.details)

    def on_devices_listed(self, event: DevicesListed):
        self.line(Level.INFO, "Finding Video Devices...")
        self.console.print(Panel(escape(event.video_listing.strip() or "(none found)"), border_style="grey50"))
        self.line(Level.INFO, "Finding Audio Devices...")
        self.console.print(Panel(escape(event.audio_listing.strip() or "(none found)"), border_style="grey50"))
        self.line(Level.INFO, "To specify an audio input device:", [
            "1. Note the 'card' (e.g. 'X') and 'device' (e.g. 'Y') numbers of the desired input device.",
            "2. Specify the device using 'hw:X,Y' syntax (e.g. hw:1,0).",
        ])
        self.console.print()

    def on_standard_detected(self, event: StandardDetected):
        self.line(Level.INFO, f"Detected Video Standard: {event.detected.describe()}")

    def on_acceleration_selected(self, event: AccelerationSelected):
        if event.profile.is_hardware:
            self.line(Level.INFO, f"Using VAAPI hardware encoding on {event.profile.device}")
        else:
            self.line(Level.INFO, "Using software (libx264) encoding")

    def on_capture_started(self, event: CaptureStarted):
        self.console.print()
        self.line(Level.INFO, "Capturing...", [
            f"Recording to: {event.intermediate}",
            f"Log file: {event.log}",
        ])
        self.line(Level.INFO, "Complete the capture by pressing Ctrl+C.")

    def on_capture_stopped(self, event: CaptureStopped):
        self.line(Level.DONE, "Capture stopped!")

    def on_capture_failed(self, event: CaptureFailed):
        code = f" with code {event.returncode}" if event.returncode is not None else ""
        self.line(Level.ERROR, f"The capture process exited unexpectedly{code}!", [f"See: {event.log}"])

    def on_stage_started(self, event: StageStarted):
        self.line(Level.INFO, f"{event.stage}...")

    def on_stage_completed(self, event: StageCompleted):
        self.line(Level.DONE, f"{event.stage} complete: {event.output}")

    def on_stage_failed(self, event: StageFailed):
        self.line(Level.ERROR, f"{event.stage} failed!", [f"See: {event.log}"])

    def on_capture_finished(self, event: CaptureFinished):
        self.console.print()
        self.line(Level.DONE, f"Finished! Output: {event.final}")
