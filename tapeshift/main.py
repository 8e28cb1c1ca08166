import typer
from pathlib import Path
from typing import Optional
from rich.console import Console

from tapeshift.config.loader import load_config, DEFAULT_CONFIG_PATH
from tapeshift.domain.errors import TapeShiftError, ExitCode
from tapeshift.domain.models import CaptureRequest
from tapeshift.infrastructure.logging import setup_logging
from tapeshift.infrastructure.event_bus import EventBus
from tapeshift.infrastructure.devices import DeviceScanner
from tapeshift.infrastructure.ffprobe import FFprobeAdapter
from tapeshift.infrastructure.ffmpeg import FFmpegAdapter
from tapeshift.infrastructure.vaapi import VaapiProbe
from tapeshift.infrastructure.signals import CancellationToken, SignalGuard
from tapeshift.pipeline.orchestrator import Orchestrator
from tapeshift.ui.prompts import ConsolePrompter
from tapeshift.ui.reporter import ConsoleReporter

__version__ = "1.1.0"

app = typer.Typer(help="TapeShift - VHS digitisation with live preview, remux and trim")


def _fail(error: TapeShiftError):
    typer.secho(f"[ERR] {error.message}", fg=typer.colors.RED, err=True)
    for hint in error.hints:
        typer.echo(hint, err=True)
    raise typer.Exit(code=int(error.exit_code))


def _build_orchestrator(config_path: Optional[Path], debug: bool) -> Orchestrator:
    config = load_config(config_path)
    if debug:
        config.general.debug = True
    setup_logging(debug=config.general.debug)

    console = Console()
    bus = EventBus()
    ConsoleReporter(bus, console)
    binaries = config.binaries

    return Orchestrator(
        config=config,
        event_bus=bus,
        prompter=ConsolePrompter(console),
        token=CancellationToken(),
        device_scanner=DeviceScanner(v4l2_ctl=binaries.v4l2_ctl, arecord=binaries.arecord),
        ffprobe_adapter=FFprobeAdapter(ffprobe=binaries.ffprobe),
        vaapi_probe=VaapiProbe(ffmpeg=binaries.ffmpeg, udevadm=binaries.udevadm),
        ffmpeg_adapter=FFmpegAdapter(ffmpeg=binaries.ffmpeg),
    )


@app.command()
def capture(
    video_device: Optional[str] = typer.Option(None, "--video-device", "-v", help="Video capture device, e.g. /dev/video2"),
    audio_device: Optional[str] = typer.Option(None, "--audio-device", "-a", help="ALSA capture device, e.g. hw:1,0"),
    bitrate: Optional[str] = typer.Option(None, "--bitrate", "-b", help="Audio bitrate in kbps (32-320)"),
    crf: Optional[str] = typer.Option(None, "--crf", help="Constant Rate Factor / VAAPI QP (0-51)"),
    preset: Optional[str] = typer.Option(None, "--preset", "-p", help="H.264 preset (ignored with VAAPI)"),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", "-o", help="Directory for the capture files"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Output file name (.ts is appended if missing)"),
    trim: Optional[bool] = typer.Option(None, "--trim/--no-trim", help="Trim after capture (asked if omitted)"),
    config_path: Optional[Path] = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to YAML config"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Capture a tape: prompts for anything not given as an option."""
    typer.echo(f"VHS Digitisation Script v{__version__}\n")

    given = CaptureRequest(
        video_device=video_device or "",
        audio_device=audio_device or "",
        audio_bitrate=bitrate or "",
        crf=crf or "",
        preset=preset or "",
        output_directory=output_dir or "",
        output_filename=name or "",
    )

    try:
        orchestrator = _build_orchestrator(config_path, debug)
        with SignalGuard(orchestrator.token):
            orchestrator.run(given, trim=trim)
    except TapeShiftError as e:
        _fail(e)
    except KeyboardInterrupt:
        typer.echo("\nInterrupted by user")
        raise typer.Exit(code=int(ExitCode.INTERRUPTED))


@app.command()
def devices(
    config_path: Optional[Path] = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to YAML config"),
):
    """List video and audio capture devices."""
    try:
        orchestrator = _build_orchestrator(config_path, debug=False)
    except TapeShiftError as e:
        _fail(e)
    orchestrator.show_devices()


if __name__ == "__main__":
    app()
