import logging
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Callable, Optional
from tapeshift.config.models import AppConfig
from tapeshift.domain.events import DevicesListed
from tapeshift.domain.models import CaptureRequest
from tapeshift.infrastructure.dependencies import check_dependencies, required_binaries
from tapeshift.infrastructure.devices import DeviceScanner
from tapeshift.infrastructure.event_bus import EventBus
from tapeshift.infrastructure.ffmpeg import FFmpegAdapter, build_capture_command, build_preview_command, build_viewer_command
from tapeshift.infrastructure.ffprobe import FFprobeAdapter
from tapeshift.infrastructure.logging import session_log
from tapeshift.infrastructure.signals import CancellationToken
from tapeshift.infrastructure.vaapi import VaapiProbe
from tapeshift.pipeline.accelerator import AcceleratorSelector
from tapeshift.pipeline.postprocess import PostProcessor
from tapeshift.pipeline.prober import DeviceProber
from tapeshift.pipeline.session import SessionSupervisor
from tapeshift.pipeline.validator import InputValidator, default_filename
from tapeshift.ui.prompts import Prompter

FIELD_PROMPTS = (
    ("video_device", "Enter the video input device"),
    ("audio_device", "Enter the audio device address"),
    ("audio_bitrate", "Enter the audio bitrate in kbps"),
    ("crf", "Enter the Constant Rate Factor (CRF) value [recommended: 18-23]"),
    ("preset", "Enter the desired H.264 preset"),
    ("output_directory", "Enter the output directory"),
    ("output_filename", "Enter the output file name"),
)


class Orchestrator:
    """Validate -> probe -> select encoder -> build command -> capture -> post-process."""

    def __init__(
        self,
        config: AppConfig,
        event_bus: EventBus,
        prompter: Prompter,
        token: CancellationToken,
        device_scanner: DeviceScanner,
        ffprobe_adapter: FFprobeAdapter,
        vaapi_probe: VaapiProbe,
        ffmpeg_adapter: FFmpegAdapter,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.event_bus = event_bus
        self.prompter = prompter
        self.token = token
        self.devices = device_scanner
        self.clock = clock
        self.logger = logging.getLogger(__name__)

        binaries = config.binaries
        self.validator = InputValidator(config.defaults, device_scanner, prompter, event_bus, clock=clock)
        self.prober = DeviceProber(ffprobe_adapter, prompter, event_bus)
        self.selector = AcceleratorSelector(vaapi_probe, prompter, event_bus)
        self.supervisor = SessionSupervisor(
            prompter,
            event_bus,
            token,
            preview_command=partial(build_preview_command, window_title=config.preview.window_title, ffplay=binaries.ffplay),
        )
        self.post_processor = PostProcessor(
            ffmpeg_adapter,
            prompter,
            event_bus,
            viewer_command=partial(build_viewer_command, window_title=config.preview.trim_window_title, ffplay=binaries.ffplay),
        )

    def show_devices(self):
        self.event_bus.publish(DevicesListed(
            video_listing=self.devices.video_listing(),
            audio_listing=self.devices.audio_listing(),
        ))

    def collect_input(self, given: CaptureRequest, default_video: str, default_audio: str) -> CaptureRequest:
        """Prompts for every field not already supplied on the command line."""
        d = self.config.defaults
        defaults = {
            "video_device": default_video,
            "audio_device": default_audio,
            "audio_bitrate": str(d.audio_bitrate),
            "crf": str(d.crf),
            "preset": d.preset,
            "output_directory": d.output_directory,
            "output_filename": default_filename(d.filename_prefix, self.clock()),
        }
        values = given.model_dump()
        for field, message in FIELD_PROMPTS:
            if not values[field].strip():
                values[field] = self.prompter.ask(message, defaults[field])
        # The name shown as the default is the one used
        if not values["output_filename"].strip():
            values["output_filename"] = defaults["output_filename"]
        return CaptureRequest(**values)

    def run(self, given: CaptureRequest, trim: Optional[bool] = None) -> Path:
        check_dependencies(required_binaries(self.config.binaries))
        self.show_devices()

        d = self.config.defaults
        default_video = self.devices.default_video_device(d.fallback_video_device)
        default_audio = self.devices.default_audio_device(d.fallback_audio_device)

        request = self.collect_input(given, default_video, default_audio)
        capture_config = self.validator.validate(request, default_video, default_audio)
        artifacts = capture_config.artifacts

        detected = self.prober.detect(capture_config.video_device)
        profile = self.selector.select()
        command = build_capture_command(capture_config, detected, profile, self.config.binaries.ffmpeg)

        self.supervisor.confirm(command, artifacts)
        artifacts.prepare()

        with session_log(artifacts.log):
            self.logger.info(
                f"Capture session: video={capture_config.video_device} audio={capture_config.audio_device} "
                f"standard={detected.describe()} encoder={profile.backend.value}"
            )
            self.supervisor.run(command, artifacts, detected)
            final = self.post_processor.run(artifacts, trim)
            self.logger.info(f"Pipeline complete: {final}")
        return final
