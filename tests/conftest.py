import pytest
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock
from tapeshift.config.models import DefaultsConfig
from tapeshift.domain.events import Event
from tapeshift.domain.models import CaptureArtifacts, CaptureConfig
from tapeshift.infrastructure.event_bus import EventBus


class ScriptedPrompter:
    """Answers prompts from fixed queues and records what was asked."""

    def __init__(self, answers=None, confirms=None):
        self.answers = list(answers or [])
        self.confirms = list(confirms or [])
        self.asked = []
        self.confirmed = []

    def ask(self, message: str, default: str = "") -> str:
        self.asked.append(message)
        return self.answers.pop(0) if self.answers else ""

    def confirm(self, message: str) -> bool:
        self.confirmed.append(message)
        return self.confirms.pop(0) if self.confirms else False


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def recorded(bus):
    """Every event published on the bus, in order."""
    events = []
    bus.subscribe(Event, events.append)
    return events


@pytest.fixture
def make_prompter():
    return ScriptedPrompter


@pytest.fixture
def prompter():
    return ScriptedPrompter()


@pytest.fixture
def defaults():
    return DefaultsConfig()


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2024, 9, 27, 22, 7, 56)


@pytest.fixture
def devices():
    catalog = MagicMock()
    catalog.audio_device_exists.side_effect = lambda address: address == "hw:1,0"
    return catalog


@pytest.fixture
def capture_config(tmp_path):
    return CaptureConfig(
        video_device="/dev/video2",
        audio_device="hw:1,0",
        audio_bitrate=192,
        crf=21,
        preset="fast",
        output_directory=tmp_path,
        output_filename="Test.ts",
    )


@pytest.fixture
def artifacts(tmp_path) -> CaptureArtifacts:
    return CaptureArtifacts(directory=tmp_path, stem="Test")
