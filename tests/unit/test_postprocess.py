import pytest
from unittest.mock import MagicMock, patch
from tapeshift.domain.errors import FinaliseFailed, TrimFailed
from tapeshift.domain.events import CaptureFinished, StageCompleted, StageFailed, StatusMessage, Level
from tapeshift.pipeline.postprocess import PostProcessor


def _viewer_command(path):
    return ["ffplay", str(path)]


class FakeFFmpeg:
    """Stands in for FFmpegAdapter; writes outputs only when told to."""

    def __init__(self, remux_output=b"mp4", trim_output=b"trimmed", returncode=0):
        self.remux_output = remux_output
        self.trim_output = trim_output
        self.returncode = returncode
        self.trims = []

    def remux(self, source, target, log_file):
        if self.remux_output is not None:
            target.write_bytes(self.remux_output)
        return self.returncode

    def trim(self, source, target, start, end, log_file):
        self.trims.append((start.text, end.text))
        if self.trim_output is not None:
            target.write_bytes(self.trim_output)
        return self.returncode


@pytest.fixture
def captured(artifacts):
    artifacts.intermediate.write_bytes(b"ts")
    artifacts.log.write_text("")
    return artifacts


@pytest.fixture
def viewer():
    with patch("subprocess.Popen") as mock_popen:
        process = mock_popen.return_value
        process.poll.return_value = None
        yield process


def test_finalise_removes_intermediate(bus, recorded, prompter, captured):
    processor = PostProcessor(FakeFFmpeg(), prompter, bus, _viewer_command)

    final = processor.finalise(captured)

    assert final == captured.final
    assert final.read_bytes() == b"mp4"
    assert not captured.intermediate.exists()
    assert isinstance(recorded[-1], StageCompleted)

def test_finalise_trusts_the_file_not_the_exit_code(bus, prompter, captured):
    processor = PostProcessor(FakeFFmpeg(remux_output=b"mp4", returncode=1), prompter, bus, _viewer_command)
    assert processor.finalise(captured).exists()

def test_finalise_without_output_fails(bus, recorded, prompter, captured):
    processor = PostProcessor(FakeFFmpeg(remux_output=None, returncode=0), prompter, bus, _viewer_command)

    with pytest.raises(FinaliseFailed) as exc:
        processor.finalise(captured)

    assert exc.value.exit_code == 15
    assert captured.intermediate.exists()
    assert isinstance(recorded[-1], StageFailed)

def test_finalise_ignores_stale_final(bus, prompter, captured):
    captured.final.write_bytes(b"from an earlier run")
    processor = PostProcessor(FakeFFmpeg(remux_output=None), prompter, bus, _viewer_command)

    with pytest.raises(FinaliseFailed):
        processor.finalise(captured)
    assert not captured.final.exists()

def test_bound_is_asked_again_until_valid(bus, recorded, make_prompter):
    prompter = make_prompter(answers=["soon", "1:2:3:4", "00:01:30"])
    processor = PostProcessor(FakeFFmpeg(), prompter, bus, _viewer_command)

    bound = processor.ask_bound("start")

    assert bound.seconds == 90.0
    assert len(prompter.asked) == 3
    warnings = [e for e in recorded if isinstance(e, StatusMessage) and e.level is Level.WARN]
    assert len(warnings) == 2

def test_end_must_follow_start(bus, make_prompter):
    prompter = make_prompter(answers=["60", "30", "60", "90"])
    processor = PostProcessor(FakeFFmpeg(), prompter, bus, _viewer_command)

    start, end = processor.ask_bounds()

    assert (start.text, end.text) == ("60", "90")

def test_trim_replaces_final(bus, make_prompter, captured, viewer):
    captured.final.write_bytes(b"untrimmed")
    ffmpeg = FakeFFmpeg()
    prompter = make_prompter(answers=["00:00:10", "00:10:00"], confirms=[True])
    processor = PostProcessor(ffmpeg, prompter, bus, _viewer_command)

    assert processor.trim(captured) is True

    assert ffmpeg.trims == [("00:00:10", "00:10:00")]
    assert captured.final.read_bytes() == b"trimmed"
    assert not captured.trimmed.exists()
    viewer.terminate.assert_called_once()
    viewer.wait.assert_called()

def test_trim_declined_keeps_final(bus, make_prompter, captured, viewer):
    captured.final.write_bytes(b"untrimmed")
    ffmpeg = FakeFFmpeg()
    processor = PostProcessor(ffmpeg, make_prompter(answers=["10", "20"], confirms=[False]), bus, _viewer_command)

    assert processor.trim(captured) is False
    assert ffmpeg.trims == []
    assert captured.final.read_bytes() == b"untrimmed"
    viewer.terminate.assert_called_once()

def test_trim_failure_keeps_original(bus, make_prompter, captured, viewer):
    captured.final.write_bytes(b"untrimmed")
    processor = PostProcessor(
        FakeFFmpeg(trim_output=None), make_prompter(answers=["10", "20"], confirms=[True]), bus, _viewer_command
    )

    with pytest.raises(TrimFailed) as exc:
        processor.trim(captured)

    assert exc.value.exit_code == 16
    assert captured.final.read_bytes() == b"untrimmed"

def test_trim_without_viewer(bus, recorded, make_prompter, captured):
    captured.final.write_bytes(b"untrimmed")
    processor = PostProcessor(FakeFFmpeg(), make_prompter(answers=["10", "20"], confirms=[True]), bus, _viewer_command)

    with patch("subprocess.Popen", side_effect=FileNotFoundError("ffplay")):
        assert processor.trim(captured) is True
    assert any(isinstance(e, StatusMessage) and "Could not open a viewer" in e.message for e in recorded)

def test_run_without_trim_prints_hint(bus, recorded, make_prompter, captured):
    prompter = make_prompter(confirms=[False])
    processor = PostProcessor(FakeFFmpeg(), prompter, bus, _viewer_command)

    final = processor.run(captured)

    assert final == captured.final
    assert prompter.confirmed == ["Do you want to trim the capture?"]
    hint = [e for e in recorded if isinstance(e, StatusMessage) and "trim" in e.message]
    assert "-map 0 -c copy" in hint[0].details[0]
    assert recorded[-1] == CaptureFinished(final=captured.final, trimmed=False)

def test_run_with_trim_flag_skips_question(bus, recorded, make_prompter, captured, viewer):
    prompter = make_prompter(answers=["10", "20"], confirms=[True])
    processor = PostProcessor(FakeFFmpeg(), prompter, bus, _viewer_command)

    processor.run(captured, trim=True)

    assert prompter.confirmed == [f"Trim '{captured.final.name}' to 10 - 20?"]
    assert recorded[-1].trimmed is True
