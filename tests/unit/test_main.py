import pytest
from unittest.mock import MagicMock, patch
from typer.testing import CliRunner
from tapeshift.main import app

runner = CliRunner()


@pytest.fixture
def quiet_tools():
    """All external tools present, but nothing attached."""
    result = MagicMock()
    result.returncode = 0
    result.stdout = ""
    with patch("shutil.which", return_value="/usr/bin/tool"), \
            patch("subprocess.run", return_value=result):
        yield


def _capture_args(tmp_path, **overrides):
    video = tmp_path / "video0"
    video.write_text("")
    options = {
        "--video-device": str(video),
        "--audio-device": "hw:1,0",
        "--bitrate": "192",
        "--crf": "20",
        "--preset": "fast",
        "--output-dir": str(tmp_path / "out"),
        "--name": "Test",
        "--config": str(tmp_path / "absent.yaml"),
    }
    options.update(overrides)
    args = ["capture"]
    for option, value in options.items():
        args.extend([option, value])
    return args


def test_missing_dependencies_exit_code(tmp_path):
    with patch("shutil.which", return_value=None):
        result = runner.invoke(app, _capture_args(tmp_path))
    assert result.exit_code == 1
    assert "not installed" in result.output

def test_unknown_audio_device_exit_code(tmp_path, quiet_tools):
    result = runner.invoke(app, _capture_args(tmp_path))
    assert result.exit_code == 3
    assert "hw:X,Y" in result.output

def test_invalid_bitrate_exit_code(tmp_path, quiet_tools):
    with patch("tapeshift.infrastructure.devices.DeviceScanner.audio_device_exists", return_value=True):
        result = runner.invoke(app, _capture_args(tmp_path, **{"--bitrate": "999"}))
    assert result.exit_code == 4
    assert "Invalid audio bitrate '999'!" in result.output
    assert not (tmp_path / "out").exists()

def test_invalid_preset_exit_code(tmp_path, quiet_tools):
    with patch("tapeshift.infrastructure.devices.DeviceScanner.audio_device_exists", return_value=True):
        result = runner.invoke(app, _capture_args(tmp_path, **{"--preset": "warp"}))
    assert result.exit_code == 6

def test_invalid_config_exit_code(tmp_path):
    config = tmp_path / "tapeshift.yaml"
    config.write_text("defaults:\n  preset: warp\n")
    result = runner.invoke(app, _capture_args(tmp_path, **{"--config": str(config)}))
    assert result.exit_code == 19

def test_devices_command(tmp_path):
    listing = MagicMock()
    listing.returncode = 0
    listing.stdout = "USB Video:\n\t/dev/video2\n"
    with patch("subprocess.run", return_value=listing):
        result = runner.invoke(app, ["devices", "--config", str(tmp_path / "absent.yaml")])
    assert result.exit_code == 0
    assert "/dev/video2" in result.output
