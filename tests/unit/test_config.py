import pytest
from pydantic import ValidationError
from tapeshift.config.loader import load_config
from tapeshift.config.models import AppConfig, DefaultsConfig
from tapeshift.domain.errors import InvalidConfig

def test_config_defaults():
    config = AppConfig()
    assert config.general.debug is False
    assert config.defaults.audio_bitrate == 192
    assert config.defaults.crf == 20
    assert config.defaults.preset == "fast"
    assert config.defaults.fallback_video_device == "/dev/video2"
    assert config.defaults.fallback_audio_device == "hw:1,0"
    assert config.binaries.v4l2_ctl == "v4l2-ctl"

def test_invalid_bitrate():
    with pytest.raises(ValidationError):
        DefaultsConfig(audio_bitrate=400)

def test_invalid_crf():
    with pytest.raises(ValidationError):
        DefaultsConfig(crf=52)

def test_invalid_preset():
    with pytest.raises(ValidationError):
        DefaultsConfig(preset="turbo")

def test_invalid_prefix():
    with pytest.raises(ValidationError):
        DefaultsConfig(filename_prefix="my tapes")

def test_load_config(tmp_path):
    f = tmp_path / "tapeshift.yaml"
    f.write_text("""
general:
  debug: true
defaults:
  audio_bitrate: 256
  preset: slow
  output_directory: ~/Videos/VHS
binaries:
  ffmpeg: /opt/ffmpeg/bin/ffmpeg
""")
    config = load_config(f)
    assert config.general.debug is True
    assert config.defaults.audio_bitrate == 256
    assert config.defaults.preset == "slow"
    assert config.defaults.crf == 20
    assert config.defaults.output_directory == "~/Videos/VHS"
    assert config.binaries.ffmpeg == "/opt/ffmpeg/bin/ffmpeg"

def test_missing_file_gives_defaults(tmp_path):
    assert load_config(tmp_path / "absent.yaml") == AppConfig()

def test_empty_file_gives_defaults(tmp_path):
    f = tmp_path / "tapeshift.yaml"
    f.write_text("")
    assert load_config(f) == AppConfig()

def test_invalid_values_are_reported(tmp_path):
    f = tmp_path / "tapeshift.yaml"
    f.write_text("defaults:\n  crf: 99\n")
    with pytest.raises(InvalidConfig) as exc:
        load_config(f)
    assert exc.value.exit_code == 19
    assert exc.value.hints[0].startswith("defaults.crf:")

def test_broken_yaml(tmp_path):
    f = tmp_path / "tapeshift.yaml"
    f.write_text("defaults: [unclosed\n")
    with pytest.raises(InvalidConfig):
        load_config(f)

def test_non_mapping(tmp_path):
    f = tmp_path / "tapeshift.yaml"
    f.write_text("- just\n- a list\n")
    with pytest.raises(InvalidConfig):
        load_config(f)
