import pytest
from unittest.mock import MagicMock, patch
from tapeshift.infrastructure.devices import DeviceScanner, parse_audio_address

V4L2_LISTING = """\
USB Video: USB Video (usb-0000:00:14.0-2):
\t/dev/video2
\t/dev/video3
\t/dev/media1

Integrated Camera (usb-0000:00:14.0-8):
\t/dev/video0
"""

ARECORD_LISTING = """\
**** List of CAPTURE Hardware Devices ****
card 0: PCH [HDA Intel PCH], device 0: ALC257 Analog [ALC257 Analog]
  Subdevices: 1/1
  Subdevice #0: subdevice #0
card 1: MS2109 [MS2109], device 0: USB Audio [USB Audio]
  Subdevices: 1/1
  Subdevice #0: subdevice #0
"""


def _scanner(video=V4L2_LISTING, audio=ARECORD_LISTING):
    def fake_run(cmd, **kwargs):
        result = MagicMock()
        result.returncode = 0
        result.stdout = video if cmd[0] == "v4l2-ctl" else audio
        return result
    return fake_run


def test_video_devices():
    with patch("subprocess.run", side_effect=_scanner()):
        scanner = DeviceScanner()
        assert scanner.video_devices() == ["/dev/video2", "/dev/video3", "/dev/video0"]
        assert scanner.default_video_device("/dev/video9") == "/dev/video2"

def test_audio_devices():
    with patch("subprocess.run", side_effect=_scanner()):
        scanner = DeviceScanner()
        assert scanner.audio_devices() == [(0, 0), (1, 0)]
        assert scanner.default_audio_device("hw:9,9") == "hw:0,0"

@pytest.mark.parametrize("address,exists", [
    ("hw:1,0", True),
    ("plughw:0,0", True),
    ("hw:2,0", False),
    ("hw:1", False),
    ("default", False),
])
def test_audio_device_exists(address, exists):
    with patch("subprocess.run", side_effect=_scanner()):
        assert DeviceScanner().audio_device_exists(address) is exists

def test_missing_tools_fall_back():
    with patch("subprocess.run", side_effect=FileNotFoundError("v4l2-ctl")):
        scanner = DeviceScanner()
        assert scanner.video_listing() == ""
        assert scanner.default_video_device("/dev/video2") == "/dev/video2"
        assert scanner.default_audio_device("hw:1,0") == "hw:1,0"
        assert not scanner.audio_device_exists("hw:1,0")

def test_parse_audio_address():
    assert parse_audio_address("hw:3,1") == (3, 1)
    assert parse_audio_address("hw:3,1,2") is None
