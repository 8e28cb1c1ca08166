import io
import os
import pytest
from unittest.mock import patch
from tapeshift.domain.errors import ChannelCreateFailed
from tapeshift.infrastructure.channel import StreamTee, TransientChannel

def test_channel_exists_only_inside_block():
    with TransientChannel() as path:
        assert path.exists()
        assert path.is_fifo()
        directory = path.parent
    assert not directory.exists()

def test_channel_removed_on_error():
    with pytest.raises(ValueError):
        with TransientChannel() as path:
            raise ValueError("boom")
    assert not path.parent.exists()

def test_channel_create_failure():
    with patch("os.mkfifo", side_effect=OSError(1, "Operation not permitted")):
        with pytest.raises(ChannelCreateFailed) as exc:
            with TransientChannel():
                pass
    assert exc.value.exit_code == 17

def test_tee_without_reader_keeps_the_file_leg(tmp_path):
    data = os.urandom(StreamTee.CHUNK_SIZE * 3 + 17)
    sink = io.BytesIO()
    tee = StreamTee(io.BytesIO(data), sink, tmp_path / "missing.fifo", reader_alive=lambda: False)

    tee.start()
    tee.join()

    assert sink.getvalue() == data
    assert tee.bytes_written == len(data)
    assert tee.preview_dropped
    assert tee.error is None

def test_tee_gives_up_when_reader_never_attaches(tmp_path):
    fifo = tmp_path / "preview.fifo"
    os.mkfifo(fifo)
    sink = io.BytesIO()
    tee = StreamTee(io.BytesIO(b"x" * 1000), sink, fifo, reader_alive=lambda: True, open_grace=-1.0)

    tee.start()
    tee.join()

    assert sink.getvalue() == b"x" * 1000
    assert tee.preview_dropped

def test_tee_records_sink_errors_and_drains(tmp_path):
    class FullDisk(io.BytesIO):
        def write(self, chunk):
            raise OSError(28, "No space left on device")

    source = io.BytesIO(b"y" * (StreamTee.CHUNK_SIZE * 2))
    tee = StreamTee(source, FullDisk(), tmp_path / "missing.fifo", reader_alive=lambda: False)

    tee.start()
    tee.join()

    assert isinstance(tee.error, OSError)
    assert source.read() == b""
