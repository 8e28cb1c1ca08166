import errno
import os
import shutil
import tempfile
import threading
import time
import logging
from pathlib import Path
from typing import BinaryIO, Callable, Optional
from tapeshift.domain.errors import ChannelCreateFailed


class TransientChannel:
    """A named pipe in a private temporary directory that exists only inside the with-block."""

    def __init__(self, name: str = "preview.fifo"):
        self.name = name
        self.path: Optional[Path] = None
        self._dir: Optional[Path] = None
        self.logger = logging.getLogger(__name__)

    def __enter__(self) -> Path:
        try:
            self._dir = Path(tempfile.mkdtemp(prefix="tapeshift-"))
            self.path = self._dir / self.name
            os.mkfifo(self.path)
        except OSError as e:
            self.remove()
            raise ChannelCreateFailed(f"Failed to create the preview pipe: {e}")
        self.logger.debug(f"Created preview pipe {self.path}")
        return self.path

    def __exit__(self, exc_type, exc, tb):
        self.remove()
        return False

    def remove(self):
        if self._dir is not None:
            shutil.rmtree(self._dir, ignore_errors=True)
            self.logger.debug(f"Removed preview pipe directory {self._dir}")
        self._dir = None


class StreamTee:
    """
    Copies a byte stream to a file and, best effort, to a named pipe.

    Every chunk is persisted before it is offered to the pipe. The pipe leg is
    dropped if its reader does not attach within open_grace seconds, dies, or
    closes its end; the file leg keeps going until the source hits EOF.
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        pipe_path: Path,
        reader_alive: Callable[[], bool],
        open_grace: float = 10.0,
    ):
        self.source = source
        self.sink = sink
        self.pipe_path = pipe_path
        self.reader_alive = reader_alive
        self.open_grace = open_grace
        self.bytes_written = 0
        self.preview_dropped = False
        self.error: Optional[Exception] = None
        self.logger = logging.getLogger(__name__)
        self._thread: Optional[threading.Thread] = None
        self._pipe_fd: Optional[int] = None
        self._deadline = 0.0

    def _try_attach(self):
        """One non-blocking attempt to open the pipe for writing."""
        if not self.reader_alive() or time.monotonic() > self._deadline:
            self.logger.warning("Preview did not attach to the pipe, continuing without it")
            self.preview_dropped = True
            return
        try:
            fd = os.open(self.pipe_path, os.O_WRONLY | os.O_NONBLOCK)
        except OSError as e:
            if e.errno != errno.ENXIO:
                self.logger.warning(f"Cannot open the preview pipe, continuing without it: {e}")
                self.preview_dropped = True
            return
        os.set_blocking(fd, True)
        self._pipe_fd = fd

    def _drop_pipe(self, reason: str):
        self.logger.warning(f"Preview leg dropped: {reason}")
        os.close(self._pipe_fd)
        self._pipe_fd = None
        self.preview_dropped = True

    def _write_pipe(self, chunk: bytes):
        view = memoryview(chunk)
        while view:
            written = os.write(self._pipe_fd, view)
            view = view[written:]

    def _drain(self):
        """Keeps reading so the encoder never blocks on a full stdout pipe."""
        try:
            for _ in iter(lambda: self.source.read1(self.CHUNK_SIZE), b""):
                pass
        except OSError as e:
            self.logger.debug(f"Stopped draining the capture stream: {e}")

    def _run(self):
        self._deadline = time.monotonic() + self.open_grace
        try:
            for chunk in iter(lambda: self.source.read1(self.CHUNK_SIZE), b""):
                self.sink.write(chunk)
                self.bytes_written += len(chunk)

                if self._pipe_fd is None and not self.preview_dropped:
                    self._try_attach()
                if self._pipe_fd is not None:
                    try:
                        self._write_pipe(chunk)
                    except BrokenPipeError:
                        self._drop_pipe("preview closed the pipe")
            self.sink.flush()
        except OSError as e:
            self.error = e
            self.logger.error(f"Copying the capture stream failed after {self.bytes_written} bytes: {e}")
            self._drain()
        finally:
            if self._pipe_fd is not None:
                os.close(self._pipe_fd)
                self._pipe_fd = None

    def start(self):
        self._thread = threading.Thread(target=self._run, name="stream-tee", daemon=True)
        self._thread.start()

    def join(self):
        if self._thread:
            self._thread.join()
            self._thread = None
