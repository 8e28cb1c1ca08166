import logging
import signal
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List

logger = logging.getLogger(__name__)


class CancellationToken:
    """Records a stop request and notifies whoever is currently registered to act on it."""

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.RLock()
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def has_listeners(self) -> bool:
        with self._lock:
            return bool(self._callbacks)

    def cancel(self):
        self._event.set()
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback()

    @contextmanager
    def on_cancel(self, callback: Callable[[], None]) -> Iterator[None]:
        """Registers callback for the duration of the block."""
        with self._lock:
            self._callbacks.append(callback)
        try:
            yield
        finally:
            with self._lock:
                self._callbacks.remove(callback)


class SignalGuard:
    """
    Routes SIGINT/SIGTERM into a CancellationToken while active.

    While a capture session listens on the token the signal only cancels it,
    so the supervisor can stop and reap its children. Outside a session the
    handler raises KeyboardInterrupt to unwind the mainline through its cleanup.
    """

    SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(self, token: CancellationToken):
        self.token = token
        self._previous: Dict[int, object] = {}

    def _handle(self, signum, frame):
        logger.info(f"Received signal {signal.Signals(signum).name}")
        listening = self.token.has_listeners
        self.token.cancel()
        if not listening:
            raise KeyboardInterrupt

    def __enter__(self) -> "SignalGuard":
        for sig in self.SIGNALS:
            self._previous[sig] = signal.signal(sig, self._handle)
        return self

    def __exit__(self, exc_type, exc, tb):
        for sig, handler in self._previous.items():
            signal.signal(sig, handler)
        self._previous.clear()
        return False
