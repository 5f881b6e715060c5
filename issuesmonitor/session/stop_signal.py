"""Stop signal - the event that ends a session."""

import signal
import threading
import time
from typing import Callable, Dict, Iterable, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class StopSignal:
    """
    One-shot stop event.

    The first call to fire() records the stop instant from a monotonic
    clock and releases wait(); later calls are ignored, so exactly one
    termination ends a session.
    install() routes SIGINT/SIGTERM to fire(); it must be called from the
    main thread.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, signals: Iterable[int] = DEFAULT_SIGNALS):
        self._clock = clock
        self._signals = tuple(signals)
        self._event = threading.Event()
        self._lock = threading.RLock()
        self._previous: Dict[int, object] = {}
        self.stopped_at: Optional[float] = None

    def install(self) -> None:
        for signum in self._signals:
            self._previous[signum] = signal.signal(signum, self._handle)

    def restore(self) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def fire(self) -> bool:
        """Record the stop instant. Returns False if already stopped."""
        with self._lock:
            if self._event.is_set():
                return False
            self.stopped_at = self._clock()
            self._event.set()
        return True

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self) -> float:
        """Block until fired; returns the stop instant."""
        # Short waits keep the main thread responsive to signal delivery
        while not self._event.wait(0.5):
            pass
        return self.stopped_at

    def _handle(self, signum, frame) -> None:
        if self.fire():
            logger.info(f"Received {signal.Signals(signum).name}, stopping session")
