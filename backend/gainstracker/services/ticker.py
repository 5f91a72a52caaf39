# gainstracker/services/ticker.py
from __future__ import annotations
import logging
import threading
from typing import Callable, Optional

log = logging.getLogger(__name__)


class SessionTicker:
    """
    Periodic callback on a daemon thread.

    At most one thread is live per ticker: ``arm()`` on an armed ticker does
    nothing, ``disarm()`` stops it. Each callback runs while holding ``lock``,
    so a caller that disarms under the same lock never sees a late tick.
    """

    def __init__(
        self,
        interval_seconds: float,
        on_tick: Callable[[], object],
        *,
        lock: Optional[threading.RLock] = None,
        name: str = "session-ticker",
    ):
        self.interval_seconds = interval_seconds
        self.on_tick = on_tick
        self.lock = lock if lock is not None else threading.RLock()
        self.name = name
        self._thread: Optional[threading.Thread] = None
        self._stop: Optional[threading.Event] = None

    @property
    def is_armed(self) -> bool:
        thread, stop = self._thread, self._stop
        return thread is not None and thread.is_alive() and not stop.is_set()

    def arm(self) -> bool:
        with self.lock:
            if self.is_armed:
                return True
            stop = threading.Event()
            thread = threading.Thread(target=self._run, args=(stop,), name=self.name, daemon=True)
            self._stop, self._thread = stop, thread
            thread.start()
            return True

    def disarm(self) -> None:
        # no join: disarm may be called from the ticking thread itself
        with self.lock:
            if self._stop is not None:
                self._stop.set()
            self._thread = self._stop = None

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval_seconds):
            with self.lock:
                if stop.is_set():
                    break
                try:
                    self.on_tick()
                except Exception:
                    log.exception("session tick failed")
