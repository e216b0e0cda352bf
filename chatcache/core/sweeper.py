from __future__ import annotations

import logging
from threading import Event, Thread

from chatcache.core.store import SessionStore

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """
    Periodically evicts expired sessions from a SessionStore.

    Runs on a daemon thread that waits on an Event between runs, so stop()
    interrupts the wait instead of sleeping out the interval.
    """

    def __init__(self, store: SessionStore, interval_seconds: float):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.store = store
        self.interval_seconds = interval_seconds
        self._stop = Event()
        self._thread: Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> int:
        removed = self.store.sweep_expired()
        if removed > 0:
            logger.info(f"Cleaned {removed} expired sessions. Active: {self.store.size()}")
        else:
            logger.debug("Sweep found no expired sessions.")
        return removed

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("Session sweep failed; retrying on next interval.")

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = Thread(target=self._run, name="session-sweeper", daemon=True)
        self._thread.start()
        logger.info(f"Session sweeper started (interval={self.interval_seconds}s, ttl={self.store.ttl_seconds}s)")

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Session sweeper stopped.")
