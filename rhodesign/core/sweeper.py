# File: rhodesign/core/sweeper.py

import threading

from rhodesign.logging_config import configure_logging

logger = configure_logging("rhodesign.sweeper", "rhodesign.log")


class SessionSweeper:
    """Background thread that periodically removes expired signing sessions."""

    def __init__(self, store, interval_seconds: float):
        self.store = store
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="session-sweeper", daemon=True)
        self._thread.start()
        logger.info(f"Session sweeper started (every {self.interval_seconds}s)")

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> int:
        try:
            return self.store.sweep_expired()
        except Exception:
            logger.exception("Session sweep failed")
            return 0

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.run_once()
