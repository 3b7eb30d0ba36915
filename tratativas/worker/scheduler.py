import threading

from tratativas.documents.cleanup import CleanupSweeper
from tratativas.logging.logger import Log


class CleanupScheduler:
    """Sweep loop: sweep -> wait interval -> sweep, on a background thread.

    The first sweep runs immediately on start. The next wait only begins after
    a sweep returns, so sweeps never overlap.
    """

    def __init__(self, sweeper: CleanupSweeper, interval_seconds: int, log: Log) -> None:
        self._sweeper = sweeper
        self._interval_seconds = interval_seconds
        self._log = log
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run, name="tratativas-cleanup", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = 10.0) -> None:
        """Signal the loop to exit and wait for the current sweep to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run(self, max_sweeps: int | None = None) -> None:
        """Main sweep loop. Runs until stop() is called.

        If max_sweeps is set, return after that many sweeps (for testing).
        """
        self._log.info(
            f"Cleanup scheduler started, sweeping every {self._interval_seconds}s"
        )
        sweeps = 0
        while not self._stop.is_set():
            self._run_once()
            sweeps += 1
            if max_sweeps is not None and sweeps >= max_sweeps:
                break
            self._stop.wait(self._interval_seconds)
        self._log.info("Cleanup scheduler stopped")

    def _run_once(self) -> None:
        """Run one sweep. Errors are logged so the loop keeps going."""
        try:
            self._sweeper.sweep()
        except Exception as exc:
            self._log.warning(f"Cleanup sweep failed, will retry next interval: {exc}")
