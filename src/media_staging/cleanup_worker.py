"""Background thread that periodically sweeps old staged media."""

import logging
import threading
from datetime import timedelta
from typing import Optional

from src.media_staging.staging import TemporaryMediaStaging

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 3600.0
DEFAULT_MAX_AGE_SECONDS = 86400.0


class TemporaryMediaCleanupWorker:
    """Runs ``sweep_older_than`` on a fixed interval until stopped.

    The worker waits one interval, sweeps, and repeats. A failing sweep is
    logged and does not end the loop. Stopping takes effect between sweeps;
    a sweep in progress runs to completion.

    Example:
        >>> worker = TemporaryMediaCleanupWorker(staging, interval_seconds=3600)
        >>> worker.start()
        >>> ...
        >>> worker.stop()
    """

    def __init__(
        self,
        staging: TemporaryMediaStaging,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS,
    ):
        self.staging = staging
        self.interval_seconds = interval_seconds
        self.max_age = timedelta(seconds=max_age_seconds)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sweep thread (no-op if already running)."""
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="temp-media-cleanup",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the thread to stop and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def run_once(self) -> int:
        """Sweep immediately on the calling thread.

        Returns:
            Number of staged files removed
        """
        logger.info("Running temporary media cleanup")
        removed = self.staging.sweep_older_than(self.max_age)
        logger.info("Temporary media cleanup completed")
        return removed

    def _run(self) -> None:
        logger.info("Temporary media cleanup worker starting")
        while not self._stop.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("Error during temporary media cleanup")
        logger.info("Temporary media cleanup worker stopped")
