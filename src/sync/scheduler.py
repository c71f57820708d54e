"""
src/sync/scheduler.py

Runs the synchronizer once immediately and then on a fixed interval, in a daemon thread.

The next run is armed only after the previous one has completed, so runs never overlap.
An unexpected error in a pass is logged and the loop keeps going.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from .synchronizer import Synchronizer

logger = logging.getLogger(__name__)


class SyncScheduler:

    def __init__(self, synchronizer: Synchronizer, *, interval_seconds: float = 60, run_immediately: bool = True) -> None:
        self.synchronizer = synchronizer
        self.interval_seconds = interval_seconds
        self.run_immediately = run_immediately
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_alive:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="erp-sync", daemon=True)
        self._thread.start()
        logger.info("Sync scheduler started (interval=%ss)", self.interval_seconds)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        logger.info("Sync scheduler stopped")

    def _run(self) -> None:
        if not self.run_immediately and self._stop.wait(self.interval_seconds):
            return
        while not self._stop.is_set():
            self.run_once()
            if self._stop.wait(self.interval_seconds):
                return

    def run_once(self) -> int:
        try:
            return self.synchronizer.sync()
        except Exception:
            logger.exception("Sync pass failed; will retry on next interval")
            return 0
