"""Event-driven and periodic triggers for reconciliation passes."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from photofeed.index.reconciler import Reconciler, ReconcileStats

LOGGER = logging.getLogger(__name__)

UPLOAD_TRIGGER = "upload"
PERIODIC_TRIGGER = "periodic"


def on_upload(reconciler: Reconciler) -> ReconcileStats:
    """Handle one upload event."""
    return reconciler.run_pass(UPLOAD_TRIGGER)


class PeriodicTrigger:
    """Runs a reconciliation pass every ``interval`` seconds on a daemon thread.

    Catches objects whose upload event was missed.
    """

    def __init__(self, reconciler: Reconciler, interval: float) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.reconciler = reconciler
        self.interval = interval
        self.last_stats: Optional[ReconcileStats] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> ReconcileStats:
        self.last_stats = self.reconciler.run_pass(PERIODIC_TRIGGER)
        return self.last_stats

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="photofeed-periodic", daemon=True)
        self._thread.start()
        LOGGER.info("Periodic reconciliation every %.0fs", self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_forever(self) -> None:
        """Run ticks in the calling thread until :meth:`stop` is called."""
        self._stop.clear()
        self._run()

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception:  # pragma: no cover - run_pass already logs
                LOGGER.exception("Periodic reconciliation crashed")
            self._stop.wait(self.interval)
