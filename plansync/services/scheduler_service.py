"""
Plan Sync Service
Sync Scheduler — decides when the sync pipeline runs.

Triggers:
    - mount:    once when a session starts viewing (start())
    - interval: every SYNC_INTERVAL_SECONDS on a daemon thread
    - manual:   refresh(), immediately, regardless of timer phase

All triggers are gated by SessionGate. The timer thread tears itself down
when the gate reports the session inactive or stale; stop() tears it down
explicitly. A pass already in flight is never cancelled.

The "syncing" flag is advisory: a manual refresh during a timer pass runs
concurrently, and the store's sequence guard keeps the newer pass.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from plansync.services.sync_service import SyncResult, SyncService

logger = logging.getLogger(__name__)


class SessionGate:
    """Gating input from the (external) authentication collaborator.

    A session is active while the flag is set and the last activity is
    more recent than ``timeout_seconds``.
    """

    def __init__(self, timeout_seconds: int = 1800, clock: Callable[[], float] = time.time) -> None:
        self.timeout_seconds = timeout_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._active = False
        self._last_activity: float | None = None

    def activate(self) -> None:
        with self._lock:
            self._active = True
            self._last_activity = self._clock()

    def touch(self, timestamp: float | None = None) -> None:
        with self._lock:
            self._last_activity = timestamp if timestamp is not None else self._clock()

    def deactivate(self) -> None:
        with self._lock:
            self._active = False

    def is_active(self) -> bool:
        with self._lock:
            if not self._active or self._last_activity is None:
                return False
            return (self._clock() - self._last_activity) <= self.timeout_seconds

    def to_dict(self) -> dict:
        with self._lock:
            last = self._last_activity
            active = self._active
        return {"active": self.is_active(), "flag": active, "last_activity": last}


class SyncScheduler:
    """Runs SyncService passes on mount, on an interval, and on demand."""

    def __init__(self, sync: SyncService, gate: SessionGate, interval_seconds: int = 300) -> None:
        self.sync = sync
        self.gate = gate
        self.interval_seconds = interval_seconds
        self._lock = threading.Lock()
        self._stop_event: threading.Event | None = None
        self._thread: threading.Thread | None = None

    # ── State ────────────────────────────────────────────────────────────

    @property
    def is_syncing(self) -> bool:
        return self.sync.is_syncing

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    # ── Triggers ─────────────────────────────────────────────────────────

    def start(self) -> SyncResult | None:
        """Mount: run once now, then keep running on the interval.

        Returns the mount pass result, or None when the session is inactive.
        """
        if not self.gate.is_active():
            logger.info("Scheduler start skipped: no active session")
            return None
        result = self.sync.run(trigger="mount")
        self._start_timer()
        return result

    def refresh(self) -> SyncResult | None:
        """Manual refresh. Returns None when the session is inactive."""
        if not self.gate.is_active():
            logger.info("Manual refresh skipped: no active session")
            return None
        return self.sync.run(trigger="manual")

    def stop(self) -> None:
        """Tear down the timer. An in-flight pass finishes on its own."""
        with self._lock:
            event, thread = self._stop_event, self._thread
            self._stop_event = None
            self._thread = None
        if event is not None:
            event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1)
        logger.info("Sync timer stopped")

    # ── Timer ────────────────────────────────────────────────────────────

    def _start_timer(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            event = threading.Event()
            thread = threading.Thread(
                target=self._loop, args=(event,), name="plansync-sync-timer", daemon=True,
            )
            self._stop_event = event
            self._thread = thread
        thread.start()
        logger.info("Sync timer started (every %ss)", self.interval_seconds)

    def _loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval_seconds):
            if not self.gate.is_active():
                logger.info("Session inactive; tearing down sync timer")
                with self._lock:
                    if self._stop_event is stop_event:
                        self._stop_event = None
                        self._thread = None
                return
            try:
                self.sync.run(trigger="interval")
            except Exception:
                logger.exception("Interval sync pass crashed")
