"""
Shutdown Signal
===============

Turns SIGINT / SIGTERM into a single-fire cancellation event.

  First signal  → event is set, the wait unwinds and the worker pod is
                  still deleted
  Second signal → exit(1) immediately, without cleanup (force_exit=True)

The handler only flips a threading.Event. Code running on the main thread
must poll is_set() rather than block in wait(): a handler that fires while
the main thread holds the event's internal lock would deadlock on set().
"""

from __future__ import annotations
import logging
import os
import signal
import threading
from typing import Iterable

log = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownSignal:
    def __init__(self, signals: Iterable[int] = DEFAULT_SIGNALS, force_exit: bool = True):
        self.signals    = tuple(signals)
        self.force_exit = force_exit
        self._event     = threading.Event()
        self._previous: dict[int, object] = {}

    # ─── Arming ───────────────────────────────────────────────────────────────

    def arm(self) -> "ShutdownSignal":
        """Install handlers. Must be called from the main thread."""
        for signum in self.signals:
            self._previous[signum] = signal.signal(signum, self._handle)
        return self

    def disarm(self):
        """Restore whatever handlers were installed before arm()."""
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def __enter__(self) -> "ShutdownSignal":
        return self.arm()

    def __exit__(self, *exc):
        self.disarm()

    # ─── Event ────────────────────────────────────────────────────────────────

    def trigger(self):
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds; True if cancelled. Background threads only."""
        return self._event.wait(timeout)

    def _handle(self, signum, frame):
        sig_name = signal.Signals(signum).name
        if self._event.is_set() and self.force_exit:
            log.warning(f"[signal] Received second {sig_name} — exiting without cleanup")
            os._exit(1)
        log.info(f"[signal] Received {sig_name} — cancelling")
        self.trigger()
