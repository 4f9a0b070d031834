from __future__ import annotations

"""
Time oracle for the session orchestrator.

Times are POSIX milliseconds. `wait_until` is the single timed suspension
point of a governance cycle and is cancellable through a threading.Event:
it returns True once the target time is reached, False if cancelled first.
"""

import threading
import time
from typing import Optional


def _now_ms() -> int:
    return int(time.time() * 1000)


class SystemClock:
    def __init__(self, poll_interval_sec: float = 0.5) -> None:
        self.poll_interval_sec = float(poll_interval_sec)

    def now_ms(self) -> int:
        return _now_ms()

    def wait_until(self, target_ms: int, cancel: Optional[threading.Event] = None) -> bool:
        stop = cancel or threading.Event()
        while True:
            remaining = (int(target_ms) - self.now_ms()) / 1000.0
            if remaining < 0:
                return True
            if stop.wait(min(remaining, self.poll_interval_sec) + 0.001):
                return False


class ManualClock:
    """
    Deterministic clock for tests and simulations. `wait_until` jumps the
    clock forward instead of sleeping.
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._now = int(start_ms)
        self._lock = threading.Lock()

    def now_ms(self) -> int:
        with self._lock:
            return self._now

    def set(self, ms: int) -> None:
        with self._lock:
            self._now = int(ms)

    def advance(self, delta_ms: int) -> int:
        with self._lock:
            self._now += int(delta_ms)
            return self._now

    def wait_until(self, target_ms: int, cancel: Optional[threading.Event] = None) -> bool:
        if cancel is not None and cancel.is_set():
            return False
        with self._lock:
            # strictly after the deadline, matching SystemClock
            self._now = max(self._now, int(target_ms) + 1)
        return True
