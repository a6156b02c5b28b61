# Clocks for time-based transitions
# Services never read ambient time directly; a clock is injected.

import threading
import time


class SystemClock:
    """Wall clock in whole epoch seconds."""

    def now(self) -> int:
        return int(time.time())


class FixedClock:
    """Manually driven clock for tests and replays. Never moves backwards."""

    def __init__(self, start: int = 0):
        self._now = int(start)
        self._lock = threading.Lock()

    def now(self) -> int:
        return self._now

    def set(self, value: int) -> None:
        with self._lock:
            if value < self._now:
                raise ValueError(f"Clock cannot move backwards ({value} < {self._now})")
            self._now = int(value)

    def advance(self, seconds: int) -> int:
        with self._lock:
            if seconds < 0:
                raise ValueError("Clock cannot move backwards")
            self._now += int(seconds)
            return self._now


system_clock = SystemClock()


def get_clock():
    """FastAPI dependency returning the process clock. Override in tests."""
    return system_clock
