"""
Time-windowed suppression of repeated refresh work at the session boundary
"""

import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class RefreshDebouncer:
    """
    Lets refresh work for a key run at most once per window

    A fingerprint of what the work would observe can be passed along; a repeat
    inside the window is only suppressed when its fingerprint equals the one of
    the last run, so work that follows a real change is never dropped.
    """

    def __init__(self, window_ms: int = 150, clock: Optional[Callable[[], float]] = None):
        """
        Args:
            window_ms: Suppression window in milliseconds; 0 never suppresses
            clock: Monotonic clock returning seconds, injectable for tests
        """
        self.window = max(0, window_ms) / 1000.0
        self._clock = clock or time.monotonic
        self._last_run: Dict[Hashable, Tuple[float, Any]] = {}

    def should_run(self, key: Hashable = None, fingerprint: Any = None) -> bool:
        """True (and records the run) unless key ran within the window with the same fingerprint"""
        now = self._clock()
        last = self._last_run.get(key)
        if last is not None:
            last_time, last_fingerprint = last
            if now - last_time < self.window and last_fingerprint == fingerprint:
                return False
        self._last_run[key] = (now, fingerprint)
        return True

    def run(self, key: Hashable, callback: Callable[[], None], fingerprint: Any = None) -> bool:
        """Run callback unless suppressed; returns whether it ran"""
        if not self.should_run(key, fingerprint):
            return False
        callback()
        return True

    def reset(self, key: Hashable = None):
        if key is None:
            self._last_run.clear()
        else:
            self._last_run.pop(key, None)
