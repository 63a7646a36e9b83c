from __future__ import annotations

from typing import Optional


class CooldownGate:
    """Process-wide rate limit for spoken warnings.

    A single timestamp shared by every anchor: once a warning goes out, no
    other warning may be emitted until more than window_s has passed.
    """

    def __init__(self, window_s: float = 3.0):
        self.window_s = window_s
        self._last: Optional[float] = None

    @property
    def last_emission(self) -> Optional[float]:
        return self._last

    def is_open(self, now: float) -> bool:
        return self._last is None or now - self._last > self.window_s

    def try_consume(self, now: float) -> bool:
        """Consume the gate if it is open; True when the caller may emit."""
        if not self.is_open(now):
            return False
        self._last = now
        return True

    def reset(self) -> None:
        self._last = None
