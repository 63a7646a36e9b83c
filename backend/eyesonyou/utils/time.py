from __future__ import annotations

import datetime as dt
import time
from typing import Callable

# Seconds on a monotonic scale; every engine timestamp (cooldown, motion
# ticks, human confirmation) is taken from one of these.
Clock = Callable[[], float]

monotonic: Clock = time.monotonic


def utc_now() -> dt.datetime:
    """Wall-clock time for persisted rows (toggles, alert history)."""
    return dt.datetime.now(dt.timezone.utc)
