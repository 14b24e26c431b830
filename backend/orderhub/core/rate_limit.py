from __future__ import annotations

import time
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable


@dataclass
class Throttle:
    """Spaces outbound calls so a burst never exceeds a per-minute quota.

    ``wait()`` blocks until the next call slot is free. The interval is derived
    from the quota, so 100 requests per minute means 0.6 seconds between calls.
    """

    requests_per_minute: int
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep
    _next_slot: float | None = field(default=None, init=False, repr=False)
    _lock: Lock = field(default_factory=Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")

    @property
    def interval(self) -> float:
        return 60.0 / float(self.requests_per_minute)

    def wait(self) -> float:
        with self._lock:
            now = self.clock()
            if self._next_slot is None or self._next_slot <= now:
                self._next_slot = now + self.interval
                return 0.0
            delay = self._next_slot - now
            self._next_slot += self.interval
        self.sleep(delay)
        return delay

    def reset(self) -> None:
        with self._lock:
            self._next_slot = None
