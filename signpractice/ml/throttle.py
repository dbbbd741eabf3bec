import time
from typing import Callable, Optional


class InferenceThrottle:
    """
    Minimum wall-clock gap between classifier calls.
    Frames that arrive earlier are simply dropped by the caller.
    """

    def __init__(self, interval_s: float, clock: Callable[[], float] = time.monotonic):
        self.interval_s = max(0.0, float(interval_s))
        self._clock = clock
        self._last: Optional[float] = None

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    def reset(self, now: Optional[float] = None) -> None:
        # primed at session start: first call happens one interval later
        self._last = self._now(now)

    def ready(self, now: Optional[float] = None) -> bool:
        if self._last is None:
            return True
        return (self._now(now) - self._last) >= self.interval_s

    def mark(self, now: Optional[float] = None) -> None:
        self._last = self._now(now)

    @property
    def last(self) -> Optional[float]:
        return self._last
