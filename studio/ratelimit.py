"""Fixed-window submit gate."""

from __future__ import annotations

import time
from typing import Callable, Optional

Clock = Callable[[], float]


class Debouncer:
    """Accept at most one attempt per ``window`` seconds.

    The window starts when an attempt is accepted, so a slow network call
    does not extend it and a fast one does not shorten it.
    """

    def __init__(self, window: float, clock: Clock = time.monotonic) -> None:
        self._window = window
        self._clock = clock
        self._last: Optional[float] = None

    @property
    def window(self) -> float:
        return self._window

    def remaining(self) -> float:
        """Seconds until the next attempt would be accepted."""
        if self._last is None:
            return 0.0
        return max(0.0, self._window - (self._clock() - self._last))

    def try_acquire(self) -> bool:
        now = self._clock()
        if self._last is not None and now - self._last < self._window:
            return False
        self._last = now
        return True

    def reset(self) -> None:
        self._last = None
