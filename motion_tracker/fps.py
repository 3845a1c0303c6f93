import time


class FPSCounter:
    """
    Rolling frame-rate counter.

    The rate is recomputed every ``interval`` ticks from the time the last
    ``interval`` ticks took, so a stalled tracker keeps reporting the rate
    of its last active window.
    """

    def __init__(self, interval: int = 5) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self._count = 0
        self._window_start = None
        self._fps = 0.0

    def tick(self) -> None:
        now = time.perf_counter()
        if self._window_start is None:
            self._window_start = now
            return
        self._count += 1
        if self._count >= self.interval:
            elapsed = now - self._window_start
            self._fps = self._count / elapsed if elapsed > 0 else 0.0
            self._count = 0
            self._window_start = now

    @property
    def fps(self) -> float:
        return self._fps

    def reset(self) -> None:
        self._count = 0
        self._window_start = None
        self._fps = 0.0
