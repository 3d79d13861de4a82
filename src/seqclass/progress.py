# src/seqclass/progress.py
from __future__ import annotations

import sys
import time
from itertools import cycle

_REDRAW_EVERY = 0.05   # seconds
_BAR_WIDTH = 24


def _bar(frac: float) -> str:
    filled = int(frac * _BAR_WIDTH)
    return "#" * filled + "-" * (_BAR_WIDTH - filled)


class Progress:
    """Single-line stderr bar shown while a quiet window goes to a file."""

    def __init__(self, total: int, *, enabled: bool = True, stream=None):
        self.total = max(1, int(total))
        self.enabled = enabled
        self.stream = stream or sys.stderr
        self._spinner = cycle("|/-\\")
        self._drawn_at = 0.0
        self._width = 0

    def update(self, done: int, label: str = "") -> None:
        if not self.enabled:
            return
        now = time.perf_counter()
        if now - self._drawn_at < _REDRAW_EVERY and done < self.total:
            return
        self._drawn_at = now
        frac = min(max(done / self.total, 0.0), 1.0)
        line = f"[{next(self._spinner)}] [{_bar(frac)}] {int(frac * 100):3d}%  {label[:50]}"
        self._width = max(self._width, len(line))
        self.stream.write("\r" + line)
        self.stream.flush()

    def done(self) -> None:
        if not self.enabled:
            return
        self.stream.write("\r" + " " * self._width + "\r")
        self.stream.flush()
