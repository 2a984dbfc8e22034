"""Timer scheduling backed by ``threading.Timer``."""

from __future__ import annotations

import threading
from typing import Callable


class ThreadingScheduler:
    """Runs each callback once on a daemon timer thread after ``delay_s``."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(max(0.0, delay_s), callback)
        timer.daemon = True
        timer.start()
        return timer
