"""Debounced buffer for finalized speech segments."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from interfaces import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

FlushCallback = Callable[[str], None]


class TranscriptAccumulator:
    """Collects final fragments and hands the whole buffer over once speech pauses.

    Every ``append`` restarts the debounce window. The flush callback runs
    outside the internal lock so it may call back into the accumulator.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_flush: FlushCallback,
        debounce_s: float = 0.5,
    ) -> None:
        self._scheduler = scheduler
        self._on_flush = on_flush
        self._debounce_s = debounce_s
        self._lock = threading.Lock()
        self._buffer = ""
        self._generation = 0
        self._timer: Optional[TimerHandle] = None

    @property
    def pending(self) -> str:
        return self._buffer

    def append(self, text: str) -> None:
        text = text.strip()
        if not text:
            return
        with self._lock:
            self._buffer = f"{self._buffer} {text}".strip()
            self._generation += 1
            generation = self._generation
            self._cancel_timer()
            self._timer = self._scheduler.call_later(
                self._debounce_s, lambda: self._on_timer(generation)
            )

    def flush(self) -> None:
        """Drain immediately, skipping the rest of the debounce window."""
        text = self._drain()
        if text:
            self._on_flush(text)

    def clear(self) -> None:
        self._drain()

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
        self.flush()

    def _drain(self) -> str:
        with self._lock:
            text = self._buffer
            self._buffer = ""
            self._generation += 1
            self._cancel_timer()
            return text

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
