"""Microphone capture adapter."""

from __future__ import annotations

import logging
import threading
import time
from queue import Full, Queue
from typing import Any

from models import AudioFrame

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


def frame_level(indata: Any) -> float:
    """RMS level of an int16 block, scaled to 0..1."""
    samples = np.asarray(indata, dtype=np.float32)
    if samples.size == 0:
        return 0.0
    rms = float(np.sqrt(np.mean(samples ** 2)))
    return min(1.0, rms / 32768.0)


class SoundDeviceRecorder:
    """Pushes 16-bit PCM frames (with their RMS level) onto a queue.

    ``stop()`` always enqueues a ``None`` sentinel so a consumer blocked on
    the queue wakes up.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self.dropped_chunks = 0
        self._audio_queue: Queue[AudioFrame | None] | None = None

    @staticmethod
    def is_available() -> bool:
        return sd is not None and np is not None

    @property
    def running(self) -> bool:
        return self._running

    def start(self, audio_queue: Queue[AudioFrame | None]) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None or np is None:
                raise RuntimeError("sounddevice is not installed")
            self._audio_queue = audio_queue
            self.dropped_chunks = 0
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            try:
                self._stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype="int16",
                    blocksize=blocksize,
                    callback=self._on_audio,
                )
                self._stream.start()
            except Exception as exc:
                self._stream = None
                raise RuntimeError(f"microphone unavailable: {exc}") from exc
            self._running = True

    def stop(self) -> None:
        with self._lock:
            if self._running:
                self._running = False
                if self._stream is not None:
                    try:
                        self._stream.stop()
                        self._stream.close()
                    except Exception as exc:
                        logger.debug("closing input stream failed: %s", exc)
                    self._stream = None
                if self.dropped_chunks:
                    logger.debug("dropped %d audio chunks", self.dropped_chunks)
            self._emit_sentinel_if_needed()

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if not self._running or self._audio_queue is None:
            return
        if np is None:
            return
        payload = np.asarray(indata, dtype=np.int16).tobytes()
        frame = AudioFrame(
            pcm16_bytes=payload,
            sample_rate=self.sample_rate,
            channels=self.channels,
            timestamp_ms=int(time.time() * 1000),
            level=frame_level(indata),
        )
        try:
            self._audio_queue.put_nowait(frame)
        except Full:
            self.dropped_chunks += 1

    def _emit_sentinel_if_needed(self) -> None:
        if self._audio_queue is None:
            return
        try:
            self._audio_queue.put_nowait(None)
        except Full:
            pass
