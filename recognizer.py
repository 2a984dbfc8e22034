"""Continuous speech engine built on the microphone recorder and DashScope ASR.

The qwen3-asr-flash model recognises complete audio clips, so the engine
splits live microphone audio into utterances: frames above an energy
threshold start an utterance, and a trailing silence gap ends it. Each
utterance is converted to WAV and streamed to the model; streamed chunks
surface as partial results and the last text as the final result.

Events follow the usual continuous-recognition shape: ``partial``/``final``
results, ``speech`` while voice is heard or an utterance is being
recognised, ``error`` with a raw code, ``audio_end`` when capture stops and
``end`` once the session is over. ``abort()`` reports ``error(aborted)``
before ``end``. ``stop()`` and ``abort()`` return without waiting; the
worker is joined by the next ``start()``.
"""

from __future__ import annotations

import base64
import io
import logging
import os
import threading
import time
import wave
from queue import Empty, Queue
from typing import Callable, Optional

from errors import (
    ENGINE_ABORTED,
    ENGINE_AUDIO_CAPTURE,
    ENGINE_NETWORK,
    ENGINE_NOT_ALLOWED,
    ENGINE_PROTOCOL,
)
from models import AudioFrame, RecognitionEvent, RecognitionKind
from recorder import SoundDeviceRecorder

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

logger = logging.getLogger(__name__)

EventCallback = Callable[[RecognitionEvent], None]


def _pcm_to_wav_base64(
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> str:
    """Convert raw PCM bytes to a base64-encoded WAV string."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return base64.b64encode(buf.getvalue()).decode("ascii")


def _frame_seconds(frame: AudioFrame) -> float:
    bytes_per_second = 2 * max(1, frame.channels) * max(1, frame.sample_rate)
    return len(frame.pcm16_bytes) / bytes_per_second


class _Utterance:
    def __init__(self) -> None:
        self.pcm = bytearray()
        self.voiced_s = 0.0
        self.silence_s = 0.0
        self.sample_rate = 16000
        self.channels = 1

    def add(self, frame: AudioFrame, voiced: bool) -> None:
        self.pcm.extend(frame.pcm16_bytes)
        self.sample_rate = frame.sample_rate
        self.channels = frame.channels
        seconds = _frame_seconds(frame)
        if voiced:
            self.voiced_s += seconds
            self.silence_s = 0.0
        else:
            self.silence_s += seconds


class DashscopeSpeechEngine:
    def __init__(
        self,
        api_key: str = "",
        model: str = "qwen3-asr-flash",
        language: str = "en-US",
        recorder: Optional[SoundDeviceRecorder] = None,
        request_timeout_s: float = 10.0,
        speech_threshold: float = 0.02,
        silence_gap_s: float = 0.8,
        min_speech_s: float = 0.2,
        max_session_s: Optional[float] = 60.0,
        queue_maxsize: int = 200,
        activity_interval_s: float = 0.25,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._language = language.split("-")[0].lower() if language else ""
        self._recorder = recorder or SoundDeviceRecorder()
        self._request_timeout_s = request_timeout_s
        self._speech_threshold = speech_threshold
        self._silence_gap_s = silence_gap_s
        self._min_speech_s = min_speech_s
        self._max_session_s = max_session_s
        self._queue_maxsize = queue_maxsize
        self._activity_interval_s = activity_interval_s
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._abort_event = threading.Event()

    def is_supported(self) -> bool:
        return dashscope is not None and self._recorder.is_available()

    def start(self, on_event: EventCallback) -> None:
        with self._lock:
            self._join_worker()
            if self._thread is not None and self._thread.is_alive():
                raise RuntimeError("recognition already started")
            audio_queue: Queue[AudioFrame | None] = Queue(maxsize=self._queue_maxsize)
            self._stop_event.clear()
            self._abort_event.clear()
            self._thread = threading.Thread(
                target=self._worker, args=(audio_queue, on_event), daemon=True
            )
            self._thread.start()

    def stop(self) -> None:
        self._terminate(self._stop_event)

    def abort(self) -> None:
        self._terminate(self._abort_event)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _terminate(self, event: threading.Event) -> None:
        thread = self._thread
        if thread is None or not thread.is_alive():
            return
        # signal only, start() joins the finished worker
        event.set()
        self._recorder.stop()

    def _join_worker(self) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread() and thread.is_alive():
            thread.join(timeout=0.5)

    def _worker(self, audio_queue: Queue[AudioFrame | None], on_event: EventCallback) -> None:
        try:
            self._recorder.start(audio_queue)
        except RuntimeError as exc:
            logger.warning("microphone could not be opened: %s", exc)
            on_event(self._error_event(ENGINE_AUDIO_CAPTURE, str(exc)))
            on_event(RecognitionEvent(kind=RecognitionKind.END.value))
            return
        started = time.monotonic()
        last_activity = float("-inf")
        utterance = _Utterance()
        while not (self._stop_event.is_set() or self._abort_event.is_set()):
            if self._max_session_s and time.monotonic() - started >= self._max_session_s:
                logger.debug("capture limit reached after %.1fs", self._max_session_s)
                break
            try:
                frame = audio_queue.get(timeout=0.1)
            except Empty:
                continue
            if frame is None:  # Sentinel
                break
            voiced = frame.level >= self._speech_threshold
            if voiced and time.monotonic() - last_activity >= self._activity_interval_s:
                last_activity = time.monotonic()
                on_event(RecognitionEvent(kind=RecognitionKind.SPEECH.value))
            if not voiced and not utterance.pcm:
                continue
            utterance.add(frame, voiced)
            if utterance.silence_s >= self._silence_gap_s:
                self._finish_utterance(utterance, on_event)
                utterance = _Utterance()

        self._recorder.stop()
        if self._abort_event.is_set():
            on_event(RecognitionEvent(kind=RecognitionKind.ERROR.value, code=ENGINE_ABORTED))
        else:
            self._finish_utterance(utterance, on_event)
            on_event(RecognitionEvent(kind=RecognitionKind.AUDIO_END.value))
        on_event(RecognitionEvent(kind=RecognitionKind.END.value))

    def _finish_utterance(self, utterance: _Utterance, on_event: EventCallback) -> None:
        if utterance.voiced_s < self._min_speech_s:
            return
        # recognition of a finished utterance still counts as activity
        on_event(RecognitionEvent(kind=RecognitionKind.SPEECH.value))
        wav_b64 = _pcm_to_wav_base64(bytes(utterance.pcm), utterance.sample_rate, utterance.channels)
        self._recognize_stream(wav_b64, on_event)

    def _recognize_stream(self, wav_base64: str, on_event: EventCallback) -> None:  # noqa: C901
        """Send one utterance to dashscope and stream partial/final results."""
        if dashscope is None:
            on_event(self._error_event(ENGINE_PROTOCOL, "dashscope is not installed"))
            return

        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            on_event(self._error_event(ENGINE_NOT_ALLOWED, "No API key configured"))
            return

        asr_options = {"enable_itn": False}
        if self._language:
            asr_options["language"] = self._language
        try:
            response = dashscope.MultiModalConversation.call(
                api_key=api_key,
                model=self._model,
                messages=[
                    {"role": "system", "content": [{"text": ""}]},
                    {"role": "user", "content": [{"audio": wav_base64}]},
                ],
                result_format="message",
                asr_options=asr_options,
                stream=True,
                timeout=self._request_timeout_s,
            )
        except Exception as exc:
            on_event(self._to_error_event(exc))
            return

        latest_text = ""
        try:
            for chunk in response:
                if self._abort_event.is_set():
                    return
                text = self._extract_text(chunk)
                if text:
                    latest_text = text
                    on_event(RecognitionEvent(kind=RecognitionKind.PARTIAL.value, text=text))
        except Exception as exc:
            on_event(self._to_error_event(exc))
            return

        if latest_text:
            on_event(RecognitionEvent(kind=RecognitionKind.FINAL.value, text=latest_text))

    def _extract_text(self, chunk: object) -> str:
        """Pull text from a dashscope streaming chunk dict."""
        if isinstance(chunk, dict):
            output = chunk.get("output", {})
            choices = output.get("choices", [])
            if not choices:
                return ""
            message = choices[0].get("message", {})
            content = message.get("content", [])
            if not content:
                return ""
            value = content[0]
            if isinstance(value, dict):
                return str(value.get("text", ""))
        return ""

    def _error_event(self, code: str, message: str) -> RecognitionEvent:
        return RecognitionEvent(kind=RecognitionKind.ERROR.value, code=code, message=message)

    def _to_error_event(self, exc: Exception) -> RecognitionEvent:
        """Map an SDK/network exception to a raw engine error code."""
        message = str(exc)
        low = message.lower()
        if "401" in low or "403" in low or "auth" in low or "api key" in low:
            code = ENGINE_NOT_ALLOWED
        elif "timeout" in low or "network" in low or "connection" in low:
            code = ENGINE_NETWORK
        else:
            code = ENGINE_PROTOCOL
        return self._error_event(code, message)
