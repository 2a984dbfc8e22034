"""State-machine wrapper around one continuous speech-recognition engine."""

from __future__ import annotations

import logging
import threading
import time
from functools import partial
from typing import Callable, Optional

from errors import ENGINE_FAILURE, FATAL, TRANSIENT, classify_engine_error, message_for
from interfaces import Scheduler, SpeechEngine, TimerHandle
from models import RecognitionEvent, RecognitionKind, SessionPhase

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionPhase, SessionPhase], None]
TextCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]
SignalCallback = Callable[[], None]

_INACTIVITY = "inactivity"
_AUTO_STOP = "auto_stop"
_RESTART = "restart"
_SAFETY = "safety"
_SESSION_TIMERS = (_INACTIVITY, _AUTO_STOP, _RESTART)


class SessionController:
    """Owns the lifecycle of a single speech engine.

    Phases move ``IDLE -> STARTING -> LISTENING -> STOPPING -> IDLE``. Every
    ``start()`` bumps ``epoch``; timers and engine callbacks capture the epoch
    they were created under and do nothing once it has moved on.

    ``stop()`` is idempotent. It switches to ``STOPPING`` before touching the
    engine, retries termination a couple of times shortly afterwards, and
    forces ``IDLE`` once ``stop_safety_window_s`` has passed even if the
    engine never reports that it ended.
    """

    def __init__(
        self,
        engine: SpeechEngine,
        scheduler: Scheduler,
        inactivity_timeout_s: Optional[float] = 3.0,
        auto_stop_timeout_s: Optional[float] = 3.0,
        restart_delay_s: float = 0.1,
        termination_retry_delays_s: tuple[float, ...] = (0.05, 0.15),
        stop_safety_window_s: float = 2.0,
        continuous: bool = True,
        name: str = "session",
        on_state_change: Optional[StateCallback] = None,
        on_interim: Optional[TextCallback] = None,
        on_final: Optional[TextCallback] = None,
        on_ended: Optional[SignalCallback] = None,
        on_timeout: Optional[SignalCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._engine = engine
        self._scheduler = scheduler
        self._inactivity_timeout_s = inactivity_timeout_s
        self._auto_stop_timeout_s = auto_stop_timeout_s
        self._restart_delay_s = restart_delay_s
        self._termination_retry_delays_s = tuple(termination_retry_delays_s)
        self._stop_safety_window_s = stop_safety_window_s
        self._continuous = continuous
        self.name = name
        self._on_state_change = on_state_change
        self._on_interim = on_interim
        self._on_final = on_final
        self._on_ended = on_ended
        self._on_timeout = on_timeout
        self._on_error = on_error

        self._lock = threading.RLock()
        self._phase = SessionPhase.IDLE
        self._manual_stop_requested = False
        self._epoch = 0
        self._last_activity_time = 0.0
        self._interim_text = ""
        self._final_text = ""
        self._timers: dict[str, tuple[object, TimerHandle]] = {}

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def manual_stop_requested(self) -> bool:
        return self._manual_stop_requested

    @property
    def last_activity_time(self) -> float:
        return self._last_activity_time

    @property
    def is_listening(self) -> bool:
        return self._phase in (SessionPhase.STARTING, SessionPhase.LISTENING)

    @property
    def interim_text(self) -> str:
        return self._interim_text

    @property
    def final_transcript(self) -> str:
        return self._final_text

    def is_supported(self) -> bool:
        try:
            return bool(self._engine.is_supported())
        except Exception:
            logger.exception("%s: support check failed", self.name)
            return False

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            if self.is_listening:
                return
            if not self.is_supported():
                logger.debug("%s: speech engine unsupported, start ignored", self.name)
                return
            self._epoch += 1
            epoch = self._epoch
            self._cancel_timers()
            self._interim_text = ""
            self._final_text = ""
            self._manual_stop_requested = False
            self._transition(SessionPhase.STARTING)
            try:
                self._engine.start(partial(self._handle_event, epoch))
            except Exception as exc:
                logger.warning("%s: engine start failed: %s", self.name, exc)
                self._transition(SessionPhase.IDLE)
                self._emit_error(ENGINE_FAILURE, str(exc) or message_for(ENGINE_FAILURE))
                return
            self._transition(SessionPhase.LISTENING)
            self._last_activity_time = time.monotonic()
            self._arm_silence_timer(_AUTO_STOP, self._auto_stop_timeout_s)

    def stop(self) -> None:
        with self._lock:
            self._manual_stop_requested = True
            self._cancel_timers(_SESSION_TIMERS)
            if self._phase in (SessionPhase.IDLE, SessionPhase.STOPPING):
                return
            self._transition(SessionPhase.STOPPING)
            self._force_terminate()
            if self._phase == SessionPhase.IDLE:
                # engine reported its end synchronously
                return
            for index, delay_s in enumerate(self._termination_retry_delays_s):
                self._schedule(f"terminate_{index}", delay_s, self._retry_termination)
            self._schedule(_SAFETY, self._stop_safety_window_s, self._force_idle)

    def reset_transcript(self) -> None:
        with self._lock:
            self._interim_text = ""
            self._final_text = ""

    # ------------------------------------------------------------------
    # Engine events
    # ------------------------------------------------------------------

    def _handle_event(self, epoch: int, event: RecognitionEvent) -> None:
        with self._lock:
            if epoch != self._epoch:
                logger.debug("%s: dropping stale %s event", self.name, event.kind)
                return
            kind = event.kind
            if kind == RecognitionKind.PARTIAL.value:
                self._handle_result(event.text, is_final=False)
            elif kind == RecognitionKind.FINAL.value:
                self._handle_result(event.text, is_final=True)
            elif kind == RecognitionKind.SPEECH.value:
                self._handle_activity()
            elif kind == RecognitionKind.AUDIO_END.value:
                self._handle_audio_end()
            elif kind == RecognitionKind.END.value:
                self._handle_end()
            elif kind == RecognitionKind.ERROR.value:
                self._handle_error(event.code, event.message)

    def _handle_activity(self) -> None:
        """Voice or a result was heard: push both silence cutoffs back."""
        if self._phase != SessionPhase.LISTENING:
            return
        self._last_activity_time = time.monotonic()
        self._arm_silence_timer(_INACTIVITY, self._inactivity_timeout_s)
        self._arm_silence_timer(_AUTO_STOP, self._auto_stop_timeout_s)

    def _handle_result(self, text: str, is_final: bool) -> None:
        if self._phase != SessionPhase.LISTENING:
            return
        self._handle_activity()
        text = text.strip()
        if not text:
            return
        if is_final:
            self._final_text = f"{self._final_text} {text}".strip()
            self._interim_text = ""
            if self._on_final:
                self._on_final(text)
        else:
            self._interim_text = text
            if self._on_interim:
                self._on_interim(text)

    def _handle_audio_end(self) -> None:
        if self._phase != SessionPhase.LISTENING or self._manual_stop_requested:
            return
        if not self._continuous:
            return
        self._schedule(_RESTART, self._restart_delay_s, self._restart)

    def _handle_end(self) -> None:
        if self._manual_stop_requested:
            self._manual_stop_requested = False
            self._cancel_timers((_SAFETY,))
            self._transition(SessionPhase.IDLE)
            return
        if self._phase == SessionPhase.IDLE:
            return
        if _RESTART in self._timers:
            # audio ended and a restart is already on its way
            return
        self._cancel_timers()
        self._transition(SessionPhase.IDLE)
        if self._on_ended:
            self._on_ended()

    def _handle_error(self, code: str, message: str) -> None:
        kind, severity = classify_engine_error(code)
        if severity == TRANSIENT:
            logger.debug("%s: ignoring transient engine error %r", self.name, code)
            return
        text = message or message_for(kind)
        if severity == FATAL:
            logger.warning("%s: fatal recognition error %s (%s)", self.name, kind, code)
            self._cancel_timers()
            self._manual_stop_requested = False
            self._transition(SessionPhase.IDLE)
            self._force_terminate()
        else:
            logger.info("%s: recognition error %s (%s)", self.name, kind, code)
        self._emit_error(kind, text)

    # ------------------------------------------------------------------
    # Timer continuations
    # ------------------------------------------------------------------

    def _restart(self) -> None:
        if self._manual_stop_requested or self._phase != SessionPhase.LISTENING:
            return
        logger.debug("%s: restarting engine after audio end", self.name)
        try:
            self._engine.start(partial(self._handle_event, self._epoch))
        except Exception as exc:
            # the engine may still be running; silence timers bound the session
            logger.debug("%s: restart ignored: %s", self.name, exc)

    def _silence_expired(self, which: str) -> None:
        if self._manual_stop_requested or self._phase != SessionPhase.LISTENING:
            return
        logger.info("%s: %s timer expired, stopping", self.name, which)
        self.stop()
        if self._on_timeout:
            self._on_timeout()

    def _retry_termination(self) -> None:
        self._force_terminate()

    def _force_idle(self) -> None:
        if self._phase == SessionPhase.IDLE:
            return
        logger.warning("%s: engine did not report end, forcing idle", self.name)
        self._manual_stop_requested = False
        self._transition(SessionPhase.IDLE)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _arm_silence_timer(self, name: str, timeout_s: Optional[float]) -> None:
        if timeout_s is None or timeout_s <= 0:
            return
        self._schedule(name, timeout_s, partial(self._silence_expired, name))

    def _schedule(self, name: str, delay_s: float, action: Callable[[], None]) -> None:
        self._cancel_timers((name,))
        epoch = self._epoch
        token = object()

        def fire() -> None:
            with self._lock:
                current = self._timers.get(name)
                if current is None or current[0] is not token:
                    return
                del self._timers[name]
                if epoch != self._epoch:
                    return
                action()

        handle = self._scheduler.call_later(delay_s, fire)
        self._timers[name] = (token, handle)

    def _cancel_timers(self, names: Optional[tuple[str, ...]] = None) -> None:
        for name in list(self._timers if names is None else names):
            entry = self._timers.pop(name, None)
            if entry is not None:
                entry[1].cancel()

    def _force_terminate(self) -> None:
        try:
            self._engine.abort()
            return
        except Exception as exc:
            logger.debug("%s: engine abort failed, trying stop: %s", self.name, exc)
        try:
            self._engine.stop()
        except Exception as exc:
            logger.debug("%s: engine stop failed: %s", self.name, exc)

    def _emit_error(self, kind: str, message: str) -> None:
        if self._on_error:
            self._on_error(kind, message)

    def _transition(self, to_phase: SessionPhase) -> None:
        from_phase = self._phase
        if from_phase == to_phase:
            return
        self._phase = to_phase
        logger.debug("%s: %s -> %s", self.name, from_phase.value, to_phase.value)
        if self._on_state_change:
            self._on_state_change(from_phase, to_phase)
