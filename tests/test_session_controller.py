from __future__ import annotations

import pytest

from errors import ASR_PROTOCOL_ERROR, ENGINE_FAILURE, NETWORK_ERROR, PERMISSION_DENIED
from fakes import FakeScheduler, FakeSpeechEngine
from models import SessionPhase
from session_controller import SessionController


class Recorder:
    """Collects controller callbacks."""

    def __init__(self) -> None:
        self.transitions: list[tuple[SessionPhase, SessionPhase]] = []
        self.interim: list[str] = []
        self.final: list[str] = []
        self.errors: list[tuple[str, str]] = []
        self.ended = 0
        self.timeouts = 0

    def kwargs(self) -> dict:
        return {
            "on_state_change": lambda f, t: self.transitions.append((f, t)),
            "on_interim": self.interim.append,
            "on_final": self.final.append,
            "on_error": lambda k, m: self.errors.append((k, m)),
            "on_ended": self._ended,
            "on_timeout": self._timeout,
        }

    def _ended(self) -> None:
        self.ended += 1

    def _timeout(self) -> None:
        self.timeouts += 1


def make_controller(
    engine: FakeSpeechEngine | None = None,
    **overrides,
) -> tuple[SessionController, FakeSpeechEngine, FakeScheduler, Recorder]:
    engine = engine or FakeSpeechEngine()
    scheduler = FakeScheduler()
    events = Recorder()
    kwargs = {"inactivity_timeout_s": 3.0, "auto_stop_timeout_s": 3.0, **events.kwargs()}
    kwargs.update(overrides)
    controller = SessionController(engine=engine, scheduler=scheduler, **kwargs)
    return controller, engine, scheduler, events


def test_start_transitions_through_starting_to_listening() -> None:
    controller, engine, _, events = make_controller()

    controller.start()

    assert controller.phase == SessionPhase.LISTENING
    assert controller.epoch == 1
    assert engine.start_calls == 1
    assert events.transitions == [
        (SessionPhase.IDLE, SessionPhase.STARTING),
        (SessionPhase.STARTING, SessionPhase.LISTENING),
    ]


def test_start_is_noop_when_engine_unsupported() -> None:
    controller, engine, scheduler, events = make_controller(FakeSpeechEngine(supported=False))

    controller.start()

    assert controller.phase == SessionPhase.IDLE
    assert controller.epoch == 0
    assert engine.start_calls == 0
    assert events.transitions == []
    assert scheduler.pending() == []


def test_start_while_listening_is_noop() -> None:
    controller, engine, _, _ = make_controller()

    controller.start()
    controller.start()

    assert controller.epoch == 1
    assert engine.start_calls == 1


def test_engine_start_failure_reports_and_returns_to_idle() -> None:
    engine = FakeSpeechEngine()
    engine.start_error = RuntimeError("mic busy")
    controller, _, _, events = make_controller(engine)

    controller.start()

    assert controller.phase == SessionPhase.IDLE
    assert events.errors == [(ENGINE_FAILURE, "mic busy")]


def test_stop_while_idle_is_idempotent() -> None:
    controller, engine, scheduler, events = make_controller()

    controller.stop()
    controller.stop()
    controller.stop()
    scheduler.advance(10.0)

    assert controller.phase == SessionPhase.IDLE
    assert engine.start_calls == 0
    assert engine.abort_calls == 0
    assert events.transitions == []


def test_stop_enters_stopping_before_touching_engine() -> None:
    seen: list[SessionPhase] = []

    class ObservingEngine(FakeSpeechEngine):
        def abort(self) -> None:
            seen.append(controller.phase)
            super().abort()

    controller, _, _, _ = make_controller(ObservingEngine())
    controller.start()
    controller.stop()

    assert seen[0] == SessionPhase.STOPPING


def test_stop_settles_idle_when_engine_ends() -> None:
    controller, engine, scheduler, events = make_controller()
    controller.start()

    controller.stop()

    assert engine.abort_calls == 1
    assert controller.phase == SessionPhase.IDLE
    assert controller.manual_stop_requested is False
    assert events.ended == 0
    scheduler.advance(5.0)
    assert engine.start_calls == 1


def test_stop_is_bounded_even_when_termination_raises() -> None:
    engine = FakeSpeechEngine(end_on_terminate=False)
    engine.fail_abort = True
    engine.fail_stop = True
    controller, _, scheduler, _ = make_controller(engine, stop_safety_window_s=2.0)
    controller.start()

    controller.stop()

    assert controller.phase == SessionPhase.STOPPING
    assert engine.abort_calls == 1
    assert engine.stop_calls == 1

    scheduler.advance(0.2)
    # two redundant termination attempts
    assert engine.abort_calls == 3
    assert engine.stop_calls == 3
    assert controller.phase == SessionPhase.STOPPING

    scheduler.advance(2.0)
    assert controller.phase == SessionPhase.IDLE


def test_stop_falls_back_to_engine_stop_when_abort_raises() -> None:
    engine = FakeSpeechEngine()
    engine.fail_abort = True
    controller, _, _, _ = make_controller(engine)
    controller.start()

    controller.stop()

    assert engine.stop_calls == 1
    assert controller.phase == SessionPhase.IDLE


def test_interim_and_final_results_are_forwarded() -> None:
    controller, engine, _, events = make_controller()
    controller.start()

    engine.partial("app")
    engine.partial("apples and")
    assert controller.interim_text == "apples and"
    engine.final("apples and bananas")
    engine.final("  ")

    assert events.interim == ["app", "apples and"]
    assert events.final == ["apples and bananas"]
    assert controller.interim_text == ""
    assert controller.final_transcript == "apples and bananas"

    controller.reset_transcript()
    assert controller.final_transcript == ""
    assert controller.phase == SessionPhase.LISTENING


def test_audio_end_schedules_restart_under_same_epoch() -> None:
    controller, engine, scheduler, events = make_controller(restart_delay_s=0.1)
    controller.start()

    engine.audio_end()
    engine.end()

    assert controller.phase == SessionPhase.LISTENING
    assert events.ended == 0

    scheduler.advance(0.1)

    assert engine.start_calls == 2
    assert controller.epoch == 1
    engine.final("milk")
    assert events.final == ["milk"]


def test_restart_is_skipped_after_manual_stop() -> None:
    engine = FakeSpeechEngine(end_on_terminate=False)
    controller, _, scheduler, _ = make_controller(engine)
    controller.start()

    engine.audio_end()
    controller.stop()
    scheduler.advance(1.0)

    assert engine.start_calls == 1


def test_stale_events_from_previous_epoch_are_ignored() -> None:
    engine = FakeSpeechEngine(end_on_terminate=False)
    controller, _, _, events = make_controller(engine)
    controller.start()
    stale = engine.on_event

    controller.stop()
    controller.start()
    assert controller.epoch == 2

    engine.on_event = stale
    engine.final("eggs")
    engine.end()

    assert controller.phase == SessionPhase.LISTENING
    assert events.final == []
    assert events.ended == 0


def test_inactivity_timeout_stops_session() -> None:
    controller, engine, scheduler, events = make_controller()
    controller.start()

    scheduler.advance(1.0)
    engine.partial("bread")
    scheduler.advance(2.9)
    assert events.timeouts == 0

    scheduler.advance(0.2)

    assert events.timeouts == 1
    assert engine.abort_calls == 1
    assert controller.phase == SessionPhase.IDLE


def test_each_result_pushes_silence_cutoff_back() -> None:
    controller, engine, scheduler, events = make_controller()
    controller.start()

    scheduler.advance(2.0)
    engine.partial("cheese")
    scheduler.advance(2.0)
    engine.final("cheese")
    scheduler.advance(2.9)
    assert events.timeouts == 0
    assert controller.phase == SessionPhase.LISTENING

    scheduler.advance(0.2)
    assert events.timeouts == 1


def test_voice_activity_without_results_keeps_session_open() -> None:
    controller, engine, scheduler, events = make_controller()
    controller.start()

    for _ in range(4):
        scheduler.advance(2.0)
        engine.speech()
    assert events.timeouts == 0
    assert controller.phase == SessionPhase.LISTENING
    assert controller.interim_text == ""

    scheduler.advance(2.9)
    assert events.timeouts == 0
    scheduler.advance(0.2)
    assert events.timeouts == 1


def test_voice_activity_after_stop_arms_nothing() -> None:
    controller, engine, scheduler, events = make_controller(
        engine=FakeSpeechEngine(end_on_terminate=False)
    )
    controller.start()
    controller.stop()

    engine.speech()
    scheduler.advance(10.0)

    assert events.timeouts == 0
    assert controller.phase == SessionPhase.IDLE


def test_auto_stop_closes_session_without_any_speech() -> None:
    controller, _, scheduler, events = make_controller(auto_stop_timeout_s=3.0)
    controller.start()

    scheduler.advance(3.1)

    assert events.timeouts == 1
    assert controller.phase == SessionPhase.IDLE


def test_disabled_timeouts_keep_listening() -> None:
    controller, engine, scheduler, events = make_controller(
        inactivity_timeout_s=None, auto_stop_timeout_s=None
    )
    controller.start()
    engine.partial("rice")

    scheduler.advance(120.0)

    assert events.timeouts == 0
    assert controller.phase == SessionPhase.LISTENING


def test_aborted_error_is_swallowed() -> None:
    controller, engine, _, events = make_controller()
    controller.start()

    engine.error("aborted")

    assert events.errors == []
    assert controller.phase == SessionPhase.LISTENING


@pytest.mark.parametrize(
    ("code", "kind"),
    [("network", NETWORK_ERROR), ("not-allowed", PERMISSION_DENIED)],
)
def test_fatal_errors_force_idle_without_restart(code: str, kind: str) -> None:
    controller, engine, scheduler, events = make_controller()
    controller.start()
    engine.audio_end()

    engine.error(code, "boom")
    scheduler.advance(1.0)

    assert controller.phase == SessionPhase.IDLE
    assert events.errors == [(kind, "boom")]
    assert engine.start_calls == 1
    assert events.ended == 0


def test_unknown_error_is_reported_but_session_continues() -> None:
    controller, engine, _, events = make_controller()
    controller.start()

    engine.error("language-not-supported")

    assert [kind for kind, _ in events.errors] == [ASR_PROTOCOL_ERROR]
    assert controller.phase == SessionPhase.LISTENING


def test_unexpected_end_notifies_caller() -> None:
    controller, engine, scheduler, events = make_controller()
    controller.start()

    engine.end()

    assert controller.phase == SessionPhase.IDLE
    assert events.ended == 1
    scheduler.advance(5.0)
    assert events.timeouts == 0


def test_start_after_stop_begins_new_epoch() -> None:
    controller, engine, _, _ = make_controller()
    controller.start()
    controller.stop()

    controller.start()

    assert controller.epoch == 2
    assert controller.phase == SessionPhase.LISTENING
    assert controller.manual_stop_requested is False
    assert engine.start_calls == 2
