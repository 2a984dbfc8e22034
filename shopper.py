"""Mode orchestration: wires speech sessions to the parser, matcher and list."""

from __future__ import annotations

import logging
import threading
from functools import partial
from typing import Callable, Optional

from accumulator import TranscriptAccumulator
from catalog import ItemCatalog, default_catalog
from checkoff import CheckoffMatcher
from config import VoiceSettings
from interfaces import Scheduler, SpeechEngine
from item_parser import ItemParser, find_finish_phrase
from models import Mode, SessionPhase, ShoppingItem
from session_controller import SessionController
from shopping_list import ListHistory, ShoppingList
from timers import ThreadingScheduler

logger = logging.getLogger(__name__)

BatchCallback = Callable[[list[ShoppingItem]], None]
SignalCallback = Callable[[], None]
ErrorCallback = Callable[[str, str], None]
ModeCallback = Callable[[Mode, Mode], None]
TextCallback = Callable[[str], None]


class VoiceShopper:
    """Drives the Idle / Adding / Shopping modes.

    Each mode has its own ``SessionController``. Switching modes always stops
    both sessions, waits ``settle_s`` and only then starts the next one, so
    two engines never listen at the same time. A pending start is tagged with
    a switch generation and is dropped if another switch or stop happens
    first.
    """

    def __init__(
        self,
        engine_factory: Callable[[], SpeechEngine],
        scheduler: Optional[Scheduler] = None,
        settings: Optional[VoiceSettings] = None,
        catalog: Optional[ItemCatalog] = None,
        shopping_list: Optional[ShoppingList] = None,
        history: Optional[ListHistory] = None,
        on_items_added: Optional[BatchCallback] = None,
        on_nothing_recognized: Optional[SignalCallback] = None,
        on_items_completed: Optional[BatchCallback] = None,
        on_all_complete: Optional[SignalCallback] = None,
        on_recognition_error: Optional[ErrorCallback] = None,
        on_mode_change: Optional[ModeCallback] = None,
        on_interim: Optional[TextCallback] = None,
    ) -> None:
        self._scheduler = scheduler or ThreadingScheduler()
        self._settings = settings or VoiceSettings()
        self._catalog = catalog or default_catalog()
        self._parser = ItemParser(self._catalog)
        self._matcher = CheckoffMatcher()
        self._list = shopping_list if shopping_list is not None else ShoppingList()
        self._history = history if history is not None else ListHistory()

        self._on_items_added = on_items_added
        self._on_nothing_recognized = on_nothing_recognized
        self._on_items_completed = on_items_completed
        self._on_all_complete = on_all_complete
        self._on_recognition_error = on_recognition_error
        self._on_mode_change = on_mode_change
        self._on_interim = on_interim

        s = self._settings
        self._controllers = {
            Mode.ADDING: self._build_controller(
                Mode.ADDING,
                engine_factory(),
                s.inactivity_timeout_s,
                s.auto_stop_timeout_s,
                on_final=self._handle_adding_final,
            ),
            Mode.SHOPPING: self._build_controller(
                Mode.SHOPPING,
                engine_factory(),
                s.shopping_inactivity_timeout_s,
                s.shopping_inactivity_timeout_s,
                on_final=self._handle_shopping_final,
            ),
        }
        self._accumulator = TranscriptAccumulator(
            self._scheduler, self._handle_flush, debounce_s=s.debounce_s
        )

        self._lock = threading.RLock()
        self._mode = Mode.IDLE
        self._switch_generation = 0
        self._resumes = 0

    def _build_controller(
        self,
        mode: Mode,
        engine: SpeechEngine,
        inactivity_timeout_s: Optional[float],
        auto_stop_timeout_s: Optional[float],
        on_final: TextCallback,
    ) -> SessionController:
        s = self._settings
        return SessionController(
            engine=engine,
            scheduler=self._scheduler,
            inactivity_timeout_s=inactivity_timeout_s,
            auto_stop_timeout_s=auto_stop_timeout_s,
            restart_delay_s=s.restart_delay_s,
            termination_retry_delays_s=s.termination_retry_delays_s,
            stop_safety_window_s=s.stop_safety_window_s,
            name=mode.value,
            on_interim=self._handle_interim,
            on_final=on_final,
            on_ended=partial(self._handle_ended, mode),
            on_timeout=partial(self._finish, mode),
            on_error=partial(self._handle_error, mode),
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def items(self) -> list[ShoppingItem]:
        return self._list.items

    @property
    def shopping_list(self) -> ShoppingList:
        return self._list

    @property
    def history(self) -> ListHistory:
        return self._history

    @property
    def catalog(self) -> ItemCatalog:
        return self._catalog

    @property
    def live_text(self) -> str:
        controller = self._controllers.get(self._mode)
        return controller.interim_text if controller else ""

    def controller(self, mode: Mode) -> SessionController:
        return self._controllers[mode]

    def is_supported(self) -> bool:
        return self._controllers[Mode.ADDING].is_supported()

    # ------------------------------------------------------------------
    # Mode control
    # ------------------------------------------------------------------

    def start_adding(self) -> bool:
        if not self._controllers[Mode.ADDING].is_supported():
            logger.warning("speech recognition is not supported, cannot add items")
            return False
        return self._switch_to(Mode.ADDING)

    def start_shopping(self) -> bool:
        if self._list.is_empty():
            logger.info("shopping list is empty, not starting shopping mode")
            return False
        if not self._controllers[Mode.SHOPPING].is_supported():
            logger.warning("speech recognition is not supported, cannot start shopping")
            return False
        return self._switch_to(Mode.SHOPPING)

    def start_listening(self, mode: Mode = Mode.ADDING) -> bool:
        if mode == Mode.SHOPPING:
            return self.start_shopping()
        if mode == Mode.ADDING:
            return self.start_adding()
        self.stop()
        return False

    def stop_listening(self) -> None:
        self.stop()

    def stop(self) -> None:
        self._leave(None)

    def reset_transcript(self) -> None:
        for controller in self._controllers.values():
            controller.reset_transcript()
        self._accumulator.clear()

    def _switch_to(self, target: Mode) -> bool:
        with self._lock:
            previous = self._mode
            if previous == target:
                return True
            self._switch_generation += 1
            generation = self._switch_generation
            self._mode = target
            self._resumes = 0
        self._stop_sessions()
        if previous == Mode.ADDING:
            self._accumulator.flush()
        self._notify_mode(previous, target)
        self._scheduler.call_later(
            self._settings.settle_s, partial(self._start_after_settle, generation, target)
        )
        return True

    def _start_after_settle(self, generation: int, target: Mode) -> None:
        with self._lock:
            if generation != self._switch_generation or self._mode != target:
                return
        controller = self._controllers[target]
        controller.reset_transcript()
        controller.start()

    def _finish(self, mode: Mode) -> None:
        self._leave(mode)

    def _leave(self, expected: Optional[Mode]) -> None:
        with self._lock:
            previous = self._mode
            if expected is not None and previous != expected:
                return
            self._switch_generation += 1
            self._mode = Mode.IDLE
        self._stop_sessions()
        if previous == Mode.ADDING:
            self._accumulator.flush()
        if previous != Mode.IDLE:
            self._notify_mode(previous, Mode.IDLE)

    def _stop_sessions(self) -> None:
        for controller in self._controllers.values():
            if controller.phase != SessionPhase.IDLE:
                controller.stop()

    def _notify_mode(self, previous: Mode, current: Mode) -> None:
        logger.info("mode %s -> %s", previous.value, current.value)
        if self._on_mode_change:
            self._on_mode_change(previous, current)

    # ------------------------------------------------------------------
    # Session callbacks
    # ------------------------------------------------------------------

    def _handle_interim(self, text: str) -> None:
        if self._on_interim:
            self._on_interim(text)

    def _handle_adding_final(self, text: str) -> None:
        if self._mode != Mode.ADDING:
            return
        self._resumes = 0
        if find_finish_phrase(text) is not None:
            # the closing utterance itself is not parsed; earlier text still flushes
            logger.info("finish phrase heard, leaving adding mode")
            self._finish(Mode.ADDING)
            return
        self._accumulator.append(text)

    def _handle_shopping_final(self, text: str) -> None:
        if self._mode != Mode.SHOPPING:
            return
        self._resumes = 0
        result = self._list.check_off(self._matcher, text)
        if result.completed and self._on_items_completed:
            self._on_items_completed(result.completed)
        if result.all_complete:
            self._complete()

    def _handle_flush(self, text: str) -> None:
        result = self._parser.parse(text, self._list.names())
        added = self._list.merge(result.items)
        if added:
            logger.info("added %s", [item.name for item in added])
            if self._on_items_added:
                self._on_items_added(added)
        elif not result.recognized:
            logger.info("nothing grocery-like in %r", text)
            if self._on_nothing_recognized:
                self._on_nothing_recognized()

    def _handle_ended(self, mode: Mode) -> None:
        with self._lock:
            if self._mode != mode:
                return
            self._resumes += 1
            resumes = self._resumes
        if resumes > self._settings.max_resumes:
            logger.info("%s session keeps ending, leaving mode", mode.value)
            self._finish(mode)
            return
        logger.info("%s session ended unexpectedly, resuming (%d)", mode.value, resumes)
        self._controllers[mode].start()

    def _handle_error(self, mode: Mode, kind: str, message: str) -> None:
        if self._on_recognition_error:
            self._on_recognition_error(kind, message)
        if self._mode == mode and not self._controllers[mode].is_listening:
            self._finish(mode)

    # ------------------------------------------------------------------
    # List operations
    # ------------------------------------------------------------------

    def toggle_item(self, item_id: str) -> Optional[ShoppingItem]:
        item, completed_all = self._list.toggle(item_id)
        if completed_all:
            self._complete()
        return item

    def remove_item(self, item_id: str) -> Optional[ShoppingItem]:
        return self._list.remove(item_id)

    def clear_list(self) -> None:
        self._list.clear()
        self.stop()

    def save_to_history(self) -> bool:
        return self._history.save(self._list.snapshot())

    def load_from_history(self, index: int) -> bool:
        snapshot = self._history.get(index)
        if snapshot is None:
            return False
        self._list.replace(snapshot)
        return True

    def clear_history(self) -> None:
        self._history.clear()

    def _complete(self) -> None:
        logger.info("shopping list complete")
        if self._on_all_complete:
            self._on_all_complete()
        self._finish(Mode.SHOPPING)
