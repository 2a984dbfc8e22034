"""Protocol interfaces used by SessionController and VoiceShopper."""

from __future__ import annotations

from typing import Callable, Protocol

from config import VoiceSettings
from models import RecognitionEvent


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle: ...


class SpeechEngine(Protocol):
    def is_supported(self) -> bool: ...

    def start(self, on_event: Callable[[RecognitionEvent], None]) -> None: ...

    def stop(self) -> None: ...

    def abort(self) -> None: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_language(self) -> str: ...

    def set_language(self, language: str) -> None: ...

    def get_settings(self) -> VoiceSettings: ...

    def set_settings(self, settings: VoiceSettings) -> None: ...
