"""Core data models for the voice shopping core."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class SessionPhase(str, Enum):
    IDLE = "IDLE"
    STARTING = "STARTING"
    LISTENING = "LISTENING"
    STOPPING = "STOPPING"


class Mode(str, Enum):
    IDLE = "idle"
    ADDING = "adding"
    SHOPPING = "shopping"


class RecognitionKind(str, Enum):
    PARTIAL = "partial"
    FINAL = "final"
    ERROR = "error"
    AUDIO_END = "audio_end"
    # voice heard, no text yet
    SPEECH = "speech"
    END = "end"


@dataclass
class AudioFrame:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1
    timestamp_ms: int = 0
    level: float = 0.0


@dataclass
class RecognitionEvent:
    kind: str
    text: str = ""
    code: str = ""
    message: str = ""


def new_item_id() -> str:
    return uuid.uuid4().hex[:9]


@dataclass
class ShoppingItem:
    name: str
    completed: bool = False
    quantity: Optional[float] = None
    unit: Optional[str] = None
    id: str = field(default_factory=new_item_id)

    def label(self) -> str:
        """Display form, e.g. ``2 lb Chicken`` or ``Apples``."""
        if self.quantity is None:
            return self.name
        qty = int(self.quantity) if float(self.quantity).is_integer() else self.quantity
        if self.unit:
            return f"{qty} {self.unit} {self.name}"
        return f"{qty}x {self.name}"


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    category: str


@dataclass
class ParseResult:
    items: list[ShoppingItem] = field(default_factory=list)
    # False when no fragment survived filtering at all.
    recognized: bool = False


@dataclass
class CheckoffResult:
    completed: list[ShoppingItem] = field(default_factory=list)
    all_complete: bool = False
