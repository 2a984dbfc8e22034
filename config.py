"""Simple JSON-based config store."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional


@dataclass
class VoiceSettings:
    inactivity_timeout_s: float = 3.0
    auto_stop_timeout_s: float = 3.0
    # None keeps shopping sessions open until stopped or the list is done.
    shopping_inactivity_timeout_s: Optional[float] = None
    restart_delay_s: float = 0.1
    termination_retry_delays_s: tuple[float, ...] = (0.05, 0.15)
    stop_safety_window_s: float = 2.0
    debounce_s: float = 0.5
    settle_s: float = 0.1
    max_resumes: int = 3
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict) -> "VoiceSettings":
        values = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            raw = data[f.name]
            try:
                if f.name == "termination_retry_delays_s":
                    value = tuple(float(v) for v in raw)
                elif f.name == "shopping_inactivity_timeout_s":
                    value = None if raw is None else float(raw)
                elif f.name == "max_resumes":
                    value = int(raw)
                elif f.name == "log_level":
                    value = str(raw).upper()
                else:
                    value = float(raw)
            except (TypeError, ValueError):
                continue
            values[f.name] = value
        return cls(**values)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["termination_retry_delays_s"] = list(self.termination_retry_delays_s)
        return data


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "voice_shopper" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("api_key", ""))

    def set_api_key(self, key: str) -> None:
        data = self._read_all()
        data["api_key"] = key
        self._write_all(data)

    def get_language(self) -> str:
        data = self._read_all()
        return str(data.get("language", "en-US"))

    def set_language(self, language: str) -> None:
        data = self._read_all()
        data["language"] = language
        self._write_all(data)

    def get_settings(self) -> VoiceSettings:
        data = self._read_all()
        settings = data.get("settings", {})
        if not isinstance(settings, dict):
            return VoiceSettings()
        return VoiceSettings.from_dict(settings)

    def set_settings(self, settings: VoiceSettings) -> None:
        data = self._read_all()
        data["settings"] = settings.to_dict()
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
