"""Shared recognition error kinds, user-facing messages and engine code mapping."""

from __future__ import annotations

PERMISSION_DENIED = "PERMISSION_DENIED"
NETWORK_ERROR = "NETWORK_ERROR"
AUDIO_CAPTURE = "AUDIO_CAPTURE"
ENGINE_FAILURE = "ENGINE_FAILURE"
ASR_PROTOCOL_ERROR = "ASR_PROTOCOL_ERROR"

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Microphone permission is required for voice input.",
    NETWORK_ERROR: "Network failed, please retry.",
    AUDIO_CAPTURE: "No microphone could be opened.",
    ENGINE_FAILURE: "Speech recognition could not be started.",
    ASR_PROTOCOL_ERROR: "Speech recognition returned an unexpected response.",
}

TRANSIENT = "transient"
FATAL = "fatal"
REPORTABLE = "reportable"

# Raw codes emitted by speech engines.
ENGINE_ABORTED = "aborted"
ENGINE_NO_SPEECH = "no-speech"
ENGINE_NETWORK = "network"
ENGINE_NOT_ALLOWED = "not-allowed"
ENGINE_AUDIO_CAPTURE = "audio-capture"
ENGINE_PROTOCOL = "asr-protocol"

_ENGINE_CODES = {
    ENGINE_ABORTED: (ENGINE_ABORTED, TRANSIENT),
    ENGINE_NO_SPEECH: (ENGINE_NO_SPEECH, TRANSIENT),
    ENGINE_NETWORK: (NETWORK_ERROR, FATAL),
    ENGINE_NOT_ALLOWED: (PERMISSION_DENIED, FATAL),
    "permission-denied": (PERMISSION_DENIED, FATAL),
    "service-not-allowed": (PERMISSION_DENIED, FATAL),
    ENGINE_AUDIO_CAPTURE: (AUDIO_CAPTURE, FATAL),
}


def classify_engine_error(code: str) -> tuple[str, str]:
    """Return ``(kind, severity)`` for a raw engine error code."""
    normalized = (code or "").strip().lower()
    if normalized in _ENGINE_CODES:
        return _ENGINE_CODES[normalized]
    return ASR_PROTOCOL_ERROR, REPORTABLE


def message_for(kind: str) -> str:
    return ERROR_MESSAGES.get(kind, kind)
