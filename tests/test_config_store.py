from __future__ import annotations

import json
from pathlib import Path

from config import JsonConfigStore, VoiceSettings


def test_config_read_write(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    assert store.get_api_key() == ""
    assert store.get_language() == "en-US"

    store.set_api_key("abc")
    store.set_language("en-GB")

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_api_key() == "abc"
    assert reloaded.get_language() == "en-GB"


def test_config_invalid_json_fallback(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_api_key() == ""
    assert store.get_settings() == VoiceSettings()


def test_settings_default_when_missing(tmp_path: Path) -> None:
    settings = JsonConfigStore(path=tmp_path / "config.json").get_settings()

    assert settings.inactivity_timeout_s == 3.0
    assert settings.auto_stop_timeout_s == 3.0
    assert settings.shopping_inactivity_timeout_s is None
    assert settings.debounce_s == 0.5
    assert settings.termination_retry_delays_s == (0.05, 0.15)
    assert settings.max_resumes == 3


def test_settings_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)
    store.set_api_key("abc")

    store.set_settings(VoiceSettings(debounce_s=0.8, shopping_inactivity_timeout_s=30.0))

    settings = JsonConfigStore(path=path).get_settings()
    assert settings.debounce_s == 0.8
    assert settings.shopping_inactivity_timeout_s == 30.0
    assert JsonConfigStore(path=path).get_api_key() == "abc"


def test_settings_skip_bad_values(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "settings": {
                    "debounce_s": "soon",
                    "settle_s": "0.25",
                    "termination_retry_delays_s": [0.1],
                    "log_level": "debug",
                    "unknown": 1,
                }
            }
        ),
        encoding="utf-8",
    )

    settings = JsonConfigStore(path=path).get_settings()

    assert settings.debounce_s == 0.5
    assert settings.settle_s == 0.25
    assert settings.termination_retry_delays_s == (0.1,)
    assert settings.log_level == "DEBUG"


def test_settings_section_of_wrong_type(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"settings": [1, 2]}), encoding="utf-8")

    assert JsonConfigStore(path=path).get_settings() == VoiceSettings()
