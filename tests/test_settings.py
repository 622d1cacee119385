from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from bovela.core.persistence import PersistenceStore
from bovela.core.settings import (
    SETTINGS_KEY,
    AppSettings,
    load_settings,
    save_settings,
    settings_from_dict,
)


def test_missing_settings_use_defaults(tmp_path: Path) -> None:
    settings = load_settings(PersistenceStore(tmp_path))

    assert settings == AppSettings()
    assert settings.seek_step_sec == 10
    assert settings.pre_countdown_sec == 3
    assert settings.frame_warning_sec == 3


def test_save_and_load_settings(tmp_path: Path) -> None:
    store = PersistenceStore(tmp_path)
    custom = replace(
        AppSettings(),
        haptics_enabled=False,
        haptics_intensity="high",
        frame_warning_enabled=False,
        seek_step_sec=15,
    )

    save_settings(store, custom)

    assert (tmp_path / SETTINGS_KEY).exists()
    loaded = load_settings(store)
    assert loaded == custom
    assert loaded.frame_warning_sec is None


def test_bad_values_fall_back_to_defaults() -> None:
    settings = settings_from_dict(
        {
            "haptics_enabled": "yes",
            "haptics_intensity": "extreme",
            "seek_step_sec": 0,
            "pre_countdown_sec": -2,
            "tempo_units": "spm",
            "visual_pulse_enabled": False,
        }
    )

    assert settings == replace(AppSettings(), visual_pulse_enabled=False)
    assert settings_from_dict(["not", "a", "dict"]) == AppSettings()
