"""User settings persisted as a single JSON blob."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any

from bovela.core.haptics import HapticIntensity
from bovela.core.persistence import PersistenceStore


SETTINGS_KEY = "settings.json"
FRAME_WARNING_SEC = 3
HAPTIC_INTENSITIES: tuple[HapticIntensity, ...] = ("low", "medium", "high")


@dataclass(frozen=True)
class AppSettings:
    haptics_enabled: bool = True
    haptics_intensity: HapticIntensity = "medium"
    visual_pulse_enabled: bool = True
    frame_warning_enabled: bool = True
    compare_tempo_enabled: bool = False
    seek_step_sec: int = 10
    pre_countdown_sec: int = 3
    tempo_units: str = "spm"

    @property
    def frame_warning_sec(self) -> int | None:
        return FRAME_WARNING_SEC if self.frame_warning_enabled else None


def settings_from_dict(raw: object) -> AppSettings:
    """Build settings from stored data, keeping defaults for missing or bad values."""
    if not isinstance(raw, dict):
        return AppSettings()
    defaults = AppSettings()
    values: dict[str, Any] = {}
    for item in fields(AppSettings):
        value = raw.get(item.name)
        default = getattr(defaults, item.name)
        if value is None or type(value) is not type(default):
            continue
        values[item.name] = value

    if values.get("haptics_intensity", "medium") not in HAPTIC_INTENSITIES:
        values.pop("haptics_intensity")
    # Zero means "unset" for the step and countdown values.
    if values.get("seek_step_sec", 1) <= 0:
        values.pop("seek_step_sec")
    if values.get("pre_countdown_sec", 1) <= 0:
        values.pop("pre_countdown_sec")
    return AppSettings(**values)


def load_settings(store: PersistenceStore) -> AppSettings:
    return settings_from_dict(store.load(SETTINGS_KEY, None))


def save_settings(store: PersistenceStore, settings: AppSettings) -> None:
    store.save(asdict(settings), SETTINGS_KEY)
