"""Haptic feedback sinks driven by the session runner."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Protocol


HapticIntensity = Literal["low", "medium", "high"]
HapticEvent = Literal["tap", "success", "warning", "block_change"]


class HapticSink(Protocol):
    def tap(self) -> None: ...

    def success(self) -> None: ...

    def warning(self) -> None: ...

    def block_change(self) -> None: ...


class NullHaptics:
    def tap(self) -> None:
        return None

    def success(self) -> None:
        return None

    def warning(self) -> None:
        return None

    def block_change(self) -> None:
        return None


_TAP_GLYPHS: dict[HapticIntensity, str] = {"low": ".", "medium": "*", "high": "#"}


class ConsoleHaptics:
    """Terminal stand-in for a vibration motor."""

    def __init__(self, intensity: HapticIntensity = "medium") -> None:
        self.intensity = intensity

    def tap(self) -> None:
        print(_TAP_GLYPHS[self.intensity], end="", flush=True)

    def success(self) -> None:
        print("\n[HAPTIC] success")

    def warning(self) -> None:
        print("\n[HAPTIC] warning")

    def block_change(self) -> None:
        print("\n[HAPTIC] block change")


@dataclass
class RecordingHaptics:
    """Keeps every event in order; used by the web UI pulse and by tests."""

    events: list[HapticEvent] = field(default_factory=list)

    def tap(self) -> None:
        self.events.append("tap")

    def success(self) -> None:
        self.events.append("success")

    def warning(self) -> None:
        self.events.append("warning")

    def block_change(self) -> None:
        self.events.append("block_change")

    def count(self, event: HapticEvent) -> int:
        return sum(1 for item in self.events if item == event)

    def clear(self) -> None:
        self.events.clear()


class HapticsManager:
    """Applies the user's enabled flag and intensity in front of a concrete sink."""

    def __init__(self, sink: HapticSink, enabled: bool = True) -> None:
        self.sink = sink
        self.enabled = enabled

    def configure(self, enabled: bool, intensity: HapticIntensity) -> None:
        self.enabled = enabled
        if hasattr(self.sink, "intensity"):
            setattr(self.sink, "intensity", intensity)

    def tap(self) -> None:
        if self.enabled:
            self.sink.tap()

    def success(self) -> None:
        if self.enabled:
            self.sink.success()

    def warning(self) -> None:
        if self.enabled:
            self.sink.warning()

    def block_change(self) -> None:
        if self.enabled:
            self.sink.block_change()
