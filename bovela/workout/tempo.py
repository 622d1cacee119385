"""Cadence math: beat periods, accent grouping, clamping and ramps."""

from __future__ import annotations

import math
from dataclasses import dataclass

from bovela.workout.model import MAX_SPM, MIN_SPM, TempoTarget

IDLE_BEAT_INTERVAL_SEC = 1.0


@dataclass(frozen=True)
class BeatPattern:
    """Accent grouping: a haptic tap fires on every ``every``-th beat."""

    every: int = 1

    @property
    def is_direct(self) -> bool:
        return self.every <= 1


DIRECT = BeatPattern(1)


def round_half_away(value: float) -> int:
    """Round to nearest int, ties away from zero (172.5 -> 173, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def clamp(spm: int) -> int:
    return min(max(spm, MIN_SPM), MAX_SPM)


def effective_tempo(target: TempoTarget) -> int:
    if target.mode == "fixed":
        return clamp(target.value or 0)
    if target.mode == "range":
        low = clamp(target.min or 0)
        high = clamp(target.max or 0)
        return round_half_away((low + high) / 2.0) if low + high > 0 else 0
    return 0


def beat_interval(spm: int) -> float:
    if spm <= 0:
        return IDLE_BEAT_INTERVAL_SEC
    return 60.0 / spm


def beat_pattern(spm: int) -> BeatPattern:
    # Per-beat pulses blur together at high cadence, so group them.
    if spm >= 200:
        return BeatPattern(4)
    if spm >= 170:
        return BeatPattern(2)
    return DIRECT


def ramp_value(start: int, end: int, progress: float) -> int:
    p = min(max(progress, 0.0), 1.0)
    return clamp(round_half_away(start + (end - start) * p))
