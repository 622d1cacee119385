from __future__ import annotations

import pytest

from bovela.workout.model import TempoTarget
from bovela.workout.tempo import (
    DIRECT,
    beat_interval,
    beat_pattern,
    clamp,
    effective_tempo,
    ramp_value,
    round_half_away,
)


def test_clamp_limits_to_supported_cadence() -> None:
    assert clamp(10) == 40
    assert clamp(40) == 40
    assert clamp(175) == 175
    assert clamp(301) == 300


def test_round_half_away_from_zero() -> None:
    assert round_half_away(172.5) == 173
    assert round_half_away(171.5) == 172
    assert round_half_away(172.4) == 172
    assert round_half_away(-2.5) == -3
    assert round_half_away(0.0) == 0


def test_effective_tempo_per_mode() -> None:
    assert effective_tempo(TempoTarget.none()) == 0
    assert effective_tempo(TempoTarget.fixed(170)) == 170
    assert effective_tempo(TempoTarget.fixed(20)) == 40
    assert effective_tempo(TempoTarget.fixed(450)) == 300


def test_effective_tempo_range_midpoint_even_and_odd_sums() -> None:
    # Even sum: exact midpoint.
    assert effective_tempo(TempoTarget.range(160, 180)) == 170
    # Odd sums: .5 midpoints round away from zero.
    assert effective_tempo(TempoTarget.range(170, 175)) == 173
    assert effective_tempo(TempoTarget.range(171, 172)) == 172


def test_effective_tempo_range_clamps_bounds_first() -> None:
    assert effective_tempo(TempoTarget.range(10, 500)) == 170
    assert effective_tempo(TempoTarget(mode="range")) == 40


def test_beat_interval() -> None:
    assert beat_interval(0) == 1.0
    assert beat_interval(-5) == 1.0
    assert beat_interval(120) == pytest.approx(0.5)
    assert beat_interval(180) == pytest.approx(1 / 3)


def test_beat_pattern_groups_high_cadence() -> None:
    assert beat_pattern(210).every == 4
    assert beat_pattern(200).every == 4
    assert beat_pattern(175).every == 2
    assert beat_pattern(170).every == 2
    assert beat_pattern(150) == DIRECT
    assert beat_pattern(150).is_direct


def test_ramp_value_boundaries() -> None:
    assert ramp_value(160, 180, 0.0) == 160
    assert ramp_value(160, 180, 1.0) == 180
    assert ramp_value(180, 160, 1.0) == 160


def test_ramp_value_midpoint_rounding() -> None:
    assert ramp_value(160, 181, 0.5) == 171
    assert ramp_value(181, 160, 0.5) == 171
    assert ramp_value(100, 200, 0.25) == 125


def test_ramp_value_clamps_progress_and_result() -> None:
    assert ramp_value(160, 180, -1.0) == 160
    assert ramp_value(160, 180, 3.0) == 180
    assert ramp_value(10, 500, 0.0) == 40
    assert ramp_value(10, 500, 1.0) == 300
