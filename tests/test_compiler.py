from __future__ import annotations

import pytest

from bovela.workout.compiler import (
    CompileError,
    InvalidDurationError,
    InvalidRampError,
    InvalidRepeatError,
    compile_blocks,
    total_duration,
)
from bovela.workout.model import Block, TempoTarget, TimelineItem, ramp, repeat_group


def _work(duration: int, spm: int | None = None) -> Block:
    tempo = TempoTarget.fixed(spm) if spm is not None else TempoTarget.none()
    return Block(type="work", duration_sec=duration, tempo=tempo)


def test_flat_blocks_become_cumulative_segments() -> None:
    blocks = [
        Block(type="warmup", duration_sec=60),
        _work(30, 170),
        Block(type="recover", duration_sec=15),
        Block(type="cooldown", duration_sec=45),
    ]

    timeline = compile_blocks(blocks)

    assert [item.type for item in timeline] == ["warmup", "work", "recover", "cooldown"]
    assert [(item.start_sec, item.end_sec) for item in timeline] == [
        (0, 60),
        (60, 90),
        (90, 105),
        (105, 150),
    ]
    assert timeline[1].tempo == TempoTarget.fixed(170)


def test_repeat_group_end_to_end_scenario() -> None:
    blocks = [
        repeat_group(
            2,
            _work(20, 170),
            Block(type="recover", duration_sec=10),
        )
    ]

    timeline = compile_blocks(blocks)

    assert timeline == (
        TimelineItem("work", 0, 20, TempoTarget.fixed(170)),
        TimelineItem("recover", 20, 30, TempoTarget.none()),
        TimelineItem("work", 30, 50, TempoTarget.fixed(170)),
        TimelineItem("recover", 50, 60, TempoTarget.none()),
    )
    assert total_duration(blocks) == 60


def test_repeat_group_copies_are_shifted_and_multiply_duration() -> None:
    inner = [_work(7), Block(type="recover", duration_sec=5)]
    timeline = compile_blocks([repeat_group(3, *inner)])
    single = compile_blocks(inner)

    assert len(timeline) == 3 * len(single)
    for copy in range(3):
        shift = copy * total_duration(inner)
        for offset, item in enumerate(single):
            compiled = timeline[copy * len(single) + offset]
            assert compiled.start_sec == item.start_sec + shift
            assert compiled.end_sec == item.end_sec + shift
    assert total_duration([repeat_group(3, *inner)]) == 3 * total_duration(inner)


def test_nested_repeat_groups_are_contiguous() -> None:
    blocks = [
        Block(type="warmup", duration_sec=100),
        repeat_group(
            2,
            _work(60, 175),
            repeat_group(3, _work(20, 205), Block(type="recover", duration_sec=20)),
        ),
        ramp("rampDown", 90, 180, 150),
        Block(type="cooldown", duration_sec=0),
    ]

    timeline = compile_blocks(blocks)

    assert len(timeline) == 1 + 2 * (1 + 3 * 2) + 2
    assert timeline[0].start_sec == 0
    for left, right in zip(timeline, timeline[1:]):
        assert left.end_sec == right.start_sec
    assert timeline[-1].end_sec == 100 + 2 * (60 + 3 * 40) + 90


def test_repeat_group_own_duration_is_ignored() -> None:
    group = Block(
        type="repeatGroup",
        duration_sec=999,
        repeat_count=2,
        subblocks=(_work(5),),
    )
    assert total_duration([group]) == 10


def test_ramp_segment_keeps_bounds() -> None:
    timeline = compile_blocks([ramp("rampUp", 120, 160, 180)])

    assert timeline[0].type == "rampUp"
    assert (timeline[0].ramp_start, timeline[0].ramp_end) == (160, 180)
    assert timeline[0].end_sec == 120


def test_zero_duration_leaf_is_allowed() -> None:
    timeline = compile_blocks([Block(type="work", duration_sec=0), _work(5)])
    assert timeline[0].start_sec == timeline[0].end_sec == 0
    assert timeline[1].start_sec == 0


def test_invalid_repeat_count() -> None:
    blocks = [repeat_group(0, _work(20))]
    with pytest.raises(InvalidRepeatError):
        compile_blocks(blocks)
    assert total_duration(blocks) == 0


def test_invalid_repeat_without_subblocks() -> None:
    with pytest.raises(InvalidRepeatError):
        compile_blocks([Block(type="repeatGroup", repeat_count=2, subblocks=())])
    with pytest.raises(InvalidRepeatError):
        compile_blocks([Block(type="repeatGroup", repeat_count=None, subblocks=(_work(5),))])


def test_invalid_ramp() -> None:
    with pytest.raises(InvalidRampError):
        compile_blocks([ramp("rampUp", 0, 160, 180)])
    with pytest.raises(InvalidRampError):
        compile_blocks([Block(type="rampDown", duration_sec=60, ramp_start=180)])


def test_invalid_duration() -> None:
    with pytest.raises(InvalidDurationError):
        compile_blocks([_work(10), _work(-1)])
    assert total_duration([_work(10), _work(-1)]) == 0


def test_compile_errors_share_a_value_error_base() -> None:
    with pytest.raises(CompileError):
        compile_blocks([repeat_group(-1, _work(1))])
    assert issubclass(CompileError, ValueError)


def test_empty_input() -> None:
    assert compile_blocks([]) == ()
    assert total_duration([]) == 0


def test_compile_is_deterministic() -> None:
    blocks = [repeat_group(2, _work(20, 170), ramp("rampUp", 30, 150, 190))]

    first = compile_blocks(blocks)
    second = compile_blocks(blocks)

    assert first == second
    assert {item.id for item in first}.isdisjoint({item.id for item in second})


def test_deep_nesting_does_not_recurse() -> None:
    block = _work(3)
    for _ in range(5000):
        block = repeat_group(1, block)

    timeline = compile_blocks([block])

    assert len(timeline) == 1
    assert timeline[0].end_sec == 3
