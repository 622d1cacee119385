"""Flatten a Block tree into a contiguous, time-addressed timeline."""

from __future__ import annotations

import itertools
from typing import Iterable, Iterator, Sequence

from bovela.workout.model import RAMP_TYPES, Block, TimelineItem


class CompileError(ValueError):
    """Raised when a block tree cannot be turned into a timeline."""


class InvalidDurationError(CompileError):
    """A leaf block has a negative duration."""


class InvalidRepeatError(CompileError):
    """A repeat group has no positive count or no subblocks."""


class InvalidRampError(CompileError):
    """A ramp block has no positive duration or is missing a bound."""


def compile_blocks(blocks: Iterable[Block]) -> tuple[TimelineItem, ...]:
    """Expand ``blocks`` depth-first, left to right, unrolling repeat groups.

    The walk keeps its own stack of iterators instead of recursing, so deeply
    nested repeat groups do not hit the interpreter recursion limit.
    """
    out: list[TimelineItem] = []
    cursor = 0
    stack: list[Iterator[Block]] = [iter(blocks)]

    while stack:
        block = next(stack[-1], None)
        if block is None:
            stack.pop()
            continue

        if block.type == "repeatGroup":
            count = block.repeat_count
            if count is None or count <= 0 or not block.subblocks:
                raise InvalidRepeatError(
                    f"Repeat group {block.id}: needs repeat_count > 0 and subblocks"
                )
            stack.append(itertools.chain.from_iterable(itertools.repeat(block.subblocks, count)))
            continue

        if block.type in RAMP_TYPES:
            if block.duration_sec <= 0 or block.ramp_start is None or block.ramp_end is None:
                raise InvalidRampError(
                    f"Ramp {block.id}: needs duration_sec > 0, ramp_start and ramp_end"
                )
        elif block.duration_sec < 0:
            raise InvalidDurationError(f"Block {block.id}: duration_sec must be >= 0")

        end = cursor + block.duration_sec
        out.append(
            TimelineItem(
                type=block.type,
                start_sec=cursor,
                end_sec=end,
                tempo=block.tempo,
                ramp_start=block.ramp_start,
                ramp_end=block.ramp_end,
            )
        )
        cursor = end

    return tuple(out)


def timeline_duration(timeline: Sequence[TimelineItem]) -> int:
    return timeline[-1].end_sec if timeline else 0


def total_duration(blocks: Iterable[Block]) -> int:
    """Best-effort duration for display; 0 when the blocks do not compile."""
    try:
        return timeline_duration(compile_blocks(blocks))
    except CompileError:
        return 0
