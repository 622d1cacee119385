"""Workout domain models."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Literal
from uuid import UUID, uuid4


BlockType = Literal[
    "warmup",
    "work",
    "recover",
    "cooldown",
    "rampUp",
    "rampDown",
    "repeatGroup",
]
TempoMode = Literal["none", "fixed", "range"]

BLOCK_TYPES: tuple[BlockType, ...] = (
    "warmup",
    "work",
    "recover",
    "cooldown",
    "rampUp",
    "rampDown",
    "repeatGroup",
)
RAMP_TYPES: frozenset[str] = frozenset({"rampUp", "rampDown"})
TEMPO_MODES: tuple[TempoMode, ...] = ("none", "fixed", "range")

MIN_SPM = 40
MAX_SPM = 300


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class TempoTarget:
    mode: TempoMode = "none"
    value: int | None = None
    min: int | None = None
    max: int | None = None

    @classmethod
    def none(cls) -> TempoTarget:
        return cls(mode="none")

    @classmethod
    def fixed(cls, value: int) -> TempoTarget:
        return cls(mode="fixed", value=value)

    @classmethod
    def range(cls, low: int, high: int) -> TempoTarget:
        return cls(mode="range", min=low, max=high)


@dataclass(frozen=True)
class Block:
    """One authored phase, or a repeat group of phases.

    ``repeat_count``/``subblocks`` belong to ``repeatGroup`` nodes only, and
    ``ramp_start``/``ramp_end`` to ``rampUp``/``rampDown`` nodes. The duration of a
    repeat group is ignored; it comes from expanding its subblocks.
    """

    type: BlockType
    duration_sec: int = 0
    tempo: TempoTarget = field(default_factory=TempoTarget)
    repeat_count: int | None = None
    subblocks: tuple[Block, ...] | None = None
    ramp_start: int | None = None
    ramp_end: int | None = None
    id: UUID = field(default_factory=uuid4)

    def copy_with_new_id(self) -> Block:
        subblocks = None
        if self.subblocks is not None:
            subblocks = tuple(sub.copy_with_new_id() for sub in self.subblocks)
        return replace(self, id=uuid4(), subblocks=subblocks)


def repeat_group(count: int, *subblocks: Block) -> Block:
    return Block(type="repeatGroup", repeat_count=count, subblocks=tuple(subblocks))


def ramp(kind: Literal["rampUp", "rampDown"], duration_sec: int, start: int, end: int) -> Block:
    return Block(type=kind, duration_sec=duration_sec, ramp_start=start, ramp_end=end)


@dataclass(frozen=True)
class TimelineItem:
    """A flat segment ``[start_sec, end_sec)`` produced by the interval compiler.

    ``id`` identifies this particular segment instance and is excluded from
    equality, so two compiles of the same blocks compare equal.
    """

    type: BlockType
    start_sec: int
    end_sec: int
    tempo: TempoTarget = field(default_factory=TempoTarget)
    ramp_start: int | None = None
    ramp_end: int | None = None
    id: UUID = field(default_factory=uuid4, compare=False)

    @property
    def duration_sec(self) -> int:
        return self.end_sec - self.start_sec


@dataclass(frozen=True)
class Program:
    name: str
    blocks: tuple[Block, ...]
    tags: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)
    id: UUID = field(default_factory=uuid4)

    def duplicate(self, name: str | None = None) -> Program:
        now = _utc_now()
        return replace(
            self,
            id=uuid4(),
            name=name or f"{self.name} Copy",
            blocks=tuple(block.copy_with_new_id() for block in self.blocks),
            created_at=now,
            updated_at=now,
        )


@dataclass(frozen=True)
class BlockLog:
    type: BlockType
    target: TempoTarget
    duration_sec: int
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class Session:
    """Post-hoc log of one run."""

    date: datetime
    total_sec: int
    blocks: tuple[BlockLog, ...] = ()
    program_id: UUID | None = None
    quick_name: str | None = None
    in_zone_percent: float | None = None
    rpe: int | None = None
    note: str | None = None
    id: UUID = field(default_factory=uuid4)
