"""Built-in programs, library search and quick-session helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from bovela.workout.compiler import CompileError, compile_blocks, total_duration
from bovela.workout.model import (
    MAX_SPM,
    MIN_SPM,
    Block,
    Program,
    TempoTarget,
    ramp,
    repeat_group,
)


@dataclass(frozen=True)
class ProgramTemplate:
    key: str
    name: str
    tags: tuple[str, ...]
    build_blocks: Callable[[], tuple[Block, ...]]


def _tabata() -> tuple[Block, ...]:
    return (
        repeat_group(
            8,
            Block(type="work", duration_sec=20, tempo=TempoTarget.fixed(170)),
            Block(type="recover", duration_sec=10),
        ),
    )


def _cadence_ladder() -> tuple[Block, ...]:
    return (
        Block(type="warmup", duration_sec=300, tempo=TempoTarget.range(150, 160)),
        ramp("rampUp", 120, 160, 180),
        Block(type="work", duration_sec=180, tempo=TempoTarget.fixed(180)),
        ramp("rampDown", 120, 180, 160),
        Block(type="cooldown", duration_sec=240),
    )


def _strides_6x30() -> tuple[Block, ...]:
    return (
        Block(type="warmup", duration_sec=600, tempo=TempoTarget.range(155, 165)),
        repeat_group(
            6,
            Block(type="work", duration_sec=30, tempo=TempoTarget.fixed(190)),
            Block(type="recover", duration_sec=60, tempo=TempoTarget.range(150, 160)),
        ),
        Block(type="cooldown", duration_sec=300),
    )


def _pyramid() -> tuple[Block, ...]:
    return (
        Block(type="warmup", duration_sec=480, tempo=TempoTarget.fixed(160)),
        repeat_group(
            2,
            Block(type="work", duration_sec=60, tempo=TempoTarget.fixed(175)),
            Block(type="recover", duration_sec=60),
            Block(type="work", duration_sec=120, tempo=TempoTarget.fixed(180)),
            Block(type="recover", duration_sec=60),
            repeat_group(
                3,
                Block(type="work", duration_sec=20, tempo=TempoTarget.fixed(205)),
                Block(type="recover", duration_sec=20),
            ),
        ),
        Block(type="cooldown", duration_sec=300),
    )


TEMPLATES: tuple[ProgramTemplate, ...] = (
    ProgramTemplate("tabata_8x20_10", "Tabata 8x20/10", ("hiit",), _tabata),
    ProgramTemplate("cadence_ladder", "Cadence Ladder", ("tempo", "ramp"), _cadence_ladder),
    ProgramTemplate("strides_6x30", "Strides 6x30", ("speed",), _strides_6x30),
    ProgramTemplate("pyramid_2x", "Double Pyramid", ("hiit", "speed"), _pyramid),
)

DEFAULT_TEMPLATE_KEYS: tuple[str, ...] = ("tabata_8x20_10",)


def list_templates() -> tuple[ProgramTemplate, ...]:
    return TEMPLATES


def build_program_from_template(template_key: str) -> Program:
    template = next((item for item in TEMPLATES if item.key == template_key), None)
    if template is None:
        raise ValueError(f"Unknown program template '{template_key}'")
    return Program(name=template.name, tags=template.tags, blocks=template.build_blocks())


def default_programs() -> list[Program]:
    return [build_program_from_template(key) for key in DEFAULT_TEMPLATE_KEYS]


def filter_programs(
    programs: Iterable[Program], query: str = "", tag: str | None = None
) -> list[Program]:
    q = query.strip().casefold()
    return [
        program
        for program in programs
        if (not q or q in program.name.casefold()) and (tag is None or tag in program.tags)
    ]


def all_tags(programs: Iterable[Program]) -> list[str]:
    return sorted({tag for program in programs for tag in program.tags})


def program_duration(program: Program) -> int:
    return total_duration(program.blocks)


def validate_program(program: Program) -> str | None:
    """Return a user-facing error message, or None when the program can run."""
    if not program.name.strip():
        return "Name cannot be empty"
    if not program.blocks:
        return "Program must contain at least one block"
    try:
        timeline = compile_blocks(program.blocks)
    except CompileError as exc:
        return str(exc)
    if not timeline or timeline[-1].end_sec <= 0:
        return "Program has no duration"
    return None


def quick_blocks(duration_sec: int, tempo: TempoTarget) -> tuple[Block, ...]:
    return (Block(type="work", duration_sec=duration_sec, tempo=tempo),)


def tempo_in_bounds(tempo: TempoTarget) -> bool:
    if tempo.mode == "fixed":
        return tempo.value is not None and MIN_SPM <= tempo.value <= MAX_SPM
    if tempo.mode == "range":
        return (
            tempo.min is not None
            and tempo.max is not None
            and tempo.min >= MIN_SPM
            and tempo.max <= MAX_SPM
            and tempo.min <= tempo.max
        )
    return True


def validate_quick(duration_sec: int, tempo: TempoTarget) -> bool:
    return duration_sec > 0 and tempo_in_bounds(tempo)
