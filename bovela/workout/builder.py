"""Program builder: an editable block list with a live total duration."""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID

from bovela.workout.compiler import CompileError, compile_blocks, total_duration
from bovela.workout.library import tempo_in_bounds, validate_program
from bovela.workout.model import (
    MAX_SPM,
    MIN_SPM,
    RAMP_TYPES,
    Block,
    BlockType,
    Program,
    TempoMode,
    TempoTarget,
    repeat_group,
)
from bovela.workout.user_programs import ProgramRepository


DEFAULT_PROGRAM_NAME = "Custom Program"


def make_block(
    block_type: BlockType,
    duration_sec: int = 60,
    tempo: TempoTarget | None = None,
    *,
    repeat_count: int = 4,
    subblocks: tuple[Block, ...] = (),
    ramp_start: int = 150,
    ramp_end: int = 190,
) -> Block:
    if block_type == "repeatGroup":
        return repeat_group(repeat_count, *subblocks)
    if block_type in RAMP_TYPES:
        return Block(
            type=block_type,
            duration_sec=duration_sec,
            ramp_start=ramp_start,
            ramp_end=ramp_end,
        )
    return Block(type=block_type, duration_sec=duration_sec, tempo=tempo or TempoTarget.none())


def block_error(block: Block) -> str | None:
    """Why ``block`` cannot be added to a program, or None."""
    if block.type == "repeatGroup":
        if not block.subblocks:
            return "Repeat group needs at least one inner block"
        for sub in block.subblocks:
            error = block_error(sub)
            if error is not None:
                return error
    elif block.type in RAMP_TYPES:
        for value in (block.ramp_start, block.ramp_end):
            if value is None or not MIN_SPM <= value <= MAX_SPM:
                return f"Ramp tempo must be within {MIN_SPM}-{MAX_SPM} spm"
    elif not tempo_in_bounds(block.tempo):
        return f"Tempo must be within {MIN_SPM}-{MAX_SPM} spm"
    try:
        compile_blocks([block])
    except CompileError as exc:
        return str(exc)
    return None


class ProgramBuilder:
    """Composes a program block by block.

    Top-level blocks are edited in place. Inner blocks are collected separately
    and wrapped into a repeat group with ``group_inner``. Every edit refreshes
    ``total_duration``.
    """

    def __init__(self, name: str = DEFAULT_PROGRAM_NAME) -> None:
        self.name = name
        self.tags: tuple[str, ...] = ()
        self.total_duration = 0
        self.validation_error: str | None = None
        self._blocks: list[Block] = []
        self._inner: list[Block] = []
        self._editing: Program | None = None

    @property
    def blocks(self) -> tuple[Block, ...]:
        return tuple(self._blocks)

    @property
    def inner_blocks(self) -> tuple[Block, ...]:
        return tuple(self._inner)

    @property
    def editing_id(self) -> UUID | None:
        return self._editing.id if self._editing is not None else None

    def add_block(self, block: Block) -> str | None:
        error = block_error(block)
        if error is None:
            self._blocks.append(block)
            self.recalc()
        return error

    def remove_block(self, index: int) -> None:
        if 0 <= index < len(self._blocks):
            del self._blocks[index]
            self.recalc()

    def move_block(self, source: int, destination: int) -> None:
        """Move the block at ``source`` so that it ends up at ``destination``."""
        if not 0 <= source < len(self._blocks):
            return
        block = self._blocks.pop(source)
        self._blocks.insert(max(0, min(destination, len(self._blocks))), block)
        self.recalc()

    def duplicate_block(self, index: int) -> None:
        if 0 <= index < len(self._blocks):
            self._blocks.insert(index + 1, self._blocks[index].copy_with_new_id())
            self.recalc()

    def add_inner(self, block: Block) -> str | None:
        if block.type == "repeatGroup":
            return "Repeat groups cannot be nested from the builder"
        error = block_error(block)
        if error is None:
            self._inner.append(block)
        return error

    def remove_inner(self, index: int) -> None:
        if 0 <= index < len(self._inner):
            del self._inner[index]

    def group_inner(self, repeat_count: int) -> str | None:
        group = make_block("repeatGroup", repeat_count=repeat_count, subblocks=tuple(self._inner))
        error = self.add_block(group)
        if error is None:
            self._inner.clear()
        return error

    def recalc(self) -> None:
        self.total_duration = total_duration(self._blocks)

    def dominant_tempo_mode(self) -> TempoMode:
        modes = [block.tempo.mode for block in self._blocks]
        counts = {mode: modes.count(mode) for mode in ("fixed", "range", "none")}
        best = max(counts.values())
        if counts["fixed"] == best:
            return "fixed"
        if counts["range"] == best:
            return "range"
        return "none"

    def build_program(self) -> Program:
        if self._editing is not None:
            return replace(self._editing, name=self.name, tags=self.tags, blocks=self.blocks)
        return Program(name=self.name, tags=self.tags, blocks=self.blocks)

    def validate(self) -> bool:
        self.validation_error = validate_program(self.build_program())
        return self.validation_error is None

    def save(self, repository: ProgramRepository) -> Program | None:
        """Add the program, or update the one being edited. None when invalid."""
        if not self.validate():
            return None
        program = self.build_program()
        if self._editing is not None and repository.by_id(self._editing.id) is not None:
            saved = repository.update(program)
        else:
            saved = repository.add(program)
        self._editing = saved
        return saved

    def edit(self, program: Program) -> None:
        self.name = program.name
        self.tags = program.tags
        self._blocks = list(program.blocks)
        self._inner.clear()
        self._editing = program
        self.validation_error = None
        self.recalc()

    def reset(self) -> None:
        self.name = DEFAULT_PROGRAM_NAME
        self.tags = ()
        self._blocks.clear()
        self._inner.clear()
        self._editing = None
        self.validation_error = None
        self.total_duration = 0
