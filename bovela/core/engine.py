"""Terminal session engine: runs one workout and prints the countdown."""

from __future__ import annotations

import asyncio

from bovela.core.state import RunnerState
from bovela.ui.controller import SessionController
from bovela.ui.formatters import block_label, fmt_tempo, fmt_time
from bovela.workout.model import Program, Session, TempoTarget
from bovela.workout.runner import computed_tempo


class TerminalEngine:
    def __init__(self, controller: SessionController) -> None:
        self._controller = controller
        self._last_elapsed: int | None = None
        self._last_index: int | None = None

    async def run_program(self, program: Program) -> Session | None:
        error = self._controller.start_program(program)
        return await self._run(program.name, error)

    async def run_quick(self, duration_sec: int, tempo: TempoTarget) -> Session | None:
        error = self._controller.start_quick(duration_sec, tempo)
        return await self._run("Quick Session", error)

    def stop(self) -> None:
        self._controller.end()

    async def _run(self, name: str, error: str | None) -> Session | None:
        if error is not None:
            print(f"Cannot start '{name}': {error}")
            return None

        runner = self._controller.runner
        print(f"Running '{name}' ({fmt_time(runner.total_sec)}, {len(runner.timeline)} segments)")
        self._last_elapsed = None
        self._last_index = None
        unsubscribe = runner.subscribe(self._on_state)
        try:
            self._on_state(runner.state)
            await runner.wait_ended()
        except asyncio.CancelledError:
            runner.end()
            raise
        finally:
            unsubscribe()

        session = self._controller.finish()
        if session is not None:
            print(
                f"\nSession recorded: {fmt_time(session.total_sec)} "
                f"over {len(session.blocks)} segments"
            )
        return session

    def _on_state(self, state: RunnerState) -> None:
        if state.current is None or state.phase != "running":
            return
        if state.elapsed_sec == self._last_elapsed and state.current_index == self._last_index:
            return
        self._last_elapsed = state.elapsed_sec
        self._last_index = state.current_index

        item = state.current
        spm = computed_tempo(item, state.elapsed_sec)
        target = fmt_tempo(item.tempo) if item.ramp_start is None else f"{item.ramp_start}→{item.ramp_end} spm"
        print(
            f"\n{fmt_time(state.elapsed_sec)} / {fmt_time(state.total_sec)} | "
            f"{state.current_index + 1}. {block_label(item.type):<9} | "
            f"target {target} ({spm or '-'} now) | "
            f"left {fmt_time(state.segment_remaining_sec)}",
            end="",
            flush=True,
        )
