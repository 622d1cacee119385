"""Async-facing controller shared by the terminal engine and the web UI."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence
from uuid import UUID

from bovela.core.haptics import HapticSink, HapticsManager, NullHaptics
from bovela.core.persistence import PersistenceStore
from bovela.core.settings import AppSettings, load_settings, save_settings
from bovela.core.state import RunnerState
from bovela.workout.builder import ProgramBuilder
from bovela.workout.library import quick_blocks, validate_program, validate_quick
from bovela.workout.model import Block, Program, Session, TempoTarget
from bovela.workout.runner import SessionRunner
from bovela.workout.session_store import (
    HistoryFilter,
    HistorySection,
    SessionRepository,
    build_session,
    filter_sessions,
    history_sections,
)
from bovela.workout.user_programs import ProgramRepository


class SessionController:
    def __init__(
        self,
        base_dir: Path | None = None,
        haptics: HapticSink | None = None,
        time_scale: float = 1.0,
        debug: bool = False,
    ) -> None:
        self.store = PersistenceStore(base_dir, debug=debug)
        self.settings = load_settings(self.store)
        self.haptics = HapticsManager(haptics or NullHaptics())
        self.haptics.configure(self.settings.haptics_enabled, self.settings.haptics_intensity)
        self.programs = ProgramRepository(self.store, debug=debug)
        self.sessions = SessionRepository(self.store, debug=debug)
        self.builder = ProgramBuilder()
        self.runner = SessionRunner(
            self.haptics,
            time_scale=time_scale,
            frame_warning_sec=self.settings.frame_warning_sec,
            debug=debug,
        )
        self._program_id: UUID | None = None
        self._quick_name: str | None = None
        self._recorded = True

    @property
    def state(self) -> RunnerState:
        return self.runner.state

    @property
    def active_program_id(self) -> UUID | None:
        return self._program_id

    # -- starting a run ---------------------------------------------------

    def program_error(self, program: Program) -> str | None:
        return validate_program(program)

    def quick_error(self, duration_sec: int, tempo: TempoTarget) -> str | None:
        if not validate_quick(duration_sec, tempo):
            return "Quick session needs a positive duration and a tempo within 40-300 spm"
        return None

    def start_program(self, program: Program) -> str | None:
        """Start ``program``; returns an error message when it cannot run."""
        error = self.program_error(program)
        if error is not None:
            return error
        return self._start(program.blocks, program_id=program.id)

    def start_quick(self, duration_sec: int, tempo: TempoTarget, name: str = "Quick Session") -> str | None:
        error = self.quick_error(duration_sec, tempo)
        if error is not None:
            return error
        return self._start(quick_blocks(duration_sec, tempo), quick_name=name)

    def start_builder(self) -> str | None:
        """Run the builder's blocks without saving them first."""
        if not self.builder.validate():
            return self.builder.validation_error
        if self.builder.editing_id is not None and self.programs.by_id(self.builder.editing_id):
            return self._start(self.builder.blocks, program_id=self.builder.editing_id)
        return self._start(self.builder.blocks, quick_name=self.builder.name)

    def _start(
        self,
        blocks: Sequence[Block],
        *,
        program_id: UUID | None = None,
        quick_name: str | None = None,
    ) -> str | None:
        if not self.runner.start(blocks):
            return "Nothing to run"
        self._program_id = program_id
        self._quick_name = quick_name
        self._recorded = False
        return None

    # -- live controls ----------------------------------------------------

    def toggle_pause(self) -> None:
        if self.runner.is_running:
            self.runner.pause()
        else:
            self.runner.resume()

    def skip(self) -> None:
        self.runner.skip()

    def seek_forward(self) -> None:
        self.runner.seek(self.settings.seek_step_sec)

    def seek_back(self) -> None:
        self.runner.seek(-self.settings.seek_step_sec)

    def end(self) -> None:
        self.runner.end()

    def finish(self, rpe: int | None = None, note: str | None = None) -> Session | None:
        """Record the current run in history once, after it has ended."""
        if self._recorded or self.runner.state.phase != "ended":
            return None
        session = build_session(
            self.runner.timeline,
            self.runner.elapsed_sec,
            program_id=self._program_id,
            quick_name=self._quick_name,
            rpe=rpe,
            note=note,
        )
        self.sessions.add(session)
        self._recorded = True
        self.runner.acknowledge_end()
        return session

    # -- programs ---------------------------------------------------------

    def save_builder(self) -> Program | None:
        return self.builder.save(self.programs)

    def edit_program(self, program_id: UUID) -> bool:
        program = self.programs.by_id(program_id)
        if program is None:
            return False
        self.builder.edit(program)
        return True

    def delete_program(self, program_id: UUID) -> bool:
        if self.programs.by_id(program_id) is None:
            return False
        self.programs.remove(program_id)
        if self.builder.editing_id == program_id:
            self.builder.reset()
        return True

    # -- history ----------------------------------------------------------

    def session_name(self, session: Session) -> str:
        program = self.programs.by_id(session.program_id) if session.program_id else None
        if program is not None:
            return program.name
        return session.quick_name or "Session"

    def history(self, history_filter: HistoryFilter | None = None) -> list[Session]:
        return filter_sessions(self.sessions.sessions, history_filter or HistoryFilter())

    def history_sections(self, history_filter: HistoryFilter | None = None) -> list[HistorySection]:
        return history_sections(self.history(history_filter))

    def rate_session(self, session_id: UUID, rpe: int | None, note: str | None = None) -> Session | None:
        if rpe is not None and not 1 <= rpe <= 10:
            raise ValueError("RPE must be between 1 and 10")
        return self.sessions.rate(session_id, rpe, note)

    def update_settings(self, settings: AppSettings) -> None:
        self.settings = settings
        self.haptics.configure(settings.haptics_enabled, settings.haptics_intensity)
        self.runner.frame_warning_sec = settings.frame_warning_sec
        save_settings(self.store, settings)
