"""User programs stored locally."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from uuid import UUID

from bovela.core.persistence import PersistenceStore
from bovela.workout.library import default_programs
from bovela.workout.model import Program
from bovela.workout.parser import ProgramParseError, program_from_dict, program_to_dict


PROGRAMS_KEY = "programs.json"


class ProgramRepository:
    def __init__(self, store: PersistenceStore, debug: bool = False) -> None:
        self._store = store
        self._debug = debug
        self._items: list[Program] = self._load()

    @property
    def items(self) -> tuple[Program, ...]:
        return tuple(self._items)

    def add(self, program: Program) -> Program:
        self._items.append(program)
        self._save()
        return program

    def update(self, program: Program) -> Program:
        updated = replace(program, updated_at=datetime.now(tz=timezone.utc))
        self._items = [updated if item.id == program.id else item for item in self._items]
        self._save()
        return updated

    def remove(self, program_id: UUID) -> None:
        self._items = [item for item in self._items if item.id != program_id]
        self._save()

    def by_id(self, program_id: UUID) -> Program | None:
        return next((item for item in self._items if item.id == program_id), None)

    def find(self, name_or_id: str) -> Program | None:
        """Match a full id, then an exact name, then a case-insensitive name."""
        for item in self._items:
            if str(item.id) == name_or_id or item.name == name_or_id:
                return item
        wanted = name_or_id.casefold()
        return next((item for item in self._items if item.name.casefold() == wanted), None)

    def duplicate(self, program_id: UUID) -> Program | None:
        source = self.by_id(program_id)
        if source is None:
            return None
        return self.add(source.duplicate())

    def _load(self) -> list[Program]:
        raw = self._store.load(PROGRAMS_KEY, None)
        if not isinstance(raw, list):
            seeded = default_programs()
            self._store.save([program_to_dict(item) for item in seeded], PROGRAMS_KEY)
            return seeded
        out: list[Program] = []
        for i, item in enumerate(raw):
            try:
                out.append(program_from_dict(item))
            except ProgramParseError as exc:
                if self._debug:
                    print(f"[STORE] skipping stored program {i + 1}: {exc}")
        return out

    def _save(self) -> None:
        self._store.save([program_to_dict(item) for item in self._items], PROGRAMS_KEY)
