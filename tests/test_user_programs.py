from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from uuid import UUID

from bovela.core.persistence import PersistenceStore
from bovela.workout.model import Block, Program, TempoTarget
from bovela.workout.user_programs import PROGRAMS_KEY, ProgramRepository


def _program(name: str = "My Build") -> Program:
    return Program(
        name=name,
        tags=("custom",),
        blocks=(Block(type="work", duration_sec=180, tempo=TempoTarget.fixed(175)),),
    )


def test_empty_store_is_seeded_with_default_programs(tmp_path: Path) -> None:
    repo = ProgramRepository(PersistenceStore(tmp_path))
    assert [p.name for p in repo.items] == ["Tabata 8x20/10"]


def test_add_persists_and_reloads(tmp_path: Path) -> None:
    store = PersistenceStore(tmp_path)
    repo = ProgramRepository(store)
    program = repo.add(_program())

    assert (tmp_path / PROGRAMS_KEY).exists()
    reloaded = ProgramRepository(store)
    assert [p.name for p in reloaded.items] == ["Tabata 8x20/10", "My Build"]
    assert reloaded.by_id(program.id) == program


def test_update_remove_and_find(tmp_path: Path) -> None:
    repo = ProgramRepository(PersistenceStore(tmp_path))
    program = repo.add(_program())

    renamed = repo.update(replace(program, name="Renamed"))
    assert renamed.updated_at >= program.updated_at
    assert repo.find("renamed") == renamed
    assert repo.find(str(program.id)) == renamed
    assert repo.find("missing") is None

    repo.remove(program.id)
    assert repo.by_id(program.id) is None
    assert len(ProgramRepository(PersistenceStore(tmp_path)).items) == 1


def test_duplicate_adds_copy(tmp_path: Path) -> None:
    repo = ProgramRepository(PersistenceStore(tmp_path))
    source = repo.items[0]

    copy = repo.duplicate(source.id)

    assert copy is not None
    assert copy.name == f"{source.name} Copy"
    assert copy.id != source.id
    assert len(repo.items) == 2
    assert repo.duplicate(UUID(int=0)) is None


def test_invalid_stored_programs_are_skipped(tmp_path: Path) -> None:
    store = PersistenceStore(tmp_path)
    store.save(
        [
            {"name": "Good", "blocks": [{"type": "work", "duration_sec": 60}]},
            {"name": "Bad", "blocks": [{"type": "nap"}]},
        ],
        PROGRAMS_KEY,
    )

    repo = ProgramRepository(store)

    assert [p.name for p in repo.items] == ["Good"]


def test_corrupt_store_falls_back_to_defaults(tmp_path: Path) -> None:
    (tmp_path / PROGRAMS_KEY).write_text("not json", encoding="utf-8")

    repo = ProgramRepository(PersistenceStore(tmp_path))

    assert [p.name for p in repo.items] == ["Tabata 8x20/10"]


def test_store_load_default_and_save(tmp_path: Path) -> None:
    store = PersistenceStore(tmp_path / "nested")
    assert store.load("missing.json", {"a": 1}) == {"a": 1}

    path = store.save({"b": [1, 2]}, "blob.json")

    assert json.loads(path.read_text(encoding="utf-8")) == {"b": [1, 2]}
    assert store.load("blob.json", None) == {"b": [1, 2]}


def test_seeded_defaults_keep_their_identity_across_loads(tmp_path: Path) -> None:
    first = ProgramRepository(PersistenceStore(tmp_path)).items[0]
    second = ProgramRepository(PersistenceStore(tmp_path)).items[0]
    assert first.id == second.id
