"""Program JSON parsing and serialization."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, cast
from uuid import UUID, uuid4

from bovela.workout.model import (
    BLOCK_TYPES,
    MAX_SPM,
    MIN_SPM,
    RAMP_TYPES,
    Block,
    BlockLog,
    BlockType,
    Program,
    Session,
    TempoMode,
    TEMPO_MODES,
    TempoTarget,
)


class ProgramParseError(ValueError):
    """Raised when a program file or payload is invalid."""


def load_program(path: str | Path) -> Program:
    file_path = Path(path)
    if file_path.suffix.lower() != ".json":
        raise ProgramParseError(
            f"Unsupported program format '{file_path.suffix}'. Use .json"
        )
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ProgramParseError(f"Invalid JSON: {exc}") from exc
    return program_from_dict(data, fallback_name=file_path.stem)


def program_from_dict(data: object, fallback_name: str = "Custom Program") -> Program:
    if not isinstance(data, dict):
        raise ProgramParseError("Program JSON must be an object")

    name_obj = data.get("name", fallback_name)
    if not isinstance(name_obj, str):
        raise ProgramParseError("Program field 'name' must be a string")

    tags_obj = data.get("tags", [])
    if not isinstance(tags_obj, list) or not all(isinstance(t, str) for t in tags_obj):
        raise ProgramParseError("Program field 'tags' must be an array of strings")

    blocks_obj = data.get("blocks")
    if not isinstance(blocks_obj, list):
        raise ProgramParseError("Program field 'blocks' must be an array")

    blocks = tuple(block_from_dict(raw, path=f"Block {i + 1}") for i, raw in enumerate(blocks_obj))
    now = datetime.now(tz=timezone.utc)
    return Program(
        id=_parse_uuid(data.get("id"), "Program"),
        name=name_obj.strip() or fallback_name,
        tags=tuple(tags_obj),
        blocks=blocks,
        created_at=_parse_datetime(data.get("created_at"), "created_at", default=now),
        updated_at=_parse_datetime(data.get("updated_at"), "updated_at", default=now),
    )


def block_from_dict(raw: object, path: str = "Block") -> Block:
    if not isinstance(raw, dict):
        raise ProgramParseError(f"{path}: must be an object")

    type_obj = raw.get("type")
    if type_obj not in BLOCK_TYPES:
        raise ProgramParseError(
            f"{path}: invalid type {type_obj!r}, expected one of {', '.join(BLOCK_TYPES)}"
        )
    block_type = cast(BlockType, type_obj)
    tempo = tempo_from_dict(raw.get("tempo"), path=path)
    block_id = _parse_uuid(raw.get("id"), path)

    if block_type == "repeatGroup":
        repeat_count = _parse_int(raw.get("repeat_count"), "repeat_count", path)
        subblocks_obj = raw.get("subblocks")
        if not isinstance(subblocks_obj, list):
            raise ProgramParseError(f"{path}: repeat group needs a 'subblocks' array")
        subblocks = tuple(
            block_from_dict(sub, path=f"{path}.{i + 1}") for i, sub in enumerate(subblocks_obj)
        )
        return Block(
            id=block_id,
            type=block_type,
            duration_sec=0,
            tempo=tempo,
            repeat_count=repeat_count,
            subblocks=subblocks,
        )

    duration_sec = _parse_int(raw.get("duration_sec"), "duration_sec", path)
    if duration_sec < 0:
        raise ProgramParseError(f"{path}: duration_sec must be >= 0")

    ramp_start: int | None = None
    ramp_end: int | None = None
    if block_type in RAMP_TYPES:
        ramp_start = _parse_spm(raw.get("ramp_start"), "ramp_start", path)
        ramp_end = _parse_spm(raw.get("ramp_end"), "ramp_end", path)

    return Block(
        id=block_id,
        type=block_type,
        duration_sec=duration_sec,
        tempo=tempo,
        ramp_start=ramp_start,
        ramp_end=ramp_end,
    )


def tempo_from_dict(raw: object, path: str = "Block") -> TempoTarget:
    if raw is None:
        return TempoTarget.none()
    if not isinstance(raw, dict):
        raise ProgramParseError(f"{path}: tempo must be an object")
    mode_obj = raw.get("mode", "none")
    if mode_obj not in TEMPO_MODES:
        raise ProgramParseError(f"{path}: invalid tempo mode {mode_obj!r}")
    mode = cast(TempoMode, mode_obj)

    if mode == "fixed":
        return TempoTarget.fixed(_parse_spm(raw.get("value"), "tempo.value", path))
    if mode == "range":
        low = _parse_spm(raw.get("min"), "tempo.min", path)
        high = _parse_spm(raw.get("max"), "tempo.max", path)
        if low > high:
            raise ProgramParseError(f"{path}: tempo.min must be <= tempo.max")
        return TempoTarget.range(low, high)
    return TempoTarget.none()


def tempo_to_dict(target: TempoTarget) -> dict[str, Any]:
    return {"mode": target.mode, "value": target.value, "min": target.min, "max": target.max}


def block_to_dict(block: Block) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": str(block.id),
        "type": block.type,
        "duration_sec": int(block.duration_sec),
        "tempo": tempo_to_dict(block.tempo),
    }
    if block.type == "repeatGroup":
        payload["repeat_count"] = block.repeat_count
        payload["subblocks"] = [block_to_dict(sub) for sub in block.subblocks or ()]
    if block.type in RAMP_TYPES:
        payload["ramp_start"] = block.ramp_start
        payload["ramp_end"] = block.ramp_end
    return payload


def program_to_dict(program: Program) -> dict[str, Any]:
    return {
        "id": str(program.id),
        "name": program.name,
        "tags": list(program.tags),
        "created_at": program.created_at.isoformat(),
        "updated_at": program.updated_at.isoformat(),
        "blocks": [block_to_dict(block) for block in program.blocks],
    }


def session_to_dict(session: Session) -> dict[str, Any]:
    return {
        "id": str(session.id),
        "date": session.date.isoformat(),
        "program_id": str(session.program_id) if session.program_id else None,
        "quick_name": session.quick_name,
        "total_sec": session.total_sec,
        "in_zone_percent": session.in_zone_percent,
        "rpe": session.rpe,
        "note": session.note,
        "blocks": [
            {
                "id": str(log.id),
                "type": log.type,
                "target": tempo_to_dict(log.target),
                "duration_sec": log.duration_sec,
            }
            for log in session.blocks
        ],
    }


def session_from_dict(data: object) -> Session:
    if not isinstance(data, dict):
        raise ProgramParseError("Session JSON must be an object")
    blocks_obj = data.get("blocks", [])
    if not isinstance(blocks_obj, list):
        raise ProgramParseError("Session field 'blocks' must be an array")

    logs: list[BlockLog] = []
    for i, raw in enumerate(blocks_obj):
        path = f"Session block {i + 1}"
        if not isinstance(raw, dict) or raw.get("type") not in BLOCK_TYPES:
            raise ProgramParseError(f"{path}: invalid block log")
        logs.append(
            BlockLog(
                id=_parse_uuid(raw.get("id"), path),
                type=cast(BlockType, raw["type"]),
                target=tempo_from_dict(raw.get("target"), path=path),
                duration_sec=_parse_int(raw.get("duration_sec"), "duration_sec", path),
            )
        )

    program_id_obj = data.get("program_id")
    in_zone_obj = data.get("in_zone_percent")
    rpe_obj = data.get("rpe")
    return Session(
        id=_parse_uuid(data.get("id"), "Session"),
        date=_parse_datetime(data.get("date"), "date", default=None),
        program_id=_parse_uuid(program_id_obj, "Session") if program_id_obj else None,
        quick_name=_optional_str(data.get("quick_name")),
        total_sec=_parse_int(data.get("total_sec"), "total_sec", "Session"),
        in_zone_percent=float(in_zone_obj) if in_zone_obj is not None else None,
        rpe=_parse_int(rpe_obj, "rpe", "Session") if rpe_obj is not None else None,
        note=_optional_str(data.get("note")),
        blocks=tuple(logs),
    )


def _parse_int(raw: object, field_name: str, path: str) -> int:
    if raw is None or isinstance(raw, bool):
        raise ProgramParseError(f"{path}: invalid {field_name}")
    try:
        return int(str(raw).strip())
    except ValueError as exc:
        raise ProgramParseError(f"{path}: invalid {field_name}") from exc


def _parse_spm(raw: object, field_name: str, path: str) -> int:
    value = _parse_int(raw, field_name, path)
    if not MIN_SPM <= value <= MAX_SPM:
        raise ProgramParseError(f"{path}: {field_name} must be within {MIN_SPM}-{MAX_SPM}")
    return value


def _parse_uuid(raw: object, path: str) -> UUID:
    if raw is None:
        return uuid4()
    try:
        return UUID(str(raw))
    except ValueError as exc:
        raise ProgramParseError(f"{path}: invalid id {raw!r}") from exc


def _parse_datetime(raw: object, field_name: str, default: datetime | None) -> datetime:
    if raw is None:
        if default is None:
            raise ProgramParseError(f"Missing {field_name}")
        return default
    try:
        value = datetime.fromisoformat(str(raw))
    except ValueError as exc:
        raise ProgramParseError(f"Invalid {field_name}: {raw!r}") from exc
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _optional_str(raw: object) -> str | None:
    if raw is None:
        return None
    return str(raw).strip() or None
