"""Display formatting shared by the terminal and web front ends."""

from __future__ import annotations

from datetime import datetime

from bovela.workout.model import BlockType, TempoTarget


BLOCK_LABELS: dict[BlockType, str] = {
    "warmup": "Warmup",
    "work": "Work",
    "recover": "Recover",
    "cooldown": "Cool-down",
    "rampUp": "Ramp Up",
    "rampDown": "Ramp Down",
    "repeatGroup": "Repeat",
}


def fmt_time(total_seconds: int) -> str:
    minutes, seconds = divmod(max(0, total_seconds), 60)
    return f"{minutes:02d}:{seconds:02d}"


def fmt_tempo(target: TempoTarget) -> str:
    if target.mode == "fixed":
        return f"{target.value or 0} spm"
    if target.mode == "range":
        return f"{target.min or 0}–{target.max or 0} spm"
    return "—"


def fmt_percent(value: float | None) -> str:
    if value is None:
        return "—"
    return f"{value * 100:.0f}%"


def fmt_date(value: datetime) -> str:
    return value.astimezone().strftime("%b %d, %Y %H:%M")


def block_label(block_type: BlockType) -> str:
    return BLOCK_LABELS[block_type]
