"""Published runtime state of the session runner."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from bovela.workout.model import TimelineItem


RunnerPhase = Literal["idle", "running", "paused", "ended"]


@dataclass(frozen=True)
class RunnerState:
    phase: RunnerPhase = "idle"
    total_sec: int = 0
    elapsed_sec: int = 0
    current_index: int = 0
    current: TimelineItem | None = None
    end_signal: bool = False
    started_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self.phase == "running"

    @property
    def remaining_sec(self) -> int:
        return max(0, self.total_sec - self.elapsed_sec)

    @property
    def segment_remaining_sec(self) -> int:
        if self.current is None:
            return 0
        return max(0, self.current.end_sec - self.elapsed_sec)

    @property
    def progress(self) -> float:
        if self.total_sec <= 0:
            return 0.0
        return min(1.0, self.elapsed_sec / self.total_sec)
