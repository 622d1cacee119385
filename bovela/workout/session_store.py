"""Local history of completed/stopped sessions."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Iterable, Sequence
from uuid import UUID

from bovela.core.persistence import PersistenceStore
from bovela.workout.model import BlockLog, Session, TimelineItem
from bovela.workout.parser import ProgramParseError, session_from_dict, session_to_dict


SESSIONS_KEY = "sessions.json"


def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


def local_day(value: datetime) -> date:
    """Calendar day of ``value`` in the machine's local time zone."""
    return value.astimezone().date()


def build_session(
    timeline: Sequence[TimelineItem],
    elapsed_sec: int,
    *,
    program_id: UUID | None = None,
    quick_name: str | None = None,
    rpe: int | None = None,
    note: str | None = None,
    ended_at: datetime | None = None,
) -> Session:
    """Summarize a run: one log entry per segment that was reached."""
    total = timeline[-1].end_sec if timeline else 0
    played = max(0, min(elapsed_sec, total))
    logs = tuple(
        BlockLog(
            type=item.type,
            target=item.tempo,
            duration_sec=min(item.end_sec, played) - item.start_sec,
        )
        for item in timeline
        if item.start_sec < played
    )
    return Session(
        date=ended_at or now_utc(),
        program_id=program_id,
        quick_name=quick_name,
        total_sec=played,
        rpe=rpe,
        note=note,
        blocks=logs,
    )


class SessionRepository:
    def __init__(self, store: PersistenceStore, debug: bool = False) -> None:
        self._store = store
        self._debug = debug
        self._items: list[Session] = self._load()

    @property
    def sessions(self) -> tuple[Session, ...]:
        return tuple(self._items)

    def add(self, session: Session) -> None:
        self._items.insert(0, session)
        self._save()

    def update(self, session: Session) -> None:
        self._items = [session if item.id == session.id else item for item in self._items]
        self._save()

    def remove(self, session_id: UUID) -> None:
        self._items = [item for item in self._items if item.id != session_id]
        self._save()

    def clear(self) -> None:
        self._items.clear()
        self._save()

    def rate(self, session_id: UUID, rpe: int | None, note: str | None = None) -> Session | None:
        found = next((item for item in self._items if item.id == session_id), None)
        if found is None:
            return None
        updated = replace(found, rpe=rpe, note=note if note is not None else found.note)
        self.update(updated)
        return updated

    def _load(self) -> list[Session]:
        raw = self._store.load(SESSIONS_KEY, [])
        if not isinstance(raw, list):
            return []
        out: list[Session] = []
        for item in raw:
            try:
                out.append(session_from_dict(item))
            except (ProgramParseError, TypeError, ValueError) as exc:
                if self._debug:
                    print(f"[STORE] skipping stored session: {exc}")
        return out

    def _save(self) -> None:
        self._store.save([session_to_dict(item) for item in self._items], SESSIONS_KEY)


@dataclass(frozen=True)
class HistoryFilter:
    date_from: date | None = None
    date_to: date | None = None
    min_rpe: int | None = None
    max_rpe: int | None = None

    def matches(self, session: Session) -> bool:
        day = local_day(session.date)
        if self.date_from is not None and day < self.date_from:
            return False
        if self.date_to is not None and day > self.date_to:
            return False
        # Unrated sessions count as 0 for the lower bound and 10 for the upper.
        if self.min_rpe is not None and (session.rpe or 0) < self.min_rpe:
            return False
        if self.max_rpe is not None and (session.rpe if session.rpe is not None else 10) > self.max_rpe:
            return False
        return True


@dataclass(frozen=True)
class HistorySection:
    day: date
    items: tuple[Session, ...]


def filter_sessions(sessions: Iterable[Session], history_filter: HistoryFilter) -> list[Session]:
    return [session for session in sessions if history_filter.matches(session)]


def history_sections(sessions: Iterable[Session]) -> list[HistorySection]:
    grouped: dict[date, list[Session]] = {}
    for session in sessions:
        grouped.setdefault(local_day(session.date), []).append(session)
    return [
        HistorySection(
            day=day,
            items=tuple(sorted(grouped[day], key=lambda s: s.date, reverse=True)),
        )
        for day in sorted(grouped, reverse=True)
    ]


def total_time(sessions: Iterable[Session]) -> int:
    return sum(session.total_sec for session in sessions)


def average_rpe(sessions: Iterable[Session]) -> float | None:
    values = [session.rpe for session in sessions if session.rpe is not None]
    if not values:
        return None
    return sum(values) / len(values)


def average_in_zone(sessions: Iterable[Session]) -> float | None:
    values = [s.in_zone_percent for s in sessions if s.in_zone_percent is not None]
    if not values:
        return None
    return sum(values) / len(values)

