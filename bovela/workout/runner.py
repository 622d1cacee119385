"""Live execution of a compiled timeline on the asyncio event loop.

Two independent timers drive a session: an elapsed tick that fires once per
second and advances through segments, and a beat tick whose period follows the
instantaneous cadence of the current segment. Every public method is
synchronous and runs to completion before either timer can fire again.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence, cast

from bovela.core.haptics import HapticEvent, HapticSink, NullHaptics
from bovela.core.state import RunnerState
from bovela.workout.compiler import CompileError, compile_blocks
from bovela.workout.model import RAMP_TYPES, Block, TimelineItem
from bovela.workout.tempo import (
    BeatPattern,
    beat_interval,
    beat_pattern,
    effective_tempo,
    ramp_value,
)


StateCallback = Callable[[RunnerState], None]

TICK_INTERVAL_SEC = 1.0


def computed_tempo(item: TimelineItem, elapsed_sec: int) -> int:
    """Target cadence of ``item`` at ``elapsed_sec`` (session time)."""
    if item.type in RAMP_TYPES and item.ramp_start is not None and item.ramp_end is not None:
        span = max(1, item.end_sec - item.start_sec)
        progress = min(max((elapsed_sec - item.start_sec) / span, 0.0), 1.0)
        return ramp_value(item.ramp_start, item.ramp_end, progress)
    return effective_tempo(item.tempo)


class SessionRunner:
    def __init__(
        self,
        haptics: HapticSink | None = None,
        *,
        time_scale: float = 1.0,
        frame_warning_sec: int | None = None,
        debug: bool = False,
    ) -> None:
        self._haptics: HapticSink = haptics or NullHaptics()
        self._time_scale = time_scale
        self._frame_warning_sec = frame_warning_sec
        self._debug = debug
        self._timeline: tuple[TimelineItem, ...] = ()
        self._state = RunnerState()
        self._listeners: list[StateCallback] = []
        self._tick_task: Optional[asyncio.Task[None]] = None
        self._beat_task: Optional[asyncio.Task[None]] = None
        self._beat_epoch = 0
        self._beat_counter = 0
        self._warned_item_id: Any = None
        self._ended_event = asyncio.Event()

    # -- published state -------------------------------------------------

    @property
    def state(self) -> RunnerState:
        return self._state

    @property
    def timeline(self) -> tuple[TimelineItem, ...]:
        return self._timeline

    @property
    def total_sec(self) -> int:
        return self._state.total_sec

    @property
    def elapsed_sec(self) -> int:
        return self._state.elapsed_sec

    @property
    def current_index(self) -> int:
        return self._state.current_index

    @property
    def current(self) -> TimelineItem | None:
        return self._state.current

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def end_signal(self) -> bool:
        return self._state.end_signal

    @property
    def frame_warning_sec(self) -> int | None:
        return self._frame_warning_sec

    @frame_warning_sec.setter
    def frame_warning_sec(self, value: int | None) -> None:
        self._frame_warning_sec = value

    @property
    def has_beat_task(self) -> bool:
        return self._beat_task is not None and not self._beat_task.done()

    @property
    def has_tick_task(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def acknowledge_end(self) -> None:
        if self._state.end_signal:
            self._set(end_signal=False)
            self._publish()

    async def wait_ended(self) -> None:
        await self._ended_event.wait()

    # -- public operations ------------------------------------------------

    def start(self, source: Sequence[Block] | Sequence[TimelineItem]) -> bool:
        """Load blocks (compiled here) or a compiled timeline and start running.

        Returns False and leaves the runner untouched when there is nothing to
        run, including when the blocks fail to compile.
        """
        items = list(source)
        if items and all(isinstance(item, TimelineItem) for item in items):
            timeline = tuple(cast(list[TimelineItem], items))
        else:
            try:
                timeline = compile_blocks(cast(list[Block], items))
            except CompileError as exc:
                self._log(f"start ignored, workout does not compile: {exc}")
                return False
        if not timeline:
            self._log("start ignored, empty timeline")
            return False

        self._cancel_timers()
        self._timeline = timeline
        self._state = RunnerState(
            phase="running",
            total_sec=timeline[-1].end_sec,
            elapsed_sec=0,
            current_index=0,
            current=timeline[0],
            started_at=datetime.now(tz=timezone.utc),
        )
        self._warned_item_id = None
        self._ended_event = asyncio.Event()
        self._log(f"start: {len(timeline)} segments, {self._state.total_sec}s")
        self._emit("block_change")
        self._schedule_tick()
        self._schedule_beats()
        self._publish()
        return True

    def pause(self) -> None:
        if self._state.phase != "running":
            return
        self._cancel_timers()
        self._set(phase="paused")
        self._publish()

    def resume(self) -> None:
        if not self._timeline or self._state.phase in ("idle", "ended"):
            return
        self._set(phase="running")
        self._schedule_tick()
        self._schedule_beats()
        self._publish()

    def end(self) -> None:
        if self._state.phase in ("idle", "ended"):
            return
        self._cancel_timers()
        self._set(phase="ended", end_signal=True)
        self._ended_event.set()
        self._log(f"end at {self._state.elapsed_sec}s")
        self._publish()

    def skip(self) -> None:
        if not self._timeline or self._state.phase in ("idle", "ended"):
            return
        next_index = self._state.current_index + 1
        if next_index >= len(self._timeline):
            self.end()
            return
        self._move_to(next_index)
        self._schedule_beats()
        self._publish()

    def seek(self, delta_sec: int) -> None:
        if not self._timeline or self._state.phase in ("idle", "ended"):
            return
        target = max(0, min(self._state.total_sec, self._state.elapsed_sec + delta_sec))
        self._set(elapsed_sec=target)
        index = 0
        for i, item in enumerate(self._timeline):
            if item.start_sec <= target:
                index = i
        self._move_to(index)
        self._schedule_beats()
        self._publish()

    # -- timers -----------------------------------------------------------

    def _schedule_tick(self) -> None:
        _cancel(self._tick_task)
        self._tick_task = asyncio.create_task(self._tick_loop())

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(TICK_INTERVAL_SEC * self._time_scale)
            self._on_tick()

    def _on_tick(self) -> None:
        current = self._state.current
        if self._state.phase != "running" or current is None:
            return
        elapsed = self._state.elapsed_sec + 1
        self._set(elapsed_sec=elapsed)

        if elapsed >= current.end_sec:
            next_index = self._state.current_index + 1
            if next_index >= len(self._timeline):
                self._emit("success")
                self.end()
                return
            self._move_to(next_index)
            self._schedule_beats()
        elif (
            self._frame_warning_sec is not None
            and current.end_sec - elapsed == self._frame_warning_sec
            and self._warned_item_id != current.id
        ):
            self._warned_item_id = current.id
            self._emit("warning")
        self._publish()

    def _schedule_beats(self) -> None:
        _cancel(self._beat_task)
        self._beat_task = None
        self._beat_epoch += 1
        self._beat_counter = 0

        current = self._state.current
        if self._state.phase != "running" or current is None:
            return
        tempo = computed_tempo(current, self._state.elapsed_sec)
        if tempo <= 0:
            return
        period = beat_interval(tempo) * self._time_scale
        pattern = beat_pattern(tempo)
        self._log(f"beats: {tempo} spm every {period:.3f}s, accent 1/{pattern.every}")
        self._beat_task = asyncio.create_task(
            self._beat_loop(current, pattern, period, self._beat_epoch)
        )

    async def _beat_loop(
        self, item: TimelineItem, pattern: BeatPattern, period: float, epoch: int
    ) -> None:
        while True:
            await asyncio.sleep(period)
            if not self._on_beat(item, pattern, epoch):
                return

    def _on_beat(self, item: TimelineItem, pattern: BeatPattern, epoch: int) -> bool:
        """Handle one beat; False means this beat schedule is finished."""
        if epoch != self._beat_epoch or self._state.phase != "running":
            return False
        current = self._state.current
        if current is None or current.id != item.id:
            self._schedule_beats()
            return False
        if pattern.is_direct:
            self._emit("tap")
        else:
            self._beat_counter += 1
            if self._beat_counter % pattern.every == 0:
                self._emit("tap")
        return True

    def _cancel_timers(self) -> None:
        _cancel(self._tick_task)
        _cancel(self._beat_task)
        self._tick_task = None
        self._beat_task = None
        self._beat_epoch += 1

    # -- helpers ----------------------------------------------------------

    def _move_to(self, index: int) -> None:
        self._set(current_index=index, current=self._timeline[index])
        self._warned_item_id = None
        self._emit("block_change")

    def _set(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)

    def _publish(self) -> None:
        snapshot = self._state
        for callback in list(self._listeners):
            try:
                callback(snapshot)
            except Exception as exc:  # a broken view must not stop the clock
                self._log(f"state listener failed: {exc}")

    def _emit(self, event: HapticEvent) -> None:
        try:
            getattr(self._haptics, event)()
        except Exception as exc:  # haptics are best-effort
            self._log(f"haptic {event} failed: {exc}")

    def _log(self, message: str) -> None:
        if self._debug:
            print(f"[RUNNER] {message}")


def _cancel(task: Optional[asyncio.Task[None]]) -> None:
    if task is not None and not task.done():
        task.cancel()
