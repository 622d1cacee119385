from __future__ import annotations

import asyncio

from bovela.core.haptics import RecordingHaptics
from bovela.core.state import RunnerState
from bovela.workout.model import Block, TempoTarget, TimelineItem, ramp, repeat_group
from bovela.workout.runner import SessionRunner, computed_tempo
from bovela.workout.tempo import beat_pattern


def _timeline() -> tuple[TimelineItem, ...]:
    return (
        TimelineItem("work", 0, 10, TempoTarget.fixed(150)),
        TimelineItem("recover", 10, 15, TempoTarget.none()),
    )


class _BrokenHaptics(RecordingHaptics):
    def block_change(self) -> None:
        raise RuntimeError("feedback unavailable")


def test_start_loads_timeline_and_schedules_both_timers() -> None:
    async def _run() -> None:
        haptics = RecordingHaptics()
        runner = SessionRunner(haptics)

        assert runner.start(_timeline()) is True

        assert runner.state.phase == "running"
        assert runner.is_running
        assert runner.total_sec == 15
        assert runner.elapsed_sec == 0
        assert runner.current_index == 0
        assert runner.current is not None and runner.current.type == "work"
        assert runner.state.started_at is not None
        assert haptics.events == ["block_change"]
        assert runner.has_tick_task
        assert runner.has_beat_task
        runner.end()

    asyncio.run(_run())


def test_start_compiles_blocks() -> None:
    async def _run() -> None:
        runner = SessionRunner()
        blocks = [repeat_group(2, Block(type="work", duration_sec=20), Block(type="recover", duration_sec=10))]

        assert runner.start(blocks)
        assert runner.total_sec == 60
        assert len(runner.timeline) == 4
        runner.end()

    asyncio.run(_run())


def test_start_is_a_noop_for_invalid_or_empty_input() -> None:
    async def _run() -> None:
        haptics = RecordingHaptics()
        runner = SessionRunner(haptics)

        assert runner.start([repeat_group(0, Block(type="work", duration_sec=5))]) is False
        assert runner.start([]) is False

        assert runner.state == RunnerState()
        assert haptics.events == []
        assert not runner.has_tick_task

    asyncio.run(_run())


def test_elapsed_tick_crosses_boundary_exactly_once() -> None:
    async def _run() -> None:
        haptics = RecordingHaptics()
        runner = SessionRunner(haptics)
        runner.start(_timeline())
        indexes: list[int] = []
        runner.subscribe(lambda state: indexes.append(state.current_index))

        for _ in range(9):
            runner._on_tick()
        assert runner.elapsed_sec == 9
        assert runner.current is not None and runner.current.type == "work"

        runner._on_tick()
        assert runner.elapsed_sec == 10
        assert runner.current_index == 1
        assert runner.current is not None and runner.current.type == "recover"
        assert haptics.count("block_change") == 2

        for _ in range(4):
            runner._on_tick()
        assert runner.current_index == 1
        assert runner.state.phase == "running"
        assert indexes == [0] * 9 + [1] * 5

    asyncio.run(_run())


def test_reaching_the_end_finishes_the_session() -> None:
    async def _run() -> None:
        haptics = RecordingHaptics()
        runner = SessionRunner(haptics)
        runner.start(_timeline())

        for _ in range(15):
            runner._on_tick()

        assert runner.state.phase == "ended"
        assert runner.end_signal is True
        assert not runner.is_running
        assert haptics.count("success") == 1
        assert not runner.has_tick_task
        assert not runner.has_beat_task

        runner._on_tick()
        assert runner.elapsed_sec == 15

    asyncio.run(_run())


def test_seek_selects_last_segment_starting_at_or_before_elapsed() -> None:
    async def _run() -> None:
        runner = SessionRunner()
        runner.start(_timeline())

        runner.seek(12)
        assert runner.elapsed_sec == 12
        assert runner.current is not None and runner.current.type == "recover"

        runner.seek(-100)
        assert runner.elapsed_sec == 0
        assert runner.current is not None and runner.current.type == "work"

        runner.seek(100)
        assert runner.elapsed_sec == 15
        assert runner.current_index == 1
        assert runner.state.phase == "running"

        runner.seek(-5)
        assert runner.elapsed_sec == 10
        assert runner.current is not None and runner.current.type == "recover"
        runner.end()

    asyncio.run(_run())


def test_seek_reschedules_beats_only() -> None:
    async def _run() -> None:
        runner = SessionRunner()
        runner.start(_timeline())
        tick_task = runner._tick_task

        runner.seek(12)
        assert runner._tick_task is tick_task
        # Recover segment has no tempo: no beat task.
        assert not runner.has_beat_task

        runner.seek(-12)
        assert runner.has_beat_task
        runner.end()

    asyncio.run(_run())


def test_skip_advances_without_moving_elapsed() -> None:
    async def _run() -> None:
        haptics = RecordingHaptics()
        runner = SessionRunner(haptics)
        runner.start(_timeline())
        runner._on_tick()

        runner.skip()
        assert runner.current_index == 1
        assert runner.elapsed_sec == 1
        assert haptics.count("block_change") == 2

        runner.skip()
        assert runner.state.phase == "ended"
        assert runner.end_signal

    asyncio.run(_run())


def test_pause_and_resume_keep_position() -> None:
    async def _run() -> None:
        runner = SessionRunner()
        runner.start(_timeline())
        runner._on_tick()
        runner._on_tick()

        runner.pause()
        assert runner.state.phase == "paused"
        assert not runner.has_tick_task
        assert not runner.has_beat_task
        runner._on_tick()
        assert runner.elapsed_sec == 2

        runner.resume()
        assert runner.is_running
        assert runner.elapsed_sec == 2
        assert runner.has_tick_task
        assert runner.has_beat_task
        runner.end()

    asyncio.run(_run())


def test_operations_on_idle_or_ended_runner_are_ignored() -> None:
    async def _run() -> None:
        runner = SessionRunner()
        runner.pause()
        runner.resume()
        runner.skip()
        runner.seek(10)
        runner.end()
        assert runner.state.phase == "idle"

        runner.start(_timeline())
        runner.end()
        runner.resume()
        runner.seek(5)
        assert runner.state.phase == "ended"
        assert runner.elapsed_sec == 0
        assert not runner.has_tick_task

    asyncio.run(_run())


def test_zero_cadence_suppresses_beats() -> None:
    async def _run() -> None:
        runner = SessionRunner()
        runner.start((TimelineItem("recover", 0, 30, TempoTarget.none()),))
        assert runner.has_tick_task
        assert not runner.has_beat_task
        runner.end()

    asyncio.run(_run())


def test_direct_pattern_taps_every_beat() -> None:
    async def _run() -> None:
        haptics = RecordingHaptics()
        runner = SessionRunner(haptics)
        runner.start((TimelineItem("work", 0, 60, TempoTarget.fixed(150)),))
        item = runner.current
        assert item is not None

        for _ in range(5):
            assert runner._on_beat(item, beat_pattern(150), runner._beat_epoch)
        assert haptics.count("tap") == 5
        runner.end()

    asyncio.run(_run())


def test_grouped_pattern_taps_every_nth_beat_and_resets_per_schedule() -> None:
    async def _run() -> None:
        haptics = RecordingHaptics()
        runner = SessionRunner(haptics)
        runner.start((TimelineItem("work", 0, 60, TempoTarget.fixed(210)),))
        item = runner.current
        assert item is not None
        pattern = beat_pattern(210)

        for _ in range(7):
            runner._on_beat(item, pattern, runner._beat_epoch)
        assert haptics.count("tap") == 1

        runner.seek(0)
        item = runner.current
        assert item is not None
        for _ in range(3):
            runner._on_beat(item, pattern, runner._beat_epoch)
        assert haptics.count("tap") == 1
        runner._on_beat(item, pattern, runner._beat_epoch)
        assert haptics.count("tap") == 2
        runner.end()

    asyncio.run(_run())


def test_stale_beats_do_not_fire() -> None:
    async def _run() -> None:
        haptics = RecordingHaptics()
        runner = SessionRunner(haptics)
        runner.start(
            (
                TimelineItem("work", 0, 10, TempoTarget.fixed(150)),
                TimelineItem("work", 10, 20, TempoTarget.fixed(160)),
            )
        )
        old_item = runner.current
        old_epoch = runner._beat_epoch
        assert old_item is not None

        runner.skip()
        assert runner._on_beat(old_item, beat_pattern(150), old_epoch) is False

        # Same epoch but a different segment identity reschedules instead of firing.
        epoch = runner._beat_epoch
        assert runner._on_beat(old_item, beat_pattern(150), epoch) is False
        assert runner._beat_epoch == epoch + 1
        assert runner.has_beat_task
        assert haptics.count("tap") == 0
        runner.end()

    asyncio.run(_run())


def test_frame_warning_fires_once_per_segment() -> None:
    async def _run() -> None:
        haptics = RecordingHaptics()
        runner = SessionRunner(haptics, frame_warning_sec=3)
        runner.start(_timeline())

        for _ in range(7):
            runner._on_tick()
        assert haptics.count("warning") == 1
        runner._on_tick()
        assert haptics.count("warning") == 1
        runner.end()

    asyncio.run(_run())


def test_haptic_failures_are_not_propagated() -> None:
    async def _run() -> None:
        haptics = _BrokenHaptics()
        runner = SessionRunner(haptics)

        assert runner.start(_timeline())
        runner.skip()
        assert runner.current_index == 1
        runner.end()

    asyncio.run(_run())


def test_subscribers_receive_snapshots_until_unsubscribed() -> None:
    async def _run() -> None:
        runner = SessionRunner()
        seen: list[RunnerState] = []
        unsubscribe = runner.subscribe(seen.append)

        runner.start(_timeline())
        runner._on_tick()
        unsubscribe()
        runner._on_tick()

        assert [s.elapsed_sec for s in seen] == [0, 1]
        assert all(s.phase == "running" for s in seen)
        runner.end()
        runner.acknowledge_end()
        assert runner.end_signal is False

    asyncio.run(_run())


def test_computed_tempo_interpolates_ramps() -> None:
    item = TimelineItem("rampUp", 100, 200, ramp_start=100, ramp_end=200)
    assert computed_tempo(item, 100) == 100
    assert computed_tempo(item, 150) == 150
    assert computed_tempo(item, 200) == 200
    assert computed_tempo(item, 50) == 100
    assert computed_tempo(item, 400) == 200

    plain = TimelineItem("work", 0, 10, TempoTarget.range(160, 181))
    assert computed_tempo(plain, 5) == 171


def test_runs_in_real_time_with_scaled_clock() -> None:
    async def _run() -> None:
        haptics = RecordingHaptics()
        runner = SessionRunner(haptics, time_scale=0.01)
        blocks = [
            Block(type="work", duration_sec=3, tempo=TempoTarget.fixed(150)),
            ramp("rampUp", 2, 160, 180),
        ]

        assert runner.start(blocks)
        await asyncio.wait_for(runner.wait_ended(), timeout=5.0)

        assert runner.state.phase == "ended"
        assert runner.elapsed_sec == 5
        assert haptics.count("block_change") == 2
        assert haptics.count("success") == 1
        assert haptics.count("tap") >= 1

    asyncio.run(_run())


def test_failing_subscriber_does_not_stop_the_clock() -> None:
    async def _run() -> None:
        runner = SessionRunner(time_scale=0.01)
        seen: list[int] = []

        def _redraw(state: RunnerState) -> None:
            seen.append(state.elapsed_sec)
            if state.elapsed_sec == 2:
                raise RuntimeError("redraw failed")

        runner.subscribe(_redraw)
        assert runner.start([Block(type="work", duration_sec=5, tempo=TempoTarget.fixed(150))])
        await asyncio.wait_for(runner.wait_ended(), timeout=5.0)

        assert runner.state.phase == "ended"
        assert runner.elapsed_sec == 5
        assert 2 in seen and seen[-1] == 5
        assert not runner.has_tick_task

    asyncio.run(_run())
