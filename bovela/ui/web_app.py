"""NiceGUI web UI for the Bovela session screen."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import date
from pathlib import Path
from typing import Any, Callable, cast
from uuid import UUID

from nicegui import ui

from bovela.core.haptics import RecordingHaptics
from bovela.core.settings import AppSettings
from bovela.ui.controller import SessionController
from bovela.ui.formatters import (
    BLOCK_LABELS,
    block_label,
    fmt_date,
    fmt_percent,
    fmt_tempo,
    fmt_time,
)
from bovela.workout.builder import make_block
from bovela.workout.compiler import CompileError, compile_blocks
from bovela.workout.library import (
    all_tags,
    build_program_from_template,
    filter_programs,
    list_templates,
    program_duration,
)
from bovela.workout.model import (
    RAMP_TYPES,
    Block,
    BlockType,
    Program,
    TempoTarget,
    TimelineItem,
)
from bovela.workout.runner import computed_tempo
from bovela.workout.session_store import (
    HistoryFilter,
    average_in_zone,
    average_rpe,
    total_time,
)


@dataclass
class WebState:
    status: str = "Ready"
    selected_program: Program | None = None
    taps_seen: int = 0
    pulse_on: bool = False
    counting_down: bool = False


def _plan_chart_options(timeline: tuple[TimelineItem, ...]) -> dict[str, Any]:
    labels = [f"{block_label(item.type)} {fmt_time(item.start_sec)}" for item in timeline]
    values = [computed_tempo(item, item.start_sec) or None for item in timeline]
    return {
        "title": {"text": "Target cadence (spm)", "left": "center"},
        "tooltip": {"trigger": "axis"},
        "xAxis": {"type": "category", "data": labels},
        "yAxis": {"type": "value", "name": "spm", "min": 40, "max": 300},
        "series": [{"type": "bar", "data": values}],
        "grid": {"left": 50, "right": 20, "top": 48, "bottom": 40},
    }


def _block_summary(block: Block) -> str:
    if block.type == "repeatGroup":
        inner = ", ".join(block_label(sub.type) for sub in block.subblocks or ())
        return f"{block_label(block.type)} x{block.repeat_count} ({inner})"
    if block.type in RAMP_TYPES:
        return (
            f"{block_label(block.type)} {fmt_time(block.duration_sec)} "
            f"{block.ramp_start}→{block.ramp_end} spm"
        )
    return f"{block_label(block.type)} {fmt_time(block.duration_sec)} {fmt_tempo(block.tempo)}"


def _parse_day(value: object) -> date | None:
    text = str(value or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def _optional_int(value: object) -> int | None:
    if value in (None, ""):
        return None
    return int(float(str(value)))


def run_web_ui(
    *,
    host: str = "127.0.0.1",
    port: int = 8089,
    base_dir: Path | None = None,
    debug: bool = False,
) -> int:
    haptics = RecordingHaptics()
    controller = SessionController(base_dir=base_dir, haptics=haptics, debug=debug)
    builder = controller.builder
    state = WebState()

    with ui.column().classes("w-full gap-1"):
        ui.label("BOVELA").classes("text-xl font-semibold tracking-wide")
        status_label = ui.label("Status: Ready").classes("text-lg font-semibold")

    with ui.column().classes("w-full gap-4") as setup_view:
        with ui.card().classes("w-full"):
            ui.label("Programs").classes("text-base font-medium")
            with ui.row().classes("w-full items-end gap-2"):
                query_input = ui.input("Search")
                tag_select = ui.select(["All"], value="All", label="Tag")
                program_select = ui.select({}, label="Program").classes("min-w-[280px]")
                template_select = ui.select(
                    {t.key: t.name for t in list_templates()}, label="Add template"
                )
                add_template_btn = ui.button("Add")
                duplicate_btn = ui.button("Duplicate")
                edit_btn = ui.button("Edit")
                delete_btn = ui.button("Delete").props("color=negative outline")
                new_btn = ui.button("New program")
            program_info = ui.label("No program selected").classes("text-sm")
            plan_chart = ui.echart(_plan_chart_options(())).classes("w-full h-64")
            start_btn = ui.button("Start program")

        with ui.card().classes("w-full"):
            ui.label("Quick session").classes("text-base font-medium")
            with ui.row().classes("w-full items-end gap-2"):
                quick_duration = ui.number("Duration (sec)", value=600, min=1, max=7200)
                quick_mode = ui.select(["none", "fixed", "range"], value="fixed", label="Tempo")
                quick_fixed = ui.number("Fixed spm", value=170, min=40, max=300)
                quick_min = ui.number("Min spm", value=160, min=40, max=300)
                quick_max = ui.number("Max spm", value=180, min=40, max=300)
                quick_btn = ui.button("Start quick")

        with ui.card().classes("w-full"):
            ui.label("Settings").classes("text-base font-medium")
            with ui.row().classes("w-full items-end gap-2"):
                haptics_switch = ui.switch("Haptics", value=controller.settings.haptics_enabled)
                pulse_switch = ui.switch(
                    "Visual pulse", value=controller.settings.visual_pulse_enabled
                )
                warning_switch = ui.switch(
                    "Segment end warning", value=controller.settings.frame_warning_enabled
                )
                seek_input = ui.number(
                    "Seek step (sec)", value=controller.settings.seek_step_sec, min=1, max=300
                )
                countdown_input = ui.number(
                    "Pre-countdown (sec)",
                    value=controller.settings.pre_countdown_sec,
                    min=1,
                    max=30,
                )

        with ui.card().classes("w-full"):
            ui.label("History").classes("text-base font-medium")
            with ui.row().classes("w-full items-end gap-2"):
                from_input = ui.input("From").props("type=date")
                to_input = ui.input("To").props("type=date")
                min_rpe_select = ui.select(
                    {0: "Any", **{n: str(n) for n in range(1, 11)}}, value=0, label="Min RPE"
                )
                max_rpe_select = ui.select(
                    {0: "Any", **{n: str(n) for n in range(1, 11)}}, value=0, label="Max RPE"
                )
                clear_filters_btn = ui.button("Clear").props("outline")
            history_summary = ui.label("").classes("text-sm")
            history_sections_box = ui.column().classes("w-full gap-2")
            with ui.row().classes("w-full items-end gap-2"):
                rate_select = ui.select({}, label="Session").classes("min-w-[320px]")
                rate_input = ui.number("RPE (1-10)", value=None, min=1, max=10)
                rate_btn = ui.button("Rate")

    with ui.column().classes("w-full gap-2") as session_view:
        with ui.card().classes("w-full"):
            segment_label = ui.label("-").classes("text-2xl font-bold")
            countdown_label = ui.label("00:00").classes("text-5xl font-bold")
            tempo_label = ui.label("Target: -").classes("text-lg")
            pulse_label = ui.label("●").classes("text-4xl text-sky-400")
            next_label = ui.label("Next: -").classes("text-sm")
            elapsed_label = ui.label("00:00 / 00:00").classes("text-sm")
            progress_bar = ui.linear_progress(value=0.0, show_value=False)
        with ui.row().classes("w-full gap-2"):
            back_btn = ui.button(f"-{controller.settings.seek_step_sec}s")
            pause_btn = ui.button("Pause")
            skip_btn = ui.button("Skip")
            fwd_btn = ui.button(f"+{controller.settings.seek_step_sec}s")
            end_btn = ui.button("End session").props("color=negative")

    session_view.set_visibility(False)

    with ui.dialog().props("persistent") as end_dialog, ui.card():
        ui.label("Session Complete").classes("text-xl font-bold")
        end_summary = ui.label("")
        rpe_input = ui.number("RPE (1-10)", value=None, min=1, max=10)
        note_input = ui.input("Note")
        with ui.row().classes("w-full justify-end gap-2"):
            skip_rating_btn = ui.button("Skip rating").props("outline")
            save_btn = ui.button("Save")

    with ui.dialog() as builder_dialog, ui.card().classes("w-[920px] max-w-[96vw]"):
        ui.label("Program builder").classes("text-lg font-semibold")
        with ui.row().classes("w-full items-end gap-2"):
            builder_name = ui.input("Name", value=builder.name).classes("w-1/2")
            builder_tags = ui.input("Tags (comma separated)").classes("w-1/3")
        builder_summary = ui.label("").classes("text-sm")
        builder_blocks_box = ui.column().classes("w-full gap-1")
        builder_error = ui.label("").classes("text-sm text-negative")
        with ui.row().classes("w-full items-end gap-2"):
            block_type_select = ui.select(
                {key: label for key, label in BLOCK_LABELS.items() if key != "repeatGroup"},
                value="work",
                label="Block type",
            )
            block_duration = ui.number("Seconds", value=60, min=0, max=3600, step=5)
            block_mode = ui.select(["none", "fixed", "range"], value="fixed", label="Tempo")
            block_fixed = ui.number("Fixed spm", value=170, min=40, max=300)
            block_min = ui.number("Min / ramp start", value=160, min=40, max=300)
            block_max = ui.number("Max / ramp end", value=180, min=40, max=300)
        with ui.row().classes("w-full items-end gap-2"):
            add_block_btn = ui.button("Add block")
            add_inner_btn = ui.button("Add to repeat group").props("outline")
            repeat_count_input = ui.number("Repeat count", value=4, min=1, max=50)
            group_btn = ui.button("Add repeat group").props("outline")
        inner_label = ui.label("Repeat group: empty").classes("text-sm")
        with ui.row().classes("w-full justify-end gap-2"):
            close_builder_btn = ui.button("Close").props("outline")
            run_builder_btn = ui.button("Run")
            save_builder_btn = ui.button("Save program").props("color=primary")

    def selected_programs() -> list[Program]:
        tag = None if tag_select.value in (None, "All") else str(tag_select.value)
        return filter_programs(controller.programs.items, str(query_input.value or ""), tag)

    def refresh_programs() -> None:
        tag_select.options = ["All", *all_tags(controller.programs.items)]
        tag_select.update()
        options = {
            str(p.id): f"{p.name} ({fmt_time(program_duration(p))})" for p in selected_programs()
        }
        program_select.options = options
        if program_select.value not in options:
            program_select.value = next(iter(options), None)
        program_select.update()
        load_selected_program()

    def load_selected_program() -> None:
        program = next(
            (p for p in controller.programs.items if str(p.id) == program_select.value), None
        )
        state.selected_program = program
        if program is None:
            program_info.text = "No program selected"
            plan_chart.options.update(_plan_chart_options(()))
            plan_chart.update()
            return
        try:
            timeline = compile_blocks(program.blocks)
        except CompileError as exc:
            program_info.text = f"{program.name}: cannot run ({exc})"
            timeline = ()
        else:
            program_info.text = (
                f"{program.name} | {fmt_time(program_duration(program))} | "
                f"{len(timeline)} segments | tags: {', '.join(program.tags) or '-'}"
            )
        plan_chart.options.update(_plan_chart_options(timeline))
        plan_chart.update()

    def current_history_filter() -> HistoryFilter:
        return HistoryFilter(
            date_from=_parse_day(from_input.value),
            date_to=_parse_day(to_input.value),
            min_rpe=int(min_rpe_select.value or 0) or None,
            max_rpe=int(max_rpe_select.value or 0) or None,
        )

    def refresh_history() -> None:
        history_filter = current_history_filter()
        sessions = controller.history(history_filter)
        history_sections_box.clear()
        with history_sections_box:
            if not sessions:
                ui.label("No sessions").classes("text-sm")
            for section in controller.history_sections(history_filter):
                ui.label(section.day.strftime("%a %b %d, %Y")).classes("text-sm font-semibold")
                ui.table(
                    columns=[
                        {"name": "time", "label": "Time", "field": "time"},
                        {"name": "name", "label": "Program", "field": "name"},
                        {"name": "duration", "label": "Duration", "field": "duration"},
                        {"name": "rpe", "label": "RPE", "field": "rpe"},
                        {"name": "zone", "label": "In zone", "field": "zone"},
                    ],
                    rows=[
                        {
                            "time": f"{session.date.astimezone():%H:%M}",
                            "name": controller.session_name(session),
                            "duration": fmt_time(session.total_sec),
                            "rpe": str(session.rpe) if session.rpe is not None else "-",
                            "zone": fmt_percent(session.in_zone_percent),
                        }
                        for session in section.items
                    ],
                ).classes("w-full")
        rate_select.options = {
            str(session.id): f"{fmt_date(session.date)} {controller.session_name(session)}"
            for session in sessions
        }
        if rate_select.value not in rate_select.options:
            rate_select.value = next(iter(rate_select.options), None)
        rate_select.update()
        avg = average_rpe(sessions)
        history_summary.text = (
            f"{len(sessions)} sessions | total {fmt_time(total_time(sessions))} | "
            f"avg RPE {f'{avg:.1f}' if avg is not None else '-'} | "
            f"avg in-zone {fmt_percent(average_in_zone(sessions))}"
        )

    def refresh_builder() -> None:
        builder_summary.text = (
            f"{len(builder.blocks)} blocks | total {fmt_time(builder.total_duration)} | "
            f"tempo mode: {builder.dominant_tempo_mode()}"
        )
        builder_error.text = builder.validation_error or ""
        inner = builder.inner_blocks
        inner_label.text = (
            "Repeat group: " + ", ".join(_block_summary(b) for b in inner) if inner else "Repeat group: empty"
        )
        builder_blocks_box.clear()
        with builder_blocks_box:
            if not builder.blocks:
                ui.label("No blocks yet").classes("text-sm")
            for index, block in enumerate(builder.blocks):
                with ui.row().classes("w-full items-center gap-2"):
                    ui.label(f"{index + 1}. {_block_summary(block)}").classes("grow")
                    up_btn = ui.button("↑").props("flat dense")
                    down_btn = ui.button("↓").props("flat dense")
                    copy_btn = ui.button("Duplicate").props("flat dense")
                    remove_btn = ui.button("Delete").props("flat dense color=negative")
                    up_btn.on_click(lambda _, i=index: on_block_edit(builder.move_block, i, i - 1))
                    down_btn.on_click(lambda _, i=index: on_block_edit(builder.move_block, i, i + 1))
                    copy_btn.on_click(lambda _, i=index: on_block_edit(builder.duplicate_block, i))
                    remove_btn.on_click(lambda _, i=index: on_block_edit(builder.remove_block, i))

    def on_block_edit(action: Callable[..., None], *args: int) -> None:
        action(*args)
        refresh_builder()

    def builder_form_block() -> Block:
        block_type = str(block_type_select.value or "work")
        mode = str(block_mode.value or "none")
        if mode == "fixed":
            tempo = TempoTarget.fixed(int(block_fixed.value or 0))
        elif mode == "range":
            tempo = TempoTarget.range(int(block_min.value or 0), int(block_max.value or 0))
        else:
            tempo = TempoTarget.none()
        return make_block(
            cast(BlockType, block_type),
            int(block_duration.value or 0),
            tempo,
            ramp_start=int(block_min.value or 0),
            ramp_end=int(block_max.value or 0),
        )

    def sync_builder_fields() -> None:
        builder.name = str(builder_name.value or "")
        builder.tags = tuple(t.strip() for t in str(builder_tags.value or "").split(",") if t.strip())

    def open_builder() -> None:
        builder_name.value = builder.name
        builder_tags.value = ", ".join(builder.tags)
        refresh_builder()
        builder_dialog.open()

    def on_new_program() -> None:
        builder.reset()
        open_builder()

    def on_edit_program() -> None:
        if state.selected_program is None:
            return
        controller.edit_program(state.selected_program.id)
        open_builder()

    def on_delete_program() -> None:
        program = state.selected_program
        if program is None:
            return
        if controller.delete_program(program.id):
            ui.notify(f"Deleted {program.name}", color="positive")
        refresh_programs()

    def on_add_block() -> None:
        error = builder.add_block(builder_form_block())
        if error is not None:
            ui.notify(error, color="negative")
        refresh_builder()

    def on_add_inner() -> None:
        error = builder.add_inner(builder_form_block())
        if error is not None:
            ui.notify(error, color="negative")
        refresh_builder()

    def on_group() -> None:
        error = builder.group_inner(int(repeat_count_input.value or 0))
        if error is not None:
            ui.notify(error, color="negative")
        refresh_builder()

    def on_save_builder() -> None:
        sync_builder_fields()
        saved = controller.save_builder()
        refresh_builder()
        if saved is None:
            return
        ui.notify(f"Program saved: {saved.name}", color="positive")
        program_select.value = str(saved.id)
        refresh_programs()

    async def on_run_builder() -> None:
        sync_builder_fields()
        if not builder.validate():
            refresh_builder()
            return
        builder_dialog.close()
        await pre_countdown()
        error = controller.start_builder()
        if error is not None:
            ui.notify(error, color="negative")
            show_setup_screen()
            return
        haptics.clear()
        state.status = f"Running {builder.name}"
        refresh_ui()

    def show_session_screen() -> None:
        setup_view.set_visibility(False)
        session_view.set_visibility(True)

    def show_setup_screen() -> None:
        session_view.set_visibility(False)
        setup_view.set_visibility(True)

    def refresh_ui() -> None:
        status_label.text = f"Status: {state.status}"
        if state.counting_down:
            return
        snap = controller.state
        current = snap.current
        if current is None:
            return
        segment_label.text = f"{snap.current_index + 1}. {block_label(current.type)}"
        countdown_label.text = fmt_time(snap.segment_remaining_sec)
        spm = computed_tempo(current, snap.elapsed_sec)
        if current.ramp_start is not None:
            tempo_label.text = f"Target: {current.ramp_start}→{current.ramp_end} spm (now {spm})"
        else:
            tempo_label.text = f"Target: {fmt_tempo(current.tempo)}"
        timeline = controller.runner.timeline
        upcoming = timeline[snap.current_index + 1] if snap.current_index + 1 < len(timeline) else None
        next_label.text = (
            f"Next: {block_label(upcoming.type)} {fmt_tempo(upcoming.tempo)}" if upcoming else "Next: finish"
        )
        elapsed_label.text = f"{fmt_time(snap.elapsed_sec)} / {fmt_time(snap.total_sec)}"
        progress_bar.value = snap.progress
        pause_btn.text = "Pause" if snap.is_running else "Resume"

        taps = haptics.count("tap")
        if taps != state.taps_seen:
            state.taps_seen = taps
            state.pulse_on = not state.pulse_on
        pulse_label.set_visibility(controller.settings.visual_pulse_enabled and state.pulse_on)

        if snap.end_signal and not end_dialog.value:
            end_summary.text = f"Time {fmt_time(snap.elapsed_sec)} of {fmt_time(snap.total_sec)}"
            state.status = "Session ended"
            end_dialog.open()

    async def pre_countdown() -> None:
        state.counting_down = True
        show_session_screen()
        try:
            for remaining in range(controller.settings.pre_countdown_sec, 0, -1):
                countdown_label.text = str(remaining)
                state.status = f"Starting in {remaining}s - get ready"
                refresh_ui()
                await asyncio.sleep(1.0)
        finally:
            state.counting_down = False

    async def on_start_program() -> None:
        program = state.selected_program
        if program is None:
            ui.notify("Select a program first", color="negative")
            return
        error = controller.program_error(program)
        if error is None:
            await pre_countdown()
            error = controller.start_program(program)
        if error is not None:
            ui.notify(error, color="negative")
            show_setup_screen()
            return
        haptics.clear()
        state.status = f"Running {program.name}"
        refresh_ui()

    async def on_start_quick() -> None:
        mode = str(quick_mode.value or "none")
        if mode == "fixed":
            tempo = TempoTarget.fixed(int(quick_fixed.value or 0))
        elif mode == "range":
            tempo = TempoTarget.range(int(quick_min.value or 0), int(quick_max.value or 0))
        else:
            tempo = TempoTarget.none()
        duration = int(quick_duration.value or 0)
        error = controller.quick_error(duration, tempo)
        if error is None:
            await pre_countdown()
            error = controller.start_quick(duration, tempo)
        if error is not None:
            ui.notify(error, color="negative")
            show_setup_screen()
            return
        haptics.clear()
        state.status = "Running quick session"
        refresh_ui()

    def on_add_template() -> None:
        if not template_select.value:
            return
        program = controller.programs.add(build_program_from_template(str(template_select.value)))
        ui.notify(f"Added {program.name}", color="positive")
        refresh_programs()

    def on_duplicate() -> None:
        if state.selected_program is None:
            return
        copy = controller.programs.duplicate(state.selected_program.id)
        if copy is not None:
            ui.notify(f"Created {copy.name}", color="positive")
        refresh_programs()

    def close_end_dialog(rpe: int | None, note: str | None) -> None:
        controller.finish(rpe=rpe, note=note)
        end_dialog.close()
        rpe_input.value = None
        note_input.value = ""
        state.status = "Session saved"
        refresh_history()
        show_setup_screen()
        refresh_ui()

    def on_save_session() -> None:
        close_end_dialog(_optional_int(rpe_input.value), str(note_input.value or "") or None)

    def on_rate_session() -> None:
        if not rate_select.value:
            return
        try:
            controller.rate_session(UUID(str(rate_select.value)), _optional_int(rate_input.value))
        except ValueError as exc:
            ui.notify(str(exc), color="negative")
            return
        rate_input.value = None
        refresh_history()

    def on_clear_filters() -> None:
        from_input.value = ""
        to_input.value = ""
        min_rpe_select.value = 0
        max_rpe_select.value = 0
        refresh_history()

    def on_settings_change() -> None:
        settings = replace(
            controller.settings,
            haptics_enabled=bool(haptics_switch.value),
            visual_pulse_enabled=bool(pulse_switch.value),
            frame_warning_enabled=bool(warning_switch.value),
            seek_step_sec=max(1, int(seek_input.value or AppSettings.seek_step_sec)),
            pre_countdown_sec=max(1, int(countdown_input.value or AppSettings.pre_countdown_sec)),
        )
        controller.update_settings(settings)
        back_btn.text = f"-{settings.seek_step_sec}s"
        fwd_btn.text = f"+{settings.seek_step_sec}s"

    def on_action(action: Any) -> None:
        action()
        refresh_ui()

    query_input.on_value_change(lambda _: refresh_programs())
    tag_select.on_value_change(lambda _: refresh_programs())
    program_select.on_value_change(lambda _: load_selected_program())
    for element in (haptics_switch, pulse_switch, warning_switch, seek_input, countdown_input):
        element.on_value_change(lambda _: on_settings_change())
    for element in (from_input, to_input, min_rpe_select, max_rpe_select):
        element.on_value_change(lambda _: refresh_history())
    add_template_btn.on_click(on_add_template)
    duplicate_btn.on_click(on_duplicate)
    edit_btn.on_click(on_edit_program)
    delete_btn.on_click(on_delete_program)
    new_btn.on_click(on_new_program)
    add_block_btn.on_click(on_add_block)
    add_inner_btn.on_click(on_add_inner)
    group_btn.on_click(on_group)
    save_builder_btn.on_click(on_save_builder)
    run_builder_btn.on_click(on_run_builder)
    close_builder_btn.on_click(builder_dialog.close)
    start_btn.on_click(on_start_program)
    quick_btn.on_click(on_start_quick)
    back_btn.on_click(lambda: on_action(controller.seek_back))
    pause_btn.on_click(lambda: on_action(controller.toggle_pause))
    skip_btn.on_click(lambda: on_action(controller.skip))
    fwd_btn.on_click(lambda: on_action(controller.seek_forward))
    end_btn.on_click(lambda: on_action(controller.end))
    save_btn.on_click(on_save_session)
    skip_rating_btn.on_click(lambda: close_end_dialog(None, None))
    rate_btn.on_click(on_rate_session)
    clear_filters_btn.on_click(on_clear_filters)

    refresh_programs()
    refresh_history()
    show_setup_screen()
    ui.timer(0.25, refresh_ui)
    ui.run(host=host, port=port, reload=False, title="Bovela")
    return 0
