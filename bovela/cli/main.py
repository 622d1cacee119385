"""Terminal CLI entrypoint for the Bovela interval tempo timer."""

from __future__ import annotations

import argparse
import asyncio
from datetime import date
from pathlib import Path
from uuid import UUID

from bovela.core.engine import TerminalEngine
from bovela.core.haptics import ConsoleHaptics
from bovela.ui.controller import SessionController
from bovela.ui.formatters import fmt_date, fmt_percent, fmt_time
from bovela.workout.library import program_duration
from bovela.workout.model import TempoTarget
from bovela.workout.parser import ProgramParseError, load_program
from bovela.workout.session_store import (
    HistoryFilter,
    average_in_zone,
    average_rpe,
    total_time,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bovela interval tempo timer")
    parser.add_argument("--list", action="store_true", help="List stored programs")
    parser.add_argument("--history", action="store_true", help="List recorded sessions by day")
    parser.add_argument(
        "--from",
        dest="date_from",
        type=date.fromisoformat,
        default=None,
        help="History: first day to include (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--to",
        dest="date_to",
        type=date.fromisoformat,
        default=None,
        help="History: last day to include (YYYY-MM-DD)",
    )
    parser.add_argument("--min-rpe", type=int, default=None, help="History: lowest RPE to include")
    parser.add_argument("--max-rpe", type=int, default=None, help="History: highest RPE to include")
    parser.add_argument(
        "--rate",
        nargs=2,
        metavar=("SESSION_ID", "RPE"),
        default=None,
        help="Set the RPE (1-10) of a recorded session",
    )
    parser.add_argument("--delete", default=None, help="Delete a stored program by name or id")
    parser.add_argument(
        "--import",
        dest="import_path",
        type=Path,
        default=None,
        help="Import a program from a JSON file",
    )
    parser.add_argument("--run", default=None, help="Run a stored program by name or id")
    parser.add_argument(
        "--quick",
        type=int,
        default=None,
        help="Run a single work block of this many seconds",
    )
    parser.add_argument("--tempo", type=int, default=None, help="Fixed tempo (spm) for --quick")
    parser.add_argument("--tempo-min", type=int, default=None, help="Range low (spm) for --quick")
    parser.add_argument("--tempo-max", type=int, default=None, help="Range high (spm) for --quick")
    parser.add_argument(
        "--speed",
        type=float,
        default=1.0,
        help="Run the clock this many times faster (demo/testing)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding programs.json, sessions.json and settings.json",
    )
    parser.add_argument(
        "--ui-web",
        action="store_true",
        help="Launch web UI (NiceGUI) for the session screen",
    )
    parser.add_argument("--web-host", default="127.0.0.1", help="Host bind for --ui-web")
    parser.add_argument("--web-port", type=int, default=8089, help="Port for --ui-web")
    parser.add_argument("--debug", action="store_true", help="Print runner and store diagnostics")
    return parser


def quick_tempo(args: argparse.Namespace) -> TempoTarget:
    if args.tempo is not None:
        return TempoTarget.fixed(args.tempo)
    if args.tempo_min is not None and args.tempo_max is not None:
        return TempoTarget.range(args.tempo_min, args.tempo_max)
    return TempoTarget.none()


def run_list(controller: SessionController) -> int:
    programs = controller.programs.items
    if not programs:
        print("No programs stored")
        return 0
    for program in programs:
        tags = ",".join(program.tags) or "-"
        print(f"{program.name:<24} {fmt_time(program_duration(program))} [{tags}] {program.id}")
    return 0


def history_filter(args: argparse.Namespace) -> HistoryFilter:
    return HistoryFilter(
        date_from=args.date_from,
        date_to=args.date_to,
        min_rpe=args.min_rpe,
        max_rpe=args.max_rpe,
    )


def wants_history(args: argparse.Namespace) -> bool:
    filters = (args.date_from, args.date_to, args.min_rpe, args.max_rpe)
    return args.history or any(value is not None for value in filters)


def run_history(controller: SessionController, filters: HistoryFilter | None = None) -> int:
    sessions = controller.history(filters)
    if not sessions:
        print("No sessions recorded" if not controller.sessions.sessions else "No sessions match")
        return 0
    for section in controller.history_sections(filters):
        print(section.day.strftime("%a %b %d, %Y"))
        for session in section.items:
            rpe = f"RPE {session.rpe}" if session.rpe is not None else "RPE -"
            print(
                f"  {session.date.astimezone():%H:%M} {controller.session_name(session):<24} "
                f"{fmt_time(session.total_sec)} {rpe:<6} {fmt_percent(session.in_zone_percent)} "
                f"{session.id}"
            )
    avg = average_rpe(sessions)
    zone = average_in_zone(sessions)
    print(
        f"{len(sessions)} sessions | Total {fmt_time(total_time(sessions))} | "
        f"avg RPE {f'{avg:.1f}' if avg is not None else '-'} | avg in-zone {fmt_percent(zone)}"
    )
    return 0


def run_rate(controller: SessionController, session_id: str, rpe: str) -> int:
    try:
        rated = controller.rate_session(UUID(session_id), int(rpe))
    except ValueError as exc:
        print(f"Cannot rate session: {exc}")
        return 1
    if rated is None:
        print(f"Unknown session '{session_id}'")
        return 1
    print(f"Rated {fmt_date(rated.date)} {controller.session_name(rated)}: RPE {rated.rpe}")
    return 0


def run_delete(controller: SessionController, name_or_id: str) -> int:
    program = controller.programs.find(name_or_id)
    if program is None or not controller.delete_program(program.id):
        print(f"Unknown program '{name_or_id}'")
        return 1
    print(f"Deleted '{program.name}'")
    return 0


def run_import(controller: SessionController, path: Path) -> int:
    try:
        program = load_program(path)
    except ProgramParseError as exc:
        print(f"Cannot import {path}: {exc}")
        return 1
    controller.programs.add(program)
    print(f"Imported '{program.name}' ({fmt_time(program_duration(program))})")
    return 0


async def run_session(args: argparse.Namespace) -> int:
    controller = SessionController(
        base_dir=args.data_dir,
        haptics=ConsoleHaptics(),
        time_scale=1.0 / max(args.speed, 0.01),
        debug=args.debug,
    )
    engine = TerminalEngine(controller)

    if args.quick is not None:
        session = await engine.run_quick(args.quick, quick_tempo(args))
        return 0 if session is not None else 1

    program = controller.programs.find(args.run)
    if program is None:
        print(f"Unknown program '{args.run}'")
        return 1
    session = await engine.run_program(program)
    return 0 if session is not None else 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.ui_web:
        from bovela.ui.web_app import run_web_ui

        return run_web_ui(
            host=args.web_host,
            port=args.web_port,
            base_dir=args.data_dir,
            debug=args.debug,
        )

    maintenance = (args.import_path, args.rate, args.delete)
    if args.list or wants_history(args) or any(value is not None for value in maintenance):
        controller = SessionController(base_dir=args.data_dir, debug=args.debug)
        if args.import_path is not None:
            return run_import(controller, args.import_path)
        if args.rate is not None:
            return run_rate(controller, *args.rate)
        if args.delete is not None:
            return run_delete(controller, args.delete)
        if wants_history(args):
            return run_history(controller, history_filter(args))
        return run_list(controller)

    if args.run is None and args.quick is None:
        parser.print_help()
        return 1

    try:
        return asyncio.run(run_session(args))
    except KeyboardInterrupt:
        print("\nSession interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
