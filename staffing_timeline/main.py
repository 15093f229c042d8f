from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from typing import List, Optional

from .allocation import check_overallocation, summarize_overallocation, to_percentage, utilization_snapshot
from .calendar_days import add_months, format_day, parse_day
from .io_utils import (
    layout_to_frame,
    load_assignments,
    load_config,
    load_people,
    load_projects,
    report_to_frame,
    write_csv,
)
from .layout import layout_timeline
from .models import CandidateAssignment, EngineConfig, TimelineFilters
from .viewport import Viewport

DEFAULT_WINDOW_MONTHS = 6


def _day_arg(value: str) -> date:
    try:
        return parse_day(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Staffing timeline engine: overallocation checks and timeline layout (CSV/JSON in, CSV out)."
    )
    parser.add_argument("--config", help="Path to engine configuration JSON file")
    parser.add_argument(
        "--allocation-unit",
        choices=("fraction", "percent"),
        default="fraction",
        help="Unit of the allocation column in the assignments CSV (default: fraction)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Report days a candidate assignment would overallocate a person")
    check.add_argument("--assignments", required=True, help="Path to assignments CSV")
    check.add_argument("--person", required=True, help="Person id the candidate belongs to")
    check.add_argument("--start", required=True, type=_day_arg, help="Candidate start day (YYYY-MM-DD)")
    check.add_argument("--end", required=True, type=_day_arg, help="Candidate end day (YYYY-MM-DD)")
    check.add_argument("--allocation", required=True, type=float, help="Candidate allocation as a fraction of one FTE")
    check.add_argument("--exclude", help="Assignment id being edited (left out of existing totals)")
    check.add_argument("--out", help="Write the report as CSV instead of printing it")

    layout = sub.add_parser("layout", help="Compute bar geometry for every person row")
    layout.add_argument("--assignments", required=True, help="Path to assignments CSV")
    layout.add_argument("--people", required=True, help="Path to people JSON")
    layout.add_argument("--projects", required=True, help="Path to projects CSV")
    layout.add_argument("--scroll", type=float, default=0.0, help="Horizontal scroll offset in pixels")
    layout.add_argument("--overallocated-only", action="store_true", help="Only lay out overallocated people")
    layout.add_argument("--out", default="out/timeline_layout.csv", help="Output CSV path")

    util = sub.add_parser("utilization", help="Per-person utilization on a given day")
    util.add_argument("--assignments", required=True, help="Path to assignments CSV")
    util.add_argument("--people", required=True, help="Path to people JSON")
    util.add_argument("--on", type=_day_arg, default=None, help="Day to evaluate (default: today)")
    util.add_argument("--out", help="Write the snapshot as CSV instead of printing it")
    return parser


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(message)s")


def _default_config() -> EngineConfig:
    today = date.today()
    start = date(today.year, today.month, 1)
    return EngineConfig(window_start=start, window_end=add_months(start, DEFAULT_WINDOW_MONTHS))


def _run_check(args: argparse.Namespace) -> int:
    existing = load_assignments(args.assignments, args.allocation_unit)
    candidate = CandidateAssignment(
        person_id=args.person, start_day=args.start, end_day=args.end, allocation=args.allocation
    )
    report = check_overallocation(existing, candidate, exclude_id=args.exclude)
    summary = summarize_overallocation(report, candidate.allocation)
    if args.out:
        write_csv(report_to_frame(report), args.out)
        print(f"Wrote {args.out}")
    elif report:
        print("Overallocated days:")
        for item in report:
            print(f"- {format_day(item.day)}: {to_percentage(item.total_allocation)}%")
    if summary.is_overallocated:
        print(summary.message)
        return 1
    print("No overallocation.")
    return 0


def _run_layout(args: argparse.Namespace, cfg: EngineConfig) -> int:
    assignments = load_assignments(args.assignments, args.allocation_unit)
    people = load_people(args.people)
    projects = load_projects(args.projects)
    viewport = Viewport.from_config(cfg.window_start, cfg.window_end, cfg.layout).with_scroll(args.scroll)
    rows = layout_timeline(
        people,
        assignments,
        projects,
        viewport,
        filters=TimelineFilters(overallocated_only=args.overallocated_only),
        config=cfg.layout,
    )
    write_csv(layout_to_frame(rows), args.out)
    print(f"Wrote {args.out}")
    hidden = sum(row.overflow_count for row in rows)
    if hidden:
        print(f"{hidden} assignment(s) hidden behind overflow markers")
    return 0


def _run_utilization(args: argparse.Namespace) -> int:
    assignments = load_assignments(args.assignments, args.allocation_unit)
    people = load_people(args.people)
    on_day = args.on or date.today()
    snapshot = utilization_snapshot(people, assignments, on_day)
    if args.out:
        write_csv(snapshot, args.out)
        print(f"Wrote {args.out}")
    elif snapshot.empty:
        print("No active people.")
    else:
        print(f"Utilization on {format_day(on_day)}:")
        print(snapshot.to_string(index=False))
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    args = _build_parser().parse_args(argv)
    try:
        cfg = load_config(args.config) if args.config else _default_config()
    except (OSError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)
    _configure_logging(cfg.logging_level)
    try:
        if args.command == "check":
            code = _run_check(args)
        elif args.command == "layout":
            code = _run_layout(args, cfg)
        else:
            code = _run_utilization(args)
    except (OSError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)
    sys.exit(code)


if __name__ == "__main__":
    main()
