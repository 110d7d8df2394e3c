# src/schoolyard/main.py

import argparse
import logging
import os
import sys
from datetime import date
from typing import List, Optional

from .calendar_logic import build_week, classes_in_room, unscheduled_classes, week_start
from .config import load_config
from .data import Database
from .export_utils import export_grid_csv, format_amount, format_split, format_summary, grid_rows
from .finance import split_special_class, summarize_snapshot, window_from_config


def _parse_window(value: str):
    """'all', 'month', 'days:N' oder 'YYYY-MM-DD..YYYY-MM-DD'."""
    if '..' in value:
        start, end = value.split('..', 1)
        return {'start': start, 'end': end}
    return value


def show_week(db: Database, cfg: dict, room_id: str, anchor: date, csv_file: Optional[str]) -> int:
    data = db.load_snapshot()
    room = [c for c in data.classrooms if c.id == room_id]
    if not room:
        print(f"Room {room_id} not found", file=sys.stderr)
        return 1
    in_room = classes_in_room(data.classes, room_id)
    slots = cfg['time_slots']
    grid = build_week(in_room, anchor, slots)

    print(f"{room[0].name}: week of {week_start(anchor).isoformat()}")
    for row in grid_rows(grid, slots):
        print(" | ".join(row))
    for cls in unscheduled_classes(in_room):
        print(f"  ⚠ {cls.subject} has no schedule and is not shown")
    if csv_file:
        export_grid_csv(grid, slots, csv_file)
        print(f"Grid written to {csv_file}")
    return 0


def show_finance(db: Database, cfg: dict, window, chart_file: Optional[str]) -> int:
    data = db.load_snapshot()
    currency = cfg['currency']
    summary = summarize_snapshot(data, window_from_config(window))
    print(format_summary(summary, currency))

    names = {t.id: t.name for t in data.teachers}
    students_by_id = data.students_by_id()
    active = [s for s in data.special_classes if s.active]
    for special in active:
        split = split_special_class(special, students_by_id)
        print(f"\n{special.name} ({format_amount(split.center_amount + split.teacher_pool_amount, currency)})")
        print(format_split(split, currency, names))
        if chart_file:
            from .charts import create_split_chart
            fn = chart_file
            if len(active) > 1:
                root, ext = os.path.splitext(chart_file)
                fn = f"{root}_{special.id}{ext or '.png'}"
            create_split_chart(split, fn, names, subtitle=special.name)
    return 0


def run(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog='schoolyard', description='Room schedules and financial summary')
    parser.add_argument('--db', help='SQLite database path')
    parser.add_argument('--config', help='config JSON path')
    parser.add_argument('-v', '--verbose', action='store_true')
    sub = parser.add_subparsers(dest='command', required=True)

    p_week = sub.add_parser('week', help='weekly grid of one room')
    p_week.add_argument('--room', required=True)
    p_week.add_argument('--anchor', type=date.fromisoformat, default=date.today())
    p_week.add_argument('--csv')

    p_fin = sub.add_parser('finance', help='income, expenses and profit')
    p_fin.add_argument('--window', type=_parse_window)
    p_fin.add_argument('--chart', help='PNG file for the profit split of special classes')

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    cfg = load_config(args.config)
    db = Database(args.db or cfg.get('db_path'))
    try:
        if args.command == 'week':
            return show_week(db, cfg, args.room, args.anchor, args.csv)
        window = args.window if args.window is not None else cfg['expense_window']
        return show_finance(db, cfg, window, args.chart)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    finally:
        db.close()


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
