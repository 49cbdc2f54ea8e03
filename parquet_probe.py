"""
Parquet Probe: interactive browser for Parquet file metadata

Opens one or more Parquet files, decodes each footer once and shows, side by
side, the selected row group and column chunk of every file: row counts, sizes,
codec, encodings and min/max/null statistics. No page or row data is read.

Keys:
    up / down      next / previous row group in the focused file
    left / right   previous / next column in the focused file
    tab            move focus to the next file
    q / esc        quit

Usage:
    parquet-probe <file.parquet> [<file.parquet> ...] [--row-group N] [--column N]
    parquet-probe <file.parquet> --json
"""

import argparse
import curses
import json
import logging
import os
import sys

from probe_commands import handle_key
from probe_render import draw, init_colors
from probe_workspace import Workspace

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="parquet-probe",
        description="Browse row groups and column chunks of one or more Parquet files.",
    )
    parser.add_argument("paths", nargs="+", metavar="parquet_file", help="Parquet file(s) to open.")
    parser.add_argument("--row-group", type=int, default=0, help="Row group to start on (clamped per file).")
    parser.add_argument("--column", type=int, default=0, help="Column to start on (clamped per file).")
    parser.add_argument("--json", action="store_true", help="Print the decoded metadata as JSON and exit.")
    parser.add_argument("--log-level", default="WARNING")
    parser.add_argument("--log-file", help="Write log output here instead of stderr.")
    return parser


def configure_logging(level_name, log_file=None):
    levels = logging.getLevelNamesMapping()
    level = levels.get(level_name.upper())
    if level is None:
        raise ValueError(f"unknown log level: {level_name}")
    logging.basicConfig(
        level=level,
        filename=log_file,
        format="%(asctime)s %(name)s [%(threadName)s] %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def dump_json(workspace, out=None):
    # One entry per session, in argument order; a path given twice appears twice.
    result = [{"path": session.path, **session.metadata.as_dict()} for session in workspace.sessions]
    print(json.dumps(result, indent=2), file=out)


def run(stdscr, workspace, failures):
    """Draw, read one key, apply it; repeat until a quit key."""
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    init_colors()
    while True:
        draw(stdscr, workspace, failures)
        if not handle_key(workspace, stdscr.getch()):
            break


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        configure_logging(args.log_level, args.log_file)
    except ValueError as e:
        parser.error(str(e))

    workspace, failures = Workspace.open(args.paths)
    logger.debug(f"opened {len(workspace)} of {len(args.paths)} file(s)")
    for failure in failures:
        print(f"parquet-probe: skipping {failure}", file=sys.stderr)
    if workspace.is_empty:
        print("parquet-probe: no files could be opened", file=sys.stderr)
        return 1

    workspace.move_all_to(args.row_group, args.column)

    if args.json:
        dump_json(workspace)
        return 0

    # Make ESC snappy
    os.environ.setdefault("ESCDELAY", "25")
    curses.wrapper(run, workspace, failures)
    return 0


if __name__ == "__main__":
    sys.exit(main())
