"""Curses drawing for the workspace: file tabs, one panel per file, a status line."""

import curses

from probe_commands import HELP_TEXT
from probe_metadata import StatisticsStatus, format_statistic

BAR_WIDTH = 30
PALETTE = (curses.COLOR_YELLOW, curses.COLOR_MAGENTA, curses.COLOR_CYAN, curses.COLOR_GREEN, curses.COLOR_BLUE)


def human_size(size):
    if size is None:
        return "n/a"
    for unit in ("B", "KiB", "MiB", "GiB"):
        if abs(size) < 1024 or unit == "GiB":
            return f"{size} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024


def size_bar(size, scale, width=BAR_WIDTH):
    if not scale:
        return ""
    filled = max(0, min(width, round(width * size / scale)))
    return "#" * filled + "." * (width - filled)


def describe_session(session, scale=None):
    """Plain text lines for one file panel."""
    if session.is_empty:
        return [
            f"row groups: {session.row_group_count}  columns: {session.column_count}",
            "nothing to browse",
        ]

    row_group_index, column_index = session.position
    row_group = session.current_row_group
    column = session.current_column
    chunk = session.current_column_chunk

    logical = f" / {column.logical_type}" if column.logical_type else ""
    lines = [
        f"row group {row_group_index + 1} of {session.row_group_count}"
        f"  column {column_index + 1} of {session.column_count}",
        f"column: {column.name} ({column.physical_type.name}{logical})",
        f"rows: {row_group.row_count}  row group size: {human_size(row_group.total_byte_size)}",
        f"values: {chunk.num_values}  codec: {chunk.codec.name}",
        f"encoding: {chunk.encoding.name}  [{', '.join(e.name for e in chunk.encodings)}]",
        f"compressed: {human_size(chunk.compressed_size)}"
        f"  uncompressed: {human_size(chunk.uncompressed_size)}",
    ]
    if chunk.compression_ratio is not None:
        lines.append(f"ratio: {chunk.compression_ratio:.2f}x")
    if scale:
        lines.append(size_bar(chunk.compressed_size, scale))

    if chunk.statistics_status is StatisticsStatus.PRESENT:
        stats = chunk.statistics
        lines.append(f"min: {format_statistic(column, stats.min_value) or 'n/a'}")
        lines.append(f"max: {format_statistic(column, stats.max_value) or 'n/a'}")
        nulls = "n/a" if stats.null_count is None else stats.null_count
        lines.append(f"nulls: {nulls}")
        if stats.distinct_count is not None:
            lines.append(f"distinct: {stats.distinct_count}")
    else:
        lines.append(f"statistics: {chunk.statistics_status.value}")

    for stat in chunk.encoding_stats:
        lines.append(f"  {stat.page_type.name} {stat.encoding.name}: {stat.count} pages")
    return lines


def _put(window, y, x, text, attr=0):
    height, width = window.getmaxyx()
    if y < 0 or y >= height or x >= width:
        return
    try:
        window.addnstr(y, x, text, width - x, attr)
    except curses.error:
        # Writing the bottom-right cell moves the cursor off screen.
        pass


def init_colors():
    if not curses.has_colors():
        return
    curses.start_color()
    for index, color in enumerate(PALETTE, start=1):
        curses.init_pair(index, color, curses.COLOR_BLACK)


def _color(index):
    if not curses.has_colors():
        return 0
    return curses.color_pair(index % len(PALETTE) + 1)


def draw(stdscr, workspace, failures=()):
    stdscr.erase()
    height, width = stdscr.getmaxyx()
    _put(stdscr, 0, 0, "parquet-probe", curses.A_BOLD)

    for row, (label, path, focused) in enumerate(workspace.tabs(), start=1):
        marker = ">" if focused else " "
        attr = _color(row - 1) | (curses.A_REVERSE if focused else 0)
        _put(stdscr, row, 0, f"{marker} File {label}: {path}", attr)

    top = len(workspace) + 2
    if workspace.is_empty:
        _put(stdscr, top, 0, "no files could be opened")
    else:
        scale = workspace.largest_selected_chunk()
        panel_width = max(width // len(workspace), 1)
        for index, session in enumerate(workspace.sessions):
            x = index * panel_width
            label = workspace.tabs()[index][0]
            title_attr = _color(index) | curses.A_BOLD
            if index == workspace.focus_index:
                title_attr |= curses.A_REVERSE
            _put(stdscr, top, x, f"[{label}]"[: panel_width - 1], title_attr)
            for offset, line in enumerate(describe_session(session, scale), start=1):
                _put(stdscr, top + offset, x, line[: panel_width - 1], _color(index))

    status = HELP_TEXT
    if failures:
        status = f"skipped {len(failures)} file(s): " + "; ".join(str(e) for e in failures)
    _put(stdscr, height - 1, 0, status, curses.A_DIM)
    stdscr.refresh()
