"""The set of open files and which one has focus."""

import logging

from probe_commands import Command
from probe_session import OpenError, open_session

logger = logging.getLogger(__name__)

_SESSION_COMMANDS = {
    Command.DECREMENT_ROW_GROUP: "decrement_row_group",
    Command.INCREMENT_ROW_GROUP: "increment_row_group",
    Command.DECREMENT_COLUMN: "decrement_column",
    Command.INCREMENT_COLUMN: "increment_column",
}


def tab_label(index):
    """A, B, ..., Z, AA, AB, ... for the file at ``index``."""
    label = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        label = chr(ord("A") + remainder) + label
    return label


class Workspace:
    """Sessions in command-line order plus the index of the focused one.

    Focus wraps around the ring of files; cursor commands go to the focused
    session only. With no sessions ``focus_index`` is None and every command
    is a no-op.
    """

    def __init__(self, sessions):
        self.sessions = tuple(sessions)
        self.focus_index = 0 if self.sessions else None

    @classmethod
    def open(cls, paths):
        """Open every path; return the workspace and the OpenErrors for skipped paths."""
        sessions = []
        failures = []
        for path in paths:
            try:
                sessions.append(open_session(path))
            except OpenError as e:
                logger.info(f"skipping {e}")
                failures.append(e)
        return cls(sessions), failures

    def __len__(self):
        return len(self.sessions)

    @property
    def is_empty(self):
        return not self.sessions

    def focused(self):
        if self.focus_index is None:
            return None
        return self.sessions[self.focus_index]

    def focus_next(self):
        if self.focus_index is not None:
            self.focus_index = (self.focus_index + 1) % len(self.sessions)

    def dispatch(self, command):
        if command is Command.ADVANCE_FOCUS:
            self.focus_next()
            return
        method = _SESSION_COMMANDS.get(command)
        session = self.focused()
        if method is None or session is None:
            return
        getattr(session, method)()
        logger.debug(f"{command.value}: {session.path} -> {session.position}")

    def move_all_to(self, row_group_index, column_index):
        for session in self.sessions:
            session.move_to(row_group_index, column_index)

    def tabs(self):
        return [
            (tab_label(index), session.path, index == self.focus_index)
            for index, session in enumerate(self.sessions)
        ]

    def largest_selected_chunk(self):
        """Largest compressed size among the chunks currently selected in each file."""
        sizes = [
            session.current_column_chunk.compressed_size
            for session in self.sessions
            if not session.is_empty
        ]
        return max(sizes, default=0)
