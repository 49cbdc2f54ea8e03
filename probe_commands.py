"""Key bindings: translate a key press into one workspace command."""

import curses
import enum


class Command(enum.Enum):
    DECREMENT_ROW_GROUP = "decrement-row-group"
    INCREMENT_ROW_GROUP = "increment-row-group"
    DECREMENT_COLUMN = "decrement-column"
    INCREMENT_COLUMN = "increment-column"
    ADVANCE_FOCUS = "advance-focus"
    QUIT = "quit"


ESCAPE = 27
TAB = 9

KEY_BINDINGS = {
    curses.KEY_UP: Command.INCREMENT_ROW_GROUP,
    ord("k"): Command.INCREMENT_ROW_GROUP,
    curses.KEY_DOWN: Command.DECREMENT_ROW_GROUP,
    ord("j"): Command.DECREMENT_ROW_GROUP,
    curses.KEY_LEFT: Command.DECREMENT_COLUMN,
    ord("h"): Command.DECREMENT_COLUMN,
    curses.KEY_RIGHT: Command.INCREMENT_COLUMN,
    ord("l"): Command.INCREMENT_COLUMN,
    TAB: Command.ADVANCE_FOCUS,
    ord("q"): Command.QUIT,
    ESCAPE: Command.QUIT,
}

HELP_TEXT = "up/down row group  left/right column  tab next file  q quit"


def map_key(key):
    """Return the Command bound to ``key``, or None.

    ``key`` may be a curses key code or a one-character string; anything else
    maps to None.
    """
    if isinstance(key, str):
        if len(key) != 1:
            return None
        key = ord(key)
    if not isinstance(key, int):
        return None
    return KEY_BINDINGS.get(key)


def handle_key(workspace, key):
    """Apply ``key`` to ``workspace``. Returns False once the loop should stop."""
    command = map_key(key)
    if command is None:
        return True
    if command is Command.QUIT:
        return False
    workspace.dispatch(command)
    return True
