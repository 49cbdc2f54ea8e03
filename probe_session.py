"""One opened Parquet file and the row group / column cursor that browses it."""

import enum
import logging
import os
import stat
from dataclasses import dataclass

from probe_footer import DecodeError, read_footer

logger = logging.getLogger(__name__)


class OpenErrorKind(enum.Enum):
    NOT_FOUND = "not found"
    PERMISSION_DENIED = "permission denied"
    NOT_A_FILE = "not a regular file"
    IO = "I/O error"
    DECODE = "not a readable Parquet file"


class OpenError(Exception):
    """A path could not be turned into a FileSession.

    ``kind`` tells which stage failed; the OSError or DecodeError that caused
    it is chained as ``__cause__``.
    """

    def __init__(self, path, kind, reason):
        super().__init__(f"{path}: {kind.value}: {reason}")
        self.path = path
        self.kind = kind
        self.reason = reason


@dataclass
class NavigationCursor:
    row_group_index: int = 0
    column_index: int = 0


def _clamp(value, upper):
    return max(0, min(value, upper - 1))


class FileSession:
    """A file's decoded metadata plus the cursor into it.

    The cursor is None when the file has no row groups or no columns; every
    navigation method is then a no-op and every accessor returns None.
    """

    def __init__(self, path, metadata):
        self.path = path
        self.metadata = metadata
        self.cursor = None if self.is_empty else NavigationCursor()

    @property
    def row_group_count(self):
        return len(self.metadata.row_groups)

    @property
    def column_count(self):
        return len(self.metadata.schema)

    @property
    def is_empty(self):
        return self.row_group_count == 0 or self.column_count == 0

    @property
    def position(self):
        if self.cursor is None:
            return None
        return self.cursor.row_group_index, self.cursor.column_index

    @property
    def current_row_group(self):
        if self.cursor is None:
            return None
        return self.metadata.row_groups[self.cursor.row_group_index]

    @property
    def current_column(self):
        if self.cursor is None:
            return None
        return self.metadata.schema[self.cursor.column_index]

    @property
    def current_column_chunk(self):
        if self.cursor is None:
            return None
        return self.current_row_group.column_chunks[self.cursor.column_index]

    def increment_row_group(self):
        if self.cursor is not None:
            self.cursor.row_group_index = min(self.cursor.row_group_index + 1, self.row_group_count - 1)

    def decrement_row_group(self):
        if self.cursor is not None:
            self.cursor.row_group_index = max(self.cursor.row_group_index - 1, 0)

    def increment_column(self):
        if self.cursor is not None:
            self.cursor.column_index = min(self.cursor.column_index + 1, self.column_count - 1)

    def decrement_column(self):
        if self.cursor is not None:
            self.cursor.column_index = max(self.cursor.column_index - 1, 0)

    def move_to(self, row_group_index, column_index):
        """Jump to a position, clamping each index into this file's bounds."""
        if self.cursor is None:
            return
        self.cursor.row_group_index = _clamp(row_group_index, self.row_group_count)
        self.cursor.column_index = _clamp(column_index, self.column_count)

    def __repr__(self):
        return f"FileSession({self.path!r}, position={self.position})"


def open_session(path):
    """Read and decode ``path``; raise OpenError saying which stage failed."""
    try:
        if not stat.S_ISREG(os.stat(path).st_mode):
            raise OpenError(path, OpenErrorKind.NOT_A_FILE, "only regular files can be inspected")
        with open(path, "rb") as f:
            metadata = read_footer(f)
    except FileNotFoundError as e:
        raise OpenError(path, OpenErrorKind.NOT_FOUND, e.strerror) from e
    except PermissionError as e:
        raise OpenError(path, OpenErrorKind.PERMISSION_DENIED, e.strerror) from e
    except IsADirectoryError as e:
        raise OpenError(path, OpenErrorKind.NOT_A_FILE, e.strerror) from e
    except OSError as e:
        raise OpenError(path, OpenErrorKind.IO, str(e)) from e
    except DecodeError as e:
        raise OpenError(path, OpenErrorKind.DECODE, str(e)) from e

    session = FileSession(path, metadata)
    logger.debug(
        f"opened {path}: {session.row_group_count} row groups, {session.column_count} columns"
        + (" (empty)" if session.is_empty else "")
    )
    return session
