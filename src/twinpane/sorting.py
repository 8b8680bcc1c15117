"""Sort and hidden-file filtering for pane listings.

Everything here is pure: functions take a sequence of entries and return a
new list, the input is never reordered in place.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, List, Sequence, Tuple

from .fileops import FileEntry


class SortColumn(Enum):
    """Available sort keys for file listings."""
    NAME = "name"
    MODIFIED = "modified"
    KIND = "kind"
    SIZE = "size"


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


_SORT_KEYS: Dict[SortColumn, Callable[[FileEntry], object]] = {
    SortColumn.NAME: lambda entry: entry.name.casefold(),
    SortColumn.MODIFIED: lambda entry: entry.modified,
    SortColumn.KIND: lambda entry: entry.kind.value,
    SortColumn.SIZE: lambda entry: entry.size,
}


def toggle_sort(
    column: SortColumn, direction: SortDirection, clicked: SortColumn
) -> Tuple[SortColumn, SortDirection]:
    """Clicking the active column flips direction, any other column sorts ascending."""
    if clicked is column:
        return column, direction.flipped()
    return clicked, SortDirection.ASC


def filter_hidden(entries: Sequence[FileEntry], show_hidden: bool) -> List[FileEntry]:
    if show_hidden:
        return list(entries)
    return [entry for entry in entries if not entry.is_hidden]


def sort_entries(
    entries: Sequence[FileEntry], column: SortColumn, direction: SortDirection
) -> List[FileEntry]:
    """Stable sort by ``column``; the ``..`` marker is kept on top."""
    parents = [entry for entry in entries if entry.is_parent]
    others = [entry for entry in entries if not entry.is_parent]
    others.sort(key=_SORT_KEYS[column], reverse=direction is SortDirection.DESC)
    return parents + others


def visible_entries(
    entries: Sequence[FileEntry],
    show_hidden: bool,
    column: SortColumn,
    direction: SortDirection,
) -> List[FileEntry]:
    """The filtered and sorted view a pane displays."""
    return sort_entries(filter_hidden(entries, show_hidden), column, direction)
