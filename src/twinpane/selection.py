"""Batch-selection model for a single pane.

A :class:`Selection` is an immutable value; every operation returns a new
one. ``view`` arguments are the filtered and sorted entries the pane shows,
which is what click indices and "select all" refer to.
"""

from __future__ import annotations

import dataclasses
from typing import FrozenSet, Iterable, Optional, Sequence

from .fileops import FileEntry


@dataclasses.dataclass(frozen=True)
class Selection:
    selected: FrozenSet[str] = frozenset()
    anchor: Optional[str] = None
    active: Optional[str] = None


EMPTY = Selection()


def selectable_paths(entries: Iterable[FileEntry]) -> FrozenSet[str]:
    return frozenset(entry.path for entry in entries if entry.is_selectable)


def sanitize(selection: Selection, entries: Sequence[FileEntry]) -> Selection:
    """Drop anything that is not a listed, selectable file."""
    allowed = selectable_paths(entries)
    selected = selection.selected & allowed
    if selected == selection.selected:
        return selection
    return dataclasses.replace(selection, selected=selected)


def _index_of(view: Sequence[FileEntry], path: Optional[str]) -> Optional[int]:
    if path is None:
        return None
    for index, entry in enumerate(view):
        if entry.path == path:
            return index
    return None


def click(selection: Selection, view: Sequence[FileEntry], path: str) -> Selection:
    """Plain click: make ``path`` the active entry, leave the batch alone."""
    entry = next((e for e in view if e.path == path), None)
    if entry is None or not entry.is_selectable:
        return selection
    return dataclasses.replace(selection, active=path, anchor=path)


def toggle(selection: Selection, view: Sequence[FileEntry], path: str) -> Selection:
    """Ctrl/cmd-click: flip membership of ``path`` and move the anchor to it."""
    if path not in selectable_paths(view):
        return selection
    selected = set(selection.selected)
    if path in selected:
        selected.discard(path)
    else:
        selected.add(path)
    return dataclasses.replace(selection, selected=frozenset(selected), anchor=path)


def extend(selection: Selection, view: Sequence[FileEntry], path: str) -> Selection:
    """Shift-click: add every selectable file between the anchor and ``path``.

    The range is inclusive and additive. Without a usable anchor this
    behaves like :func:`toggle`.
    """
    clicked = _index_of(view, path)
    if clicked is None or not view[clicked].is_selectable:
        return selection
    anchor = _index_of(view, selection.anchor)
    if anchor is None:
        return toggle(selection, view, path)

    start, end = min(anchor, clicked), max(anchor, clicked)
    in_range = selectable_paths(view[start:end + 1])
    return dataclasses.replace(
        selection, selected=selection.selected | in_range, anchor=path
    )


def select_all(selection: Selection, view: Sequence[FileEntry]) -> Selection:
    return dataclasses.replace(selection, selected=selectable_paths(view))


def deselect_all(selection: Selection) -> Selection:
    return dataclasses.replace(selection, selected=frozenset())


def discard(selection: Selection, path: str) -> Selection:
    """Forget ``path`` everywhere, used after it was deleted."""
    return Selection(
        selected=selection.selected - {path},
        anchor=None if selection.anchor == path else selection.anchor,
        active=None if selection.active == path else selection.active,
    )
