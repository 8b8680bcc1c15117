"""Actions understood by :func:`twinpane.reducer.reduce`.

User intents and asynchronous results share this vocabulary. Actions that
depend on time carry it in ``at`` so the reducer never reads a clock.
"""

from __future__ import annotations

import dataclasses
from typing import Optional, Tuple

from .fileops import FileEntry
from .sorting import SortColumn
from .state import RemoteHost, Side, TransferDirection


class Action:
    """Marker base class."""


# -- panes ---------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class NavigateRequested(Action):
    side: Side
    path: str


@dataclasses.dataclass(frozen=True)
class ListingLoaded(Action):
    side: Side
    path: str
    resolved_path: str
    entries: Tuple[FileEntry, ...]


@dataclasses.dataclass(frozen=True)
class ListingFailed(Action):
    side: Side
    path: str
    message: str


@dataclasses.dataclass(frozen=True)
class ShowHiddenSet(Action):
    side: Side
    show_hidden: bool


@dataclasses.dataclass(frozen=True)
class SortClicked(Action):
    side: Side
    column: SortColumn


@dataclasses.dataclass(frozen=True)
class EntryClicked(Action):
    side: Side
    path: str
    ctrl: bool = False
    shift: bool = False


@dataclasses.dataclass(frozen=True)
class AllSelected(Action):
    side: Side


@dataclasses.dataclass(frozen=True)
class AllDeselected(Action):
    side: Side


@dataclasses.dataclass(frozen=True)
class EntryRemoved(Action):
    """A delete succeeded; the path leaves the selection before the refresh."""
    side: Side
    path: str


@dataclasses.dataclass(frozen=True)
class MutationFailed(Action):
    side: Side
    message: str


@dataclasses.dataclass(frozen=True)
class ContextMenuOpened(Action):
    side: Side
    position: Tuple[float, float]


@dataclasses.dataclass(frozen=True)
class ContextMenuHovered(Action):
    side: Side
    index: Optional[int]


@dataclasses.dataclass(frozen=True)
class ContextMenuClosed(Action):
    side: Side


@dataclasses.dataclass(frozen=True)
class AllMenusClosed(Action):
    pass


# -- transfer ------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class TransferRequested(Action):
    direction: TransferDirection
    file_paths: Tuple[str, ...]
    at: float


@dataclasses.dataclass(frozen=True)
class TransferSized(Action):
    total_bytes_all_files: int


@dataclasses.dataclass(frozen=True)
class TransferFileStarted(Action):
    index: int
    file_name: str
    total_bytes: int
    at: float


@dataclasses.dataclass(frozen=True)
class TransferProgressed(Action):
    bytes_transferred: int
    total_bytes: int
    at: float


@dataclasses.dataclass(frozen=True)
class TransferFileCompleted(Action):
    at: float


@dataclasses.dataclass(frozen=True)
class TransferCleared(Action):
    """A completed transfer returns the slot to idle."""


@dataclasses.dataclass(frozen=True)
class TransferFailed(Action):
    message: str


@dataclasses.dataclass(frozen=True)
class TransferCancelRequested(Action):
    pass


@dataclasses.dataclass(frozen=True)
class TransferCancelled(Action):
    message: str = "Transfer cancelled"


# -- drag and drop -------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class DragStarted(Action):
    side: Side
    entry: FileEntry


@dataclasses.dataclass(frozen=True)
class DragEntered(Action):
    side: Side


@dataclasses.dataclass(frozen=True)
class DragLeft(Action):
    pass


@dataclasses.dataclass(frozen=True)
class DragEnded(Action):
    pass


# -- session -------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class HostSet(Action):
    host: Optional[RemoteHost]


@dataclasses.dataclass(frozen=True)
class ErrorRaised(Action):
    message: str


@dataclasses.dataclass(frozen=True)
class ErrorDismissed(Action):
    pass


@dataclasses.dataclass(frozen=True)
class Reset(Action):
    pass
