"""Immutable session, pane and transfer state."""

from __future__ import annotations

import dataclasses
import os
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from .fileops import FileEntry
from .selection import EMPTY, Selection
from .sorting import SortColumn, SortDirection, visible_entries


class Side(Enum):
    """One of the two panes."""
    LOCAL = "local"
    REMOTE = "remote"

    @property
    def other(self) -> "Side":
        return Side.REMOTE if self is Side.LOCAL else Side.LOCAL

    @property
    def label(self) -> str:
        return self.value.capitalize()


class TransferDirection(Enum):
    """Direction of a file transfer, named after the side the bytes leave."""
    UPLOAD = "upload"
    DOWNLOAD = "download"

    @property
    def source(self) -> Side:
        return Side.LOCAL if self is TransferDirection.UPLOAD else Side.REMOTE

    @property
    def destination(self) -> Side:
        return self.source.other

    @classmethod
    def from_source(cls, side: Side) -> "TransferDirection":
        return cls.UPLOAD if side is Side.LOCAL else cls.DOWNLOAD


class TransferPhase(Enum):
    """Lifecycle of a transfer; ``IDLE`` is represented by ``transfer is None``."""
    IDLE = "idle"
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclasses.dataclass(frozen=True)
class ContextMenu:
    position: Tuple[float, float]
    hovered_index: Optional[int] = None


@dataclasses.dataclass(frozen=True)
class PaneState:
    """Everything one side of the file manager knows about itself."""

    path: str = ""
    entries: Tuple[FileEntry, ...] = ()
    loading: bool = False
    pending_path: Optional[str] = None
    selection: Selection = EMPTY
    show_hidden: bool = False
    sort_column: SortColumn = SortColumn.NAME
    sort_direction: SortDirection = SortDirection.ASC
    context_menu: Optional[ContextMenu] = None
    separator: str = os.sep

    @property
    def selected(self) -> FrozenSet[str]:
        return self.selection.selected

    @property
    def active_entry(self) -> Optional[str]:
        return self.selection.active

    @property
    def view(self) -> List[FileEntry]:
        """Entries as displayed: hidden files filtered, then sorted."""
        return visible_entries(
            self.entries, self.show_hidden, self.sort_column, self.sort_direction
        )

    def find(self, path: str) -> Optional[FileEntry]:
        return next((entry for entry in self.entries if entry.path == path), None)


@dataclasses.dataclass(frozen=True)
class TransferState:
    """Progress of the single active transfer."""

    direction: TransferDirection
    file_paths: Tuple[str, ...]
    phase: TransferPhase = TransferPhase.QUEUED
    current_file_name: str = ""
    bytes_transferred: int = 0
    total_bytes: int = 0
    started_at: float = 0.0
    last_sample_at: float = 0.0
    speed_bytes_per_second: float = 0.0
    file_index: int = 0
    files_completed: int = 0
    bytes_transferred_all_files: int = 0
    total_bytes_all_files: Optional[int] = None
    cancel_requested: bool = False

    @property
    def file_count(self) -> int:
        return len(self.file_paths)

    @property
    def is_batch(self) -> bool:
        return self.file_count > 1

    @property
    def is_active(self) -> bool:
        return self.phase in (TransferPhase.QUEUED, TransferPhase.IN_PROGRESS)

    @property
    def progress_percent(self) -> int:
        if self.total_bytes <= 0:
            return 0
        return round(self.bytes_transferred / self.total_bytes * 100)

    @property
    def overall_percent(self) -> int:
        """Aggregate progress over the batch, falling back to the current file."""
        if not self.total_bytes_all_files:
            return self.progress_percent
        return round(self.bytes_transferred_all_files / self.total_bytes_all_files * 100)

    @property
    def eta_millis(self) -> Optional[float]:
        """Milliseconds left on the current file, ``None`` while unknown."""
        if self.speed_bytes_per_second > 0 and self.total_bytes > 0:
            remaining = self.total_bytes - self.bytes_transferred
            return remaining / self.speed_bytes_per_second * 1000
        return None


@dataclasses.dataclass(frozen=True)
class RemoteHost:
    """Descriptor of the host the remote pane talks to."""

    id: str
    hostname: str
    username: str
    port: int = 22
    label: str = ""

    @property
    def display_name(self) -> str:
        return self.label or f"{self.username}@{self.hostname}"


@dataclasses.dataclass(frozen=True)
class DragSession:
    source: Side
    entry: FileEntry


@dataclasses.dataclass(frozen=True)
class SessionState:
    local: PaneState = dataclasses.field(default_factory=PaneState)
    remote: PaneState = dataclasses.field(default_factory=lambda: PaneState(separator="/"))
    transfer: Optional[TransferState] = None
    error: Optional[str] = None
    drag_over_pane: Optional[Side] = None
    drag: Optional[DragSession] = None
    host: Optional[RemoteHost] = None
    last_outcome: Optional[TransferPhase] = None

    def pane(self, side: Side) -> PaneState:
        return self.local if side is Side.LOCAL else self.remote

    def with_pane(self, side: Side, pane: PaneState) -> "SessionState":
        if side is Side.LOCAL:
            return dataclasses.replace(self, local=pane)
        return dataclasses.replace(self, remote=pane)

    @property
    def transfer_phase(self) -> TransferPhase:
        return self.transfer.phase if self.transfer else TransferPhase.IDLE

    @property
    def transfer_active(self) -> bool:
        return self.transfer is not None and self.transfer.is_active


def initial_state(
    host: Optional[RemoteHost] = None,
    *,
    local_separator: str = os.sep,
    remote_separator: str = "/",
    show_hidden: bool = False,
) -> SessionState:
    return SessionState(
        local=PaneState(separator=local_separator, show_hidden=show_hidden),
        remote=PaneState(separator=remote_separator, show_hidden=show_hidden),
        host=host,
    )
