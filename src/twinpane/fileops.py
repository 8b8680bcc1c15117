"""Local filesystem helpers, entry model and path utilities for twinpane."""

from __future__ import annotations

import dataclasses
import errno
import os
import stat
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

import paramiko

PARENT_NAME = ".."


class EntryKind(Enum):
    """Kind of a listed directory entry."""
    FILE = "file"
    DIRECTORY = "directory"


@dataclasses.dataclass(frozen=True)
class FileEntry:
    """Immutable description of a directory entry."""

    name: str
    kind: EntryKind
    size: int
    modified: float
    path: str

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("File name cannot be empty")
        if self.size < 0:
            object.__setattr__(self, "size", 0)
        if self.modified < 0:
            object.__setattr__(self, "modified", 0.0)

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @property
    def is_parent(self) -> bool:
        return self.name == PARENT_NAME

    @property
    def is_hidden(self) -> bool:
        """Dot-files are hidden; the parent marker never is."""
        return self.name.startswith(".") and not self.is_parent

    @property
    def is_selectable(self) -> bool:
        """Only plain files can be batch-selected and transferred."""
        return self.kind is EntryKind.FILE and not self.is_parent


@dataclasses.dataclass(frozen=True)
class FileStat:
    """Result of a transport ``stat`` call."""

    size: int
    modified: float


# -- paths ---------------------------------------------------------------
#
# Paths are opaque strings; every helper takes the separator of the side
# the path belongs to.

def _trim(path: str, sep: str) -> str:
    trimmed = path.rstrip(sep)
    return trimmed or sep


def join_path(base: str, name: str, sep: str) -> str:
    """Join ``name`` onto ``base`` using ``sep``."""
    if not base:
        return name
    if base.endswith(sep):
        return base + name
    return base + sep + name


def parent_path(path: str, sep: str) -> str:
    """Return the parent of ``path``; a root is its own parent."""
    trimmed = _trim(path, sep)
    if trimmed == sep:
        return sep
    index = trimmed.rfind(sep)
    if index < 0:
        return trimmed
    if index == 0:
        return sep
    head = trimmed[:index]
    if head.endswith(":"):
        # drive roots such as C:\ keep their separator
        return head + sep
    return head


def base_name(path: str, sep: str) -> str:
    """Return the last component of ``path``."""
    return _trim(path, sep).rsplit(sep, 1)[-1]


def has_parent(path: str, sep: str) -> bool:
    return parent_path(path, sep) != _trim(path, sep)


def parent_entry(path: str, sep: str) -> FileEntry:
    """Synthetic ``..`` entry pointing at the parent of ``path``."""
    return FileEntry(
        name=PARENT_NAME,
        kind=EntryKind.DIRECTORY,
        size=0,
        modified=0.0,
        path=parent_path(path, sep),
    )


# -- formatting ----------------------------------------------------------

def human_size(n: float) -> str:
    """Convert bytes to human readable format."""
    if not n:
        return "-"
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(n)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    if value < 10 and index > 0:
        return f"{value:.1f} {units[index]}"
    return f"{value:.0f} {units[index]}"


def human_time(ts: float) -> str:
    """Convert timestamp to human readable format."""
    try:
        return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M")
    except (OverflowError, OSError, ValueError):
        return "-"


def format_duration(millis: float) -> str:
    """Render a duration as ``4s``, ``2m 5s`` or ``1h 3m``."""
    total_seconds = max(1, round(millis / 1000))
    minutes, seconds = divmod(total_seconds, 60)
    if minutes >= 60:
        hours, minutes = divmod(minutes, 60)
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def format_eta(millis: Optional[float]) -> str:
    if millis is None:
        return "Estimating..."
    return format_duration(millis)


# -- remote attributes ---------------------------------------------------

def stat_isdir(attr: paramiko.SFTPAttributes) -> bool:
    """Return ``True`` when the attribute represents a directory."""
    return bool(attr.st_mode and stat.S_ISDIR(attr.st_mode))


def entry_from_attr(attr: paramiko.SFTPAttributes, directory: str, sep: str = "/") -> FileEntry:
    """Build a :class:`FileEntry` from an SFTP ``listdir_attr`` item."""
    return FileEntry(
        name=attr.filename,
        kind=EntryKind.DIRECTORY if stat_isdir(attr) else EntryKind.FILE,
        size=attr.st_size or 0,
        modified=float(attr.st_mtime or 0),
        path=join_path(directory, attr.filename, sep),
    )


# -- local directories ---------------------------------------------------

def normalize_local_path(path: Optional[str]) -> str:
    """Expand user and resolve an absolute local filesystem path."""
    expanded = os.path.expanduser(path or "~")
    return os.path.abspath(expanded)


def load_local_directory(path: str) -> Tuple[str, List[FileEntry]]:
    """Return normalized path and entries for a local directory.

    Entries whose ``stat`` fails (dangling links, races with deletion) are
    skipped. A ``..`` entry is prepended unless ``path`` is a root.
    """
    normalized = normalize_local_path(path)
    if not os.path.isdir(normalized):
        raise NotADirectoryError(errno.ENOTDIR, "Not a directory", normalized)

    entries: List[FileEntry] = []
    with os.scandir(normalized) as it:
        for dirent in it:
            try:
                stat_result = dirent.stat()
                is_dir = dirent.is_dir()
            except OSError:
                continue
            entries.append(FileEntry(
                name=dirent.name,
                kind=EntryKind.DIRECTORY if is_dir else EntryKind.FILE,
                size=0 if is_dir else stat_result.st_size,
                modified=stat_result.st_mtime,
                path=dirent.path,
            ))

    if has_parent(normalized, os.sep):
        entries.insert(0, parent_entry(normalized, os.sep))
    return normalized, entries
