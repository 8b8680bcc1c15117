"""Filesystem collaborator contract and the local implementation.

Both panes talk to a :class:`Transport`. Paths are opaque strings built with
the transport's own ``separator``. Every failure is raised as a
:class:`~twinpane.errors.TransportError` carrying a
:class:`~twinpane.errors.Reason`.
"""

from __future__ import annotations

import abc
import logging
import os
import shutil
from typing import BinaryIO, List, Tuple

from .errors import ConflictError, Reason, TransportError, classify_os_error
from .fileops import FileEntry, FileStat, join_path, load_local_directory, parent_path

logger = logging.getLogger(__name__)


class Transport(abc.ABC):
    """Direction-agnostic access to one side's filesystem."""

    separator: str = "/"

    @abc.abstractmethod
    def listdir(self, path: str) -> Tuple[str, List[FileEntry]]:
        """Return the resolved path and its entries, ``..`` first when applicable."""

    @abc.abstractmethod
    def stat(self, path: str) -> FileStat:
        ...

    @abc.abstractmethod
    def open_read(self, path: str) -> BinaryIO:
        ...

    @abc.abstractmethod
    def open_write(self, path: str) -> BinaryIO:
        ...

    @abc.abstractmethod
    def rename(self, path: str, new_name: str) -> str:
        """Rename ``path`` inside its directory and return the new path.

        Must refuse to replace an existing entry.
        """

    @abc.abstractmethod
    def remove(self, path: str, recursive: bool = False) -> None:
        ...

    @abc.abstractmethod
    def mkdir(self, path: str, name: str) -> str:
        """Create ``name`` inside ``path`` and return the new directory path."""

    def exists(self, path: str) -> bool:
        try:
            self.stat(path)
        except TransportError as exc:
            if exc.reason is Reason.NOT_FOUND:
                return False
            raise
        return True

    def discard_partial(self, path: str) -> None:
        """Best-effort removal of an incomplete transfer target."""
        try:
            self.remove(path)
        except TransportError as exc:
            if exc.reason is not Reason.NOT_FOUND:
                logger.warning(f"Could not remove partial file {path}: {exc}")

    def close(self) -> None:
        pass


def _transport_error(exc: OSError, context: str) -> TransportError:
    return TransportError(f"{context}: {exc.strerror or exc}", classify_os_error(exc))


class LocalTransport(Transport):
    """Transport over the machine's own filesystem."""

    separator = os.sep

    def listdir(self, path: str) -> Tuple[str, List[FileEntry]]:
        try:
            return load_local_directory(path)
        except OSError as exc:
            raise _transport_error(exc, f"Cannot list directory '{path}'") from exc

    def stat(self, path: str) -> FileStat:
        try:
            result = os.stat(path)
        except OSError as exc:
            raise _transport_error(exc, f"Cannot stat '{path}'") from exc
        return FileStat(size=result.st_size, modified=result.st_mtime)

    def open_read(self, path: str) -> BinaryIO:
        try:
            return open(path, "rb")
        except OSError as exc:
            raise _transport_error(exc, f"Cannot read '{path}'") from exc

    def open_write(self, path: str) -> BinaryIO:
        try:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            return open(path, "wb")
        except OSError as exc:
            raise _transport_error(exc, f"Cannot write '{path}'") from exc

    def rename(self, path: str, new_name: str) -> str:
        target = join_path(parent_path(path, self.separator), new_name, self.separator)
        if os.path.lexists(target):
            raise ConflictError(f"'{new_name}' already exists")
        try:
            os.rename(path, target)
        except OSError as exc:
            raise _transport_error(exc, f"Cannot rename '{path}'") from exc
        logger.info(f"Renamed: {path} -> {target}")
        return target

    def remove(self, path: str, recursive: bool = False) -> None:
        try:
            if os.path.isdir(path) and not os.path.islink(path):
                if recursive:
                    shutil.rmtree(path)
                else:
                    os.rmdir(path)
            else:
                os.remove(path)
        except OSError as exc:
            raise _transport_error(exc, f"Cannot remove '{path}'") from exc
        logger.info(f"Removed: {path}")

    def mkdir(self, path: str, name: str) -> str:
        target = join_path(path, name, self.separator)
        try:
            os.mkdir(target)
        except FileExistsError as exc:
            raise ConflictError(f"'{name}' already exists") from exc
        except OSError as exc:
            raise _transport_error(exc, f"Cannot create directory '{target}'") from exc
        logger.info(f"Created directory: {target}")
        return target
