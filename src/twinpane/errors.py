"""Error taxonomy shared by transports, the reducer and the controller."""

from __future__ import annotations

import errno
from enum import Enum
from typing import Optional


class Reason(Enum):
    """Why a filesystem or transfer operation failed."""
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    CONFLICT = "conflict"
    DISK_FULL = "disk_full"
    CONNECTION_LOST = "connection_lost"
    CANCELLED = "cancelled"
    TRANSPORT = "transport"


class FileOperationError(Exception):
    """Base class for every error raised by twinpane."""

    def __init__(self, message: str, reason: Reason = Reason.TRANSPORT) -> None:
        super().__init__(message)
        self.reason = reason


class TransportError(FileOperationError):
    """Raised by a transport when the underlying filesystem call fails."""


class ListingError(FileOperationError):
    """A directory could not be listed."""


class MutationError(FileOperationError):
    """A rename, delete or mkdir request failed."""


class ConflictError(MutationError):
    """The target name already exists."""

    def __init__(self, message: str) -> None:
        super().__init__(message, Reason.CONFLICT)


class TransferError(FileOperationError):
    """A file transfer failed and was terminated."""


class TransferCancelledException(TransferError):
    """Exception raised when a transfer is cancelled."""

    def __init__(self, message: str = "Transfer cancelled") -> None:
        super().__init__(message, Reason.CANCELLED)


class BusyError(FileOperationError):
    """Another transfer already holds the session's transfer slot."""


_ERRNO_REASONS = {
    errno.ENOENT: Reason.NOT_FOUND,
    errno.ENOTDIR: Reason.NOT_FOUND,
    errno.EACCES: Reason.PERMISSION_DENIED,
    errno.EPERM: Reason.PERMISSION_DENIED,
    errno.EEXIST: Reason.CONFLICT,
    errno.ENOTEMPTY: Reason.CONFLICT,
    errno.ENOSPC: Reason.DISK_FULL,
    errno.EPIPE: Reason.CONNECTION_LOST,
    errno.ECONNRESET: Reason.CONNECTION_LOST,
    errno.ECONNABORTED: Reason.CONNECTION_LOST,
}


def classify_os_error(exc: BaseException) -> Reason:
    """Map an ``OSError`` (or paramiko's ``IOError``) onto a :class:`Reason`."""
    if isinstance(exc, FileOperationError):
        return exc.reason
    if isinstance(exc, FileNotFoundError):
        return Reason.NOT_FOUND
    if isinstance(exc, PermissionError):
        return Reason.PERMISSION_DENIED
    if isinstance(exc, FileExistsError):
        return Reason.CONFLICT
    code: Optional[int] = getattr(exc, "errno", None)
    if code is not None:
        return _ERRNO_REASONS.get(code, Reason.TRANSPORT)
    return Reason.TRANSPORT


def wrap(exc: BaseException, error_cls: type, context: str) -> FileOperationError:
    """Re-express ``exc`` as ``error_cls`` keeping its reason."""
    if isinstance(exc, error_cls):
        return exc
    reason = classify_os_error(exc)
    # transport errors already name the path they failed on
    message = str(exc) if isinstance(exc, FileOperationError) else f"{context}: {exc}"
    if error_cls is MutationError and reason is Reason.CONFLICT:
        return ConflictError(message)
    return error_cls(message, reason)
