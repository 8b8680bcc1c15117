"""twinpane - a dual-pane local/remote file transfer manager."""

from .config import Settings, load_settings, setup_logging
from .controller import SessionController, Store, connect_session
from .errors import (
    BusyError,
    ConflictError,
    FileOperationError,
    ListingError,
    MutationError,
    Reason,
    TransferCancelledException,
    TransferError,
    TransportError,
)
from .fileops import EntryKind, FileEntry, FileStat
from .reducer import reduce
from .sorting import SortColumn, SortDirection
from .state import (
    PaneState,
    RemoteHost,
    SessionState,
    Side,
    TransferDirection,
    TransferPhase,
    TransferState,
    initial_state,
)
from .transfer import describe as describe_transfer
from .transport import LocalTransport, Transport

__version__ = "0.1.0"

__all__ = [
    "BusyError",
    "ConflictError",
    "EntryKind",
    "FileEntry",
    "FileOperationError",
    "FileStat",
    "ListingError",
    "LocalTransport",
    "MutationError",
    "PaneState",
    "Reason",
    "RemoteHost",
    "SessionController",
    "SessionState",
    "Settings",
    "Side",
    "SortColumn",
    "SortDirection",
    "Store",
    "TransferCancelledException",
    "TransferDirection",
    "TransferError",
    "TransferPhase",
    "TransferState",
    "Transport",
    "TransportError",
    "connect_session",
    "describe_transfer",
    "initial_state",
    "load_settings",
    "reduce",
    "setup_logging",
]
