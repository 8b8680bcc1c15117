"""Session controller: runs side effects and feeds results back as actions.

The reducer decides what the state is; this module decides what to *do*.
Transport calls run on a thread pool and their outcomes are marshalled back
through ``dispatcher`` (by default a direct call; a GUI passes its main-loop
marshaller, e.g. ``GLib.idle_add``).
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, BinaryIO, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .actions import (
    Action,
    AllDeselected,
    AllMenusClosed,
    AllSelected,
    ContextMenuClosed,
    ContextMenuHovered,
    ContextMenuOpened,
    DragEnded,
    DragEntered,
    DragLeft,
    DragStarted,
    EntryClicked,
    EntryRemoved,
    ErrorDismissed,
    HostSet,
    ListingFailed,
    ListingLoaded,
    MutationFailed,
    NavigateRequested,
    ShowHiddenSet,
    SortClicked,
    TransferCancelled,
    TransferCancelRequested,
    TransferCleared,
    TransferFailed,
    TransferFileCompleted,
    TransferFileStarted,
    TransferProgressed,
    TransferRequested,
    TransferSized,
)
from .config import Settings, load_settings
from .connection import SFTPTransport
from .errors import (
    BusyError,
    ConflictError,
    ListingError,
    MutationError,
    TransferCancelledException,
    TransferError,
    wrap,
)
from .fileops import FileEntry, base_name, join_path, parent_path
from .reducer import reduce
from .sorting import SortColumn
from .state import (
    RemoteHost,
    SessionState,
    Side,
    TransferDirection,
    TransferPhase,
    initial_state,
)
from .transport import LocalTransport, Transport

logger = logging.getLogger(__name__)

Listener = Callable[[SessionState, Action], None]


class Store:
    """Holds the current :class:`SessionState` and applies actions to it."""

    def __init__(
        self,
        state: SessionState,
        reducer: Callable[[SessionState, Action], SessionState] = reduce,
    ) -> None:
        self._state = state
        self._reducer = reducer
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> SessionState:
        return self._state

    def dispatch(self, action: Action) -> SessionState:
        with self._lock:
            self._state = self._reducer(self._state, action)
            state = self._state
            listeners = list(self._listeners)
        for listener in listeners:
            listener(state, action)
        return state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every action; returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe


def _direct_dispatch(func: Callable, args: tuple = (), kwargs: Optional[dict] = None) -> None:
    func(*args, **(kwargs or {}))


class SessionController:
    """Drives both panes and the transfer orchestrator for one session."""

    def __init__(
        self,
        local: Transport,
        remote: Transport,
        *,
        host: Optional[RemoteHost] = None,
        settings: Optional[Settings] = None,
        executor: Optional[Executor] = None,
        dispatcher: Optional[Callable[[Callable, tuple, dict], None]] = None,
        confirm_delete: Optional[Callable[[FileEntry], bool]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or Settings()
        self._transports: Dict[Side, Transport] = {Side.LOCAL: local, Side.REMOTE: remote}
        self._store = Store(
            initial_state(
                host,
                local_separator=local.separator,
                remote_separator=remote.separator,
                show_hidden=self._settings.show_hidden,
            ),
            functools.partial(reduce, smoothing=self._settings.speed_smoothing),
        )
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self._settings.max_workers, thread_name_prefix="twinpane"
        )
        self._dispatcher = dispatcher or _direct_dispatch
        self._confirm_delete = confirm_delete or (lambda entry: False)
        self._clock = clock
        self._transfer_lock = threading.Lock()
        self._transfer_busy = False
        self._cancel_event = threading.Event()
        self._closed = False

    # -- store ----------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._store.state

    @property
    def transfer_busy(self) -> bool:
        with self._transfer_lock:
            return self._transfer_busy

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._store.subscribe(listener)

    def dispatch(self, action: Action) -> SessionState:
        return self._store.dispatch(action)

    def _post(self, action: Action) -> None:
        """Dispatch from a worker thread through the dispatcher."""
        self._dispatcher(self._store.dispatch, (action,), {})

    def transport(self, side: Side) -> Transport:
        return self._transports[side]

    def _submit(
        self,
        func: Callable[[], Any],
        *,
        on_success: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Future:
        """Submit operation with standardized error handling."""
        future = self._executor.submit(func)

        def _handle_completion(fut: Future) -> None:
            exc = fut.exception()
            if exc is not None:
                logger.error(f"Operation failed: {exc}", exc_info=exc)
                if on_error:
                    self._dispatcher(on_error, (exc,), {})
            elif on_success:
                self._dispatcher(on_success, (fut.result(),), {})

        future.add_done_callback(_handle_completion)
        return future

    # -- navigation -----------------------------------------------------

    def navigate(self, side: Side, path: str) -> Future:
        """List ``path`` and make it the pane's directory when that succeeds."""
        transport = self._transports[side]
        self._store.dispatch(NavigateRequested(side, path))

        def _impl() -> Tuple[str, List[FileEntry]]:
            try:
                return transport.listdir(path)
            except Exception as exc:
                raise wrap(exc, ListingError, f"Cannot list directory '{path}'") from exc

        return self._submit(
            _impl,
            on_success=lambda result: self._store.dispatch(
                ListingLoaded(side, path, result[0], tuple(result[1]))
            ),
            on_error=lambda exc: self._store.dispatch(ListingFailed(side, path, str(exc))),
        )

    def refresh(self, side: Side) -> Future:
        pane = self.state.pane(side)
        return self.navigate(side, pane.path or pane.pending_path or "~")

    def _refresh_directory(self, side: Side, directory: Optional[str]) -> Optional[Future]:
        """Re-list ``directory`` unless the pane has moved on to another one."""
        if not directory:
            return None
        pane = self.state.pane(side)
        if (pane.pending_path or pane.path) != directory:
            logger.debug(f"Skipping refresh of {directory}, pane moved to "
                         f"{pane.pending_path or pane.path}")
            return None
        return self.navigate(side, directory)

    def navigate_up(self, side: Side) -> Optional[Future]:
        pane = self.state.pane(side)
        if not pane.path:
            return None
        parent = parent_path(pane.path, pane.separator)
        if parent == pane.path:
            return None
        return self.navigate(side, parent)

    def click(self, side: Side, path: str, *, ctrl: bool = False, shift: bool = False) -> Optional[Future]:
        """Handle a click on an entry; a plain click on a directory opens it."""
        entry = self.state.pane(side).find(path)
        if entry is None:
            return None
        if entry.is_dir:
            if ctrl or shift:
                return None
            return self.navigate(side, entry.path)
        self._store.dispatch(EntryClicked(side, path, ctrl=ctrl, shift=shift))
        return None

    def set_show_hidden(self, side: Side, show_hidden: bool) -> None:
        self._store.dispatch(ShowHiddenSet(side, show_hidden))

    def sort(self, side: Side, column: SortColumn) -> None:
        self._store.dispatch(SortClicked(side, column))

    def select_all(self, side: Side) -> None:
        self._store.dispatch(AllSelected(side))

    def deselect_all(self, side: Side) -> None:
        self._store.dispatch(AllDeselected(side))

    def open_context_menu(self, side: Side, position: Tuple[float, float]) -> None:
        self._store.dispatch(ContextMenuOpened(side, position))

    def hover_context_menu(self, side: Side, index: Optional[int]) -> None:
        self._store.dispatch(ContextMenuHovered(side, index))

    def close_context_menu(self, side: Side) -> None:
        self._store.dispatch(ContextMenuClosed(side))

    def close_all_menus(self) -> None:
        self._store.dispatch(AllMenusClosed())

    # -- mutations ------------------------------------------------------

    def _ensure_no_transfer(self) -> None:
        # mutations are serialised against transfers
        if self.transfer_busy:
            raise BusyError("A transfer is in progress")

    def _mutate(self, side: Side, func: Callable[[], Any], context: str,
                on_success: Optional[Callable[[Any], None]] = None) -> Future:
        def _impl() -> Any:
            try:
                return func()
            except Exception as exc:
                raise wrap(exc, MutationError, context) from exc

        directory = self.state.pane(side).path

        def _succeeded(result: Any) -> None:
            if on_success:
                on_success(result)
            self._refresh_directory(side, directory)

        return self._submit(
            _impl,
            on_success=_succeeded,
            on_error=lambda exc: self._store.dispatch(MutationFailed(side, str(exc))),
        )

    def create_folder(self, side: Side, name: str) -> Optional[Future]:
        name = name.strip()
        if not name:
            return None
        self._ensure_no_transfer()
        transport = self._transports[side]
        directory = self.state.pane(side).path
        return self._mutate(
            side,
            lambda: transport.mkdir(directory, name),
            f"Cannot create folder '{name}'",
        )

    def rename_entry(self, side: Side, entry: FileEntry, new_name: str) -> Optional[Future]:
        """Rename ``entry``; empty or unchanged names are ignored without a round trip."""
        new_name = new_name.strip()
        if not new_name or new_name == entry.name or entry.is_parent:
            return None
        self._ensure_no_transfer()
        transport = self._transports[side]
        listed = {e.name for e in self.state.pane(side).entries}

        def _impl() -> str:
            if new_name in listed:
                raise ConflictError(f"'{new_name}' already exists")
            return transport.rename(entry.path, new_name)

        return self._mutate(side, _impl, f"Cannot rename '{entry.name}'")

    def delete_entry(self, side: Side, entry: FileEntry) -> Optional[Future]:
        """Delete ``entry`` (recursively for directories) once confirmed."""
        if entry.is_parent:
            return None
        if not self._confirm_delete(entry):
            logger.debug(f"Delete of {entry.path} not confirmed")
            return None
        self._ensure_no_transfer()
        transport = self._transports[side]
        return self._mutate(
            side,
            lambda: transport.remove(entry.path, recursive=entry.is_dir),
            f"Cannot delete '{entry.name}'",
            on_success=lambda _: self._store.dispatch(EntryRemoved(side, entry.path)),
        )

    # -- transfers ------------------------------------------------------

    def _transferable(self, side: Side, paths: Iterable[str]) -> List[str]:
        pane = self.state.pane(side)
        sep = self._transports[side].separator
        result = []
        for path in paths:
            entry = pane.find(path)
            if entry is not None and not entry.is_selectable:
                continue
            if base_name(path, sep) == "..":
                continue
            result.append(path)
        return result

    def start_transfer(self, direction: TransferDirection, file_paths: Sequence[str]) -> Optional[Future]:
        """Copy ``file_paths`` from the source pane into the destination pane's directory.

        Files are sent one after another. Raises :class:`BusyError` while
        another transfer holds the slot; nothing is queued behind it.
        """
        if not file_paths:
            raise ValueError("start_transfer needs at least one file")
        paths = self._transferable(direction.source, file_paths)
        if not paths:
            logger.info("Nothing transferable in request")
            return None
        destination_dir = self.state.pane(direction.destination).path
        if not destination_dir:
            raise TransferError(f"{direction.destination.label} pane has no directory yet")

        with self._transfer_lock:
            if self._transfer_busy:
                raise BusyError("Another transfer is already running")
            self._transfer_busy = True
        self._cancel_event.clear()

        logger.info(f"Starting {direction.value} of {len(paths)} file(s) to {destination_dir}")
        # queued behind any events still in flight from the previous transfer
        self._post(TransferRequested(direction, tuple(paths), self._clock()))
        try:
            return self._executor.submit(
                self._run_transfer, direction, paths, destination_dir,
                self.state.pane(direction.source).path,
            )
        except RuntimeError:
            self._finish(TransferFailed("Transfer could not be scheduled"), ())
            raise

    def transfer_selected(self, side: Side) -> Optional[Future]:
        """Send the pane's batch selection, in display order, to the other pane."""
        pane = self.state.pane(side)
        paths = [entry.path for entry in pane.view if entry.path in pane.selected]
        if not paths:
            return None
        return self.start_transfer(TransferDirection.from_source(side), paths)

    def cancel_transfer(self) -> bool:
        """Ask the running transfer to stop after its current chunk."""
        if not self.transfer_busy:
            return False
        logger.info("Cancelling transfer")
        self._cancel_event.set()
        self._store.dispatch(TransferCancelRequested())
        return True

    def _check_cancelled(self) -> None:
        if self._cancel_event.is_set():
            raise TransferCancelledException()

    def _run_transfer(self, direction: TransferDirection, paths: List[str],
                      destination_dir: str, source_dir: Optional[str] = None) -> TransferPhase:
        source = self._transports[direction.source]
        destination = self._transports[direction.destination]
        current_name = ""
        partial: Optional[str] = None
        try:
            if len(paths) > 1:
                total = sum(source.stat(path).size for path in paths)
                self._post(TransferSized(total))

            for index, path in enumerate(paths):
                self._check_cancelled()
                current_name = base_name(path, source.separator)
                target = join_path(destination_dir, current_name, destination.separator)
                size = source.stat(path).size
                self._post(TransferFileStarted(index, current_name, size, self._clock()))
                with source.open_read(path) as reader:
                    with destination.open_write(target) as writer:
                        # only a target we opened for writing is ours to discard
                        partial = target
                        self._copy(reader, writer, size)
                partial = None
                self._post(TransferFileCompleted(self._clock()))
                logger.info(f"Transferred {path} -> {target}")

        except TransferCancelledException as exc:
            if partial:
                destination.discard_partial(partial)
            logger.info("Transfer cancelled")
            self._finish(TransferCancelled(str(exc)), (
                (direction.source, source_dir), (direction.destination, destination_dir),
            ))
            return TransferPhase.CANCELLED

        except Exception as exc:
            error = wrap(exc, TransferError, f"Transfer of '{current_name}' failed")
            logger.error(f"{error}", exc_info=exc)
            if partial:
                destination.discard_partial(partial)
            # abort the rest of the batch; files already sent stay in place
            self._finish(TransferFailed(str(error)), ((direction.destination, destination_dir),))
            raise error from exc

        self._finish(TransferCleared(), ((direction.destination, destination_dir),))
        return TransferPhase.COMPLETED

    def _finish(self, action: Action,
                refresh: Tuple[Tuple[Side, Optional[str]], ...]) -> None:
        """Post the terminal action, free the transfer slot, refresh panes."""
        self._post(action)
        with self._transfer_lock:
            self._transfer_busy = False
        if self._closed:
            return
        for side, directory in refresh:
            self._dispatcher(self._refresh_directory, (side, directory), {})

    def _copy(self, reader: BinaryIO, writer: BinaryIO, size: int) -> None:
        chunk_size = self._settings.chunk_size
        transferred = 0
        while True:
            self._check_cancelled()
            data = reader.read(chunk_size)
            if not data:
                break
            writer.write(data)
            transferred += len(data)
            self._post(TransferProgressed(transferred, max(size, transferred), self._clock()))

    # -- drag and drop --------------------------------------------------

    def drag_start(self, side: Side, entry: FileEntry) -> None:
        self._store.dispatch(DragStarted(side, entry))

    def drag_enter(self, side: Side) -> None:
        self._store.dispatch(DragEntered(side))

    def drag_leave(self) -> None:
        self._store.dispatch(DragLeft())

    def drop(self, side: Side) -> Optional[Future]:
        """Drop the dragged entry on ``side``; only cross-pane drops transfer."""
        drag = self.state.drag
        self._store.dispatch(DragEnded())
        if drag is None or drag.source is side:
            return None
        if self.transfer_busy:
            logger.info("Drop ignored while a transfer is running")
            return None
        return self.start_transfer(TransferDirection.from_source(drag.source), [drag.entry.path])

    # -- session --------------------------------------------------------

    def set_host(self, host: Optional[RemoteHost]) -> None:
        self._store.dispatch(HostSet(host))

    def dismiss_error(self) -> None:
        self._store.dispatch(ErrorDismissed())

    def close(self) -> None:
        """Stop any transfer and release transports and workers."""
        self._closed = True
        self.cancel_transfer()
        self._executor.shutdown(wait=False)
        for transport in self._transports.values():
            transport.close()


def connect_session(
    host: RemoteHost,
    password: Optional[str] = None,
    *,
    settings: Optional[Settings] = None,
    **kwargs: Any,
) -> SessionController:
    """Connect to ``host`` over SFTP and open both panes at their start paths."""
    settings = settings or load_settings()
    remote = SFTPTransport(host, password, settings=settings)
    remote.connect()
    controller = SessionController(
        LocalTransport(), remote, host=host, settings=settings, **kwargs
    )
    controller.navigate(Side.LOCAL, settings.local_start_path)
    controller.navigate(Side.REMOTE, settings.remote_start_path)
    return controller
