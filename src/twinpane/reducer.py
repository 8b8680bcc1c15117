"""The session reducer: ``reduce(state, action) -> state``.

Pure and deterministic. Side effects (listing, transfers, mutations) are the
controller's job; their results come back here as further actions.
"""

from __future__ import annotations

import dataclasses
import logging

from . import selection as sel
from . import transfer as xfer
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
    ErrorRaised,
    HostSet,
    ListingFailed,
    ListingLoaded,
    MutationFailed,
    NavigateRequested,
    Reset,
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
from .sorting import toggle_sort
from .state import (
    ContextMenu,
    DragSession,
    PaneState,
    SessionState,
    Side,
    TransferPhase,
    initial_state,
)

logger = logging.getLogger(__name__)


def _pane_error(side: Side, message: str) -> str:
    return f"{side.label}: {message}"


def _with_selection(pane: PaneState, selection: sel.Selection) -> PaneState:
    """Store ``selection`` after enforcing the selectable-files invariant."""
    return dataclasses.replace(pane, selection=sel.sanitize(selection, pane.entries))


def _listing_loaded(state: SessionState, action: ListingLoaded) -> SessionState:
    pane = state.pane(action.side)
    if pane.pending_path != action.path:
        logger.debug(f"Dropping stale {action.side.value} listing for {action.path}")
        return state
    entries = tuple(action.entries)
    if action.resolved_path == pane.path:
        selection = pane.selection
    else:
        selection = sel.EMPTY
    pane = dataclasses.replace(
        pane,
        path=action.resolved_path,
        entries=entries,
        loading=False,
        pending_path=None,
    )
    return state.with_pane(action.side, _with_selection(pane, selection))


def _reduce_pane(state: SessionState, action: Action) -> SessionState:
    side = action.side
    pane = state.pane(side)

    if isinstance(action, NavigateRequested):
        changes = dict(loading=True, pending_path=action.path, context_menu=None)
        if action.path != pane.path:
            changes["selection"] = sel.EMPTY
        return state.with_pane(side, dataclasses.replace(pane, **changes))

    if isinstance(action, ListingLoaded):
        return _listing_loaded(state, action)

    if isinstance(action, ListingFailed):
        if pane.pending_path != action.path:
            return state
        pane = dataclasses.replace(pane, loading=False, pending_path=None)
        return dataclasses.replace(
            state.with_pane(side, pane), error=_pane_error(side, action.message)
        )

    if isinstance(action, ShowHiddenSet):
        return state.with_pane(side, dataclasses.replace(pane, show_hidden=action.show_hidden))

    if isinstance(action, SortClicked):
        column, direction = toggle_sort(pane.sort_column, pane.sort_direction, action.column)
        return state.with_pane(
            side, dataclasses.replace(pane, sort_column=column, sort_direction=direction)
        )

    if isinstance(action, EntryClicked):
        view = pane.view
        if action.ctrl:
            selection = sel.toggle(pane.selection, view, action.path)
        elif action.shift:
            selection = sel.extend(pane.selection, view, action.path)
        else:
            selection = sel.click(pane.selection, view, action.path)
        return state.with_pane(side, _with_selection(pane, selection))

    if isinstance(action, AllSelected):
        return state.with_pane(side, _with_selection(pane, sel.select_all(pane.selection, pane.view)))

    if isinstance(action, AllDeselected):
        return state.with_pane(side, _with_selection(pane, sel.deselect_all(pane.selection)))

    if isinstance(action, EntryRemoved):
        return state.with_pane(side, _with_selection(pane, sel.discard(pane.selection, action.path)))

    if isinstance(action, MutationFailed):
        return dataclasses.replace(state, error=_pane_error(side, action.message))

    if isinstance(action, ContextMenuOpened):
        menu = ContextMenu(position=tuple(action.position))
        return state.with_pane(side, dataclasses.replace(pane, context_menu=menu))

    if isinstance(action, ContextMenuHovered):
        if pane.context_menu is None:
            return state
        menu = dataclasses.replace(pane.context_menu, hovered_index=action.index)
        return state.with_pane(side, dataclasses.replace(pane, context_menu=menu))

    if isinstance(action, ContextMenuClosed):
        return state.with_pane(side, dataclasses.replace(pane, context_menu=None))

    return state


def _reduce_transfer(state: SessionState, action: Action, smoothing: float) -> SessionState:
    transfer = state.transfer

    if isinstance(action, TransferRequested):
        if state.transfer_active:
            logger.warning("Transfer requested while another one is active; ignoring")
            return state
        return dataclasses.replace(
            state,
            transfer=xfer.begin(action.direction, action.file_paths, action.at),
            last_outcome=None,
        )

    if isinstance(action, TransferFailed):
        return dataclasses.replace(
            state,
            transfer=None,
            error=action.message,
            last_outcome=TransferPhase.FAILED if transfer else state.last_outcome,
        )

    if isinstance(action, TransferCancelled):
        return dataclasses.replace(
            state,
            transfer=None,
            error=action.message,
            last_outcome=TransferPhase.CANCELLED if transfer else state.last_outcome,
        )

    if transfer is None:
        return state

    if isinstance(action, TransferSized):
        transfer = xfer.sized(transfer, action.total_bytes_all_files)
    elif isinstance(action, TransferFileStarted):
        transfer = xfer.file_started(
            transfer, action.index, action.file_name, action.total_bytes, action.at
        )
    elif isinstance(action, TransferProgressed):
        transfer = xfer.progressed(
            transfer, action.bytes_transferred, action.total_bytes, action.at, smoothing
        )
    elif isinstance(action, TransferFileCompleted):
        transfer = xfer.file_completed(transfer, action.at, smoothing)
    elif isinstance(action, TransferCancelRequested):
        if not transfer.is_active:
            return state
        transfer = dataclasses.replace(transfer, cancel_requested=True)
    elif isinstance(action, TransferCleared):
        if transfer.phase is not TransferPhase.COMPLETED:
            return state
        return dataclasses.replace(state, transfer=None, last_outcome=TransferPhase.COMPLETED)
    return dataclasses.replace(state, transfer=transfer)


_PANE_ACTIONS = (
    NavigateRequested,
    ListingLoaded,
    ListingFailed,
    ShowHiddenSet,
    SortClicked,
    EntryClicked,
    AllSelected,
    AllDeselected,
    EntryRemoved,
    MutationFailed,
    ContextMenuOpened,
    ContextMenuHovered,
    ContextMenuClosed,
)

_TRANSFER_ACTIONS = (
    TransferRequested,
    TransferSized,
    TransferFileStarted,
    TransferProgressed,
    TransferFileCompleted,
    TransferCleared,
    TransferFailed,
    TransferCancelRequested,
    TransferCancelled,
)


def reduce(
    state: SessionState, action: Action, *, smoothing: float = xfer.DEFAULT_SMOOTHING
) -> SessionState:
    """Compute the state that follows ``action``."""
    if isinstance(action, _PANE_ACTIONS):
        return _reduce_pane(state, action)

    if isinstance(action, _TRANSFER_ACTIONS):
        return _reduce_transfer(state, action, smoothing)

    if isinstance(action, AllMenusClosed):
        return dataclasses.replace(
            state,
            local=dataclasses.replace(state.local, context_menu=None),
            remote=dataclasses.replace(state.remote, context_menu=None),
        )

    if isinstance(action, DragStarted):
        if not action.entry.is_selectable:
            return state
        return dataclasses.replace(state, drag=DragSession(source=action.side, entry=action.entry))

    if isinstance(action, DragEntered):
        return dataclasses.replace(state, drag_over_pane=action.side)

    if isinstance(action, DragLeft):
        return dataclasses.replace(state, drag_over_pane=None)

    if isinstance(action, DragEnded):
        return dataclasses.replace(state, drag=None, drag_over_pane=None)

    if isinstance(action, HostSet):
        if action.host == state.host:
            return state
        remote = PaneState(
            separator=state.remote.separator,
            show_hidden=state.remote.show_hidden,
            sort_column=state.remote.sort_column,
            sort_direction=state.remote.sort_direction,
        )
        return dataclasses.replace(state, host=action.host, remote=remote)

    if isinstance(action, ErrorRaised):
        return dataclasses.replace(state, error=action.message)

    if isinstance(action, ErrorDismissed):
        return dataclasses.replace(state, error=None)

    if isinstance(action, Reset):
        return initial_state(
            local_separator=state.local.separator,
            remote_separator=state.remote.separator,
        )

    logger.warning(f"Unknown action: {action!r}")
    return state
