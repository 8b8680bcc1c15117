"""Reducer transition tests.

Every test drives ``reduce`` with plain actions; no transport is involved.
"""

import dataclasses
import unittest

from twinpane.actions import (
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
from twinpane.reducer import reduce
from twinpane.sorting import SortColumn, SortDirection
from twinpane.state import (
    RemoteHost,
    Side,
    TransferDirection,
    TransferPhase,
    initial_state,
)

from _support import make_entry


def _listing(*names, parent="/srv"):
    return tuple(
        make_entry(name.rstrip("/"), directory=name.endswith("/"), size=10, parent=parent)
        for name in names
    )


def _open(state, side, path, entries):
    state = reduce(state, NavigateRequested(side, path))
    return reduce(state, ListingLoaded(side, path, path, entries))


def _run(state, *actions):
    for action in actions:
        state = reduce(state, action)
    return state


class NavigationTests(unittest.TestCase):
    def setUp(self):
        self.state = _open(initial_state(), Side.REMOTE, "/srv", _listing("a", "b", "docs/"))

    def test_listing_loaded_sets_path_and_entries(self):
        remote = self.state.remote
        self.assertEqual(remote.path, "/srv")
        self.assertEqual([e.name for e in remote.entries], ["a", "b", "docs"])
        self.assertFalse(remote.loading)
        self.assertIsNone(remote.pending_path)

    def test_navigation_to_another_path_clears_selection(self):
        state = _run(
            self.state,
            EntryClicked(Side.REMOTE, "/srv/a", ctrl=True),
            EntryClicked(Side.REMOTE, "/srv/b", ctrl=True),
        )
        self.assertEqual(len(state.remote.selected), 2)

        state = reduce(state, NavigateRequested(Side.REMOTE, "/srv/docs"))
        self.assertEqual(state.remote.selected, frozenset())
        self.assertTrue(state.remote.loading)

        state = reduce(state, ListingLoaded(Side.REMOTE, "/srv/docs", "/srv/docs",
                                            _listing("x", parent="/srv/docs")))
        self.assertEqual(state.remote.path, "/srv/docs")
        self.assertEqual(state.remote.selected, frozenset())

    def test_refresh_keeps_selection_of_entries_still_listed(self):
        state = _run(
            self.state,
            EntryClicked(Side.REMOTE, "/srv/a", ctrl=True),
            EntryClicked(Side.REMOTE, "/srv/b", ctrl=True),
            NavigateRequested(Side.REMOTE, "/srv"),
        )
        self.assertEqual(len(state.remote.selected), 2)

        state = reduce(state, ListingLoaded(Side.REMOTE, "/srv", "/srv", _listing("b", "docs/")))
        self.assertEqual(state.remote.selected, frozenset({"/srv/b"}))

    def test_stale_listing_is_dropped(self):
        state = _run(
            self.state,
            NavigateRequested(Side.REMOTE, "/srv/docs"),
            NavigateRequested(Side.REMOTE, "/tmp"),
            ListingLoaded(Side.REMOTE, "/srv/docs", "/srv/docs", _listing("x", parent="/srv/docs")),
        )
        self.assertEqual(state.remote.path, "/srv")
        self.assertEqual(state.remote.pending_path, "/tmp")
        self.assertTrue(state.remote.loading)

    def test_listing_failure_sets_pane_error_and_keeps_directory(self):
        state = _run(
            self.state,
            NavigateRequested(Side.REMOTE, "/root"),
            ListingFailed(Side.REMOTE, "/root", "Permission denied"),
        )
        self.assertEqual(state.error, "Remote: Permission denied")
        self.assertEqual(state.remote.path, "/srv")
        self.assertFalse(state.remote.loading)

    def test_stale_listing_failure_is_ignored(self):
        state = _run(
            self.state,
            NavigateRequested(Side.REMOTE, "/root"),
            NavigateRequested(Side.REMOTE, "/tmp"),
            ListingFailed(Side.REMOTE, "/root", "Permission denied"),
        )
        self.assertIsNone(state.error)
        self.assertTrue(state.remote.loading)

    def test_panes_load_independently(self):
        state = reduce(self.state, NavigateRequested(Side.LOCAL, "/home/me"))
        self.assertTrue(state.local.loading)
        self.assertFalse(state.remote.loading)

    def test_resolved_path_replaces_requested_path(self):
        state = _run(
            initial_state(),
            NavigateRequested(Side.REMOTE, "~"),
            ListingLoaded(Side.REMOTE, "~", "/home/me", ()),
        )
        self.assertEqual(state.remote.path, "/home/me")


class PaneViewTests(unittest.TestCase):
    def setUp(self):
        self.state = _open(initial_state(), Side.LOCAL, "/srv", _listing("b", "a", ".hidden", "dir/"))

    def test_sort_clicks_toggle_then_switch(self):
        state = reduce(self.state, SortClicked(Side.LOCAL, SortColumn.NAME))
        self.assertEqual(state.local.sort_direction, SortDirection.DESC)
        state = reduce(state, SortClicked(Side.LOCAL, SortColumn.SIZE))
        self.assertEqual((state.local.sort_column, state.local.sort_direction),
                         (SortColumn.SIZE, SortDirection.ASC))
        self.assertEqual(state.remote.sort_column, SortColumn.NAME)

    def test_view_hides_dot_files_until_shown(self):
        self.assertEqual([e.name for e in self.state.local.view], ["a", "b", "dir"])
        state = reduce(self.state, ShowHiddenSet(Side.LOCAL, True))
        self.assertEqual([e.name for e in state.local.view], [".hidden", "a", "b", "dir"])

    def test_select_all_uses_visible_files_only(self):
        state = reduce(self.state, AllSelected(Side.LOCAL))
        self.assertEqual(state.local.selected, frozenset({"/srv/a", "/srv/b"}))
        state = reduce(state, AllDeselected(Side.LOCAL))
        self.assertEqual(state.local.selected, frozenset())

    def test_plain_click_sets_active_entry_only(self):
        state = reduce(self.state, EntryClicked(Side.LOCAL, "/srv/a"))
        self.assertEqual(state.local.active_entry, "/srv/a")
        self.assertEqual(state.local.selected, frozenset())

    def test_shift_click_range_follows_sorted_view(self):
        state = _run(
            self.state,
            SortClicked(Side.LOCAL, SortColumn.NAME),
            EntryClicked(Side.LOCAL, "/srv/b", ctrl=True),
            EntryClicked(Side.LOCAL, "/srv/a", shift=True),
        )
        self.assertEqual(state.local.selected, frozenset({"/srv/a", "/srv/b"}))

    def test_entry_removed_forgets_selection(self):
        state = _run(
            self.state,
            EntryClicked(Side.LOCAL, "/srv/a", ctrl=True),
            EntryRemoved(Side.LOCAL, "/srv/a"),
        )
        self.assertEqual(state.local.selected, frozenset())
        self.assertIsNone(state.local.selection.anchor)

    def test_mutation_failure_is_reported_with_pane_label(self):
        state = reduce(self.state, MutationFailed(Side.LOCAL, "'a' already exists"))
        self.assertEqual(state.error, "Local: 'a' already exists")

    def test_context_menu_lifecycle(self):
        state = reduce(self.state, ContextMenuOpened(Side.LOCAL, (10, 20)))
        self.assertEqual(state.local.context_menu.position, (10, 20))
        state = reduce(state, ContextMenuHovered(Side.LOCAL, 2))
        self.assertEqual(state.local.context_menu.hovered_index, 2)
        state = reduce(state, ContextMenuClosed(Side.LOCAL))
        self.assertIsNone(state.local.context_menu)

    def test_hover_without_menu_is_ignored(self):
        self.assertIs(reduce(self.state, ContextMenuHovered(Side.LOCAL, 1)), self.state)

    def test_all_menus_closed_and_navigation_close_menus(self):
        state = _run(
            self.state,
            ContextMenuOpened(Side.LOCAL, (1, 1)),
            ContextMenuOpened(Side.REMOTE, (2, 2)),
            AllMenusClosed(),
        )
        self.assertIsNone(state.local.context_menu)
        self.assertIsNone(state.remote.context_menu)

        state = _run(state, ContextMenuOpened(Side.LOCAL, (1, 1)), NavigateRequested(Side.LOCAL, "/"))
        self.assertIsNone(state.local.context_menu)


class TransferLifecycleTests(unittest.TestCase):
    def setUp(self):
        self.state = reduce(
            initial_state(),
            TransferRequested(TransferDirection.DOWNLOAD, ("/srv/report.csv",), 10.0),
        )

    def test_single_file_runs_to_completion_and_clears(self):
        state = self.state
        self.assertEqual(state.transfer_phase, TransferPhase.QUEUED)

        state = reduce(state, TransferFileStarted(0, "report.csv", 1000, 10.0))
        self.assertEqual(state.transfer_phase, TransferPhase.IN_PROGRESS)
        self.assertEqual(state.transfer.file_index, 1)

        state = reduce(state, TransferProgressed(250, 1000, 11.0))
        self.assertEqual(state.transfer.progress_percent, 25)
        self.assertEqual(state.transfer.speed_bytes_per_second, 250)

        state = _run(state, TransferProgressed(1000, 1000, 12.0), TransferFileCompleted(12.0))
        self.assertEqual(state.transfer_phase, TransferPhase.COMPLETED)

        state = reduce(state, TransferCleared())
        self.assertIsNone(state.transfer)
        self.assertEqual(state.last_outcome, TransferPhase.COMPLETED)

    def test_second_request_while_active_is_ignored(self):
        state = reduce(self.state, TransferRequested(TransferDirection.UPLOAD, ("/x",), 11.0))
        self.assertEqual(state.transfer.file_paths, ("/srv/report.csv",))

    def test_clear_before_completion_is_ignored(self):
        state = reduce(self.state, TransferCleared())
        self.assertIs(state, self.state)

    def test_progress_without_transfer_is_ignored(self):
        state = initial_state()
        self.assertIs(reduce(state, TransferProgressed(1, 2, 0.0)), state)

    def test_failure_clears_transfer_and_sets_error(self):
        state = _run(
            self.state,
            TransferFileStarted(0, "report.csv", 1000, 10.0),
            TransferFailed("Connection lost"),
        )
        self.assertIsNone(state.transfer)
        self.assertEqual(state.error, "Connection lost")
        self.assertEqual(state.last_outcome, TransferPhase.FAILED)
        self.assertFalse(state.transfer_active)

    def test_cancel_request_then_cancelled(self):
        state = reduce(self.state, TransferCancelRequested())
        self.assertTrue(state.transfer.cancel_requested)
        state = reduce(state, TransferCancelled())
        self.assertIsNone(state.transfer)
        self.assertEqual(state.error, "Transfer cancelled")
        self.assertEqual(state.last_outcome, TransferPhase.CANCELLED)

    def test_batch_sizing_feeds_overall_progress(self):
        state = reduce(
            initial_state(),
            TransferRequested(TransferDirection.UPLOAD, ("/a", "/b"), 0.0),
        )
        state = _run(
            state,
            TransferSized(300),
            TransferFileStarted(0, "a", 100, 0.0),
            TransferProgressed(100, 100, 1.0),
            TransferFileCompleted(1.0),
            TransferFileStarted(1, "b", 200, 1.0),
            TransferProgressed(50, 200, 2.0),
        )
        self.assertEqual(state.transfer.file_index, 2)
        self.assertEqual(state.transfer.files_completed, 1)
        self.assertEqual(state.transfer.overall_percent, 50)
        self.assertEqual(state.transfer.progress_percent, 25)


class DragAndSessionTests(unittest.TestCase):
    def test_drag_lifecycle(self):
        entry = make_entry("a")
        state = _run(initial_state(), DragStarted(Side.REMOTE, entry), DragEntered(Side.LOCAL))
        self.assertEqual(state.drag.source, Side.REMOTE)
        self.assertEqual(state.drag_over_pane, Side.LOCAL)

        self.assertIsNone(reduce(state, DragLeft()).drag_over_pane)
        state = reduce(state, DragEnded())
        self.assertIsNone(state.drag)
        self.assertIsNone(state.drag_over_pane)

    def test_directories_cannot_be_dragged(self):
        state = reduce(initial_state(), DragStarted(Side.LOCAL, make_entry("dir", directory=True)))
        self.assertIsNone(state.drag)

    def test_host_change_resets_remote_pane_but_keeps_sort(self):
        state = _open(initial_state(), Side.REMOTE, "/srv", _listing("a"))
        state = reduce(state, SortClicked(Side.REMOTE, SortColumn.SIZE))
        host = RemoteHost(id="h1", hostname="example.org", username="me")

        state = reduce(state, HostSet(host))
        self.assertEqual(state.host, host)
        self.assertEqual(state.remote.path, "")
        self.assertEqual(state.remote.entries, ())
        self.assertEqual(state.remote.sort_column, SortColumn.SIZE)
        self.assertIs(reduce(state, HostSet(host)), state)

    def test_error_raise_and_dismiss(self):
        state = reduce(initial_state(), ErrorRaised("boom"))
        self.assertEqual(state.error, "boom")
        self.assertIsNone(reduce(state, ErrorDismissed()).error)

    def test_reset_returns_initial_state(self):
        state = _open(initial_state(), Side.LOCAL, "/srv", _listing("a"))
        self.assertEqual(reduce(state, Reset()), initial_state())

    def test_unknown_action_returns_state_unchanged(self):
        @dataclasses.dataclass(frozen=True)
        class Unknown(Action):
            pass

        state = initial_state()
        with self.assertLogs("twinpane.reducer", level="WARNING"):
            self.assertIs(reduce(state, Unknown()), state)

    def test_reducer_does_not_mutate_its_input(self):
        before = _open(initial_state(), Side.LOCAL, "/srv", _listing("a", "b"))
        snapshot = dataclasses.replace(before)
        reduce(before, EntryClicked(Side.LOCAL, "/srv/a", ctrl=True))
        self.assertEqual(before, snapshot)


if __name__ == "__main__":
    unittest.main()
