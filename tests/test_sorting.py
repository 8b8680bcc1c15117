import unittest

from twinpane.fileops import PARENT_NAME, EntryKind, FileEntry
from twinpane.sorting import (
    SortColumn,
    SortDirection,
    filter_hidden,
    sort_entries,
    toggle_sort,
    visible_entries,
)

from _support import make_entry


def _names(entries):
    return [entry.name for entry in entries]


PARENT = FileEntry(PARENT_NAME, EntryKind.DIRECTORY, 0, 0.0, "/")


class ToggleSortTests(unittest.TestCase):
    def test_clicking_active_column_flips_direction_then_other_column_sorts_ascending(self):
        column, direction = toggle_sort(SortColumn.NAME, SortDirection.ASC, SortColumn.NAME)
        self.assertEqual((column, direction), (SortColumn.NAME, SortDirection.DESC))

        column, direction = toggle_sort(column, direction, SortColumn.SIZE)
        self.assertEqual((column, direction), (SortColumn.SIZE, SortDirection.ASC))

    def test_flip_back_to_ascending(self):
        self.assertEqual(
            toggle_sort(SortColumn.SIZE, SortDirection.DESC, SortColumn.SIZE),
            (SortColumn.SIZE, SortDirection.ASC),
        )


class SortEntriesTests(unittest.TestCase):
    def setUp(self):
        self.entries = [
            make_entry("beta.txt", size=30, modified=3.0),
            make_entry("Alpha.txt", size=10, modified=2.0),
            make_entry("docs", directory=True, modified=1.0),
            PARENT,
            make_entry("gamma.txt", size=20, modified=4.0),
        ]

    def test_name_sort_is_case_insensitive_and_keeps_parent_first(self):
        result = sort_entries(self.entries, SortColumn.NAME, SortDirection.ASC)
        self.assertEqual(_names(result), ["..", "Alpha.txt", "beta.txt", "docs", "gamma.txt"])

    def test_descending_keeps_parent_first(self):
        result = sort_entries(self.entries, SortColumn.NAME, SortDirection.DESC)
        self.assertEqual(_names(result), ["..", "gamma.txt", "docs", "beta.txt", "Alpha.txt"])

    def test_size_and_modified_columns(self):
        by_size = sort_entries(self.entries, SortColumn.SIZE, SortDirection.ASC)
        self.assertEqual(_names(by_size), ["..", "docs", "Alpha.txt", "gamma.txt", "beta.txt"])

        by_time = sort_entries(self.entries, SortColumn.MODIFIED, SortDirection.DESC)
        self.assertEqual(_names(by_time), ["..", "gamma.txt", "beta.txt", "Alpha.txt", "docs"])

    def test_kind_sort_is_stable_within_a_kind(self):
        result = sort_entries(self.entries, SortColumn.KIND, SortDirection.ASC)
        self.assertEqual(_names(result), ["..", "docs", "beta.txt", "Alpha.txt", "gamma.txt"])

    def test_input_is_not_reordered(self):
        before = list(self.entries)
        sort_entries(self.entries, SortColumn.SIZE, SortDirection.DESC)
        self.assertEqual(self.entries, before)


class HiddenFilterTests(unittest.TestCase):
    def test_dot_files_are_hidden_but_parent_marker_is_not(self):
        entries = [PARENT, make_entry(".bashrc"), make_entry("notes.txt")]
        self.assertEqual(_names(filter_hidden(entries, False)), ["..", "notes.txt"])
        self.assertEqual(_names(filter_hidden(entries, True)), ["..", ".bashrc", "notes.txt"])

    def test_visible_entries_filters_then_sorts(self):
        entries = [make_entry("b"), make_entry(".a"), make_entry("a")]
        result = visible_entries(entries, False, SortColumn.NAME, SortDirection.DESC)
        self.assertEqual(_names(result), ["b", "a"])


if __name__ == "__main__":
    unittest.main()
