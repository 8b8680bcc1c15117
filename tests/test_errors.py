import errno
import unittest

from twinpane.errors import (
    ConflictError,
    FileOperationError,
    ListingError,
    MutationError,
    Reason,
    TransferCancelledException,
    TransferError,
    TransportError,
    classify_os_error,
    wrap,
)


class ClassifyTests(unittest.TestCase):
    def test_os_errors_map_by_errno(self):
        cases = [
            (FileNotFoundError(errno.ENOENT, "missing"), Reason.NOT_FOUND),
            (PermissionError(errno.EACCES, "denied"), Reason.PERMISSION_DENIED),
            (FileExistsError(errno.EEXIST, "exists"), Reason.CONFLICT),
            (OSError(errno.ENOSPC, "full"), Reason.DISK_FULL),
            (OSError(errno.EPIPE, "pipe"), Reason.CONNECTION_LOST),
            (OSError(errno.ENOTDIR, "not a dir"), Reason.NOT_FOUND),
            (OSError("no errno"), Reason.TRANSPORT),
            (ValueError("odd"), Reason.TRANSPORT),
        ]
        for exc, reason in cases:
            with self.subTest(exc=exc):
                self.assertIs(classify_os_error(exc), reason)

    def test_own_errors_keep_their_reason(self):
        self.assertIs(classify_os_error(TransportError("x", Reason.DISK_FULL)), Reason.DISK_FULL)


class WrapTests(unittest.TestCase):
    def test_transport_error_becomes_operation_error_with_same_message(self):
        original = TransportError("Cannot list directory '/x': denied", Reason.PERMISSION_DENIED)
        wrapped = wrap(original, ListingError, "Cannot list directory '/x'")
        self.assertIsInstance(wrapped, ListingError)
        self.assertEqual(str(wrapped), "Cannot list directory '/x': denied")
        self.assertIs(wrapped.reason, Reason.PERMISSION_DENIED)

    def test_foreign_exception_gets_context(self):
        wrapped = wrap(RuntimeError("boom"), TransferError, "Transfer of 'a' failed")
        self.assertEqual(str(wrapped), "Transfer of 'a' failed: boom")
        self.assertIs(wrapped.reason, Reason.TRANSPORT)

    def test_conflicting_mutation_becomes_conflict_error(self):
        wrapped = wrap(FileExistsError(errno.EEXIST, "File exists"), MutationError, "mkdir")
        self.assertIsInstance(wrapped, ConflictError)
        self.assertIs(wrapped.reason, Reason.CONFLICT)

    def test_already_wrapped_error_is_returned_as_is(self):
        error = ConflictError("'b' already exists")
        self.assertIs(wrap(error, MutationError, "rename"), error)

    def test_hierarchy(self):
        cancelled = TransferCancelledException()
        self.assertIsInstance(cancelled, TransferError)
        self.assertIsInstance(cancelled, FileOperationError)
        self.assertEqual(str(cancelled), "Transfer cancelled")
        self.assertIs(cancelled.reason, Reason.CANCELLED)


if __name__ == "__main__":
    unittest.main()
