"""Command-line front end for twinpane.

Connects a session to ``user@host[:port]`` and runs one pane operation
against it: list a remote directory, download files into a local directory
or upload files into a remote one. Transfer status lines are written to
stderr while the copy runs.
"""

from __future__ import annotations

import argparse
import dataclasses
import getpass
import logging
import os
import re
import sys
import threading
from typing import Callable, List, Optional, TextIO

from .actions import Action, TransferCancelled, TransferCleared, TransferFailed
from .config import Settings, load_settings, setup_logging
from .controller import SessionController, connect_session
from .errors import FileOperationError
from .fileops import FileEntry, human_size, human_time, normalize_local_path
from .sorting import SortColumn
from .state import RemoteHost, SessionState, Side, TransferDirection, TransferPhase
from .transfer import describe

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130

_TARGET_RE = re.compile(r"^(?:(?P<user>[^@]+)@)?(?P<host>[^:@]+)(?::(?P<port>\d+))?$")


def parse_target(value: str) -> RemoteHost:
    """argparse type for ``[user@]host[:port]``."""
    match = _TARGET_RE.match(value)
    if match is None:
        raise argparse.ArgumentTypeError(f"invalid target: {value!r}")
    port = int(match.group("port") or 22)
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError(f"invalid port: {port}")
    username = match.group("user") or getpass.getuser()
    hostname = match.group("host")
    return RemoteHost(id=f"{username}@{hostname}:{port}", hostname=hostname,
                      username=username, port=port)


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="twinpane",
        description="Browse and copy files between this machine and an SFTP server.",
    )
    parser.add_argument("target", type=parse_target, help="remote host as [user@]host[:port]")
    parser.add_argument("--password-env", metavar="VAR",
                        help="read the SSH password from environment variable VAR")
    parser.add_argument("--chunk-size", type=_positive_int, help="transfer chunk size in bytes")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    ls_parser = commands.add_parser("ls", help="list a remote directory")
    ls_parser.add_argument("path", nargs="?", default="~")
    ls_parser.add_argument("-a", "--all", action="store_true", help="show hidden files")
    ls_parser.add_argument("--sort", choices=[column.value for column in SortColumn],
                           default=SortColumn.NAME.value)
    ls_parser.add_argument("-r", "--reverse", action="store_true")

    get_parser = commands.add_parser("get", help="download remote files")
    get_parser.add_argument("files", nargs="+", metavar="REMOTE_FILE")
    get_parser.add_argument("-d", "--dest", default=".", help="local target directory")

    put_parser = commands.add_parser("put", help="upload local files")
    put_parser.add_argument("files", nargs="+", metavar="LOCAL_FILE")
    put_parser.add_argument("-d", "--dest", default="~", help="remote target directory")

    return parser


def wait_until(controller: SessionController, predicate: Callable[[SessionState], bool],
               timeout: Optional[float] = None) -> bool:
    """Block until ``predicate`` holds for the session state."""
    reached = threading.Event()

    def _listener(state: SessionState, action: Action) -> None:
        if predicate(state):
            reached.set()

    unsubscribe = controller.subscribe(_listener)
    try:
        if predicate(controller.state):
            return True
        return reached.wait(timeout)
    finally:
        unsubscribe()


def _panes_settled(state: SessionState) -> bool:
    return state.local.pending_path is None and state.remote.pending_path is None


def _open_directory(controller: SessionController, side: Side, path: str, err: TextIO,
                    timeout: float) -> bool:
    controller.dismiss_error()
    controller.navigate(side, path)
    if not wait_until(controller, lambda s: s.pane(side).pending_path is None, timeout):
        print(f"twinpane: timed out listing {path}", file=err)
        return False
    state = controller.state
    if state.error:
        print(f"twinpane: {state.error}", file=err)
        return False
    return True


def format_listing_line(entry: FileEntry) -> str:
    marker = "d" if entry.is_dir else "-"
    return f"{marker} {human_size(entry.size):>8}  {human_time(entry.modified)}  {entry.name}"


def _cmd_ls(controller: SessionController, args: argparse.Namespace, timeout: float,
            out: TextIO, err: TextIO) -> int:
    column = SortColumn(args.sort)
    if args.all:
        controller.set_show_hidden(Side.REMOTE, True)
    if column is not controller.state.remote.sort_column:
        controller.sort(Side.REMOTE, column)
    if args.reverse:
        controller.sort(Side.REMOTE, column)

    if not _open_directory(controller, Side.REMOTE, args.path, err, timeout):
        return EXIT_FAILED
    pane = controller.state.remote
    print(pane.path, file=out)
    for entry in pane.view:
        if entry.is_parent:
            continue
        print(format_listing_line(entry), file=out)
    return EXIT_OK


class ProgressPrinter:
    """Session listener writing transfer status lines to ``stream``."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._last = ""

    def __call__(self, state: SessionState, action: Action) -> None:
        if isinstance(action, (TransferCleared, TransferFailed, TransferCancelled)):
            if self._last:
                self._stream.write("\n")
                self._stream.flush()
                self._last = ""
            return
        if state.transfer is None or not state.transfer.is_active:
            return
        line = describe(state.transfer)
        if line == self._last:
            return
        padding = " " * max(0, len(self._last) - len(line))
        self._stream.write(f"\r{line}{padding}")
        self._stream.flush()
        self._last = line


def _cmd_transfer(controller: SessionController, direction: TransferDirection,
                  args: argparse.Namespace, timeout: float, err: TextIO) -> int:
    if not _open_directory(controller, direction.destination, args.dest, err, timeout):
        return EXIT_FAILED

    files: List[str] = list(args.files)
    if direction is TransferDirection.UPLOAD:
        files = [normalize_local_path(path) for path in files]

    unsubscribe = controller.subscribe(ProgressPrinter(err))
    try:
        future = controller.start_transfer(direction, files)
        if future is None:
            print("twinpane: nothing to transfer", file=err)
            return EXIT_FAILED
        try:
            outcome = future.result()
        except KeyboardInterrupt:
            controller.cancel_transfer()
            try:
                outcome = future.result()
            except FileOperationError as exc:
                print(f"twinpane: {exc}", file=err)
                return EXIT_FAILED
    except FileOperationError as exc:
        print(f"twinpane: {exc}", file=err)
        return EXIT_FAILED
    finally:
        unsubscribe()

    if outcome is TransferPhase.CANCELLED:
        print("twinpane: transfer cancelled", file=err)
        return EXIT_CANCELLED
    print(f"Transferred {len(files)} file(s) to {controller.state.pane(direction.destination).path}",
          file=err)
    return EXIT_OK


def run(args: argparse.Namespace, settings: Settings, *, out: Optional[TextIO] = None,
        err: Optional[TextIO] = None) -> int:
    out = out or sys.stdout
    err = err or sys.stderr
    password = os.environ.get(args.password_env) if args.password_env else None
    try:
        controller = connect_session(args.target, password, settings=settings)
    except FileOperationError as exc:
        print(f"twinpane: {exc}", file=err)
        return EXIT_FAILED

    timeout = settings.connect_timeout
    try:
        if args.command == "ls":
            return _cmd_ls(controller, args, timeout, out, err)
        if args.command == "get":
            return _cmd_transfer(controller, TransferDirection.DOWNLOAD, args, timeout, err)
        return _cmd_transfer(controller, TransferDirection.UPLOAD, args, timeout, err)
    finally:
        # let post-transfer refreshes land before the transports go away
        wait_until(controller, _panes_settled, timeout)
        controller.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Parse CLI arguments and run the requested command; returns the exit code."""
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    settings = load_settings()
    if args.chunk_size:
        settings = dataclasses.replace(settings, chunk_size=args.chunk_size)
    logger.debug(f"Using settings {settings}")
    return run(args, settings)


if __name__ == "__main__":
    sys.exit(main())
