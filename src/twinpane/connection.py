"""Paramiko-backed SFTP transport for the remote pane."""

from __future__ import annotations

import logging
import posixpath
import threading
from typing import BinaryIO, List, Optional, Tuple

import paramiko

from .config import Settings
from .errors import ConflictError, Reason, TransportError, classify_os_error
from .fileops import (
    FileEntry,
    FileStat,
    entry_from_attr,
    has_parent,
    join_path,
    parent_entry,
    parent_path,
    stat_isdir,
)
from .state import RemoteHost
from .transport import Transport

logger = logging.getLogger(__name__)


def _remote_error(exc: BaseException, context: str) -> TransportError:
    if isinstance(exc, TransportError):
        return exc
    if isinstance(exc, (paramiko.SSHException, EOFError)):
        return TransportError(f"{context}: {exc}", Reason.CONNECTION_LOST)
    return TransportError(f"{context}: {exc}", classify_os_error(exc))


class SFTPTransport(Transport):
    """Small wrapper around :mod:`paramiko` implementing :class:`Transport`.

    Calls block; the session controller runs them on its worker pool. Tests
    can monkeypatch :class:`paramiko.SSHClient` to avoid talking to a real
    server.
    """

    separator = "/"

    def __init__(
        self,
        host: RemoteHost,
        password: Optional[str] = None,
        *,
        settings: Optional[Settings] = None,
    ) -> None:
        self._host = host
        self._password = password
        self._settings = settings or Settings()
        self._client: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None
        self._connection_lock = threading.RLock()

    @property
    def host(self) -> RemoteHost:
        return self._host

    # -- connection -----------------------------------------------------

    def connect(self) -> None:
        """Establish SSH/SFTP connection."""
        host = self._host
        logger.info(f"Connecting to {host.username}@{host.hostname}:{host.port}")
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                hostname=host.hostname,
                username=host.username,
                password=self._password,
                port=host.port,
                allow_agent=True,
                look_for_keys=True,
                timeout=self._settings.connect_timeout,
                auth_timeout=self._settings.connect_timeout,
            )
            sftp = client.open_sftp()
        except paramiko.AuthenticationException as exc:
            client.close()
            raise TransportError(f"Authentication failed: {exc}", Reason.PERMISSION_DENIED) from exc
        except (paramiko.SSHException, OSError) as exc:
            client.close()
            raise TransportError(f"Connection failed: {exc}", Reason.CONNECTION_LOST) from exc

        with self._connection_lock:
            self._client = client
            self._sftp = sftp
        logger.info("SFTP connection established successfully")

    def close(self) -> None:
        """Close connections and cleanup resources."""
        logger.info("Closing SFTP connection")
        with self._connection_lock:
            if self._sftp is not None:
                try:
                    self._sftp.close()
                except (paramiko.SSHException, OSError) as exc:
                    logger.warning(f"Error closing SFTP client: {exc}")
                finally:
                    self._sftp = None
            if self._client is not None:
                try:
                    self._client.close()
                except (paramiko.SSHException, OSError) as exc:
                    logger.warning(f"Error closing SSH client: {exc}")
                finally:
                    self._client = None

    def _ensure_connected(self) -> paramiko.SFTPClient:
        with self._connection_lock:
            if self._sftp is None or self._client is None:
                raise TransportError("Not connected to server", Reason.CONNECTION_LOST)
            return self._sftp

    # -- paths ----------------------------------------------------------

    def _expand_remote_path(self, path: str, sftp: paramiko.SFTPClient) -> str:
        """Expand ``~``, empty and relative paths against the login directory."""
        if path.startswith("/"):
            return path
        if path and path != "~" and not path.startswith("~/"):
            return sftp.normalize(path)
        try:
            home_path = sftp.normalize(".")
        except (IOError, paramiko.SSHException):
            home_path = f"/home/{self._host.username}"
            logger.debug(f"normalize('.') failed, assuming {home_path}")
        if not path or path == "~":
            return home_path
        return posixpath.join(home_path, path[2:])

    # -- Transport ------------------------------------------------------

    def listdir(self, path: str) -> Tuple[str, List[FileEntry]]:
        sftp = self._ensure_connected()
        try:
            expanded_path = self._expand_remote_path(path, sftp)
            entries = [
                entry_from_attr(attr, expanded_path)
                for attr in sftp.listdir_attr(expanded_path)
                if attr.filename and attr.filename not in (".", "..")
            ]
        except (IOError, paramiko.SSHException, EOFError) as exc:
            raise _remote_error(exc, f"Cannot list directory '{path}'") from exc

        if has_parent(expanded_path, self.separator):
            entries.insert(0, parent_entry(expanded_path, self.separator))
        logger.debug(f"Listed {len(entries)} entries in {expanded_path}")
        return expanded_path, entries

    def stat(self, path: str) -> FileStat:
        sftp = self._ensure_connected()
        try:
            attr = sftp.stat(path)
        except (IOError, paramiko.SSHException, EOFError) as exc:
            raise _remote_error(exc, f"Cannot stat '{path}'") from exc
        return FileStat(size=attr.st_size or 0, modified=float(attr.st_mtime or 0))

    def open_read(self, path: str) -> BinaryIO:
        sftp = self._ensure_connected()
        try:
            handle = sftp.open(path, "rb")
            handle.prefetch()
        except (IOError, paramiko.SSHException, EOFError) as exc:
            raise _remote_error(exc, f"Cannot read '{path}'") from exc
        return handle

    def open_write(self, path: str) -> BinaryIO:
        sftp = self._ensure_connected()
        try:
            handle = sftp.open(path, "wb")
            handle.set_pipelined(True)
        except (IOError, paramiko.SSHException, EOFError) as exc:
            raise _remote_error(exc, f"Cannot write '{path}'") from exc
        return handle

    def rename(self, path: str, new_name: str) -> str:
        target = join_path(parent_path(path, self.separator), new_name, self.separator)
        if self.exists(target):
            raise ConflictError(f"'{new_name}' already exists")
        sftp = self._ensure_connected()
        try:
            sftp.rename(path, target)
        except (IOError, paramiko.SSHException, EOFError) as exc:
            raise _remote_error(exc, f"Cannot rename '{path}'") from exc
        logger.info(f"Renamed: {path} -> {target}")
        return target

    def remove(self, path: str, recursive: bool = False) -> None:
        sftp = self._ensure_connected()
        try:
            attr = sftp.lstat(path)
            if stat_isdir(attr):
                if recursive:
                    self._remove_directory_recursive(sftp, path)
                else:
                    sftp.rmdir(path)
            else:
                sftp.remove(path)
        except (IOError, paramiko.SSHException, EOFError) as exc:
            raise _remote_error(exc, f"Cannot remove '{path}'") from exc
        logger.info(f"Removed: {path}")

    def _remove_directory_recursive(self, sftp: paramiko.SFTPClient, path: str) -> None:
        for item in sftp.listdir_attr(path):
            item_path = posixpath.join(path, item.filename)
            if stat_isdir(item):
                self._remove_directory_recursive(sftp, item_path)
            else:
                sftp.remove(item_path)
        sftp.rmdir(path)

    def mkdir(self, path: str, name: str) -> str:
        target = join_path(path, name, self.separator)
        if self.exists(target):
            raise ConflictError(f"'{name}' already exists")
        sftp = self._ensure_connected()
        try:
            sftp.mkdir(target)
        except (IOError, paramiko.SSHException, EOFError) as exc:
            raise _remote_error(exc, f"Cannot create directory '{target}'") from exc
        logger.info(f"Created directory: {target}")
        return target
