"""
SFTP transport: lazy paramiko session + SFTP channel
"""
import posixpath
import re
import stat
from typing import Optional

import paramiko

from ..config import CONNECT_TIMEOUT
from ..errors import AuthFailed, NotFound, RemoteIOError, Unreachable
from ..models import RemoteEntry
from ..utils.file_utils import remote_path_for
from ..utils.logging import log, vlog


class SFTPTransport:
    """
    Wraps paramiko SSHClient + SFTPClient.
    Connects on first use and reconnects when the session has dropped.
    Unknown host keys are accepted on first contact (AutoAddPolicy).

    Not thread-safe: share it through SerializedTransport.
    """

    def __init__(self, host: str, port: int, user: str, password: str = "",
                 timeout: int = CONNECT_TIMEOUT, client_factory=paramiko.SSHClient):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.timeout = timeout
        self._client_factory = client_factory
        self._ssh: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None

    @classmethod
    def from_config(cls, cfg):
        return cls(cfg.host, cfg.port, cfg.user, cfg.password)

    # ── connection ─────────────────────────────────────────────────────────

    def is_connected(self) -> bool:
        if self._ssh is None or self._sftp is None:
            return False
        try:
            transport = self._ssh.get_transport()
            return (transport is not None and transport.is_active()
                    and not self._sftp.get_channel().closed)
        except Exception:
            return False

    def connect(self):
        if self.is_connected():
            return
        self._close_quietly()

        log(f"[SFTP] connecting to {self.user}@{self.host}:{self.port} …")
        client = self._client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        kw: dict = dict(hostname=self.host, port=self.port, username=self.user,
                        timeout=self.timeout, banner_timeout=self.timeout,
                        auth_timeout=self.timeout)
        if self.password:
            kw.update(password=self.password, look_for_keys=False, allow_agent=False)

        try:
            client.connect(**kw)
            sftp = client.open_sftp()
            sftp.get_channel().settimeout(self.timeout)
        except paramiko.AuthenticationException as exc:
            _close_client(client)
            raise AuthFailed(f"authentication failed for {self.user}@{self.host}: {exc}") from exc
        except (paramiko.SSHException, OSError) as exc:
            _close_client(client)
            raise Unreachable(f"cannot reach {self.host}:{self.port}: {exc}") from exc

        self._ssh = client
        self._sftp = sftp
        log("[SFTP] connected ✓")

    def _close_quietly(self):
        try:
            if self._sftp:
                self._sftp.close()
        except Exception:
            pass
        try:
            if self._ssh:
                self._ssh.close()
        except Exception:
            pass
        self._ssh = None
        self._sftp = None

    def disconnect(self):
        if self._ssh is None and self._sftp is None:
            return
        self._close_quietly()
        log("[SFTP] disconnected.")

    # ── sftp ops ────────────────────────────────────────────────────────────

    def upload_stream(self, remote_path: str, source):
        """Write *source* to *remote_path*, creating missing parent directories."""
        self.connect()
        try:
            parent = posixpath.dirname(remote_path)
            if parent:
                self._ensure_dirs(parent)
            self._sftp.putfo(source, remote_path)
        except (OSError, paramiko.SSHException) as exc:
            raise RemoteIOError(f"upload {remote_path}: {exc}") from exc

    def download_stream(self, remote_path: str):
        """Open *remote_path* for reading. The caller closes the stream."""
        self.connect()
        try:
            f = self._sftp.open(remote_path, "rb")
        except FileNotFoundError as exc:
            raise NotFound(f"{remote_path}: not found") from exc
        except (OSError, paramiko.SSHException) as exc:
            raise RemoteIOError(f"download {remote_path}: {exc}") from exc
        f.prefetch()
        return f

    def delete_path(self, remote_path: str) -> bool:
        """
        Remove a remote file, falling back to removing a directory.
        Returns False when nothing existed at *remote_path*.
        """
        self.connect()
        try:
            self._sftp.remove(remote_path)
            return True
        except FileNotFoundError:
            return False
        except (OSError, paramiko.SSHException) as file_exc:
            vlog(f"[SFTP] remove {remote_path} failed ({file_exc}); trying rmdir")
        try:
            self._sftp.rmdir(remote_path)
            return True
        except FileNotFoundError:
            return False
        except (OSError, paramiko.SSHException) as exc:
            raise RemoteIOError(f"delete {remote_path}: {exc}") from exc

    def list_recursive(self, remote_base: str) -> dict[str, RemoteEntry]:
        """Return {relative_key: RemoteEntry} for every regular file under *remote_base*."""
        self.connect()
        out: dict[str, RemoteEntry] = {}
        try:
            self._collect(remote_base, "", out)
        except (OSError, paramiko.SSHException) as exc:
            raise RemoteIOError(f"list {remote_base}: {exc}") from exc
        return out

    def _collect(self, remote_base: str, prefix: str, out: dict):
        path = remote_path_for(remote_base, prefix) if prefix else remote_base
        for attr in self._sftp.listdir_attr(path or "."):
            name = attr.filename
            if name in (".", ".."):
                continue
            child_key = f"{prefix}/{name}" if prefix else name
            mode = attr.st_mode or 0
            if stat.S_ISDIR(mode):
                self._collect(remote_base, child_key, out)
            elif stat.S_ISREG(mode):
                out[child_key] = RemoteEntry(
                    remote_path=remote_path_for(path, name),
                    size=attr.st_size or 0,
                    mtime=int(attr.st_mtime or 0),
                )

    def _ensure_dirs(self, remote_dir: str):
        """Create every missing segment of *remote_dir*, one at a time from the top."""
        path = re.sub("/+", "/", remote_dir)
        current = "/" if path.startswith("/") else ""
        for part in path.split("/"):
            if not part or part == ".":
                continue
            current = posixpath.join(current, part) if current else part
            try:
                st = self._sftp.stat(current)
            except FileNotFoundError:
                self._sftp.mkdir(current)
                vlog(f"[SFTP] mkdir {current}")
                continue
            if not stat.S_ISDIR(st.st_mode or 0):
                raise NotADirectoryError(f"{current} exists and is not a directory")


def _close_client(client):
    try:
        client.close()
    except Exception:
        pass
