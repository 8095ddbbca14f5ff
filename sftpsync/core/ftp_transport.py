"""
Plain FTP transport (ftp.protocol=ftp), same contract as SFTPTransport
"""
import calendar
import ftplib
import posixpath
import re
import tempfile
import time
from typing import Optional

from ..config import CONNECT_TIMEOUT
from ..errors import AuthFailed, NotFound, RemoteIOError, Unreachable
from ..models import RemoteEntry
from ..utils.file_utils import remote_path_for
from ..utils.logging import log, vlog

# Downloads larger than this spill from memory to a temp file
SPOOL_MAX = 8 * 1024 * 1024


def _is_missing(exc: ftplib.Error) -> bool:
    return str(exc).startswith("550")


def _parse_modify(value: str) -> int:
    """MLSD 'modify' fact (YYYYMMDDHHMMSS[.sss], UTC) → epoch seconds."""
    try:
        return calendar.timegm(time.strptime(value[:14], "%Y%m%d%H%M%S"))
    except (ValueError, TypeError):
        return 0


class FTPTransport:
    """
    Wraps ftplib.FTP in passive mode.
    Listing relies on MLSD; servers without it cannot be used.

    Not thread-safe: share it through SerializedTransport.
    """

    def __init__(self, host: str, port: int, user: str, password: str = "",
                 timeout: int = CONNECT_TIMEOUT, ftp_factory=ftplib.FTP):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.timeout = timeout
        self._ftp_factory = ftp_factory
        self._ftp: Optional[ftplib.FTP] = None

    @classmethod
    def from_config(cls, cfg):
        return cls(cfg.host, cfg.port, cfg.user, cfg.password)

    # ── connection ─────────────────────────────────────────────────────────

    def is_connected(self) -> bool:
        if self._ftp is None:
            return False
        try:
            self._ftp.voidcmd("NOOP")
            return True
        except ftplib.all_errors:
            return False

    def connect(self):
        if self.is_connected():
            return
        self._close_quietly()

        log(f"[FTP] connecting to {self.user}@{self.host}:{self.port} …")
        ftp = self._ftp_factory(timeout=self.timeout)
        try:
            ftp.connect(self.host, self.port, timeout=self.timeout)
            ftp.login(self.user, self.password)
            ftp.set_pasv(True)
        except ftplib.error_perm as exc:
            _close_ftp(ftp)
            raise AuthFailed(f"login failed for {self.user}@{self.host}: {exc}") from exc
        except ftplib.all_errors as exc:
            _close_ftp(ftp)
            raise Unreachable(f"cannot reach {self.host}:{self.port}: {exc}") from exc

        self._ftp = ftp
        log("[FTP] connected ✓")

    def _close_quietly(self):
        if self._ftp is None:
            return
        try:
            self._ftp.quit()
        except Exception:
            _close_ftp(self._ftp)
        self._ftp = None

    def disconnect(self):
        if self._ftp is None:
            return
        self._close_quietly()
        log("[FTP] disconnected.")

    # ── ftp ops ─────────────────────────────────────────────────────────────

    def upload_stream(self, remote_path: str, source):
        self.connect()
        try:
            parent = posixpath.dirname(remote_path)
            if parent:
                self._ensure_dirs(parent)
            self._ftp.storbinary(f"STOR {remote_path}", source)
        except ftplib.all_errors as exc:
            raise RemoteIOError(f"upload {remote_path}: {exc}") from exc

    def download_stream(self, remote_path: str):
        """Fetch *remote_path* into a spooled temp file, rewound for reading."""
        self.connect()
        buf = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX)
        try:
            self._ftp.retrbinary(f"RETR {remote_path}", buf.write)
        except ftplib.error_perm as exc:
            buf.close()
            if _is_missing(exc):
                raise NotFound(f"{remote_path}: {exc}") from exc
            raise RemoteIOError(f"download {remote_path}: {exc}") from exc
        except ftplib.all_errors as exc:
            buf.close()
            raise RemoteIOError(f"download {remote_path}: {exc}") from exc
        buf.seek(0)
        return buf

    def delete_path(self, remote_path: str) -> bool:
        self.connect()
        try:
            self._ftp.delete(remote_path)
            return True
        except ftplib.error_perm as file_exc:
            vlog(f"[FTP] DELE {remote_path} failed ({file_exc}); trying RMD")
        except ftplib.all_errors as exc:
            raise RemoteIOError(f"delete {remote_path}: {exc}") from exc
        try:
            self._ftp.rmd(remote_path)
            return True
        except ftplib.error_perm as exc:
            if _is_missing(exc):
                return False
            raise RemoteIOError(f"delete {remote_path}: {exc}") from exc
        except ftplib.all_errors as exc:
            raise RemoteIOError(f"delete {remote_path}: {exc}") from exc

    def list_recursive(self, remote_base: str) -> dict[str, RemoteEntry]:
        self.connect()
        out: dict[str, RemoteEntry] = {}
        try:
            self._collect(remote_base, "", out)
        except ftplib.all_errors as exc:
            raise RemoteIOError(f"list {remote_base}: {exc}") from exc
        return out

    def _collect(self, remote_base: str, prefix: str, out: dict):
        path = remote_path_for(remote_base, prefix) if prefix else remote_base
        for name, facts in self._ftp.mlsd(path or "", facts=["type", "size", "modify"]):
            if name in (".", ".."):
                continue
            kind = facts.get("type", "").lower()
            child_key = f"{prefix}/{name}" if prefix else name
            if kind == "dir":
                self._collect(remote_base, child_key, out)
            elif kind == "file":
                out[child_key] = RemoteEntry(
                    remote_path=remote_path_for(path, name),
                    size=int(facts.get("size", 0) or 0),
                    mtime=_parse_modify(facts.get("modify", "")),
                )

    def _ensure_dirs(self, remote_dir: str):
        path = re.sub("/+", "/", remote_dir)
        current = "/" if path.startswith("/") else ""
        for part in path.split("/"):
            if not part or part == ".":
                continue
            current = posixpath.join(current, part) if current else part
            try:
                self._ftp.mkd(current)
                vlog(f"[FTP] mkdir {current}")
            except ftplib.error_perm:
                # 550 for an existing directory; a real permission problem surfaces on STOR
                pass


def _close_ftp(ftp):
    try:
        ftp.close()
    except Exception:
        pass
