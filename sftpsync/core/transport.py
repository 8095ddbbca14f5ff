"""
Transport selection and serialization

The SFTP/FTP clients are not safe for concurrent use, so the watcher and the
syncer share one transport through SerializedTransport.
"""
import threading

from .ftp_transport import FTPTransport
from .sftp_transport import SFTPTransport


class SerializedTransport:
    """
    Funnels every operation of one transport through a re-entrant lock.

    Callers hold ``transport.lock`` across compound sequences, e.g. opening a
    download stream and draining it, so no other operation runs in between.
    """

    def __init__(self, inner):
        self.inner = inner
        self.lock = threading.RLock()

    def connect(self):
        with self.lock:
            self.inner.connect()

    def disconnect(self):
        with self.lock:
            try:
                self.inner.disconnect()
            except Exception:
                pass

    def is_connected(self) -> bool:
        with self.lock:
            return self.inner.is_connected()

    def upload_stream(self, remote_path: str, source):
        with self.lock:
            self.inner.upload_stream(remote_path, source)

    def download_stream(self, remote_path: str):
        with self.lock:
            return self.inner.download_stream(remote_path)

    def delete_path(self, remote_path: str) -> bool:
        with self.lock:
            return self.inner.delete_path(remote_path)

    def list_recursive(self, remote_base: str):
        with self.lock:
            return self.inner.list_recursive(remote_base)


def make_transport(cfg) -> SerializedTransport:
    """Build the transport named by cfg.protocol, wrapped for sharing."""
    if cfg.protocol == "ftp":
        inner = FTPTransport.from_config(cfg)
    else:
        inner = SFTPTransport.from_config(cfg)
    return SerializedTransport(inner)
