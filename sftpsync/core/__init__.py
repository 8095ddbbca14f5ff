"""Core functionality"""
from .sftp_transport import SFTPTransport
from .ftp_transport import FTPTransport
from .transport import SerializedTransport, make_transport
from .sync_engine import PeriodicSyncer, find_rename_candidate
from .watcher import LocalWatcher

__all__ = [
    "SFTPTransport", "FTPTransport", "SerializedTransport", "make_transport",
    "PeriodicSyncer", "find_rename_candidate",
    "LocalWatcher",
]
