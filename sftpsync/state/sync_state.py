"""
In-memory bookkeeping shared by the watcher and the periodic syncer

  last_downloaded  abs local path -> wall clock (ms) of the last remote→local write
  last_uploaded    abs local path -> local mtime (ms) captured when the upload finished

Nothing is persisted; a restarted daemon starts with both maps empty.
"""
import os
import threading
import time
from typing import Callable, Optional

from ..config import RECENT_DOWNLOAD_WINDOW_MS


def _now_ms() -> int:
    return int(time.time() * 1000)


def _key(path) -> str:
    return os.path.abspath(os.fspath(path))


class SyncState:
    """
    Thread-safe record of what the daemon itself wrote on each side.

    A recent download marks a local change as an echo of the syncer;
    the upload record stops the watcher from re-sending a version it already sent.
    """

    def __init__(self, recent_download_window_ms: int = RECENT_DOWNLOAD_WINDOW_MS,
                 clock: Callable[[], int] = _now_ms):
        self.recent_download_window_ms = recent_download_window_ms
        self._clock = clock
        self._lock = threading.Lock()
        self._last_downloaded: dict[str, int] = {}
        self._last_uploaded: dict[str, int] = {}

    # ── downloads ───────────────────────────────────────────────────────────

    def mark_downloaded(self, path):
        if path is None:
            return
        now = self._clock()
        with self._lock:
            self._last_downloaded[_key(path)] = now

    def is_recently_downloaded(self, path) -> bool:
        if path is None:
            return False
        with self._lock:
            ts = self._last_downloaded.get(_key(path))
        return ts is not None and (self._clock() - ts) < self.recent_download_window_ms

    def downloaded_timestamp(self, path) -> Optional[int]:
        if path is None:
            return None
        with self._lock:
            return self._last_downloaded.get(_key(path))

    def forget_downloaded(self, path):
        if path is None:
            return
        with self._lock:
            self._last_downloaded.pop(_key(path), None)

    # ── uploads ─────────────────────────────────────────────────────────────

    def mark_uploaded(self, path, last_modified_ms: int):
        if path is None:
            return
        with self._lock:
            self._last_uploaded[_key(path)] = int(last_modified_ms)

    def last_uploaded(self, path) -> Optional[int]:
        if path is None:
            return None
        with self._lock:
            return self._last_uploaded.get(_key(path))

    def forget_uploaded(self, path):
        if path is None:
            return
        with self._lock:
            self._last_uploaded.pop(_key(path), None)

    # ── both ────────────────────────────────────────────────────────────────

    def is_tracked(self, path) -> bool:
        """True when the daemon has moved this path across the link in either direction."""
        return self.downloaded_timestamp(path) is not None or self.last_uploaded(path) is not None

    def forget(self, path):
        self.forget_downloaded(path)
        self.forget_uploaded(path)

    def tracked_paths(self) -> frozenset:
        """Snapshot of every path is_tracked() would accept right now."""
        with self._lock:
            return frozenset(self._last_downloaded) | frozenset(self._last_uploaded)
