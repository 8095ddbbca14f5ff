"""
Local watcher: filesystem notifications → remote uploads and deletes

A watchdog observer feeds a bounded queue; one worker thread drains it and
runs every event through the filter pipeline in handle_event().
"""
import os
import queue
import threading
import traceback
from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ..config import STABLE_MAX_MS, STABLE_WAIT_MS, WATCH_QUEUE_SIZE
from ..errors import SyncError
from ..models import EventKind, Outcome
from ..operations.delete import delete_remote
from ..operations.transfer import push_file
from ..utils.file_utils import (
    is_temp_file, mtime_ms, relative_key, remote_path_for, wait_until_stable,
)
from ..utils.logging import error, is_verbose, log, vlog, warn

_CLOSED = object()


class _QueueingHandler(FileSystemEventHandler):
    """Translates watchdog callbacks into (kind, path, is_dir) queue items."""

    def __init__(self, watcher: "LocalWatcher"):
        super().__init__()
        self.watcher = watcher

    def on_created(self, event):
        self.watcher.enqueue(EventKind.CREATE, event.src_path, event.is_directory)

    def on_modified(self, event):
        # directory mtimes change with every child; the child event is the one that matters
        if event.is_directory:
            return
        self.watcher.enqueue(EventKind.MODIFY, event.src_path, False)

    def on_deleted(self, event):
        self.watcher.enqueue(EventKind.DELETE, event.src_path, event.is_directory)

    def on_moved(self, event):
        self.watcher.enqueue(EventKind.DELETE, event.src_path, event.is_directory)
        self.watcher.enqueue(EventKind.CREATE, event.dest_path, event.is_directory)


class LocalWatcher:
    """
    Pushes local changes to the remote side.

    Created/modified files are uploaded once their size settles, unless the
    syncer wrote them moments ago (echo) or this exact version was already
    uploaded. Deleted paths are deleted remotely.
    """

    def __init__(self, cfg, transport, state,
                 stable_wait_ms: int = STABLE_WAIT_MS, stable_max_ms: int = STABLE_MAX_MS,
                 queue_size: int = WATCH_QUEUE_SIZE, observer_factory=Observer):
        self.local_root = Path(os.path.abspath(cfg.local_dir))
        self.remote_root = cfg.remote_dir
        self.transport = transport
        self.state = state
        self.stable_wait_ms = stable_wait_ms
        self.stable_max_ms = stable_max_ms
        self._observer_factory = observer_factory
        self._observer = None
        self._thread: Optional[threading.Thread] = None
        self._events: queue.Queue = queue.Queue(maxsize=queue_size)
        self._overflowed = threading.Event()
        self._stopping = threading.Event()
        self._running = False
        self._in_flight: set[str] = set()
        self._in_flight_lock = threading.Lock()

    # ── lifecycle ──────────────────────────────────────────────────────────

    def start(self):
        self.local_root.mkdir(parents=True, exist_ok=True)
        self._stopping.clear()
        self._running = True

        observer = self._observer_factory()
        observer.schedule(_QueueingHandler(self), str(self.local_root), recursive=True)
        observer.start()
        self._observer = observer

        self._thread = threading.Thread(target=self._run, name="local-watcher", daemon=True)
        self._thread.start()
        log(f"[watch] watching {self.local_root} (recursive)")

    def stop(self, timeout: float = 10):
        self._running = False
        self._stopping.set()
        if self._observer is not None:
            try:
                self._observer.stop()
                self._observer.join(timeout)
            except Exception as exc:
                vlog(f"[watch] observer shutdown: {exc}")
            self._observer = None
        try:
            self._events.put_nowait(_CLOSED)
        except queue.Full:
            # the worker is not blocked on an empty queue and will see _running
            pass
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        log("[watch] stopped.")

    @property
    def running(self) -> bool:
        return self._running

    def enqueue(self, kind: EventKind, path, is_dir: bool):
        """Called from the observer thread."""
        try:
            self._events.put_nowait((kind, os.fsdecode(path), is_dir))
        except queue.Full:
            self._overflowed.set()

    def _run(self):
        while self._running:
            item = self._events.get()
            if item is _CLOSED or not self._running:
                break
            if self._overflowed.is_set():
                self._overflowed.clear()
                self.handle_event(EventKind.OVERFLOW, None)
            try:
                self.handle_event(*item)
            except Exception as exc:
                error(f"[watch] failed to handle {item[0].value} {item[1]}: {exc}")
                if is_verbose():
                    traceback.print_exc()

    # ── pipeline ───────────────────────────────────────────────────────────

    def handle_event(self, kind: EventKind, path, is_dir: bool = False) -> Outcome:
        """Run one event through the filter pipeline and act on it."""
        if kind == EventKind.OVERFLOW:
            warn("[watch] event overflow: some local changes were dropped; "
                 "the periodic sync will repair the remote side over time")
            return Outcome.OVERFLOW

        path = os.path.abspath(path)
        if is_temp_file(os.path.basename(path)):
            vlog(f"[watch] ignoring temp file {path}")
            return Outcome.TEMP_FILE

        try:
            key = relative_key(self.local_root, path)
        except ValueError:
            return Outcome.OUTSIDE_ROOT
        if key in ("", "."):
            return Outcome.OUTSIDE_ROOT

        if kind == EventKind.CREATE and is_dir:
            # the recursive observer already covers the new subtree
            log(f"[watch] new directory {key}: subtree registered")
            return Outcome.DIR_REGISTERED

        if kind == EventKind.DELETE:
            return self._propagate_delete(path, key)

        return self._propagate_upload(path, key)

    def _propagate_delete(self, path: str, key: str) -> Outcome:
        remote = remote_path_for(self.remote_root, key)
        log(f"[watch] local delete detected: {key}")
        try:
            delete_remote(self.transport, remote)
        except SyncError as exc:
            error(f"[watch] could not delete remote {remote}: {exc}")
            return Outcome.FAILED
        self.state.forget(path)
        return Outcome.DELETED_REMOTE

    def _propagate_upload(self, path: str, key: str) -> Outcome:
        if self.state.is_recently_downloaded(path):
            log(f"[watch] Ignorado (reciente descarga remota): {key}")
            return Outcome.ECHO

        if not os.path.isfile(path):
            vlog(f"[watch] {key} is not a regular file (any longer)")
            return Outcome.NOT_A_FILE

        if not wait_until_stable(path, self.stable_wait_ms, self.stable_max_ms,
                                 sleep=self._stopping.wait):
            if not self._stopping.is_set():
                warn(f"[watch] {key} did not settle within {self.stable_max_ms} ms; skipped")
            return Outcome.UNSTABLE

        try:
            modified = mtime_ms(path)
        except OSError as exc:
            error(f"[watch] cannot stat {path}: {exc}")
            return Outcome.FAILED

        uploaded = self.state.last_uploaded(path)
        if uploaded is not None and uploaded >= modified:
            vlog(f"[watch] {key} already uploaded at this version")
            return Outcome.ALREADY_UPLOADED

        with self._in_flight_lock:
            if path in self._in_flight:
                vlog(f"[watch] {key} upload already in progress")
                return Outcome.IN_FLIGHT
            self._in_flight.add(path)

        remote = remote_path_for(self.remote_root, key)
        try:
            push_file(self.transport, Path(path), remote)
            self.state.mark_uploaded(path, modified)
            log(f"  [UPLOAD ✓] {key} → {remote}")
            return Outcome.UPLOADED
        except SyncError as exc:
            error(f"[watch] upload of {key} failed: {exc}")
            return Outcome.FAILED
        finally:
            with self._in_flight_lock:
                self._in_flight.discard(path)

    def is_in_flight(self, path) -> bool:
        with self._in_flight_lock:
            return os.path.abspath(path) in self._in_flight
