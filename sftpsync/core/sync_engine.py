"""
Periodic remote → local reconciliation
"""
import os
import threading
import time
import traceback
from pathlib import Path
from typing import Optional

from ..config import RENAME_MTIME_TOLERANCE_MS
from ..errors import AuthFailed, RemoteIOError, SyncError, Unreachable
from ..models import LocalEntry, RemoteEntry, TickReport
from ..operations.delete import delete_local_if_tracked
from ..operations.scanner import local_list_all, remote_list_all
from ..operations.transfer import pull_file, rename_local
from ..utils.file_utils import local_path_for
from ..utils.logging import error, is_verbose, log, vlog


def find_rename_candidate(local_files: dict[str, LocalEntry],
                          remote_files: dict[str, RemoteEntry],
                          target: Path,
                          remote: RemoteEntry) -> Optional[tuple[str, LocalEntry]]:
    """
    Look for a local file that is *remote* under its old name: same size,
    mtime within RENAME_MTIME_TOLERANCE_MS of the remote mtime, and no longer
    present remotely under its own key.
    """
    remote_ms = remote.mtime * 1000
    for key, lm in local_files.items():
        if key in remote_files or lm.path == target:
            continue
        if lm.size == remote.size and abs(lm.mtime_ms - remote_ms) < RENAME_MTIME_TOLERANCE_MS:
            return key, lm
    return None


class PeriodicSyncer:
    """
    Runs reconcile ticks at a fixed rate on a single worker thread.

    A tick downloads new and resized remote files (or moves a local file into
    place when the remote side only renamed it) and deletes local files that
    vanished remotely, provided the daemon itself had moved them across the link.
    """

    def __init__(self, cfg, transport, state, clock=time.monotonic):
        self.local_root = Path(os.path.abspath(cfg.local_dir))
        self.remote_root = cfg.remote_dir
        self.poll_seconds = max(1, cfg.poll_seconds)
        self.address = cfg.address
        self.transport = transport
        self.state = state
        self._clock = clock
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.ticks = 0

    # ── lifecycle ──────────────────────────────────────────────────────────

    def start(self):
        self.local_root.mkdir(parents=True, exist_ok=True)
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="periodic-syncer", daemon=True)
        self._thread.start()
        log(f"[sync] polling {self.address} every {self.poll_seconds}s")

    def stop(self, timeout: float = 10):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        self.transport.disconnect()
        log("[sync] stopped.")

    def _run(self):
        next_run = self._clock()
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception as exc:
                error(f"[sync] tick failed: {exc}")
                if is_verbose():
                    traceback.print_exc()
            next_run += self.poll_seconds
            now = self._clock()
            if next_run < now:
                # overran one or more slots; start the next tick right away
                next_run = now
            if self._stop.wait(next_run - now):
                break

    # ── one tick ───────────────────────────────────────────────────────────

    def run_once(self) -> Optional[TickReport]:
        """
        Reconcile once. Returns the tick's report, or None when the tick was
        aborted because the server could not be reached or listed.
        """
        self.ticks += 1
        try:
            self.transport.connect()
        except (AuthFailed, Unreachable) as exc:
            error(f"[sync] cannot connect to {self.address}: {exc} (retrying next tick)")
            return None

        # The watcher uploads through the same lock, so every upload recorded
        # in this snapshot finished before the listing and shows up in it.
        with self.transport.lock:
            try:
                remote_files = remote_list_all(self.transport, self.remote_root)
            except RemoteIOError as exc:
                # a partial inventory must never drive local deletes
                error(f"[sync] remote listing failed: {exc} (retrying next tick)")
                return None
            tracked = self.state.tracked_paths()

        local_files = local_list_all(self.local_root)
        report = TickReport()

        for key, remote in remote_files.items():
            if self._stop.is_set():
                return report
            self._reconcile_remote(key, remote, local_files, remote_files, report)

        for key, lm in list(local_files.items()):
            if self._stop.is_set():
                return report
            if key in remote_files:
                continue
            try:
                if delete_local_if_tracked(self.state, lm, tracked):
                    report.deleted += 1
                else:
                    report.kept += 1
            except (SyncError, OSError) as exc:
                error(f"[sync] {exc}")
                report.failed += 1

        if report.changed or report.failed:
            log(f"[sync] tick {self.ticks}: {report.summary()}")
        else:
            vlog(f"[sync] tick {self.ticks}: already in sync ✓")
        return report

    def _reconcile_remote(self, key: str, remote: RemoteEntry,
                          local_files: dict[str, LocalEntry],
                          remote_files: dict[str, RemoteEntry],
                          report: TickReport):
        target = local_path_for(self.local_root, key)
        local = local_files.get(key)
        if local is not None and local.size == remote.size:
            report.up_to_date += 1
            return

        found = find_rename_candidate(local_files, remote_files, target, remote)
        if found is not None:
            old_key, candidate = found
            try:
                moved = rename_local(self.state, self.local_root, candidate, key)
            except (SyncError, OSError) as exc:
                error(f"[sync] {exc}")
                report.failed += 1
                return
            del local_files[old_key]
            local_files[key] = moved
            report.renamed += 1
            return

        try:
            pull_file(self.transport, self.state, remote, target)
        except (SyncError, OSError) as exc:
            error(f"[sync] could not download {remote.remote_path}: {exc}")
            report.failed += 1
            return
        report.downloaded += 1
