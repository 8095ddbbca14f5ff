"""
Delete operations (local and remote)
"""
import os

from ..errors import LocalIOError
from ..models import LocalEntry
from ..utils.logging import log, vlog


def delete_local_if_tracked(state, entry: LocalEntry, tracked: frozenset) -> bool:
    """
    Remove a local file that disappeared remotely, but only when the daemon
    itself downloaded or uploaded it before the remote side was listed.

    *tracked* is the SyncState.tracked_paths() snapshot taken together with
    the remote listing; a file synced after that snapshot may simply be
    missing from the (now stale) listing. Returns True when the file was deleted.
    """
    if os.path.abspath(entry.path) not in tracked:
        vlog(f"  [KEEP] {entry.path} (not synced by this daemon before the listing)")
        return False
    try:
        entry.path.unlink(missing_ok=True)
    except OSError as exc:
        raise LocalIOError(f"cannot delete {entry.path}: {exc}") from exc
    state.forget(entry.path)
    log(f"  [DEL-LOCAL ✓] {entry.path} (deleted remotely)")
    return True


def delete_remote(transport, remote_path: str) -> bool:
    """Delete *remote_path*; a path that is already gone is not an error."""
    existed = transport.delete_path(remote_path)
    if existed:
        log(f"  [DEL-REMOTE ✓] {remote_path}")
    else:
        vlog(f"  [DEL-REMOTE] {remote_path} was already gone")
    return existed
