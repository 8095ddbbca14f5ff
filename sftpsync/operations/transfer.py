"""
File transfer operations (pull, push, local rename)
"""
import os
from pathlib import Path
from ..errors import LocalIOError, RemoteIOError
from ..models import LocalEntry, RemoteEntry
from ..utils.file_utils import local_path_for
from ..utils.logging import log

COPY_CHUNK = 64 * 1024


def _partial_path(target: Path) -> Path:
    # hidden + .part: the watcher's temp filter never propagates it
    return target.with_name(f".{target.name}.part")


def pull_file(transport, state, entry: RemoteEntry, target: Path):
    """
    Download *entry* into *target*, replacing any existing file.

    Bytes land in a hidden .part sibling first; the target is marked as
    downloaded before the final rename so the watcher sees the rename as an echo.
    The remote mtime is applied to the local copy.
    """
    partial = _partial_path(target)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with transport.lock:
            src = transport.download_stream(entry.remote_path)
            try:
                with open(partial, "wb") as dst:
                    _copy_stream(src, dst, entry.remote_path)
            finally:
                _close_quietly(src)
        if entry.mtime:
            os.utime(partial, (entry.mtime, entry.mtime))
    except OSError as exc:
        _unlink_quietly(partial)
        raise LocalIOError(f"cannot write {target}: {exc}") from exc
    except BaseException:
        _unlink_quietly(partial)
        raise

    state.mark_downloaded(target)
    try:
        os.replace(partial, target)
    except OSError as exc:
        state.forget_downloaded(target)
        _unlink_quietly(partial)
        raise LocalIOError(f"cannot replace {target}: {exc}") from exc
    log(f"  [DOWNLOAD ✓] {entry.remote_path} → {target}")


def push_file(transport, local_path: Path, remote_path: str):
    """Upload one local file to *remote_path*."""
    try:
        src = open(local_path, "rb")
    except OSError as exc:
        raise LocalIOError(f"cannot read {local_path}: {exc}") from exc
    with src:
        transport.upload_stream(remote_path, src)


def rename_local(state, local_root: Path, candidate: LocalEntry, new_key: str) -> LocalEntry:
    """
    Move *candidate* to the path of *new_key* (replacing what is there) and
    carry its bookkeeping along. Returns the entry at its new location.
    """
    target = local_path_for(local_root, new_key)
    state.mark_downloaded(target)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        os.replace(candidate.path, target)
    except OSError as exc:
        state.forget_downloaded(target)
        raise LocalIOError(f"cannot move {candidate.path} → {target}: {exc}") from exc
    state.forget(candidate.path)
    log(f"  [RENAME ✓] {candidate.path} → {target} (remote rename detected)")
    return LocalEntry(path=target, size=candidate.size, mtime_ms=candidate.mtime_ms)


def _copy_stream(src, dst, remote_path: str):
    while True:
        try:
            chunk = src.read(COPY_CHUNK)
        except Exception as exc:
            raise RemoteIOError(f"download {remote_path}: {exc}") from exc
        if not chunk:
            return
        dst.write(chunk)


def _close_quietly(stream):
    try:
        stream.close()
    except Exception:
        pass


def _unlink_quietly(path: Path):
    try:
        path.unlink(missing_ok=True)
    except OSError:
        pass
