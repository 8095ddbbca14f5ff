"""
File utilities (temp-file filter, write-stability, path mapping)
"""
import os
import time
from pathlib import Path
from ..config import TEMP_PREFIX, TEMP_SUFFIXES, STABLE_WAIT_MS, STABLE_MAX_MS


def is_temp_file(name: str) -> bool:
    """True for hidden files and editor/download scratch files (.tmp, .part, .swp)."""
    if name.startswith(TEMP_PREFIX):
        return True
    return name.lower().endswith(TEMP_SUFFIXES)


def relative_key(root: Path, path) -> str:
    """Path of *path* relative to *root*, '/'-joined on every OS."""
    return Path(path).relative_to(root).as_posix()


def local_path_for(root: Path, key: str) -> Path:
    """Inverse of relative_key()."""
    return root.joinpath(*key.split("/"))


def remote_path_for(remote_root: str, key: str) -> str:
    """Join a relative key under the remote root with '/' separators."""
    if not remote_root:
        return key
    if remote_root.endswith("/"):
        return remote_root + key
    return f"{remote_root}/{key}"


def mtime_ms(path) -> int:
    """Last-modified time of a local file in whole milliseconds."""
    return os.stat(path).st_mtime_ns // 1_000_000


def wait_until_stable(path, wait_ms: int = STABLE_WAIT_MS, max_ms: int = STABLE_MAX_MS,
                      sleep=time.sleep, clock=time.monotonic) -> bool:
    """
    Poll the size of *path* until two samples *wait_ms* apart agree.

    Returns False when the file keeps changing for more than *max_ms*, when a
    size read fails, or when *sleep* returns a truthy value (an interrupted
    ``threading.Event.wait``).
    """
    deadline = clock() + max_ms / 1000
    try:
        previous = os.path.getsize(path)
    except OSError:
        return False
    while True:
        if sleep(wait_ms / 1000):
            return False
        try:
            current = os.path.getsize(path)
        except OSError:
            return False
        if current == previous:
            return True
        if clock() >= deadline:
            return False
        previous = current
