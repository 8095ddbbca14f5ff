"""
Inventory scanning (local and remote)
"""
from pathlib import Path
from ..models import LocalEntry, RemoteEntry
from ..utils.file_utils import relative_key
from ..utils.logging import vlog


def remote_list_all(transport, remote_root: str) -> dict[str, RemoteEntry]:
    """Returns {rel_posix: RemoteEntry}. Listing errors propagate."""
    result = transport.list_recursive(remote_root)
    vlog(f"[scan] {len(result)} remote file(s) under {remote_root or '.'}")
    return result


def local_list_all(root: Path) -> dict[str, LocalEntry]:
    """Returns {rel_posix: LocalEntry} for every regular file under *root*."""
    result: dict[str, LocalEntry] = {}
    if not root.is_dir():
        return result
    for p in root.rglob("*"):
        try:
            if not p.is_file():
                continue
            st = p.stat()
        except OSError as exc:
            # vanished or unreadable between listing and stat
            vlog(f"[scan] skipping {p}: {exc}")
            continue
        result[relative_key(root, p)] = LocalEntry(
            path=p, size=st.st_size, mtime_ms=st.st_mtime_ns // 1_000_000,
        )
    vlog(f"[scan] {len(result)} local file(s) under {root}")
    return result
