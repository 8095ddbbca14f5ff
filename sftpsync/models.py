from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class EventKind(str, Enum):
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    OVERFLOW = "overflow"


class Outcome(str, Enum):
    """What the watcher did with one filesystem event."""
    UPLOADED = "uploaded"
    DELETED_REMOTE = "deleted_remote"
    DIR_REGISTERED = "dir_registered"
    OVERFLOW = "overflow"
    TEMP_FILE = "temp_file"
    ECHO = "echo"
    NOT_A_FILE = "not_a_file"
    UNSTABLE = "unstable"
    ALREADY_UPLOADED = "already_uploaded"
    IN_FLIGHT = "in_flight"
    OUTSIDE_ROOT = "outside_root"
    FAILED = "failed"


@dataclass(frozen=True)
class RemoteEntry:
    remote_path: str
    size: int
    mtime: int  # seconds, as reported by the server


@dataclass(frozen=True)
class LocalEntry:
    path: Path
    size: int
    mtime_ms: int


@dataclass
class TickReport:
    downloaded: int = 0
    renamed: int = 0
    deleted: int = 0
    up_to_date: int = 0
    kept: int = 0
    failed: int = 0

    @property
    def changed(self) -> int:
        return self.downloaded + self.renamed + self.deleted

    def summary(self) -> str:
        return (f"downloaded={self.downloaded}  renamed={self.renamed}  "
                f"deleted={self.deleted}  up_to_date={self.up_to_date}  "
                f"kept={self.kept}  failed={self.failed}")
