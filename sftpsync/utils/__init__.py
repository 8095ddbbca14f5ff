"""Utilities (logging, file helpers)"""
from .logging import log, vlog, warn, error, set_verbose, is_verbose
from .file_utils import (
    is_temp_file, relative_key, local_path_for, remote_path_for, mtime_ms, wait_until_stable,
)

__all__ = [
    "log", "vlog", "warn", "error", "set_verbose", "is_verbose",
    "is_temp_file", "relative_key", "local_path_for", "remote_path_for",
    "mtime_ms", "wait_until_stable",
]
