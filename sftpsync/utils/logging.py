"""
Logging utilities for sftpsync
"""
import sys
import threading
from datetime import datetime

_verbose = False
_lock = threading.Lock()


def set_verbose(verbose: bool):
    """Set the verbose flag"""
    global _verbose
    _verbose = verbose


def _emit(msg: str, stream):
    ts = datetime.now().strftime("%H:%M:%S")
    # watcher and syncer both log; one line at a time
    with _lock:
        print(f"[{ts}] {msg}", file=stream, flush=True)


def log(msg: str):
    """Log a message with timestamp"""
    _emit(msg, sys.stdout)


def vlog(msg: str):
    """Log a verbose message (only if verbose mode is enabled)"""
    if _verbose:
        log(msg)


def warn(msg: str):
    """Log a warning message"""
    _emit(f"⚠  {msg}", sys.stderr)


def error(msg: str):
    """Log an error message"""
    _emit(f"✗  {msg}", sys.stderr)


def is_verbose() -> bool:
    return _verbose
