"""Shared in-memory sync state"""
from .sync_state import SyncState

__all__ = ["SyncState"]
