"""
Error taxonomy for sftpsync

Only ConfigError is fatal; everything else is logged by the worker that
hit it and the worker moves on to the next item (or the next tick).
"""


class SyncError(Exception):
    """Base exception for sync errors."""


class ConfigError(SyncError):
    """Configuration file is missing, unreadable or malformed."""


class TransportError(SyncError):
    """Base for remote-side failures."""


class AuthFailed(TransportError):
    """The server rejected the credentials."""


class Unreachable(TransportError):
    """The server could not be reached or the session could not be opened."""


class RemoteIOError(TransportError):
    """A single remote operation failed."""


class NotFound(RemoteIOError):
    """The remote path does not exist."""


class LocalIOError(SyncError):
    """A local filesystem read/stat/write failed."""
