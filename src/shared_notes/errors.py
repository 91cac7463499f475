"""Error taxonomy for the sync engine.

Remote failures are raised by the :mod:`shared_notes.sync` clients and caught
at the scheduler / reconciliation boundary; they never reach the note store
or the queue.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for every error raised by this package."""


class InvalidLocalOperation(SyncError):
    """A local mutation that cannot be expressed (e.g. an update with no note)."""


class RemoteError(SyncError):
    """A remote call did not succeed.  Always eligible for retry."""

    retryable = True


class NetworkFailure(RemoteError):
    """The remote service could not be reached (refused, timed out, aborted, 5xx)."""

    def __init__(self, message: str, *, reason: str = "unreachable") -> None:
        super().__init__(message)
        self.reason = reason


class RemoteRejected(RemoteError):
    """The remote service answered but refused the request (4xx)."""

    def __init__(self, message: str, *, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedRemoteSnapshot(RemoteError):
    """The note list returned by the remote service has an unexpected shape."""
