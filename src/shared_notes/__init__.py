"""Shared-notes offline-first sync library."""

from shared_notes.engine import NotebookSession
from shared_notes.errors import (
    InvalidLocalOperation,
    MalformedRemoteSnapshot,
    NetworkFailure,
    RemoteError,
    RemoteRejected,
    SyncError,
)
from shared_notes.ids import mint_notebook_id, parse_notebook_path
from shared_notes.local import LocalState
from shared_notes.note import Note, OperationKind, PendingOperation, SyncState
from shared_notes.queue import SyncQueue
from shared_notes.reconcile import ReconciliationEngine, merge_snapshot
from shared_notes.scheduler import RetryScheduler
from shared_notes.store import NoteStore

__all__ = [
    "NotebookSession",
    "Note",
    "NoteStore",
    "OperationKind",
    "PendingOperation",
    "SyncState",
    "SyncQueue",
    "ReconciliationEngine",
    "merge_snapshot",
    "RetryScheduler",
    "LocalState",
    "mint_notebook_id",
    "parse_notebook_path",
    "SyncError",
    "InvalidLocalOperation",
    "RemoteError",
    "NetworkFailure",
    "RemoteRejected",
    "MalformedRemoteSnapshot",
]
