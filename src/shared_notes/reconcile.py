"""ReconciliationEngine: merge a remote snapshot with unconfirmed local work.

Run once per page load and on every explicit reload.  The merged view starts
from the remote note list and overlays every queued operation on top of it:
CREATE / UPDATE upsert the local payload, DELETE removes the note.  A queued
entry is always newer than the last state the remote service confirmed, so
local wins for every note that still has one.

When the remote list cannot be fetched (offline, or an unexpected payload)
the base is the last-known local note list instead, so an offline reload
shows exactly what the user saw before it.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from shared_notes.errors import RemoteError
from shared_notes.note import Note, OperationKind, PendingOperation, SyncState
from shared_notes.queue import SyncQueue
from shared_notes.store import NoteStore
from shared_notes.sync.base import RemoteClient

logger = logging.getLogger(__name__)


def merge_snapshot(
    base: Iterable[Note],
    pending: Iterable[PendingOperation],
    *,
    settled: Iterable[PendingOperation] = (),
    failed: frozenset[str] = frozenset(),
) -> list[Note]:
    """Overlay queued operations on *base* and return the ordered result.

    *settled* operations were confirmed while *base* was being fetched; they
    are applied first and come out ``SYNCED``.  *pending* operations are
    applied last and come out ``PENDING``, or ``FAILED`` for ids in *failed*.
    """
    merged: dict[str, Note] = {n.id: Note(n.id, n.content, n.position, SyncState.SYNCED) for n in base}

    def _apply(op: PendingOperation, state: SyncState) -> None:
        if op.kind is OperationKind.DELETE:
            merged.pop(op.note_id, None)
        else:
            merged[op.note_id] = op.to_note(state)

    for op in settled:
        _apply(op, SyncState.SYNCED)
    for op in pending:
        _apply(op, SyncState.FAILED if op.note_id in failed else SyncState.PENDING)
    return sorted(merged.values(), key=lambda n: n.sort_key)


class ReconciliationEngine:
    def __init__(
        self,
        remote: RemoteClient,
        store: NoteStore,
        queue: SyncQueue,
        *,
        last_known: Callable[[], list[Note]] | None = None,
    ) -> None:
        self._remote = remote
        self._store = store
        self._queue = queue
        self._last_known = last_known or store.list_notes

    async def reconcile(self, notebook_id: str) -> list[Note]:
        """Fetch, merge and apply; returns the notes now visible in the store."""
        queued_before = self._queue.peek_all()
        try:
            base = await self._remote.fetch_all(notebook_id)
            logger.debug("fetched %d remote notes for %s", len(base), notebook_id)
        except RemoteError as exc:
            logger.warning("reconciling %s from local state only: %s", notebook_id, exc)
            base = self._last_known()

        # No await below this line: the queue read and the snapshot apply must
        # not be separated by a suspension point, or a mutation made while the
        # fetch was in flight could be reverted on screen.
        pending = self._queue.peek_all()
        still_queued = {op.note_id for op in pending}
        settled = [op for op in queued_before if op.note_id not in still_queued]
        failed = frozenset(n.id for n in self._store.list_notes() if n.sync_state is SyncState.FAILED)

        merged = merge_snapshot(base, pending, settled=settled, failed=failed)
        self._store.apply_remote_snapshot(merged)
        return self._store.list_notes()
