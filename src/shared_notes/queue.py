"""SyncQueue: ordered, per-note-deduplicated queue of pending mutations.

At most one :class:`PendingOperation` exists per note.  A new mutation for a
note that is already queued is merged into the existing entry:

=========  =========  ==================================
existing   incoming   result
=========  =========  ==================================
CREATE     UPDATE     CREATE with the latest content
CREATE     DELETE     DELETE (idempotent on the remote)
UPDATE     UPDATE     UPDATE with the latest content
UPDATE     CREATE     CREATE with the latest content
UPDATE     DELETE     DELETE
DELETE     anything   DELETE
=========  =========  ==================================

The merged entry keeps its original place in the queue so notes queued
earlier are not starved by later edits.  Every merge stamps the entry with a
fresh revision; :meth:`SyncQueue.confirm` only clears an entry whose revision
still matches the one that was sent.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable

from shared_notes.errors import InvalidLocalOperation
from shared_notes.note import OperationKind, PendingOperation

logger = logging.getLogger(__name__)


class SyncQueue:
    """Pending operations keyed by note id, in first-enqueued order."""

    def __init__(self, operations: Iterable[PendingOperation] = ()) -> None:
        self._entries: dict[str, PendingOperation] = {}
        self._revision = 0
        for op in operations:
            self._entries[op.note_id] = op
            self._revision = max(self._revision, op.revision)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def enqueue(self, operation: PendingOperation) -> PendingOperation:
        """Add *operation*, merging it with any entry already queued for its note."""
        if operation.kind is not OperationKind.DELETE and operation.payload is None:
            raise InvalidLocalOperation(
                f"{operation.kind.value} for note {operation.note_id!r} has no payload"
            )

        self._revision += 1
        existing = self._entries.get(operation.note_id)
        if existing is None:
            merged = replace(operation, revision=self._revision)
        else:
            merged = self._merge(existing, operation)
            logger.debug(
                "merged %s into queued %s for note %s -> %s",
                operation.kind.value,
                existing.kind.value,
                operation.note_id,
                merged.kind.value,
            )
        # Reassigning an existing key keeps its position in the dict
        self._entries[operation.note_id] = merged
        return merged

    def _merge(self, existing: PendingOperation, incoming: PendingOperation) -> PendingOperation:
        if existing.kind is OperationKind.DELETE or incoming.kind is OperationKind.DELETE:
            kind, payload = OperationKind.DELETE, None
        elif OperationKind.CREATE in (existing.kind, incoming.kind):
            kind, payload = OperationKind.CREATE, incoming.payload
        else:
            kind, payload = OperationKind.UPDATE, incoming.payload
        return replace(
            existing,
            kind=kind,
            payload=payload,
            enqueued_at=incoming.enqueued_at,
            revision=self._revision,
        )

    def remove(self, note_id: str) -> PendingOperation | None:
        return self._entries.pop(note_id, None)

    def confirm(self, sent: PendingOperation) -> bool:
        """Clear the entry for *sent* if nothing newer was merged in meanwhile.

        Returns ``True`` when the queue no longer holds anything for the note.
        When a CREATE was confirmed while a newer CREATE (create + later edits)
        is waiting, the waiting entry becomes an UPDATE since the remote
        service now knows the note.
        """
        current = self._entries.get(sent.note_id)
        if current is None:
            return True
        if current.revision == sent.revision:
            del self._entries[sent.note_id]
            return True
        if sent.kind is OperationKind.CREATE and current.kind is OperationKind.CREATE:
            self._entries[sent.note_id] = replace(current, kind=OperationKind.UPDATE)
        return False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def peek_all(self) -> list[PendingOperation]:
        return list(self._entries.values())

    def get(self, note_id: str) -> PendingOperation | None:
        return self._entries.get(note_id)

    def is_empty(self) -> bool:
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, note_id: object) -> bool:
        return note_id in self._entries
