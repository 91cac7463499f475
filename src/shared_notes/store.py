"""NoteStore: the local, authoritative view of a notebook's notes."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable

from shared_notes.ids import mint_note_id
from shared_notes.note import Note, OperationKind, PendingOperation, SyncState
from shared_notes.queue import SyncQueue

logger = logging.getLogger(__name__)


class NoteStore:
    """Visible notes for the active notebook plus their sync state.

    Every user mutation is applied optimistically and enqueued on *queue* in
    the same call, so the store and the queue never disagree between two
    mutations.
    """

    def __init__(
        self,
        queue: SyncQueue,
        notes: Iterable[Note] = (),
        *,
        id_factory: Callable[[], str] = mint_note_id,
    ) -> None:
        self._queue = queue
        self._id_factory = id_factory
        self._notes: dict[str, Note] = {}
        self.apply_remote_snapshot(notes)

    # ------------------------------------------------------------------
    # User mutations
    # ------------------------------------------------------------------

    def add_note(self, content: str = "") -> Note:
        """Append a new note at the end of the order and queue its CREATE."""
        position = max((n.position for n in self._notes.values()), default=-1) + 1
        note = Note(id=self._id_factory(), content=content, position=position)
        self._notes[note.id] = note
        self._queue.enqueue(PendingOperation(note.id, OperationKind.CREATE, note.to_payload()))
        return note

    def edit_note(self, note_id: str, content: str) -> Note | None:
        note = self._notes.get(note_id)
        if note is None:
            logger.debug("edit of unknown note %s ignored", note_id)
            return None
        note.content = content
        note.sync_state = SyncState.PENDING
        self._queue.enqueue(PendingOperation(note.id, OperationKind.UPDATE, note.to_payload()))
        return note

    def delete_note(self, note_id: str) -> Note | None:
        note = self._notes.pop(note_id, None)
        if note is None:
            logger.debug("delete of unknown note %s ignored", note_id)
            return None
        self._queue.enqueue(PendingOperation(note.id, OperationKind.DELETE))
        return note

    # ------------------------------------------------------------------
    # Engine-only entry points
    # ------------------------------------------------------------------

    def apply_remote_snapshot(self, notes: Iterable[Note]) -> None:
        """Replace the visible notes with a reconciled list."""
        ordered = sorted(notes, key=lambda n: n.sort_key)
        self._notes = {note.id: note for note in ordered}

    def mark(self, note_id: str, state: SyncState) -> None:
        note = self._notes.get(note_id)
        if note is not None:
            note.sync_state = state

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, note_id: str) -> Note | None:
        return self._notes.get(note_id)

    def list_notes(self) -> list[Note]:
        """A snapshot of the visible notes in render order."""
        return [replace(n) for n in sorted(self._notes.values(), key=lambda n: n.sort_key)]

    def __len__(self) -> int:
        return len(self._notes)

    def __contains__(self, note_id: object) -> bool:
        return note_id in self._notes
