"""NotebookSession — one offline-first notebook, wired end to end.

A session owns the note store, the sync queue, the reconciliation engine and
the retry scheduler for a single notebook.  Nothing is shared between
sessions except what the caller passes in (the remote client and the local
state database).

Usage::

    async with NotebookSession(remote, local, path="/", on_notebook_created=set_url) as nb:
        note = nb.add_note("buy milk")
        nb.edit_note(note.id, "buy oat milk")
        await nb.reload()

Every mutation is applied to the store, merged into the queue, written to
local state and handed to the scheduler before the call returns; the remote
call itself happens in the background.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable

from shared_notes.ids import mint_note_id, mint_notebook_id, parse_notebook_path, random_seed
from shared_notes.local import LocalState
from shared_notes.note import Note, PendingOperation
from shared_notes.queue import SyncQueue
from shared_notes.reconcile import ReconciliationEngine
from shared_notes.scheduler import RetryScheduler
from shared_notes.store import NoteStore
from shared_notes.sync.base import RemoteClient

logger = logging.getLogger(__name__)


class NotebookSession:
    """Offline-first engine instance for a single notebook."""

    def __init__(
        self,
        remote: RemoteClient,
        local: LocalState | None = None,
        *,
        path: str | None = None,
        notebook_id: str | None = None,
        seed: int | None = None,
        on_notebook_created: Callable[[str], None] | None = None,
        auto_retry: bool = True,
        initial_delay: float | None = None,
        max_delay: float | None = None,
        id_factory: Callable[[], str] = mint_note_id,
    ) -> None:
        notebook_id = notebook_id or parse_notebook_path(path)
        self.created = notebook_id is None
        if notebook_id is None:
            notebook_id = mint_notebook_id(random_seed() if seed is None else seed)
            logger.info("minted notebook %s", notebook_id)
        self.notebook_id = notebook_id

        self.remote = remote
        self.local = local if local is not None else LocalState()
        self._auto_retry = auto_retry

        # Queue first: reconciliation must see every persisted entry
        state = self.local.load(notebook_id)
        self.queue = SyncQueue(PendingOperation.from_dict(op) for op in state["pendingOperations"])
        self.store = NoteStore(
            self.queue,
            (Note.from_dict(n) for n in state["notes"]),
            id_factory=id_factory,
        )
        self.reconciler = ReconciliationEngine(remote, self.store, self.queue)
        self.scheduler = RetryScheduler(
            notebook_id,
            remote,
            self.queue,
            self.store,
            on_change=self.persist,
            initial_delay=initial_delay,
            max_delay=max_delay,
        )

        if self.created and on_notebook_created is not None:
            on_notebook_created(notebook_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> list[Note]:
        """Reconcile with the remote service and start background delivery."""
        notes = await self.reload()
        if self._auto_retry:
            self.scheduler.start()
        self.scheduler.trigger()
        return notes

    async def close(self) -> None:
        await self.scheduler.stop()
        self.persist()

    async def __aenter__(self) -> "NotebookSession":
        await self.open()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # User mutations
    # ------------------------------------------------------------------

    def add_note(self, content: str = "") -> Note:
        note = self.store.add_note(content)
        self._committed()
        return replace(note)

    def edit_note(self, note_id: str, content: str) -> Note | None:
        note = self.store.edit_note(note_id, content)
        if note is None:
            return None
        self._committed()
        return replace(note)

    def delete_note(self, note_id: str) -> bool:
        if self.store.delete_note(note_id) is None:
            return False
        self._committed()
        return True

    def _committed(self) -> None:
        self.persist()
        self.scheduler.trigger()

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def reload(self) -> list[Note]:
        """Re-run reconciliation against a fresh remote snapshot."""
        notes = await self.reconciler.reconcile(self.notebook_id)
        self.persist()
        return notes

    async def reconnect(self, *, reload: bool = True) -> list[Note]:
        """Handle a network-restored signal: deliver the queue, then optionally reload."""
        self.scheduler.notify_reconnect()
        await self.scheduler.flush()
        if reload:
            return await self.reload()
        return self.list_notes()

    async def sync(self) -> bool:
        """Drain the queue now; ``True`` when everything was confirmed."""
        return await self.scheduler.drain()

    def persist(self) -> None:
        self.local.save(self.snapshot())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_notes(self) -> list[Note]:
        return self.store.list_notes()

    def pending_operations(self) -> list[PendingOperation]:
        return self.queue.peek_all()

    @property
    def has_pending(self) -> bool:
        return not self.queue.is_empty()

    def share_text(self) -> str:
        """The notebook id as plain text, for the clipboard."""
        return self.notebook_id

    def snapshot(self) -> dict:
        return {
            "notebookId": self.notebook_id,
            "notes": [n.to_dict() for n in self.store.list_notes()],
            "pendingOperations": [op.to_dict() for op in self.queue.peek_all()],
        }
