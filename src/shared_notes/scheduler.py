"""RetryScheduler: delivers queued operations to the remote service.

Delivery is attempted on three triggers only:

* right after a local mutation is enqueued (:meth:`RetryScheduler.trigger`),
* when the network comes back (:meth:`RetryScheduler.notify_reconnect`),
* on a bounded backoff timer while the queue is non-empty
  (:meth:`RetryScheduler.start`).

A drain walks the queue in order and stops at the first failure, so a downed
remote sees one failed request per trigger rather than one per note.  Only
one drain runs at a time; a trigger that arrives mid-drain makes the running
drain take one more pass.

Environment variables (all optional; direct kwargs take precedence):
    SHARED_NOTES_RETRY_INITIAL  – first timer delay in seconds (default 2)
    SHARED_NOTES_RETRY_MAX      – delay ceiling in seconds (default 60)
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Callable

from shared_notes.errors import RemoteError
from shared_notes.note import OperationKind, PendingOperation, SyncState
from shared_notes.queue import SyncQueue
from shared_notes.store import NoteStore
from shared_notes.sync.base import RemoteClient

logger = logging.getLogger(__name__)


class RetryScheduler:
    def __init__(
        self,
        notebook_id: str,
        remote: RemoteClient,
        queue: SyncQueue,
        store: NoteStore,
        *,
        on_change: Callable[[], None] | None = None,
        initial_delay: float | None = None,
        max_delay: float | None = None,
    ) -> None:
        self.notebook_id = notebook_id
        self._remote = remote
        self._queue = queue
        self._store = store
        self._on_change = on_change or (lambda: None)

        if initial_delay is None:
            initial_delay = float(os.getenv("SHARED_NOTES_RETRY_INITIAL", "2"))
        if max_delay is None:
            max_delay = float(os.getenv("SHARED_NOTES_RETRY_MAX", "60"))
        self.initial_delay = initial_delay
        self.max_delay = max(max_delay, initial_delay)
        self.delay = initial_delay

        self._lock = asyncio.Lock()
        self._rerun = False
        self._drain_task: asyncio.Task[bool] | None = None
        self._timer_task: asyncio.Task[None] | None = None
        self._wake = asyncio.Event()

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def trigger(self) -> None:
        """Schedule a drain without waiting for it."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("no running event loop; delivery deferred to the next trigger")
            return
        if self._lock.locked():
            self._rerun = True
            return
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.create_task(self.drain())

    def notify_reconnect(self) -> None:
        """The network is back: reset the backoff and deliver now."""
        self.delay = self.initial_delay
        self._wake.set()
        self.trigger()

    async def flush(self) -> None:
        """Wait until no drain is in flight."""
        while self._drain_task is not None and not self._drain_task.done():
            await asyncio.wait({self._drain_task})
        # A timer-started drain is not tracked as a task
        async with self._lock:
            pass

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def drain(self) -> bool:
        """Deliver queued operations in order; ``True`` when the queue emptied."""
        async with self._lock:
            while True:
                self._rerun = False
                for op in self._queue.peek_all():
                    current = self._queue.get(op.note_id)
                    if current is None or current.revision != op.revision:
                        # Superseded while an earlier send was in flight
                        continue
                    if not await self._deliver(op):
                        return False
                if not (self._rerun and not self._queue.is_empty()):
                    break
        self.delay = self.initial_delay
        return self._queue.is_empty()

    async def _deliver(self, op: PendingOperation) -> bool:
        try:
            await self._send(op)
        except RemoteError as exc:
            logger.warning("%s of note %s failed: %s", op.kind.value, op.note_id, exc)
            if self._queue.get(op.note_id) is not None:
                self._store.mark(op.note_id, SyncState.FAILED)
            self._on_change()
            return False

        if self._queue.confirm(op):
            self._store.mark(op.note_id, SyncState.SYNCED)
            logger.info("%s of note %s confirmed", op.kind.value, op.note_id)
        else:
            logger.debug("%s of note %s confirmed but superseded", op.kind.value, op.note_id)
        # Blocking local write on the loop: each confirmation is durable before
        # the next send starts
        self._on_change()
        return True

    async def _send(self, op: PendingOperation) -> None:
        if op.kind is OperationKind.DELETE:
            await self._remote.delete(self.notebook_id, op.note_id)
        elif op.kind is OperationKind.CREATE:
            await self._remote.create(self.notebook_id, op.to_note())
        else:
            await self._remote.update(self.notebook_id, op.to_note())

    # ------------------------------------------------------------------
    # Backoff timer
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._timer_task is None or self._timer_task.done():
            self._timer_task = asyncio.create_task(self._run_timer())

    async def stop(self) -> None:
        if self._timer_task is not None:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
            self._timer_task = None
        await self.flush()

    async def _run_timer(self) -> None:
        while True:
            self._wake.clear()
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.delay)
                # Reconnect already kicked a drain; just restart the clock
                continue
            except asyncio.TimeoutError:
                pass
            if self._queue.is_empty() or self._lock.locked():
                continue
            if not await self.drain():
                self.delay = min(self.delay * 2, self.max_delay)
                logger.debug("next retry for %s in %.1fs", self.notebook_id, self.delay)
